"""
auth/guard.py -- Access Guard: the per-request authorization decision.

authenticate() is a straight line with no retries and no hidden state:

  1. empty header                        -> MissingCredentials
  2. fewer than two space-separated parts -> MalformedHeader
  3. TokenCodec.verify()                  -> MalformedToken / BadSignature /
                                             Expired, surfaced as InvalidToken
  4. SessionDirectory.lookup()            -> SessionNotFound, surfaced as
                                             InvalidToken("no_live_session")
  5. Principal(subject_id, role)

The scheme word ("Bearer", "Token", anything) is not checked, only its
presence. require_role() is an exact-match check: a principal passes only if
its role equals the one the endpoint names. ADMIN does not satisfy a
MODERATOR-only endpoint.

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from auth.errors import Forbidden, InvalidToken, MalformedHeader, MissingCredentials, SessionNotFound, TokenError
from auth.models import Principal, Role, User
from auth.sessions import SessionDirectory
from auth.tokens import TokenCodec

logger = logging.getLogger("library.auth")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def extract_token(header: str | None) -> str:
    """Return the token segment of an ``Authorization: <scheme> <token>`` value."""
    if not header:
        raise MissingCredentials()
    parts = header.split(" ")
    if len(parts) < 2:
        raise MalformedHeader()
    return parts[1]


def require_role(principal: Principal | User, required: Role) -> None:
    """Raise Forbidden unless the caller's role is exactly ``required``."""
    if principal.role != required:
        logger.info("Forbidden: role %s attempted a %s-only operation", Role(principal.role).name, required.name)
        raise Forbidden()


class AccessGuard:
    """Authenticate raw Authorization header values.

    Stateless apart from its collaborators, so one instance serves every
    request concurrently.
    """

    def __init__(self, codec: TokenCodec, sessions: SessionDirectory, clock: Clock = utc_now) -> None:
        self.codec = codec
        self.sessions = sessions
        self.clock = clock

    def authenticate(self, header: str | None) -> Principal:
        user = self.authenticate_and_fetch_user(header)
        return Principal(subject_id=user.id, role=user.role)

    def authenticate_and_fetch_user(self, header: str | None) -> User:
        token = extract_token(header)
        try:
            subject_id, role = self.codec.verify(token, self.clock())
        except TokenError as exc:
            logger.info("Rejected token: %s", exc.code)
            raise InvalidToken(reason=exc.code) from exc

        try:
            return self.sessions.lookup(subject_id, role, token)
        except SessionNotFound as exc:
            logger.info("Rejected token for %s: no live session", subject_id)
            raise InvalidToken(reason="no_live_session") from exc
