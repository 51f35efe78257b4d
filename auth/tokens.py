"""
auth/tokens.py -- Session token codec (JWT, HS256 via python-jose).

Security design decisions:
  Claims: exactly three -- "id" (subject id string), "role" (int), and
       "expired_at" (absolute Unix seconds). The expiry is a custom claim, not
       the registered "exp", so jose never validates it implicitly; verify()
       checks it against the caller-supplied ``now`` instead. That keeps the
       codec a pure function of (token, now) and testable with a fixed clock.

  Algorithm confusion: the header "alg" is inspected BEFORE any signature
       work. Anything other than the configured algorithm -- "none", HS512,
       RS256 -- is MalformedToken. jws.verify() is then called with a
       single-element algorithms list as a second line of defence.

  Failure ordering: structure first (MalformedToken), then signature
       (BadSignature), then claims shape (MalformedToken), then expiry
       (Expired). A forged token therefore never reaches the expiry check,
       and an expired token is only reported as expired if it is genuine.

  Secret key and TTL: injected by the application lifespan from
       core.config.Settings. There is no module-level key, so tests can run
       several codecs with distinct keys side by side.

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

import logging
from datetime import datetime

from jose import jws, jwt
from jose.exceptions import JOSEError

from auth.errors import BadSignature, Expired, MalformedToken
from auth.models import Role

logger = logging.getLogger("library.auth")

_ALGORITHM = "HS256"


def _epoch_seconds(now: datetime) -> int:
    return int(now.timestamp())


class TokenCodec:
    """Issue and verify signed session tokens.

    Usage:
        codec = TokenCodec(settings.secret_key, settings.token_ttl_seconds)
        token = codec.issue(user.id, user.role, datetime.now(timezone.utc))
        subject_id, role = codec.verify(token, datetime.now(timezone.utc))

    Time is truncated to whole seconds on both sides, so a token issued at t0
    is valid for every ``now`` in [t0, t0 + ttl) and expired from t0 + ttl on.
    """

    def __init__(self, secret_key: str, ttl_seconds: int, algorithm: str = _ALGORITHM) -> None:
        if not secret_key:
            raise ValueError("TokenCodec requires a non-empty secret key")
        if ttl_seconds <= 0:
            raise ValueError("TokenCodec requires a positive ttl")
        self._secret_key = secret_key
        self.ttl_seconds = ttl_seconds
        self.algorithm = algorithm

    def issue(self, subject_id: str, role: Role, now: datetime) -> str:
        claims = {
            "id": str(subject_id),
            "role": int(role),
            "expired_at": _epoch_seconds(now) + self.ttl_seconds,
        }
        return jwt.encode(claims, self._secret_key, algorithm=self.algorithm)

    def verify(self, token: str, now: datetime) -> tuple[str, Role]:
        """Return (subject_id, role) for a genuine, unexpired token.

        Raises MalformedToken, BadSignature or Expired. Has no side effects.
        """
        try:
            header = jwt.get_unverified_header(token)
            jwt.get_unverified_claims(token)
        except JOSEError as exc:
            raise MalformedToken() from exc

        alg = header.get("alg")
        if alg != self.algorithm:
            logger.warning("Rejected token with unexpected signing algorithm %r", alg)
            raise MalformedToken(f"unexpected signing method: {alg}")

        # The structure already parsed and the algorithm is the expected one,
        # so a failure here can only be the signature.
        try:
            jws.verify(token, self._secret_key, algorithms=[self.algorithm])
        except JOSEError as exc:
            raise BadSignature() from exc

        claims = jwt.get_unverified_claims(token)
        subject_id, role, expired_at = _parse_claims(claims)

        if _epoch_seconds(now) >= expired_at:
            raise Expired()
        return subject_id, role


def _parse_claims(claims: dict) -> tuple[str, Role, int]:
    subject_id = claims.get("id")
    raw_role = claims.get("role")
    expired_at = claims.get("expired_at")

    # bool is an int subclass; reject it explicitly for the numeric claims.
    if not isinstance(subject_id, str) or not subject_id:
        raise MalformedToken("token claim 'id' is missing or invalid")
    if not isinstance(raw_role, int) or isinstance(raw_role, bool):
        raise MalformedToken("token claim 'role' is missing or invalid")
    if not isinstance(expired_at, int) or isinstance(expired_at, bool):
        raise MalformedToken("token claim 'expired_at' is missing or invalid")
    try:
        role = Role(raw_role)
    except ValueError as exc:
        raise MalformedToken(f"unknown role {raw_role}") from exc
    return subject_id, role, expired_at
