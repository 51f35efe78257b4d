"""
auth/sessions.py -- Session Directory: the one live token per user.

The token format has no revocation list. Revocation lives here instead: each
user row has a nullable ``token`` column, and a token only authenticates while
it is the value currently stored for its subject. Concretely:

  put(id, token)   -- login. Overwrites; the previous token stops working.
  clear(id)        -- logout. Sets NULL; clearing twice is a no-op.
  lookup(id, role) -- the guard's final authority on liveness.

No in-process locking. Concurrent put()/clear() for the same user rely on the
database's row-level atomicity and the last writer wins.

Every SQLAlchemy error is re-raised as StorageFailure.

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from auth.errors import SessionNotFound, StorageFailure
from auth.models import Role, User
from auth.store import _row_to_user, users

logger = logging.getLogger("library.auth")


class SessionDirectory:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def put(self, subject_id: str, token: str) -> None:
        """Record token as the subject's only live session."""
        self._set_token(subject_id, token)

    def clear(self, subject_id: str) -> None:
        """Drop the subject's live session, if any."""
        self._set_token(subject_id, None)

    def lookup(self, subject_id: str, role: Role, token: str | None = None) -> User:
        """Return the user behind a live session for (subject_id, role).

        When ``token`` is given the stored session must also be exactly that
        token, so a superseded token from an earlier login no longer
        authenticates. Raises SessionNotFound otherwise -- including when the
        role in the token no longer matches the stored role.
        """
        query = select(users).where(
            (users.c.id == subject_id) & (users.c.role == int(role)) & users.c.token.is_not(None)
        )
        if token is not None:
            query = query.where(users.c.token == token)
        try:
            with self.engine.connect() as conn:
                row = conn.execute(query).fetchone()
        except SQLAlchemyError as exc:
            logger.error("SessionDirectory.lookup failed: %s", exc)
            raise StorageFailure() from exc
        if row is None or not row.token:
            raise SessionNotFound(subject_id)
        return _row_to_user(row)

    def _set_token(self, subject_id: str, token: str | None) -> None:
        try:
            with self.engine.connect() as conn:
                conn.execute(users.update().where(users.c.id == subject_id).values(token=token))
                conn.commit()
        except SQLAlchemyError as exc:
            logger.error("SessionDirectory update failed for %s: %s", subject_id, exc)
            raise StorageFailure() from exc
