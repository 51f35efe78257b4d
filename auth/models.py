"""
auth/models.py -- Domain types for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the guard
do the work; these only own the shape.

Layer rule: no imports from api/, core/, or catalog/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class Role(IntEnum):
    """User role, persisted as a small integer.

    The integer order is the privilege order, but permission checks compare
    for equality only (see auth.guard.require_role).
    """

    USER = 0
    MODERATOR = 1
    ADMIN = 2


@dataclass(frozen=True)
class Principal:
    """Authenticated identity derived from a verified token. Never persisted."""

    subject_id: str
    role: Role


@dataclass
class User:
    """A registered account.

    hashed_password is the bcrypt digest written at registration.
    token is the single live session token, or None when logged out. Neither
    is ever serialized to clients -- api/models.UserResponse omits both.
    """

    name: str
    mail: str
    role: Role
    id: str | None = None  # uuid4 string, assigned by the store
    hashed_password: str | None = None
    created_at: str | None = None
    token: str | None = None
