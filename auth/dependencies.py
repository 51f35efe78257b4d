"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

All helpers read the raw Authorization header and hand it to the AccessGuard
stored on app.state by the lifespan. Failures are raised as AuthError
subclasses; api/main.py renders them (401 / 403 / 500).

get_principal()      -- any authenticated caller, identity pair only.
get_current_user()   -- any authenticated caller, full user record.
require_moderator()  -- role must be exactly MODERATOR (catalog mutation).
require_admin()      -- role must be exactly ADMIN (user administration).

Layer rule: may import from fastapi because this module is part of the
FastAPI dependency injection system; no imports from api/ or catalog/.
"""

from __future__ import annotations

from fastapi import Request

from auth.guard import AccessGuard, require_role
from auth.models import Principal, Role, User


def _guard(request: Request) -> AccessGuard:
    return request.app.state.guard


def get_principal(request: Request) -> Principal:
    """Require authentication. Use for read-only endpoints.

        @router.get("/books")
        def route(principal: Principal = Depends(get_principal)): ...
    """
    return _guard(request).authenticate(request.headers.get("Authorization", ""))


def get_current_user(request: Request) -> User:
    """Require authentication and load the caller's stored user record."""
    return _guard(request).authenticate_and_fetch_user(request.headers.get("Authorization", ""))


def require_moderator(request: Request) -> User:
    """Raise 401 if unauthenticated, 403 unless the role is exactly MODERATOR."""
    user = get_current_user(request)
    require_role(user, Role.MODERATOR)
    return user


def require_admin(request: Request) -> User:
    """Raise 401 if unauthenticated, 403 unless the role is exactly ADMIN."""
    user = get_current_user(request)
    require_role(user, Role.ADMIN)
    return user
