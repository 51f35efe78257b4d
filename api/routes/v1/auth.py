"""
api/routes/v1/auth.py -- Registration, login and logout endpoints.

Routes:
  POST /api/v1/auth/register  -- create an account; 400 if name or mail is taken
  POST /api/v1/auth/login     -- name + password -> raw token (text/plain)
  POST /api/v1/auth/logout    -- revoke the caller's session; 200 empty body
  GET  /api/v1/auth/me        -- current user (requires auth)

Error mapping is done by the AuthError handler in api/main.py:
  WrongCredentials -> 401 ("wrong username" / "wrong password")
  UserExists       -> 400
  token errors     -> 401
  StorageFailure   -> 500
The one exception is logout without an Authorization header, which is a 400
here rather than the usual 401.

Security:
  POST /login is rate-limited per client IP (Settings.login_rate_limit).
  Cache-Control: no-store on the login response, which carries a credential.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import PlainTextResponse

from api.limiter import limiter
from api.models import LoginRequest, RegisterRequest, UserResponse
from auth.dependencies import get_current_user
from auth.errors import MissingCredentials
from auth.models import User
from auth.service import AuthService
from core.config import get_settings

# Auth policy:
# - POST /api/v1/auth/register: public
# - POST /api/v1/auth/login:    public, rate-limited
# - POST /api/v1/auth/logout:   Authorization header required (token may be expired)
# - GET  /api/v1/auth/me:       requires auth (get_current_user)
router = APIRouter()


def _login_limit() -> str:
    return get_settings().login_rate_limit


@router.post("/auth/register", response_model=UserResponse)
def register(request: Request, body: RegisterRequest) -> UserResponse:
    """Create a user. The password is hashed before it is stored and never echoed back."""
    service: AuthService = request.app.state.auth_service
    user = service.register(body.name, body.mail, body.password, body.role)
    return UserResponse.from_user(user)


@limiter.limit(_login_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_class=PlainTextResponse)
def login(request: Request, body: LoginRequest) -> PlainTextResponse:
    """Authenticate with name and password and return the raw session token.

    A successful login replaces any previous session for the same user: the
    token returned by an earlier login stops authenticating immediately.
    """
    service: AuthService = request.app.state.auth_service
    token = service.login(body.name, body.password)
    resp = PlainTextResponse(token, status_code=200)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout")
def logout(request: Request) -> Response:
    """Revoke the session of the token in the Authorization header.

    Logging out twice with the same token is harmless: the second call clears
    an already-empty session.
    """
    service: AuthService = request.app.state.auth_service
    try:
        service.logout(request.headers.get("Authorization", ""))
    except MissingCredentials as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": exc.code, "message": "Authorization header wasn't provided"},
        ) from exc
    return Response(status_code=200)


@router.get("/auth/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the profile of the currently authenticated user."""
    return UserResponse.from_user(current_user)
