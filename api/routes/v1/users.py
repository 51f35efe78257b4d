"""
api/routes/v1/users.py -- User administration routes.

Routes:
  GET    /users          -- list, filters: name, mail, role (ADMIN)
  GET    /users/{id}     -- detail (any authenticated caller)
  PUT    /users          -- overwrite name/mail/role by body id (ADMIN)
  DELETE /users/{id}     -- delete (ADMIN)

Passwords and session tokens are never part of these payloads. Changing a
user's role here also ends their current session in practice: the live token
carries the old role, and the session lookup matches on (id, role).
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.exc import IntegrityError

from api.models import UserResponse, UserUpdate
from api.query import invalid_params, parse_filters
from auth.dependencies import get_principal, require_admin
from auth.models import Principal, User
from auth.store import USER_FILTERS, UserStore

router = APIRouter()


def _not_found(user_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"code": "not_found", "message": f"user with id {user_id} wasn't found"},
    )


@router.get("/users", response_model=list[UserResponse])
def list_users(request: Request, invoker: User = Depends(require_admin)) -> list[UserResponse]:
    filters = parse_filters(request, USER_FILTERS)
    user_store: UserStore = request.app.state.user_store
    try:
        users = user_store.list_users(filters)
    except ValueError as exc:
        # unknown key, or a role filter that is not an integer
        raise invalid_params(exc) from exc
    return [UserResponse.from_user(u) for u in users]


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(request: Request, user_id: str, principal: Principal = Depends(get_principal)) -> UserResponse:
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(user_id)
    if user is None:
        raise _not_found(user_id)
    return UserResponse.from_user(user)


@router.put("/users", response_model=UserResponse)
def update_user(request: Request, body: UserUpdate, invoker: User = Depends(require_admin)) -> UserResponse:
    user_store: UserStore = request.app.state.user_store
    try:
        updated = user_store.update_user(body.id, body.name, body.mail, body.role)
    except IntegrityError as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": "user_exists", "message": "name or mail already belongs to another user"},
        ) from exc
    if updated is None:
        raise _not_found(body.id)
    return UserResponse.from_user(updated)


@router.delete("/users/{user_id}", status_code=204)
def delete_user(request: Request, user_id: str, invoker: User = Depends(require_admin)) -> Response:
    user_store: UserStore = request.app.state.user_store
    if not user_store.delete_user(user_id):
        raise _not_found(user_id)
    return Response(status_code=204)
