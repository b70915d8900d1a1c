"""
api/routes/v1/users.py -- Registration and user record endpoints.

Routes:
  GET    /api/v1/users               -- list users (public)
  GET    /api/v1/users/{username}    -- one user (public)
  POST   /api/v1/users               -- register (public)
  PUT    /api/v1/users/{username}    -- full replacement (self or admin)
  DELETE /api/v1/users/{username}    -- delete (admin; self only if ALLOW_SELF_DELETE)

Security:
  The plaintext password is turned into (digest, salt) before a User exists;
  responses are built from UserResponse, which has no digest or salt field.

  PUT: the policy runs before the store is touched. A body whose username
  differs from the path is refused with 400 regardless of role; another
  user's record needs the admin role (403).

  Registration cannot grant roles. New users receive DEFAULT_ROLE and a
  replacement keeps the roles already on the record.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import UserCreate, UserResponse
from auth.dependencies import enforce, get_claims
from auth.models import Claims, User
from auth.policy import Action
from auth.store import UserStore

router = APIRouter()

_NOT_FOUND = {"code": "not_found", "message": "User not found."}


def _users(request: Request) -> UserStore:
    return request.app.state.store.users


def _build_user(request: Request, body: UserCreate, roles: frozenset[str]) -> User:
    digest, salt = request.app.state.hasher.hash_password(body.password)
    return User(
        username=body.username,
        name=body.name,
        email=body.email,
        password_digest=digest,
        salt=salt,
        roles=roles,
    )


@router.get("/users", response_model=list[UserResponse])
async def list_users(request: Request) -> list[UserResponse]:
    """List all user accounts ordered by username."""
    return [UserResponse.from_user(u) for u in _users(request).list_users()]


@router.get("/users/{username}", response_model=UserResponse)
async def get_user(request: Request, username: str) -> UserResponse:
    user = _users(request).get_by_username(username)
    if user is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return UserResponse.from_user(user)


@router.post("/users", response_model=UserResponse, status_code=201)
def register(request: Request, body: UserCreate) -> UserResponse:
    """Create a user account. 409 if the username is taken."""
    enforce(request, None, Action.REGISTER)
    default_role: str = request.app.state.settings.default_role
    user = _build_user(request, body, frozenset({default_role}))
    if not _users(request).add(user):
        raise HTTPException(
            status_code=409,
            detail={"code": "conflict", "message": "A user with that username already exists."},
        )
    return UserResponse.from_user(user)


@router.put("/users/{username}", response_model=UserResponse)
def replace_user(
    request: Request,
    username: str,
    body: UserCreate,
    claims: Claims = Depends(get_claims),
) -> UserResponse:
    """Replace a user record wholesale, including its password.

    update() returning True is success; False means the record vanished
    between the lookup and the write and is reported as 404.
    """
    enforce(request, claims, Action.UPDATE_ACCOUNT, target_key=username, submitted_key=body.username)
    users = _users(request)
    existing = users.get_by_username(username)
    if existing is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    user = _build_user(request, body, existing.roles)
    if not users.update(user):
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return UserResponse.from_user(user)


@router.delete("/users/{username}", status_code=204)
async def delete_user(
    request: Request,
    username: str,
    claims: Claims = Depends(get_claims),
) -> Response:
    enforce(request, claims, Action.DELETE_ACCOUNT, target_key=username)
    users = _users(request)
    user = users.get_by_username(username)
    if user is None or not users.delete(user):
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return Response(status_code=204)
