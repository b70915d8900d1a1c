"""
API request and response models for TodoAuth REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
todo/models.py, which own the internal domain representation. Route handlers
map between the two.

Input rules (username shape, email format, title length) live here and nowhere
else. The stores accept whatever they are given.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from auth.models import User
from todo.models import TodoItem

# ASCII letters and digits only, 5-40 characters.
USERNAME_PATTERN = r"^[A-Za-z0-9]{5,40}$"


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/login."""

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    username: str
    roles: list[str]


class MeResponse(BaseModel):
    """Identity context of the caller, straight from the verified token."""

    model_config = ConfigDict(frozen=True)

    username: str
    name: str
    email: str
    roles: list[str]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    """Request body for POST /api/v1/users and PUT /api/v1/users/{username}.

    PUT is a full replacement, so it takes the same shape as registration,
    including a password. The username in the body must match the path.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(pattern=USERNAME_PATTERN)
    name: str = Field(default="", max_length=255)
    email: EmailStr
    # Not stripped: leading/trailing spaces are part of the secret.
    password: str = Field(min_length=1, max_length=255)


class UserResponse(BaseModel):
    """Public view of a User. Digest and salt are never serialized."""

    model_config = ConfigDict(frozen=True)

    username: str
    name: str
    email: str
    roles: list[str]

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            username=user.username,
            name=user.name,
            email=user.email,
            roles=sorted(user.roles),
        )


# ---------------------------------------------------------------------------
# Todos
# ---------------------------------------------------------------------------


class TodoCreate(BaseModel):
    """Request body for POST /api/v1/todos and PUT /api/v1/todos/{id}."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=10, max_length=200)
    description: str = Field(min_length=1)
    due_date: datetime

    def to_item(self, item_id: int = 0) -> TodoItem:
        return TodoItem(
            id=item_id,
            title=self.title,
            description=self.description,
            due_date=self.due_date,
        )


class TodoResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    description: str
    due_date: datetime

    @classmethod
    def from_item(cls, item: TodoItem) -> "TodoResponse":
        return cls(
            id=item.id,
            title=item.title,
            description=item.description,
            due_date=item.due_date,
        )


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    users: int
    todos: int
