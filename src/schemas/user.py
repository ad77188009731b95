"""User schema definitions.

This module defines the User data model and the request/response models of
the authentication and account administration endpoints.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytz
from pydantic import BaseModel, Field


class User(BaseModel):
    user_id: str = Field(
        description="The unique identifier for the user.",
        default_factory=lambda: str(uuid.uuid4()),
        frozen=True,
    )
    email: str = Field(description="Login email, unique across users.")
    password_hash: str = Field(description="Bcrypt hash of the password.")
    role: str = Field(description="One of 'admin', 'teacher' or 'student'.")
    fullname: Optional[str] = Field(default=None, description="Display name.")
    status: str = Field(default="active", description="'active' or 'archived'.")
    created_at: str = Field(
        description="The time when the user was created.",
        default_factory=lambda: datetime.now(pytz.utc).isoformat(),
    )


class UserInfo(BaseModel):
    """Public view of a user, without credentials."""
    user_id: str
    email: str
    role: str
    fullname: Optional[str] = None
    status: str
    created_at: str


class RegisterRequest(BaseModel):
    email: str
    password: str = Field(min_length=6)
    fullname: Optional[str] = None
    role: str = "student"
    admin_token: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    user: Dict[str, Any]
    token: str


class CurrentUserResponse(BaseModel):
    user: Dict[str, Any]


class CreateUserRequest(BaseModel):
    email: str
    password: str = Field(min_length=6)
    fullname: Optional[str] = None
    role: str = "teacher"


class UpdateUserStatusRequest(BaseModel):
    status: str


class UserListResponse(BaseModel):
    users: List[UserInfo]
