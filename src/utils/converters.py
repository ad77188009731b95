"""Conversions between ORM models and pydantic schemas."""

from models.user import UserModel
from schemas.user import User, UserInfo


def user_to_model(user: User) -> UserModel:
    return UserModel(
        user_id=user.user_id,
        email=user.email,
        password_hash=user.password_hash,
        role=user.role,
        fullname=user.fullname,
        status=user.status,
        created_at=user.created_at,
    )


def model_to_user(model: UserModel) -> User:
    return User(
        user_id=model.user_id,
        email=model.email,
        password_hash=model.password_hash,
        role=model.role,
        fullname=model.fullname,
        status=model.status,
        created_at=model.created_at,
    )


def user_to_info(user: User) -> UserInfo:
    """Strip credentials from a user for API responses."""
    return UserInfo(**user.model_dump(exclude={"password_hash"}))
