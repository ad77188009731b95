"""Account administration routes.

Only admins can reach these endpoints. Teachers are onboarded here rather
than through self-registration.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from api.errors import to_http_exception
from api.routes.auth import require_roles
from core.dependencies import UserManagerDep
from core.exceptions import ClassroomError, InvalidInput
from schemas.user import (
    CreateUserRequest,
    UpdateUserStatusRequest,
    User,
    UserInfo,
    UserListResponse,
)
from utils.converters import user_to_info

router = APIRouter(prefix="/api/admin", tags=["Admin"])

admin_only = require_roles("admin")


@router.get("/users", response_model=UserListResponse, summary="列出用户")
def list_users(
    user_manager: UserManagerDep,
    role: Optional[str] = None,
    current_user: User = Depends(admin_only),
) -> UserListResponse:
    users = user_manager.list_users(role=role)
    return UserListResponse(users=[user_to_info(u) for u in users])


@router.post("/users", response_model=UserInfo, summary="创建教师或学生账号")
def create_user(
    req: CreateUserRequest,
    user_manager: UserManagerDep,
    current_user: User = Depends(admin_only),
) -> UserInfo:
    """Create a teacher or student account.

    Raises:
        HTTPException: 400 for an invalid role, 409 if the email is taken.
    """
    try:
        if req.role not in ["teacher", "student"]:
            raise InvalidInput(f"Invalid role: {req.role}. Must be 'teacher' or 'student'.")
        user = user_manager.create_user(
            email=req.email,
            password=req.password,
            role=req.role,
            fullname=req.fullname,
        )
    except ClassroomError as exc:
        raise to_http_exception(exc)
    return user_to_info(user)


@router.patch("/users/{user_id}/status", response_model=UserInfo, summary="归档或恢复账号")
def update_user_status(
    user_id: str,
    req: UpdateUserStatusRequest,
    user_manager: UserManagerDep,
    current_user: User = Depends(admin_only),
) -> UserInfo:
    try:
        if user_id == current_user.user_id and req.status == "archived":
            raise InvalidInput("You cannot archive your own account.")
        user = user_manager.set_status(user_id, req.status)
    except ClassroomError as exc:
        raise to_http_exception(exc)
    return user_to_info(user)
