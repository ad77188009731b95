"""Student-facing class routes."""

from typing import List

from fastapi import APIRouter, Depends

from api.routes.auth import get_current_user
from core.dependencies import GroupManagerDep
from schemas.group import StudentClassInfo
from schemas.user import User

router = APIRouter(prefix="/api/student", tags=["Student"])


@router.get("/classes", response_model=List[StudentClassInfo], summary="列出已加入的班级")
def list_my_classes(
    group_manager: GroupManagerDep,
    current_user: User = Depends(get_current_user),
) -> List[StudentClassInfo]:
    """List the classes the current user is enrolled in, most recent first."""
    return [
        StudentClassInfo(**row)
        for row in group_manager.list_groups_for_student(current_user.user_id)
    ]
