"""Group (class) management routes for teachers."""

from typing import List

from fastapi import APIRouter, Depends

from api.errors import to_http_exception
from api.routes.auth import require_roles
from core.dependencies import GroupManagerDep, JoinCodeManagerDep
from core.exceptions import ClassroomError
from models.group import GroupModel
from models.join_code import JoinCodeModel
from schemas.group import (
    CreateGroupRequest,
    GroupInfo,
    GroupMemberInfo,
    UpdateGroupRequest,
)
from schemas.join_code import JoinCodeInfo, JoinCodeListResponse, UpdateJoinCodeRequest
from schemas.user import User

router = APIRouter(prefix="/api/teacher/groups", tags=["Group"])

teacher_only = require_roles("admin", "teacher")


def _build_group_info(model: GroupModel, student_count: int = 0) -> GroupInfo:
    return GroupInfo(
        id=model.id,
        name=model.name,
        subject=model.subject,
        description=model.description,
        year_level=model.year_level,
        semester=model.semester,
        code=model.code,
        teacher_id=model.teacher_id,
        created_at=model.created_at,
        updated_at=model.updated_at,
        student_count=student_count,
    )


def _build_join_code_info(model: JoinCodeModel) -> JoinCodeInfo:
    return JoinCodeInfo(
        id=model.id,
        code=model.code,
        group_id=model.group_id,
        max_uses=model.max_uses,
        current_uses=model.current_uses,
        is_active=model.is_active,
        expires_at=model.expires_at,
        created_by=model.created_by,
        created_at=model.created_at,
    )


@router.post("", response_model=GroupInfo, summary="创建班级")
def create_group(
    req: CreateGroupRequest,
    group_manager: GroupManagerDep,
    current_user: User = Depends(teacher_only),
) -> GroupInfo:
    try:
        model = group_manager.create_group(
            teacher_id=current_user.user_id,
            name=req.name,
            subject=req.subject,
            description=req.description,
            year_level=req.year_level,
            semester=req.semester,
            code=req.code,
        )
    except ClassroomError as exc:
        raise to_http_exception(exc)
    return _build_group_info(model)


@router.get("", response_model=List[GroupInfo], summary="列出班级")
def list_groups(
    group_manager: GroupManagerDep,
    current_user: User = Depends(teacher_only),
) -> List[GroupInfo]:
    return [
        _build_group_info(model, count)
        for model, count in group_manager.list_groups_for_teacher(current_user.user_id)
    ]


@router.get("/{group_id}", response_model=GroupInfo, summary="获取班级")
def get_group(
    group_id: str,
    group_manager: GroupManagerDep,
    current_user: User = Depends(teacher_only),
) -> GroupInfo:
    try:
        model = group_manager.get_owned_group(group_id, current_user)
    except ClassroomError as exc:
        raise to_http_exception(exc)
    count = group_manager.count_students([model.id]).get(model.id, 0)
    return _build_group_info(model, count)


@router.patch("/{group_id}", response_model=GroupInfo, summary="更新班级")
def update_group(
    group_id: str,
    req: UpdateGroupRequest,
    group_manager: GroupManagerDep,
    current_user: User = Depends(teacher_only),
) -> GroupInfo:
    try:
        model = group_manager.update_group(
            group_id, current_user, **req.model_dump(exclude_none=True)
        )
    except ClassroomError as exc:
        raise to_http_exception(exc)
    count = group_manager.count_students([model.id]).get(model.id, 0)
    return _build_group_info(model, count)


@router.delete("/{group_id}", summary="删除班级")
def delete_group(
    group_id: str,
    group_manager: GroupManagerDep,
    current_user: User = Depends(teacher_only),
) -> dict:
    """Delete a class with its memberships and join codes.

    Permission requirements:
    - Admin: Can delete any class
    - Teacher: Can only delete classes they own
    """
    try:
        group_manager.delete_group(group_id, current_user)
    except ClassroomError as exc:
        raise to_http_exception(exc)
    return {"success": True, "message": "Class deleted successfully"}


@router.get(
    "/{group_id}/students",
    response_model=List[GroupMemberInfo],
    summary="列出班级学生",
)
def list_group_students(
    group_id: str,
    group_manager: GroupManagerDep,
    current_user: User = Depends(teacher_only),
) -> List[GroupMemberInfo]:
    try:
        group_manager.get_owned_group(group_id, current_user)
    except ClassroomError as exc:
        raise to_http_exception(exc)
    return [GroupMemberInfo(**member) for member in group_manager.list_members(group_id)]


@router.delete("/{group_id}/students/{student_id}", summary="移除班级学生")
def remove_group_student(
    group_id: str,
    student_id: str,
    group_manager: GroupManagerDep,
    current_user: User = Depends(teacher_only),
) -> dict:
    try:
        group_manager.remove_member(group_id, student_id, current_user)
    except ClassroomError as exc:
        raise to_http_exception(exc)
    return {"success": True, "message": "Student removed successfully"}


@router.get(
    "/{group_id}/join-codes",
    response_model=JoinCodeListResponse,
    summary="列出班级加入码",
)
def list_join_codes(
    group_id: str,
    join_code_manager: JoinCodeManagerDep,
    current_user: User = Depends(teacher_only),
) -> JoinCodeListResponse:
    try:
        models = join_code_manager.list_join_codes(group_id, current_user)
    except ClassroomError as exc:
        raise to_http_exception(exc)
    return JoinCodeListResponse(join_codes=[_build_join_code_info(m) for m in models])


@router.patch(
    "/{group_id}/join-codes/{code}",
    response_model=JoinCodeInfo,
    summary="启用或停用班级加入码",
)
def update_join_code(
    group_id: str,
    code: str,
    req: UpdateJoinCodeRequest,
    join_code_manager: JoinCodeManagerDep,
    current_user: User = Depends(teacher_only),
) -> JoinCodeInfo:
    """Activate or deactivate a join code of a class.

    Deactivated codes fail validation and redemption until reactivated.
    """
    try:
        model = join_code_manager.set_join_code_active(
            group_id, code, current_user, req.is_active
        )
    except ClassroomError as exc:
        raise to_http_exception(exc)
    return _build_join_code_info(model)
