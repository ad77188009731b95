"""Join code routes.

Teachers generate join codes for their classes; students preview a code and
then use it to join the class.
"""

import logging

from fastapi import APIRouter, Depends, status

from api.errors import to_http_exception
from api.routes.auth import get_current_user
from core.dependencies import JoinCodeManagerDep
from core.exceptions import ClassroomError, CodeNotFound, InvalidInput
from schemas.join_code import (
    ClassPreviewResponse,
    GenerateJoinCodeRequest,
    GenerateJoinCodeResponse,
    JoinClassResponse,
    JoinCodeRequest,
)
from schemas.user import User
from utils.join_code import normalize_code

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Join Code"])


@router.post(
    "/teacher/generate-join-code",
    response_model=GenerateJoinCodeResponse,
    summary="生成班级加入码",
)
def generate_join_code(
    req: GenerateJoinCodeRequest,
    join_code_manager: JoinCodeManagerDep,
    current_user: User = Depends(get_current_user),
) -> GenerateJoinCodeResponse:
    """Generate a unique join code for a class the caller owns.

    Args:
        req: Request with groupId, maxUses (-1 for unlimited) and
            expirationDays (null for no expiration).
        join_code_manager: Injected JoinCodeManager instance.
        current_user: Current authenticated user.

    Returns:
        GenerateJoinCodeResponse with the new code.

    Raises:
        HTTPException: 403 if the caller does not own the class, 404 if the
            class does not exist, 500 if no unique code could be generated.
    """
    try:
        model = join_code_manager.generate_join_code(
            group_id=req.group_id,
            teacher=current_user,
            max_uses=req.max_uses,
            expiration_days=req.expiration_days,
        )
    except ClassroomError as exc:
        raise to_http_exception(exc)
    return GenerateJoinCodeResponse(code=model.code)


@router.post(
    "/student/validate-join-code",
    response_model=ClassPreviewResponse,
    summary="校验加入码并预览班级",
)
def validate_join_code(
    req: JoinCodeRequest,
    join_code_manager: JoinCodeManagerDep,
    current_user: User = Depends(get_current_user),
) -> ClassPreviewResponse:
    """Validate a join code and return a preview of the class.

    Nothing is changed by this call except the one-time backfill of a legacy
    group code.
    """
    code = normalize_code(req.code)
    if not code:
        raise to_http_exception(InvalidInput("Invalid code format"))
    try:
        class_info = join_code_manager.validate_join_code(code, current_user.user_id)
    except ClassroomError as exc:
        raise to_http_exception(exc)
    return ClassPreviewResponse(class_info=class_info)


@router.post(
    "/student/join-class",
    response_model=JoinClassResponse,
    summary="通过加入码加入班级",
)
def join_class(
    req: JoinCodeRequest,
    join_code_manager: JoinCodeManagerDep,
    current_user: User = Depends(get_current_user),
) -> JoinClassResponse:
    """Join a class using a join code.

    All validity checks are repeated here; the preview may be stale.

    Raises:
        HTTPException: 400 for an unknown or unusable code or an existing
            membership.
    """
    code = normalize_code(req.code)
    if not code:
        raise to_http_exception(InvalidInput("Invalid code format"))
    try:
        group_id = join_code_manager.redeem_join_code(code, current_user.user_id)
    except CodeNotFound as exc:
        raise to_http_exception(exc, status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid code")
    except ClassroomError as exc:
        raise to_http_exception(exc)
    return JoinClassResponse(group_id=group_id)
