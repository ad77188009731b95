"""Authentication routes.

This module handles HTTP endpoints for user authentication and registration,
and provides the ``get_current_user`` dependency used by every protected
route.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

import pytz
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    ADMIN_TOKEN,
    JWT_ALGORITHM,
    JWT_SECRET_KEY,
)
from api.errors import to_http_exception
from core.dependencies import UserManagerDep
from core.exceptions import ClassroomError, Forbidden, Unauthenticated
from schemas.user import (
    CurrentUserResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    User,
)
from utils.converters import user_to_info

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

# HTTP Bearer token security; a missing header is reported as 401 below
security = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token.

    Args:
        data: Data to encode in the token.
        expires_delta: Optional expiration time delta.

    Returns:
        Encoded JWT token string.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(pytz.utc) + expires_delta
    else:
        expire = datetime.now(pytz.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """Verify JWT token from Authorization header.

    Args:
        credentials: HTTP Bearer token credentials, None if absent.

    Returns:
        Decoded token payload.

    Raises:
        HTTPException: If token is missing, invalid or expired.
    """
    if credentials is None:
        raise to_http_exception(Unauthenticated())
    try:
        payload = jwt.decode(
            credentials.credentials, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM]
        )
    except JWTError:
        raise to_http_exception(Unauthenticated("Invalid authentication credentials"))
    if payload.get("sub") is None:
        raise to_http_exception(Unauthenticated("Invalid authentication credentials"))
    return payload


def get_current_user(
    user_manager: UserManagerDep,
    token_payload: dict = Depends(verify_token),
) -> User:
    """Get current authenticated user.

    Args:
        user_manager: Injected UserManager instance.
        token_payload: Decoded JWT token payload.

    Returns:
        Current User object.

    Raises:
        HTTPException: If user is not found (401) or archived (403).
    """
    user = user_manager.get_user_by_id(token_payload["sub"])
    if user is None:
        raise to_http_exception(Unauthenticated("User not found"))
    if user.status == "archived":
        raise to_http_exception(Forbidden("This account has been archived"))
    return user


def require_roles(*roles: str) -> Callable[..., User]:
    """Build a dependency that only lets users with one of ``roles`` through."""

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise to_http_exception(Forbidden())
        return current_user

    return dependency


@router.post("/register", summary="用户注册")
def register(req: RegisterRequest, user_manager: UserManagerDep) -> dict:
    """Register a new user.

    Registration requirements:
    - Student: open self-registration
    - Admin: Requires ADMIN_TOKEN from environment variable
    - Teacher: created by an admin, not through this endpoint

    Args:
        req: Registration request with email, password, role, etc.
        user_manager: Injected UserManager instance.

    Returns:
        Dictionary with success message and user_id.

    Raises:
        HTTPException: If registration fails.
    """
    if req.role == "teacher":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Teacher accounts are created by an administrator.",
        )
    if req.role == "admin":
        if not ADMIN_TOKEN:
            logger.error("ADMIN_TOKEN is not set in environment variables")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Admin registration is not configured. ADMIN_TOKEN not set.",
            )
        if req.admin_token != ADMIN_TOKEN:
            logger.warning("Rejected admin registration for %s: token mismatch", req.email)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid admin token",
            )

    try:
        user = user_manager.create_user(
            email=req.email,
            password=req.password,
            role=req.role,
            fullname=req.fullname,
        )
    except ClassroomError as e:
        raise to_http_exception(e)

    return {
        "success": True,
        "message": "User registered successfully",
        "user_id": user.user_id,
    }


@router.post("/login", response_model=LoginResponse, summary="用户登录")
def login(req: LoginRequest, user_manager: UserManagerDep) -> LoginResponse:
    """Login with email and password.

    Args:
        req: Login request with email and password.
        user_manager: Injected UserManager instance.

    Returns:
        LoginResponse with user information and JWT token.

    Raises:
        HTTPException: If login fails or the account is archived.
    """
    user = user_manager.get_user_by_email(req.email)
    if user is None or not user_manager.verify_password(req.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if user.status == "archived":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This account has been archived",
        )

    access_token = create_access_token(
        data={"sub": user.user_id, "role": user.role},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return LoginResponse(user=user_to_info(user).model_dump(), token=access_token)


@router.post("/logout", summary="用户登出")
def logout() -> dict:
    """Logout endpoint.

    Note: Since we're using stateless JWT tokens, logout is handled
    client-side by removing the token. This endpoint exists for API
    consistency.

    Returns:
        Dictionary with success message.
    """
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me", response_model=CurrentUserResponse, summary="获取当前用户信息")
def get_current_user_info(
    current_user: User = Depends(get_current_user),
) -> CurrentUserResponse:
    return CurrentUserResponse(user=user_to_info(current_user).model_dump())
