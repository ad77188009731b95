"""User management utilities.

This module provides user management functionality including user storage,
password hashing, lookup and account status changes.
"""

import logging
from typing import List, Optional

import bcrypt
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from config import USER_ROLES
from core.exceptions import InvalidInput, UserAlreadyExists, UserNotFound
from schemas.user import User
from models.user import UserModel
from utils.converters import user_to_model, model_to_user

logger = logging.getLogger(__name__)

# Bcrypt rounds for password hashing (higher = more secure but slower)
BCRYPT_ROUNDS = 12

USER_STATUSES = ["active", "archived"]


class UserManager:
    """Manages user data persistence and operations using SQLAlchemy."""

    def __init__(self, db: Session):
        """Initialize UserManager.

        Args:
            db: SQLAlchemy Session.
        """
        self.db = db

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain text password.

        Returns:
            Hashed password (bcrypt hash string).
        """
        # Truncate password if it exceeds bcrypt's 72-byte limit
        password_bytes = password.encode("utf-8")
        if len(password_bytes) > 72:
            logger.warning(
                "Password exceeds 72 bytes (%d bytes), truncating", len(password_bytes)
            )
            password_bytes = password_bytes[:72]

        salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
        hashed = bcrypt.hashpw(password_bytes, salt)
        return hashed.decode("utf-8")

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against a bcrypt hash.

        Args:
            plain_password: Plain text password to verify.
            hashed_password: Bcrypt hash string to verify against.

        Returns:
            True if password matches, False otherwise.
        """
        password_bytes = plain_password.encode("utf-8")[:72]
        try:
            return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
        except ValueError as e:
            logger.error("Password verification error: %s", e)
            return False

    def create_user(
        self,
        email: str,
        password: str,
        role: str,
        fullname: Optional[str] = None,
    ) -> User:
        """Create a new user.

        Args:
            email: Login email for the new user.
            password: Plain text password.
            role: User role ('admin', 'teacher', or 'student').
            fullname: Optional display name.

        Returns:
            Created User object.

        Raises:
            InvalidInput: If the role is unknown or the email is blank.
            UserAlreadyExists: If the email is already registered.
        """
        email = email.strip().lower()
        if not email:
            raise InvalidInput("Email cannot be empty.")
        if role not in USER_ROLES:
            raise InvalidInput(
                f"Invalid role: {role}. Must be 'admin', 'teacher', or 'student'."
            )

        existing = self.db.query(UserModel).filter(UserModel.email == email).first()
        if existing:
            raise UserAlreadyExists(email)

        user = User(
            email=email,
            password_hash=self.hash_password(password),
            role=role,
            fullname=fullname,
        )

        # Two concurrent registrations can both pass the check above; the
        # unique constraint on email settles it
        try:
            model = user_to_model(user)
            self.db.add(model)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise UserAlreadyExists(email) from e

        logger.info("Created %s user: %s", role, email)
        return user

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email.

        Args:
            email: Email to look up (case-insensitive).

        Returns:
            User object if found, None otherwise.
        """
        model = (
            self.db.query(UserModel)
            .filter(UserModel.email == email.strip().lower())
            .first()
        )
        if model:
            return model_to_user(model)
        return None

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        model = self.db.query(UserModel).filter(UserModel.user_id == user_id).first()
        if model:
            return model_to_user(model)
        return None

    def list_users(self, role: Optional[str] = None) -> List[User]:
        """List users, newest first.

        Args:
            role: Optional role filter.

        Returns:
            List of User objects.
        """
        query = self.db.query(UserModel)
        if role:
            query = query.filter(UserModel.role == role)
        return [model_to_user(m) for m in query.order_by(UserModel.created_at.desc()).all()]

    def set_status(self, user_id: str, status: str) -> User:
        """Archive or restore a user account.

        Args:
            user_id: The user to update.
            status: 'active' or 'archived'.

        Returns:
            Updated User object.

        Raises:
            InvalidInput: If the status is unknown.
            UserNotFound: If the user does not exist.
        """
        if status not in USER_STATUSES:
            raise InvalidInput(f"Invalid status: {status}. Must be 'active' or 'archived'.")

        model = self.db.query(UserModel).filter(UserModel.user_id == user_id).first()
        if not model:
            raise UserNotFound(user_id)
        model.status = status
        self.db.commit()
        self.db.refresh(model)
        logger.info("Set status of user %s to %s", user_id, status)
        return model_to_user(model)
