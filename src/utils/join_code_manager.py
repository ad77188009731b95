"""Join code management utilities.

This module implements the join code lifecycle: teachers generate codes for
their classes, students preview a code and then redeem it to enroll.
Preview and redemption are independent requests, so redemption re-checks
every predicate against the current state instead of trusting the preview.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import List, Optional

import pytz
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from config import UNLIMITED_USES
from core.exceptions import (
    AlreadyMember,
    CodeNotFound,
    InvalidInput,
    UsageLimitReached,
)
from models.group import GroupModel
from models.group_member import GroupMemberModel
from models.join_code import JoinCodeModel
from schemas.join_code import ClassInfo
from schemas.user import User
from utils.group_manager import GroupManager
from utils.join_code import ensure_join_code_valid, generate_unique_code, normalize_code

logger = logging.getLogger(__name__)


class JoinCodeManager:
    """Manages generation, preview and redemption of class join codes."""

    def __init__(self, db: Session):
        """Initialize JoinCodeManager.

        Args:
            db: SQLAlchemy Session.
        """
        self.db = db
        self.groups = GroupManager(db)

    def _code_exists(self, code: str) -> bool:
        # Legacy group codes not yet backfilled count as taken
        return self.groups.code_in_use(code)

    def generate_join_code(
        self,
        group_id: str,
        teacher: User,
        max_uses: int = UNLIMITED_USES,
        expiration_days: Optional[int] = None,
    ) -> JoinCodeModel:
        """Generate a new join code for a group.

        Args:
            group_id: The group the code grants entry to.
            teacher: The acting user, who must own the group.
            max_uses: Usage cap, -1 for unlimited.
            expiration_days: Days until expiry, None for no expiry.

        Returns:
            Created JoinCodeModel instance.

        Raises:
            InvalidInput: If max_uses or expiration_days is out of range.
            GroupNotFound: If the group does not exist.
            Forbidden: If the caller does not own the group.
            GenerationExhausted: If no unique code could be drawn.
        """
        if max_uses != UNLIMITED_USES and max_uses < 1:
            raise InvalidInput("Invalid max uses. Must be -1 or a positive number")
        if expiration_days is not None and expiration_days < 1:
            raise InvalidInput("expirationDays must be a positive number or null")

        self.groups.get_owned_group(group_id, teacher, allow_admin=False)

        code = generate_unique_code(self._code_exists)

        now = datetime.now(pytz.utc)
        expires_at = None
        if expiration_days:
            expires_at = (now + timedelta(days=expiration_days)).isoformat()

        model = JoinCodeModel(
            id=str(uuid.uuid4()),
            code=code,
            group_id=group_id,
            max_uses=max_uses,
            current_uses=0,
            is_active=True,
            expires_at=expires_at,
            created_by=teacher.user_id,
            created_at=now.isoformat(),
        )
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        logger.info(
            "Generated join code %s for group %s (max_uses=%s, expires_at=%s)",
            code,
            group_id,
            max_uses,
            expires_at,
        )
        return model

    def get_join_code(self, code: str) -> Optional[JoinCodeModel]:
        return (
            self.db.query(JoinCodeModel)
            .filter(JoinCodeModel.code == normalize_code(code))
            .first()
        )

    def get_or_create_join_code(self, code: str) -> JoinCodeModel:
        """Resolve a code to a join code row, backfilling legacy group codes.

        Groups created before join codes existed carry a single code on the
        group record. The first time such a code is used, an unlimited,
        non-expiring, active join code row is created for it so that later
        lookups find it directly. Repeated calls return the same row.

        Args:
            code: Code as typed by the student.

        Returns:
            The JoinCodeModel for the code.

        Raises:
            CodeNotFound: If neither a join code nor a legacy group code
                matches.
        """
        normalized = normalize_code(code)
        if not normalized:
            raise CodeNotFound()

        join_code = self.get_join_code(normalized)
        if join_code:
            return join_code

        group = self.db.query(GroupModel).filter(GroupModel.code == normalized).first()
        if not group:
            raise CodeNotFound()

        join_code = JoinCodeModel(
            id=str(uuid.uuid4()),
            code=normalized,
            group_id=group.id,
            max_uses=UNLIMITED_USES,
            current_uses=0,
            is_active=True,
            expires_at=None,
            created_by=group.teacher_id,
            created_at=datetime.now(pytz.utc).isoformat(),
        )
        self.db.add(join_code)
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent request backfilled the same code first
            self.db.rollback()
            join_code = self.get_join_code(normalized)
            if join_code is None:
                raise
            return join_code

        self.db.refresh(join_code)
        logger.info("Backfilled legacy group code %s for group %s", normalized, group.id)
        return join_code

    def validate_join_code(
        self, code: str, student_id: str, now: Optional[datetime] = None
    ) -> ClassInfo:
        """Check a code for a student and return a preview of the class.

        Args:
            code: Code as typed by the student.
            student_id: The student who wants to join.
            now: Current time, defaults to the wall clock.

        Returns:
            ClassInfo preview of the target class.

        Raises:
            CodeNotFound: If the code does not exist.
            CodeDeactivated, UsageLimitReached, CodeExpired: If the code
                cannot be used.
            AlreadyMember: If the student is already enrolled.
        """
        join_code = self.get_or_create_join_code(code)
        ensure_join_code_valid(join_code, now or datetime.now(pytz.utc))

        if self.groups.is_member(join_code.group_id, student_id):
            raise AlreadyMember()

        group = join_code.group
        teacher = group.teacher if group else None
        return ClassInfo(
            group_id=join_code.group_id,
            class_name=(group.name if group else None) or "Unknown Class",
            subject=(group.subject if group else None) or "N/A",
            teacher_name=(teacher.fullname if teacher else None) or "Unknown Teacher",
        )

    def _claim_use(self, join_code_id: str) -> bool:
        """Atomically consume one use of a join code.

        The increment only applies while the code is under its cap, so two
        concurrent redemptions can never push current_uses past max_uses.

        Returns:
            True if a use was consumed, False if the cap was already reached.
        """
        updated = (
            self.db.query(JoinCodeModel)
            .filter(
                JoinCodeModel.id == join_code_id,
                or_(
                    JoinCodeModel.max_uses == UNLIMITED_USES,
                    JoinCodeModel.current_uses < JoinCodeModel.max_uses,
                ),
            )
            .update(
                {JoinCodeModel.current_uses: JoinCodeModel.current_uses + 1},
                synchronize_session=False,
            )
        )
        return updated == 1

    def redeem_join_code(
        self, code: str, student_id: str, now: Optional[datetime] = None
    ) -> str:
        """Enroll a student in the class a code belongs to.

        Args:
            code: Code as typed by the student.
            student_id: The student joining.
            now: Current time, defaults to the wall clock.

        Returns:
            The joined group ID.

        Raises:
            CodeNotFound: If the code does not exist.
            CodeDeactivated, UsageLimitReached, CodeExpired: If the code
                cannot be used.
            AlreadyMember: If the student is already enrolled.
        """
        join_code = self.get_or_create_join_code(code)
        ensure_join_code_valid(join_code, now or datetime.now(pytz.utc))
        join_code_id = join_code.id
        group_id = join_code.group_id

        membership = GroupMemberModel(
            group_id=group_id,
            student_id=student_id,
            status="active",
            joined_at=datetime.now(pytz.utc).isoformat(),
        )
        self.db.add(membership)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise AlreadyMember() from e

        try:
            with self.db.begin_nested():
                if not self._claim_use(join_code_id):
                    raise UsageLimitReached()
        except UsageLimitReached:
            # Another redemption took the last seat after our check
            self.db.rollback()
            raise
        except SQLAlchemyError:
            # The student is enrolled either way; the usage count is non-critical
            logger.exception("Error updating join code usage for %s", join_code_id)

        self.db.commit()
        logger.info("Student %s joined group %s with code %s", student_id, group_id, join_code_id)
        return group_id

    def list_join_codes(self, group_id: str, teacher: User) -> List[JoinCodeModel]:
        """List the join codes of a group the teacher owns, newest first."""
        self.groups.get_owned_group(group_id, teacher)
        return (
            self.db.query(JoinCodeModel)
            .filter(JoinCodeModel.group_id == group_id)
            .order_by(JoinCodeModel.created_at.desc())
            .all()
        )

    def set_join_code_active(
        self, group_id: str, code: str, teacher: User, is_active: bool
    ) -> JoinCodeModel:
        """Deactivate or reactivate a join code of a group.

        Raises:
            GroupNotFound: If the group does not exist.
            Forbidden: If the teacher does not own the group.
            CodeNotFound: If the code does not belong to the group.
        """
        self.groups.get_owned_group(group_id, teacher)
        model = self.get_join_code(code)
        if not model or model.group_id != group_id:
            raise CodeNotFound("Join code not found for this class.")
        model.is_active = is_active
        self.db.commit()
        self.db.refresh(model)
        logger.info(
            "%s join code %s for group %s",
            "Activated" if is_active else "Deactivated",
            model.code,
            group_id,
        )
        return model
