"""Group (class) management utilities."""

import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Tuple

import pytz
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import GROUP_CODE_LENGTH
from core.exceptions import (
    DuplicateGroupCode,
    Forbidden,
    GroupNotFound,
    InvalidInput,
    NotFound,
)
from models.group import GroupModel
from models.group_member import GroupMemberModel
from models.join_code import JoinCodeModel
from models.user import UserModel
from schemas.user import User
from utils.join_code import generate_unique_code, normalize_code

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "subject", "description", "year_level", "semester")


class GroupManager:
    """Manages groups, their legacy codes and their rosters."""

    def __init__(self, db: Session):
        self.db = db

    def code_in_use(self, code: str) -> bool:
        """Whether a code is taken as a join code or as a legacy group code.

        Both kinds are resolved through the same lookup, so a code may only
        exist once across the two tables.
        """
        if self.db.query(JoinCodeModel.id).filter(JoinCodeModel.code == code).first():
            return True
        return (
            self.db.query(GroupModel.id).filter(GroupModel.code == code).first()
            is not None
        )

    def create_group(
        self,
        teacher_id: str,
        name: str,
        subject: Optional[str] = None,
        description: Optional[str] = None,
        year_level: Optional[str] = None,
        semester: Optional[str] = None,
        code: Optional[str] = None,
    ) -> GroupModel:
        """Create a new group owned by a teacher.

        Args:
            teacher_id: Owner of the group.
            name: Group name, must not be blank.
            subject: Optional subject.
            description: Optional description.
            year_level: Optional year level.
            semester: Optional semester.
            code: Optional legacy group code. A unique one is generated when
                omitted.

        Returns:
            Created GroupModel instance.

        Raises:
            InvalidInput: If the name is blank.
            DuplicateGroupCode: If the supplied code is already a group code
                or a join code.
            GenerationExhausted: If no unique code could be generated.
        """
        name = (name or "").strip()
        if not name:
            raise InvalidInput("Class name cannot be empty.")

        if code:
            code = normalize_code(code)
            if not code.isalnum():
                raise InvalidInput("Group code must be alphanumeric.")
            if self.code_in_use(code):
                raise DuplicateGroupCode()
        else:
            code = generate_unique_code(self.code_in_use, length=GROUP_CODE_LENGTH)

        now = datetime.now(pytz.utc).isoformat()
        group = GroupModel(
            id=str(uuid.uuid4()),
            name=name,
            subject=subject,
            description=description,
            year_level=year_level,
            semester=semester,
            teacher_id=teacher_id,
            code=code,
            created_at=now,
            updated_at=now,
        )
        self.db.add(group)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateGroupCode() from e
        self.db.refresh(group)
        logger.info("Created group %s (%s) for teacher %s", group.id, name, teacher_id)
        return group

    def get_group(self, group_id: str) -> GroupModel:
        group = self.db.query(GroupModel).filter(GroupModel.id == group_id).first()
        if not group:
            raise GroupNotFound(group_id)
        return group

    def get_owned_group(
        self, group_id: str, user: User, allow_admin: bool = True
    ) -> GroupModel:
        """Get a group the user is allowed to manage.

        Args:
            group_id: Group ID.
            user: Acting user.
            allow_admin: Whether admins may act on groups they do not own.

        Returns:
            The GroupModel.

        Raises:
            GroupNotFound: If the group does not exist.
            Forbidden: If the user does not own the group.
        """
        group = self.get_group(group_id)
        if group.teacher_id == user.user_id:
            return group
        if allow_admin and user.role == "admin":
            return group
        raise Forbidden("You do not have permission to manage this class")

    def count_students(self, group_ids: List[str]) -> Dict[str, int]:
        if not group_ids:
            return {}
        rows = (
            self.db.query(GroupMemberModel.group_id, func.count(GroupMemberModel.id))
            .filter(
                GroupMemberModel.group_id.in_(group_ids),
                GroupMemberModel.status == "active",
            )
            .group_by(GroupMemberModel.group_id)
            .all()
        )
        return {group_id: count for group_id, count in rows}

    def list_groups_for_teacher(self, teacher_id: str) -> List[Tuple[GroupModel, int]]:
        """List a teacher's groups, newest first, with active student counts."""
        groups = (
            self.db.query(GroupModel)
            .filter(GroupModel.teacher_id == teacher_id)
            .order_by(GroupModel.created_at.desc())
            .all()
        )
        counts = self.count_students([g.id for g in groups])
        return [(group, counts.get(group.id, 0)) for group in groups]

    def update_group(self, group_id: str, user: User, **fields) -> GroupModel:
        """Update descriptive fields of a group.

        Fields passed as None are left unchanged. The legacy code cannot be
        edited here.
        """
        group = self.get_owned_group(group_id, user)
        for field in UPDATABLE_FIELDS:
            value = fields.get(field)
            if value is None:
                continue
            if field == "name":
                value = value.strip()
                if not value:
                    raise InvalidInput("Class name cannot be empty.")
            setattr(group, field, value)
        group.updated_at = datetime.now(pytz.utc).isoformat()
        self.db.commit()
        self.db.refresh(group)
        return group

    def delete_group(self, group_id: str, user: User) -> None:
        """Delete a group together with its memberships and join codes."""
        group = self.get_owned_group(group_id, user)
        self.db.delete(group)
        self.db.commit()
        logger.info("Deleted group: %s", group_id)

    def list_members(self, group_id: str) -> List[dict]:
        """List active members of a group, most recent first."""
        query = (
            self.db.query(GroupMemberModel, UserModel)
            .outerjoin(UserModel, UserModel.user_id == GroupMemberModel.student_id)
            .filter(
                GroupMemberModel.group_id == group_id,
                GroupMemberModel.status == "active",
            )
            .order_by(GroupMemberModel.joined_at.desc())
        )
        results = []
        for membership, student in query.all():
            results.append(
                {
                    "id": membership.id,
                    "student_id": membership.student_id,
                    "fullname": (student.fullname if student else None) or "Unknown",
                    "email": (student.email if student else None) or "N/A",
                    "status": membership.status,
                    "joined_at": membership.joined_at,
                }
            )
        return results

    def is_member(self, group_id: str, student_id: str) -> bool:
        return (
            self.db.query(GroupMemberModel.id)
            .filter(
                GroupMemberModel.group_id == group_id,
                GroupMemberModel.student_id == student_id,
                GroupMemberModel.status == "active",
            )
            .first()
            is not None
        )

    def remove_member(self, group_id: str, student_id: str, user: User) -> None:
        """Remove a student from a group's roster.

        Raises:
            GroupNotFound: If the group does not exist.
            Forbidden: If the user does not own the group.
            NotFound: If the student is not a member.
        """
        self.get_owned_group(group_id, user)
        membership = (
            self.db.query(GroupMemberModel)
            .filter(
                GroupMemberModel.group_id == group_id,
                GroupMemberModel.student_id == student_id,
            )
            .first()
        )
        if not membership:
            raise NotFound("Student is not a member of this class")
        self.db.delete(membership)
        self.db.commit()
        logger.info("Removed student %s from group %s", student_id, group_id)

    def list_groups_for_student(self, student_id: str) -> List[dict]:
        query = (
            self.db.query(GroupMemberModel, GroupModel, UserModel)
            .join(GroupModel, GroupModel.id == GroupMemberModel.group_id)
            .outerjoin(UserModel, UserModel.user_id == GroupModel.teacher_id)
            .filter(
                GroupMemberModel.student_id == student_id,
                GroupMemberModel.status == "active",
            )
            .order_by(GroupMemberModel.joined_at.desc())
        )
        return [
            {
                "group_id": group.id,
                "name": group.name,
                "subject": group.subject,
                "teacher_name": (teacher.fullname if teacher else None) or "Unknown Teacher",
                "joined_at": membership.joined_at,
            }
            for membership, group, teacher in query.all()
        ]
