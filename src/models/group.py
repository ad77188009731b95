from sqlalchemy import Column, String, ForeignKey
from sqlalchemy.orm import relationship
from .base import Base


class GroupModel(Base):
    __tablename__ = "groups"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    subject = Column(String, nullable=True)
    description = Column(String, nullable=True)
    year_level = Column(String, nullable=True)
    semester = Column(String, nullable=True)
    teacher_id = Column(String, ForeignKey("users.user_id"), index=True, nullable=False)
    # Legacy per-group code, predates class_join_codes
    code = Column(String, unique=True, index=True, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)

    teacher = relationship("UserModel")
    members = relationship(
        "GroupMemberModel",
        back_populates="group",
        cascade="all, delete-orphan",
    )
    join_codes = relationship(
        "JoinCodeModel",
        back_populates="group",
        cascade="all, delete-orphan",
    )
