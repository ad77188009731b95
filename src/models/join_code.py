"""Class join code database model.

This module defines the JoinCode database model using SQLAlchemy.
"""

from sqlalchemy import Boolean, Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from .base import Base


class JoinCodeModel(Base):
    """Join code database model."""

    __tablename__ = "class_join_codes"

    id = Column(String, primary_key=True, index=True)
    code = Column(String, unique=True, index=True, nullable=False)
    group_id = Column(String, ForeignKey("groups.id", ondelete="CASCADE"), index=True, nullable=False)
    max_uses = Column(Integer, nullable=False, default=-1)  # -1 means unlimited
    current_uses = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(String, nullable=True)  # ISO format string, None = never
    created_by = Column(String, nullable=False)  # teacher user_id
    created_at = Column(String, nullable=False)  # ISO format string

    group = relationship("GroupModel", back_populates="join_codes")
