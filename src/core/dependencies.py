"""Dependency injection module for FastAPI.

This module provides dependency injection functions for FastAPI routes,
following Google Python Style Guide and FastAPI best practices.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from core.database import get_db
from utils import group_manager
from utils import join_code_manager
from utils import user_manager


def get_user_manager(db: Session = Depends(get_db)) -> user_manager.UserManager:
    """Get UserManager instance with request-scoped DB session.

    Args:
        db: Database session.

    Returns:
        UserManager instance.
    """
    return user_manager.UserManager(db)


def get_group_manager(db: Session = Depends(get_db)) -> group_manager.GroupManager:
    """Get GroupManager instance with request-scoped DB session."""
    return group_manager.GroupManager(db)


def get_join_code_manager(
    db: Session = Depends(get_db),
) -> join_code_manager.JoinCodeManager:
    """Get JoinCodeManager instance with request-scoped DB session."""
    return join_code_manager.JoinCodeManager(db)


# Type aliases for dependency injection
UserManagerDep = Annotated[
    user_manager.UserManager, Depends(get_user_manager)
]
GroupManagerDep = Annotated[
    group_manager.GroupManager, Depends(get_group_manager)
]
JoinCodeManagerDep = Annotated[
    join_code_manager.JoinCodeManager, Depends(get_join_code_manager)
]
