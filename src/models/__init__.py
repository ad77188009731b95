from .base import Base
from .user import UserModel
from .group import GroupModel
from .group_member import GroupMemberModel
from .join_code import JoinCodeModel

__all__ = [
    "Base",
    "UserModel",
    "GroupModel",
    "GroupMemberModel",
    "JoinCodeModel",
]
