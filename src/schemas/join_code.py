"""Join code schema definitions.

Join code payloads use camelCase on the wire (``groupId``, ``maxUses``...),
while Python code keeps snake_case field names.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from config import UNLIMITED_USES


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenerateJoinCodeRequest(CamelModel):
    group_id: str = Field(description="The group the code grants entry to.")
    max_uses: int = Field(description="Usage cap, -1 for unlimited.")
    expiration_days: Optional[int] = Field(
        default=None,
        description="Days until the code expires, null for no expiration.",
    )

    @field_validator("group_id")
    @classmethod
    def group_id_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Invalid group ID")
        return value

    @field_validator("max_uses")
    @classmethod
    def max_uses_in_range(cls, value: int) -> int:
        if value != UNLIMITED_USES and value < 1:
            raise ValueError("Invalid max uses. Must be -1 or a positive number")
        return value

    @field_validator("expiration_days")
    @classmethod
    def expiration_days_positive(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 1:
            raise ValueError("expirationDays must be a positive number or null")
        return value


class GenerateJoinCodeResponse(CamelModel):
    code: str
    message: str = "Join code generated successfully"


class JoinCodeRequest(CamelModel):
    code: str


class ClassInfo(CamelModel):
    group_id: str
    class_name: str
    subject: str
    teacher_name: str


class ClassPreviewResponse(CamelModel):
    class_info: ClassInfo


class JoinClassResponse(CamelModel):
    success: bool = True
    message: str = "Successfully joined the class"
    group_id: str


class JoinCodeInfo(CamelModel):
    id: str
    code: str
    group_id: str
    max_uses: int
    current_uses: int
    is_active: bool
    expires_at: Optional[str] = None
    created_by: str
    created_at: str


class JoinCodeListResponse(CamelModel):
    join_codes: List[JoinCodeInfo]


class UpdateJoinCodeRequest(CamelModel):
    is_active: bool
