"""Group (class) schema definitions."""

from typing import Optional

from pydantic import BaseModel


class CreateGroupRequest(BaseModel):
    name: str
    subject: Optional[str] = None
    description: Optional[str] = None
    year_level: Optional[str] = None
    semester: Optional[str] = None
    code: Optional[str] = None


class UpdateGroupRequest(BaseModel):
    name: Optional[str] = None
    subject: Optional[str] = None
    description: Optional[str] = None
    year_level: Optional[str] = None
    semester: Optional[str] = None


class GroupInfo(BaseModel):
    id: str
    name: str
    subject: Optional[str] = None
    description: Optional[str] = None
    year_level: Optional[str] = None
    semester: Optional[str] = None
    code: Optional[str] = None
    teacher_id: str
    created_at: str
    updated_at: str
    student_count: int = 0


class GroupMemberInfo(BaseModel):
    id: int
    student_id: str
    fullname: str
    email: str
    status: str
    joined_at: str


class StudentClassInfo(BaseModel):
    group_id: str
    name: str
    subject: Optional[str] = None
    teacher_name: str
    joined_at: str
