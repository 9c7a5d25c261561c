# schemas/user_schema.py
from typing import List, Optional

from pydantic import Field, field_validator

from casebook.models.user import UserRole
from casebook.schemas.base import CamelModel, UTCDateTime, require_text
from casebook.schemas.case_study_schema import CaseStudyOut


class UserResponse(CamelModel):
    id: int
    open_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    login_method: Optional[str] = None
    role: UserRole
    created_at: UTCDateTime
    updated_at: UTCDateTime
    last_signed_in: UTCDateTime


class UserPublic(CamelModel):
    id: int
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: UTCDateTime


class ProfileOut(CamelModel):
    user: UserPublic
    posts: List[CaseStudyOut]
    is_owner: bool


class NameUpdate(CamelModel):
    name: str = Field(..., description="Display name, 1-50 characters after trimming")

    @field_validator("name")
    @classmethod
    def _not_blank(cls, value: str):
        return require_text(value, "name", max_length=50)


class NameUpdateOut(CamelModel):
    success: bool = True
    name: str


class LoginUrlOut(CamelModel):
    url: Optional[str] = None
