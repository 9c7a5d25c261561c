from typing import List, Optional
from pydantic import Field, field_validator, model_validator

from casebook.models.case_study import CaseStudyCategory
from casebook.schemas.base import CamelModel, UTCDateTime, require_text

CLEARABLE_FIELDS = {"impact", "thumbnail_url"}


def _clean_items(items: Optional[List[str]]) -> Optional[List[str]]:
    if items is None:
        return None
    cleaned = [item.strip() for item in items]
    if any(len(item) > 200 for item in cleaned):
        raise ValueError("List items must be at most 200 characters")
    return [item for item in cleaned if item]


class CaseStudyCreate(CamelModel):
    title: str = Field(..., max_length=200, description="Case study title")
    description: str = Field(..., max_length=1000, description="Short description")
    category: CaseStudyCategory
    tools: List[str] = Field(default_factory=list, max_length=20)
    challenge: str = Field(..., max_length=5000)
    solution: str = Field(..., max_length=5000)
    steps: List[str] = Field(default_factory=list, max_length=30)
    impact: Optional[str] = Field(None, max_length=2000)
    tags: List[str] = Field(default_factory=list, max_length=20)
    thumbnail_url: Optional[str] = Field(None, max_length=2048)
    is_recommended: bool = False

    @field_validator("title", "description", "challenge", "solution")
    @classmethod
    def _not_blank(cls, value: str, info):
        return require_text(value, info.field_name)

    @field_validator("tools", "steps", "tags")
    @classmethod
    def _items(cls, value: List[str]):
        return _clean_items(value)

    @field_validator("impact", "thumbnail_url")
    @classmethod
    def _optional_text(cls, value: Optional[str]):
        if value is None:
            return None
        return value.strip() or None


class CaseStudyUpdate(CamelModel):
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    category: Optional[CaseStudyCategory] = None
    tools: Optional[List[str]] = Field(None, max_length=20)
    challenge: Optional[str] = Field(None, max_length=5000)
    solution: Optional[str] = Field(None, max_length=5000)
    steps: Optional[List[str]] = Field(None, max_length=30)
    impact: Optional[str] = Field(None, max_length=2000)
    tags: Optional[List[str]] = Field(None, max_length=20)
    thumbnail_url: Optional[str] = Field(None, max_length=2048)
    is_recommended: Optional[bool] = None

    @field_validator("title", "description", "challenge", "solution")
    @classmethod
    def _not_blank(cls, value: Optional[str], info):
        if value is None:
            return None
        return require_text(value, info.field_name)

    @field_validator("tools", "steps", "tags")
    @classmethod
    def _items(cls, value: Optional[List[str]]):
        return _clean_items(value)

    @field_validator("impact", "thumbnail_url")
    @classmethod
    def _optional_text(cls, value: Optional[str]):
        if value is None:
            return None
        return value.strip() or None

    @model_validator(mode="after")
    def _something_to_update(self):
        if not self.model_fields_set:
            raise ValueError("Nothing to update")
        # only impact and thumbnail_url can be cleared
        cleared = sorted(
            name for name in self.model_fields_set - CLEARABLE_FIELDS if getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"These fields cannot be empty: {', '.join(cleared)}")
        return self


class CaseStudyOut(CamelModel):
    id: int
    user_id: int
    title: str
    description: str
    category: CaseStudyCategory
    tools: List[str]
    challenge: str
    solution: str
    steps: List[str]
    impact: Optional[str] = None
    tags: List[str]
    thumbnail_url: Optional[str] = None
    is_recommended: bool
    created_at: UTCDateTime
    updated_at: UTCDateTime


class CaseStudyListItem(CaseStudyOut):
    author_name: Optional[str] = None
    author_avatar_url: Optional[str] = None
    report_count: int = 0
    favorite_count: int = 0
    is_favorite: bool = False
    is_reported: bool = False


class CaseStudyCreated(CamelModel):
    id: int


class FavoriteToggleOut(CamelModel):
    favorited: bool
    favorite_count: int


class ReportOut(CamelModel):
    success: bool = True
    already_reported: bool


class DeleteOut(CamelModel):
    success: bool = True
