from typing import List, Literal, Optional
from pydantic import Field, field_validator, model_validator

from casebook.models.quests import QuestStatus
from casebook.schemas.base import CamelModel, UTCDateTime, require_text


# QUEST CREATE + RESPONSE SCHEMA
class QuestCreate(CamelModel):
    title: str = Field(..., max_length=200)
    content: str = Field(..., max_length=5000)

    @field_validator("title", "content")
    @classmethod
    def _not_blank(cls, value: str, info):
        return require_text(value, info.field_name)


class QuestOut(CamelModel):
    id: int
    user_id: int
    title: str
    content: str
    status: QuestStatus
    solved_answer_id: Optional[int] = None
    solver_user_id: Optional[int] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime
    closed_at: Optional[UTCDateTime] = None
    author_name: Optional[str] = None
    author_avatar_url: Optional[str] = None
    answer_count: int = 0


# ANSWER SCHEMA
class QuestAnswerCreate(CamelModel):
    content: str = Field(..., max_length=5000)

    @field_validator("content")
    @classmethod
    def _not_blank(cls, value: str, info):
        return require_text(value, info.field_name)


class QuestAnswerOut(CamelModel):
    id: int
    quest_id: int
    user_id: int
    content: str
    created_at: UTCDateTime
    updated_at: UTCDateTime
    author_name: Optional[str] = None
    author_avatar_url: Optional[str] = None


class QuestDetail(CamelModel):
    quest: QuestOut
    answers: List[QuestAnswerOut]


class QuestCreated(CamelModel):
    id: int


# CLOSE SCHEMA
class QuestClose(CamelModel):
    status: Literal["finished", "suspended", "unsolved"]
    solved_answer_id: Optional[int] = Field(None, gt=0)

    @model_validator(mode="after")
    def _solver_only_when_finished(self):
        if self.status == QuestStatus.finished.value and self.solved_answer_id is None:
            raise ValueError("Choose the answer that solved the quest")
        if self.status != QuestStatus.finished.value and self.solved_answer_id is not None:
            raise ValueError("Only finished quests have a solving answer")
        return self

    @property
    def target_status(self) -> QuestStatus:
        return QuestStatus(self.status)


class QuestCloseOut(CamelModel):
    success: bool = True
    already_closed: bool
    quest: QuestOut
