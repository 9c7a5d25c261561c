import enum

from sqlalchemy import Column, DateTime, Enum as SAEnum, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import relationship

from casebook.database import Base, utcnow


class QuestStatus(str, enum.Enum):
    open = "open"
    finished = "finished"
    suspended = "suspended"
    unsolved = "unsolved"

    @property
    def is_terminal(self) -> bool:
        return self is not QuestStatus.open


class Quest(Base):
    __tablename__ = "quests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    status = Column(
        SAEnum(QuestStatus, native_enum=False, length=16, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=QuestStatus.open,
        server_default=QuestStatus.open.value,
    )
    solved_answer_id = Column(Integer, nullable=True)       # answer of this quest, checked on close
    solver_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    closed_at = Column(DateTime, nullable=True)

    author = relationship("User", back_populates="quests", foreign_keys=[user_id])
    answers = relationship(
        "QuestAnswer",
        back_populates="quest",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="QuestAnswer.created_at",
    )

    __table_args__ = (Index("quests_status_idx", "status"),)


class QuestAnswer(Base):
    __tablename__ = "quest_answers"

    id = Column(Integer, primary_key=True, index=True)
    quest_id = Column(Integer, ForeignKey("quests.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    quest = relationship("Quest", back_populates="answers")
    author = relationship("User", back_populates="quest_answers")

    __table_args__ = (Index("quest_answers_quest_idx", "quest_id"),)
