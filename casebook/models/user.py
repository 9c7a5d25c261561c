# models/user.py
import enum

from sqlalchemy import Column, DateTime, Enum as SAEnum, Integer, String, Text
from sqlalchemy.orm import relationship

from casebook.database import Base, utcnow


class UserRole(str, enum.Enum):
    user = "user"
    admin = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    open_id = Column("openId", String, unique=True, nullable=False)   # from the OAuth portal
    name = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    avatar_url = Column("avatarUrl", Text, nullable=True)
    login_method = Column("loginMethod", Text, nullable=True)        # e.g. "google"
    role = Column(
        SAEnum(UserRole, native_enum=False, length=16, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserRole.user,
        server_default=UserRole.user.value,
    )
    created_at = Column("createdAt", DateTime, nullable=False, default=utcnow)
    updated_at = Column("updatedAt", DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    last_signed_in = Column("lastSignedIn", DateTime, nullable=False, default=utcnow)

    case_studies = relationship("CaseStudy", back_populates="author", cascade="all, delete-orphan", passive_deletes=True)
    favorites = relationship("Favorite", cascade="all, delete-orphan", passive_deletes=True)
    reports = relationship("Report", cascade="all, delete-orphan", passive_deletes=True)
    quests = relationship("Quest", back_populates="author", foreign_keys="Quest.user_id", cascade="all, delete-orphan", passive_deletes=True)
    quest_answers = relationship("QuestAnswer", back_populates="author", cascade="all, delete-orphan", passive_deletes=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin
