import enum

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum as SAEnum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from casebook.database import Base, utcnow


class CaseStudyCategory(str, enum.Enum):
    prompt = "prompt"
    automation = "automation"
    tools = "tools"
    business = "business"


class CaseStudy(Base):
    __tablename__ = "case_studies"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    thumbnail_url = Column(String, nullable=True)
    category = Column(
        SAEnum(CaseStudyCategory, native_enum=False, length=32, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    tools = Column(JSON, nullable=False, default=list)   # ["ChatGPT", "Zapier"]
    challenge = Column(Text, nullable=False)
    solution = Column(Text, nullable=False)
    steps = Column(JSON, nullable=False, default=list)
    impact = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    is_recommended = Column(Boolean, nullable=False, default=False, server_default="0")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    author = relationship("User", back_populates="case_studies")
    favorites = relationship("Favorite", back_populates="case_study", cascade="all, delete-orphan", passive_deletes=True)
    reports = relationship("Report", back_populates="case_study", cascade="all, delete-orphan", passive_deletes=True)
