from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from casebook.database import Base, utcnow


class Favorite(Base):
    __tablename__ = "favorites"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    case_study_id = Column(Integer, ForeignKey("case_studies.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    case_study = relationship("CaseStudy", back_populates="favorites")

    __table_args__ = (UniqueConstraint("user_id", "case_study_id", name="favorites_user_case_unique"),)
