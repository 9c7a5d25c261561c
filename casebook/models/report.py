from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer
from sqlalchemy.orm import relationship

from casebook.database import Base, utcnow


class Report(Base):
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    case_study_id = Column(Integer, ForeignKey("case_studies.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    case_study = relationship("CaseStudy", back_populates="reports")

    # one report per user per post
    __table_args__ = (Index("reports_user_case_unique", "user_id", "case_study_id", unique=True),)
