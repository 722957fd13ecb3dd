from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Integer, Boolean, JSON, Index
from sqlalchemy.orm import relationship

from .base import BaseModel
from ..core.database import Base
from ..proctoring.catalog import empty_summary
from ..utils.timezone import get_utc_now


class ProctoringLog(BaseModel):
    __tablename__ = "proctoring_logs"
    __table_args__ = (
        Index("ix_proctoring_logs_exam_user", "exam_id", "user_id"),
    )

    exam_id = Column(String, ForeignKey("exams.exam_id"), index=True, nullable=False)
    session_id = Column(String, ForeignKey("exam_sessions.session_id"), index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    user_name = Column(String, nullable=False)
    user_email = Column(String, nullable=False)

    violation_summary = Column(JSON, default=empty_summary, nullable=False)
    risk_score = Column(Integer, default=0, nullable=False)
    flagged_for_review = Column(Boolean, default=False, index=True)

    reviewed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    review_notes = Column(Text, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    violations = relationship(
        "ProctoringViolation",
        back_populates="log",
        order_by="ProctoringViolation.id",
        cascade="all, delete-orphan",
    )

    @property
    def total_violations(self) -> int:
        return len(self.violations)

    def __repr__(self):
        return f"<ProctoringLog session={self.session_id} risk={self.risk_score}>"


class ProctoringViolation(Base):
    """One timeline entry of a proctoring log; never addressed on its own."""
    __tablename__ = "proctoring_violations"

    id = Column(Integer, primary_key=True, index=True)
    log_id = Column(Integer, ForeignKey("proctoring_logs.id"), index=True, nullable=False)
    violation_type = Column(String, nullable=False)
    severity = Column(String, default="medium")
    description = Column(Text, default="")
    screenshot = Column(Text, nullable=True)
    timestamp = Column(DateTime, default=get_utc_now, nullable=False)

    log = relationship("ProctoringLog", back_populates="violations")

    def __repr__(self):
        return f"<ProctoringViolation {self.violation_type} for log {self.log_id}>"
