from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Integer, JSON, Index
from sqlalchemy.orm import relationship

from .base import BaseModel
from ..utils.timezone import get_utc_now

STATUS_ACTIVE = "active"
STATUS_COMPLETED = "completed"
STATUS_ABANDONED = "abandoned"
STATUS_TERMINATED = "terminated"

TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_ABANDONED, STATUS_TERMINATED)


class ExamSession(BaseModel):
    __tablename__ = "exam_sessions"
    __table_args__ = (
        Index("ix_exam_sessions_exam_user", "exam_id", "user_id"),
    )

    session_id = Column(String, unique=True, index=True, nullable=False)
    exam_id = Column(String, ForeignKey("exams.exam_id"), index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    status = Column(String, default=STATUS_ACTIVE, index=True)
    start_time = Column(DateTime, default=get_utc_now, nullable=False)
    end_time = Column(DateTime, nullable=True)
    last_activity = Column(DateTime, default=get_utc_now)

    is_fullscreen_active = Column(Boolean, default=False)
    tab_switch_count = Column(Integer, default=0)
    answers = Column(JSON, default=dict)
    browser_info = Column(JSON, nullable=True)

    user = relationship("User", back_populates="exam_sessions")
    exam = relationship("Exam")

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    def __repr__(self):
        return f"<ExamSession {self.session_id} {self.status}>"
