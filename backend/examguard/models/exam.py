from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Integer, Float, JSON
from sqlalchemy.orm import relationship

from .base import BaseModel

DEFAULT_CONFIGURATION = {
    "shuffle_questions": True,
    "shuffle_options": True,
    "show_result_immediately": False,
    "allow_review": False,
}

DEFAULT_PROCTORING_SETTINGS = {
    "enable_fullscreen": True,
    "enable_tab_switch": True,
    "enable_webcam": True,
    "max_tab_switches": 3,
    "strict_mode": False,
}


class Exam(BaseModel):
    """Authored elsewhere; the proctoring core reads it and bumps its statistics."""
    __tablename__ = "exams"

    exam_id = Column(String, unique=True, index=True, nullable=False)
    title = Column(String, nullable=False)
    duration = Column(Integer, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    is_active = Column(Boolean, default=True, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)

    configuration = Column(JSON, default=lambda: dict(DEFAULT_CONFIGURATION))
    proctoring_settings = Column(JSON, default=lambda: dict(DEFAULT_PROCTORING_SETTINGS))

    total_attempts = Column(Integer, default=0)
    total_violations = Column(Integer, default=0)
    average_score = Column(Float, default=0.0)

    creator = relationship("User")

    @property
    def statistics(self) -> dict:
        return {
            "total_attempts": self.total_attempts or 0,
            "total_violations": self.total_violations or 0,
            "average_score": self.average_score or 0.0,
        }

    def __repr__(self):
        return f"<Exam {self.exam_id} active={self.is_active}>"
