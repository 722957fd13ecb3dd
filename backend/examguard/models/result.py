from sqlalchemy import Column, String, ForeignKey, Float, Integer

from .base import BaseModel

RESULT_COMPLETED = "completed"


class Result(BaseModel):
    """Graded attempt, written by the grading service."""
    __tablename__ = "results"

    exam_id = Column(String, ForeignKey("exams.exam_id"), index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    session_id = Column(String, ForeignKey("exam_sessions.session_id"), nullable=True)
    status = Column(String, default=RESULT_COMPLETED)
    score = Column(Float, nullable=True)
