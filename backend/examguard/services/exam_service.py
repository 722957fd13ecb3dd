import logging
from datetime import datetime
from sqlalchemy.orm import Session
from typing import Optional

from ..core import database
from ..core.exceptions import NotFoundError, ForbiddenError
from ..models.exam import Exam
from ..models.result import Result, RESULT_COMPLETED
from ..models.user import User

logger = logging.getLogger(__name__)


class ExamService:
    """Read side of the exam collaborator plus its advisory statistics counters."""

    def __init__(self, db: Session):
        self.db = db

    def get_exam(self, exam_id: str) -> Optional[Exam]:
        return self.db.query(Exam).filter(Exam.exam_id == exam_id).first()

    def get_exam_or_404(self, exam_id: str) -> Exam:
        exam = self.get_exam(exam_id)
        if not exam:
            raise NotFoundError("Exam not found")
        return exam

    def get_owned_exam(self, exam_id: str, caller: User) -> Exam:
        exam = self.get_exam_or_404(exam_id)
        if not self.is_exam_owner(exam, caller):
            raise ForbiddenError("Not authorized to access this exam")
        return exam

    @staticmethod
    def is_exam_owner(exam: Optional[Exam], caller: User) -> bool:
        if caller.is_superuser:
            return True
        return exam is not None and exam.created_by == caller.id

    def get_owned_exam_ids(self, caller: User) -> list[str]:
        rows = self.db.query(Exam.exam_id).filter(Exam.created_by == caller.id).all()
        return [row[0] for row in rows]

    def has_completed_result(self, exam_id: str, user_id: int) -> bool:
        result = self.db.query(Result.id).filter(
            Result.exam_id == exam_id,
            Result.user_id == user_id,
            Result.status == RESULT_COMPLETED
        ).first()
        return result is not None

    def increment_attempts(self, exam: Exam) -> None:
        exam.total_attempts = (exam.total_attempts or 0) + 1


def record_exam_violation(exam_id: str) -> bool:
    """Bump ``total_violations`` for an exam in its own database session.

    Runs after the violation has been committed; the counter is advisory,
    so a failure here is logged and swallowed.
    """
    db = database.SessionLocal()
    try:
        updated = db.query(Exam).filter(Exam.exam_id == exam_id).update(
            {Exam.total_violations: Exam.total_violations + 1},
            synchronize_session=False
        )
        db.commit()
        if not updated:
            logger.warning(f"Violation counter not updated: exam {exam_id} not found")
        return bool(updated)
    except Exception as e:
        db.rollback()
        logger.warning(f"Failed to update violation counter for exam {exam_id}: {e}")
        return False
    finally:
        db.close()


def sweep_expired_exams(db: Session, now: datetime) -> int:
    """Deactivate every active exam whose end date has passed. Re-running is a no-op."""
    updated = db.query(Exam).filter(
        Exam.end_date < now,
        Exam.is_active.is_(True)
    ).update({Exam.is_active: False}, synchronize_session=False)
    db.commit()
    return updated
