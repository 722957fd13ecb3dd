import logging
from collections import Counter
from datetime import datetime
from sqlalchemy.orm import Session, selectinload
from typing import Optional, List, Tuple

from ..core.exceptions import NotFoundError, ForbiddenError, InvalidArgumentError
from ..models.exam_session import ExamSession
from ..models.proctoring_log import ProctoringLog, ProctoringViolation
from ..models.user import User
from ..proctoring import catalog, scoring
from ..schemas.proctoring import ViolationCreate, ReviewUpdate
from ..utils.timezone import get_utc_now, to_naive_utc
from .exam_service import ExamService

logger = logging.getLogger(__name__)


def append_violation(
    log: ProctoringLog,
    violation_type: str,
    severity: Optional[str] = None,
    description: Optional[str] = None,
    screenshot: Optional[str] = None,
    now: Optional[datetime] = None
) -> ProctoringViolation:
    """Append one violation to a log and recompute its risk score.

    The score is rebuilt from the whole summary on every call, so the stored
    score always equals ``scoring.score(log.violation_summary)``.
    """
    kind = catalog.parse_violation_type(violation_type)
    level = catalog.parse_severity(severity)

    violation = ProctoringViolation(
        violation_type=kind.value,
        severity=level.value,
        description=description or "",
        screenshot=screenshot or None,
        timestamp=to_naive_utc(now) if now else get_utc_now(),
    )
    log.violations.append(violation)

    # reassign so the JSON column is marked dirty
    summary = catalog.empty_summary()
    summary.update(log.violation_summary or {})
    summary[kind.value] = summary.get(kind.value, 0) + 1
    log.violation_summary = summary

    log.risk_score = scoring.score(summary)
    log.flagged_for_review = scoring.should_flag(log.risk_score, log.flagged_for_review)
    return violation


class ProctoringService:
    def __init__(self, db: Session):
        self.db = db
        self.exam_service = ExamService(db)

    def _get_owned_session(self, session_id: str, caller: User) -> ExamSession:
        session = self.db.query(ExamSession).filter(ExamSession.session_id == session_id).first()
        if not session:
            raise NotFoundError("Session not found")
        if session.user_id != caller.id:
            raise ForbiddenError("Not authorized")
        return session

    def find_log(self, exam_id: str, session_id: str, user_id: int) -> Optional[ProctoringLog]:
        return self.db.query(ProctoringLog).filter(
            ProctoringLog.exam_id == exam_id,
            ProctoringLog.session_id == session_id,
            ProctoringLog.user_id == user_id
        ).first()

    def _get_or_create_log(self, session: ExamSession, caller: User) -> ProctoringLog:
        log = self.find_log(session.exam_id, session.session_id, caller.id)
        if log:
            return log

        log = ProctoringLog(
            exam_id=session.exam_id,
            session_id=session.session_id,
            user_id=caller.id,
            user_name=caller.full_name or caller.email,
            user_email=caller.email,
            violation_summary=catalog.empty_summary(),
            risk_score=0,
            flagged_for_review=False,
        )
        self.db.add(log)
        self.db.flush()
        logger.info(f"Created proctoring log for session {session.session_id}")
        return log

    @staticmethod
    def _check_exam_matches(exam_id: str, session: ExamSession) -> None:
        if exam_id != session.exam_id:
            raise InvalidArgumentError("Session does not belong to this exam")

    def touch_log(self, exam_id: str, session_id: str, caller: User) -> ProctoringLog:
        session = self._get_owned_session(session_id, caller)
        self._check_exam_matches(exam_id, session)
        log = self._get_or_create_log(session, caller)
        self.db.commit()
        self.db.refresh(log)
        return log

    def log_violation(
        self,
        data: ViolationCreate,
        caller: User,
        now: Optional[datetime] = None
    ) -> Tuple[ProctoringLog, ProctoringViolation]:
        # reject unknown kinds before touching the database
        catalog.parse_violation_type(data.type)
        catalog.parse_severity(data.severity)

        session = self._get_owned_session(data.session_id, caller)
        self._check_exam_matches(data.exam_id, session)

        log = self._get_or_create_log(session, caller)
        was_flagged = bool(log.flagged_for_review)
        violation = append_violation(
            log,
            data.type,
            severity=data.severity,
            description=data.description,
            screenshot=data.screenshot,
            now=now,
        )
        self.db.commit()
        self.db.refresh(log)

        logger.info(
            f"Violation {violation.violation_type} ({violation.severity}) logged for session "
            f"{log.session_id}: risk {log.risk_score}, total {log.total_violations}"
        )
        if log.flagged_for_review and not was_flagged:
            logger.warning(f"Proctoring log {log.id} for session {log.session_id} flagged for review")
        return log, violation

    def _get_log_query(self):
        return self.db.query(ProctoringLog).options(selectinload(ProctoringLog.violations))

    def get_log_by_session(self, session_id: str, caller: User) -> ProctoringLog:
        log = self._get_log_query().filter(ProctoringLog.session_id == session_id).first()
        if not log:
            raise NotFoundError("Proctoring log not found")

        if log.user_id != caller.id:
            exam = self.exam_service.get_exam(log.exam_id)
            if not ExamService.is_exam_owner(exam, caller):
                raise ForbiddenError("Not authorized to access this log")
        return log

    def list_logs_by_exam(self, exam_id: str, caller: User) -> List[ProctoringLog]:
        exam = self.exam_service.get_exam_or_404(exam_id)
        if not ExamService.is_exam_owner(exam, caller):
            raise ForbiddenError("Not authorized to view proctoring logs for this exam")

        return self._get_log_query().filter(
            ProctoringLog.exam_id == exam_id
        ).order_by(
            ProctoringLog.risk_score.desc(),
            ProctoringLog.created_at.desc(),
            ProctoringLog.id.desc()
        ).all()

    def list_flagged_logs(self, caller: User) -> List[ProctoringLog]:
        exam_ids = self.exam_service.get_owned_exam_ids(caller)
        if not exam_ids:
            return []
        return self._get_log_query().filter(
            ProctoringLog.exam_id.in_(exam_ids),
            ProctoringLog.flagged_for_review.is_(True)
        ).order_by(ProctoringLog.risk_score.desc(), ProctoringLog.id.desc()).all()

    def review_log(self, log_id: int, caller: User, review: ReviewUpdate, now: Optional[datetime] = None) -> ProctoringLog:
        log = self._get_log_query().filter(ProctoringLog.id == log_id).first()
        if not log:
            raise NotFoundError("Proctoring log not found")

        exam = self.exam_service.get_exam(log.exam_id)
        if exam is None or not ExamService.is_exam_owner(exam, caller):
            raise ForbiddenError("Not authorized to review this log")

        if review.review_notes:
            log.review_notes = review.review_notes
        if review.flagged_for_review is not None:
            log.flagged_for_review = review.flagged_for_review
        log.reviewed_by = caller.id
        log.reviewed_at = to_naive_utc(now) if now else get_utc_now()

        self.db.commit()
        self.db.refresh(log)
        logger.info(f"Proctoring log {log.id} reviewed by user {caller.id} (flagged={log.flagged_for_review})")
        return log

    def get_statistics(self, session_id: str, caller: User) -> dict:
        log = self.get_log_by_session(session_id, caller)

        by_type = catalog.empty_summary()
        by_type.update(log.violation_summary or {})
        by_severity = {level.value: 0 for level in catalog.Severity}
        by_severity.update(Counter(v.severity for v in log.violations))

        return {
            "session_id": log.session_id,
            "total_violations": log.total_violations,
            "risk_score": log.risk_score,
            "flagged_for_review": bool(log.flagged_for_review),
            "by_type": by_type,
            "by_severity": by_severity,
            "timeline": [
                {"timestamp": v.timestamp, "type": v.violation_type, "severity": v.severity}
                for v in log.violations
            ],
        }
