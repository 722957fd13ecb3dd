import logging
import uuid
from datetime import datetime
from sqlalchemy.orm import Session
from typing import Optional, List, Tuple

from ..core.exceptions import NotFoundError, ForbiddenError, ConflictError, InvalidArgumentError
from ..models.exam_session import (
    ExamSession,
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    TERMINAL_STATUSES,
)
from ..models.user import User
from ..schemas.session import SessionActivityUpdate
from ..utils.timezone import get_utc_now, to_naive_utc, minutes_between
from ..utils.user_agent import parse_user_agent
from .exam_service import ExamService

logger = logging.getLogger(__name__)


def is_expired(session: ExamSession, exam_duration_minutes: int, now: Optional[datetime] = None) -> bool:
    """Advisory check: has the attempt run longer than the exam allows."""
    now = to_naive_utc(now) if now else get_utc_now()
    return minutes_between(session.start_time, now) > exam_duration_minutes


class SessionService:
    """Lifecycle of one student's attempt at one exam.

    ``active`` is the only non-terminal status; completed, abandoned and
    terminated sessions are kept as audit records and never reopened.
    """

    def __init__(self, db: Session):
        self.db = db
        self.exam_service = ExamService(db)

    def get_session(self, session_id: str) -> Optional[ExamSession]:
        return self.db.query(ExamSession).filter(ExamSession.session_id == session_id).first()

    def get_session_or_404(self, session_id: str) -> ExamSession:
        session = self.get_session(session_id)
        if not session:
            raise NotFoundError("Session not found")
        return session

    def get_active_session(self, exam_id: str, user_id: int) -> Optional[ExamSession]:
        return self.db.query(ExamSession).filter(
            ExamSession.exam_id == exam_id,
            ExamSession.user_id == user_id,
            ExamSession.status == STATUS_ACTIVE
        ).first()

    def _has_finished_session(self, exam_id: str, user_id: int) -> bool:
        return self.db.query(ExamSession.id).filter(
            ExamSession.exam_id == exam_id,
            ExamSession.user_id == user_id,
            ExamSession.status.in_(TERMINAL_STATUSES)
        ).first() is not None

    def start_session(
        self,
        exam_id: str,
        user_id: int,
        now: Optional[datetime] = None,
        user_agent: Optional[str] = None
    ) -> Tuple[ExamSession, bool]:
        """Start or resume an attempt. Returns ``(session, resumed)``."""
        now = to_naive_utc(now) if now else get_utc_now()

        exam = self.exam_service.get_exam_or_404(exam_id)

        if not exam.is_active:
            raise ForbiddenError("This exam is not active")
        if now < exam.start_date:
            raise ForbiddenError("This exam has not started yet")
        if now > exam.end_date:
            raise ForbiddenError("This exam has ended")

        existing = self.get_active_session(exam_id, user_id)
        if existing:
            logger.info(f"Resuming session {existing.session_id} for user {user_id} on exam {exam_id}")
            return existing, True

        if self.exam_service.has_completed_result(exam_id, user_id) or self._has_finished_session(exam_id, user_id):
            raise ConflictError("You have already completed this exam")

        session = ExamSession(
            session_id=str(uuid.uuid4()),
            exam_id=exam_id,
            user_id=user_id,
            status=STATUS_ACTIVE,
            start_time=now,
            last_activity=now,
            is_fullscreen_active=False,
            tab_switch_count=0,
            answers={},
            browser_info=parse_user_agent(user_agent),
        )
        self.db.add(session)
        self.exam_service.increment_attempts(exam)
        self.db.commit()
        self.db.refresh(session)

        logger.info(f"Started session {session.session_id} for user {user_id} on exam {exam_id}")
        return session, False

    def _get_owned_session(self, session_id: str, caller_user_id: int, action: str) -> ExamSession:
        session = self.get_session_or_404(session_id)
        if session.user_id != caller_user_id:
            raise ForbiddenError(f"Not authorized to {action} this session")
        return session

    def record_activity(
        self,
        session_id: str,
        caller_user_id: int,
        patch: SessionActivityUpdate,
        now: Optional[datetime] = None
    ) -> ExamSession:
        session = self._get_owned_session(session_id, caller_user_id, "update")

        if session.status != STATUS_ACTIVE:
            raise ForbiddenError("This session is no longer active")

        session.last_activity = to_naive_utc(now) if now else get_utc_now()

        if patch.is_fullscreen_active is not None:
            session.is_fullscreen_active = patch.is_fullscreen_active

        if patch.tab_switch_count is not None:
            if patch.tab_switch_count < (session.tab_switch_count or 0):
                logger.info(
                    f"Ignoring tab switch count {patch.tab_switch_count} lower than "
                    f"{session.tab_switch_count} for session {session_id}"
                )
            else:
                session.tab_switch_count = patch.tab_switch_count

        if patch.answers is not None:
            session.answers = dict(patch.answers)

        self.db.commit()
        self.db.refresh(session)
        return session

    def end_session(
        self,
        session_id: str,
        caller_user_id: int,
        requested_status: Optional[str] = STATUS_COMPLETED,
        now: Optional[datetime] = None
    ) -> ExamSession:
        session = self._get_owned_session(session_id, caller_user_id, "end")

        requested_status = requested_status or STATUS_COMPLETED
        if requested_status not in TERMINAL_STATUSES:
            raise InvalidArgumentError(
                f"Invalid session status '{requested_status}'. Expected one of: {', '.join(TERMINAL_STATUSES)}"
            )

        if session.status != STATUS_ACTIVE:
            logger.info(f"Session {session_id} already ended as {session.status}; ignoring end request")
            return session

        session.status = requested_status
        session.end_time = to_naive_utc(now) if now else get_utc_now()
        self.db.commit()
        self.db.refresh(session)

        logger.info(f"Session {session_id} ended with status {requested_status}")
        return session

    def get_session_for_reader(self, session_id: str, caller: User) -> ExamSession:
        session = self.get_session_or_404(session_id)
        if session.user_id == caller.id:
            return session

        exam = self.exam_service.get_exam(session.exam_id)
        if not ExamService.is_exam_owner(exam, caller):
            raise ForbiddenError("Not authorized to access this session")
        return session

    def list_sessions_by_exam(self, exam_id: str, caller: User) -> List[ExamSession]:
        self.exam_service.get_owned_exam(exam_id, caller)
        return self.db.query(ExamSession).filter(
            ExamSession.exam_id == exam_id
        ).order_by(ExamSession.created_at.desc(), ExamSession.id.desc()).all()

    def session_is_expired(self, session: ExamSession, now: Optional[datetime] = None) -> Optional[bool]:
        exam = self.exam_service.get_exam(session.exam_id)
        if not exam:
            return None
        return is_expired(session, exam.duration, now)
