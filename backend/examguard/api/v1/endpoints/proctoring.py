from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session
from typing import List

from ....core.database import get_db
from ....api.deps import get_current_active_user, get_current_teacher
from ....models.user import User
from ....schemas.proctoring import (
    ProctoringLogTouch,
    ViolationCreate,
    ViolationResponse,
    ViolationLogged,
    ProctoringLogResponse,
    ReviewUpdate,
    ViolationStatistics,
)
from ....services.exam_service import record_exam_violation
from ....services.proctoring_service import ProctoringService

router = APIRouter()


@router.post("/log", response_model=ProctoringLogResponse)
async def create_or_get_proctoring_log(
    payload: ProctoringLogTouch,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Create the caller's proctoring log for a session if it does not exist yet"""
    service = ProctoringService(db)
    log = service.touch_log(payload.exam_id, payload.session_id, current_user)
    return ProctoringLogResponse.from_model(log)


@router.post("/violation", response_model=ViolationLogged, status_code=status.HTTP_201_CREATED)
async def log_violation(
    payload: ViolationCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Append a violation to the caller's log and return the recomputed risk score"""
    service = ProctoringService(db)
    log, violation = service.log_violation(payload, current_user)

    # exam statistics are advisory; updated after the response, failures only logged
    background_tasks.add_task(record_exam_violation, log.exam_id)

    return ViolationLogged(
        violation=ViolationResponse.from_model(violation),
        risk_score=log.risk_score,
        total_violations=log.total_violations,
    )


@router.get("/session/{session_id}", response_model=ProctoringLogResponse)
async def get_proctoring_log_by_session(
    session_id: str,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    service = ProctoringService(db)
    log = service.get_log_by_session(session_id, current_user)
    return ProctoringLogResponse.from_model(log)


@router.get("/session/{session_id}/statistics", response_model=ViolationStatistics)
async def get_violation_statistics(
    session_id: str,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Violation totals by type and severity plus the timeline for a session"""
    service = ProctoringService(db)
    return service.get_statistics(session_id, current_user)


@router.get("/exam/{exam_id}", response_model=List[ProctoringLogResponse])
async def get_proctoring_logs_by_exam(
    exam_id: str,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
):
    """Logs of an exam, highest risk first"""
    service = ProctoringService(db)
    logs = service.list_logs_by_exam(exam_id, current_user)
    return [ProctoringLogResponse.from_model(log) for log in logs]


@router.get("/flagged", response_model=List[ProctoringLogResponse])
async def get_flagged_logs(
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
):
    service = ProctoringService(db)
    logs = service.list_flagged_logs(current_user)
    return [ProctoringLogResponse.from_model(log) for log in logs]


@router.put("/{log_id}/review", response_model=ProctoringLogResponse)
async def update_review_status(
    log_id: int,
    review: ReviewUpdate,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
):
    service = ProctoringService(db)
    log = service.review_log(log_id, current_user, review)
    return ProctoringLogResponse.from_model(log)
