from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session
from typing import List

from ....core.database import get_db
from ....api.deps import get_current_active_user, get_current_teacher
from ....models.user import User
from ....schemas.session import (
    SessionStartRequest,
    SessionStartResponse,
    SessionActivityUpdate,
    SessionEndRequest,
    ExamSessionResponse,
)
from ....services.session_service import SessionService

router = APIRouter()


def _to_response(service: SessionService, session, **extra) -> dict:
    data = ExamSessionResponse.from_orm(session).dict()
    data["is_expired"] = service.session_is_expired(session)
    data.update(extra)
    return data


@router.post("/start", response_model=SessionStartResponse)
async def start_exam_session(
    payload: SessionStartRequest,
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Start an exam attempt, or resume the caller's active one"""
    service = SessionService(db)
    session, resumed = service.start_session(
        payload.exam_id,
        current_user.id,
        user_agent=request.headers.get("user-agent")
    )
    response.status_code = status.HTTP_200_OK if resumed else status.HTTP_201_CREATED
    return _to_response(service, session, resumed=resumed)


@router.put("/{session_id}/activity", response_model=ExamSessionResponse)
async def update_session_activity(
    session_id: str,
    patch: SessionActivityUpdate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    service = SessionService(db)
    session = service.record_activity(session_id, current_user.id, patch)
    return _to_response(service, session)


@router.put("/{session_id}/end", response_model=ExamSessionResponse)
async def end_exam_session(
    session_id: str,
    payload: SessionEndRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    service = SessionService(db)
    session = service.end_session(session_id, current_user.id, payload.status)
    return _to_response(service, session)


@router.get("/exam/{exam_id}", response_model=List[ExamSessionResponse])
async def get_sessions_by_exam(
    exam_id: str,
    current_user: User = Depends(get_current_teacher),
    db: Session = Depends(get_db)
):
    """All sessions of an exam, newest first (exam owner only)"""
    service = SessionService(db)
    sessions = service.list_sessions_by_exam(exam_id, current_user)
    return [_to_response(service, s) for s in sessions]


@router.get("/{session_id}", response_model=ExamSessionResponse)
async def get_session(
    session_id: str,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    service = SessionService(db)
    session = service.get_session_for_reader(session_id, current_user)
    return _to_response(service, session)
