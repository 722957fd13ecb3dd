from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, Dict

from ..models.exam_session import STATUS_COMPLETED


class SessionStartRequest(BaseModel):
    exam_id: str


class SessionActivityUpdate(BaseModel):
    """Activity patch; a field left out of the request is left untouched."""
    is_fullscreen_active: Optional[bool] = None
    tab_switch_count: Optional[int] = Field(default=None, ge=0)
    answers: Optional[Dict[str, str]] = None


class SessionEndRequest(BaseModel):
    status: str = STATUS_COMPLETED


class BrowserInfo(BaseModel):
    user_agent: Optional[str] = None
    browser: Optional[str] = None
    os: Optional[str] = None
    device: Optional[str] = None


class ExamSessionResponse(BaseModel):
    session_id: str
    exam_id: str
    user_id: int
    status: str
    start_time: datetime
    end_time: Optional[datetime] = None
    last_activity: Optional[datetime] = None
    is_fullscreen_active: bool = False
    tab_switch_count: int = 0
    answers: Dict[str, str] = {}
    browser_info: Optional[BrowserInfo] = None
    is_expired: Optional[bool] = None

    class Config:
        from_attributes = True


class SessionStartResponse(ExamSessionResponse):
    resumed: bool = False
