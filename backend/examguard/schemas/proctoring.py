from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List, Dict


class ProctoringLogTouch(BaseModel):
    exam_id: str
    session_id: str


class ViolationCreate(BaseModel):
    exam_id: str
    session_id: str
    # validated against the catalog by the service so unknown kinds get a stable error kind
    type: str
    severity: Optional[str] = None
    description: Optional[str] = None
    screenshot: Optional[str] = None


class ViolationResponse(BaseModel):
    type: str
    severity: str
    timestamp: datetime
    description: Optional[str] = None
    screenshot: Optional[str] = None

    @classmethod
    def from_model(cls, violation) -> "ViolationResponse":
        return cls(
            type=violation.violation_type,
            severity=violation.severity,
            timestamp=violation.timestamp,
            description=violation.description,
            screenshot=violation.screenshot,
        )


class ViolationLogged(BaseModel):
    violation: ViolationResponse
    risk_score: int
    total_violations: int


class ProctoringLogResponse(BaseModel):
    id: int
    exam_id: str
    session_id: str
    user_id: int
    user_name: str
    user_email: str
    violations: List[ViolationResponse] = []
    violation_summary: Dict[str, int]
    risk_score: int
    flagged_for_review: bool
    reviewed_by: Optional[int] = None
    review_notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, log) -> "ProctoringLogResponse":
        return cls(
            id=log.id,
            exam_id=log.exam_id,
            session_id=log.session_id,
            user_id=log.user_id,
            user_name=log.user_name,
            user_email=log.user_email,
            violations=[ViolationResponse.from_model(v) for v in log.violations],
            violation_summary=dict(log.violation_summary or {}),
            risk_score=log.risk_score,
            flagged_for_review=bool(log.flagged_for_review),
            reviewed_by=log.reviewed_by,
            review_notes=log.review_notes,
            reviewed_at=log.reviewed_at,
            created_at=log.created_at,
            updated_at=log.updated_at,
        )


class ReviewUpdate(BaseModel):
    review_notes: Optional[str] = None
    flagged_for_review: Optional[bool] = None


class TimelineEntry(BaseModel):
    timestamp: datetime
    type: str
    severity: str


class ViolationStatistics(BaseModel):
    session_id: str
    total_violations: int
    risk_score: int
    flagged_for_review: bool
    by_type: Dict[str, int]
    by_severity: Dict[str, int]
    timeline: List[TimelineEntry]
