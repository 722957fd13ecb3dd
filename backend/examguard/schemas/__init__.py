from .session import (
    SessionStartRequest,
    SessionActivityUpdate,
    SessionEndRequest,
    ExamSessionResponse,
    SessionStartResponse,
)
from .proctoring import (
    ProctoringLogTouch,
    ViolationCreate,
    ViolationResponse,
    ViolationLogged,
    ProctoringLogResponse,
    ReviewUpdate,
    ViolationStatistics,
)

__all__ = [
    "SessionStartRequest",
    "SessionActivityUpdate",
    "SessionEndRequest",
    "ExamSessionResponse",
    "SessionStartResponse",
    "ProctoringLogTouch",
    "ViolationCreate",
    "ViolationResponse",
    "ViolationLogged",
    "ProctoringLogResponse",
    "ReviewUpdate",
    "ViolationStatistics",
]
