from .base import BaseModel
from .user import User
from .exam import Exam
from .exam_session import ExamSession
from .result import Result
from .proctoring_log import ProctoringLog, ProctoringViolation

__all__ = [
    "BaseModel",
    "User",
    "Exam",
    "ExamSession",
    "Result",
    "ProctoringLog",
    "ProctoringViolation",
]
