"""
Exam-taking agent: camera object detection, browser guard rails and the
REST binding they report violations through.
"""
from .api_client import ApiError, ProctoringApiClient
from .config import ProctorClientSettings
from .detection import DetectionLoop, DetectionSession, LoopState
from .dispatcher import DispatchOutcome, ViolationCandidate, ViolationDispatcher
from .guard_rails import FullscreenState, GuardOutcome, GuardRails, KeyPress
from .monitor import ExamMonitor
from .policy import DetectionPolicy, Prediction
from .throttle import CooldownThrottle

__all__ = [
    "ApiError",
    "ProctoringApiClient",
    "ProctorClientSettings",
    "DetectionLoop",
    "DetectionSession",
    "LoopState",
    "DispatchOutcome",
    "ViolationCandidate",
    "ViolationDispatcher",
    "FullscreenState",
    "GuardOutcome",
    "GuardRails",
    "KeyPress",
    "ExamMonitor",
    "DetectionPolicy",
    "Prediction",
    "CooldownThrottle",
]
