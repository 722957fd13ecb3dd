from .catalog import (
    ViolationType,
    Severity,
    DEFAULT_SEVERITY,
    DEFAULT_WEIGHT,
    VIOLATION_WEIGHTS,
    VIOLATION_KINDS,
    empty_summary,
    parse_severity,
    parse_violation_type,
    weight_for,
)
from .scoring import FLAG_THRESHOLD, MAX_RISK_SCORE, score, should_flag

__all__ = [
    "ViolationType",
    "Severity",
    "DEFAULT_SEVERITY",
    "DEFAULT_WEIGHT",
    "VIOLATION_WEIGHTS",
    "VIOLATION_KINDS",
    "empty_summary",
    "parse_severity",
    "parse_violation_type",
    "weight_for",
    "FLAG_THRESHOLD",
    "MAX_RISK_SCORE",
    "score",
    "should_flag",
]
