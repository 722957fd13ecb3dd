"""
Violation catalog: the fixed set of violation kinds, their scoring weights,
and the severity scale.
"""
from enum import Enum
from typing import Dict

from ..core.exceptions import InvalidArgumentError


class ViolationType(str, Enum):
    NO_FACE = "no_face"
    MULTIPLE_FACES = "multiple_faces"
    CELL_PHONE = "cell_phone"
    PROHIBITED_OBJECT = "prohibited_object"
    TAB_SWITCH = "tab_switch"
    FULLSCREEN_EXIT = "fullscreen_exit"
    COPY_PASTE = "copy_paste"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


DEFAULT_SEVERITY = Severity.MEDIUM

# weight applied to kinds missing from this table
DEFAULT_WEIGHT = 5

VIOLATION_WEIGHTS: Dict[str, int] = {
    ViolationType.NO_FACE.value: 8,
    ViolationType.MULTIPLE_FACES.value: 10,
    ViolationType.CELL_PHONE.value: 15,
    ViolationType.PROHIBITED_OBJECT.value: 12,
    ViolationType.TAB_SWITCH.value: 5,
    ViolationType.FULLSCREEN_EXIT.value: 6,
    ViolationType.COPY_PASTE.value: 7,
    ViolationType.SUSPICIOUS_ACTIVITY.value: 10,
}

VIOLATION_KINDS = tuple(kind.value for kind in ViolationType)


def weight_for(kind: str) -> int:
    return VIOLATION_WEIGHTS.get(kind, DEFAULT_WEIGHT)


def empty_summary() -> Dict[str, int]:
    return {kind: 0 for kind in VIOLATION_KINDS}


def parse_violation_type(value) -> ViolationType:
    try:
        return ViolationType(value)
    except ValueError:
        raise InvalidArgumentError(
            f"Unknown violation type '{value}'. Expected one of: {', '.join(VIOLATION_KINDS)}"
        )


def parse_severity(value) -> Severity:
    if value is None:
        return DEFAULT_SEVERITY
    try:
        return Severity(value)
    except ValueError:
        raise InvalidArgumentError(
            f"Unknown severity '{value}'. Expected one of: {', '.join(s.value for s in Severity)}"
        )
