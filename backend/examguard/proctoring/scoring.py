from typing import Mapping

from .catalog import weight_for

MAX_RISK_SCORE = 100
FLAG_THRESHOLD = 50


def score(summary: Mapping[str, int]) -> int:
    """Weighted sum of violation counts, capped at 100.

    Kinds outside the catalog still count, with the default weight.
    """
    raw = sum(max(int(count or 0), 0) * weight_for(kind) for kind, count in summary.items())
    return min(raw, MAX_RISK_SCORE)


def should_flag(risk_score: int, currently_flagged: bool) -> bool:
    # the scorer only ever raises the flag; clearing it is a review action
    return bool(currently_flagged) or risk_score >= FLAG_THRESHOLD
