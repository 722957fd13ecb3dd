import logging
from datetime import datetime
from typing import Optional

from ..core import database
from ..core.cache import cache
from ..core.celery_app import celery_app
from ..services.exam_service import sweep_expired_exams
from ..utils.timezone import get_utc_now, to_naive_utc

logger = logging.getLogger(__name__)

SWEEP_SUMMARY_KEY = "exam_sweep:last_run"


def run_exam_sweep(now: Optional[datetime] = None) -> Optional[dict]:
    """Mark exams past their end date inactive.

    Never raises: a failed run is logged and the next scheduled run proceeds.
    """
    now = to_naive_utc(now) if now else get_utc_now()
    db = database.SessionLocal()
    try:
        deactivated = sweep_expired_exams(db, now)
    except Exception as e:
        db.rollback()
        logger.error(f"Error marking expired exams as inactive: {e}", exc_info=True)
        return None
    finally:
        db.close()

    if deactivated:
        logger.info(f"Marked {deactivated} expired exam(s) as inactive")

    summary = {
        "deactivated": deactivated,
        "ran_at": now.isoformat(),
    }
    cache.set(SWEEP_SUMMARY_KEY, summary, ttl=24 * 3600)
    return summary


@celery_app.task(name="cleanup_expired_exams")
def cleanup_expired_exams():
    """Celery beat entry point for the hourly sweep"""
    return run_exam_sweep()
