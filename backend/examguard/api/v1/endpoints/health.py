import logging
import time
from typing import Any, Dict, List

import psutil
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from ....core.cache import cache
from ....core.database import get_db
from ....api.deps import get_current_active_superuser
from ....models.user import User
from ....tasks.maintenance import SWEEP_SUMMARY_KEY

logger = logging.getLogger(__name__)

router = APIRouter()

DB_SLOW_MS = 200
CPU_ALERT_PERCENT = 80
MEMORY_ALERT_PERCENT = 85


def _probe_database(db: Session, alerts: List[str]) -> Dict[str, Any]:
    started = time.perf_counter()
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "error", "error": str(e)}

    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
    if elapsed_ms > DB_SLOW_MS:
        alerts.append("Database response time is high")
    return {"status": "healthy", "response_time": elapsed_ms}


def _host_metrics(alerts: List[str]) -> Dict[str, Any]:
    try:
        memory = psutil.virtual_memory()
        disk = psutil.disk_usage('/')
        cpu = psutil.cpu_percent(interval=0)
    except Exception as e:
        logger.error(f"System metrics collection failed: {e}")
        return {"error": str(e)}

    if cpu > CPU_ALERT_PERCENT:
        alerts.append(f"High CPU usage: {cpu}%")
    if memory.percent > MEMORY_ALERT_PERCENT:
        alerts.append(f"High memory usage: {memory.percent}%")
    return {
        "cpu_usage_percent": cpu,
        "memory_usage_percent": memory.percent,
        "disk_usage_percent": round(disk.percent, 2),
        "available_memory_gb": round(memory.available / (1024**3), 2),
    }


@router.get("/")
async def get_basic_health():
    """Liveness probe, no authentication"""
    return {"status": "healthy", "timestamp": time.time(), "service": "examguard-api"}


@router.get("/system")
async def get_system_health(
    current_user: User = Depends(get_current_active_superuser),
    db: Session = Depends(get_db)
):
    """Database, cache and host metrics plus the last exam sweep"""
    alerts: List[str] = []
    database = _probe_database(db, alerts)
    cache_ok = await cache.ahealth_check()

    if database["status"] != "healthy":
        overall = "unhealthy"
    elif not cache_ok:
        overall = "degraded"
    else:
        overall = "healthy"

    return {
        "timestamp": time.time(),
        "overall_status": overall,
        "services": {
            "database": database,
            "cache": {"status": "healthy" if cache_ok else "unhealthy"},
        },
        "performance": _host_metrics(alerts),
        "exam_sweep": await cache.aget(SWEEP_SUMMARY_KEY) if cache_ok else None,
        "alerts": alerts,
    }
