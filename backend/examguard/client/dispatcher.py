"""
Single path from violation candidates (detection loop and guard rails) to the
``log-violation`` endpoint.

A candidate is dropped, never queued or retried, when the dispatcher is
closed, when no session is known yet, or when the same violation type was
sent within the cooldown window.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Set

from ..proctoring.catalog import Severity, ViolationType
from .throttle import CooldownThrottle

logger = logging.getLogger(__name__)

Sender = Callable[[dict], Awaitable[Any]]


@dataclass(frozen=True)
class ViolationCandidate:
    type: ViolationType
    severity: Severity
    description: str
    screenshot: Optional[str] = None

    def to_payload(self, exam_id: str, session_id: str) -> dict:
        payload = {
            "exam_id": exam_id,
            "session_id": session_id,
            "type": self.type.value,
            "severity": self.severity.value,
            "description": self.description,
        }
        if self.screenshot:
            payload["screenshot"] = self.screenshot
        return payload


class DispatchOutcome(str, Enum):
    SENT = "sent"
    THROTTLED = "throttled"
    NO_CONTEXT = "no_context"
    CLOSED = "closed"
    FAILED = "failed"


class ViolationDispatcher:
    def __init__(
        self,
        sender: Sender,
        cooldown: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._sender = sender
        self._throttle = CooldownThrottle(cooldown, clock)
        self._open = False
        self._pending: Set[asyncio.Task] = set()

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        """Start a monitoring session with fresh cooldowns"""
        self._throttle.reset()
        self._open = True

    def close(self) -> None:
        self._open = False
        for task in list(self._pending):
            task.cancel()

    def _admit(self, candidate: ViolationCandidate, exam_id: Optional[str], session_id: Optional[str]) -> Optional[DispatchOutcome]:
        if not self._open:
            return DispatchOutcome.CLOSED
        if not exam_id or not session_id:
            logger.debug(f"Dropping {candidate.type.value}: no exam/session context yet")
            return DispatchOutcome.NO_CONTEXT
        if not self._throttle.allow(candidate.type):
            return DispatchOutcome.THROTTLED
        return None

    async def _send(self, payload: dict) -> DispatchOutcome:
        # liveness is re-checked here: close() may have run while the caller was suspended
        if not self._open:
            return DispatchOutcome.CLOSED
        try:
            await self._sender(payload)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Failed to report {payload['type']} violation: {e}")
            return DispatchOutcome.FAILED
        logger.info(f"Reported {payload['type']} violation ({payload['severity']}): {payload['description']}")
        return DispatchOutcome.SENT

    async def dispatch(
        self,
        candidate: ViolationCandidate,
        exam_id: Optional[str],
        session_id: Optional[str],
    ) -> DispatchOutcome:
        rejected = self._admit(candidate, exam_id, session_id)
        if rejected is not None:
            return rejected
        return await self._send(candidate.to_payload(exam_id, session_id))

    def submit(
        self,
        candidate: ViolationCandidate,
        exam_id: Optional[str],
        session_id: Optional[str],
    ) -> DispatchOutcome:
        """Synchronous entry point for event handlers.

        Admission (including the cooldown) is decided immediately; the send
        itself runs as a task on the running event loop. ``SENT`` here means
        the report was scheduled.
        """
        rejected = self._admit(candidate, exam_id, session_id)
        if rejected is not None:
            return rejected

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"Cannot report {candidate.type.value} violation: no running event loop")
            return DispatchOutcome.FAILED

        task = loop.create_task(self._send(candidate.to_payload(exam_id, session_id)))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return DispatchOutcome.SENT

    async def drain(self) -> None:
        """Wait for reports scheduled by ``submit`` to finish"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
