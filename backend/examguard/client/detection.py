"""
Periodic object detection on the candidate's camera feed.

The loop owns a ``DetectionSession`` for the lifetime of one monitoring run:
it is created by ``start()`` and discarded by ``stop()``. Ticks never overlap;
a tick that comes due while the previous one is still running is dropped.
"""
import asyncio
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Protocol

from .config import ProctorClientSettings
from .dispatcher import DispatchOutcome, ViolationCandidate, ViolationDispatcher
from .policy import DetectionPolicy, Prediction

logger = logging.getLogger(__name__)


class LoopState(str, Enum):
    IDLE = "idle"
    LOADING_MODEL = "loading_model"
    MONITORING = "monitoring"
    STOPPED = "stopped"


class Classifier(Protocol):
    async def detect(self, frame: Any) -> List[Prediction]:
        ...


class FrameSource(Protocol):
    """Camera feed. An optional ``snapshot()`` returning a data URL is attached to reports."""

    def is_ready(self) -> bool:
        ...

    def read(self) -> Any:
        ...


ModelLoader = Callable[[], Awaitable[Classifier]]
NoticeCallback = Callable[[str], None]


@dataclass
class DetectionSession:
    frame_source: FrameSource
    exam_id: Optional[str]
    session_id: Optional[str]
    classifier: Optional[Classifier] = None
    alive: bool = True
    tick_in_flight: bool = False
    ticks_run: int = 0
    ticks_dropped: int = 0
    tick_task: Optional[asyncio.Task] = field(default=None, repr=False)


class DetectionLoop:
    def __init__(
        self,
        model_loader: ModelLoader,
        dispatcher: ViolationDispatcher,
        settings: Optional[ProctorClientSettings] = None,
        policy: Optional[DetectionPolicy] = None,
        enabled: bool = True,
        on_notice: Optional[NoticeCallback] = None,
    ):
        self.settings = settings or ProctorClientSettings()
        self.model_loader = model_loader
        self.dispatcher = dispatcher
        self.policy = policy or DetectionPolicy(
            person_confidence=self.settings.person_confidence,
            object_confidence=self.settings.object_confidence,
        )
        self.enabled = enabled
        self.on_notice = on_notice
        self.state = LoopState.IDLE
        self.last_error: Optional[str] = None
        self.session: Optional[DetectionSession] = None

    @property
    def is_monitoring(self) -> bool:
        return self.state == LoopState.MONITORING

    async def start(self, frame_source: Optional[FrameSource], exam_id: Optional[str], session_id: Optional[str] = None) -> LoopState:
        if not self.enabled or frame_source is None:
            return self.state
        if self.state in (LoopState.LOADING_MODEL, LoopState.MONITORING):
            return self.state

        session = DetectionSession(frame_source=frame_source, exam_id=exam_id, session_id=session_id)
        self.session = session
        self.last_error = None
        self.state = LoopState.LOADING_MODEL
        self.dispatcher.open()

        try:
            session.classifier = await asyncio.wait_for(
                self.model_loader(), timeout=self.settings.model_load_timeout
            )
        except asyncio.TimeoutError:
            return self._fail(session, "Detection model did not load in time")
        except Exception as e:
            logger.error(f"Failed to load detection model: {e}", exc_info=True)
            return self._fail(session, f"Failed to load detection model: {e}")

        if not await self._wait_for_frame(session):
            return self._fail(session, "Camera frame did not become ready")

        # stop() may have run while the model or the frame was loading
        if not session.alive or self.session is not session:
            return self.state

        self.state = LoopState.MONITORING
        session.tick_task = asyncio.create_task(self._run(session))
        logger.info(f"Object detection started for exam {exam_id}")
        return self.state

    async def _wait_for_frame(self, session: DetectionSession) -> bool:
        waited = 0.0
        while session.alive:
            if await asyncio.to_thread(session.frame_source.is_ready):
                return True
            if waited >= self.settings.frame_ready_timeout:
                return False
            await asyncio.sleep(self.settings.frame_poll_interval)
            waited += self.settings.frame_poll_interval
        return False

    def _fail(self, session: DetectionSession, message: str) -> LoopState:
        if self.session is not session:
            return self.state
        logger.warning(f"Monitoring disabled: {message}")
        self.last_error = message
        self.stop()
        if self.on_notice is not None:
            try:
                self.on_notice(message)
            except Exception as e:
                logger.error(f"Notice callback failed: {e}")
        return self.state

    async def _run(self, session: DetectionSession) -> None:
        interval = self.settings.detection_interval
        pending: Optional[asyncio.Task] = None
        try:
            while session.alive:
                if session.tick_in_flight:
                    session.ticks_dropped += 1
                    logger.debug("Previous detection tick still running; dropping this one")
                else:
                    pending = asyncio.create_task(self._tick(session))
                await asyncio.sleep(interval)
        finally:
            if pending is not None and not pending.done():
                pending.cancel()

    async def tick(self) -> List[DispatchOutcome]:
        """Run one detection pass now against the current session"""
        if self.session is None or self.state != LoopState.MONITORING:
            return []
        return await self._tick(self.session)

    async def _tick(self, session: DetectionSession) -> List[DispatchOutcome]:
        if not session.alive or session.tick_in_flight:
            if session.alive:
                session.ticks_dropped += 1
            return []
        session.tick_in_flight = True
        try:
            # camera reads block, so they run off the event loop like inference
            frame = await asyncio.to_thread(session.frame_source.read)
            predictions = await session.classifier.detect(frame)
            candidates = await self._with_screenshot(session, self.policy.evaluate(predictions))
            outcomes = []
            for candidate in candidates:
                if not session.alive:
                    break
                # identifiers are read at dispatch time so a late bind_session() applies
                outcomes.append(await self.dispatcher.dispatch(candidate, session.exam_id, session.session_id))
            session.ticks_run += 1
            return outcomes
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Detection tick failed: {e}")
            return []
        finally:
            session.tick_in_flight = False

    async def _with_screenshot(
        self, session: DetectionSession, candidates: List[ViolationCandidate]
    ) -> List[ViolationCandidate]:
        snapshot = getattr(session.frame_source, "snapshot", None)
        if not candidates or snapshot is None:
            return candidates
        try:
            image = await asyncio.to_thread(snapshot)
        except Exception as e:
            logger.warning(f"Could not capture violation screenshot: {e}")
            return candidates
        if not image:
            return candidates
        return [replace(candidate, screenshot=image) for candidate in candidates]

    def bind_session(self, session_id: str, exam_id: Optional[str] = None) -> None:
        if self.session is None:
            return
        self.session.session_id = session_id
        if exam_id is not None:
            self.session.exam_id = exam_id

    def stop(self) -> None:
        session = self.session
        self.session = None
        if session is not None:
            session.alive = False
            if session.tick_task is not None:
                session.tick_task.cancel()
            self.state = LoopState.STOPPED
            logger.info("Object detection stopped")

    async def aclose(self) -> None:
        session = self.session
        self.stop()
        if session is not None and session.tick_task is not None:
            await asyncio.gather(session.tick_task, return_exceptions=True)

    async def __aenter__(self) -> "DetectionLoop":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
