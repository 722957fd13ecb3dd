"""
Exam-taking coordinator: wires the API client, the detection loop and the
guard rails around one exam attempt.
"""
import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional

from .api_client import ProctoringApiClient
from .config import ProctorClientSettings
from .detection import DetectionLoop, FrameSource, ModelLoader, NoticeCallback
from .dispatcher import ViolationDispatcher
from .guard_rails import GuardRails
from .vision import CameraFrameSource, yolo_model_loader

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "completed"
STATUS_TERMINATED = "terminated"


class ExamMonitor:
    def __init__(
        self,
        api: ProctoringApiClient,
        settings: Optional[ProctorClientSettings] = None,
        model_loader: Optional[ModelLoader] = None,
        on_notice: Optional[NoticeCallback] = None,
        request_fullscreen: Optional[Callable[[], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.api = api
        self.settings = settings or ProctorClientSettings()
        self.dispatcher = ViolationDispatcher(
            api.log_violation, cooldown=self.settings.violation_cooldown, clock=clock
        )
        self.detection = DetectionLoop(
            model_loader,
            self.dispatcher,
            settings=self.settings,
            enabled=model_loader is not None,
            on_notice=on_notice,
        )
        self.guard_rails = GuardRails(
            self.dispatcher,
            settings=self.settings,
            clock=clock,
            on_force_submit=self._on_force_submit,
            request_fullscreen=request_fullscreen,
        )

        # set by from_settings(); begin() falls back to it when no source is passed
        self.frame_source: Optional[FrameSource] = None
        self._owns_resources = False
        self.exam_id: Optional[str] = None
        self.session_id: Optional[str] = None
        self.submitted_status: Optional[str] = None
        self._detection_start: Optional[asyncio.Task] = None
        self._force_submit_task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(
        cls,
        token: str,
        settings: Optional[ProctorClientSettings] = None,
        use_camera: bool = True,
        on_notice: Optional[NoticeCallback] = None,
        request_fullscreen: Optional[Callable[[], None]] = None,
    ) -> "ExamMonitor":
        """Build the agent from ``PROCTOR_*`` settings: REST client, YOLO loader and webcam"""
        settings = settings or ProctorClientSettings()
        api = ProctoringApiClient(settings.api_base_url, token, timeout=settings.request_timeout)
        monitor = cls(
            api,
            settings,
            model_loader=yolo_model_loader(settings.model_path) if use_camera else None,
            on_notice=on_notice,
            request_fullscreen=request_fullscreen,
        )
        if use_camera:
            monitor.frame_source = CameraFrameSource(settings.camera_index)
        monitor._owns_resources = True
        return monitor

    async def begin(self, exam_id: str, frame_source: Optional[FrameSource] = None) -> Dict[str, Any]:
        """Start monitoring, then open (or resume) the exam session"""
        self.exam_id = exam_id
        frame_source = frame_source or self.frame_source
        self.submitted_status = None
        self.dispatcher.open()

        # the model loads while the session round trip is in flight
        self._detection_start = asyncio.create_task(self.detection.start(frame_source, exam_id))

        try:
            session = await self.api.start_session(exam_id)
        except Exception:
            await self._stop_monitoring()
            raise

        self.session_id = session["session_id"]
        self.detection.bind_session(self.session_id, exam_id)
        self.guard_rails.enable(exam_id, self.session_id)
        logger.info(
            f"{'Resumed' if session.get('resumed') else 'Started'} session {self.session_id} for exam {exam_id}"
        )
        return session

    async def sync_activity(self, answers: Optional[Dict[str, str]] = None) -> Optional[Dict[str, Any]]:
        if self.session_id is None or self.submitted_status is not None:
            return None
        return await self.api.update_activity(
            self.session_id,
            is_fullscreen_active=self.guard_rails.is_fullscreen,
            tab_switch_count=self.guard_rails.tab_switch_count,
            answers=answers,
        )

    async def _stop_monitoring(self) -> None:
        self.guard_rails.disable()
        if self._detection_start is not None and not self._detection_start.done():
            self._detection_start.cancel()
            await asyncio.gather(self._detection_start, return_exceptions=True)
        await self.detection.aclose()
        await self.dispatcher.drain()
        self.dispatcher.close()

    async def submit(self, status: str = STATUS_COMPLETED) -> Optional[Dict[str, Any]]:
        if self.submitted_status is not None:
            return None
        self.submitted_status = status
        self.guard_rails.mark_exam_completed()
        await self._stop_monitoring()

        if self.session_id is None:
            return None
        result = await self.api.end_session(self.session_id, status)
        logger.info(f"Session {self.session_id} ended with status {status}")
        return result

    def _on_force_submit(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error("Cannot force-submit exam: no running event loop")
            return
        self._force_submit_task = loop.create_task(self.submit(STATUS_TERMINATED))

    async def wait_force_submit(self) -> None:
        if self._force_submit_task is not None:
            await self._force_submit_task

    async def __aenter__(self) -> "ExamMonitor":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.submitted_status is None:
            await self._stop_monitoring()
        if self._owns_resources:
            await self.aclose()

    async def aclose(self) -> None:
        """Release the camera and HTTP client built by from_settings()"""
        release = getattr(self.frame_source, "release", None)
        if release is not None:
            release()
        await self.api.aclose()
