"""
Tests for the exam-taking coordinator and its REST binding
"""
import asyncio
import json
from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from examguard.client.api_client import ApiError, ProctoringApiClient
from examguard.client.config import ProctorClientSettings
from examguard.client.detection import LoopState
from examguard.client.dispatcher import DispatchOutcome, ViolationCandidate
from examguard.client.monitor import ExamMonitor
from examguard.proctoring.catalog import Severity, ViolationType

from conftest import wait_until

COPY = ViolationCandidate(ViolationType.COPY_PASTE, Severity.MEDIUM, "Copy attempted")


class FakeFrames:
    def is_ready(self):
        return True

    def read(self):
        return "frame"


class EmptyRoomClassifier:
    async def detect(self, frame):
        return []


def fake_api(session_id="s1", start_delay=0.0):
    api = AsyncMock()

    async def start_session(exam_id):
        await asyncio.sleep(start_delay)
        return {"session_id": session_id, "exam_id": exam_id, "status": "active", "resumed": False}

    api.start_session.side_effect = start_session
    api.end_session.return_value = {"session_id": session_id, "status": "completed"}
    api.log_violation.return_value = {"risk_score": 5, "total_violations": 1}
    return api


@pytest.fixture
def settings():
    return ProctorClientSettings(
        detection_interval=3600,
        frame_poll_interval=0.01,
        frame_ready_timeout=0.1,
    )


class TestExamMonitor:
    @pytest.mark.asyncio
    async def test_begin_and_submit(self, settings):
        api = fake_api()
        monitor = ExamMonitor(api, settings)

        session = await monitor.begin("EXAM-1")
        assert session["session_id"] == "s1"
        assert monitor.guard_rails.enabled

        await monitor.submit()

        api.end_session.assert_awaited_once_with("s1", "completed")
        assert monitor.guard_rails.exam_completed
        assert not monitor.dispatcher.is_open

    @pytest.mark.asyncio
    async def test_detection_binds_session_after_round_trip(self, settings):
        api = fake_api(session_id="s-late", start_delay=0.02)

        async def loader():
            return EmptyRoomClassifier()

        monitor = ExamMonitor(api, settings, model_loader=loader)
        await monitor.begin("EXAM-1", FakeFrames())
        await wait_until(lambda: monitor.detection.state is LoopState.MONITORING)

        assert monitor.detection.session.session_id == "s-late"

        await monitor.submit()
        sent = [call.args[0] for call in api.log_violation.await_args_list]
        assert all(payload["session_id"] == "s-late" for payload in sent)
        assert monitor.detection.state is LoopState.STOPPED

    @pytest.mark.asyncio
    async def test_tab_switch_limit_terminates_session(self, settings):
        api = fake_api()
        monitor = ExamMonitor(api, settings)
        await monitor.begin("EXAM-1")

        for _ in range(settings.tab_switch_threshold):
            monitor.guard_rails.on_visibility_change(hidden=True)
        await monitor.wait_force_submit()

        api.end_session.assert_awaited_once_with("s1", "terminated")
        # the shared cooldown collapses the burst into a single report
        assert api.log_violation.await_count == 1

    @pytest.mark.asyncio
    async def test_no_violations_after_submit(self, settings):
        api = fake_api()
        monitor = ExamMonitor(api, settings)
        await monitor.begin("EXAM-1")
        await monitor.submit()

        assert monitor.guard_rails.on_fullscreen_change(False).outcome is None
        assert monitor.dispatcher.submit(COPY, "EXAM-1", "s1") is DispatchOutcome.CLOSED
        assert await monitor.submit() is None
        api.end_session.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_start_stops_monitoring(self, settings):
        api = fake_api()
        api.start_session.side_effect = ApiError(409, "conflict", "You have already completed this exam")
        monitor = ExamMonitor(api, settings)

        with pytest.raises(ApiError):
            await monitor.begin("EXAM-1")

        assert not monitor.dispatcher.is_open

    @pytest.mark.asyncio
    async def test_retry_after_failed_start_still_reports_fullscreen_exit(self, settings):
        api = fake_api()
        monitor = ExamMonitor(api, settings)
        healthy_start = api.start_session.side_effect
        api.start_session.side_effect = ApiError(503, "unavailable", "Service unavailable")

        with pytest.raises(ApiError):
            await monitor.begin("EXAM-1")
        assert not monitor.guard_rails.exam_completed

        api.start_session.side_effect = healthy_start
        await monitor.begin("EXAM-1")

        assert monitor.guard_rails.on_fullscreen_change(False).outcome is DispatchOutcome.SENT
        await monitor.submit()
        sent = [call.args[0]["type"] for call in api.log_violation.await_args_list]
        assert sent == ["fullscreen_exit"]

    @pytest.mark.asyncio
    async def test_sync_activity_sends_guard_state(self, settings):
        api = fake_api()
        monitor = ExamMonitor(api, settings)
        await monitor.begin("EXAM-1")
        monitor.guard_rails.on_window_blur()

        await monitor.sync_activity(answers={"q1": "a"})

        api.update_activity.assert_awaited_once_with(
            "s1", is_fullscreen_active=True, tab_switch_count=1, answers={"q1": "a"}
        )
        await monitor.submit()

    @pytest.mark.asyncio
    async def test_from_settings_wires_camera_model_and_api(self):
        settings = ProctorClientSettings(
            api_base_url="http://proctor.test/api/v1",
            request_timeout=4.0,
            model_path="weights/exam.pt",
            camera_index=2,
        )
        camera = Mock()
        with patch("examguard.client.monitor.CameraFrameSource", return_value=camera) as camera_cls, \
                patch("examguard.client.monitor.yolo_model_loader") as loader_factory:
            async with ExamMonitor.from_settings("token-123", settings) as monitor:
                camera_cls.assert_called_once_with(2)
                loader_factory.assert_called_once_with("weights/exam.pt")
                assert monitor.frame_source is camera
                assert monitor.detection.model_loader is loader_factory.return_value
                assert monitor.detection.enabled
                assert monitor.api.base_url == "http://proctor.test/api/v1"
                assert monitor.api._client.timeout == httpx.Timeout(4.0)
                assert monitor.api._headers["Authorization"] == "Bearer token-123"

        camera.release.assert_called_once()
        assert monitor.api._client.is_closed

    @pytest.mark.asyncio
    async def test_from_settings_without_camera(self):
        async with ExamMonitor.from_settings("token-123", ProctorClientSettings(), use_camera=False) as monitor:
            assert monitor.frame_source is None
            assert not monitor.detection.enabled


class TestProctoringApiClient:
    def _client(self, handler):
        transport = httpx.MockTransport(handler)
        http = httpx.AsyncClient(base_url="http://testserver/api/v1", transport=transport)
        return ProctoringApiClient("http://testserver/api/v1", token="tok", client=http), http

    @pytest.mark.asyncio
    async def test_log_violation_posts_payload(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["auth"] = request.headers["authorization"]
            seen["body"] = request.read()
            return httpx.Response(201, json={"risk_score": 15, "total_violations": 1})

        api, http = self._client(handler)
        body = await api.log_violation({"exam_id": "E", "session_id": "s", "type": "cell_phone"})

        assert body["risk_score"] == 15
        assert seen["path"] == "/api/v1/proctoring/violation"
        assert seen["auth"] == "Bearer tok"
        await http.aclose()

    @pytest.mark.asyncio
    async def test_activity_omits_unset_fields(self):
        seen = {}

        def handler(request):
            seen["body"] = request.read()
            return httpx.Response(200, json={"session_id": "s"})

        api, http = self._client(handler)
        await api.update_activity("s", tab_switch_count=2)

        assert json.loads(seen["body"]) == {"tab_switch_count": 2}
        await http.aclose()

    @pytest.mark.asyncio
    async def test_service_error_is_raised(self):
        def handler(request):
            return httpx.Response(409, json={"error": "conflict", "message": "You have already completed this exam"})

        api, http = self._client(handler)
        with pytest.raises(ApiError) as exc_info:
            await api.start_session("E")

        assert exc_info.value.status_code == 409
        assert exc_info.value.kind == "conflict"
        await http.aclose()

    @pytest.mark.asyncio
    async def test_framework_error_is_raised(self):
        def handler(request):
            return httpx.Response(401, json={"detail": "Could not validate credentials"})

        api, http = self._client(handler)
        with pytest.raises(ApiError) as exc_info:
            await api.get_log("s")

        assert exc_info.value.kind == "http_error"
        assert exc_info.value.message == "Could not validate credentials"
        await http.aclose()
