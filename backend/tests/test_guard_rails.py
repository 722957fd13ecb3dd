"""
Tests for the browser guard rails
"""
from unittest.mock import Mock

import pytest

from examguard.client.config import ProctorClientSettings
from examguard.client.dispatcher import DispatchOutcome, ViolationDispatcher
from examguard.client.guard_rails import FullscreenState, GuardRails, KeyPress


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RecordingSender:
    def __init__(self):
        self.payloads = []

    async def __call__(self, payload):
        self.payloads.append(payload)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def dispatcher(sender, clock):
    dispatcher = ViolationDispatcher(sender, cooldown=3.0, clock=clock)
    dispatcher.open()
    return dispatcher


@pytest.fixture
def force_submit():
    return Mock()


@pytest.fixture
def request_fullscreen():
    return Mock()


@pytest.fixture
def rails(dispatcher, clock, force_submit, request_fullscreen):
    rails = GuardRails(
        dispatcher,
        settings=ProctorClientSettings(),
        clock=clock,
        on_force_submit=force_submit,
        request_fullscreen=request_fullscreen,
    )
    rails.enable("EXAM-1", "s1")
    return rails


class TestInterceptors:
    @pytest.mark.asyncio
    async def test_disabled_rails_ignore_events(self, rails, dispatcher, sender):
        rails.disable()

        assert rails.on_context_menu().outcome is None
        assert rails.on_clipboard("copy").outcome is None
        assert rails.on_visibility_change(hidden=True).outcome is None

        await dispatcher.drain()
        assert sender.payloads == []

    @pytest.mark.asyncio
    async def test_context_menu(self, rails, dispatcher, sender):
        result = rails.on_context_menu()
        await dispatcher.drain()

        assert result.blocked is True
        assert sender.payloads[0]["type"] == "suspicious_activity"
        assert sender.payloads[0]["severity"] == "low"
        assert sender.payloads[0]["description"] == "Right-click attempted"

    @pytest.mark.asyncio
    async def test_clipboard_actions(self, rails, dispatcher, sender, clock):
        for action in ("copy", "paste", "cut"):
            rails.on_clipboard(action)
            clock.advance(5)
        await dispatcher.drain()

        assert [p["description"] for p in sender.payloads] == ["Copy attempted", "Paste attempted", "Cut attempted"]
        assert {p["type"] for p in sender.payloads} == {"copy_paste"}

    @pytest.mark.parametrize("press, description, severity", [
        (KeyPress("F12"), "DevTools access attempted", "high"),
        (KeyPress("i", ctrl=True, shift=True), "DevTools access attempted", "high"),
        (KeyPress("c", ctrl=True, shift=True), "Inspect element attempted", "high"),
        (KeyPress("u", ctrl=True), "View source attempted", "medium"),
        (KeyPress("s", meta=True), "Save page attempted", "medium"),
        (KeyPress("PrintScreen"), "Screenshot attempted", "high"),
    ])
    @pytest.mark.asyncio
    async def test_blocked_shortcuts(self, rails, dispatcher, sender, press, description, severity):
        result = rails.on_key_down(press)
        await dispatcher.drain()

        assert result.blocked is True
        assert sender.payloads == [{
            "exam_id": "EXAM-1",
            "session_id": "s1",
            "type": "suspicious_activity",
            "severity": severity,
            "description": description,
        }]

    @pytest.mark.asyncio
    async def test_ordinary_keys_pass(self, rails):
        assert rails.on_key_down(KeyPress("a")).blocked is False
        assert rails.on_key_down(KeyPress("c", ctrl=True)).outcome is None


class TestFullscreen:
    @pytest.mark.asyncio
    async def test_exit_reported_then_suppressed(self, rails, dispatcher, sender, clock):
        assert rails.on_fullscreen_change(False).outcome is DispatchOutcome.SENT
        rails.on_fullscreen_change(True)
        clock.advance(1)
        assert rails.on_fullscreen_change(False).outcome is None

        clock.advance(5)
        assert rails.on_fullscreen_change(False).outcome is DispatchOutcome.SENT
        await dispatcher.drain()

        assert [p["description"] for p in sender.payloads] == ["Exited fullscreen mode"] * 2
        assert sender.payloads[0]["severity"] == "high"

    @pytest.mark.asyncio
    async def test_completed_latch_silences_exit(self, rails, dispatcher, sender):
        rails.mark_exam_completed()
        rails.enable("EXAM-1", "s1")

        assert rails.fullscreen_state is FullscreenState.COMPLETED_SUPPRESSED
        assert rails.on_fullscreen_change(False).outcome is None
        await dispatcher.drain()
        assert sender.payloads == []

    @pytest.mark.asyncio
    async def test_click_requests_reentry_without_violation(self, rails, dispatcher, sender, clock, request_fullscreen):
        rails.on_fullscreen_change(False)
        await dispatcher.drain()
        sender.payloads.clear()

        assert rails.on_click().fullscreen_requested is True
        clock.advance(0.1)
        assert rails.on_click().fullscreen_requested is False
        clock.advance(1)
        assert rails.on_click().fullscreen_requested is True

        await dispatcher.drain()
        assert request_fullscreen.call_count == 2
        assert sender.payloads == []

    def test_click_in_fullscreen_does_nothing(self, rails, request_fullscreen):
        assert rails.on_click().fullscreen_requested is False
        request_fullscreen.assert_not_called()

    @pytest.mark.asyncio
    async def test_reentry_refusal_is_tolerated(self, rails, dispatcher, request_fullscreen):
        request_fullscreen.side_effect = PermissionError("user gesture required")
        rails.on_fullscreen_change(False)

        assert rails.on_click().fullscreen_requested is True
        await dispatcher.drain()


class TestTabSwitching:
    @pytest.mark.asyncio
    async def test_threshold_forces_submit_once(self, rails, dispatcher, clock, force_submit):
        outcomes = []
        for _ in range(4):
            outcomes.append(rails.on_visibility_change(hidden=True))
            clock.advance(5)

        assert [o.force_submit for o in outcomes] == [False, False, True, False]
        assert rails.tab_switch_count == 4
        force_submit.assert_called_once()
        await dispatcher.drain()

    @pytest.mark.asyncio
    async def test_blur_counts_only_while_visible(self, rails, dispatcher):
        rails.on_window_blur(document_hidden=True)
        assert rails.tab_switch_count == 0

        rails.on_window_blur()
        assert rails.tab_switch_count == 1
        await dispatcher.drain()

    @pytest.mark.asyncio
    async def test_visible_again_is_not_a_switch(self, rails):
        rails.on_visibility_change(hidden=False)
        assert rails.tab_switch_count == 0

    @pytest.mark.asyncio
    async def test_report_text_counts_switches(self, rails, dispatcher, sender, clock):
        rails.on_visibility_change(hidden=True)
        clock.advance(5)
        rails.on_window_blur()
        await dispatcher.drain()

        assert [p["description"] for p in sender.payloads] == ["Tab switched 1 times", "Tab switched 2 times"]
        assert {p["severity"] for p in sender.payloads} == {"medium"}

    @pytest.mark.asyncio
    async def test_counter_increments_even_when_throttled(self, rails, dispatcher, sender):
        rails.on_visibility_change(hidden=True)
        second = rails.on_visibility_change(hidden=True)
        await dispatcher.drain()

        assert second.outcome is DispatchOutcome.THROTTLED
        assert rails.tab_switch_count == 2
        assert len(sender.payloads) == 1
