"""
Browser-level exam guard rails.

Each ``on_*`` handler takes one UI event and reports the matching violation
through the shared dispatcher. Handlers do nothing unless exam mode is
enabled.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..proctoring.catalog import Severity, ViolationType
from .config import ProctorClientSettings
from .dispatcher import DispatchOutcome, ViolationCandidate, ViolationDispatcher

logger = logging.getLogger(__name__)


class FullscreenState(str, Enum):
    INACTIVE = "inactive"
    MONITORING = "monitoring"
    COMPLETED_SUPPRESSED = "completed_suppressed"


@dataclass(frozen=True)
class KeyPress:
    key: str
    ctrl: bool = False
    shift: bool = False
    meta: bool = False

    @property
    def modifier(self) -> bool:
        return self.ctrl or self.meta


@dataclass
class GuardOutcome:
    outcome: Optional[DispatchOutcome] = None
    force_submit: bool = False
    blocked: bool = False
    fullscreen_requested: bool = False


CLIPBOARD_ACTIONS = {"copy": "Copy", "paste": "Paste", "cut": "Cut"}


def classify_key(press: KeyPress) -> Optional[ViolationCandidate]:
    key = press.key.upper() if len(press.key) == 1 else press.key

    if key == "F12" or (press.modifier and press.shift and key == "I"):
        return ViolationCandidate(ViolationType.SUSPICIOUS_ACTIVITY, Severity.HIGH, "DevTools access attempted")
    if press.modifier and press.shift and key == "C":
        return ViolationCandidate(ViolationType.SUSPICIOUS_ACTIVITY, Severity.HIGH, "Inspect element attempted")
    if press.modifier and not press.shift and key == "U":
        return ViolationCandidate(ViolationType.SUSPICIOUS_ACTIVITY, Severity.MEDIUM, "View source attempted")
    if press.modifier and not press.shift and key == "S":
        return ViolationCandidate(ViolationType.SUSPICIOUS_ACTIVITY, Severity.MEDIUM, "Save page attempted")
    if key == "PrintScreen":
        return ViolationCandidate(ViolationType.SUSPICIOUS_ACTIVITY, Severity.HIGH, "Screenshot attempted")
    return None


class GuardRails:
    def __init__(
        self,
        dispatcher: ViolationDispatcher,
        settings: Optional[ProctorClientSettings] = None,
        clock: Callable[[], float] = time.monotonic,
        on_force_submit: Optional[Callable[[], None]] = None,
        request_fullscreen: Optional[Callable[[], None]] = None,
    ):
        self.dispatcher = dispatcher
        self.settings = settings or ProctorClientSettings()
        self._clock = clock
        self.on_force_submit = on_force_submit
        self.request_fullscreen = request_fullscreen

        self.exam_id: Optional[str] = None
        self.session_id: Optional[str] = None
        self.enabled = False
        self.fullscreen_state = FullscreenState.INACTIVE
        self.is_fullscreen = False
        self.tab_switch_count = 0
        self.force_submitted = False
        self._last_fullscreen_exit: Optional[float] = None
        self._last_reentry: Optional[float] = None

    def enable(self, exam_id: str, session_id: Optional[str] = None, is_fullscreen: bool = True) -> None:
        self.exam_id = exam_id
        self.session_id = session_id
        self.enabled = True
        self.is_fullscreen = is_fullscreen
        self.tab_switch_count = 0
        self.force_submitted = False
        self._last_fullscreen_exit = None
        self._last_reentry = None
        if self.fullscreen_state != FullscreenState.COMPLETED_SUPPRESSED:
            self.fullscreen_state = FullscreenState.MONITORING

    def disable(self) -> None:
        self.enabled = False
        if self.fullscreen_state == FullscreenState.MONITORING:
            self.fullscreen_state = FullscreenState.INACTIVE

    def bind_session(self, session_id: str, exam_id: Optional[str] = None) -> None:
        self.session_id = session_id
        if exam_id is not None:
            self.exam_id = exam_id

    def mark_exam_completed(self) -> None:
        """One-way latch: no fullscreen violations after the exam is submitted"""
        self.fullscreen_state = FullscreenState.COMPLETED_SUPPRESSED

    @property
    def exam_completed(self) -> bool:
        return self.fullscreen_state == FullscreenState.COMPLETED_SUPPRESSED

    def _report(self, candidate: ViolationCandidate) -> DispatchOutcome:
        return self.dispatcher.submit(candidate, self.exam_id, self.session_id)

    def on_context_menu(self) -> GuardOutcome:
        if not self.enabled:
            return GuardOutcome()
        outcome = self._report(ViolationCandidate(
            ViolationType.SUSPICIOUS_ACTIVITY, Severity.LOW, "Right-click attempted"
        ))
        return GuardOutcome(outcome=outcome, blocked=True)

    def on_clipboard(self, action: str) -> GuardOutcome:
        if not self.enabled or action not in CLIPBOARD_ACTIONS:
            return GuardOutcome()
        outcome = self._report(ViolationCandidate(
            ViolationType.COPY_PASTE, Severity.MEDIUM, f"{CLIPBOARD_ACTIONS[action]} attempted"
        ))
        return GuardOutcome(outcome=outcome, blocked=True)

    def on_key_down(self, press: KeyPress) -> GuardOutcome:
        if not self.enabled:
            return GuardOutcome()
        candidate = classify_key(press)
        if candidate is None:
            return GuardOutcome()
        return GuardOutcome(outcome=self._report(candidate), blocked=True)

    def on_fullscreen_change(self, is_fullscreen: bool) -> GuardOutcome:
        self.is_fullscreen = is_fullscreen
        if not self.enabled or is_fullscreen:
            return GuardOutcome()
        if self.fullscreen_state != FullscreenState.MONITORING:
            return GuardOutcome()

        now = self._clock()
        if self._last_fullscreen_exit is not None and now - self._last_fullscreen_exit < self.settings.fullscreen_refire_window:
            return GuardOutcome()
        self._last_fullscreen_exit = now

        outcome = self._report(ViolationCandidate(
            ViolationType.FULLSCREEN_EXIT, Severity.HIGH, "Exited fullscreen mode"
        ))
        return GuardOutcome(outcome=outcome)

    def _tab_switched(self) -> GuardOutcome:
        self.tab_switch_count += 1
        outcome = self._report(ViolationCandidate(
            ViolationType.TAB_SWITCH, Severity.MEDIUM, f"Tab switched {self.tab_switch_count} times"
        ))

        force_submit = False
        if self.tab_switch_count >= self.settings.tab_switch_threshold and not self.force_submitted:
            self.force_submitted = True
            force_submit = True
            logger.warning(
                f"Tab switch limit reached ({self.tab_switch_count}/{self.settings.tab_switch_threshold}); "
                f"submitting exam {self.exam_id}"
            )
            if self.on_force_submit is not None:
                self.on_force_submit()
        return GuardOutcome(outcome=outcome, force_submit=force_submit)

    def on_visibility_change(self, hidden: bool) -> GuardOutcome:
        if not self.enabled or not hidden:
            return GuardOutcome()
        return self._tab_switched()

    def on_window_blur(self, document_hidden: bool = False) -> GuardOutcome:
        # a hidden document is already counted by on_visibility_change
        if not self.enabled or document_hidden:
            return GuardOutcome()
        return self._tab_switched()

    def on_click(self) -> GuardOutcome:
        if not self.enabled or self.exam_completed or self.is_fullscreen:
            return GuardOutcome()

        now = self._clock()
        if self._last_reentry is not None and now - self._last_reentry < self.settings.fullscreen_reentry_cooldown:
            return GuardOutcome()
        self._last_reentry = now

        if self.request_fullscreen is not None:
            try:
                self.request_fullscreen()
            except Exception as e:
                logger.debug(f"Fullscreen re-entry refused: {e}")
        return GuardOutcome(fullscreen_requested=True)
