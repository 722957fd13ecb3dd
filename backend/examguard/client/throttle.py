import time
from typing import Callable, Dict, Hashable, Optional


class CooldownThrottle:
    """Lets a key through at most once per cooldown window."""

    def __init__(self, cooldown: float, clock: Callable[[], float] = time.monotonic):
        self.cooldown = cooldown
        self._clock = clock
        self._last_seen: Dict[Hashable, float] = {}

    def allow(self, key: Hashable, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        last = self._last_seen.get(key)
        if last is not None and now - last < self.cooldown:
            return False
        self._last_seen[key] = now
        return True

    def reset(self) -> None:
        self._last_seen.clear()
