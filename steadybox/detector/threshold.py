"""Feedback controller adapting the confidence threshold to scene density."""

from __future__ import annotations

import threading


class AdaptiveThreshold:
    """Shared confidence cutoff nudged after every completed frame.

    More than ``high_water`` kept detections raise the cutoff by ``step``
    (capped at ``ceiling``); fewer than ``low_water`` lower it (floored at
    ``base``). The decoder reads the value once per frame, so an update
    only affects the next frame.
    """

    def __init__(
        self,
        base: float = 0.25,
        ceiling: float = 0.4,
        step: float = 0.01,
        *,
        high_water: int = 20,
        low_water: int = 5,
    ) -> None:
        """Start at ``base``."""
        self.base = float(base)
        self.ceiling = float(ceiling)
        self.step = float(step)
        self.high_water = int(high_water)
        self.low_water = int(low_water)
        self._value = self.base
        self._lock = threading.Lock()

    @property
    def value(self) -> float:
        """Current threshold."""
        with self._lock:
            return self._value

    def update(self, kept_count: int) -> float:
        """Apply one feedback step for a frame with ``kept_count`` detections."""
        with self._lock:
            if kept_count > self.high_water:
                self._value = min(self.ceiling, self._value + self.step)
            elif kept_count < self.low_water:
                self._value = max(self.base, self._value - self.step)
            return self._value

    def reset(self) -> None:
        """Return to the base threshold."""
        with self._lock:
            self._value = self.base
