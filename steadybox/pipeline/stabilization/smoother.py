"""Temporal smoothing of detections over a sliding window of frames."""

from __future__ import annotations

import threading
from collections import deque

from loguru import logger

from steadybox.pipeline.stabilization.grid import SpatialGrid
from steadybox.pipeline.types import Detection, DetectionResult


class TemporalSmoother:
    """Merge each new frame's detections with nearby ones from recent frames.

    Keeps the last ``window_size`` results. For every detection of the newest
    frame, the detection itself is collected first, followed by the ones whose
    centers lie within ``match_radius`` pixels, taken from a spatial grid over
    the whole window, up to ``window_size`` in total:

    - at least ``max(1, window_size // 2)`` collected: emit their mean box and
      mean confidence;
    - otherwise, confidence above ``strong_confidence``: emit it unchanged;
    - otherwise: drop it.

    With fewer than two frames of history the input is returned as is.
    ``smooth`` holds one lock for its whole duration; it is meant to be called
    serially by a single producer.
    """

    def __init__(
        self,
        window_size: int = 5,
        *,
        grid_size: int = 32,
        match_radius: float = 50.0,
        strong_confidence: float = 0.5,
    ) -> None:
        """Set up the history window, grid and scratch list."""
        self.window_size = int(window_size)
        self.match_radius = float(match_radius)
        self.strong_confidence = float(strong_confidence)
        self.min_occurrences = max(1, self.window_size // 2)

        self._radius_sq = self.match_radius * self.match_radius
        self._history: deque[DetectionResult] = deque(maxlen=self.window_size)
        self._grid = SpatialGrid(grid_size)
        self._matches: list[Detection] = []
        self._lock = threading.Lock()

    @property
    def history_length(self) -> int:
        """Number of frames currently retained."""
        with self._lock:
            return len(self._history)

    def smooth(self, result: DetectionResult) -> DetectionResult:
        """Push ``result`` into the window and return its smoothed version."""
        with self._lock:
            self._history.append(result)

            if len(self._history) < 2:
                return result
            if result.image_width <= 0 or result.image_height <= 0:
                logger.debug("Skipping smoothing for zero-size frame")
                return result

            self._grid.rebuild(self._history, result.image_width, result.image_height)

            merged: list[Detection] = []
            for det in result.detections:
                matches = self._collect_matches(det)
                if len(matches) >= self.min_occurrences:
                    merged.append(_average(matches))
                elif det.confidence > self.strong_confidence:
                    merged.append(det)

            return DetectionResult(merged, result.image_width, result.image_height)

    def _collect_matches(self, target: Detection) -> list[Detection]:
        matches = self._matches
        matches.clear()
        matches.append(target)
        if len(matches) >= self.window_size:
            return matches
        for candidate in self._grid.neighbours(target):
            if candidate is target:
                continue
            dx = candidate.center_x - target.center_x
            dy = candidate.center_y - target.center_y
            if dx * dx + dy * dy < self._radius_sq:
                matches.append(candidate)
                if len(matches) >= self.window_size:
                    break
        return matches

    def clear(self) -> None:
        """Drop all retained history."""
        with self._lock:
            self._history.clear()
            self._grid.clear()
            self._matches.clear()


def _average(detections: list[Detection]) -> Detection:
    inv_count = 1.0 / len(detections)
    x1 = y1 = x2 = y2 = conf = 0.0
    for det in detections:
        x1 += det.x1
        y1 += det.y1
        x2 += det.x2
        y2 += det.y2
        conf += det.confidence
    return Detection(
        x1 * inv_count,
        y1 * inv_count,
        x2 * inv_count,
        y2 * inv_count,
        conf * inv_count,
        0,
    )
