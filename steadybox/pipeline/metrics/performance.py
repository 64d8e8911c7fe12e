"""Performance tracking helpers for the detection pipeline."""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import TYPE_CHECKING

from steadybox.pipeline.types import PerformanceMetrics


if TYPE_CHECKING:
    from steadybox.pipeline.types import DetectionResult


class PerformanceTracker:
    """Track frame rate and cycle latency with moving averages.

    ``tick_camera`` is called when a frame enters a detection cycle and
    ``add_inference_time`` when the cycle completes; the two may come from
    different threads.
    """

    def __init__(self, avg_frames: int = 30) -> None:
        """Initialize the tracker with a rolling window size."""
        self.avg_frames = avg_frames
        self.camera_times: deque[float] = deque(maxlen=avg_frames)
        self.inference_times: deque[float] = deque(maxlen=avg_frames)
        self.last_camera_time: float | None = None
        self.frame_count = 0
        self.start_time = time.perf_counter()
        self._lock = threading.Lock()

    def tick_camera(self) -> None:
        """Record a frame tick for FPS estimation."""
        now = time.perf_counter()
        with self._lock:
            if self.last_camera_time is not None:
                self.camera_times.append(now - self.last_camera_time)
            self.last_camera_time = now
            self.frame_count += 1

    def add_inference_time(self, elapsed_ms: float) -> None:
        """Record a single cycle duration in milliseconds."""
        with self._lock:
            self.inference_times.append(elapsed_ms)

    def get_metrics(self) -> PerformanceMetrics:
        """Compute aggregated performance metrics."""
        metrics = PerformanceMetrics()

        with self._lock:
            camera_times = list(self.camera_times)
            inference_times = list(self.inference_times)
            frame_count = self.frame_count

        if camera_times:
            avg_camera_time = sum(camera_times) / len(camera_times)
            metrics.camera_fps = 1.0 / avg_camera_time if avg_camera_time > 0 else 0.0

        if inference_times:
            metrics.inference_ms = sum(inference_times) / len(inference_times)
            metrics.inference_capacity_fps = (
                1000.0 / metrics.inference_ms if metrics.inference_ms > 0 else 0.0
            )

            if metrics.camera_fps > 0:
                frame_budget_ms = 1000.0 / metrics.camera_fps
                metrics.frame_budget_percent = (
                    metrics.inference_ms / frame_budget_ms
                ) * 100

        elapsed = time.perf_counter() - self.start_time
        metrics.actual_throughput_fps = frame_count / elapsed if elapsed > 0 else 0.0

        return metrics


def format_stats(result: DetectionResult, elapsed_ms: float, fps: float) -> str:
    """One-line status shown next to the overlay."""
    return (
        f"Boxes: {len(result)} | {elapsed_ms:.0f}ms | "
        f"Conf: {result.avg_confidence * 100:.0f}% | FPS: {fps:.1f}"
    )
