"""Pipeline building blocks: types, frames, smoothing, coordination, capture."""

from __future__ import annotations

from steadybox.pipeline.capture import (
    CaptureProtocol,
    OpenCVCapture,
    ReplayCapture,
    open_capture,
)
from steadybox.pipeline.config import StabilizerConfig
from steadybox.pipeline.coordinator import (
    CaptureWorker,
    FrameChannel,
    FrameSkipGate,
    OverlayWatchdog,
    PipelineCoordinator,
    PipelineCounters,
    PipelineState,
    RendererProtocol,
    SingleFlightGuard,
)
from steadybox.pipeline.frames import PixelBuffer, PixelLayout, to_rgb
from steadybox.pipeline.logging import configure_logging
from steadybox.pipeline.metrics import PerformanceTracker, format_stats
from steadybox.pipeline.stabilization import SpatialGrid, TemporalSmoother
from steadybox.pipeline.types import (
    CameraConfig,
    Detection,
    DetectionResult,
    PerformanceMetrics,
)


__all__ = [
    "CameraConfig",
    "CaptureProtocol",
    "CaptureWorker",
    "Detection",
    "DetectionResult",
    "FrameChannel",
    "FrameSkipGate",
    "OpenCVCapture",
    "OverlayWatchdog",
    "PerformanceMetrics",
    "PerformanceTracker",
    "PipelineCoordinator",
    "PipelineCounters",
    "PipelineState",
    "PixelBuffer",
    "PixelLayout",
    "RendererProtocol",
    "ReplayCapture",
    "SingleFlightGuard",
    "SpatialGrid",
    "StabilizerConfig",
    "TemporalSmoother",
    "configure_logging",
    "format_stats",
    "open_capture",
    "to_rgb",
]
