"""Frame sources feeding the pipeline."""

from __future__ import annotations

from steadybox.pipeline.capture.core import CaptureProtocol, open_capture
from steadybox.pipeline.capture.opencv import OpenCVCapture
from steadybox.pipeline.capture.replay import ReplayCapture


__all__ = [
    "CaptureProtocol",
    "OpenCVCapture",
    "ReplayCapture",
    "open_capture",
]
