"""Capture orchestration helpers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from loguru import logger

from steadybox.errors import PipelineInitError
from steadybox.pipeline.capture.opencv import OpenCVCapture


if TYPE_CHECKING:
    import numpy as np

    from steadybox.pipeline.types import CameraConfig


class CaptureProtocol(Protocol):
    """Protocol for capture backends."""

    def open(self) -> bool:
        """Open the capture backend."""
        ...

    def read(self) -> tuple[bool, np.ndarray | None]:
        """Read a frame from the backend."""
        ...

    def release(self) -> None:
        """Release backend resources."""
        ...

    def is_opened(self) -> bool:
        """Return True when the backend is open."""
        ...

    def get_info(self) -> dict:
        """Return backend metadata for diagnostics."""
        ...


def open_capture(config: CameraConfig) -> OpenCVCapture:
    """Open the configured source or fail startup."""
    capture = OpenCVCapture(config)
    if not capture.open():
        logger.error("Failed to open source {}", config.source)
        message = f"Failed to open capture source {config.source!r}"
        raise PipelineInitError(message)
    info = capture.get_info()
    logger.info("Active backend: {} ({})", info["backend"], info["source"])
    return capture
