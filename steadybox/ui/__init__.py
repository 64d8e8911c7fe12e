"""Render collaborators."""

from __future__ import annotations

from steadybox.ui.draw import (
    LoggingRenderer,
    OpenCVOverlayRenderer,
    compose,
    draw_overlay,
)


__all__ = [
    "LoggingRenderer",
    "OpenCVOverlayRenderer",
    "compose",
    "draw_overlay",
]
