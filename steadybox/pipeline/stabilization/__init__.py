"""Temporal stabilization of per-frame detections."""

from __future__ import annotations

from steadybox.pipeline.stabilization.grid import SpatialGrid
from steadybox.pipeline.stabilization.smoother import TemporalSmoother


__all__ = [
    "SpatialGrid",
    "TemporalSmoother",
]
