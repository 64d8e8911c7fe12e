"""Performance metrics helpers for pipelines."""

from __future__ import annotations

from steadybox.pipeline.metrics.performance import PerformanceTracker, format_stats


__all__ = [
    "PerformanceTracker",
    "format_stats",
]
