"""Pytest-benchmark drivers for the per-frame hot path."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from steadybox.detector import NmsEngine, decode_predictions
from steadybox.pipeline import DetectionResult, TemporalSmoother


if TYPE_CHECKING:
    from collections.abc import Callable


def _raw_output(count: int = 8400, seed: int = 0) -> np.ndarray:
    """Dense [1, 5, N] output with a few hundred confident boxes."""
    rng = np.random.default_rng(seed)
    raw = np.empty((1, 5, count), dtype=np.float32)
    raw[0, 0] = rng.uniform(40, 600, count)
    raw[0, 1] = rng.uniform(40, 600, count)
    raw[0, 2] = rng.uniform(10, 80, count)
    raw[0, 3] = rng.uniform(10, 80, count)
    raw[0, 4] = rng.beta(0.5, 6.0, count)
    return raw


def test_decode_benchmark(
    benchmark: Callable[..., object],
) -> None:
    """Benchmark decoding a full-size prediction tensor."""
    raw = _raw_output()
    benchmark(decode_predictions, raw, 1280, 720, 0.25)


def test_nms_benchmark(
    benchmark: Callable[..., object],
) -> None:
    """Benchmark greedy NMS over a capped candidate list."""
    candidates = decode_predictions(_raw_output(), 1280, 720, 0.25)
    engine = NmsEngine(0.45)
    benchmark(engine.run, candidates)


def test_smoother_benchmark(
    benchmark: Callable[..., object],
) -> None:
    """Benchmark smoothing with a full window of history."""
    engine = NmsEngine(0.45)
    frames = [
        DetectionResult(
            engine.run(decode_predictions(_raw_output(seed=seed), 1280, 720, 0.25)),
            1280,
            720,
        )
        for seed in range(6)
    ]
    smoother = TemporalSmoother(5)
    for result in frames[:-1]:
        smoother.smooth(result)

    benchmark(smoother.smooth, frames[-1])
