"""cProfile driver for the detection pipeline without an engine."""

import cProfile
import pstats

import numpy as np

from steadybox.detector import Detector
from steadybox.pipeline import PipelineCoordinator, StabilizerConfig, TemporalSmoother
from steadybox.ui import LoggingRenderer


def _fake_engine(seed: int = 0):
    rng = np.random.default_rng(seed)
    raw = np.stack(
        [
            rng.uniform(40, 600, 8400),
            rng.uniform(40, 600, 8400),
            rng.uniform(10, 80, 8400),
            rng.uniform(10, 80, 8400),
            rng.beta(0.5, 6.0, 8400),
        ]
    ).astype(np.float32)[np.newaxis]
    return lambda _blob: raw


def main() -> None:
    """Process 300 frames synchronously."""
    config = StabilizerConfig()
    coordinator = PipelineCoordinator(
        Detector(_fake_engine(), config),
        TemporalSmoother(config.window_size),
        LoggingRenderer(),
        config,
    )
    frame = np.zeros((720, 1280, 3), dtype=np.uint8)
    for _ in range(300):
        coordinator.process(frame)


if __name__ == "__main__":
    profiler = cProfile.Profile()
    profiler.enable()
    main()
    profiler.disable()
    stats = pstats.Stats(profiler)
    stats.sort_stats(pstats.SortKey.CUMULATIVE).print_stats(20)
