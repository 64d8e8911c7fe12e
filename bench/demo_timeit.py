"""timeit driver for one decode + NMS + smoothing cycle."""

import timeit

import numpy as np
from loguru import logger

from steadybox.detector import NmsEngine, decode_predictions
from steadybox.pipeline import DetectionResult, TemporalSmoother


RNG = np.random.default_rng(0)
RAW = np.stack(
    [
        RNG.uniform(40, 600, 8400),
        RNG.uniform(40, 600, 8400),
        RNG.uniform(10, 80, 8400),
        RNG.uniform(10, 80, 8400),
        RNG.beta(0.5, 6.0, 8400),
    ]
).astype(np.float32)[np.newaxis]

NMS = NmsEngine(0.45)
SMOOTHER = TemporalSmoother(5)


def run() -> None:
    """Run one cycle on the canned tensor."""
    kept = NMS.run(decode_predictions(RAW, 1280, 720, 0.25))
    SMOOTHER.smooth(DetectionResult(kept, 1280, 720))


if __name__ == "__main__":
    runs = 200
    duration = timeit.timeit("run()", setup="from __main__ import run", number=runs)
    logger.info("Average cycle over {} runs: {:.3f} ms", runs, duration / runs * 1000)
