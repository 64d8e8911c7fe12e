"""Single-frame detection: preprocess, inference, decode, NMS, threshold feedback."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from loguru import logger

from steadybox.detector.decode import decode_predictions
from steadybox.detector.nms import NmsEngine
from steadybox.detector.preprocess import preprocess
from steadybox.detector.threshold import AdaptiveThreshold
from steadybox.errors import InferenceError
from steadybox.pipeline.config import StabilizerConfig
from steadybox.pipeline.types import DetectionResult


if TYPE_CHECKING:
    from collections.abc import Callable

    InferFn = Callable[[np.ndarray], object]


def _frame_size(frame: object) -> tuple[int, int]:
    shape = getattr(frame, "shape", None)
    if shape is None or len(shape) < 2:
        return 0, 0
    return int(shape[1]), int(shape[0])


def coerce_output(outputs: object) -> np.ndarray:
    """Return the ``[1, 5, N]`` prediction tensor from an engine's output."""
    if isinstance(outputs, (list, tuple)):
        if not outputs:
            message = "Inference returned no outputs"
            raise InferenceError(message)
        outputs = outputs[0]
    tensor = np.asarray(outputs)
    if tensor.ndim != 3 or tensor.shape[0] != 1 or tensor.shape[1] != 5:
        message = f"Expected prediction tensor [1, 5, N], got {tensor.shape}"
        raise InferenceError(message)
    return tensor


def build_threshold(config: StabilizerConfig) -> AdaptiveThreshold:
    """Create the adaptive threshold described by ``config``."""
    return AdaptiveThreshold(
        base=config.base_threshold,
        ceiling=config.max_threshold,
        step=config.threshold_step,
        high_water=config.dense_scene_count,
        low_water=config.sparse_scene_count,
    )


class Detector:
    """Run the per-frame detection chain around an opaque inference callable.

    ``infer`` receives a ``[1, 3, S, S]`` float32 blob and must return a
    ``[1, 5, N]`` tensor (or a sequence whose first element is one). Any
    failure inside the chain is logged and turned into an empty result; the
    threshold is only updated for frames that reached NMS.

    One detector is driven by a single worker; it is not re-entrant.
    """

    def __init__(
        self,
        infer: InferFn,
        config: StabilizerConfig | None = None,
        threshold: AdaptiveThreshold | None = None,
        *,
        debug_boxes: bool = False,
    ) -> None:
        """Wire the inference callable to the decode and NMS stages."""
        self.config = config or StabilizerConfig()
        self.threshold = threshold or build_threshold(self.config)
        self.debug_boxes = debug_boxes
        self.failures = 0
        self._infer = infer
        self._nms = NmsEngine(
            self.config.iou_threshold, capacity=self.config.max_detections
        )

    def detect(self, frame_rgb: np.ndarray) -> DetectionResult:
        """Detect boxes in one RGB frame, in that frame's pixel space."""
        width, height = _frame_size(frame_rgb)
        threshold = self.threshold.value
        try:
            blob = preprocess(frame_rgb, self.config.input_size)
            raw = coerce_output(self._infer(blob))
            candidates = decode_predictions(
                raw,
                width,
                height,
                threshold,
                input_size=self.config.input_size,
                max_detections=self.config.max_detections,
                rank_before_cap=self.config.rank_before_cap,
                debug_boxes=self.debug_boxes,
            )
            kept = self._nms.run(candidates)
        except Exception as exc:
            self.failures += 1
            logger.error("Detection error: {}", exc)
            return DetectionResult.empty(width, height)

        new_threshold = self.threshold.update(len(kept))
        if new_threshold != threshold:
            logger.debug(
                "Threshold {:.2f} -> {:.2f} ({} kept)",
                threshold,
                new_threshold,
                len(kept),
            )
        return DetectionResult(kept, width, height)
