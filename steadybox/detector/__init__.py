"""Per-frame detection: decoding, suppression and threshold feedback."""

from __future__ import annotations

import importlib

from steadybox.detector.decode import decode_predictions
from steadybox.detector.engine import Detector, build_threshold, coerce_output
from steadybox.detector.nms import NmsEngine, non_max_suppression
from steadybox.detector.preprocess import infer_input_size, preprocess
from steadybox.detector.threshold import AdaptiveThreshold


def load_onnx_engine(*args: object, **kwargs: object) -> object:
    """Load an ONNX engine via lazy import of onnxruntime."""
    module = importlib.import_module("steadybox.detector.session")
    return module.load_onnx_engine(*args, **kwargs)


__all__ = [
    "AdaptiveThreshold",
    "Detector",
    "NmsEngine",
    "build_threshold",
    "coerce_output",
    "decode_predictions",
    "infer_input_size",
    "load_onnx_engine",
    "non_max_suppression",
    "preprocess",
]
