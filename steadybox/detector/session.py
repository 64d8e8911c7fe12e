"""ONNX Runtime backed inference engine."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import onnxruntime as ort
from loguru import logger

from steadybox.detector.preprocess import infer_input_size
from steadybox.errors import PipelineInitError


if TYPE_CHECKING:
    from pathlib import Path

    import numpy as np


class OnnxInferenceEngine:
    """Callable wrapper turning an ONNX session into ``infer(blob) -> output``."""

    def __init__(self, session: ort.InferenceSession) -> None:
        """Bind the session's first input."""
        self.session = session
        model_input = session.get_inputs()[0]
        self.input_name = model_input.name
        self.input_shape = model_input.shape
        self.input_size = infer_input_size(self.input_shape)

    def __call__(self, blob: np.ndarray) -> np.ndarray:
        """Run the model and return its first output."""
        return self.session.run(None, {self.input_name: blob})[0]

    @property
    def provider(self) -> str:
        """Name of the execution provider actually in use."""
        return self.session.get_providers()[0]


def _select_providers(gpu: int | None) -> list[object]:
    available = set(ort.get_available_providers())
    providers: list[object] = []
    if gpu is not None and "CUDAExecutionProvider" in available:
        providers.append(
            (
                "CUDAExecutionProvider",
                {"device_id": gpu, "arena_extend_strategy": "kNextPowerOfTwo"},
            )
        )
    providers.append("CPUExecutionProvider")
    return providers


def load_onnx_engine(
    model_path: str | Path,
    *,
    gpu: int | None = None,
    intra_op_threads: int | None = None,
) -> OnnxInferenceEngine:
    """Load a model once at startup.

    Failure is fatal: it raises ``PipelineInitError`` and is not retried.
    """
    options = ort.SessionOptions()
    options.intra_op_num_threads = intra_op_threads or max(1, (os.cpu_count() or 1) - 2)
    options.inter_op_num_threads = 1
    options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL

    logger.info("Loading model: {}", model_path)
    try:
        session = ort.InferenceSession(
            str(model_path),
            sess_options=options,
            providers=_select_providers(gpu),
        )
    except Exception as exc:
        logger.error("Failed to load model: {}", exc)
        message = "Failed to load model"
        raise PipelineInitError(message) from exc

    engine = OnnxInferenceEngine(session)
    logger.success("Model loaded using: {}", engine.provider)
    logger.debug("Model input: {}, shape: {}", engine.input_name, engine.input_shape)
    return engine
