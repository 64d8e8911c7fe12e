from __future__ import annotations

import cv2
import numpy as np

from steadybox.errors import FrameFormatError


def infer_input_size(input_shape: list[object] | None, default: int = 640) -> int:
    """Infer the square input size from an ONNX input shape."""

    if not input_shape or len(input_shape) < 4:
        return default

    height = input_shape[-2]
    width = input_shape[-1]

    if isinstance(height, int) and isinstance(width, int) and height == width:
        return height

    return default


def preprocess(frame_rgb: np.ndarray, input_size: int = 640) -> np.ndarray:
    """Stretch an RGB frame to the model's square input as a [1, 3, S, S] blob.

    No letterboxing: the decoder scales each axis independently back to the
    original frame size.
    """

    if frame_rgb is None or frame_rgb.ndim != 3 or frame_rgb.shape[2] != 3:
        shape = None if frame_rgb is None else frame_rgb.shape
        message = f"Expected an (H, W, 3) frame, got {shape}"
        raise FrameFormatError(message)
    if frame_rgb.shape[0] == 0 or frame_rgb.shape[1] == 0:
        message = "Cannot preprocess an empty frame"
        raise FrameFormatError(message)

    resized = cv2.resize(
        frame_rgb, (input_size, input_size), interpolation=cv2.INTER_LINEAR
    )

    blob = resized.astype(np.float32) * (1.0 / 255.0)
    return blob.transpose(2, 0, 1)[np.newaxis, ...]
