"""Decoding of raw single-class YOLO output into candidate boxes."""

from __future__ import annotations

import numpy as np
from loguru import logger

from steadybox.errors import InferenceError
from steadybox.pipeline.types import Detection


def _squeeze_to_2d(raw: np.ndarray) -> np.ndarray:
    data = np.asarray(raw)
    if data.ndim == 3 and data.shape[0] == 1:
        data = data[0]
    if data.ndim != 2 or data.shape[0] != 5:
        message = f"Expected prediction tensor [1, 5, N], got {np.shape(raw)}"
        raise InferenceError(message)
    return data


def _xywh_to_xyxy(
    predictions: np.ndarray, scale_x: float, scale_y: float
) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    cx, cy, w, h = predictions[:4].astype(np.float64)
    half_w = w * 0.5
    half_h = h * 0.5
    x1 = (cx - half_w) * scale_x
    y1 = (cy - half_h) * scale_y
    x2 = (cx + half_w) * scale_x
    y2 = (cy + half_h) * scale_y
    return x1, y1, x2, y2


def decode_predictions(
    raw: np.ndarray,
    image_width: int,
    image_height: int,
    threshold: float,
    *,
    input_size: int = 640,
    max_detections: int = 100,
    rank_before_cap: bool = False,
    debug_boxes: bool = False,
) -> list[Detection]:
    """Turn a raw ``[5, N]`` prediction tensor into candidate detections.

    Candidates are kept when their confidence is strictly above ``threshold``
    and their scaled corners form a box with positive extent whose lower
    corner is not negative. The upper corner is not clipped to the image, so a
    box may extend past the right or bottom edge.

    Survivors are returned in tensor index order. With the default
    ``rank_before_cap=False`` the list is cut at ``max_detections`` while
    walking that order, so for very dense output the lowest-index candidates
    win over the most confident ones. ``rank_before_cap=True`` keeps the
    ``max_detections`` most confident survivors instead.
    """
    predictions = _squeeze_to_2d(raw)
    if predictions.shape[1] == 0 or max_detections <= 0:
        return []

    scale_x = float(image_width) / input_size
    scale_y = float(image_height) / input_size

    confidences = predictions[4].astype(np.float64)
    x1, y1, x2, y2 = _xywh_to_xyxy(predictions, scale_x, scale_y)

    keep = (
        (confidences > threshold)
        & (x2 > x1)
        & (y2 > y1)
        & (x1 >= 0.0)
        & (y1 >= 0.0)
        & np.isfinite(x2)
        & np.isfinite(y2)
    )
    indices = np.flatnonzero(keep)

    if len(indices) > max_detections:
        if rank_before_cap:
            order = np.argsort(-confidences[indices], kind="stable")
            indices = np.sort(indices[order[:max_detections]])
        else:
            indices = indices[:max_detections]

    if debug_boxes and len(indices):
        first = indices[:3]
        logger.info(
            "Decoded boxes (first 3): {}",
            np.stack([x1[first], y1[first], x2[first], y2[first]], axis=1)
            .round(2)
            .tolist(),
        )

    return [
        Detection(
            float(x1[i]),
            float(y1[i]),
            float(x2[i]),
            float(y2[i]),
            float(confidences[i]),
            0,
        )
        for i in indices
    ]
