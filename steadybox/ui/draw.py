"""OpenCV render collaborators for stabilized detections."""

from __future__ import annotations

import threading

import cv2
import numpy as np
from loguru import logger

from steadybox.pipeline.types import Detection, DetectionResult


BOX_COLOR_BGRA = (20, 20, 20, 255)
OUTLINE_COLOR_BGRA = (0, 200, 255, 255)


def _box_with_margin(
    det: Detection, margin_ratio: float, width: int, height: int
) -> tuple[int, int, int, int]:
    margin = min(det.width, det.height) * margin_ratio
    # boxes may run past the right/bottom edge; clip only when painting
    x1 = int(np.clip(det.x1 - margin, 0, width - 1))
    y1 = int(np.clip(det.y1 - margin, 0, height - 1))
    x2 = int(np.clip(det.x2 + margin, 0, width - 1))
    y2 = int(np.clip(det.y2 + margin, 0, height - 1))
    return x1, y1, x2, y2


def draw_overlay(
    canvas: np.ndarray,
    result: DetectionResult,
    *,
    margin_ratio: float = 0.05,
    filled: bool = True,
    show_confidence: bool = False,
) -> np.ndarray:
    """Paint the boxes of ``result`` onto a BGRA ``canvas`` in place."""
    height, width = canvas.shape[:2]
    if width == 0 or height == 0:
        return canvas

    for det in result.detections:
        x1, y1, x2, y2 = _box_with_margin(det, margin_ratio, width, height)
        if x2 <= x1 or y2 <= y1:
            continue
        if filled:
            cv2.rectangle(canvas, (x1, y1), (x2, y2), BOX_COLOR_BGRA, -1)
        cv2.rectangle(canvas, (x1, y1), (x2, y2), OUTLINE_COLOR_BGRA, 2)
        if show_confidence:
            cv2.putText(
                canvas,
                f"{det.confidence:.2f}",
                (x1 + 4, max(y1 + 16, 16)),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.5,
                OUTLINE_COLOR_BGRA,
                1,
                cv2.LINE_AA,
            )
    return canvas


def compose(frame_bgr: np.ndarray, overlay_bgra: np.ndarray) -> np.ndarray:
    """Alpha-blend an overlay over a BGR frame of the same size."""
    if overlay_bgra.shape[:2] != frame_bgr.shape[:2]:
        overlay_bgra = cv2.resize(
            overlay_bgra,
            (frame_bgr.shape[1], frame_bgr.shape[0]),
            interpolation=cv2.INTER_NEAREST,
        )
    alpha = overlay_bgra[:, :, 3:4].astype(np.float32) / 255.0
    blended = frame_bgr.astype(np.float32) * (1.0 - alpha) + overlay_bgra[
        :, :, :3
    ].astype(np.float32) * alpha
    return blended.astype(np.uint8)


class OpenCVOverlayRenderer:
    """Keep a transparent BGRA overlay in sync with the latest result.

    ``render`` and ``clear`` run on the detection worker; ``snapshot`` is read
    by the display thread.
    """

    def __init__(
        self,
        *,
        margin_ratio: float = 0.05,
        filled: bool = True,
        show_confidence: bool = False,
    ) -> None:
        """Start with no overlay."""
        self.margin_ratio = margin_ratio
        self.filled = filled
        self.show_confidence = show_confidence
        self.renders = 0
        self.clears = 0
        self._overlay: np.ndarray | None = None
        self._lock = threading.Lock()

    def render(self, result: DetectionResult) -> None:
        """Redraw the overlay for ``result``."""
        width, height = result.image_width, result.image_height
        if width <= 0 or height <= 0:
            return
        with self._lock:
            if self._overlay is None or self._overlay.shape[:2] != (height, width):
                self._overlay = np.zeros((height, width, 4), dtype=np.uint8)
            else:
                self._overlay.fill(0)
            draw_overlay(
                self._overlay,
                result,
                margin_ratio=self.margin_ratio,
                filled=self.filled,
                show_confidence=self.show_confidence,
            )
            self.renders += 1

    def clear(self) -> None:
        """Make the overlay fully transparent."""
        with self._lock:
            if self._overlay is not None:
                self._overlay.fill(0)
            self.clears += 1

    def snapshot(self) -> np.ndarray | None:
        """Copy of the current overlay, or None before the first render."""
        with self._lock:
            return None if self._overlay is None else self._overlay.copy()


class LoggingRenderer:
    """Headless collaborator that only logs what would be drawn."""

    def __init__(self) -> None:
        """Start with nothing shown."""
        self.last_result: DetectionResult | None = None
        self.visible = False

    def render(self, result: DetectionResult) -> None:
        """Record ``result``."""
        self.last_result = result
        self.visible = len(result) > 0
        logger.debug(
            "Overlay: {} boxes, avg conf {:.2f}", len(result), result.avg_confidence
        )

    def clear(self) -> None:
        """Record that the overlay is hidden."""
        if self.visible:
            logger.debug("Overlay hidden")
        self.visible = False
