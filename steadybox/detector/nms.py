"""Greedy non-maximum suppression over decoded candidates."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np


if TYPE_CHECKING:
    from collections.abc import Sequence

    from steadybox.pipeline.types import Detection


class NmsEngine:
    """Confidence-ordered greedy NMS with a reusable suppression buffer.

    The buffer is sized for ``capacity`` candidates and cleared at the start of
    every call; it only grows when a caller passes more candidates than that.
    Not safe for concurrent calls on one instance.
    """

    def __init__(self, iou_threshold: float = 0.45, capacity: int = 100) -> None:
        """Allocate the scratch buffer for up to ``capacity`` candidates."""
        self.iou_threshold = float(iou_threshold)
        self._suppressed = np.zeros(max(1, int(capacity)), dtype=bool)

    @property
    def capacity(self) -> int:
        """Current size of the suppression buffer."""
        return len(self._suppressed)

    def run(self, candidates: Sequence[Detection]) -> list[Detection]:
        """Return the kept detections in descending confidence order."""
        count = len(candidates)
        if count == 0:
            return []
        if count > len(self._suppressed):
            self._suppressed = np.zeros(count, dtype=bool)

        # stable sort: equal confidences keep their input order
        ordered = sorted(candidates, key=lambda det: -det.confidence)
        suppressed = self._suppressed
        suppressed[:count] = False

        kept: list[Detection] = []
        for i in range(count):
            if suppressed[i]:
                continue
            current = ordered[i]
            kept.append(current)

            for j in range(i + 1, count):
                if suppressed[j]:
                    continue
                other = ordered[j]

                if (
                    current.x2 < other.x1
                    or other.x2 < current.x1
                    or current.y2 < other.y1
                    or other.y2 < current.y1
                ):
                    continue

                inter_w = max(0.0, min(current.x2, other.x2) - max(current.x1, other.x1))
                inter_h = max(0.0, min(current.y2, other.y2) - max(current.y1, other.y1))
                inter_area = inter_w * inter_h
                if inter_area <= 0.0:
                    continue

                union_area = current.area + other.area - inter_area
                if inter_area / union_area > self.iou_threshold:
                    suppressed[j] = True

        return kept


def non_max_suppression(
    candidates: Sequence[Detection], iou_threshold: float = 0.45
) -> list[Detection]:
    """One-shot NMS without keeping an engine around."""
    return NmsEngine(iou_threshold, capacity=len(candidates)).run(candidates)
