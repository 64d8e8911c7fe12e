"""Shared data structures for the stabilization pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


@dataclass
class CameraConfig:
    """Capture settings: a device index or a video file/stream URL."""

    source: int | str = 0
    width: int = 1280
    height: int = 720
    fps: int = 30


@dataclass
class PerformanceMetrics:
    """Container for performance metrics."""

    camera_fps: float = 0.0
    inference_ms: float = 0.0
    inference_capacity_fps: float = 0.0
    frame_budget_percent: float = 0.0
    actual_throughput_fps: float = 0.0


@dataclass(frozen=True)
class Detection:
    """Axis-aligned box in original-image pixel space.

    Corners must satisfy ``x1 < x2`` and ``y1 < y2``. Width, height, center and
    area are derived once at construction.
    """

    x1: float
    y1: float
    x2: float
    y2: float
    confidence: float
    class_id: int = 0
    width: float = field(init=False, repr=False, compare=False)
    height: float = field(init=False, repr=False, compare=False)
    center_x: float = field(init=False, repr=False, compare=False)
    center_y: float = field(init=False, repr=False, compare=False)
    area: float = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Validate corners and compute the derived geometry."""
        if not (self.x1 < self.x2 and self.y1 < self.y2):
            message = (
                f"Degenerate box ({self.x1}, {self.y1}, {self.x2}, {self.y2})"
            )
            raise ValueError(message)
        width = self.x2 - self.x1
        height = self.y2 - self.y1
        object.__setattr__(self, "width", width)
        object.__setattr__(self, "height", height)
        object.__setattr__(self, "center_x", (self.x1 + self.x2) * 0.5)
        object.__setattr__(self, "center_y", (self.y1 + self.y2) * 0.5)
        object.__setattr__(self, "area", width * height)

    def iou(self, other: Detection) -> float:
        """Return the intersection-over-union with another box."""
        inter_w = min(self.x2, other.x2) - max(self.x1, other.x1)
        inter_h = min(self.y2, other.y2) - max(self.y1, other.y1)
        if inter_w <= 0.0 or inter_h <= 0.0:
            return 0.0
        inter = inter_w * inter_h
        return inter / (self.area + other.area - inter)


@dataclass(frozen=True)
class DetectionResult:
    """Detections produced for one frame, plus the frame size they refer to."""

    detections: tuple[Detection, ...]
    image_width: int
    image_height: int
    avg_confidence: float = field(init=False, compare=False)

    def __init__(
        self,
        detections: Iterable[Detection],
        image_width: int,
        image_height: int,
    ) -> None:
        """Freeze the detection sequence and compute the mean confidence."""
        frozen = tuple(detections)
        object.__setattr__(self, "detections", frozen)
        object.__setattr__(self, "image_width", int(image_width))
        object.__setattr__(self, "image_height", int(image_height))
        avg = sum(d.confidence for d in frozen) / len(frozen) if frozen else 0.0
        object.__setattr__(self, "avg_confidence", avg)

    @classmethod
    def empty(cls, image_width: int = 0, image_height: int = 0) -> DetectionResult:
        """Return a result with no detections."""
        return cls((), image_width, image_height)

    def __len__(self) -> int:
        return len(self.detections)

    def __iter__(self) -> Iterator[Detection]:
        return iter(self.detections)
