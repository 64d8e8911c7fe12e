"""Tunable parameters for decoding, suppression, smoothing and pacing."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from steadybox.errors import ConfigError


@dataclass(frozen=True)
class StabilizerConfig:
    """Every knob of the detection and stabilization chain."""

    input_size: int = 640
    base_threshold: float = 0.25
    max_threshold: float = 0.4
    threshold_step: float = 0.01
    dense_scene_count: int = 20
    sparse_scene_count: int = 5
    iou_threshold: float = 0.45
    max_detections: int = 100
    window_size: int = 5
    grid_size: int = 32
    match_radius: float = 50.0
    strong_confidence: float = 0.5
    frame_skip: int = 2
    hide_timeout_s: float = 0.3
    rank_before_cap: bool = False

    def __post_init__(self) -> None:
        """Reject values the pipeline cannot run with."""
        if self.input_size <= 0:
            message = f"input_size must be positive, got {self.input_size}"
            raise ConfigError(message)
        if not 0.0 <= self.base_threshold <= self.max_threshold <= 1.0:
            message = (
                "thresholds must satisfy 0 <= base <= max <= 1, got "
                f"base={self.base_threshold} max={self.max_threshold}"
            )
            raise ConfigError(message)
        if self.threshold_step < 0.0:
            message = f"threshold_step must be >= 0, got {self.threshold_step}"
            raise ConfigError(message)
        if self.sparse_scene_count > self.dense_scene_count:
            message = "sparse_scene_count must not exceed dense_scene_count"
            raise ConfigError(message)
        if not 0.0 < self.iou_threshold <= 1.0:
            message = f"iou_threshold must be in (0, 1], got {self.iou_threshold}"
            raise ConfigError(message)
        for name in ("max_detections", "window_size", "grid_size"):
            if getattr(self, name) < 1:
                message = f"{name} must be >= 1, got {getattr(self, name)}"
                raise ConfigError(message)
        if self.match_radius <= 0.0:
            message = f"match_radius must be positive, got {self.match_radius}"
            raise ConfigError(message)
        if self.frame_skip < 0:
            message = f"frame_skip must be >= 0, got {self.frame_skip}"
            raise ConfigError(message)
        if self.hide_timeout_s < 0.0:
            message = f"hide_timeout_s must be >= 0, got {self.hide_timeout_s}"
            raise ConfigError(message)

    @classmethod
    def from_args(cls, args: object) -> StabilizerConfig:
        """Build a config from an argparse namespace, ignoring unknown fields."""
        values: dict[str, Any] = {}
        for name in cls.__dataclass_fields__:
            if hasattr(args, name):
                values[name] = getattr(args, name)
        return cls(**values)

    def as_dict(self) -> dict[str, Any]:
        """Return the config as a plain dict (for logging)."""
        return asdict(self)
