"""SteadyBox: low-flicker object detection overlay for live video."""

from importlib.metadata import PackageNotFoundError, version

from .detector import AdaptiveThreshold, Detector, NmsEngine, decode_predictions
from .errors import (
    ConfigError,
    FrameFormatError,
    InferenceError,
    PipelineInitError,
    SteadyBoxError,
)
from .pipeline import (
    Detection,
    DetectionResult,
    PipelineCoordinator,
    StabilizerConfig,
    TemporalSmoother,
)

try:
    __version__ = version("SteadyBox")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "AdaptiveThreshold",
    "ConfigError",
    "Detection",
    "DetectionResult",
    "Detector",
    "FrameFormatError",
    "InferenceError",
    "NmsEngine",
    "PipelineCoordinator",
    "PipelineInitError",
    "StabilizerConfig",
    "SteadyBoxError",
    "TemporalSmoother",
    "__version__",
]
