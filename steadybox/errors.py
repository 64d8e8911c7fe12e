"""Exception types raised across the stabilization pipeline."""

from __future__ import annotations


class SteadyBoxError(Exception):
    """Base class for all package errors."""


class PipelineInitError(SteadyBoxError, RuntimeError):
    """Raised when one-time startup (engine, camera) fails."""


class InferenceError(SteadyBoxError):
    """Raised when the inference engine fails or returns a malformed tensor."""


class FrameFormatError(SteadyBoxError, ValueError):
    """Raised when a pixel buffer cannot be interpreted as a frame."""


class ConfigError(SteadyBoxError, ValueError):
    """Raised for invalid configuration values."""
