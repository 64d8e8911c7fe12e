"""Pixel buffers delivered by frame sources, and their conversion to RGB.

Sources hand over a flat byte buffer whose rows may be padded: the row stride
can exceed ``width * bytes_per_pixel``. The padding is cropped here, before
any other processing, so downstream stages only ever see the logical
``width x height`` image.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np

from steadybox.errors import FrameFormatError


class PixelLayout(Enum):
    """Per-pixel byte layout of a source buffer."""

    RGBA = "rgba"
    BGRA = "bgra"
    RGB = "rgb"
    BGR = "bgr"

    @property
    def bytes_per_pixel(self) -> int:
        """Number of bytes per pixel."""
        return len(self.value)

    @property
    def rgb_order(self) -> tuple[int, int, int]:
        """Channel indices that produce R, G, B."""
        return (0, 1, 2) if self.value.startswith("rgb") else (2, 1, 0)


@dataclass(frozen=True)
class PixelBuffer:
    """One raw frame as delivered by a source."""

    data: bytes | bytearray | memoryview | np.ndarray
    width: int
    height: int
    row_stride: int
    layout: PixelLayout = PixelLayout.RGBA

    @classmethod
    def from_array(
        cls, array: np.ndarray, layout: PixelLayout = PixelLayout.BGR
    ) -> PixelBuffer:
        """Wrap a ``(H, W, C)`` uint8 array without row padding."""
        if array.ndim != 3 or array.shape[2] != layout.bytes_per_pixel:
            message = f"Array shape {array.shape} does not match layout {layout.name}"
            raise FrameFormatError(message)
        height, width = array.shape[:2]
        contiguous = np.ascontiguousarray(array, dtype=np.uint8)
        return cls(
            data=contiguous.reshape(-1),
            width=width,
            height=height,
            row_stride=width * layout.bytes_per_pixel,
            layout=layout,
        )

    @property
    def has_padding(self) -> bool:
        """True when rows carry bytes past the logical width."""
        return self.row_stride > self.width * self.layout.bytes_per_pixel


def to_rgb(buffer: PixelBuffer) -> np.ndarray:
    """Return the logical image of ``buffer`` as an ``(H, W, 3)`` RGB array."""
    bpp = buffer.layout.bytes_per_pixel
    row_bytes = buffer.width * bpp

    if buffer.width <= 0 or buffer.height <= 0:
        message = f"Zero-size frame {buffer.width}x{buffer.height}"
        raise FrameFormatError(message)
    if buffer.row_stride < row_bytes:
        message = f"Row stride {buffer.row_stride} is shorter than a row ({row_bytes})"
        raise FrameFormatError(message)

    flat = np.frombuffer(buffer.data, dtype=np.uint8)
    # the last row may omit its padding
    needed = buffer.row_stride * (buffer.height - 1) + row_bytes
    if flat.size < needed:
        message = f"Buffer holds {flat.size} bytes, frame needs {needed}"
        raise FrameFormatError(message)

    rows = np.lib.stride_tricks.as_strided(
        flat,
        shape=(buffer.height, row_bytes),
        strides=(buffer.row_stride, 1),
        writeable=False,
    )
    pixels = rows.reshape(buffer.height, buffer.width, bpp)

    return np.ascontiguousarray(pixels[:, :, list(buffer.layout.rgb_order)])
