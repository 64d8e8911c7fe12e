"""Fixed-resolution spatial hash over detection centers."""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from steadybox.pipeline.types import Detection, DetectionResult


class SpatialGrid:
    """G x G partition of the image plane, keyed by row-major cell index.

    Rebuilt from scratch on every smoothing cycle. Cell lists are kept between
    rebuilds and only emptied, so steady-state rebuilds do not allocate.
    """

    def __init__(self, grid_size: int = 32) -> None:
        """Create an empty grid with ``grid_size`` cells per axis."""
        self.grid_size = int(grid_size)
        self._cells: dict[int, list[Detection]] = {}
        self._cell_width = 1.0
        self._cell_height = 1.0
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def _axis_cell(self, value: float, cell_extent: float) -> int:
        index = int(value // cell_extent)
        return max(0, min(self.grid_size - 1, index))

    def cell_of(self, x: float, y: float) -> tuple[int, int]:
        """Return the clamped ``(column, row)`` of a point."""
        return (
            self._axis_cell(x, self._cell_width),
            self._axis_cell(y, self._cell_height),
        )

    def key(self, column: int, row: int) -> int:
        """Row-major index of a cell."""
        return row * self.grid_size + column

    def clear(self) -> None:
        """Empty every cell, keeping the lists for reuse."""
        for members in self._cells.values():
            members.clear()
        self._size = 0

    def rebuild(
        self,
        history: Iterable[DetectionResult],
        image_width: int,
        image_height: int,
    ) -> None:
        """Index every detection of every result in ``history``."""
        self.clear()
        self._cell_width = max(float(image_width), 1.0) / self.grid_size
        self._cell_height = max(float(image_height), 1.0) / self.grid_size

        cells = self._cells
        for result in history:
            for det in result.detections:
                column, row = self.cell_of(det.center_x, det.center_y)
                members = cells.get(self.key(column, row))
                if members is None:
                    members = cells[self.key(column, row)] = []
                members.append(det)
                self._size += 1

    def neighbours(self, detection: Detection) -> Iterator[Detection]:
        """Yield members of the 3x3 block of cells around ``detection``.

        Cells are visited row by row from the top-left neighbour; members of a
        cell come out in insertion order.
        """
        column, row = self.cell_of(detection.center_x, detection.center_y)
        last = self.grid_size - 1
        for ny in range(max(0, row - 1), min(last, row + 1) + 1):
            for nx in range(max(0, column - 1), min(last, column + 1) + 1):
                members = self._cells.get(self.key(nx, ny))
                if members:
                    yield from members
