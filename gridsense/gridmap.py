"""Float values defined over a rectangular part of a grid."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from gridsense.cells import FLT_MAX, INDEX_NONE, CellRef


@dataclass
class GridBox:
    """Inclusive rectangle of cell coordinates."""

    min_x: int = INDEX_NONE
    max_x: int = INDEX_NONE
    min_y: int = INDEX_NONE
    max_y: int = INDEX_NONE

    def is_valid(self) -> bool:
        """True when every bound is set and the minimums do not exceed the maximums."""
        return (
            INDEX_NONE not in (self.min_x, self.max_x, self.min_y, self.max_y)
            and self.min_x <= self.max_x
            and self.min_y <= self.max_y
        )

    @property
    def width(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        return self.max_y - self.min_y + 1

    @property
    def cell_count(self) -> int:
        return self.width * self.height

    def contains(self, cell: CellRef) -> bool:
        """True when the cell lies inside the rectangle."""
        return self.min_x <= cell.x <= self.max_x and self.min_y <= cell.y <= self.max_y

    def __iter__(self) -> Iterator[CellRef]:
        """Yield the cells row by row, x varying fastest."""
        for y in range(self.min_y, self.max_y + 1):
            for x in range(self.min_x, self.max_x + 1):
                yield CellRef(x, y)


class GridMap:
    """A set of float values over a box of a grid with the given dimensions."""

    def __init__(
        self,
        x_count: int = INDEX_NONE,
        y_count: int = INDEX_NONE,
        initial_value: float = 0.0,
        bounds: GridBox | None = None,
    ) -> None:
        self.x_count = x_count
        self.y_count = y_count
        if bounds is None:
            if x_count == INDEX_NONE and y_count == INDEX_NONE:
                bounds = GridBox()
            else:
                bounds = GridBox(0, x_count - 1, 0, y_count - 1)
        self.bounds = bounds
        self.data: list[float] = []
        self.reset_data(initial_value)

    @classmethod
    def from_grid(cls, grid, initial_value: float = 0.0, box: GridBox | None = None) -> "GridMap":
        """Build a map over a grid, covering the whole grid unless a box is given."""
        return cls(grid.x_count, grid.y_count, initial_value, box)

    def __repr__(self) -> str:
        return (
            f"GridMap(x_count={self.x_count}, y_count={self.y_count}, "
            f"bounds={self.bounds!r}, values={len(self.data)})"
        )

    def reset_data(self, initial_value: float) -> None:
        """Fill every cell of the box with one value, or empty the map if the box is invalid."""
        if self.bounds.is_valid():
            self.data = [initial_value] * self.bounds.cell_count
        else:
            self.data = []

    def is_valid(self) -> bool:
        return self.bounds.is_valid() and self.bounds.cell_count == len(self.data)

    def cell_to_local(self, cell: CellRef) -> tuple[int, int] | None:
        """Coordinates of a cell relative to the box, or None when outside it."""
        if self.is_valid() and self.bounds.contains(cell):
            return cell.x - self.bounds.min_x, cell.y - self.bounds.min_y
        return None

    def local_to_cell(self, x: int, y: int) -> CellRef | None:
        """Grid cell for box-relative coordinates, or None when it falls past the grid."""
        if not self.is_valid():
            return None
        cell = CellRef(x + self.bounds.min_x, y + self.bounds.min_y)
        if cell.x <= self.x_count and cell.y <= self.y_count:
            return cell
        return None

    def _index(self, cell: CellRef) -> int | None:
        local = self.cell_to_local(cell)
        if local is None:
            return None
        x, y = local
        return self.bounds.width * y + x

    def get_value(self, cell: CellRef) -> float | None:
        """Value stored for the cell, or None when the map does not cover it."""
        index = self._index(cell)
        return None if index is None else self.data[index]

    def max_value(self, ignore_threshold: float = FLT_MAX) -> float | None:
        """Largest value not above the threshold; None when the map is invalid."""
        if not self.is_valid():
            return None
        return max((value for value in self.data if value <= ignore_threshold), default=-FLT_MAX)

    def set_value(self, cell: CellRef, value: float) -> bool:
        """Store a value; returns False when the map does not cover the cell."""
        index = self._index(cell)
        if index is None:
            return False
        self.data[index] = value
        return True

    def _grid_values(self) -> list[float]:
        count = max(self.x_count * self.y_count, 0)
        if count > len(self.data):
            raise IndexError("grid map holds fewer values than its grid has cells")
        return self.data[:count]

    def is_all_zeros(self) -> bool:
        """True when no value over the grid's cell count is positive."""
        return not any(value > 0 for value in self._grid_values())

    def sum_total(self) -> float:
        """Sum of the values over the grid's cell count."""
        return sum(self._grid_values())