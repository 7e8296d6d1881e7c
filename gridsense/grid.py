"""A uniform grid of cells laid over the world, with spatial queries."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Tuple

from gridsense.cells import FLT_MAX, CellData, CellRef
from gridsense.gridmap import GridBox, GridMap

Vec2 = Tuple[float, float]
Vec3 = Tuple[float, float, float]

KINDA_SMALL_NUMBER = 1.0e-4
SMALL_NUMBER = 1.0e-8


def _safe_reciprocal(value: float) -> float:
    return 0.0 if abs(value) <= SMALL_NUMBER else 1.0 / value


def _clamp(value, low, high):
    return max(low, min(value, high))


@dataclass(frozen=True)
class Transform:
    """Scale, then yaw about Z (degrees), then translate."""

    location: Vec3 = (0.0, 0.0, 0.0)
    yaw: float = 0.0
    scale: Vec3 = (1.0, 1.0, 1.0)

    def _cos_sin(self) -> tuple[float, float]:
        angle = math.radians(self.yaw)
        return math.cos(angle), math.sin(angle)

    def transform_position(self, point: Vec3) -> Vec3:
        """Map a local point into world space."""
        sx = point[0] * self.scale[0]
        sy = point[1] * self.scale[1]
        sz = point[2] * self.scale[2]
        c, s = self._cos_sin()
        lx, ly, lz = self.location
        return (c * sx - s * sy + lx, s * sx + c * sy + ly, sz + lz)

    def inverse_transform_position(self, point: Vec3) -> Vec3:
        """Map a world point into local space."""
        lx, ly, lz = self.location
        dx, dy, dz = point[0] - lx, point[1] - ly, point[2] - lz
        c, s = self._cos_sin()
        rx = c * dx + s * dy
        ry = -s * dx + c * dy
        return (
            rx * _safe_reciprocal(self.scale[0]),
            ry * _safe_reciprocal(self.scale[1]),
            dz * _safe_reciprocal(self.scale[2]),
        )


@dataclass(eq=False)
class GridActor:
    """A grid of x_count by y_count cells, centred on its transform."""

    x_count: int = 100
    y_count: int = 100
    cell_scale: float = 100.0
    transform: Transform = field(default_factory=Transform)
    debug: bool = False
    data: list = field(default_factory=list)
    height_data: list = field(default_factory=list)
    debug_grid_map: GridMap = field(default_factory=GridMap)
    debug_mesh_z_offset: float = 30.0

    def __post_init__(self) -> None:
        self.reset_data()

    @property
    def half_extents(self) -> Vec2:
        return (
            0.5 * self.cell_scale * self.x_count,
            0.5 * self.cell_scale * self.y_count,
        )

    @property
    def cell_count(self) -> int:
        return self.x_count * self.y_count

    def reset_data(self) -> None:
        """Resize the cell arrays to the grid size; new entries start cleared."""
        count = self.cell_count
        self.data = list(self.data[:count]) + [CellData.NONE] * (count - len(self.data))
        self.height_data = list(self.height_data[:count]) + [0.0] * (count - len(self.height_data))

    # Accessors

    def cell_ref(self, point: Vec3, clamp: bool = False) -> CellRef:
        """Cell holding a world point; outside points clamp or give CellRef.INVALID."""
        lx, ly, _ = self.transform.inverse_transform_position(point)
        hx, hy = self.half_extents
        if clamp:
            lx = _clamp(lx, -hx, hx)
            ly = _clamp(ly, -hy, hy)
        elif abs(lx) > hx or abs(ly) > hy:
            return CellRef.INVALID
        return CellRef(
            _clamp(math.floor((lx + hx) / self.cell_scale), 0, self.x_count - 1),
            _clamp(math.floor((ly + hy) / self.cell_scale), 0, self.y_count - 1),
        )

    def cell_position(self, cell: CellRef) -> Vec3:
        """World position of the cell centre, at the cell's height."""
        half = 0.5 * self.cell_scale
        hx, hy = self.half_extents
        index = self.cell_index(cell)
        z = self.height_data[index] if 0 <= index < len(self.height_data) else 0.0
        local = (
            cell.x * self.cell_scale + half - hx,
            cell.y * self.cell_scale + half - hy,
            z,
        )
        return self.transform.transform_position(local)

    def is_cell_in_bounds(self, cell: CellRef) -> bool:
        return 0 <= cell.x < self.x_count and 0 <= cell.y < self.y_count

    def cell_grid_space_position(self, cell: CellRef) -> Vec2:
        """Centre of the cell measured from the grid's minimum corner."""
        half = 0.5 * self.cell_scale
        return (cell.x * self.cell_scale + half, cell.y * self.cell_scale + half)

    def cell_index(self, cell: CellRef) -> int:
        """Flattened index, rows of x stored consecutively."""
        return cell.y * self.x_count + cell.x

    def _checked_index(self, cell: CellRef, values: list) -> int:
        index = self.cell_index(cell)
        if not 0 <= index < len(values):
            raise IndexError(f"{cell} is outside the grid data")
        return index

    def cell_data(self, cell: CellRef) -> CellData:
        return self.data[self._checked_index(cell, self.data)]

    def cell_height(self, cell: CellRef) -> float:
        return self.height_data[self._checked_index(cell, self.height_data)]

    def is_traversable(self, cell: CellRef) -> bool:
        return CellData.TRAVERSABLE in self.cell_data(cell)

    def grid_space_bounds_to_rect(self, box: tuple[Vec2, Vec2]) -> GridBox | None:
        """Cells whose centres lie in a grid-space box, or None when disjoint."""
        (min_x, min_y), (max_x, max_y) = box
        half = 0.5 * self.cell_scale
        rect = GridBox(
            max(int((min_x + half) / self.cell_scale), 0),
            min(int((max_x - half) / self.cell_scale), self.x_count - 1),
            max(int((min_y + half) / self.cell_scale), 0),
            min(int((max_y - half) / self.cell_scale), self.y_count - 1),
        )
        if rect.min_x <= rect.max_x and rect.min_y <= rect.max_y:
            return rect
        return None

    def is_valid_cell(self, cell: CellRef) -> bool:
        return 0 <= cell.x < self.x_count and 0 <= cell.y < self.y_count

    def neighbors(self, cell: CellRef, only_traversable: bool) -> list[CellRef]:
        """Cells of the 3x3 block around a cell that lie on the grid.

        The skipped cell is the grid's own (0, 0), not the centre of the block.
        """
        result = []
        for y in range(cell.y - 1, cell.y + 2):
            for x in range(cell.x - 1, cell.x + 2):
                if x == 0 and y == 0:
                    continue
                candidate = CellRef(x, y)
                if self.is_valid_cell(candidate) and (
                    not only_traversable or self.is_traversable(candidate)
                ):
                    result.append(candidate)
        return result

    def to_normalized_grid_space(self, world_position: Vec3) -> Vec2:
        """World point to grid space in which a cell is one unit wide."""
        lx, ly, _ = self.transform.inverse_transform_position(world_position)
        hx, hy = self.half_extents
        return ((lx + hx) / self.cell_scale, (ly + hy) / self.cell_scale)

    def normalized_grid_space_to_world(self, position: Vec2) -> Vec3:
        hx, hy = self.half_extents
        local = (position[0] * self.cell_scale - hx, position[1] * self.cell_scale - hy, 0.0)
        return self.transform.transform_position(local)

    # Spatial queries

    def trace_line(self, start: Vec3, end: Vec3) -> Vec3 | None:
        """Walk the cells from start to end; the first blocked crossing, or None if clear."""
        current = self.cell_ref(start)
        if not current.is_valid():
            return tuple(start)

        p0x, p0y = self.to_normalized_grid_space(start)
        p1x, p1y = self.to_normalized_grid_space(end)
        vx, vy = p1x - p0x, p1y - p0y
        length = math.hypot(vx, vy)
        if length <= KINDA_SMALL_NUMBER:
            return None
        vx /= length
        vy /= length

        dx = 1 if vx >= 0 else 0
        dy = 1 if vy >= 0 else 0
        step_x = 1 if vx > 0 else -1
        step_y = 1 if vy > 0 else -1
        cx, cy = current.x, current.y

        while True:
            tx = (cx + dx - p0x) / vx if abs(vx) > KINDA_SMALL_NUMBER else FLT_MAX
            ty = (cy + dy - p0y) / vy if abs(vy) > KINDA_SMALL_NUMBER else FLT_MAX
            t = min(tx, ty)
            if t >= length:
                return None

            if abs(tx - ty) < SMALL_NUMBER:
                cx += step_x
                cy += step_y
            elif tx <= ty:
                cx += step_x
            else:
                cy += step_y

            cell = CellRef(cx, cy)
            if not (self.is_valid_cell(cell) and self.is_traversable(cell)):
                return self.normalized_grid_space_to_world((p0x + vx * t, p0y + vy * t))