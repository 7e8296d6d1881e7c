"""Debug mesh and texture data describing a grid's contents."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from gridsense.cells import CellRef
from gridsense.grid import GridActor, Vec2, Vec3
from gridsense.gridmap import GridMap

BIG_NUMBER = 3.4e38
UP_VECTOR: Vec3 = (0.0, 0.0, 1.0)


@dataclass
class DebugMesh:
    """Vertices on cell corners, and two triangles per traversable cell."""

    vertices: list[Vec3] = field(default_factory=list)
    triangles: list[int] = field(default_factory=list)
    normals: list[Vec3] = field(default_factory=list)
    uvs: list[Vec2] = field(default_factory=list)


def _corner_height(grid: GridActor, x: int, y: int) -> float:
    corners = (CellRef(x, y), CellRef(x, y - 1), CellRef(x - 1, y - 1), CellRef(x - 1, y))
    heights = [
        grid.height_data[grid.cell_index(cell)]
        for cell in corners
        if grid.is_cell_in_bounds(cell) and grid.is_traversable(cell)
    ]
    return sum(heights) / len(heights) if heights else 0.0


def build_debug_mesh(grid: GridActor, z_offset: float | None = None) -> DebugMesh:
    """Mesh over the grid in its local space, raised by z_offset above the cells."""
    if z_offset is None:
        z_offset = grid.debug_mesh_z_offset
    corner_x = -grid.x_count * grid.cell_scale * 0.5
    corner_y = -grid.y_count * grid.cell_scale * 0.5
    corners = [(x, y) for y in range(grid.y_count + 1) for x in range(grid.x_count + 1)]

    mesh = DebugMesh()
    mesh.vertices = [
        (
            x * grid.cell_scale + corner_x,
            y * grid.cell_scale + corner_y,
            _corner_height(grid, x, y) + z_offset,
        )
        for x, y in corners
    ]

    row = grid.x_count + 1
    for y in range(grid.y_count):
        for x in range(grid.x_count):
            if not grid.is_traversable(CellRef(x, y)):
                continue
            top_left = y * row + x
            bottom_left = top_left + row
            bottom_right = bottom_left + 1
            top_right = top_left + 1
            mesh.triangles.extend(
                (top_left, bottom_left, bottom_right, top_left, bottom_right, top_right)
            )

    delta_x = 1.0 / grid.x_count
    delta_y = 1.0 / grid.y_count
    mesh.uvs = [(x * delta_x, y * delta_y) for x, y in corners]
    mesh.normals = [UP_VECTOR] * len(corners)
    return mesh


def _round_to_int(value: float) -> int:
    return math.floor(value + 0.5)


def build_debug_texture(grid: GridActor, grid_map: GridMap | None = None) -> bytes:
    """BGRA pixels, one per cell in row order, showing traversability and map values.

    Without a valid map, traversable cells are white and others black. With
    one, blue fades to red towards the map's largest value and green marks
    traversable cells.
    """
    if grid_map is None:
        grid_map = grid.debug_grid_map
    pixels = bytearray()

    if grid_map.is_valid():
        max_value = grid_map.max_value(BIG_NUMBER)
        for y in range(grid.y_count):
            for x in range(grid.x_count):
                cell = CellRef(x, y)
                traversable = grid.is_traversable(cell)
                value = grid_map.get_value(cell)
                on_map = value is not None
                intensity = 0
                if on_map and max_value != 0.0:
                    intensity = _round_to_int(255.0 * (value / max_value))
                blue = (255 - intensity) & 0xFF if on_map else 0
                pixels.extend((blue, 50 if traversable else 0, intensity & 0xFF, 255))
    else:
        for y in range(grid.y_count):
            for x in range(grid.x_count):
                shade = 255 if grid.is_traversable(CellRef(x, y)) else 0
                pixels.extend((shade, shade, shade, 255))

    return bytes(pixels)