"""Fill a grid's traversability and height data from navigation polygons."""

from __future__ import annotations

from typing import Iterable, Sequence

from gridsense.cells import CellData
from gridsense.grid import SMALL_NUMBER, GridActor, Vec3


def _sub(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def _cross(a: Vec3, b: Vec3) -> Vec3:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def _dot(a: Vec3, b: Vec3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def _normalize(v: Vec3) -> Vec3:
    square = _dot(v, v)
    if square > SMALL_NUMBER:
        scale = square ** -0.5
        return (v[0] * scale, v[1] * scale, v[2] * scale)
    return v


def _rasterize_triangle(grid: GridActor, triangle: list[Vec3]) -> None:
    xs = [v[0] for v in triangle]
    ys = [v[1] for v in triangle]
    rect = grid.grid_space_bounds_to_rect(((min(xs), min(ys)), (max(xs), max(ys))))
    if rect is None:
        return

    p0, p1, p2 = triangle
    normal = _normalize(_cross(_sub(p2, p0), _sub(p1, p0)))
    # A vertical polygon has no height to project onto.
    if normal[2] == 0.0:
        return
    plane_d = _dot(normal, p0)

    outside_vectors = [
        (-(end[1] - start[1]), end[0] - start[0])
        for start, end in zip(triangle, triangle[1:] + triangle[:1])
    ]

    for cell in rect:
        cx, cy = grid.cell_grid_space_position(cell)
        if any(
            (cx - vertex[0]) * ox + (cy - vertex[1]) * oy > 0.0
            for vertex, (ox, oy) in zip(triangle, outside_vectors)
        ):
            continue

        index = grid.cell_index(cell)
        first = CellData.TRAVERSABLE not in CellData(grid.data[index])
        if first:
            grid.data[index] = CellData(grid.data[index]) | CellData.TRAVERSABLE

        height = (plane_d - (cx * normal[0] + cy * normal[1])) / normal[2]
        if first or height > grid.height_data[index]:
            grid.height_data[index] = height


def rasterize_nav_polygons(grid: GridActor, polygons: Iterable[Sequence[Vec3]]) -> None:
    """Mark cells covered by world-space polygons traversable and record their height.

    Each polygon is fanned into triangles from its first vertex; polygons with
    fewer than three vertices are ignored. Where polygons overlap, the highest
    surface wins.
    """
    grid.reset_data()
    hx, hy = grid.half_extents

    def to_grid_space(vertex: Sequence[float]) -> Vec3:
        x, y, z = grid.transform.inverse_transform_position(tuple(vertex))
        return (x + hx, y + hy, z)

    for polygon in polygons:
        vertices = [tuple(v) for v in polygon]
        if len(vertices) <= 2:
            continue
        for second, third in zip(vertices[1:-1], vertices[2:]):
            triangle = [to_grid_space(v) for v in (vertices[0], second, third)]
            _rasterize_triangle(grid, triangle)