# gridsense

A small library for grid-based game AI. It models a grid of walkable
cells laid over a world. On top of that grid it provides pathfinding,
perception, occupancy maps and position selection. Points and vectors
are plain `(x, y, z)` tuples.

## Modules

- `gridsense.cells`: `CellRef`, the integer coordinates of a cell. It has
  `is_valid()`, `distance()` and `CellRef.INVALID`. `CellData` is a flag
  enum whose members are `NONE` and `TRAVERSABLE`.
- `gridsense.gridmap`: `GridBox` is an inclusive cell rectangle that
  iterates row by row. `GridMap` holds one float per cell over a box, and
  can be built with `GridMap.from_grid(grid, initial_value, box)`. It has
  these methods:
  - `get_value` returns `None` for cells the map does not cover.
  - `set_value`
  - `max_value`
  - `is_all_zeros`
  - `sum_total`
  - `cell_to_local`
  - `local_to_cell`
- `gridsense.grid`: `Transform` applies scale, then a yaw about Z, then
  a translation. `GridActor` is a grid centred on its transform. Cell
  `(0, 0)` is at the minimum corner, and the data is stored X-major. It
  provides these methods:
  - `cell_ref` maps a world point to a cell. Points outside the grid give
    `CellRef.INVALID` unless `clamp=True`.
  - `cell_position`
  - `cell_index`
  - `cell_data`
  - `cell_height`
  - `is_traversable`
  - `neighbors`
  - `grid_space_bounds_to_rect`
  - `to_normalized_grid_space` and `normalized_grid_space_to_world`
  - `trace_line` returns the world point where a line first leaves
    traversable cells, or `None` when the line is clear.

  `neighbors` returns the on-grid cells of the 3x3 block around a cell.
  It always leaves out the grid's own cell `(0, 0)`.
- `gridsense.navgrid`: `rasterize_nav_polygons(grid, polygons)` resets
  the grid's data. It then marks every cell whose centre lies inside one
  of the world-space polygons as traversable, and records that cell's
  height. Polygons are fanned into triangles, and the highest surface wins.
- `gridsense.debugviz`: `build_debug_mesh` returns a `DebugMesh`. The mesh
  holds vertices at cell corners in grid-local space, with two triangles
  per traversable cell, plus normals and UVs. `build_debug_texture`
  returns BGRA bytes with one pixel per cell. Without a valid grid map, it
  shows traversability. With one, it shows the map's values.
- `gridsense.actors`: this module provides the following:
  - `Character` is a pawn with a location, velocity, yaw, capsule and
    `MovementSettings`. `request_path_move` stores the requested direction
    in `pending_move`.
  - `Controller` possesses a pawn.
  - `owner_pawn(owner)` resolves either one of them to a pawn.
- `gridsense.player`: `PlayerCharacter` handles input relative to its
  controller's yaw. `move` adds to `movement_input`, and `look` turns the
  controller's control rotation.
- `gridsense.pathfinding`: `PathComponent` has these methods:
  - `set_destination` plans an A* path and smooths it with grid line
    traces.
  - `tick` replans and steers the pawn along the path.
  - `dijkstra` fills a `GridMap` with path distances.
  - `build_path_from_distance_map` walks such a map back to the start.
  - `path_length`
  - `clear_path`

  `PathState` reports the progress of a path.
- `gridsense.perception`: `PerceptionSystem` registers perceivers and
  targets. `PerceptionComponent` keeps a `TargetData` for each target,
  holding line of sight, hearing and awareness in `[0, 1]`. Sight uses a
  `VisionParameters` cone, and hearing uses `SoundParameters`.
- `gridsense.targets`: `TargetComponent` has a `TargetCache` holding the
  last known state, position and velocity, with `TargetState` values
  `UNKNOWN`, `IMMEDIATE` and `HIDDEN`. It also keeps an occupancy map over
  the grid. On each `tick`, three things happen:
  - If the target is observed, all probability moves to its cell.
  - Cells that perceivers can see are cleared, and cells where the target
    can be heard are added.
  - Probability diffuses to neighbouring cells.
- `gridsense.spatial`: `SpatialFunction` holds a list of `FunctionLayer`s.
  Each layer has a `SpatialInput`: target range, path distance, line of
  sight or ally distance. Its value goes through a piecewise-linear
  `ResponseCurve` and is combined by a `SpatialOp`, which adds or
  multiplies. `SpatialComponent.choose_position` scores the reachable
  cells in a square around the pawn. It then picks the best cell and can
  optionally build a path to it.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
from gridsense.cells import CellData, CellRef
from gridsense.grid import GridActor
from gridsense.gridmap import GridMap

grid = GridActor(x_count=10, y_count=10, cell_scale=100.0)
for cell in GridMap.from_grid(grid).bounds:
    grid.data[grid.cell_index(cell)] = CellData.TRAVERSABLE

cell = grid.cell_ref((120.0, -40.0, 0.0))   # CellRef(x=6, y=4)
print(grid.cell_position(cell))
print(grid.neighbors(cell, True))

values = GridMap.from_grid(grid, 0.0)
values.set_value(cell, 1.0)
print(values.sum_total())                   # 1.0
```

## What it does not do

This is a library with no command-line program and no main loop. Your
code creates the objects, wires them together, and calls `tick` itself.
The library has no world, physics or renderer of its own:

- **Obstacles:** Line-of-sight checks beyond the grid go through a
  `line_trace` callable that you supply. Without one, nothing blocks
  sight.
- **Movement:** Movement requests and player input are only recorded on
  the characters, not simulated.
- **Debug output:** Debug meshes and textures are returned as plain data,
  not drawn.
- **Navigation polygons:** These must come from elsewhere.
  `rasterize_nav_polygons` only reads them.