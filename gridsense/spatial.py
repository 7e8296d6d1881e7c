"""Choosing where an AI should stand by scoring grid cells with layered spatial functions."""

from __future__ import annotations

import bisect
import copy
import dataclasses
import enum
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from gridsense.actors import Vec3, owner_pawn
from gridsense.cells import FLT_MAX, CellRef
from gridsense.debugviz import BIG_NUMBER, build_debug_texture
from gridsense.grid import GridActor
from gridsense.gridmap import GridMap
from gridsense.pathfinding import PathComponent, PathState
from gridsense.perception import PerceptionComponent
from gridsense.targets import TargetCache

logger = logging.getLogger(__name__)

LineTrace = Callable[[Vec3, Vec3, Sequence[Any]], bool]
"""Called with (start, end, ignored_actors); returns True when something blocks the line."""

LOS_OFFSET: Vec3 = (0.0, 0.0, 60.0)


class SpatialInput(enum.Enum):
    """The quantity a layer measures for each cell."""

    NONE = "None"
    TARGET_RANGE = "Target Range"
    PATH_DISTANCE = "PathDistance"
    LOS = "Line Of Sight"
    ALLY_DISTANCE = "Distance to Ally"


class SpatialOp(enum.Enum):
    """How a layer's value is combined into the accumulated score."""

    NONE = "None"
    ADD = "Add"
    MULTIPLY = "Multiply"


@dataclass
class ResponseCurve:
    """Piecewise-linear curve through (input, output) keys, flat beyond its ends."""

    keys: list = field(default_factory=list)

    def __post_init__(self) -> None:
        self.keys = sorted((float(t), float(v)) for t, v in self.keys)

    def evaluate(self, value: float, default: float = 0.0) -> float:
        """Curve output at value; the default when the curve has no keys."""
        if not self.keys:
            return default
        times = [t for t, _ in self.keys]
        if value <= times[0]:
            return self.keys[0][1]
        if value >= times[-1]:
            return self.keys[-1][1]
        upper = bisect.bisect_right(times, value)
        (t0, v0), (t1, v1) = self.keys[upper - 1], self.keys[upper]
        if t1 == t0:
            return v1
        fraction = (value - t0) / (t1 - t0)
        return v0 + (v1 - v0) * fraction


@dataclass
class FunctionLayer:
    """One input, shaped by a response curve, folded into the score by an operation."""

    input: SpatialInput = SpatialInput.NONE
    response_curve: ResponseCurve = field(default_factory=ResponseCurve)
    op: SpatialOp = SpatialOp.NONE


@dataclass
class SpatialFunction:
    """Ordered layers that rank cells, plus a bonus for keeping the previous choice."""

    last_cell_bonus: float = 0.0
    layers: list = field(default_factory=list)


@dataclass(eq=False)
class SpatialComponent:
    """Picks the best reachable cell around its owner's pawn and can path there.

    The owner is a pawn or a controller driving one. ``pawns`` lists every pawn
    in the world; other pawns whose controllers carry a path component count as
    allies. Without a ``line_trace`` nothing blocks sight.
    """

    owner: Any = None
    grid: Optional[GridActor] = None
    path_component: Optional[PathComponent] = None
    spatial_function: Optional[SpatialFunction] = None
    sample_dimensions: float = 8000.0
    best_cell: CellRef = CellRef.INVALID
    pawns: list = field(default_factory=list)
    line_trace: Optional[LineTrace] = None
    debug_texture: bytes = b""

    @property
    def owner_pawn(self):
        return owner_pawn(self.owner)

    def _path_component(self) -> Optional[PathComponent]:
        if self.path_component is None and self.owner is not None:
            finder = getattr(self.owner, "find_component", None)
            if finder is not None:
                self.path_component = finder(PathComponent)
        return self.path_component

    def target_data(self) -> tuple[Any, TargetCache]:
        """The current target's actor and a copy of its last known state.

        The actor is None, with an empty cache, when the owner perceives no target.
        """
        finder = getattr(self.owner, "find_component", None)
        perception = finder(PerceptionComponent) if finder is not None else None
        if perception is not None:
            target = perception.current_target()
            if target is not None:
                return target.owner, target.target_cache()
        return None, TargetCache()

    def choose_position(self, pathfind_to_position: bool = False, debug: bool = False) -> bool:
        """Score the reachable cells around the pawn and remember the best one.

        Returns True when a reachable cell was chosen. When asked, a path is
        built to it, or the path is cleared when there is none.
        """
        pawn = self.owner_pawn
        if pawn is None:
            return False
        grid = self.grid
        path = self._path_component()

        last_cell = self.best_cell
        self.best_cell = CellRef.INVALID

        if grid is None or path is None:
            return False
        function = self.spatial_function
        if function is None:
            logger.warning("spatial component has no spatial function assigned")
            return False

        start = tuple(pawn.location)
        half = self.sample_dimensions / 2.0
        box = ((start[0] - half, start[1] - half), (start[0] + half, start[1] + half))
        rect = grid.grid_space_bounds_to_rect(box)
        if rect is None:
            return False

        grid_map = GridMap.from_grid(grid, 0.0, dataclasses.replace(rect))
        distance_map = GridMap.from_grid(grid, FLT_MAX, dataclasses.replace(rect))

        path.dijkstra(start, distance_map)
        grid_map.set_value(last_cell, function.last_cell_bonus)

        for layer in function.layers:
            self.evaluate_layer(layer, distance_map, grid_map)

        result = False
        best_score = -FLT_MAX
        for cell in grid_map.bounds:
            distance = distance_map.get_value(cell)
            if distance is None or not distance < FLT_MAX:
                continue
            score = grid_map.get_value(cell)
            if score is not None and score > best_score:
                best_score = score
                self.best_cell = cell
                result = True

        if pathfind_to_position:
            if self.best_cell.is_valid():
                path.build_path_from_distance_map(start, self.best_cell, distance_map)
            else:
                path.clear_path()

        if debug:
            grid.debug_grid_map = copy.deepcopy(grid_map)
            self.debug_texture = build_debug_texture(grid)

        return result

    def _ally_positions(self, pawn: Any, target_actor: Any) -> list[tuple[Vec3, float]]:
        allies = []
        for actor in self.pawns:
            if actor is pawn or actor is target_actor:
                continue
            controller = getattr(actor, "controller", None)
            if controller is None:
                continue
            other_path = controller.find_component(PathComponent)
            if other_path is None:
                continue
            # An ally heading somewhere is counted at its destination, with its remaining path length.
            if other_path.state is PathState.ACTIVE:
                allies.append((tuple(other_path.destination), other_path.path_length()))
            else:
                allies.append((tuple(actor.location), 0.0))
        return allies

    def evaluate_layer(self, layer: FunctionLayer, distance_map: GridMap, grid_map: GridMap) -> None:
        """Fold one layer into grid_map for every traversable cell the distance map reaches."""
        grid = self.grid
        if grid is None:
            raise RuntimeError("evaluating a layer needs a grid")
        pawn = self.owner_pawn
        target_actor, target_cache = self.target_data()
        target_position = tuple(target_cache.position)

        allies = []
        if layer.input is SpatialInput.ALLY_DISTANCE:
            allies = self._ally_positions(pawn, target_actor)

        for cell in grid_map.bounds:
            if not grid.is_traversable(cell):
                continue
            cell_distance = distance_map.get_value(cell)
            if cell_distance is None or not cell_distance < FLT_MAX:
                continue

            value = 0.0
            if layer.input is SpatialInput.TARGET_RANGE:
                value = math.dist(grid.cell_position(cell), target_position)
            elif layer.input is SpatialInput.PATH_DISTANCE:
                value = cell_distance
            elif layer.input is SpatialInput.LOS:
                x, y, z = grid.cell_position(cell)
                origin = (x + LOS_OFFSET[0], y + LOS_OFFSET[1], z + LOS_OFFSET[2])
                blocked = self.line_trace is not None and self.line_trace(
                    origin, target_position, (target_actor, pawn)
                )
                value = 0.0 if blocked else 1.0
            elif layer.input is SpatialInput.ALLY_DISTANCE:
                # Allies farther from their goal than we are from this cell can be ignored.
                position = grid.cell_position(cell)
                value = min(
                    (
                        math.dist(position, ally_position)
                        for ally_position, ally_distance in allies
                        if ally_distance < cell_distance
                    ),
                    default=BIG_NUMBER,
                )

            modified = layer.response_curve.evaluate(value, value)
            current = grid_map.get_value(cell)
            if current is None:
                current = 0.0
            if layer.op is SpatialOp.ADD:
                new_value = current + modified
            elif layer.op is SpatialOp.MULTIPLY:
                new_value = current * modified
            else:
                new_value = current
            grid_map.set_value(cell, new_value)