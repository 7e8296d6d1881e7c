"""Path planning and following over a grid."""

from __future__ import annotations

import enum
import heapq
import itertools
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Optional

from gridsense.actors import owner_pawn
from gridsense.cells import FLT_MAX, CellRef
from gridsense.grid import SMALL_NUMBER, GridActor, Vec3
from gridsense.gridmap import GridMap

logger = logging.getLogger(__name__)

SQRT_2 = math.sqrt(2.0)


class PathState(enum.Enum):
    """Progress of a path towards its destination."""

    NONE = "None"
    ACTIVE = "Active"
    FINISHED = "Finished"
    INVALID = "Invalid"


@dataclass
class PathStep:
    """One waypoint: a world point and the cell it belongs to."""

    point: Vec3 = (0.0, 0.0, 0.0)
    cell_ref: CellRef = CellRef.INVALID


@dataclass
class _Record:
    cell: CellRef
    previous: CellRef
    cumulative_distance: float
    total_score: float


class _Frontier:
    """Priority queue keyed on total score, holding at most one record per cell."""

    def __init__(self) -> None:
        self._heap: list = []
        self._entries: dict[CellRef, _Record] = {}
        self._counter = itertools.count()

    def __bool__(self) -> bool:
        return bool(self._entries)

    def offer(self, record: _Record) -> None:
        """Add a record unless the cell is already queued with a score at least as good."""
        existing = self._entries.get(record.cell)
        if existing is not None and record.total_score >= existing.total_score:
            return
        self._entries[record.cell] = record
        heapq.heappush(self._heap, (record.total_score, next(self._counter), record))

    def pop(self) -> _Record:
        while True:
            _, _, record = heapq.heappop(self._heap)
            if self._entries.get(record.cell) is record:
                del self._entries[record.cell]
                return record


def _step_cost(a: CellRef, b: CellRef, straight: float, diagonal: float) -> float:
    return diagonal if a.x != b.x and a.y != b.y else straight


def _normalized(v: Vec3) -> Vec3:
    square = v[0] * v[0] + v[1] * v[1] + v[2] * v[2]
    if square > SMALL_NUMBER:
        scale = 1.0 / math.sqrt(square)
        return (v[0] * scale, v[1] * scale, v[2] * scale)
    return v


@dataclass(eq=False)
class PathComponent:
    """Plans paths on a grid and steers its owner's pawn along them.

    The owner is a pawn or a controller driving one.
    """

    owner: Any = None
    grid: Optional[GridActor] = None
    arrival_distance: float = 100.0
    state: PathState = PathState.NONE
    destination_valid: bool = False
    distance_map_path_valid: bool = False
    destination: Vec3 = (0.0, 0.0, 0.0)
    destination_cell: CellRef = CellRef.INVALID
    steps: list = field(default_factory=list)

    @property
    def owner_pawn(self):
        return owner_pawn(self.owner)

    # State update

    def tick(self, delta_time: float) -> None:
        """Replan towards the destination if there is one, then follow the path."""
        if self.owner_pawn is None:
            return
        valid = False
        if self.destination_valid:
            self.refresh_path()
            valid = True
        elif self.distance_map_path_valid:
            valid = True
        if valid and self.state is PathState.ACTIVE:
            self.follow_path()

    def refresh_path(self) -> PathState:
        """Replan from the pawn's location to the destination."""
        pawn = self.owner_pawn
        if pawn is None:
            self.state = PathState.INVALID
            return self.state
        if not self.destination_valid:
            raise RuntimeError("refresh_path needs a destination")

        start = pawn.location
        if math.dist(start, self.destination) <= self.arrival_distance:
            self.state = PathState.FINISHED
            return self.state

        self.steps = []
        unsmoothed = self.a_star(start)
        if unsmoothed is None:
            self.state = PathState.INVALID
            return self.state
        smoothed = self.smooth_path(start, unsmoothed)
        if smoothed is None:
            self.state = PathState.INVALID
        else:
            self.steps = smoothed
            self.state = PathState.ACTIVE
        return self.state

    def a_star(self, start_point: Vec3) -> list[PathStep] | None:
        """Shortest traversable path to the destination cell, or None if there is none.

        The start cell is left out; the last step points at the destination itself.
        """
        grid = self.grid
        if grid is None:
            return None
        start = grid.cell_ref(start_point)
        if not start.is_valid():
            return None

        goal = self.destination_cell
        start_record = _Record(start, CellRef.INVALID, 0.0, start.distance(goal))
        closed: dict[CellRef, _Record] = {start: start_record}
        frontier = _Frontier()
        frontier.offer(start_record)

        while frontier:
            current = frontier.pop()
            closed[current.cell] = current

            if current.cell == goal:
                cells = []
                record: Optional[_Record] = current
                while record is not None:
                    cells.append(record.cell)
                    record = closed.get(record.previous)
                steps = [PathStep(grid.cell_position(cell), cell) for cell in reversed(cells[:-1])]
                if steps:
                    steps[-1].point = self.destination
                return steps

            for neighbor in grid.neighbors(current.cell, True):
                if neighbor in closed:
                    continue
                cost = _step_cost(current.cell, neighbor, 1.0, SQRT_2)
                cumulative = current.cumulative_distance + cost
                total = cumulative + neighbor.distance(goal)
                frontier.offer(_Record(neighbor, current.cell, cumulative, total))

        return None

    def dijkstra(self, start_point: Vec3, distance_map: GridMap) -> bool:
        """Fill cells holding FLT_MAX in the map with path distances from the start.

        Returns False when there is no grid or the start is off the grid.
        """
        grid = self.grid
        if grid is None:
            return False
        start = grid.cell_ref(start_point)
        if not start.is_valid():
            return False

        diagonal = SQRT_2 * grid.cell_scale
        frontier = _Frontier()
        frontier.offer(_Record(start, CellRef.INVALID, 0.0, 0.0))

        while frontier:
            current = frontier.pop()
            distance_map.set_value(current.cell, current.cumulative_distance)

            for neighbor in grid.neighbors(current.cell, True):
                if distance_map.get_value(neighbor) != FLT_MAX:
                    continue
                cost = _step_cost(current.cell, neighbor, grid.cell_scale, diagonal)
                cumulative = current.cumulative_distance + cost
                frontier.offer(_Record(neighbor, current.cell, cumulative, cumulative))

        return True

    def build_path_from_distance_map(
        self, start_point: Vec3, end_cell: CellRef, distance_map: GridMap
    ) -> bool:
        """Walk down a distance map from end_cell back to the start and follow that path."""
        self.distance_map_path_valid = False
        self.destination_valid = False
        grid = self.grid
        if grid is None:
            return False

        start_cell = grid.cell_ref(start_point)
        end_position = grid.cell_position(end_cell)
        current = end_cell
        cells: list[CellRef] = []

        while current != start_cell:
            cells.append(current)
            current_position = grid.cell_position(current)
            distance = distance_map.get_value(current)
            if distance is None:
                distance = FLT_MAX

            best_distance = FLT_MAX
            best = CellRef.INVALID
            for neighbor in grid.neighbors(current, True):
                neighbor_distance = distance_map.get_value(neighbor)
                if neighbor_distance is None or neighbor_distance >= distance:
                    continue
                total = math.dist(current_position, grid.cell_position(neighbor)) + neighbor_distance
                if total < best_distance:
                    best_distance = total
                    best = neighbor

            if not best.is_valid():
                break
            current = best

        if not cells:
            return False

        unsmoothed = [PathStep(grid.cell_position(cell), cell) for cell in reversed(cells)]
        self.steps = []
        smoothed = self.smooth_path(start_point, unsmoothed)
        if smoothed is None:
            self.state = PathState.INVALID
        else:
            self.steps = smoothed
            self.state = PathState.ACTIVE
            self.destination = end_position
            self.destination_cell = end_cell
            self.distance_map_path_valid = True
        return True

    def smooth_path(self, start_point: Vec3, unsmoothed_steps: list) -> list[PathStep] | None:
        """Drop steps that can be skipped by a clear straight line; None without a grid."""
        if len(unsmoothed_steps) <= 1:
            return list(unsmoothed_steps)
        grid = self.grid
        if grid is None:
            return None

        smoothed: list[PathStep] = []
        last_point = start_point
        for previous, step in zip(unsmoothed_steps, unsmoothed_steps[1:-1]):
            cell_point = grid.cell_position(step.cell_ref)
            if grid.trace_line(last_point, cell_point) is not None:
                smoothed.append(previous)
                last_point = previous.point
        smoothed.append(unsmoothed_steps[-1])
        return smoothed

    def follow_path(self) -> None:
        """Ask the pawn to move towards the first step of the path."""
        pawn = self.owner_pawn
        if pawn is None:
            return
        if self.state is not PathState.ACTIVE:
            raise RuntimeError("follow_path needs an active path")
        if not self.steps:
            logger.warning("follow_path called with no steps")
            return
        target = self.steps[0].point
        start = pawn.location
        direction = _normalized(
            (target[0] - start[0], target[1] - start[1], target[2] - start[2])
        )
        pawn.request_path_move(direction)

    def clear_path(self) -> None:
        self.destination_valid = False
        self.distance_map_path_valid = False
        self.steps = []
        self.state = PathState.NONE

    # Destination

    def set_destination(self, destination_point: Vec3) -> PathState:
        """Aim for a world point and plan a path to it."""
        self.destination = tuple(destination_point)
        self.state = PathState.INVALID
        self.destination_valid = True

        grid = self.grid
        if grid is not None:
            cell = grid.cell_ref(self.destination)
            if cell.is_valid():
                self.destination_cell = cell
                self.refresh_path()
        return self.state

    def path_length(self) -> float:
        """Length of the active path from the pawn through every step; 0 otherwise."""
        if self.state is not PathState.ACTIVE:
            return 0.0
        pawn = self.owner_pawn
        if pawn is None:
            raise RuntimeError("path_length needs a pawn")
        points = [pawn.location] + [step.point for step in self.steps]
        return sum(math.dist(a, b) for a, b in zip(points, points[1:]))