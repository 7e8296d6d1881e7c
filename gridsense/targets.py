"""Perceivable targets: their last known state and where they probably are."""

from __future__ import annotations

import copy
import dataclasses
import enum
import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from gridsense.actors import Character, Vec3
from gridsense.cells import CellRef
from gridsense.debugviz import build_debug_texture
from gridsense.grid import GridActor
from gridsense.gridmap import GridMap
from gridsense.perception import PerceptionSystem

SQRT_2 = math.sqrt(2.0)
DEFAULT_HEIGHT_OFFSET = 50.0


class TargetState(enum.Enum):
    """How much the AIs currently know about a target."""

    UNKNOWN = "Unknown"  # never seen
    IMMEDIATE = "Immediate"  # being observed right now
    HIDDEN = "Hidden"  # known about but not currently observed


@dataclass
class TargetCache:
    """Last known state, position and velocity of a target in world space."""

    state: TargetState = TargetState.UNKNOWN
    position: Vec3 = (0.0, 0.0, 0.0)
    velocity: Vec3 = (0.0, 0.0, 0.0)


def _divide(value: float, total: float) -> float:
    if total == 0.0:
        return math.nan
    return value / total


@dataclass(eq=False)
class TargetComponent:
    """A target that perceivers can become aware of, tracked with an occupancy map.

    The owner is the target's actor: it has ``location`` and ``velocity``.
    The occupancy map is a probability distribution over the grid of where
    the target is believed to be.
    """

    owner: Any = None
    system: Optional[PerceptionSystem] = None
    grid: Optional[GridActor] = None
    target_guid: uuid.UUID = field(default_factory=uuid.uuid4)
    last_known_state: TargetCache = field(default_factory=TargetCache)
    occupancy_map_diffusion_per_second: float = 0.25
    occupancy_map: GridMap = field(default_factory=GridMap)
    debug_occupancy_map: bool = False
    debug_texture: bytes = b""

    def register(self) -> None:
        """Join the perception system and start an empty occupancy map over the grid."""
        if self.system is not None:
            self.system.register_target_component(self)
        if self.grid is not None:
            self.occupancy_map = GridMap.from_grid(self.grid, 0.0)

    def unregister(self) -> None:
        if self.system is not None:
            self.system.unregister_target_component(self)

    def is_known(self) -> bool:
        """True when at least one AI has become fully aware of this target."""
        return self.last_known_state.state in (TargetState.IMMEDIATE, TargetState.HIDDEN)

    def target_cache(self) -> TargetCache:
        """A copy of the last known information about this target."""
        return dataclasses.replace(self.last_known_state)

    def hide(self) -> None:
        """Forget the target: it becomes unknown again."""
        self.last_known_state.state = TargetState.UNKNOWN

    def _perceivers(self) -> list:
        if self.system is None:
            return []
        return list(self.system.perception_components)

    def _is_observed(self) -> bool:
        for perceiver in self._perceivers():
            data = perceiver.target_data(self.target_guid)
            if data is not None and data.awareness >= 1.0:
                return True
        return False

    def tick(self, delta_time: float) -> None:
        """Advance the perception state and the occupancy map by one frame."""
        if self._is_observed():
            state = self.last_known_state
            state.state = TargetState.IMMEDIATE
            state.position = tuple(self.owner.location)
            state.velocity = tuple(self.owner.velocity)
            # All probability goes to the observed location.
            self.occupancy_map_set_position(state.position)
        elif self.is_known():
            self.last_known_state.state = TargetState.HIDDEN

        if self.last_known_state.state is TargetState.HIDDEN:
            self.occupancy_map_update()

        if self.is_known():
            self.occupancy_map_diffuse(delta_time)

        if self.debug_occupancy_map:
            if self.grid is None:
                raise RuntimeError("debugging the occupancy map needs a grid")
            self.grid.debug_grid_map = copy.deepcopy(self.occupancy_map)
            self.debug_texture = build_debug_texture(self.grid)

    def occupancy_map_set_position(self, position: Vec3) -> None:
        """Put all probability on the cell holding the position, if it is on the grid."""
        if self.grid is None:
            return
        cell = self.grid.cell_ref(position)
        if cell.is_valid():
            self.occupancy_map.reset_data(0.0)
            self.occupancy_map.set_value(cell, 1.0)

    def _height_offset(self) -> float:
        if isinstance(self.owner, Character):
            return self.owner.default_half_height
        return DEFAULT_HEIGHT_OFFSET

    def occupancy_map_update(self) -> None:
        """Remove probability from cells the AIs can see, add cells where they hear
        the target, renormalise, and move the last known position to the likeliest cell."""
        grid = self.grid
        if grid is None:
            return
        owner = self.owner
        owner_location = tuple(owner.location)
        offset = self._height_offset()

        def raised(cell: CellRef) -> Vec3:
            x, y, z = grid.cell_position(cell)
            return (x, y, z + offset)

        visibility = GridMap.from_grid(grid, 0.0)
        sound = GridMap.from_grid(grid, 0.0)

        for perceiver in self._perceivers():
            for cell in visibility.bounds:
                if grid.is_traversable(cell):
                    # Cells already known to be visible are not tested again.
                    if visibility.get_value(cell) == 0.0 and perceiver.has_clear_los(
                        owner, raised(cell)
                    ):
                        visibility.set_value(cell, 1.0)
                else:
                    visibility.set_value(cell, 1.0)

        # The cell the target stands on is never cleared, so its true location keeps probability.
        actual = grid.cell_ref(owner_location)
        if grid.is_valid_cell(actual) and grid.is_traversable(actual):
            visibility.set_value(actual, 0.0)

        occupancy = self.occupancy_map
        total_p = 0.0
        for cell in visibility.bounds:
            visible = visibility.get_value(cell)
            if visible is not None and visible > 0.0:
                occupancy.set_value(cell, 0.0)
            else:
                p = occupancy.get_value(cell)
                if p is not None:
                    total_p += p

        if total_p > 0.0:
            norm = 1.0 / total_p
            for cell in occupancy.bounds:
                p = occupancy.get_value(cell)
                if p is not None and p > 0.0:
                    occupancy.set_value(cell, p * norm)

        if self.system is None:
            return

        for perceiver in self._perceivers():
            for cell in sound.bounds:
                if grid.is_traversable(cell):
                    if sound.get_value(cell) == 0.0 and perceiver.heard_player_move(
                        owner, raised(cell)
                    ):
                        sound.set_value(cell, 1.0)
                else:
                    sound.set_value(cell, 0.0)

        combined = GridMap.from_grid(grid, 0.0)
        total = 0.0
        for cell in combined.bounds:
            value = (occupancy.get_value(cell) or 0.0) + (sound.get_value(cell) or 0.0)
            total += value
            combined.set_value(cell, value)

        best_cell = CellRef.INVALID
        best_p = 0.0
        for cell in combined.bounds:
            new_p = _divide(combined.get_value(cell) or 0.0, total)
            occupancy.set_value(cell, new_p)
            if new_p > best_p:
                best_p = new_p
                best_cell = cell

        if best_cell.is_valid():
            self.last_known_state.position = raised(best_cell)
            self.last_known_state.velocity = (0.0, 0.0, 0.0)

    def occupancy_map_diffuse(self, delta_time: float) -> None:
        """Spread probability to traversable neighbours; diagonal ones get 1/sqrt(2) as much."""
        grid = self.grid
        if grid is None:
            return
        scratch = GridMap.from_grid(grid, 0.0)
        rate = self.occupancy_map_diffusion_per_second * delta_time
        alpha = rate / (4.0 + 4.0 / SQRT_2)
        diagonal_alpha = alpha / SQRT_2

        for cell in self.occupancy_map.bounds:
            p = self.occupancy_map.get_value(cell)
            if p is None or not p > 0.0:
                continue
            adjacent_share = alpha * p
            diagonal_share = diagonal_alpha * p
            diffused = 0.0

            for dy in (-1, 0, 1):
                for dx in (-1, 0, 1):
                    if dx == 0 and dy == 0:
                        continue
                    neighbor = CellRef(cell.x + dx, cell.y + dy)
                    if not (grid.is_valid_cell(neighbor) and grid.is_traversable(neighbor)):
                        continue
                    current = scratch.get_value(neighbor)
                    if current is None:
                        continue
                    share = adjacent_share if dx == 0 or dy == 0 else diagonal_share
                    scratch.set_value(neighbor, current + share)
                    diffused += share

            own = scratch.get_value(cell)
            if own is not None:
                scratch.set_value(cell, own + (p - diffused))

        self.occupancy_map.data = scratch.data