"""Pawns and controllers that the AI components act on."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

Vec3 = Tuple[float, float, float]


@dataclass
class MovementSettings:
    """Character movement tuning."""

    orient_rotation_to_movement: bool = True
    rotation_rate: Vec3 = (0.0, 500.0, 0.0)
    jump_z_velocity: float = 700.0
    air_control: float = 0.35
    max_walk_speed: float = 200.0
    min_analog_walk_speed: float = 20.0
    braking_deceleration_walking: float = 2000.0
    braking_deceleration_falling: float = 1500.0


@dataclass(eq=False)
class Character:
    """A pawn with a collision capsule, a facing and a movement request slot."""

    location: Vec3 = (0.0, 0.0, 0.0)
    velocity: Vec3 = (0.0, 0.0, 0.0)
    yaw: float = 0.0
    capsule_radius: float = 42.0
    capsule_half_height: float = 96.0
    movement: MovementSettings = field(default_factory=MovementSettings)
    move_frequency: float = 1.5
    move_amplitude: float = 1.0
    use_controller_rotation_pitch: bool = False
    use_controller_rotation_yaw: bool = False
    use_controller_rotation_roll: bool = False
    controller: Optional["Controller"] = None
    components: list = field(default_factory=list)
    pending_move: Vec3 = (0.0, 0.0, 0.0)

    def __post_init__(self) -> None:
        self.move_amplitude = max(-1.0, min(self.move_amplitude, 1.0))

    @property
    def forward_vector(self) -> Vec3:
        angle = math.radians(self.yaw)
        return (math.cos(angle), math.sin(angle), 0.0)

    @property
    def default_half_height(self) -> float:
        return self.capsule_half_height

    def find_component(self, kind: type) -> Any:
        """First attached component of the given type, or None."""
        return next((c for c in self.components if isinstance(c, kind)), None)

    def request_path_move(self, direction: Vec3) -> None:
        """Ask the movement to head in the given direction."""
        self.pending_move = tuple(direction)


@dataclass(eq=False)
class Controller:
    """Something that possesses a pawn and can carry components of its own."""

    pawn: Optional[Character] = None
    control_rotation: Vec3 = (0.0, 0.0, 0.0)
    components: list = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.pawn is not None:
            self.pawn.controller = self

    def find_component(self, kind: type) -> Any:
        """First attached component of the given type, or None."""
        return next((c for c in self.components if isinstance(c, kind)), None)


def owner_pawn(owner: Any) -> Optional[Character]:
    """The pawn behind an owner: the owner itself, or the pawn its controller drives."""
    if isinstance(owner, Character):
        return owner
    if isinstance(owner, Controller):
        return owner.pawn
    return None