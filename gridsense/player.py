"""The player-controlled character and its input handling."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence

from gridsense.actors import Character, MovementSettings, Vec3


def _player_movement() -> MovementSettings:
    return MovementSettings(max_walk_speed=500.0)


@dataclass(eq=False)
class PlayerCharacter(Character):
    """A character steered by player input relative to its controller's facing.

    The controller's control rotation is read as (pitch, yaw, roll) in degrees.
    """

    movement: MovementSettings = field(default_factory=_player_movement)
    camera_arm_length: float = 400.0
    movement_input: Vec3 = (0.0, 0.0, 0.0)

    def _add_movement_input(self, direction: Vec3, scale: float) -> None:
        mx, my, mz = self.movement_input
        self.movement_input = (
            mx + direction[0] * scale,
            my + direction[1] * scale,
            mz + direction[2] * scale,
        )

    def move(self, movement_vector: Sequence[float]) -> None:
        """Add movement input; x strafes right, y moves forward along the control yaw."""
        if self.controller is None:
            return
        yaw = math.radians(self.controller.control_rotation[1])
        forward = (math.cos(yaw), math.sin(yaw), 0.0)
        right = (-math.sin(yaw), math.cos(yaw), 0.0)
        self._add_movement_input(forward, movement_vector[1])
        self._add_movement_input(right, movement_vector[0])

    def look(self, look_vector: Sequence[float]) -> None:
        """Turn the controller: x adds yaw, y adds pitch."""
        if self.controller is None:
            return
        pitch, yaw, roll = self.controller.control_rotation
        self.controller.control_rotation = (pitch + look_vector[1], yaw + look_vector[0], roll)