"""What each AI perceives of the targets in the world, and the registry tying them together."""

from __future__ import annotations

import copy
import dataclasses
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from gridsense.actors import Vec3, owner_pawn

LineTrace = Callable[[Vec3, Vec3, Sequence[Any]], bool]
"""Called with (start, end, ignored_actors); returns True when something blocks the line."""


@dataclass
class TargetData:
    """One perceiver's awareness of one target."""

    clear_los: bool = False
    awareness: float = 0.0
    hearing_player: bool = False


@dataclass
class VisionParameters:
    """A vision cone around the pawn's facing: full angle in degrees, and reach."""

    vision_angle: float = 90.0
    vision_distance: float = 1000.0


@dataclass
class SoundParameters:
    """How far away a moving target can be heard."""

    hearing_range: float = 200.0


@dataclass(eq=False)
class PerceptionSystem:
    """Registry of every perceiver and every perceivable target."""

    perception_components: list = field(default_factory=list)
    target_components: list = field(default_factory=list)

    def register_perception_component(self, component: "PerceptionComponent") -> bool:
        if component not in self.perception_components:
            self.perception_components.append(component)
        return True

    def unregister_perception_component(self, component: "PerceptionComponent") -> bool:
        before = len(self.perception_components)
        self.perception_components = [c for c in self.perception_components if c is not component]
        return len(self.perception_components) < before

    def register_target_component(self, component: Any) -> bool:
        if component not in self.target_components:
            self.target_components.append(component)
        return True

    def unregister_target_component(self, component: Any) -> bool:
        before = len(self.target_components)
        self.target_components = [c for c in self.target_components if c is not component]
        return len(self.target_components) < before

    def reset_all_target_components(self) -> None:
        """Make every target unknown again."""
        for target in self.target_components:
            target.hide()


def _rate(change_time: float) -> float:
    if change_time == 0.0:
        return math.copysign(math.inf, change_time)
    return 1.0 / change_time


def _scaled(rate: float, delta_time: float) -> float:
    return 0.0 if delta_time == 0.0 else rate * delta_time


def _normalized(v: Vec3) -> Vec3:
    length = math.sqrt(v[0] * v[0] + v[1] * v[1] + v[2] * v[2])
    if length * length > 1.0e-8:
        return (v[0] / length, v[1] / length, v[2] / length)
    return v


@dataclass(eq=False)
class PerceptionComponent:
    """Tracks, per target, whether its owner can see or hear it and how aware it is.

    The owner is a pawn or a controller driving one. Targets are objects with
    ``target_guid``, ``owner``, ``last_known_state``, ``is_known()`` and ``hide()``.
    Without a ``line_trace`` nothing blocks sight.
    """

    owner: Any = None
    system: Optional[PerceptionSystem] = None
    line_trace: Optional[LineTrace] = None
    time_to_acknowledge: float = 2.0
    time_to_lose: float = 0.5
    hearing_dist: float = 5000.0
    sound_acknowledgement_time: float = 0.0
    sound_lose_time: float = 0.0
    vision_parameters: VisionParameters = field(default_factory=VisionParameters)
    sound_parameters: SoundParameters = field(default_factory=SoundParameters)
    target_map: dict = field(default_factory=dict)

    @property
    def owner_pawn(self):
        return owner_pawn(self.owner)

    def register(self) -> None:
        if self.system is not None:
            self.system.register_perception_component(self)

    def unregister(self) -> None:
        if self.system is not None:
            self.system.unregister_perception_component(self)

    def current_target(self) -> Any:
        """The first registered target, if it is known; otherwise None."""
        if self.system is not None and self.system.target_components:
            target = self.system.target_components[0]
            if target.is_known():
                return target
        return None

    def has_target(self) -> bool:
        return self.current_target() is not None

    def current_target_state(self) -> tuple[Any, TargetData] | None:
        """The current target's last known state and this perceiver's data on it."""
        target = self.current_target()
        if target is None:
            return None
        data = self.target_map.get(target.target_guid)
        if data is None:
            return None
        return copy.copy(target.last_known_state), dataclasses.replace(data)

    def all_target_states(self, only_known: bool = False) -> list[tuple[Any, TargetData]]:
        """Last known state and data for every target this perceiver has data on."""
        if self.system is None:
            return []
        result = []
        for target in self.system.target_components:
            data = self.target_map.get(target.target_guid)
            if data is not None and (not only_known or target.is_known()):
                result.append((copy.copy(target.last_known_state), dataclasses.replace(data)))
        return result

    def tick(self, delta_time: float) -> None:
        self.update_all_target_data(delta_time)

    def update_all_target_data(self, delta_time: float) -> None:
        if self.system is None:
            return
        for target in list(self.system.target_components):
            self.update_target_data(delta_time, target)

    def update_target_data(self, delta_time: float, target: Any) -> None:
        """Refresh sight and hearing of one target and move its awareness accordingly."""
        data = self.target_map.setdefault(target.target_guid, TargetData())
        target_actor = target.owner
        target_point = tuple(target_actor.location)

        data.clear_los = self.has_clear_los(target_actor, target_point)
        change_time = self.time_to_acknowledge if data.clear_los else -self.time_to_lose
        awareness_delta = _scaled(_rate(change_time), delta_time)

        # Hearing raises awareness at half the rate of sight.
        can_hear = self.heard_player_move(target_actor, target_point)
        sound_time = self.sound_acknowledgement_time if can_hear else -self.sound_lose_time
        sound_delta = _scaled(_rate(sound_time), delta_time)
        data.hearing_player = can_hear
        if can_hear:
            awareness_delta += sound_delta * 0.5

        data.awareness = max(0.0, min(data.awareness + awareness_delta, 1.0))

    def target_data(self, target_guid: Any) -> Optional[TargetData]:
        return self.target_map.get(target_guid)

    def has_clear_los(self, target_actor: Any, target_point: Vec3) -> bool:
        """True when the point is within the vision cone and nothing blocks the line to it."""
        pawn = self.owner_pawn
        if pawn is None:
            return False
        origin = tuple(pawn.location)
        if math.dist(target_point, origin) > self.vision_parameters.vision_distance:
            return False

        angle_dot = math.cos(math.radians(self.vision_parameters.vision_angle / 2.0))
        forward = pawn.forward_vector
        to_target = _normalized(
            (target_point[0] - origin[0], target_point[1] - origin[1], target_point[2] - origin[2])
        )
        if sum(f * t for f, t in zip(forward, to_target)) < angle_dot:
            return False

        if self.line_trace is None:
            return True
        return not self.line_trace(origin, tuple(target_point), (target_actor, pawn))

    def heard_player_move(self, target_actor: Any, target_point: Vec3) -> bool:
        """True when the target at this point is moving fast and within hearing range."""
        pawn = self.owner_pawn
        if pawn is None:
            raise RuntimeError("hearing needs an owner pawn")
        speed = math.hypot(*target_actor.velocity)
        ax, ay = target_actor.location[0], target_actor.location[1]
        same_place = math.hypot(ax - target_point[0], ay - target_point[1]) < 10.0
        distance = math.dist(target_point, pawn.location)
        return same_place and speed > 200.0 and distance < self.sound_parameters.hearing_range

    def reset_target_state(self) -> None:
        if self.system is None:
            raise RuntimeError("no perception system to reset")
        self.system.reset_all_target_components()