import uuid
from dataclasses import dataclass, field
from typing import Any

import pytest

from gridsense.actors import Character, Controller
from gridsense.perception import (
    PerceptionComponent,
    PerceptionSystem,
    SoundParameters,
    TargetData,
    VisionParameters,
)


@dataclass(eq=False)
class FakeTarget:
    owner: Any
    known: bool = False
    target_guid: uuid.UUID = field(default_factory=uuid.uuid4)
    last_known_state: str = "state"
    hidden: bool = False

    def is_known(self):
        return self.known

    def hide(self):
        self.hidden = True
        self.known = False


def make_setup(target_location=(500.0, 0.0, 0.0), velocity=(0.0, 0.0, 0.0), **kwargs):
    system = PerceptionSystem()
    pawn = Character(location=(0.0, 0.0, 0.0), yaw=0.0)
    perceiver = PerceptionComponent(owner=pawn, system=system, **kwargs)
    perceiver.register()
    target_actor = Character(location=target_location, velocity=velocity)
    target = FakeTarget(owner=target_actor)
    system.register_target_component(target)
    return system, pawn, perceiver, target


def test_register_is_unique_and_unregister_reports():
    system = PerceptionSystem()
    perceiver = PerceptionComponent(system=system)
    perceiver.register()
    perceiver.register()
    assert system.perception_components == [perceiver]
    assert system.unregister_perception_component(perceiver) is True
    assert system.unregister_perception_component(perceiver) is False
    assert system.perception_components == []


def test_target_registration():
    system = PerceptionSystem()
    target = FakeTarget(owner=Character())
    assert system.register_target_component(target) is True
    system.register_target_component(target)
    assert len(system.target_components) == 1
    assert system.unregister_target_component(target) is True
    assert system.unregister_target_component(target) is False


def test_reset_all_hides_targets():
    system, _, perceiver, target = make_setup()
    target.known = True
    perceiver.reset_target_state()
    assert target.hidden is True
    assert target.is_known() is False


def test_reset_without_system_raises():
    with pytest.raises(RuntimeError):
        PerceptionComponent(owner=Character()).reset_target_state()


def test_clear_los_in_front():
    _, _, perceiver, target = make_setup()
    assert perceiver.has_clear_los(target.owner, (500.0, 0.0, 0.0)) is True


def test_los_behind_or_too_far():
    _, _, perceiver, target = make_setup()
    assert perceiver.has_clear_los(target.owner, (-500.0, 0.0, 0.0)) is False
    assert perceiver.has_clear_los(target.owner, (5000.0, 0.0, 0.0)) is False


def test_los_outside_narrow_cone():
    _, _, perceiver, target = make_setup(vision_parameters=VisionParameters(10.0, 1000.0))
    assert perceiver.has_clear_los(target.owner, (300.0, 300.0, 0.0)) is False
    assert perceiver.has_clear_los(target.owner, (300.0, 0.0, 0.0)) is True


def test_los_blocked_by_trace_and_ignores_actors():
    calls = []

    def blocking(start, end, ignored):
        calls.append((start, end, ignored))
        return True

    _, pawn, perceiver, target = make_setup(line_trace=blocking)
    assert perceiver.has_clear_los(target.owner, (500.0, 0.0, 0.0)) is False
    assert calls[0][2][0] is target.owner
    assert calls[0][2][1] is pawn


def test_los_without_pawn_is_false():
    perceiver = PerceptionComponent(owner=None)
    assert perceiver.has_clear_los(Character(), (10.0, 0.0, 0.0)) is False


def test_controller_owner_uses_its_pawn():
    pawn = Character()
    controller = Controller(pawn=pawn)
    perceiver = PerceptionComponent(owner=controller)
    assert perceiver.owner_pawn is pawn
    assert perceiver.has_clear_los(Character(), (100.0, 0.0, 0.0)) is True


def test_awareness_grows_with_sight_and_clamps():
    _, _, perceiver, target = make_setup()
    perceiver.tick(0.5)
    first = perceiver.target_data(target.target_guid).awareness
    assert 0.0 < first < 1.0
    perceiver.tick(0.5)
    assert perceiver.target_data(target.target_guid).awareness > first
    perceiver.tick(100.0)
    data = perceiver.target_data(target.target_guid)
    assert data.awareness == 1.0
    assert data.clear_los is True


def test_awareness_decays_without_sight():
    _, pawn, perceiver, target = make_setup()
    perceiver.tick(100.0)
    pawn.yaw = 180.0
    perceiver.tick(0.1)
    data = perceiver.target_data(target.target_guid)
    assert data.clear_los is False
    assert data.awareness < 1.0
    perceiver.tick(100.0)
    assert perceiver.target_data(target.target_guid).awareness == 0.0


def test_heard_player_move():
    _, _, perceiver, target = make_setup(
        target_location=(100.0, 0.0, 0.0), velocity=(300.0, 0.0, 0.0)
    )
    assert perceiver.heard_player_move(target.owner, (100.0, 0.0, 0.0)) is True
    assert perceiver.heard_player_move(target.owner, (150.0, 0.0, 0.0)) is False


def test_not_heard_when_slow_or_far():
    _, _, perceiver, target = make_setup(
        target_location=(100.0, 0.0, 0.0), velocity=(100.0, 0.0, 0.0)
    )
    assert perceiver.heard_player_move(target.owner, (100.0, 0.0, 0.0)) is False
    perceiver.sound_parameters = SoundParameters(hearing_range=50.0)
    target.owner.velocity = (300.0, 0.0, 0.0)
    assert perceiver.heard_player_move(target.owner, (100.0, 0.0, 0.0)) is False


def test_hearing_without_pawn_raises():
    with pytest.raises(RuntimeError):
        PerceptionComponent().heard_player_move(Character(), (0.0, 0.0, 0.0))


def test_hearing_raises_awareness_while_unseen():
    _, pawn, perceiver, target = make_setup(
        target_location=(100.0, 0.0, 0.0),
        velocity=(300.0, 0.0, 0.0),
        sound_acknowledgement_time=0.1,
        sound_lose_time=0.1,
    )
    pawn.yaw = 180.0
    perceiver.tick(0.01)
    data = perceiver.target_data(target.target_guid)
    assert data.hearing_player is True
    assert data.clear_los is False
    assert data.awareness > 0.0


def test_current_target_needs_known():
    _, _, perceiver, target = make_setup()
    assert perceiver.current_target() is None
    assert perceiver.has_target() is False
    target.known = True
    assert perceiver.current_target() is target
    assert perceiver.has_target() is True


def test_current_target_state():
    _, _, perceiver, target = make_setup()
    target.known = True
    assert perceiver.current_target_state() is None
    perceiver.tick(0.5)
    state, data = perceiver.current_target_state()
    assert state == "state"
    assert data == perceiver.target_data(target.target_guid)


def test_all_target_states_filters_known():
    system, _, perceiver, target = make_setup()
    other = FakeTarget(owner=Character(location=(300.0, 0.0, 0.0)), known=True)
    system.register_target_component(other)
    perceiver.tick(0.5)
    assert len(perceiver.all_target_states(False)) == 2
    known = perceiver.all_target_states(True)
    assert len(known) == 1
    assert known[0][1] == perceiver.target_data(other.target_guid)


def test_target_data_unknown_guid():
    perceiver = PerceptionComponent()
    assert perceiver.target_data(uuid.uuid4()) is None
    assert perceiver.all_target_states(False) == []
    assert TargetData() == TargetData(False, 0.0, False)