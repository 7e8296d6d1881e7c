import pytest

from gridsense.actors import Character, Controller, MovementSettings, owner_pawn


def test_ai_character_defaults_follow_source_settings():
    character = Character()
    assert character.movement.max_walk_speed == 200.0
    assert character.movement.jump_z_velocity == 700.0
    assert character.move_frequency == 1.5
    assert character.default_half_height == 96.0
    assert not character.use_controller_rotation_yaw


def test_movement_settings_are_independent_per_character():
    a, b = Character(), Character()
    a.movement.max_walk_speed = 999.0
    assert b.movement.max_walk_speed == MovementSettings().max_walk_speed


@pytest.mark.parametrize("given, expected", [(3.0, 1.0), (-5.0, -1.0), (0.25, 0.25)])
def test_move_amplitude_is_clamped(given, expected):
    assert Character(move_amplitude=given).move_amplitude == expected


def test_forward_vector_follows_yaw():
    assert Character(yaw=0.0).forward_vector == pytest.approx((1.0, 0.0, 0.0))
    assert Character(yaw=90.0).forward_vector == pytest.approx((0.0, 1.0, 0.0), abs=1e-12)


def test_request_path_move_records_direction():
    character = Character()
    character.request_path_move([0.0, 1.0, 0.0])
    assert character.pending_move == (0.0, 1.0, 0.0)


def test_owner_pawn_resolves_pawn_and_controller():
    pawn = Character()
    controller = Controller(pawn=pawn)
    assert owner_pawn(pawn) is pawn
    assert owner_pawn(controller) is pawn
    assert pawn.controller is controller


def test_owner_pawn_without_pawn():
    assert owner_pawn(None) is None
    assert owner_pawn(Controller()) is None
    assert owner_pawn("not an actor") is None


def test_find_component_by_type():
    marker = [1, 2]
    controller = Controller(components=["name", marker])
    assert controller.find_component(list) is marker
    assert controller.find_component(dict) is None
    assert Character(components=[marker]).find_component(list) is marker