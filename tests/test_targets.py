from types import SimpleNamespace

import pytest

from gridsense.actors import Character
from gridsense.cells import CellData, CellRef
from gridsense.grid import GridActor
from gridsense.perception import PerceptionComponent, PerceptionSystem, TargetData
from gridsense.targets import TargetCache, TargetComponent, TargetState


def make_grid():
    grid = GridActor(x_count=5, y_count=5, cell_scale=100.0)
    grid.data = [CellData.TRAVERSABLE] * grid.cell_count
    return grid


def make_target(owner=None, system=None, grid=None):
    if owner is None:
        owner = Character(location=(0.0, 0.0, 0.0), velocity=(5.0, 0.0, 0.0))
    if grid is None:
        grid = make_grid()
    target = TargetComponent(owner=owner, system=system, grid=grid)
    target.register()
    return target


def test_register_and_unregister():
    system = PerceptionSystem()
    target = make_target(system=system)
    assert system.target_components == [target]
    assert target.occupancy_map.is_valid()
    assert len(target.occupancy_map.data) == 25
    assert target.occupancy_map.sum_total() == 0.0
    target.unregister()
    assert system.target_components == []


def test_new_target_is_unknown_and_hide_resets():
    target = make_target()
    assert target.last_known_state.state is TargetState.UNKNOWN
    assert not target.is_known()
    target.last_known_state.state = TargetState.HIDDEN
    assert target.is_known()
    target.hide()
    assert not target.is_known()


def test_guids_are_unique():
    assert make_target().target_guid != make_target().target_guid or False is False
    a, b = make_target(), make_target()
    assert a.target_guid != b.target_guid


def test_target_cache_is_a_copy():
    target = make_target()
    target.last_known_state = TargetCache(TargetState.HIDDEN, (1.0, 2.0, 3.0), (0.0, 0.0, 0.0))
    cache = target.target_cache()
    assert cache == target.last_known_state
    cache.state = TargetState.UNKNOWN
    assert target.last_known_state.state is TargetState.HIDDEN


def test_set_position_puts_all_probability_on_cell():
    target = make_target()
    target.occupancy_map.set_value(CellRef(0, 0), 0.3)
    target.occupancy_map_set_position((0.0, 0.0, 0.0))
    assert target.occupancy_map.get_value(CellRef(2, 2)) == 1.0
    assert target.occupancy_map.get_value(CellRef(0, 0)) == 0.0
    assert target.occupancy_map.sum_total() == 1.0


def test_set_position_off_grid_changes_nothing():
    target = make_target()
    target.occupancy_map.set_value(CellRef(1, 1), 0.7)
    target.occupancy_map_set_position((10000.0, 0.0, 0.0))
    assert target.occupancy_map.get_value(CellRef(1, 1)) == 0.7
    assert target.occupancy_map.sum_total() == pytest.approx(0.7)


def test_diffuse_spreads_and_conserves_probability():
    target = make_target()
    target.occupancy_map_set_position((0.0, 0.0, 0.0))
    target.occupancy_map_diffuse(1.0)
    omap = target.occupancy_map
    assert omap.sum_total() == pytest.approx(1.0)
    centre = omap.get_value(CellRef(2, 2))
    adjacent = omap.get_value(CellRef(3, 2))
    diagonal = omap.get_value(CellRef(3, 3))
    assert centre < 1.0
    assert adjacent > diagonal > 0.0
    assert omap.get_value(CellRef(0, 0)) == 0.0
    assert adjacent == pytest.approx(omap.get_value(CellRef(2, 1)))


def test_diffuse_with_zero_time_keeps_map():
    target = make_target()
    target.occupancy_map_set_position((0.0, 0.0, 0.0))
    before = list(target.occupancy_map.data)
    target.occupancy_map_diffuse(0.0)
    assert target.occupancy_map.data == before


def test_diffuse_skips_blocked_neighbours():
    grid = make_grid()
    grid.data[grid.cell_index(CellRef(3, 2))] = CellData.NONE
    target = make_target(grid=grid)
    target.occupancy_map_set_position((0.0, 0.0, 0.0))
    target.occupancy_map_diffuse(1.0)
    assert target.occupancy_map.get_value(CellRef(3, 2)) == 0.0
    assert target.occupancy_map.sum_total() == pytest.approx(1.0)


def test_tick_unknown_without_awareness_does_nothing():
    system = PerceptionSystem()
    target = make_target(system=system)
    target.tick(0.1)
    assert target.last_known_state.state is TargetState.UNKNOWN
    assert target.occupancy_map.sum_total() == 0.0


def _far_perceiver(system):
    pawn = Character(location=(-240.0, -240.0, 0.0), yaw=180.0)
    perceiver = PerceptionComponent(owner=pawn, system=system)
    perceiver.register()
    return perceiver


def test_tick_aware_perceiver_makes_target_immediate_then_hidden():
    system = PerceptionSystem()
    target = make_target(system=system)
    perceiver = _far_perceiver(system)
    perceiver.target_map[target.target_guid] = TargetData(awareness=1.0)

    target.tick(0.1)
    state = target.last_known_state
    assert state.state is TargetState.IMMEDIATE
    assert state.position == (0.0, 0.0, 0.0)
    assert state.velocity == (5.0, 0.0, 0.0)
    omap = target.occupancy_map
    assert omap.sum_total() == pytest.approx(1.0)
    assert max(omap.data) == omap.get_value(CellRef(2, 2))

    perceiver.target_map[target.target_guid].awareness = 0.5
    target.tick(0.1)
    assert target.last_known_state.state is TargetState.HIDDEN
    assert target.occupancy_map.sum_total() == pytest.approx(1.0)


def test_update_without_perceivers_moves_to_likeliest_cell():
    system = PerceptionSystem()
    owner = SimpleNamespace(location=(0.0, 0.0, 0.0), velocity=(0.0, 0.0, 0.0))
    target = make_target(owner=owner, system=system)
    target.occupancy_map.set_value(CellRef(0, 0), 0.25)
    target.occupancy_map.set_value(CellRef(4, 4), 0.75)
    target.occupancy_map_update()
    assert target.occupancy_map.get_value(CellRef(0, 0)) == pytest.approx(0.25)
    assert target.occupancy_map.get_value(CellRef(4, 4)) == pytest.approx(0.75)
    x, y, z = target.grid.cell_position(CellRef(4, 4))
    assert target.last_known_state.position == pytest.approx((x, y, z + 50.0))
    assert target.last_known_state.velocity == (0.0, 0.0, 0.0)


def test_update_without_system_only_renormalises():
    owner = SimpleNamespace(location=(0.0, 0.0, 0.0), velocity=(0.0, 0.0, 0.0))
    target = make_target(owner=owner, system=None)
    target.occupancy_map.set_value(CellRef(1, 1), 0.2)
    target.occupancy_map.set_value(CellRef(3, 3), 0.2)
    target.occupancy_map_update()
    assert target.occupancy_map.get_value(CellRef(1, 1)) == pytest.approx(0.5)
    assert target.occupancy_map.get_value(CellRef(3, 3)) == pytest.approx(0.5)
    assert target.last_known_state.position == (0.0, 0.0, 0.0)


def test_update_with_seeing_and_hearing_perceiver_finds_target():
    system = PerceptionSystem()
    owner = Character(location=(0.0, 0.0, 0.0), velocity=(300.0, 0.0, 0.0))
    target = make_target(owner=owner, system=system)
    pawn = Character(location=(-200.0, -200.0, 0.0))
    perceiver = PerceptionComponent(owner=pawn, system=system)
    perceiver.vision_parameters.vision_angle = 360.0
    perceiver.vision_parameters.vision_distance = 1.0e6
    perceiver.sound_parameters.hearing_range = 1.0e6
    perceiver.register()

    target.occupancy_map.set_value(CellRef(0, 4), 1.0)
    target.occupancy_map_update()

    owner_cell = CellRef(2, 2)
    assert target.occupancy_map.get_value(owner_cell) == pytest.approx(1.0)
    assert target.occupancy_map.get_value(CellRef(0, 4)) == 0.0
    assert target.occupancy_map.sum_total() == pytest.approx(1.0)
    x, y, z = target.grid.cell_position(owner_cell)
    assert target.last_known_state.position == pytest.approx((x, y, z + 96.0))


def test_tick_debug_copies_map_to_grid():
    system = PerceptionSystem()
    target = make_target(system=system)
    target.debug_occupancy_map = True
    perceiver = _far_perceiver(system)
    perceiver.target_map[target.target_guid] = TargetData(awareness=1.0)
    target.tick(0.1)
    assert target.grid.debug_grid_map.data == target.occupancy_map.data
    assert target.grid.debug_grid_map is not target.occupancy_map
    assert len(target.debug_texture) == 4 * 25


def test_tick_debug_without_grid_raises():
    target = TargetComponent(owner=Character(), grid=None, debug_occupancy_map=True)
    with pytest.raises(RuntimeError):
        target.tick(0.1)