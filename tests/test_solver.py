import pytest

from backend.mixing import mix_pair
from backend.solver import FREE_MODE, DrainMode, solve_pair

from tests.conftest import make_tank


def test_free_mode_hits_target_alcohol():
    tank_a = make_tank('A', volume=200, alcohol=12.0)
    tank_b = make_tank('B', volume=200, alcohol=16.0)
    combination = solve_pair(tank_a, tank_b, 14.0)

    assert combination.total_volume == pytest.approx(100.0)
    remixed = mix_pair(tank_a, combination.volume_a, tank_b, combination.volume_b)
    assert remixed.alcohol_percent == pytest.approx(14.0, abs=1e-6)
    assert combination.result.alcohol_percent == pytest.approx(14.0, abs=1e-6)


def test_free_mode_uneven_ratio():
    combination = solve_pair(make_tank('A', alcohol=11.0), make_tank('B', alcohol=15.0), 12.0)
    assert combination.volume_a == pytest.approx(75.0)
    assert combination.volume_b == pytest.approx(25.0)
    assert combination.percentage_a == pytest.approx(75.0)


def test_target_outside_pair_range_has_no_solution():
    assert solve_pair(make_tank('A', alcohol=12.0), make_tank('B', alcohol=13.0), 14.0) is None


def test_near_identical_alcohols_have_no_solution():
    assert solve_pair(make_tank('A', alcohol=12.0), make_tank('B', alcohol=12.005), 12.002) is None


def test_target_equal_to_one_tank_has_no_solution():
    assert solve_pair(make_tank('A', alcohol=12.0), make_tank('B', alcohol=14.0), 12.0) is None


def test_free_mode_feasibility_against_stock():
    tank_a = make_tank('A', volume=30, alcohol=12.0)
    tank_b = make_tank('B', volume=500, alcohol=16.0)
    combination = solve_pair(tank_a, tank_b, 14.0)
    assert combination.volume_a == pytest.approx(50.0)
    assert combination.feasible is False


def test_drain_mode_empties_tank():
    tank_a = make_tank('A', volume=100, alcohol=12.0)
    tank_b = make_tank('B', volume=500, alcohol=16.0)
    combination = solve_pair(tank_a, tank_b, 13.0, DrainMode(tank_a.id))

    assert combination.volume_a == 100
    # 100 * (12 - 13) / (13 - 16)
    assert combination.volume_b == pytest.approx(100 / 3)
    assert combination.result.alcohol_percent == pytest.approx(13.0)
    assert combination.feasible is True


def test_drain_mode_on_second_tank_keeps_pair_order():
    tank_a = make_tank('A', volume=500, alcohol=12.0)
    tank_b = make_tank('B', volume=1, volume_unit='hL', alcohol=16.0)
    combination = solve_pair(tank_a, tank_b, 14.0, DrainMode(tank_b.id))

    assert combination.volume_b == 100
    assert combination.volume_a == pytest.approx(100)
    assert combination.tank_a is tank_a


def test_drain_mode_needing_too_much_partner_has_no_solution():
    tank_a = make_tank('A', volume=1000, alcohol=12.0)
    tank_b = make_tank('B', volume=50, alcohol=16.0)
    assert solve_pair(tank_a, tank_b, 14.0, DrainMode(tank_a.id)) is None


def test_drain_mode_for_other_tank_falls_back_to_free_mode():
    tank_a = make_tank('A', alcohol=12.0)
    tank_b = make_tank('B', alcohol=16.0)
    combination = solve_pair(tank_a, tank_b, 14.0, DrainMode('elsewhere'))
    assert combination.total_volume == pytest.approx(100.0)


def test_optional_chemistry_follows_blend_rules():
    tank_a = make_tank('A', alcohol=12.0, ph=3.0, total_acidity=7.0, free_so2=None)
    tank_b = make_tank('B', alcohol=16.0, ph=4.0, total_acidity=5.0, free_so2=30.0)
    combination = solve_pair(tank_a, tank_b, 14.0, FREE_MODE)

    assert combination.result.total_acidity == pytest.approx(6.0)
    assert combination.result.ph < 3.5
    assert combination.result.free_so2 is None


def test_unknown_mode_is_rejected():
    with pytest.raises(TypeError):
        solve_pair(make_tank('A', alcohol=12.0), make_tank('B', alcohol=16.0), 14.0, 'drain')
