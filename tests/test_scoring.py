import pytest

from backend.models import BlendComponent, BlendResult, Combination, Range, TargetSpec
from backend.scoring import BalancePolicy, balance_score, score_combination

from tests.conftest import make_tank


def _combination(feasible=True, **chemistry):
    result = BlendResult(total_volume=100.0, alcohol_percent=13.0, **chemistry)
    return Combination(
        tank_a=make_tank('A'), tank_b=make_tank('B'),
        volume_a=50.0, volume_b=50.0, result=result, feasible=feasible,
    )


def test_in_range_feasible_blend_scores_full_marks():
    target = TargetSpec(13.0, {'ph': Range(3.2, 3.8), 'total_acidity': Range(5.0, 7.0)})
    assert score_combination(_combination(ph=3.5, total_acidity=6.0), target) == 100.0


def test_infeasible_blend_loses_fixed_penalty():
    target = TargetSpec(13.0)
    assert score_combination(_combination(feasible=False), target) == 70.0


def test_out_of_range_penalties_are_weighted():
    target = TargetSpec(13.0, {
        'ph': Range(3.2, 3.8),
        'total_acidity': Range(min=5.0),
        'total_so2': Range(max=100.0),
    })
    combination = _combination(ph=4.0, total_acidity=4.0, total_so2=150.0)
    # pH 0.2 * 20, TA 1.0 * 5, total SO2 50 * 0.3
    assert score_combination(combination, target) == pytest.approx(100 - 4 - 5 - 15)


def test_ph_scoring_is_monotonic():
    target = TargetSpec(13.0, {'ph': Range(3.2, 3.8)})
    inside = score_combination(_combination(ph=3.5), target)
    outside = score_combination(_combination(ph=4.2), target)
    assert inside >= outside


def test_missing_result_field_is_not_penalised():
    target = TargetSpec(13.0, {'residual_sugars': Range(max=2.0)})
    assert score_combination(_combination(residual_sugars=None), target) == 100.0


def test_score_is_clamped_at_zero():
    target = TargetSpec(13.0, {'volatile_acidity': Range(max=0.6)})
    combination = _combination(feasible=False, volatile_acidity=20.0)
    assert score_combination(combination, target) == 0.0


def _balance(volumes, **chemistry):
    components = [BlendComponent(make_tank(f'T{i}'), v) for i, v in enumerate(volumes)]
    alcohol = chemistry.pop('alcohol', 12.5)
    result = BlendResult(total_volume=sum(volumes), alcohol_percent=alcohol, **chemistry)
    return balance_score(components, result)


def test_balanced_blend_in_ideal_bands_scores_high():
    score = _balance([50, 50], ph=3.5, total_acidity=6.0, volatile_acidity=0.4)
    assert score == 100 + 10 + 20 + 15 + 10 + 10


def test_dominant_component_is_penalised():
    even = _balance([50, 50])
    lopsided = _balance([90, 10])
    assert lopsided < even
    assert lopsided == pytest.approx(100 - 10 + 20)


def test_alcohol_outside_acceptable_band_is_graded():
    assert _balance([50, 50], alcohol=14.5) == 100 + 10 + 5
    assert _balance([50, 50], alcohol=17.0) == 100 + 10 - 20


def test_ideal_ph_band_beats_acceptable_band():
    assert _balance([50, 50], ph=3.5) > _balance([50, 50], ph=3.9) > _balance([50, 50], ph=4.3)


def test_high_volatile_acidity_is_penalised_proportionally():
    assert _balance([50, 50], volatile_acidity=0.8) == 100 + 10 + 20 + 3
    assert _balance([50, 50], volatile_acidity=1.1) == pytest.approx(100 + 10 + 20 - 10)


def test_balance_score_is_clamped():
    policy = BalancePolicy(base=190.0)
    components = [BlendComponent(make_tank('A'), 50), BlendComponent(make_tank('B'), 50)]
    result = BlendResult(total_volume=100, alcohol_percent=12.5)
    assert balance_score(components, result, policy) == 200.0
