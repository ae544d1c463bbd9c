"""Scoring of candidate blends.

``score_combination`` rates a solved pair against a TargetSpec on a 0-100
scale. ``balance_score`` is the looser 0-200 heuristic used when blends are
drawn at random and there is no target to compare against.
"""

from dataclasses import dataclass

MAX_SCORE = 100.0
INFEASIBLE_PENALTY = 30.0

# Points lost per unit outside the target range.
RANGE_WEIGHTS = {
    'total_acidity': 5.0,
    'volatile_acidity': 10.0,
    'ph': 20.0,
    'residual_sugars': 3.0,
    'free_so2': 0.5,
    'total_so2': 0.3,
}


def clamp(value, minimum, maximum):
    return max(minimum, min(maximum, value))


def range_penalty(value, bounds, weight):
    if bounds.min is not None and value < bounds.min:
        return (bounds.min - value) * weight
    if bounds.max is not None and value > bounds.max:
        return (value - bounds.max) * weight
    return 0.0


def score_combination(combination, target):
    """Score a combination against the target ranges, clamped to 0-100."""
    score = MAX_SCORE
    if not combination.feasible:
        score -= INFEASIBLE_PENALTY

    for name, bounds in target.ranges.items():
        value = combination.result.chemistry(name)
        if value is None:
            continue
        score -= range_penalty(value, bounds, RANGE_WEIGHTS[name])

    return clamp(score, 0.0, MAX_SCORE)


@dataclass(frozen=True)
class BalancePolicy:
    """Empirical constants for the balance heuristic."""

    base: float = 100.0
    max_score: float = 200.0

    dominant_share: float = 0.8
    dominant_penalty: float = 100.0
    even_spread: float = 0.3
    even_bonus: float = 10.0

    ideal_alcohol: tuple = (11.0, 14.0)
    acceptable_alcohol: tuple = (10.0, 15.0)
    ideal_alcohol_bonus: float = 20.0
    acceptable_alcohol_bonus: float = 5.0
    alcohol_penalty: float = 10.0

    ideal_ph: tuple = (3.2, 3.8)
    acceptable_ph: tuple = (3.0, 4.0)
    ideal_ph_bonus: float = 15.0
    acceptable_ph_bonus: float = 5.0
    ph_penalty: float = 10.0

    ideal_acidity: tuple = (5.0, 7.0)
    acidity_bonus: float = 10.0

    volatile_best: float = 0.6
    volatile_acceptable: float = 0.9
    volatile_bonus: float = 10.0
    volatile_acceptable_bonus: float = 3.0
    volatile_penalty: float = 50.0


DEFAULT_BALANCE_POLICY = BalancePolicy()


def _within(value, band):
    return band[0] <= value <= band[1]


def _distance_outside(value, band):
    if value < band[0]:
        return band[0] - value
    if value > band[1]:
        return value - band[1]
    return 0.0


def balance_score(components, result, policy=DEFAULT_BALANCE_POLICY):
    """Heuristic quality of a blend with no explicit target, clamped to 0-200."""
    score = policy.base
    total = result.total_volume

    shares = [c.blend_volume / total for c in components]
    largest = max(shares)
    if largest > policy.dominant_share:
        score -= (largest - policy.dominant_share) * policy.dominant_penalty
    if largest - min(shares) < policy.even_spread:
        score += policy.even_bonus

    alcohol = result.alcohol_percent
    if _within(alcohol, policy.ideal_alcohol):
        score += policy.ideal_alcohol_bonus
    elif _within(alcohol, policy.acceptable_alcohol):
        score += policy.acceptable_alcohol_bonus
    else:
        score -= _distance_outside(alcohol, policy.acceptable_alcohol) * policy.alcohol_penalty

    if result.ph is not None:
        if _within(result.ph, policy.ideal_ph):
            score += policy.ideal_ph_bonus
        elif _within(result.ph, policy.acceptable_ph):
            score += policy.acceptable_ph_bonus
        else:
            score -= policy.ph_penalty

    if result.total_acidity is not None and _within(result.total_acidity, policy.ideal_acidity):
        score += policy.acidity_bonus

    volatile = result.volatile_acidity
    if volatile is not None:
        if volatile <= policy.volatile_best:
            score += policy.volatile_bonus
        elif volatile <= policy.volatile_acceptable:
            score += policy.volatile_acceptable_bonus
        else:
            score -= (volatile - policy.volatile_acceptable) * policy.volatile_penalty

    return clamp(score, 0.0, policy.max_score)
