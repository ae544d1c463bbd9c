"""Search over tank combinations.

Target mode enumerates every pair of tanks and keeps the best-scoring ones.
Random mode draws tank subsets and volumes from an injected ``random.Random``
and ranks them with the balance heuristic.
"""

import logging
from dataclasses import dataclass, field
from itertools import combinations
from typing import List

from .errors import TankNotFound, ValidationError
from .mixing import mix
from .models import BlendComponent, Combination, RandomBlend
from .scoring import DEFAULT_BALANCE_POLICY, balance_score, score_combination
from .solver import FREE_MODE, DrainMode, solve_pair

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5
MAX_ITERATIONS = 100
RANDOM_SUBSET_SIZES = (2, 3)
# Random volumes are drawn between this share of the tank and all of it.
MIN_RANDOM_SHARE = 0.1


@dataclass
class TargetSearchResult:
    combinations: List[Combination] = field(default_factory=list)
    total_found: int = 0

    def to_dict(self):
        return {
            'combinations': [c.to_dict() for c in self.combinations],
            'total_found': self.total_found,
        }


def require_tanks(tanks, count=2):
    if len(tanks) < count:
        raise ValidationError(f'At least {count} tanks are required.', field='tanks')


def require_bounded(value, name, low, high):
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{name} must be a whole number.', field=name)
    if not low <= value <= high:
        raise ValidationError(f'{name} must be between {low} and {high}.', field=name)
    return value


def _rank_key(combination):
    # Ties go to feasible blends, then to the larger blend.
    return (-combination.score, not combination.feasible, -combination.total_volume)


def candidate_pairs(tanks, drain_tank_id=None):
    pairs = combinations(tanks, 2)
    if drain_tank_id is None:
        return list(pairs)
    return [(a, b) for a, b in pairs if drain_tank_id in (a.id, b.id)]


def find_target_combinations(tanks, target, drain_tank_id=None, top_k=DEFAULT_TOP_K):
    """Rank every two-tank blend that reaches the target alcohol.

    Returns the best ``top_k`` combinations together with the number found.
    """
    require_tanks(tanks)
    require_bounded(top_k, 'top_k', 1, MAX_ITERATIONS)

    if drain_tank_id is None:
        mode = FREE_MODE
    else:
        if not any(t.id == drain_tank_id for t in tanks):
            raise TankNotFound(drain_tank_id)
        mode = DrainMode(drain_tank_id)

    found = []
    for tank_a, tank_b in candidate_pairs(tanks, drain_tank_id):
        combination = solve_pair(tank_a, tank_b, target.alcohol_percent, mode)
        if combination is None:
            continue
        combination.score = score_combination(combination, target)
        found.append(combination)

    found.sort(key=_rank_key)
    logger.debug('Target %.2f%%: %d combinations found', target.alcohol_percent, len(found))
    return TargetSearchResult(combinations=found[:top_k], total_found=len(found))


def random_volume(tank, rng):
    return tank.available_liters * rng.uniform(MIN_RANDOM_SHARE, 1.0)


def random_subset(tanks, rng):
    """Shuffle the tanks and take two or three of them."""
    size = rng.choice([s for s in RANDOM_SUBSET_SIZES if s <= len(tanks)])
    shuffled = list(tanks)
    rng.shuffle(shuffled)
    return shuffled[:size]


def random_blend_of(tanks, rng, policy=DEFAULT_BALANCE_POLICY):
    """Blend the given tanks with randomly drawn volumes."""
    require_tanks(tanks)
    components = [BlendComponent(tank, random_volume(tank, rng)) for tank in tanks]
    result = mix(components)
    return RandomBlend(
        components=components,
        result=result,
        balance_score=balance_score(components, result, policy),
    )


def full_random_blend(tanks, rng, policy=DEFAULT_BALANCE_POLICY):
    require_tanks(tanks)
    return random_blend_of(random_subset(tanks, rng), rng, policy)


def best_random_blends(tanks, iterations, to_show, rng, policy=DEFAULT_BALANCE_POLICY):
    """Draw ``iterations`` random blends and keep the ``to_show`` best."""
    require_tanks(tanks)
    require_bounded(iterations, 'iterations', 1, MAX_ITERATIONS)
    require_bounded(to_show, 'to_show', 1, MAX_ITERATIONS)
    to_show = min(to_show, iterations)

    blends = [full_random_blend(tanks, rng, policy) for _ in range(iterations)]
    blends.sort(key=lambda b: b.balance_score, reverse=True)
    logger.debug('Random search: %d blends drawn, best balance %.1f',
                 len(blends), blends[0].balance_score)
    return blends[:to_show]
