"""Two-tank solver for a target alcohol (Pearson square).

Free mode proportions the pair over a notional 100 L. Drain mode empties one
tank completely and solves for how much of its partner is needed.
"""

import logging
from dataclasses import dataclass

from .mixing import mix_pair
from .models import Combination

logger = logging.getLogger(__name__)

NOTIONAL_TOTAL_LITERS = 100.0
# Below this alcohol spread the pair has no usable unique solution.
MIN_ALCOHOL_SPREAD = 0.01


@dataclass(frozen=True)
class FreeMode:
    pass


@dataclass(frozen=True)
class DrainMode:
    tank_id: str


FREE_MODE = FreeMode()


def _free_volumes(alcohol_a, alcohol_b, target):
    denominator = alcohol_a - target
    if denominator == 0:
        return None
    ratio = (target - alcohol_b) / denominator
    if ratio <= 0:
        return None
    volume_a = NOTIONAL_TOTAL_LITERS * ratio / (1 + ratio)
    return volume_a, NOTIONAL_TOTAL_LITERS - volume_a


def _drain_volumes(drained, partner, target):
    """Return (drained volume, partner volume) or None."""
    denominator = target - partner.alcohol_percent
    if denominator == 0:
        return None
    drained_volume = drained.available_liters
    partner_volume = drained_volume * (drained.alcohol_percent - target) / denominator
    if partner_volume <= 0 or partner_volume > partner.available_liters:
        return None
    return drained_volume, partner_volume


def solve_pair(tank_a, tank_b, target_alcohol, mode=FREE_MODE):
    """Solve the blend of two tanks hitting ``target_alcohol``.

    Returns an unscored Combination, or None when the target cannot be
    reached with this pair.
    """
    alcohol_a = tank_a.alcohol_percent
    alcohol_b = tank_b.alcohol_percent
    if abs(alcohol_a - alcohol_b) < MIN_ALCOHOL_SPREAD:
        return None
    if not min(alcohol_a, alcohol_b) <= target_alcohol <= max(alcohol_a, alcohol_b):
        return None

    if isinstance(mode, DrainMode) and mode.tank_id == tank_a.id:
        volumes = _drain_volumes(tank_a, tank_b, target_alcohol)
    elif isinstance(mode, DrainMode) and mode.tank_id == tank_b.id:
        volumes = _drain_volumes(tank_b, tank_a, target_alcohol)
        if volumes is not None:
            volumes = volumes[1], volumes[0]
    elif isinstance(mode, (FreeMode, DrainMode)):
        volumes = _free_volumes(alcohol_a, alcohol_b, target_alcohol)
    else:
        raise TypeError(f'Unknown solver mode: {mode!r}')

    if volumes is None:
        return None
    volume_a, volume_b = volumes

    feasible = volume_a <= tank_a.available_liters and volume_b <= tank_b.available_liters
    logger.debug('Solved %s + %s: %.3f L / %.3f L (feasible=%s)',
                 tank_a.name, tank_b.name, volume_a, volume_b, feasible)
    return Combination(
        tank_a=tank_a,
        tank_b=tank_b,
        volume_a=volume_a,
        volume_b=volume_b,
        result=mix_pair(tank_a, volume_a, tank_b, volume_b),
        feasible=feasible,
    )
