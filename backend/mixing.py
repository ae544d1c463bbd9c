"""Weighted-average blending of tank components.

pH is averaged in hydrogen-ion space rather than on the log scale, every
other parameter is a plain volume-weighted mean.
"""

import math

from .models import CHEMISTRY_FIELDS, BlendComponent, BlendResult


def weighted_average(pairs, total_volume):
    """Linear volume-weighted mean of (value, volume) pairs."""
    return sum(value * volume for value, volume in pairs) / total_volume


def ph_average(pairs, total_volume):
    """Average pH readings by their hydrogen-ion concentration."""
    hydrogen = sum(10 ** (-value) * volume for value, volume in pairs) / total_volume
    return -math.log10(hydrogen)


def _collect(components, name):
    # Stops at the first component lacking the reading.
    pairs = []
    for component in components:
        value = component.tank.chemistry(name)
        if value is None:
            return None
        pairs.append((value, component.blend_volume))
    return pairs


def average_field(components, name, total_volume):
    """Blend one chemistry field, or None unless every component has it."""
    pairs = _collect(components, name)
    if pairs is None:
        return None
    if name == 'ph':
        return ph_average(pairs, total_volume)
    return weighted_average(pairs, total_volume)


def mix(components):
    """Compute the blended chemistry of two or more tank components."""
    assert len(components) >= 2, 'a blend needs at least two components'
    assert all(c.blend_volume > 0 for c in components), 'blend volumes must be positive'

    total_volume = sum(c.blend_volume for c in components)
    alcohol = weighted_average(
        [(c.tank.alcohol_percent, c.blend_volume) for c in components], total_volume
    )
    chemistry = {name: average_field(components, name, total_volume) for name in CHEMISTRY_FIELDS}
    return BlendResult(total_volume=total_volume, alcohol_percent=alcohol, **chemistry)


def mix_pair(tank_a, volume_a, tank_b, volume_b):
    return mix([BlendComponent(tank_a, volume_a), BlendComponent(tank_b, volume_b)])
