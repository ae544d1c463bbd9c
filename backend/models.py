"""Data contracts for tanks, blends and blend targets.

Chemistry fields other than alcohol are optional: ``None`` means the tank was
never measured for it. A blended field is only reported when every tank in the
blend carries it.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .errors import ValidationError
from .units import VOLUME_UNITS, to_liters

# Optional chemistry fields, in display order.
CHEMISTRY_FIELDS = (
    'total_acidity',
    'volatile_acidity',
    'ph',
    'residual_sugars',
    'free_so2',
    'total_so2',
)

# camelCase keys used by the browser app's stored tanks.
_ALIASES = {
    'capacityUnit': 'capacity_unit',
    'volumeUnit': 'volume_unit',
    'alcoholPercent': 'alcohol_percent',
    'totalAcidity': 'total_acidity',
    'volatileAcidity': 'volatile_acidity',
    'pH': 'ph',
    'residualSugars': 'residual_sugars',
    'freeSO2': 'free_so2',
    'totalSO2': 'total_so2',
    'blendVolume': 'blend_volume',
}

MAX_ALCOHOL_PERCENT = 20.0


def normalize_keys(data: Mapping[str, Any], name: str = 'payload') -> Dict[str, Any]:
    if not isinstance(data, Mapping):
        raise ValidationError(f'{name} must be an object.', field=name)
    return {_ALIASES.get(k, k): v for k, v in data.items()}


def _is_missing(value):
    if value is None:
        return True
    if isinstance(value, str) and value.strip() == '':
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def parse_number(value, name, required=False):
    """Parse an optional numeric field, raising ValidationError on junk."""
    if _is_missing(value):
        if required:
            raise ValidationError(f'{name} is required.', field=name)
        return None
    if isinstance(value, bool):
        raise ValidationError(f'{name} must be a number.', field=name)
    try:
        if isinstance(value, str):
            value = value.replace(',', '.').strip()
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be a number.', field=name)
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f'{name} must be a number.', field=name)
    return number


def _parse_unit(value, name):
    unit = 'L' if _is_missing(value) else str(value).strip()
    if unit.lower() == 'hl':
        unit = 'hL'
    elif unit.lower() == 'l':
        unit = 'L'
    if unit not in VOLUME_UNITS:
        raise ValidationError(f'{name} must be one of {", ".join(VOLUME_UNITS)}.', field=name)
    return unit


def generate_tank_id():
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Tank:
    id: str
    name: str
    capacity: float
    capacity_unit: str
    volume: float
    volume_unit: str
    alcohol_percent: float
    total_acidity: Optional[float] = None
    volatile_acidity: Optional[float] = None
    ph: Optional[float] = None
    residual_sugars: Optional[float] = None
    free_so2: Optional[float] = None
    total_so2: Optional[float] = None
    notes: str = ''

    @property
    def available_liters(self) -> float:
        return to_liters(self.volume, self.volume_unit)

    @property
    def capacity_liters(self) -> float:
        return to_liters(self.capacity, self.capacity_unit)

    def chemistry(self, name: str) -> Optional[float]:
        return getattr(self, name)

    @classmethod
    def from_payload(cls, data: Mapping[str, Any], tank_id: Optional[str] = None) -> 'Tank':
        """Build a tank from request data, enforcing the boundary rules."""
        data = normalize_keys(data or {})
        tank_name = '' if _is_missing(data.get('name')) else str(data['name']).strip()
        if not tank_name:
            raise ValidationError('Tank name is required.', field='name')

        capacity = parse_number(data.get('capacity'), 'capacity', required=True)
        if capacity <= 0:
            raise ValidationError('Capacity must be greater than zero.', field='capacity')
        volume = parse_number(data.get('volume'), 'volume', required=True)
        if volume <= 0:
            raise ValidationError('Volume must be greater than zero.', field='volume')
        alcohol = parse_number(data.get('alcohol_percent'), 'alcohol_percent', required=True)
        if alcohol < 0 or alcohol > MAX_ALCOHOL_PERCENT:
            raise ValidationError('Alcohol must be between 0 and 20%.', field='alcohol_percent')

        chemistry = {name: parse_number(data.get(name), name) for name in CHEMISTRY_FIELDS}
        if tank_id is None and not _is_missing(data.get('id')):
            tank_id = str(data['id'])

        notes = data.get('notes')
        return cls(
            id=tank_id or generate_tank_id(),
            name=tank_name,
            capacity=capacity,
            capacity_unit=_parse_unit(data.get('capacity_unit'), 'capacity_unit'),
            volume=volume,
            volume_unit=_parse_unit(data.get('volume_unit'), 'volume_unit'),
            alcohol_percent=alcohol,
            notes='' if _is_missing(notes) else str(notes),
            **chemistry,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'capacity': self.capacity,
            'capacity_unit': self.capacity_unit,
            'volume': self.volume,
            'volume_unit': self.volume_unit,
            'alcohol_percent': self.alcohol_percent,
            'total_acidity': self.total_acidity,
            'volatile_acidity': self.volatile_acidity,
            'ph': self.ph,
            'residual_sugars': self.residual_sugars,
            'free_so2': self.free_so2,
            'total_so2': self.total_so2,
            'notes': self.notes,
        }


@dataclass(frozen=True)
class BlendComponent:
    tank: Tank
    blend_volume: float

    def to_dict(self, total_volume=None):
        payload = {
            'tank_id': self.tank.id,
            'name': self.tank.name,
            'blend_volume': self.blend_volume,
        }
        if total_volume:
            payload['percentage'] = self.blend_volume / total_volume * 100
        return payload


@dataclass(frozen=True)
class BlendResult:
    total_volume: float
    alcohol_percent: float
    total_acidity: Optional[float] = None
    volatile_acidity: Optional[float] = None
    ph: Optional[float] = None
    residual_sugars: Optional[float] = None
    free_so2: Optional[float] = None
    total_so2: Optional[float] = None

    def chemistry(self, name: str) -> Optional[float]:
        return getattr(self, name)

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            'total_volume': self.total_volume,
            'alcohol_percent': self.alcohol_percent,
        }
        for name in CHEMISTRY_FIELDS:
            payload[name] = getattr(self, name)
        return payload


@dataclass(frozen=True)
class Range:
    min: Optional[float] = None
    max: Optional[float] = None

    def contains(self, value: float) -> bool:
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True

    def to_dict(self):
        return {'min': self.min, 'max': self.max}


@dataclass(frozen=True)
class TargetSpec:
    alcohol_percent: float
    ranges: Dict[str, Range] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> 'TargetSpec':
        data = normalize_keys(data or {}, 'target')
        alcohol = parse_number(data.get('alcohol_percent'), 'alcohol_percent', required=True)

        ranges = {}
        for key, bounds in normalize_keys(data.get('ranges') or {}, 'ranges').items():
            if key not in CHEMISTRY_FIELDS:
                raise ValidationError(f"Unknown target parameter '{key}'.", field=key)
            if not isinstance(bounds, Mapping):
                raise ValidationError(f'Range for {key} must have min and/or max.', field=key)
            low = parse_number(bounds.get('min'), f'{key}.min')
            high = parse_number(bounds.get('max'), f'{key}.max')
            if low is None and high is None:
                continue
            if low is not None and high is not None and low > high:
                raise ValidationError(f'Range for {key} has min above max.', field=key)
            ranges[key] = Range(min=low, max=high)
        return cls(alcohol_percent=alcohol, ranges=ranges)

    def to_dict(self):
        return {
            'alcohol_percent': self.alcohol_percent,
            'ranges': {k: r.to_dict() for k, r in self.ranges.items()},
        }


@dataclass
class Combination:
    tank_a: Tank
    tank_b: Tank
    volume_a: float
    volume_b: float
    result: BlendResult
    feasible: bool
    score: float = 0.0

    @property
    def total_volume(self) -> float:
        return self.volume_a + self.volume_b

    @property
    def percentage_a(self) -> float:
        return self.volume_a / self.total_volume * 100

    @property
    def percentage_b(self) -> float:
        return self.volume_b / self.total_volume * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            'tank_a': {'id': self.tank_a.id, 'name': self.tank_a.name,
                       'volume': self.volume_a, 'percentage': self.percentage_a},
            'tank_b': {'id': self.tank_b.id, 'name': self.tank_b.name,
                       'volume': self.volume_b, 'percentage': self.percentage_b},
            'result': self.result.to_dict(),
            'feasible': self.feasible,
            'score': self.score,
        }


@dataclass
class RandomBlend:
    components: List[BlendComponent]
    result: BlendResult
    balance_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        total = self.result.total_volume
        return {
            'components': [c.to_dict(total) for c in self.components],
            'result': self.result.to_dict(),
            'balance_score': self.balance_score,
        }
