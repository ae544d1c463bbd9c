"""Tank registry and blend request dispatch."""

import logging
import random
from collections.abc import Mapping
from enum import Enum

from .errors import TankNotFound, ValidationError
from .mixing import mix
from .models import BlendComponent, Tank, TargetSpec, normalize_keys, parse_number
from .scoring import DEFAULT_BALANCE_POLICY
from .search import (
    DEFAULT_TOP_K,
    best_random_blends,
    find_target_combinations,
    full_random_blend,
    random_blend_of,
    require_tanks,
)

logger = logging.getLogger(__name__)

# Slack for volumes typed from a rounded display value.
VOLUME_TOLERANCE = 1e-6


class BlendTab(Enum):
    FROM_TANKS = 'from_tanks'
    FROM_TARGET = 'from_target'
    RANDOM = 'random'


class BlendManager:
    """Owns the tank list and runs blend calculations on snapshots of it."""

    def __init__(self, tanks=None, rng=None, top_k=DEFAULT_TOP_K, policy=DEFAULT_BALANCE_POLICY):
        self._tanks = list(tanks or [])
        self.rng = rng or random.Random()
        self.top_k = top_k
        self.policy = policy

    # --- Tanks ---

    def list_tanks(self):
        return list(self._tanks)

    def get_tank(self, tank_id):
        tank = next((t for t in self._tanks if t.id == tank_id), None)
        if tank is None:
            raise TankNotFound(tank_id)
        return tank

    def add_tank(self, payload):
        tank = Tank.from_payload(payload)
        if any(t.id == tank.id for t in self._tanks):
            raise ValidationError('Tank already exists.', field='id')
        self._tanks.append(tank)
        logger.info('Added tank %s (%s)', tank.name, tank.id)
        return tank

    def update_tank(self, tank_id, payload):
        current = self.get_tank(tank_id)
        merged = current.to_dict()
        merged.update(normalize_keys(payload or {}))
        tank = Tank.from_payload(merged, tank_id=current.id)
        self._tanks = [tank if t.id == tank_id else t for t in self._tanks]
        logger.info('Updated tank %s (%s)', tank.name, tank.id)
        return tank

    def delete_tank(self, tank_id):
        tank = self.get_tank(tank_id)
        self._tanks = [t for t in self._tanks if t.id != tank_id]
        logger.info('Deleted tank %s (%s)', tank.name, tank.id)
        return tank

    def replace_tanks(self, tanks):
        self._tanks = list(tanks)
        logger.info('Loaded %d tanks', len(self._tanks))

    def _select(self, tank_ids):
        if not isinstance(tank_ids, list) or not all(isinstance(i, str) for i in tank_ids):
            raise ValidationError('tank_ids must be a list of tank ids.', field='tank_ids')
        if len(set(tank_ids)) != len(tank_ids):
            raise ValidationError('Each tank can only be selected once.', field='tank_ids')
        return [self.get_tank(tank_id) for tank_id in tank_ids]

    # --- Blends ---

    def calculate_blend(self, selections):
        """Blend chosen volumes (liters) of chosen tanks.

        ``selections`` maps tank id to the volume taken from that tank.
        """
        components = []
        for tank_id, raw_volume in selections.items():
            tank = self.get_tank(tank_id)
            volume = parse_number(raw_volume, 'blend_volume', required=True)
            if volume <= 0:
                raise ValidationError(f'Enter a valid volume for {tank.name}.', field='blend_volume')
            if volume > tank.available_liters + VOLUME_TOLERANCE:
                raise ValidationError(
                    f'{tank.name} only holds {tank.available_liters:g} L.', field='blend_volume'
                )
            components.append(BlendComponent(tank, volume))
        require_tanks(components)
        return components, mix(components)

    def find_target_combinations(self, target, drain_tank_id=None, top_k=None):
        return find_target_combinations(
            self.list_tanks(), target, drain_tank_id=drain_tank_id,
            top_k=self.top_k if top_k is None else top_k,
        )

    def random_blend(self):
        return full_random_blend(self.list_tanks(), self.rng, self.policy)

    def random_blend_for(self, tank_ids):
        return random_blend_of(self._select(tank_ids), self.rng, self.policy)

    def best_random_blends(self, iterations, to_show):
        return best_random_blends(self.list_tanks(), iterations, to_show, self.rng, self.policy)

    def run(self, tab, payload):
        """Dispatch a blend request for one of the blend tabs."""
        payload = payload or {}
        if not isinstance(payload, Mapping):
            raise ValidationError('Request body must be an object.', field='payload')
        if tab is BlendTab.FROM_TANKS:
            selections = payload.get('selections') or {}
            if not isinstance(selections, dict):
                raise ValidationError('selections must map tank ids to volumes.', field='selections')
            components, result = self.calculate_blend(selections)
            return {
                'components': [c.to_dict(result.total_volume) for c in components],
                'result': result.to_dict(),
            }
        if tab is BlendTab.FROM_TARGET:
            target = TargetSpec.from_payload(payload.get('target') or {})
            # A form with no drain tank picked sends an empty id
            found = self.find_target_combinations(
                target,
                drain_tank_id=payload.get('drain_tank_id') or None,
                top_k=payload.get('top_k'),
            )
            return found.to_dict()
        if tab is BlendTab.RANDOM:
            if payload.get('tank_ids'):
                return {'blends': [self.random_blend_for(payload['tank_ids']).to_dict()]}
            if 'iterations' in payload or 'to_show' in payload:
                blends = self.best_random_blends(payload.get('iterations'), payload.get('to_show'))
                return {'blends': [b.to_dict() for b in blends]}
            return {'blends': [self.random_blend().to_dict()]}
        raise ValueError(f'Unknown blend tab: {tab!r}')
