"""Shared fixtures for the blend engine tests."""
import random

import pytest

from backend.app import create_app
from backend.manager import BlendManager
from backend.models import Tank


def make_tank(name='Tank', volume=100.0, alcohol=12.0, **kwargs):
    fields = {
        'id': name.lower().replace(' ', '-'),
        'name': name,
        'capacity': kwargs.pop('capacity', max(volume, 1.0) * 2),
        'capacity_unit': kwargs.pop('capacity_unit', 'L'),
        'volume': volume,
        'volume_unit': kwargs.pop('volume_unit', 'L'),
        'alcohol_percent': alcohol,
    }
    fields.update(kwargs)
    return Tank(**fields)


@pytest.fixture
def tanks():
    return [
        make_tank('Sangiovese', volume=500, alcohol=12.0, total_acidity=6.0, ph=3.4,
                  volatile_acidity=0.4),
        make_tank('Merlot', volume=300, alcohol=14.5, total_acidity=5.2, ph=3.7,
                  volatile_acidity=0.5),
        make_tank('Trebbiano', volume=2, volume_unit='hL', capacity_unit='hL', alcohol=11.0, total_acidity=7.5,
                  ph=3.1, volatile_acidity=0.3),
        make_tank('Press Wine', volume=80, alcohol=13.5, total_acidity=5.8, ph=3.9,
                  volatile_acidity=1.1),
    ]


@pytest.fixture
def manager(tanks):
    return BlendManager(tanks=tanks, rng=random.Random(42))


@pytest.fixture
def app():
    return create_app('testing')


@pytest.fixture
def client(app):
    return app.test_client()
