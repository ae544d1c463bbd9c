import random

import pytest

from backend.errors import TankNotFound, ValidationError
from backend.manager import BlendManager, BlendTab
from backend.models import Range, TargetSpec

from tests.conftest import make_tank


TANK_PAYLOAD = {
    'name': 'Vasca 7',
    'capacity': 10,
    'capacity_unit': 'hL',
    'volume': 8,
    'volume_unit': 'hL',
    'alcohol_percent': 13.2,
    'ph': 3.45,
}


def test_add_tank_generates_id():
    manager = BlendManager()
    tank = manager.add_tank(TANK_PAYLOAD)
    assert tank.id
    assert tank.available_liters == 800
    assert tank.total_acidity is None
    assert manager.list_tanks() == [tank]


def test_add_tank_accepts_browser_field_names():
    manager = BlendManager()
    tank = manager.add_tank({
        'name': 'Old', 'capacity': 100, 'volume': 50,
        'alcoholPercent': 12.5, 'totalAcidity': 6.1, 'pH': 3.3, 'volumeUnit': 'L',
    })
    assert tank.alcohol_percent == 12.5
    assert tank.total_acidity == 6.1
    assert tank.ph == 3.3


@pytest.mark.parametrize('field,value', [
    ('name', '  '),
    ('volume', 0),
    ('capacity', -1),
    ('alcohol_percent', 21),
    ('alcohol_percent', None),
    ('volume_unit', 'gal'),
    ('ph', 'acidic'),
])
def test_add_tank_rejects_bad_payload(field, value):
    payload = dict(TANK_PAYLOAD, **{field: value})
    with pytest.raises(ValidationError) as excinfo:
        BlendManager().add_tank(payload)
    assert excinfo.value.field == field


def test_update_keeps_id_and_merges_fields():
    manager = BlendManager()
    tank = manager.add_tank(TANK_PAYLOAD)
    updated = manager.update_tank(tank.id, {'volume': 5, 'id': 'other'})
    assert updated.id == tank.id
    assert updated.volume == 5
    assert updated.ph == 3.45
    assert manager.get_tank(tank.id) is updated


def test_delete_tank(manager):
    manager.delete_tank('merlot')
    with pytest.raises(TankNotFound):
        manager.get_tank('merlot')
    assert len(manager.list_tanks()) == 3


def test_snapshots_are_independent(manager):
    snapshot = manager.list_tanks()
    manager.delete_tank('merlot')
    assert len(snapshot) == 4


def test_calculate_blend_from_selected_volumes():
    manager = BlendManager(tanks=[
        make_tank('A', volume=100, alcohol=12.0),
        make_tank('B', volume=50, alcohol=16.0),
    ])
    components, result = manager.calculate_blend({'a': 60, 'b': '40'})
    assert [c.blend_volume for c in components] == [60, 40]
    assert result.total_volume == 100
    assert result.alcohol_percent == pytest.approx(13.6)


@pytest.mark.parametrize('selections', [
    {'sangiovese': 100},
    {'sangiovese': 100, 'merlot': 0},
    {'sangiovese': 100, 'merlot': None},
    {'sangiovese': 100, 'merlot': 301},
    {'sangiovese': 100, 'missing': 10},
])
def test_calculate_blend_validation(manager, selections):
    with pytest.raises(ValidationError):
        manager.calculate_blend(selections)


def test_hectoliter_stock_can_be_fully_used(manager):
    _, result = manager.calculate_blend({'trebbiano': 200, 'merlot': 300})
    assert result.total_volume == 500


def test_find_target_uses_configured_top_k(tanks):
    manager = BlendManager(tanks=tanks, top_k=1)
    found = manager.find_target_combinations(TargetSpec(13.0, {'ph': Range(max=3.6)}))
    assert len(found.combinations) == 1
    assert found.total_found == 4


def test_random_blend_for_selected_tanks(manager):
    blend = manager.random_blend_for(['merlot', 'trebbiano'])
    assert [c.tank.id for c in blend.components] == ['merlot', 'trebbiano']


def test_random_blend_for_rejects_duplicates(manager):
    with pytest.raises(ValidationError):
        manager.random_blend_for(['merlot', 'merlot'])


def test_random_blend_for_needs_two_tanks(manager):
    with pytest.raises(ValidationError):
        manager.random_blend_for(['merlot'])


def test_run_dispatches_each_tab(manager):
    from_tanks = manager.run(BlendTab.FROM_TANKS, {'selections': {'sangiovese': 100, 'merlot': 100}})
    assert from_tanks['result']['total_volume'] == 200
    assert [c['percentage'] for c in from_tanks['components']] == [50, 50]

    from_target = manager.run(BlendTab.FROM_TARGET, {
        'target': {'alcohol_percent': 13, 'ranges': {'ph': {'min': 3.2, 'max': 3.6}}},
        'top_k': 3,
    })
    assert from_target['total_found'] == 4
    assert len(from_target['combinations']) == 3

    best = manager.run(BlendTab.RANDOM, {'iterations': 10, 'to_show': 3})
    assert len(best['blends']) == 3

    single = manager.run(BlendTab.RANDOM, {})
    assert len(single['blends']) == 1


def test_run_rejects_invalid_target(manager):
    with pytest.raises(ValidationError):
        manager.run(BlendTab.FROM_TARGET, {'target': {'ranges': {'ph': {'min': 3.2}}}})
    with pytest.raises(ValidationError):
        manager.run(BlendTab.FROM_TARGET, {
            'target': {'alcohol_percent': 13, 'ranges': {'ph': {'min': 3.8, 'max': 3.2}}},
        })
    with pytest.raises(ValidationError):
        manager.run(BlendTab.FROM_TARGET, {
            'target': {'alcohol_percent': 13, 'ranges': {'tannins': {'max': 2}}},
        })


def test_seeded_managers_agree(tanks):
    first = BlendManager(tanks=tanks, rng=random.Random(11)).best_random_blends(5, 2)
    second = BlendManager(tanks=tanks, rng=random.Random(11)).best_random_blends(5, 2)
    assert [b.to_dict() for b in first] == [b.to_dict() for b in second]


def test_zero_top_k_is_rejected(manager):
    target = {'target': {'alcohol_percent': 13}, 'top_k': 0}
    with pytest.raises(ValidationError) as excinfo:
        manager.run(BlendTab.FROM_TARGET, target)
    assert excinfo.value.field == 'top_k'


def test_run_rejects_non_object_payload(manager):
    with pytest.raises(ValidationError):
        manager.run(BlendTab.FROM_TANKS, [1, 2])
