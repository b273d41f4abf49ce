import pytest

from engine import City, Member, Realm, World
from laws import LawSlot, ConscriptionLevel, SpendingLevel
from sim.accumulators import manpower_cap, regen_manpower
from sim.ledger import Ledger
from sim.recompute import recompute


def _realm(n=20, cities=2):
    members = [Member(member_id=i, age=30) for i in range(n)]
    city_list = [City(city_id=100 + i, name=f"C{i}") for i in range(cities)]
    realm = Realm(realm_id=0, name="A", members=members, cities=city_list)
    return World(realms={0: realm}), realm


def test_manpower_cap_follows_military_spending():
    world, realm = _realm()
    ledger = Ledger(realm_id=0)
    recompute(realm, ledger, 0.0, world=world)
    assert ledger.manpower_max == 30
    ledger.laws[LawSlot.MILITARY_SPENDING] = SpendingLevel.MAXIMUM
    recompute(realm, ledger, 0.0, world=world)
    assert ledger.manpower_max == 120


def test_soldiers_are_not_eligible():
    assert manpower_cap(20, 4, 0, eligible_share=0.5, multiplier=1.0,
                        per_city=10, flat_per_city=0) == 8
    assert manpower_cap(3, 10, 1, eligible_share=0.5, multiplier=1.0,
                        per_city=10, flat_per_city=0) == 10


def test_manpower_regen_carries_fractions():
    assert regen_manpower(0, 0.0, 10, 60.0, 0.25) == (2, pytest.approx(0.5))
    assert regen_manpower(2, 0.5, 10, 60.0, 0.25) == (5, pytest.approx(0.0))
    assert regen_manpower(9, 0.5, 10, 60.0, 0.25) == (10, 0.0)
    assert regen_manpower(12, 0.3, 10, 60.0, 0.25) == (10, 0.0)


def test_disarmed_realm_regenerates_slower():
    world, realm = _realm(n=40, cities=0)
    fast = Ledger(realm_id=0)
    slow = Ledger(realm_id=0)
    slow.laws[LawSlot.CONSCRIPTION] = ConscriptionLevel.DISARMED
    for _ in range(10):
        recompute(realm, fast, 60.0, world=world)
        recompute(realm, slow, 60.0, world=world)
    assert fast.manpower_max == 20
    assert slow.manpower_max == 10
    assert fast.manpower_current > slow.manpower_current
    assert 0 <= slow.manpower_current <= slow.manpower_max
