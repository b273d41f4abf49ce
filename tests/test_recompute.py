import dataclasses

import numpy as np
import pytest

from census import CENSUS_SYSTEM
from effects import TimedEffect
from engine import City, Member, Realm, TradeContract, War, World
from laws import LawSlot, SpendingLevel, TaxationLevel
from modifiers import DEFAULT_TUNING, IDENTITY, ModifierBundle
from sim.accumulators import (
    compute_corruption, safe_round, step_war_overhead,
)
from sim.ledger import Ledger
from sim.recompute import compute_expenses, compute_income, recompute


def _world(n=20, cities=0, age=30):
    members = [Member(member_id=i, age=age) for i in range(n)]
    city_list = [City(city_id=100 + i, name=f"C{i}") for i in range(cities)]
    realm = Realm(realm_id=0, name="Testland", members=members, cities=city_list)
    return World(realms={0: realm}), realm


def test_max_taxation_settles_one_twelfth_after_window():
    world, realm = _world()
    ledger = Ledger(realm_id=0)
    ledger.laws[LawSlot.TAXATION] = TaxationLevel.MAXIMUM
    recompute(realm, ledger, 5.0, world=world, rng=np.random.default_rng(0))
    assert ledger.income.total > 0
    assert ledger.expenses.total == 0
    assert ledger.treasury == round(ledger.balance / 12)
    assert ledger.settlement_timer == 0.0


@pytest.mark.parametrize("cost, expected", [(12, 0), (60, 2), (36, 2)])
def test_settlement_rounds_half_to_even(cost, expected):
    world, realm = _world()
    world.contracts.append(TradeContract(source=0, target=1, cost_per_tick=cost))
    tuning = dataclasses.replace(DEFAULT_TUNING, per_capita_gdp=0.0)
    ledger = Ledger(realm_id=0)
    recompute(realm, ledger, 5.0, world=world, tuning=tuning)
    assert ledger.income.total == cost // 2
    assert ledger.expenses.total == 0
    assert ledger.treasury == expected


def test_no_settlement_before_window():
    world, realm = _world()
    ledger = Ledger(realm_id=0)
    ledger.laws[LawSlot.TAXATION] = TaxationLevel.MAXIMUM
    recompute(realm, ledger, 4.5, world=world)
    assert ledger.treasury == 0
    assert ledger.settlement_timer == pytest.approx(4.5)


def test_tax_rate_follows_taxation_law():
    world, realm = _world()
    ledger = Ledger(realm_id=0)
    recompute(realm, ledger, 0.0, world=world)
    assert ledger.tax_rate == pytest.approx(0.05 * 0.95)
    ledger.laws[LawSlot.TAXATION] = TaxationLevel.HIGH
    recompute(realm, ledger, 0.0, world=world)
    assert ledger.tax_rate == pytest.approx(0.05 * 1.3 * 0.95)


def test_anarchy_halves_income_and_triples_expenses_and_corruption():
    _, realm = _world(n=40, cities=3)
    realm.members[0].soldier = True
    census = CENSUS_SYSTEM.take_census(realm.members)
    normal_in = compute_income(census, 3, 10.0, 40.0, IDENTITY, 0, False)
    anarchy_in = compute_income(census, 3, 10.0, 40.0, IDENTITY, 0, True)
    assert anarchy_in.total == safe_round(normal_in.total * 0.5)

    normal_out = compute_expenses(census, 3, 4, 0.0, 0.1, normal_in.total, IDENTITY, 0, 0, False)
    anarchy_out = compute_expenses(census, 3, 4, 0.0, 0.1, normal_in.total, IDENTITY, 0, 0, True)
    assert normal_out.total > 0
    assert anarchy_out.total == safe_round(normal_out.total * 3)

    kwargs = dict(cities=3, event_corruption=0.05, estimated_tax=300.0, bundle_delta=0.0,
                  per_extra_city=0.01, tax_pressure_divisor=10000.0, anarchy_multiplier=3.0)
    plain = compute_corruption(anarchy=False, **kwargs)
    assert compute_corruption(anarchy=True, **kwargs) == pytest.approx(min(1.0, 3 * plain))


def test_anarchy_branch_inside_recompute():
    world, realm = _world(n=25, cities=3)
    realm.buildings = 5
    realm.members[0].soldier = True
    ledger = Ledger(realm_id=0, stability=0.0, event_corruption=0.1)
    recompute(realm, ledger, 0.0, world=world)
    assert ledger.anarchy

    census = ledger.census
    calm_in = compute_income(census, 3, 0.0, 0.0, ledger.modifiers, 0, False)
    assert ledger.income.total == safe_round(calm_in.total * 0.5)
    calm_out = compute_expenses(census, 3, 5, ledger.war_overhead, ledger.corruption,
                                ledger.income.total, ledger.modifiers, 0, 0, False)
    assert ledger.expenses.total == safe_round(calm_out.total * 3)


def test_zero_stability_puts_realm_in_anarchy():
    world, realm = _world()
    ledger = Ledger(realm_id=0, stability=0.0)
    recompute(realm, ledger, 0.0, world=world)
    assert ledger.anarchy
    ledger.stability = 10.0
    recompute(realm, ledger, 0.0, world=world)
    assert not ledger.anarchy


def test_max_welfare_cures_plague_and_resets_risk():
    world, realm = _world()
    sick = realm.members[3]
    sick.add_trait("plague")
    ledger = Ledger(realm_id=0, plague_risk=7.0, plague_resistance_decay=2.0)
    ledger.laws[LawSlot.WELFARE_SPENDING] = SpendingLevel.MAXIMUM
    recompute(realm, ledger, 0.25, world=world)
    assert not sick.has_trait("plague")
    assert ledger.plague_risk == 0.0
    assert ledger.plague_resistance_decay == 0.0
    assert ledger.census.infected == 0


def test_outbreak_notifies_and_requests_recompute():
    world, realm = _world(n=40)
    ledger = Ledger(realm_id=0, plague_risk=500.0)
    recompute(realm, ledger, 0.25, world=world, rng=np.random.default_rng(3))
    assert world.notifications
    assert world.notifications[0][0] == 0
    assert ledger.recompute_requested
    assert ledger.plague_risk == 0.0


def test_small_population_never_rolls_plague():
    world, realm = _world(n=10)
    ledger = Ledger(realm_id=0, plague_risk=500.0)
    recompute(realm, ledger, 0.25, world=world)
    assert not world.notifications
    assert ledger.plague_risk == 500.0


def test_anarchy_attrition_spares_ruler_and_leaders():
    world, realm = _world()
    realm.members[0].ruler = True
    realm.members[1].leader = True
    ledger = Ledger(realm_id=0, stability=-1000.0)
    recompute(realm, ledger, 1000.0, world=world, rng=np.random.default_rng(1))
    assert ledger.stability <= 0
    assert [m.member_id for m in realm.members] == [0, 1]


def test_stability_moves_at_most_half_a_point_per_second():
    world, realm = _world()
    ledger = Ledger(realm_id=0, stability=95.0)
    ledger.laws[LawSlot.TAXATION] = TaxationLevel.MAXIMUM
    for elapsed in (0.25, 1.0, 2.0, 30.0):
        before = ledger.stability
        recompute(realm, ledger, elapsed, world=world)
        assert ledger.stability < before
        assert abs(ledger.stability - before) <= 0.5 * elapsed + 1e-9


def test_zero_elapsed_leaves_accumulators_alone():
    world, realm = _world(cities=2)
    ledger = Ledger(realm_id=0, stability=70.0, war_exhaustion=30.0, event_corruption=0.2)
    recompute(realm, ledger, 0.0, world=world)
    assert ledger.stability == 70.0
    assert ledger.war_exhaustion == 30.0
    assert ledger.event_corruption == 0.2
    assert ledger.settlement_timer == 0.0


def test_war_exhaustion_rises_at_war_and_recovers_in_peace():
    world, realm = _world()
    world.realms[1] = Realm(realm_id=1, name="Rival", members=[Member(member_id=99)])
    war = War(attackers=[0], defenders=[1])
    world.wars.append(war)
    ledger = Ledger(realm_id=0)
    recompute(realm, ledger, 60.0, world=world)
    assert ledger.at_war
    assert ledger.war_exhaustion == pytest.approx(10.0)
    war.ended = True
    recompute(realm, ledger, 60.0, world=world)
    assert not ledger.at_war
    assert ledger.war_exhaustion == pytest.approx(5.0)


def test_corruption_always_within_unit_range():
    rng = np.random.default_rng(11)
    for _ in range(200):
        level = compute_corruption(
            cities=int(rng.integers(0, 200)),
            event_corruption=float(rng.uniform(-1, 5)),
            estimated_tax=float(rng.uniform(-1e4, 1e6)),
            bundle_delta=float(rng.uniform(-2, 2)),
            anarchy=bool(rng.random() < 0.5),
            per_extra_city=0.01,
            tax_pressure_divisor=10000.0,
            anarchy_multiplier=3.0,
        )
        assert 0.0 <= level <= 1.0


def test_war_overhead_stays_in_bounds():
    rng = np.random.default_rng(5)
    value = 0.0
    for _ in range(200):
        value = step_war_overhead(value, float(rng.uniform(0, 100)), float(rng.uniform(0, 50)),
                                  threshold=5.0, rise_per_year=20.0, decay_per_year=10.0)
        assert 0.0 <= value <= 100.0


def test_event_corruption_raises_corruption():
    world, realm = _world(cities=2)
    ledger = Ledger(realm_id=0)
    recompute(realm, ledger, 0.0, world=world)
    calm = ledger.corruption
    ledger.event_corruption = 0.3
    recompute(realm, ledger, 0.0, world=world)
    assert ledger.corruption == pytest.approx(calm + 0.3)


def test_expired_effect_is_removed():
    world, realm = _world()
    ledger = Ledger(realm_id=0)
    ledger.effects.append(TimedEffect("boom", 60.0, ModifierBundle(tax_multiplier=1.1), 0.2))
    recompute(realm, ledger, 599.0, world=world)
    assert len(ledger.effects) == 1
    assert ledger.modifiers.tax_multiplier == pytest.approx(1.1 * 0.95)
    recompute(realm, ledger, 1.0, world=world)
    assert ledger.effects == []
    assert ledger.modifiers.tax_multiplier == pytest.approx(0.95)


def test_trade_contracts_reach_both_ledgers():
    world, realm = _world()
    world.realms[1] = Realm(realm_id=1, name="Buyer", members=[Member(member_id=50 + i) for i in range(5)])
    world.contracts.append(TradeContract(source=0, target=1, cost_per_tick=40))
    seller = Ledger(realm_id=0)
    buyer = Ledger(realm_id=1)
    recompute(realm, seller, 0.0, world=world)
    recompute(world.realms[1], buyer, 0.0, world=world)
    assert seller.income.trade_income == 20
    assert buyer.expenses.trade == 20


def test_missing_or_empty_realm_is_a_no_op():
    world, realm = _world()
    ledger = Ledger(realm_id=0, treasury=17)
    recompute(None, ledger, 5.0, world=world)
    recompute(realm, None, 5.0, world=world)
    empty = Realm(realm_id=0, name="Empty")
    recompute(empty, ledger, 5.0, world=world)
    for m in realm.members:
        m.alive = False
    recompute(realm, ledger, 5.0, world=world)
    realm.alive = False
    recompute(realm, ledger, 5.0, world=world)
    assert ledger.treasury == 17
    assert ledger.settlement_timer == 0.0
    assert ledger.census.population == 0


def test_uses_fallback_gdp_when_nobody_has_money():
    world, realm = _world()
    ledger = Ledger(realm_id=0)
    recompute(realm, ledger, 0.0, world=world, tuning=DEFAULT_TUNING)
    assert ledger.income.fallback_gdp
    assert ledger.income.tax_base_wealth == pytest.approx(20 * 15.0)
    for m in realm.members:
        m.money = 10
    recompute(realm, ledger, 0.0, world=world)
    assert not ledger.income.fallback_gdp
    assert ledger.income.tax_base_wealth == pytest.approx(200.0)
