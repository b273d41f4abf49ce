import json

import pytest

import numpy as np

from effects import TimedEffect
from engine import Member, Realm, World
from laws import LawSlot, PressRegulationLevel, SpendingLevel, TaxationLevel
from leaders import LeaderAppointment
from modifiers import ModifierBundle
from sim.ledger import Ledger
from sim.recompute import recompute
from sim.persistence import (
    DictStore,
    JsonFileStore,
    LedgerSnapshot,
    load_ledger,
    realm_prefix,
    save_ledger,
    saved_realm_ids,
)


def _busy_ledger():
    led = Ledger(realm_id=7)
    led.treasury = -123
    led.laws[LawSlot.TAXATION] = TaxationLevel.LOW
    led.laws[LawSlot.PRESS_REGULATION] = PressRegulationLevel.STATE_FOCUS
    led.policies = {"vassalage", "trade_guilds"}
    led.leaders = [
        LeaderAppointment("a1", "Aldric", "Spymaster", ModifierBundle(corruption_delta=-0.05), unit_id=3),
        LeaderAppointment("b2", "Bryn", bundle=ModifierBundle(tax_multiplier=1.1), level=2),
    ]
    led.effects = [TimedEffect("econ_boom", 12.5, ModifierBundle(tax_multiplier=1.1), 0.5)]
    led.stability = 0.1 + 0.2
    led.war_exhaustion = 33.3
    led.corruption = 0.125
    led.manpower_current = 41
    led.manpower_accumulator = 0.75
    led.settlement_timer = 3.25
    led.event_corruption = 0.05
    led.war_overhead = 12.0
    led.plague_risk = 4.5
    led.plague_resistance_decay = 1.5
    led.pop_sample = 20
    led.pop_sample_seconds = 3.0
    led.pop_trend = 1.5
    return led


def test_round_trip_preserves_state():
    src = _busy_ledger()
    store = DictStore()
    save_ledger(store, src)
    assert all(k.startswith(realm_prefix(7)) for k in store.keys())
    assert all(isinstance(v, str) for v in store.data.values())

    dst = Ledger(realm_id=7)
    load_ledger(store, dst)
    assert LedgerSnapshot.from_ledger(dst) == LedgerSnapshot.from_ledger(src)
    assert dst.stability == 0.1 + 0.2
    assert dst.last_update is None
    assert (dst.pop_sample, dst.pop_sample_seconds, dst.pop_trend) == (20, 3.0, 1.5)


def test_laws_are_stored_by_name():
    store = DictStore()
    save_ledger(store, _busy_ledger())
    assert store.get("realmsim.7.law.press_regulation") == "STATE_FOCUS"
    assert store.get("realmsim.7.policies") == "trade_guilds;vassalage"


def test_missing_keys_take_defaults():
    led = _busy_ledger()
    load_ledger(DictStore(), led)
    assert led.treasury == 0
    assert led.policies == set()
    assert led.leaders == []
    assert led.laws[LawSlot.TAXATION] is TaxationLevel.NORMAL
    assert led.stability == 50.0


def test_malformed_values_fall_back(caplog):
    store = DictStore({
        "realmsim.3.treasury": "lots",
        "realmsim.3.law.taxation": "Extreme",
        "realmsim.3.law.welfare_spending": "Maximum",
        "realmsim.3.policies": "vassalage;nope",
        "realmsim.3.leaders": "not json",
        "realmsim.3.effects": json.dumps([{"id": "x", "remaining": "soon"}, {"id": "y", "remaining": 2}]),
        "realmsim.3.stability": "nan",
        "realmsim.3.corruption": "7",
        "realmsim.3.war_overhead": "-20",
    })
    led = Ledger(realm_id=3)
    load_ledger(store, led)
    assert led.treasury == 0
    assert led.laws[LawSlot.TAXATION] is TaxationLevel.NORMAL
    assert led.laws[LawSlot.WELFARE_SPENDING] is SpendingLevel.MAXIMUM
    assert led.policies == {"vassalage"}
    assert led.leaders == []
    assert [e.effect_id for e in led.effects] == ["y"]
    assert led.stability == 50.0
    assert led.corruption == 1.0
    assert led.war_overhead == 0.0
    assert "nope" in caplog.text


def test_leader_roster_is_capped_and_deduplicated():
    entries = [{"id": f"l{i}", "name": f"L{i}"} for i in range(5)]
    entries.insert(1, {"id": "l0", "name": "Copy"})
    store = DictStore({"realmsim.1.leaders": json.dumps(entries)})
    led = Ledger(realm_id=1)
    load_ledger(store, led)
    assert [l.leader_id for l in led.leaders] == ["l0", "l1", "l2"]


def test_saved_realm_ids():
    store = DictStore({
        "realmsim.1.treasury": "5",
        "realmsim.5.law.taxation": "HIGH",
        "realmsim.5.treasury": "0",
        "realmsim.x.treasury": "1",
        "other.2.treasury": "9",
    })
    assert saved_realm_ids(store) == [1, 5]


def test_json_file_store_persists(tmp_path):
    path = str(tmp_path / "save.json")
    store = JsonFileStore(path)
    save_ledger(store, _busy_ledger())
    store.flush()

    again = JsonFileStore(path)
    led = Ledger(realm_id=7)
    load_ledger(again, led)
    assert led.treasury == -123
    assert led.policies == {"vassalage", "trade_guilds"}


def test_json_file_store_ignores_broken_file(tmp_path, caplog):
    path = tmp_path / "save.json"
    path.write_text("[1, 2")
    store = JsonFileStore(str(path))
    assert store.keys() == []
    assert "not valid JSON" in caplog.text


def test_snapshot_defaults_match_fresh_ledger():
    snap = LedgerSnapshot.from_items({})
    fresh = LedgerSnapshot.from_ledger(Ledger(realm_id=0))
    assert snap == fresh
    assert snap.stability == pytest.approx(50.0)


def test_population_trend_window_survives_reload():
    realm = Realm(realm_id=0, name="A", members=[Member(member_id=i, age=30) for i in range(20)])
    world = World(realms={0: realm})
    src = Ledger(realm_id=0)
    recompute(realm, src, 10.0, world=world, rng=np.random.default_rng(0))
    store = DictStore()
    save_ledger(store, src)
    dst = Ledger(realm_id=0)
    load_ledger(store, dst)
    assert dst.pop_sample == 20
    assert dst.pop_sample_seconds == pytest.approx(10.0)

    realm.members.extend(Member(member_id=100 + i, age=30) for i in range(5))
    recompute(realm, dst, 10.0, world=world, rng=np.random.default_rng(1))
    assert dst.pop_trend == pytest.approx((25 - 20) / 20 * (100.0 / 20.0))
