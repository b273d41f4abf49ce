from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set, Tuple, Union
import json
import logging
import math

import numpy as np

from effects import TimedEffect, make_effect
from laws import parse_level, parse_slot
from leaders import LeaderAppointment
from modifiers import RealmTuning, TRACKED_RESOURCES, load_tuning
from policies import get_policy
from sim.ledger import Ledger
from sim.persistence import DictStore, KeyValueStore, load_ledger, save_ledger, saved_realm_ids
from sim.recompute import recompute
from sim.safe_parse import to_bool, to_float, to_int
from time_model import Calendar, DEFAULT_SECONDS_PER_YEAR, seconds_to_years

logger = logging.getLogger(__name__)

# Age band used when generating members for a new realm
MEMBER_MAX_AGE = 80


# =============================== DATA TYPES ===================================

@dataclass
class Member:
    member_id: int
    age: int = 20
    alive: bool = True
    soldier: bool = False
    leader: bool = False
    ruler: bool = False
    employed: bool = True
    happy: bool = True
    hungry: bool = False
    starving: bool = False
    sick: bool = False
    homeless: bool = False
    money: int = 0
    traits: Set[str] = field(default_factory=set)

    def has_trait(self, trait: str) -> bool:
        return trait in self.traits

    def add_trait(self, trait: str) -> None:
        self.traits.add(trait)

    def remove_trait(self, trait: str) -> None:
        self.traits.discard(trait)

    def to_dict(self) -> Dict:
        return {
            "id": self.member_id, "age": self.age, "alive": self.alive,
            "soldier": self.soldier, "leader": self.leader, "ruler": self.ruler,
            "employed": self.employed, "happy": self.happy, "hungry": self.hungry,
            "starving": self.starving, "sick": self.sick, "homeless": self.homeless,
            "money": self.money, "traits": sorted(self.traits),
        }

    @classmethod
    def from_dict(cls, d: Dict) -> "Member":
        traits = d.get("traits") or []
        return cls(
            member_id=to_int(d.get("id")),
            age=to_int(d.get("age"), default=20),
            alive=to_bool(d.get("alive"), default=True),
            soldier=to_bool(d.get("soldier")),
            leader=to_bool(d.get("leader")),
            ruler=to_bool(d.get("ruler")),
            employed=to_bool(d.get("employed"), default=True),
            happy=to_bool(d.get("happy"), default=True),
            hungry=to_bool(d.get("hungry")),
            starving=to_bool(d.get("starving")),
            sick=to_bool(d.get("sick")),
            homeless=to_bool(d.get("homeless")),
            money=to_int(d.get("money")),
            traits={str(t) for t in traits} if isinstance(traits, list) else set(),
        )


@dataclass
class City:
    city_id: int
    name: str
    alive: bool = True
    resources: Dict[str, int] = field(default_factory=dict)


@dataclass
class Realm:
    realm_id: int
    name: str
    members: List[Member] = field(default_factory=list)
    cities: List[City] = field(default_factory=list)
    buildings: int = 0
    alive: bool = True


@dataclass
class War:
    attackers: List[int]
    defenders: List[int]
    ended: bool = False

    def involves(self, realm_id: int) -> bool:
        return realm_id in self.attackers or realm_id in self.defenders


@dataclass
class TradeContract:
    """Goods flow from ``source`` to ``target``; each side books half the price."""
    source: int
    target: int
    cost_per_tick: int = 0


@dataclass
class World:
    """In-memory collaborator consumed by the recompute pipeline."""
    realms: Dict[int, Realm] = field(default_factory=dict)
    wars: List[War] = field(default_factory=list)
    contracts: List[TradeContract] = field(default_factory=list)
    seconds_per_year: Optional[float] = DEFAULT_SECONDS_PER_YEAR
    notifications: List[Tuple[int, str]] = field(default_factory=list)

    # --- services read by the pipeline ---

    def trade_income(self, realm_id: int) -> int:
        return sum(c.cost_per_tick // 2 for c in self.contracts if c.source == realm_id)

    def trade_expense(self, realm_id: int) -> int:
        return sum(c.cost_per_tick // 2 for c in self.contracts if c.target == realm_id)

    def has_unresolved_war(self, realm_id: int) -> bool:
        return any(not w.ended and w.involves(realm_id) for w in self.wars)

    def seconds_per_simulated_year(self) -> Optional[float]:
        return self.seconds_per_year

    def is_unit_alive(self, unit_id: int) -> bool:
        for realm in self.realms.values():
            for m in realm.members:
                if m.member_id == unit_id:
                    return m.alive
        return False

    def is_realm_alive(self, realm_id: int) -> bool:
        realm = self.realms.get(realm_id)
        return realm is not None and realm.alive

    def notify(self, realm_id: int, message: str) -> None:
        logger.info("[realm %s] %s", realm_id, message)
        self.notifications.append((realm_id, message))

    def remove_member(self, realm_id: int, member: Member) -> None:
        member.alive = False
        realm = self.realms.get(realm_id)
        if realm is not None:
            realm.members[:] = [m for m in realm.members if m is not member]

    # --- serialization ---

    def to_dict(self) -> Dict:
        return {
            "seconds_per_year": self.seconds_per_year,
            "realms": {
                str(rid): {
                    "realm_id": r.realm_id,
                    "name": r.name,
                    "alive": r.alive,
                    "buildings": r.buildings,
                    "members": [m.to_dict() for m in r.members],
                    "cities": [
                        {"city_id": c.city_id, "name": c.name, "alive": c.alive,
                         "resources": dict(c.resources)}
                        for c in r.cities
                    ],
                }
                for rid, r in self.realms.items()
            },
            "wars": [{"attackers": w.attackers, "defenders": w.defenders, "ended": w.ended}
                     for w in self.wars],
            "contracts": [{"source": c.source, "target": c.target, "cost_per_tick": c.cost_per_tick}
                          for c in self.contracts],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "World":
        spy = data.get("seconds_per_year")
        w = cls(seconds_per_year=to_float(spy, default=DEFAULT_SECONDS_PER_YEAR)
                if spy is not None else None)
        for _, rd in (data.get("realms") or {}).items():
            realm = Realm(
                realm_id=to_int(rd.get("realm_id")),
                name=str(rd.get("name", "Unnamed")),
                alive=to_bool(rd.get("alive"), default=True),
                buildings=max(0, to_int(rd.get("buildings"))),
                members=[Member.from_dict(md) for md in rd.get("members", [])
                         if isinstance(md, dict)],
                cities=[
                    City(city_id=to_int(cd.get("city_id")),
                         name=str(cd.get("name", "")),
                         alive=to_bool(cd.get("alive"), default=True),
                         resources={str(k): to_int(v) for k, v in
                                    (cd.get("resources") or {}).items()})
                    for cd in rd.get("cities", []) if isinstance(cd, dict)
                ],
            )
            w.realms[realm.realm_id] = realm
        for wd in data.get("wars", []):
            w.wars.append(War(attackers=[to_int(x) for x in wd.get("attackers", [])],
                              defenders=[to_int(x) for x in wd.get("defenders", [])],
                              ended=to_bool(wd.get("ended"))))
        for cd in data.get("contracts", []):
            w.contracts.append(TradeContract(source=to_int(cd.get("source")),
                                             target=to_int(cd.get("target")),
                                             cost_per_tick=to_int(cd.get("cost_per_tick"))))
        return w


# =============================== ENGINE =======================================

class RealmEngine:
    """Registry of realm ledgers with a debounced driver and the setter API.

    The engine owns the ledgers; nothing else keeps a module-level map.
    Every setter that changes a setting runs a synchronous recompute so a
    read right after the call sees fresh derived values.
    """

    def __init__(self, world: Optional[World] = None, *, tuning: Optional[RealmTuning] = None,
                 store: Optional[KeyValueStore] = None,
                 clock: Optional[Callable[[], float]] = None, seed: Optional[int] = None):
        self.world = world if world is not None else World()
        self.tuning = tuning if tuning is not None else load_tuning()
        self.store = store if store is not None else DictStore()
        self.seed = seed
        self.rng = np.random.default_rng(seed)
        self.ledgers: Dict[int, Ledger] = {}
        self.calendar = Calendar()
        self.sim_time = 0.0
        # Without an injected clock, time only advances through tick().
        self.clock = clock if clock is not None else (lambda: self.sim_time)
        self._accum = 0.0

    # ------------------------------ Realms ------------------------------------

    def _next_realm_id(self) -> int:
        i = 0
        while i in self.world.realms:
            i += 1
        return i

    def add_realm(self, name: str, population: int = 50, cities: int = 1, buildings: int = 0,
                  soldiers: int = 0, money: int = 0) -> int:
        """Create a realm with generated members and cities; return its id."""
        rid = self._next_realm_id()
        base = (rid + 1) * 100000
        members: List[Member] = []
        for i in range(max(0, population)):
            age = int(self.rng.integers(0, MEMBER_MAX_AGE))
            members.append(Member(member_id=base + i, age=age, money=money))
        adults = [m for m in members if 16 <= m.age < 60]
        for m in adults[:soldiers]:
            m.soldier = True
        if members:
            members[0].ruler = True
        city_list = [
            City(city_id=base + i, name=f"{name} {i + 1}",
                 resources={r: int(self.rng.integers(0, 50)) for r in TRACKED_RESOURCES})
            for i in range(max(0, cities))
        ]
        self.world.realms[rid] = Realm(realm_id=rid, name=name, members=members,
                                       cities=city_list, buildings=max(0, buildings))
        logger.info("Realm %s (%s) founded with %d members", rid, name, len(members))
        return rid

    def declare_war(self, attackers: List[int], defenders: List[int]) -> War:
        war = War(attackers=list(attackers), defenders=list(defenders))
        self.world.wars.append(war)
        return war

    def add_trade(self, source: int, target: int, cost_per_tick: int) -> TradeContract:
        contract = TradeContract(source, target, cost_per_tick)
        self.world.contracts.append(contract)
        return contract

    # ------------------------------ Registry ----------------------------------

    def get_or_create_ledger(self, realm_id: int) -> Optional[Ledger]:
        """Return the realm's ledger, creating it on first access.

        Dead or unknown realms have no ledger; any stale one is dropped.
        """
        if not self.world.is_realm_alive(realm_id):
            self.forget(realm_id)
            return None
        ledger = self.ledgers.get(realm_id)
        if ledger is None:
            ledger = Ledger(realm_id=realm_id, stability=self.tuning.stability_start)
            self.ledgers[realm_id] = ledger
            logger.debug("ledger created for realm %s", realm_id)
        return ledger

    def track_all(self) -> None:
        for rid in list(self.world.realms):
            self.get_or_create_ledger(rid)

    def forget(self, realm_id: int) -> bool:
        return self.ledgers.pop(realm_id, None) is not None

    # ------------------------------ Driver ------------------------------------

    def _elapsed(self, ledger: Ledger, first: float) -> float:
        now = self.clock()
        if ledger.last_update is None:
            elapsed = first
        else:
            elapsed = max(0.0, now - ledger.last_update)
        ledger.last_update = now
        return elapsed

    def _run(self, realm_id: int, ledger: Ledger, elapsed: float) -> None:
        recompute(self.world.realms.get(realm_id), ledger, elapsed,
                  world=self.world, tuning=self.tuning, rng=self.rng)

    def _service_requests(self) -> None:
        for rid, ledger in list(self.ledgers.items()):
            if ledger.recompute_requested:
                ledger.recompute_requested = False
                self._run(rid, ledger, 0.0)

    def tick(self, dt: float) -> bool:
        """Advance frame time by ``dt``; return ``True`` when a pass ran."""
        dt = to_float(dt)
        if not math.isfinite(dt) or dt <= 0:
            return False
        self.sim_time += dt
        self._accum += dt
        if self._accum < self.tuning.update_interval:
            return False
        passed = self._accum
        self._accum = 0.0

        for rid in list(self.ledgers):
            if not self.world.is_realm_alive(rid):
                logger.info("realm %s is gone, dropping its ledger", rid)
                self.forget(rid)
                continue
            ledger = self.ledgers[rid]
            self._run(rid, ledger, self._elapsed(ledger, self.tuning.update_interval))
        self.calendar.advance_fraction(
            seconds_to_years(passed, self.world.seconds_per_simulated_year(),
                             self.tuning.default_seconds_per_year))
        self._service_requests()
        return True

    def run(self, seconds: float, frame: float = 0.25) -> None:
        """Drive ``tick`` with fixed frames until ``seconds`` have passed."""
        steps = int(round(seconds / frame)) if frame > 0 else 0
        for _ in range(max(0, steps)):
            self.tick(frame)

    def force_recompute(self, realm_id: int) -> bool:
        ledger = self.get_or_create_ledger(realm_id)
        if ledger is None:
            return False
        self._run(realm_id, ledger, self._elapsed(ledger, 0.0))
        self._service_requests()
        return True

    # ------------------------------ Setters -----------------------------------

    def set_law_level(self, realm_id: int, slot, level) -> bool:
        ledger = self.get_or_create_ledger(realm_id)
        if ledger is None:
            return False
        law_slot = parse_slot(slot)
        if law_slot is None:
            logger.warning("set_law_level: unknown law slot %r", slot)
            return False
        law_level = parse_level(law_slot, level)
        if law_level is None:
            logger.warning("set_law_level: %r is not a level of %s", level, law_slot.value)
            return False
        ledger.laws[law_slot] = law_level
        logger.info("realm %s: %s set to %s", realm_id, law_slot.value, law_level.value)
        self.force_recompute(realm_id)
        return True

    def enact_policy(self, realm_id: int, policy_id: str) -> bool:
        ledger = self.get_or_create_ledger(realm_id)
        if ledger is None:
            return False
        policy = get_policy(policy_id)
        if policy is None:
            logger.warning("enact_policy: unknown policy %r", policy_id)
            return False
        if policy_id in ledger.policies:
            return False
        if ledger.treasury < policy.cost:
            logger.info("realm %s cannot afford %s (%d < %d)",
                        realm_id, policy.name, ledger.treasury, policy.cost)
            return False
        ledger.treasury -= policy.cost
        ledger.policies.add(policy_id)
        logger.info("realm %s enacted %s for %d", realm_id, policy.name, policy.cost)
        self.force_recompute(realm_id)
        return True

    def repeal_policy(self, realm_id: int, policy_id: str) -> bool:
        ledger = self.get_or_create_ledger(realm_id)
        if ledger is None or policy_id not in ledger.policies:
            return False
        ledger.policies.discard(policy_id)
        logger.info("realm %s repealed %s", realm_id, policy_id)
        self.force_recompute(realm_id)
        return True

    def recruit_leader(self, realm_id: int, appointment: LeaderAppointment) -> bool:
        ledger = self.get_or_create_ledger(realm_id)
        if ledger is None:
            return False
        if len(ledger.leaders) >= self.tuning.leader_capacity:
            logger.info("realm %s: leader roster is full", realm_id)
            return False
        if any(l.leader_id == appointment.leader_id for l in ledger.leaders):
            return False
        if appointment.unit_id is not None and not self.world.is_unit_alive(appointment.unit_id):
            return False
        cost = self.tuning.leader_recruit_cost
        if ledger.treasury < cost:
            return False
        ledger.treasury -= cost
        ledger.leaders.append(appointment)
        logger.info("realm %s appointed %s %s", realm_id, appointment.title, appointment.name)
        self.force_recompute(realm_id)
        return True

    def dismiss_leader(self, realm_id: int, leader_id: str) -> bool:
        ledger = self.get_or_create_ledger(realm_id)
        if ledger is None:
            return False
        kept = [l for l in ledger.leaders if l.leader_id != leader_id]
        if len(kept) == len(ledger.leaders):
            return False
        ledger.leaders[:] = kept
        self.force_recompute(realm_id)
        return True

    def add_timed_effect(self, realm_id: int, effect: Union[TimedEffect, str]) -> bool:
        ledger = self.get_or_create_ledger(realm_id)
        if ledger is None:
            return False
        if isinstance(effect, str):
            name = effect
            effect = make_effect(name)
            if effect is None:
                logger.warning("add_timed_effect: unknown effect %r", name)
                return False
        if effect.expired:
            return False
        ledger.effects.append(effect)
        self.force_recompute(realm_id)
        return True

    def add_event_corruption(self, realm_id: int, amount: float) -> bool:
        ledger = self.get_or_create_ledger(realm_id)
        if ledger is None:
            return False
        ledger.event_corruption = max(0.0, ledger.event_corruption + to_float(amount))
        self.force_recompute(realm_id)
        return True

    def adjust_treasury(self, realm_id: int, delta: int) -> bool:
        ledger = self.get_or_create_ledger(realm_id)
        if ledger is None:
            return False
        ledger.treasury += to_int(delta)
        self.force_recompute(realm_id)
        return True

    # ----------------------------- Save/Load ----------------------------------

    def save(self, realm_id: int) -> bool:
        ledger = self.ledgers.get(realm_id)
        if ledger is None or not self.world.is_realm_alive(realm_id):
            return False
        save_ledger(self.store, ledger)
        self.store.flush()
        return True

    def load(self, realm_id: int) -> bool:
        """Restore state from the store; derived values wait for the next pass."""
        ledger = self.get_or_create_ledger(realm_id)
        if ledger is None:
            return False
        load_ledger(self.store, ledger)
        return True

    # ----------------------------- Summary/Save/Load --------------------------

    def summary(self) -> Dict:
        c = self.calendar
        realms: Dict[int, Dict] = {}
        for rid, led in self.ledgers.items():
            realm = self.world.realms.get(rid)
            realms[rid] = {
                "name": realm.name if realm else "?",
                "population": led.census.population,
                "cities": led.city_count,
                "treasury": led.treasury,
                "income": led.income.total,
                "expenses": led.expenses.total,
                "stability": round(led.stability, 2),
                "war_exhaustion": round(led.war_exhaustion, 2),
                "corruption": round(led.corruption, 3),
                "manpower": f"{led.manpower_current}/{led.manpower_max}",
                "anarchy": led.anarchy,
                "policies": sorted(led.policies),
                "leaders": [l.name for l in led.leaders],
                "effects": [e.effect_id for e in led.effects],
            }
        return {
            "date": f"{c.year}-{c.month:02d}-{c.day:02d}",
            "time": round(self.sim_time, 2),
            "realms": realms,
        }

    def save_json(self, path: str) -> None:
        """Save the world, the calendar and every tracked ledger."""
        store = DictStore()
        for ledger in self.ledgers.values():
            save_ledger(store, ledger)
        data = {
            "seed": self.seed,
            "time": self.sim_time,
            "calendar": dict(self.calendar.to_dict(), day_fraction=self.calendar.day_fraction),
            "world": self.world.to_dict(),
            "ledgers": store.data,
        }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def load_json(self, path: str) -> None:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        self.world = World.from_dict(data.get("world") or {})
        cal = data.get("calendar") or {}
        fraction = to_float(cal.get("day_fraction"))
        self.calendar = Calendar(year=to_int(cal.get("year")),
                                 month=min(12, max(1, to_int(cal.get("month"), default=1))),
                                 day=max(1, to_int(cal.get("day"), default=1)),
                                 _day_fraction=fraction if 0.0 <= fraction < 1.0 else 0.0)
        self.sim_time = max(0.0, to_float(data.get("time")))
        seed = data.get("seed")
        self.seed = to_int(seed) if seed is not None else None
        self.rng = np.random.default_rng(self.seed)
        self._accum = 0.0

        raw = data.get("ledgers")
        store = DictStore({str(k): str(v) for k, v in raw.items()} if isinstance(raw, dict) else {})
        self.ledgers = {}
        for rid in saved_realm_ids(store):
            ledger = self.get_or_create_ledger(rid)
            if ledger is not None:
                load_ledger(store, ledger)
