"""
Save and restore ledger state through a flat string key-value store.

Only state is written: settings and accumulators.  Derived outputs are
rebuilt by the next recompute.  Every key lives under ``realmsim.<id>.``
and every value is a string, so any store that maps strings to strings can
back a save:

    store = JsonFileStore("realms.json")
    save_ledger(store, ledger)
    store.flush()

Loading never fails.  Missing keys take their documented default and
malformed values are logged and replaced by that default.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set
import json
import logging
import os

from effects import TimedEffect
from laws import DEFAULT_LEVELS, LawSlot, parse_level
from leaders import LEADER_CAPACITY, LeaderAppointment
from policies import POLICY_CATALOG

from .ledger import Ledger
from .safe_parse import clamp, to_float, to_int, to_json_list, to_str_list

logger = logging.getLogger(__name__)

PREFIX = "realmsim"
POLICY_SEP = ";"


def realm_prefix(realm_id) -> str:
    return f"{PREFIX}.{realm_id}."


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


class KeyValueStore:
    """Minimal string store interface."""

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def keys(self) -> Iterable[str]:
        raise NotImplementedError

    def flush(self) -> None:
        """Persist pending writes; in-memory stores have nothing to do."""

    def to_dict(self) -> Dict[str, str]:
        return {k: self.get(k) for k in self.keys()}


class DictStore(KeyValueStore):
    def __init__(self, data: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(data or {})

    def get(self, key, default=None):
        return self.data.get(key, default)

    def set(self, key, value):
        self.data[key] = str(value)

    def keys(self):
        return list(self.data)


class JsonFileStore(DictStore):
    """A :class:`DictStore` mirrored to a flat JSON object on disk."""

    def __init__(self, path: str) -> None:
        super().__init__()
        self.path = path
        if os.path.exists(path):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    raw = json.load(f)
            except ValueError:
                logger.warning("JsonFileStore: %s is not valid JSON, starting empty", path)
                raw = {}
            if isinstance(raw, dict):
                self.data = {str(k): str(v) for k, v in raw.items()}
            else:
                logger.warning("JsonFileStore: %s must hold an object", path)

    def flush(self) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self.data, f, indent=2, sort_keys=True)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


@dataclass
class LedgerSnapshot:
    """Serializable state of a ledger."""

    treasury: int = 0
    laws: Dict[LawSlot, Enum] = field(default_factory=lambda: dict(DEFAULT_LEVELS))
    policies: Set[str] = field(default_factory=set)
    leaders: List[LeaderAppointment] = field(default_factory=list)
    effects: List[TimedEffect] = field(default_factory=list)
    stability: float = 50.0
    war_exhaustion: float = 0.0
    corruption: float = 0.0
    manpower_current: int = 0
    manpower_accumulator: float = 0.0
    settlement_timer: float = 0.0
    event_corruption: float = 0.0
    war_overhead: float = 0.0
    plague_risk: float = 0.0
    plague_resistance_decay: float = 0.0
    pop_sample: int = 0
    pop_sample_seconds: float = 0.0
    pop_trend: float = 0.0

    _FLOATS = (
        "stability", "war_exhaustion", "corruption", "manpower_accumulator",
        "settlement_timer", "event_corruption", "war_overhead", "plague_risk",
        "plague_resistance_decay", "pop_sample_seconds", "pop_trend",
    )

    @classmethod
    def from_ledger(cls, ledger: Ledger) -> "LedgerSnapshot":
        return cls(
            treasury=ledger.treasury,
            laws=dict(ledger.laws),
            policies=set(ledger.policies),
            leaders=list(ledger.leaders),
            effects=list(ledger.effects),
            stability=ledger.stability,
            war_exhaustion=ledger.war_exhaustion,
            corruption=ledger.corruption,
            manpower_current=ledger.manpower_current,
            manpower_accumulator=ledger.manpower_accumulator,
            settlement_timer=ledger.settlement_timer,
            event_corruption=ledger.event_corruption,
            war_overhead=ledger.war_overhead,
            plague_risk=ledger.plague_risk,
            plague_resistance_decay=ledger.plague_resistance_decay,
            pop_sample=ledger.pop_sample,
            pop_sample_seconds=ledger.pop_sample_seconds,
            pop_trend=ledger.pop_trend,
        )

    def apply_to(self, ledger: Ledger) -> None:
        ledger.treasury = self.treasury
        ledger.laws = dict(self.laws)
        ledger.policies = set(self.policies)
        ledger.leaders = list(self.leaders)
        ledger.effects = list(self.effects)
        ledger.manpower_current = self.manpower_current
        ledger.pop_sample = self.pop_sample
        for name in self._FLOATS:
            setattr(ledger, name, getattr(self, name))
        ledger.last_update = None

    def to_items(self) -> Dict[str, str]:
        """Flatten to ``key -> text`` without the realm prefix."""
        items = {
            "treasury": str(self.treasury),
            "manpower_current": str(self.manpower_current),
            "pop_sample": str(self.pop_sample),
            "policies": POLICY_SEP.join(sorted(self.policies)),
            "leaders": json.dumps([l.to_dict() for l in self.leaders]),
            "effects": json.dumps([e.to_dict() for e in self.effects]),
        }
        for name in self._FLOATS:
            items[name] = repr(float(getattr(self, name)))
        for slot in LawSlot:
            items[f"law.{slot.value}"] = self.laws.get(slot, DEFAULT_LEVELS[slot]).name
        return items

    @classmethod
    def from_items(cls, items: Dict[str, Optional[str]]) -> "LedgerSnapshot":
        """Inverse of :meth:`to_items`; tolerant of partial or damaged saves."""
        snap = cls()
        snap.treasury = to_int(items.get("treasury"), default=0)
        snap.manpower_current = max(0, to_int(items.get("manpower_current"), default=0))
        snap.pop_sample = max(0, to_int(items.get("pop_sample"), default=0))
        for name in cls._FLOATS:
            setattr(snap, name, to_float(items.get(name), default=getattr(snap, name)))
        snap.corruption = clamp(snap.corruption, 0.0, 1.0)
        snap.war_exhaustion = clamp(snap.war_exhaustion, 0.0, 100.0)
        snap.war_overhead = clamp(snap.war_overhead, 0.0, 100.0)
        snap.manpower_accumulator = clamp(snap.manpower_accumulator, 0.0, 1.0)
        snap.event_corruption = max(0.0, snap.event_corruption)
        snap.pop_sample_seconds = max(0.0, snap.pop_sample_seconds)

        for slot in LawSlot:
            raw = items.get(f"law.{slot.value}")
            if raw is None:
                continue
            level = parse_level(slot, raw)
            if level is None:
                logger.warning("load: unknown %s level %r, using %s",
                               slot.value, raw, DEFAULT_LEVELS[slot].name)
                continue
            snap.laws[slot] = level

        for pid in to_str_list(items.get("policies"), sep=POLICY_SEP):
            if pid in POLICY_CATALOG:
                snap.policies.add(pid)
            else:
                logger.warning("load: dropping unknown policy %r", pid)

        for entry in to_json_list(items.get("leaders")):
            leader = LeaderAppointment.from_dict(entry)
            if leader is None:
                continue
            if any(l.leader_id == leader.leader_id for l in snap.leaders):
                logger.warning("load: duplicate leader %r ignored", leader.leader_id)
                continue
            if len(snap.leaders) >= LEADER_CAPACITY:
                logger.warning("load: leader roster over capacity, dropping %r", leader.leader_id)
                continue
            snap.leaders.append(leader)

        for entry in to_json_list(items.get("effects")):
            effect = TimedEffect.from_dict(entry)
            if effect is not None:
                snap.effects.append(effect)
        return snap


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


def save_ledger(store: KeyValueStore, ledger: Ledger) -> None:
    prefix = realm_prefix(ledger.realm_id)
    for key, value in LedgerSnapshot.from_ledger(ledger).to_items().items():
        store.set(prefix + key, value)


def load_ledger(store: KeyValueStore, ledger: Ledger) -> LedgerSnapshot:
    """Overwrite the state of ``ledger`` from ``store`` and return the snapshot used."""
    prefix = realm_prefix(ledger.realm_id)
    items = {k[len(prefix):]: store.get(k) for k in store.keys() if k.startswith(prefix)}
    snap = LedgerSnapshot.from_items(items)
    snap.apply_to(ledger)
    return snap


def saved_realm_ids(store: KeyValueStore) -> List[int]:
    """Realm ids that have at least one key in ``store``."""
    ids = set()
    head = PREFIX + "."
    for key in store.keys():
        if not key.startswith(head):
            continue
        rid = key[len(head):].split(".", 1)[0]
        if rid.lstrip("-").isdigit():
            ids.add(int(rid))
    return sorted(ids)
