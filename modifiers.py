"""Modifier bundles and tunable balance values.

A :class:`ModifierBundle` is what every law level, policy, leader and timed
effect resolves to.  Bundles are immutable; the recompute pipeline folds them
together starting from :data:`IDENTITY`.  Each channel declares how it
combines: multiplicative channels multiply, additive channels add.

:class:`RealmTuning` is the central store for balance constants consumed by
the pipeline.  ``load_tuning`` overlays values from ``balance/realm.json``
when that file exists, which keeps the hard coded defaults intact otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple
import json
import logging
import os

from sim.safe_parse import to_float, to_int

logger = logging.getLogger(__name__)

MUL = "mul"
ADD = "add"


def _mul() -> Any:
    return field(default=1.0, metadata={"combine": MUL})


def _add() -> Any:
    return field(default=0.0, metadata={"combine": ADD})


@dataclass(frozen=True)
class ModifierBundle:
    """Named deltas and multipliers applied during a recompute."""

    # economy
    tax_multiplier: float = _mul()
    upkeep_pct: float = _add()
    military_upkeep_multiplier: float = _mul()
    factory_output_multiplier: float = _mul()
    resource_output_multiplier: float = _mul()
    building_speed_multiplier: float = _mul()
    city_wealth_cap_delta: float = _add()
    # politics
    stability_delta: float = _add()
    unrest_reduction: float = _add()
    corruption_delta: float = _add()
    war_exhaustion_gain: float = _add()
    # military
    manpower_multiplier: float = _mul()
    manpower_regen_multiplier: float = _mul()
    flat_manpower_per_city: float = _add()
    # society
    population_growth: float = _add()
    plague_resistance: float = _add()
    genius_chance: float = _add()
    research_output_multiplier: float = _mul()
    tech_speed_multiplier: float = _mul()

    def combine(self, other: "ModifierBundle") -> "ModifierBundle":
        """Return the bundle equivalent to applying ``self`` then ``other``."""
        values = {}
        for f in fields(self):
            a = getattr(self, f.name)
            b = getattr(other, f.name)
            values[f.name] = a * b if f.metadata["combine"] == MUL else a + b
        return ModifierBundle(**values)

    def is_identity(self) -> bool:
        return not self.to_dict()

    def to_dict(self) -> Dict[str, float]:
        """Return only the channels that differ from their identity value."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) != f.default
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ModifierBundle":
        """Build a bundle from ``to_dict`` output.

        Unknown channels are dropped with a warning and malformed numbers
        fall back to the channel's identity value.
        """
        if not data:
            return IDENTITY
        defaults = {f.name: f.default for f in fields(cls)}
        values: Dict[str, float] = {}
        for key, raw in data.items():
            if key not in defaults:
                logger.warning("ModifierBundle: ignoring unknown channel %r", key)
                continue
            values[key] = to_float(raw, default=defaults[key])
        return cls(**values)


IDENTITY = ModifierBundle()


def combine_all(bundles: Iterable[ModifierBundle]) -> ModifierBundle:
    """Fold ``bundles`` in order, starting from :data:`IDENTITY`."""
    total = IDENTITY
    for bundle in bundles:
        total = total.combine(bundle)
    return total


# ---------------------------------------------------------------------------
# Balance constants
# ---------------------------------------------------------------------------

TRACKED_RESOURCES: Tuple[str, ...] = (
    "wood", "stone", "gold", "wheat", "bread", "meat", "fish", "berries",
    "herbs", "common_metals", "mithril", "adamantine", "pie", "tea", "cider",
)


@dataclass(frozen=True)
class RealmTuning:
    """Tweakable simulation parameters.

    All money values are yearly rates; all ``*_per_second`` values are real
    seconds.  Percentages are expressed as ``0..100``.
    """

    # Cadence
    update_interval: float = 0.25
    settlement_window_seconds: float = 5.0
    months_per_year: int = 12
    default_seconds_per_year: float = 60.0
    effect_decay_factor: float = 0.1

    # Income
    base_tax_rate: float = 0.05
    per_capita_gdp: float = 15.0
    max_we_tax_penalty_pct: float = 40.0
    max_stab_tax_bonus_pct: float = 10.0
    city_wealth_bonus_per_city_pct: float = 3.0
    city_wealth_bonus_cap_pct: float = 30.0
    economy_scale_floor: float = 0.2
    economy_scale_log_span: float = 4.0

    # Expenses
    military_cost_per_soldier: float = 10.0
    cost_per_city: float = 5.0
    cost_per_building: float = 2.0
    infrastructure_scale_per_city: float = 0.02
    child_cost: float = 0.1
    elder_cost: float = 0.3
    veteran_cost: float = 0.5
    max_war_overhead_pct: float = 25.0
    war_overhead_threshold: float = 5.0
    war_overhead_rise_per_year: float = 20.0
    war_overhead_decay_per_year: float = 10.0
    law_upkeep_fallback_per_capita: float = 20.0

    # Corruption
    corruption_per_extra_city: float = 0.01
    tax_pressure_divisor: float = 10000.0
    event_corruption_decay_per_year: float = 0.5

    # Anarchy
    anarchy_corruption_multiplier: float = 3.0
    anarchy_income_multiplier: float = 0.5
    anarchy_expense_multiplier: float = 3.0
    anarchy_attrition_per_second: float = 0.002

    # Manpower
    manpower_eligible_share: float = 0.5
    manpower_per_city: int = 10
    manpower_regen_rate: float = 0.015  # share of max per minute

    # War exhaustion
    war_exhaustion_ceiling: float = 100.0
    war_exhaustion_gain_per_year: float = 10.0
    war_exhaustion_recovery_per_year: float = 5.0

    # Stability
    stability_base: float = 50.0
    stability_start: float = 50.0
    corruption_stability_penalty: float = 40.0
    war_exhaustion_stability_penalty: float = 20.0
    happiness_stability_weight: float = 20.0
    misery_stability_weight: float = 40.0
    deficit_stability_penalty: float = 5.0
    surplus_stability_bonus: float = 2.0
    stability_time_constant: float = 20.0
    stability_max_rate_per_second: float = 0.5

    # Plague
    plague_min_population: int = 30
    plague_base_risk: float = 10.0
    plague_risk_per_city: float = 2.0
    plague_risk_per_thousand_pop_per_year: float = 5.0
    plague_risk_per_city_per_year: float = 1.0
    plague_base_resistance: float = 100.0
    plague_resistance_decay_per_year: float = 4.0
    plague_infection_chance: float = 0.1

    # Leaders
    leader_capacity: int = 3
    leader_recruit_cost: int = 0

    # Population trend
    population_sample_seconds: float = 20.0

    tracked_resources: Tuple[str, ...] = TRACKED_RESOURCES


DEFAULT_TUNING = RealmTuning()


def _balance_path(default_path: Optional[str] = None) -> str:
    if default_path is not None:
        return default_path
    return os.path.join(os.path.dirname(__file__), "balance", "realm.json")


def load_tuning(path: Optional[str] = None, base: RealmTuning = DEFAULT_TUNING) -> RealmTuning:
    """Return ``base`` overlaid with values from a JSON balance file.

    Missing files leave ``base`` untouched.  Unknown keys and values that do
    not coerce to the field's type are skipped with a warning.
    """
    fn = _balance_path(path)
    try:
        with open(fn, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return base
    except ValueError:
        logger.warning("load_tuning: %s is not valid JSON, using defaults", fn)
        return base
    if not isinstance(data, dict):
        logger.warning("load_tuning: %s must hold an object", fn)
        return base

    current = {f.name: getattr(base, f.name) for f in fields(base)}
    updates: Dict[str, Any] = {}
    for key, raw in data.items():
        if key not in current:
            logger.warning("load_tuning: unknown setting %r", key)
            continue
        old = current[key]
        if isinstance(old, tuple):
            if isinstance(raw, list) and all(isinstance(v, str) for v in raw):
                updates[key] = tuple(raw)
            else:
                logger.warning("load_tuning: %r must be a list of names", key)
        elif isinstance(old, int):
            updates[key] = to_int(raw, default=old)
        else:
            updates[key] = to_float(raw, default=old)
    return replace(base, **updates)


__all__ = [
    "ModifierBundle",
    "IDENTITY",
    "combine_all",
    "RealmTuning",
    "DEFAULT_TUNING",
    "TRACKED_RESOURCES",
    "load_tuning",
]
