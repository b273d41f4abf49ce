from __future__ import annotations

"""Per-realm ledger: settings, accumulators and derived outputs."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from census import PopulationCensus
from effects import TimedEffect
from laws import LawSlot, default_laws
from leaders import LeaderAppointment
from modifiers import IDENTITY, ModifierBundle


@dataclass
class IncomeBreakdown:
    """Each stage of the income chain, in yearly money."""

    tax_rate: float = 0.0
    tax_base_wealth: float = 0.0
    fallback_gdp: bool = False
    before_modifiers: float = 0.0
    after_war_penalty: float = 0.0
    after_stability: float = 0.0
    after_city_bonus: float = 0.0
    economy_scale: float = 0.0
    trade_income: int = 0
    total: int = 0


@dataclass
class ExpenseBreakdown:
    """Each expense line, in yearly money."""

    military: float = 0.0
    infrastructure: float = 0.0
    demography: float = 0.0
    war_overhead: float = 0.0
    law_upkeep: float = 0.0
    policy_upkeep: float = 0.0
    trade: int = 0
    corruption: float = 0.0
    total: int = 0


@dataclass
class Ledger:
    """Mutable simulation record of one realm.

    Settings change only through the engine's setters; derived outputs
    change only inside :func:`sim.recompute.recompute`.
    """

    realm_id: int

    # --- settings ---
    laws: Dict[LawSlot, Enum] = field(default_factory=default_laws)
    policies: Set[str] = field(default_factory=set)
    leaders: List[LeaderAppointment] = field(default_factory=list)
    effects: List[TimedEffect] = field(default_factory=list)

    # --- accumulators ---
    treasury: int = 0
    settlement_timer: float = 0.0
    manpower_current: int = 0
    manpower_accumulator: float = 0.0
    event_corruption: float = 0.0
    war_overhead: float = 0.0
    plague_risk: float = 0.0
    plague_resistance_decay: float = 0.0
    last_update: Optional[float] = None
    stability: float = 50.0
    war_exhaustion: float = 0.0
    corruption: float = 0.0
    pop_sample: int = 0
    pop_sample_seconds: float = 0.0
    pop_trend: float = 0.0

    # --- derived outputs ---
    tax_rate: float = 0.0
    income: IncomeBreakdown = field(default_factory=IncomeBreakdown)
    expenses: ExpenseBreakdown = field(default_factory=ExpenseBreakdown)
    stability_change: float = 0.0
    war_exhaustion_change: float = 0.0
    manpower_max: int = 0
    census: PopulationCensus = field(default_factory=PopulationCensus)
    city_count: int = 0
    building_count: int = 0
    resource_stockpiles: Dict[str, int] = field(default_factory=dict)
    resource_rates: Dict[str, int] = field(default_factory=dict)
    modifiers: ModifierBundle = IDENTITY
    anarchy: bool = False
    at_war: bool = False
    avg_growth_rate: float = 0.0
    internal_tension: float = 0.0
    public_order: float = 0.0
    war_pressure: float = 0.0
    balance_index: float = 0.0
    recompute_requested: bool = False

    @property
    def balance(self) -> int:
        """Yearly income minus expenses."""
        return self.income.total - self.expenses.total

    def has_policy(self, policy_id: str) -> bool:
        return policy_id in self.policies

    def derived_snapshot(self) -> Dict[str, Any]:
        """Return every derived output as plain data, for comparisons and summaries."""
        return {
            "tax_rate": self.tax_rate,
            "income": asdict(self.income),
            "expenses": asdict(self.expenses),
            "stability": self.stability,
            "stability_change": self.stability_change,
            "war_exhaustion": self.war_exhaustion,
            "war_exhaustion_change": self.war_exhaustion_change,
            "corruption": self.corruption,
            "manpower": self.manpower_current,
            "manpower_max": self.manpower_max,
            "census": asdict(self.census),
            "cities": self.city_count,
            "buildings": self.building_count,
            "resource_stockpiles": dict(self.resource_stockpiles),
            "resource_rates": dict(self.resource_rates),
            "modifiers": self.modifiers.to_dict(),
            "anarchy": self.anarchy,
            "at_war": self.at_war,
            "avg_growth_rate": self.avg_growth_rate,
            "internal_tension": self.internal_tension,
            "public_order": self.public_order,
            "war_pressure": self.war_pressure,
            "balance_index": self.balance_index,
        }
