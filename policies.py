"""Static policy catalog.

Policies are toggles: enacting one costs a one-time sum from the treasury,
keeps charging a yearly upkeep while enacted and contributes its bundle to
every recompute.  Repealing is free and refunds nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from modifiers import ModifierBundle as B


@dataclass(frozen=True)
class Policy:
    policy_id: str
    name: str
    description: str
    cost: int
    upkeep: int
    bundle: B


def _policy(name: str, description: str, cost: int, upkeep: int, bundle: B) -> Policy:
    return Policy(name.lower().replace(" ", "_"), name, description, cost, upkeep, bundle)


POLICY_CATALOG: Dict[str, Policy] = {
    p.policy_id: p
    for p in (
        _policy("Vassalage", "Local lords collect taxes in exchange for autonomy.",
                100, 10, B(tax_multiplier=1.10, corruption_delta=0.02)),
        _policy("Mercenary Contracts", "Hired swords swell the ranks at a premium.",
                250, 60, B(manpower_multiplier=1.25, military_upkeep_multiplier=1.20)),
        _policy("Royal Guard", "An elite guard keeps the court and capital in line.",
                500, 80, B(stability_delta=8.0, unrest_reduction=4.0)),
        _policy("Feudal Obligations", "Vassals owe levies in times of need.",
                150, 15, B(manpower_multiplier=1.30, stability_delta=-3.0)),
        _policy("Spy Network", "Informants root out graft and sedition.",
                300, 40, B(corruption_delta=-0.05, unrest_reduction=3.0)),
        _policy("Naval Dominance", "Control of the sea lanes brings in raw goods.",
                400, 70, B(resource_output_multiplier=1.10, military_upkeep_multiplier=1.10)),
        _policy("Fortification Effort", "Walls and keeps slow construction elsewhere.",
                200, 30, B(building_speed_multiplier=0.90, war_exhaustion_gain=-0.05)),
        _policy("Diplomatic Corps", "Envoys soften the burden of long wars.",
                150, 20, B(war_exhaustion_gain=-0.05, stability_delta=2.0)),
        _policy("Legal Reform", "A codified law improves collection and trust.",
                350, 25, B(stability_delta=5.0, tax_multiplier=1.08, corruption_delta=-0.03)),
        _policy("Cultural Assimilation", "Minorities are pressed into the majority culture.",
                250, 20, B(stability_delta=-4.0, population_growth=0.005)),
        _policy("Religious Inquisition", "Zealots enforce orthodoxy at the cost of inquiry.",
                400, 35, B(stability_delta=6.0, research_output_multiplier=0.90,
                           unrest_reduction=-3.0)),
        _policy("Trade Guilds", "Chartered guilds organise crafts and commerce.",
                200, 15, B(factory_output_multiplier=1.15, resource_output_multiplier=1.05,
                           tax_multiplier=0.95)),
    )
}


def get_policy(policy_id: str) -> Optional[Policy]:
    return POLICY_CATALOG.get(policy_id)


def policy_upkeep(policy_ids: Iterable[str]) -> int:
    """Yearly upkeep of the enacted ids; unknown ids cost nothing."""
    total = 0
    for pid in policy_ids:
        policy = POLICY_CATALOG.get(pid)
        if policy is not None:
            total += policy.upkeep
    return total


__all__ = ["Policy", "POLICY_CATALOG", "get_policy", "policy_upkeep"]
