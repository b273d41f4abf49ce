"""Leader appointments.

A realm keeps a short roster of appointed leaders.  Each appointment carries
a :class:`ModifierBundle` and may be linked to a unit owned by the world;
the link is stored as a plain id and checked through a liveness callback so
a leader whose unit has died drops out before the next modifier pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional
import logging
import uuid

import numpy as np

from modifiers import IDENTITY, ModifierBundle, combine_all
from sim.safe_parse import to_int

logger = logging.getLogger(__name__)

LEADER_CAPACITY = 3

TITLES = (
    "High Marshall", "Royal Advisor", "Grand Treasurer", "Spymaster",
    "Chief Justice", "Head of Research", "Fleet Admiral", "High Priest",
    "Minister of Defense", "Governor", "Diplomat", "Reformer",
    "Corrupt Official", "Tyrant", "Usurper", "Fanatic", "Visionary",
)

TRAIT_EFFECTS: Dict[str, ModifierBundle] = {
    "greedy": ModifierBundle(tax_multiplier=1.10, corruption_delta=0.05),
    "honest": ModifierBundle(corruption_delta=-0.05),
    "genius": ModifierBundle(research_output_multiplier=1.30),
    "stupid": ModifierBundle(research_output_multiplier=0.85),
    "tough": ModifierBundle(stability_delta=5.0),
    "paranoid": ModifierBundle(stability_delta=-5.0, unrest_reduction=5.0),
    "pacifist": ModifierBundle(stability_delta=5.0, war_exhaustion_gain=-0.05),
    "bloodlust": ModifierBundle(stability_delta=-5.0, manpower_multiplier=1.10),
    "ambitious": ModifierBundle(corruption_delta=0.02, tax_multiplier=1.05),
    "content": ModifierBundle(stability_delta=5.0),
    "strong": ModifierBundle(military_upkeep_multiplier=0.95),
    "weak": ModifierBundle(military_upkeep_multiplier=1.05),
}

# (channel, low, high) picked uniformly when rolling a random trait.
_VARIANCE = (
    ("stability_delta", 2.0, 5.0),
    ("unrest_reduction", 1.0, 3.0),
    ("manpower_multiplier", 0.05, 0.15),
    ("research_output_multiplier", 0.05, 0.15),
    ("tax_multiplier", 0.05, 0.10),
    ("corruption_delta", 0.05, 0.10),
)


@dataclass
class LeaderAppointment:
    leader_id: str
    name: str
    title: str = "Royal Advisor"
    bundle: ModifierBundle = IDENTITY
    unit_id: Optional[int] = None
    level: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.leader_id,
            "name": self.name,
            "title": self.title,
            "bundle": self.bundle.to_dict(),
            "unit": self.unit_id,
            "level": self.level,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["LeaderAppointment"]:
        """Rebuild an appointment; entries without an id are rejected."""
        if not isinstance(data, dict) or not data.get("id"):
            logger.warning("LeaderAppointment: dropping malformed entry %r", data)
            return None
        unit = data.get("unit")
        return cls(
            leader_id=str(data["id"]),
            name=str(data.get("name", "Unknown")),
            title=str(data.get("title", "Royal Advisor")),
            bundle=ModifierBundle.from_dict(data.get("bundle")),
            unit_id=to_int(unit) if unit is not None else None,
            level=max(1, to_int(data.get("level"), default=1)),
        )


def _roll_variance(rng: np.random.Generator, malus: bool) -> ModifierBundle:
    channel, lo, hi = _VARIANCE[int(rng.integers(len(_VARIANCE)))]
    amount = float(rng.uniform(lo, hi))
    if channel == "corruption_delta":
        # a malus raises corruption, a bonus lowers it
        return ModifierBundle(**{channel: amount if malus else -amount})
    sign = -1.0 if malus else 1.0
    if channel.endswith("_multiplier"):
        return ModifierBundle(**{channel: 1.0 + sign * amount})
    return ModifierBundle(**{channel: sign * amount})


def leader_from_traits(
    name: str,
    traits: Iterable[str] = (),
    *,
    unit_id: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    leader_id: Optional[str] = None,
    title: Optional[str] = None,
) -> LeaderAppointment:
    """Build an appointment from a unit's trait flags.

    When ``rng`` is given one or two random traits are rolled on top, each
    with a 30% chance of being a malus, and a random title is drawn.
    """
    bundles = [TRAIT_EFFECTS[t] for t in sorted(set(traits)) if t in TRAIT_EFFECTS]
    if rng is not None:
        for _ in range(int(rng.integers(1, 3))):
            bundles.append(_roll_variance(rng, malus=bool(rng.random() < 0.3)))
        if title is None:
            title = TITLES[int(rng.integers(len(TITLES)))]
        if leader_id is None:
            leader_id = "%016x" % int(rng.integers(0, 2**63))
    return LeaderAppointment(
        leader_id=leader_id or uuid.uuid4().hex,
        name=name,
        title=title or "Royal Advisor",
        bundle=combine_all(bundles),
        unit_id=unit_id,
    )


def prune_dead_leaders(
    roster: List[LeaderAppointment], is_alive: Callable[[int], bool]
) -> List[LeaderAppointment]:
    """Remove unit-linked leaders whose unit is gone; return the removed ones."""
    dead = [l for l in roster if l.unit_id is not None and not is_alive(l.unit_id)]
    if dead:
        roster[:] = [l for l in roster if l not in dead]
    return dead


__all__ = [
    "LEADER_CAPACITY",
    "TITLES",
    "TRAIT_EFFECTS",
    "LeaderAppointment",
    "leader_from_traits",
    "prune_dead_leaders",
]
