"""Timed effects raised by events.

A timed effect holds a bundle for a limited duration.  Durations count down
at one tenth of the raw elapsed time, so a 60 second effect lasts ten real
minutes.  An effect may also push stability up or down by a fixed amount
per second while it is active.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
import logging

from modifiers import IDENTITY, ModifierBundle as B
from sim.safe_parse import to_float

logger = logging.getLogger(__name__)

DECAY_FACTOR = 0.1
_EXPIRED = 1e-9


@dataclass
class TimedEffect:
    effect_id: str
    remaining: float
    bundle: B = IDENTITY
    stability_per_second: float = 0.0

    @property
    def expired(self) -> bool:
        return self.remaining <= _EXPIRED

    def advance(self, decay: float) -> bool:
        """Count down by ``decay`` seconds; return ``True`` once expired."""
        if decay > 0:
            self.remaining = max(0.0, self.remaining - decay)
        return self.expired

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.effect_id,
            "remaining": self.remaining,
            "bundle": self.bundle.to_dict(),
            "stability_per_second": self.stability_per_second,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["TimedEffect"]:
        if not isinstance(data, dict) or not data.get("id"):
            logger.warning("TimedEffect: dropping malformed entry %r", data)
            return None
        remaining = to_float(data.get("remaining"), default=0.0)
        if remaining <= _EXPIRED:
            return None
        return cls(
            effect_id=str(data["id"]),
            remaining=remaining,
            bundle=B.from_dict(data.get("bundle")),
            stability_per_second=to_float(data.get("stability_per_second"), default=0.0),
        )


# id -> (duration, stability per second, bundle)
EVENT_EFFECTS: Dict[str, Tuple[float, float, B]] = {
    "econ_boom": (60.0, 0.5, B(tax_multiplier=1.10)),
    "econ_hyperinflation": (120.0, -0.2, B(tax_multiplier=0.80)),
    "econ_imf": (120.0, -0.5, B(factory_output_multiplier=0.80, resource_output_multiplier=0.90)),
    "unrest_strikers": (60.0, -0.2, B(factory_output_multiplier=0.90)),
    "insurgency_start": (300.0, -0.1, B(unrest_reduction=-5.0)),
    "event_corruption_small": (300.0, 0.0, B(corruption_delta=0.05)),
    "event_corruption_medium": (300.0, 0.0, B(corruption_delta=0.10)),
    "event_corruption_large": (300.0, 0.0, B(corruption_delta=0.20)),
    "event_corruption_reduction_small": (300.0, 0.0, B(corruption_delta=-0.05)),
    "event_corruption_reduction_medium": (300.0, 0.0, B(corruption_delta=-0.10)),
    "national_monument": (99999.0, 0.0, B(stability_delta=5.0)),
    "chronic_desertions": (120.0, -0.1, B(manpower_multiplier=0.90)),
    "skills_shortage": (180.0, 0.0, B(research_output_multiplier=0.85,
                                      building_speed_multiplier=0.90)),
    "substandard_weapons": (120.0, 0.0, B(military_upkeep_multiplier=1.10)),
    "powerful_mic": (120.0, 0.0, B(military_upkeep_multiplier=1.20, war_exhaustion_gain=-0.05)),
    "rolling_blackouts": (120.0, -0.1, B(factory_output_multiplier=0.70)),
    "popular_war_support": (120.0, 0.0, B(war_exhaustion_gain=-0.10)),
}


def make_effect(effect_id: str, duration: Optional[float] = None) -> Optional[TimedEffect]:
    """Instantiate a catalogued event effect, or ``None`` if unknown."""
    entry = EVENT_EFFECTS.get(effect_id)
    if entry is None:
        return None
    base_duration, drift, bundle = entry
    return TimedEffect(
        effect_id=effect_id,
        remaining=base_duration if duration is None else duration,
        bundle=bundle,
        stability_per_second=drift,
    )


__all__ = ["DECAY_FACTOR", "TimedEffect", "EVENT_EFFECTS", "make_effect"]
