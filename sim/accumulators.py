from __future__ import annotations

"""Smoothing and decay helpers used by the recompute pipeline.

All functions are pure: they take the previous accumulator value plus the
elapsed time and return the next value.  Rates are expressed per simulated
year unless the name says ``per_second``.
"""

import math

from sim.safe_parse import clamp


def move_towards(current: float, target: float, max_delta: float) -> float:
    """Step ``current`` toward ``target`` by at most ``max_delta``."""
    if max_delta <= 0:
        return current
    if abs(target - current) <= max_delta:
        return target
    return current + math.copysign(max_delta, target - current)


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def safe_round(value: float) -> int:
    """Round half to even like the builtin; non-finite values become 0."""
    if not math.isfinite(value):
        return 0
    return int(round(value))


def economy_scale(population: int, floor: float = 0.2, log_span: float = 4.0) -> float:
    """Logarithmic economy scale, ``floor`` for one member up to 1.0 at 10**log_span."""
    if population <= 0:
        return 0.0
    t = clamp(math.log10(population) / log_span, 0.0, 1.0)
    return lerp(floor, 1.0, t)


def smooth_stability(current: float, target: float, elapsed: float,
                     tau: float, max_rate: float) -> float:
    """Single-pole approach of ``current`` toward ``target``.

    The step is ``(target - current) * (1 - exp(-elapsed / tau))`` and its
    magnitude never exceeds ``max_rate * elapsed``.
    """
    if elapsed <= 0:
        return current
    if tau <= 0:
        step = target - current
    else:
        step = (target - current) * (1.0 - math.exp(-elapsed / tau))
    limit = max_rate * elapsed
    return current + clamp(step, -limit, limit)


def step_war_exhaustion(current: float, at_war: bool, years: float, *,
                        gain_per_year: float, gain_multiplier: float,
                        recovery_per_year: float, ceiling: float = 100.0) -> float:
    """Drift toward ``ceiling`` while at war, toward zero in peace."""
    if at_war:
        rate = gain_per_year * max(0.0, gain_multiplier)
        nxt = move_towards(current, ceiling, rate * years)
    else:
        nxt = move_towards(current, 0.0, recovery_per_year * years)
    return clamp(nxt, 0.0, ceiling)


def step_war_overhead(current: float, war_exhaustion: float, years: float, *,
                      threshold: float, rise_per_year: float, decay_per_year: float) -> float:
    """Raise the overhead accumulator while exhaustion exceeds ``threshold``."""
    if war_exhaustion > threshold:
        nxt = current + rise_per_year * years
    else:
        nxt = current - decay_per_year * years
    return clamp(nxt, 0.0, 100.0)


def decay_event_corruption(value: float, years: float, rate_per_year: float) -> float:
    """Exponential decay; tiny remainders snap to zero."""
    if value <= 0 or years <= 0:
        return max(0.0, value)
    nxt = value * math.exp(-rate_per_year * years)
    return nxt if nxt > 1e-6 else 0.0


def compute_corruption(*, cities: int, event_corruption: float, estimated_tax: float,
                       bundle_delta: float, anarchy: bool, per_extra_city: float,
                       tax_pressure_divisor: float, anarchy_multiplier: float) -> float:
    """Corruption level in ``[0, 1]``."""
    base = per_extra_city * max(0, cities - 1)
    pressure = max(0.0, estimated_tax) / tax_pressure_divisor if tax_pressure_divisor > 0 else 0.0
    level = clamp(base + max(0.0, event_corruption) + pressure + bundle_delta, 0.0, 1.0)
    if anarchy:
        level = clamp(level * anarchy_multiplier, 0.0, 1.0)
    return level


def manpower_cap(adults: int, soldiers: int, cities: int, *, eligible_share: float,
                 multiplier: float, per_city: float, flat_per_city: float) -> int:
    eligible = max(0, adults - soldiers)
    return max(0, safe_round(eligible * eligible_share * multiplier)
               + safe_round(cities * (per_city + flat_per_city)))


def regen_manpower(current: int, accumulator: float, cap: int, elapsed: float,
                   rate_per_minute: float):
    """Return ``(current, accumulator)`` after regenerating toward ``cap``.

    Fractional regeneration is carried in the accumulator until at least one
    whole unit can be credited.
    """
    if current >= cap:
        return min(current, cap), 0.0
    accumulator += cap * max(0.0, rate_per_minute) * (max(0.0, elapsed) / 60.0)
    if accumulator >= 1.0:
        whole = int(accumulator)
        accumulator -= whole
        current += whole
    if current >= cap:
        return cap, 0.0
    return current, accumulator
