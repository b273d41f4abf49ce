from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from census import CENSUS_SYSTEM, PopulationCensus
from laws import DEFAULT_LEVELS, LawSlot, SpendingLevel, law_bundle
from leaders import prune_dead_leaders
from modifiers import DEFAULT_TUNING, ModifierBundle, RealmTuning, combine_all
from policies import get_policy, policy_upkeep
from time_model import seconds_to_years

from .accumulators import (
    compute_corruption, decay_event_corruption, economy_scale, manpower_cap,
    regen_manpower, safe_round, smooth_stability, step_war_exhaustion,
    step_war_overhead,
)
from .ledger import ExpenseBreakdown, IncomeBreakdown, Ledger
from .safe_parse import clamp, to_int

logger = logging.getLogger(__name__)

CURING_WELFARE = (SpendingLevel.HIGH, SpendingLevel.MAXIMUM)


def recompute(
    realm,
    ledger: Optional[Ledger],
    elapsed_seconds: float,
    *,
    world,
    tuning: Optional[RealmTuning] = None,
    rng: Optional[np.random.Generator] = None,
) -> None:
    """Derive every output of ``ledger`` from its settings and ``elapsed_seconds``.

    Parameters
    ----------
    realm : Realm
        The governed entity.  Its ``members``, ``cities`` and ``buildings``
        are read; members may be mutated by the plague and attrition steps.
    ledger : Ledger
        Updated in place.
    elapsed_seconds : float
        Real seconds since the previous pass.  Zero makes the pass a pure
        refresh of derived values.
    world : object
        Collaborator providing trade totals, war status, the time scale,
        unit liveness, notifications and member removal.
    tuning : RealmTuning, optional
        Balance constants, :data:`modifiers.DEFAULT_TUNING` when ``None``.
    rng : numpy.random.Generator, optional
        Source for the plague and attrition rolls.

    A missing realm or ledger, a dead realm or a realm without live members
    makes the call a no-op.
    """
    if realm is None or ledger is None or not getattr(realm, "alive", True):
        return
    members = list(getattr(realm, "members", None) or ())
    if not members:
        return

    t = tuning or DEFAULT_TUNING
    if rng is None:
        rng = np.random.default_rng()
    try:
        elapsed = float(elapsed_seconds)
    except (TypeError, ValueError):
        elapsed = 0.0
    if not math.isfinite(elapsed) or elapsed < 0:
        elapsed = 0.0
    realm_id = ledger.realm_id

    # --- 1) census ----------------------------------------------------------
    census = CENSUS_SYSTEM.take_census(members)
    if census.population == 0:
        return
    cities = [c for c in (getattr(realm, "cities", None) or ()) if getattr(c, "alive", False)]
    buildings = max(0, to_int(getattr(realm, "buildings", 0)))
    ledger.census = census
    ledger.city_count = len(cities)
    ledger.building_count = buildings

    # --- 2) simulated time --------------------------------------------------
    years = seconds_to_years(elapsed, world.seconds_per_simulated_year(),
                             t.default_seconds_per_year)

    # --- 3/4) modifiers -----------------------------------------------------
    anarchy = ledger.stability <= 0
    ledger.anarchy = anarchy
    bundle = compose_modifiers(ledger, elapsed, world=world, tuning=t)
    ledger.modifiers = bundle

    # --- 5) corruption ------------------------------------------------------
    ledger.event_corruption = decay_event_corruption(
        ledger.event_corruption, years, t.event_corruption_decay_per_year)
    tax_rate = effective_tax_rate(bundle, t)
    base, _ = taxable_base(census, t)
    ledger.tax_rate = tax_rate
    ledger.corruption = compute_corruption(
        cities=len(cities),
        event_corruption=ledger.event_corruption,
        estimated_tax=base * tax_rate,
        bundle_delta=bundle.corruption_delta,
        anarchy=anarchy,
        per_extra_city=t.corruption_per_extra_city,
        tax_pressure_divisor=t.tax_pressure_divisor,
        anarchy_multiplier=t.anarchy_corruption_multiplier,
    )

    # --- 6) income ----------------------------------------------------------
    ledger.income = compute_income(
        census, len(cities), ledger.war_exhaustion, ledger.stability, bundle,
        to_int(world.trade_income(realm_id)), anarchy, tuning=t)

    # --- 7) expenses --------------------------------------------------------
    ledger.war_overhead = step_war_overhead(
        ledger.war_overhead, ledger.war_exhaustion, years,
        threshold=t.war_overhead_threshold,
        rise_per_year=t.war_overhead_rise_per_year,
        decay_per_year=t.war_overhead_decay_per_year,
    )
    ledger.expenses = compute_expenses(
        census, len(cities), buildings, ledger.war_overhead, ledger.corruption,
        ledger.income.total, bundle, policy_upkeep(ledger.policies),
        to_int(world.trade_expense(realm_id)), anarchy, tuning=t)

    # --- 8) settlement ------------------------------------------------------
    ledger.settlement_timer += elapsed
    if ledger.settlement_timer >= t.settlement_window_seconds:
        delta = safe_round(ledger.balance / t.months_per_year)
        ledger.treasury += delta
        ledger.settlement_timer = 0.0
        logger.debug("realm %s settled %+d (treasury %d)", realm_id, delta, ledger.treasury)

    # --- 9) resources -------------------------------------------------------
    refresh_resources(ledger, cities, elapsed, t.tracked_resources)

    # --- 10) manpower -------------------------------------------------------
    ledger.manpower_max = manpower_cap(
        census.adults, census.soldiers, len(cities),
        eligible_share=t.manpower_eligible_share,
        multiplier=bundle.manpower_multiplier,
        per_city=t.manpower_per_city,
        flat_per_city=bundle.flat_manpower_per_city,
    )
    ledger.manpower_current, ledger.manpower_accumulator = regen_manpower(
        ledger.manpower_current, ledger.manpower_accumulator, ledger.manpower_max,
        elapsed, t.manpower_regen_rate * bundle.manpower_regen_multiplier)

    # --- 11) war exhaustion -------------------------------------------------
    ledger.at_war = bool(world.has_unresolved_war(realm_id))
    old_we = ledger.war_exhaustion
    ledger.war_exhaustion = step_war_exhaustion(
        old_we, ledger.at_war, years,
        gain_per_year=t.war_exhaustion_gain_per_year,
        gain_multiplier=1.0 + bundle.war_exhaustion_gain,
        recovery_per_year=t.war_exhaustion_recovery_per_year,
        ceiling=t.war_exhaustion_ceiling,
    )
    ledger.war_exhaustion_change = ledger.war_exhaustion - old_we

    # --- 12) stability ------------------------------------------------------
    old_stab = ledger.stability
    target = stability_target(ledger, census, bundle, t)
    ledger.stability = smooth_stability(
        old_stab, target, elapsed, t.stability_time_constant, t.stability_max_rate_per_second)
    ledger.stability_change = ledger.stability - old_stab

    # --- 13/14) plague ------------------------------------------------------
    plague_step(realm, ledger, members, census, len(cities), years, bundle,
                world=world, rng=rng, tuning=t)

    # --- 15) anarchy attrition ----------------------------------------------
    if ledger.stability <= 0 and elapsed > 0:
        anarchy_attrition(realm, ledger, members, elapsed, world=world, rng=rng, tuning=t)

    # --- 16) indices --------------------------------------------------------
    update_indices(ledger, census, elapsed, bundle, t)


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


def compose_modifiers(ledger: Ledger, elapsed: float, *, world,
                      tuning: RealmTuning = DEFAULT_TUNING) -> ModifierBundle:
    """Fold laws, policies, leaders and timed effects into one bundle.

    Leaders linked to dead units are pruned and expired effects removed
    before their bundles are read.
    """
    bundles: List[ModifierBundle] = []
    for slot in LawSlot:
        bundles.append(law_bundle(slot, ledger.laws.get(slot, DEFAULT_LEVELS[slot])))

    for pid in sorted(ledger.policies):
        policy = get_policy(pid)
        if policy is not None:
            bundles.append(policy.bundle)

    for leader in prune_dead_leaders(ledger.leaders, world.is_unit_alive):
        logger.info("realm %s: %s %s died and left office",
                    ledger.realm_id, leader.title, leader.name)
    bundles.extend(l.bundle for l in ledger.leaders)

    decay = elapsed * tuning.effect_decay_factor
    expired = [e for e in ledger.effects if e.advance(decay)]
    if expired:
        ledger.effects[:] = [e for e in ledger.effects if not e.expired]
        logger.debug("realm %s: effects expired %s", ledger.realm_id,
                     [e.effect_id for e in expired])
    bundles.extend(e.bundle for e in ledger.effects)
    return combine_all(bundles)


def effective_tax_rate(bundle: ModifierBundle, tuning: RealmTuning = DEFAULT_TUNING) -> float:
    return clamp(tuning.base_tax_rate * bundle.tax_multiplier, 0.0, 1.0)


def taxable_base(census: PopulationCensus, tuning: RealmTuning = DEFAULT_TUNING) -> Tuple[float, bool]:
    """Member wealth, or population times per-capita GDP when nobody holds money."""
    if census.total_wealth > 0:
        return float(census.total_wealth), False
    if census.population > 0:
        return census.population * tuning.per_capita_gdp, True
    return 0.0, False


def compute_income(census: PopulationCensus, cities: int, war_exhaustion: float,
                   stability: float, bundle: ModifierBundle, trade_income: int,
                   anarchy: bool, *, tuning: RealmTuning = DEFAULT_TUNING) -> IncomeBreakdown:
    """Run the income chain, keeping every intermediate stage."""
    t = tuning
    inc = IncomeBreakdown()
    inc.tax_rate = effective_tax_rate(bundle, t)
    base, fallback = taxable_base(census, t)
    inc.tax_base_wealth = base
    inc.fallback_gdp = fallback

    value = base * inc.tax_rate
    inc.before_modifiers = value

    we01 = clamp(war_exhaustion / 100.0, 0.0, 1.0)
    value *= 1.0 - we01 * t.max_we_tax_penalty_pct / 100.0
    inc.after_war_penalty = value

    value *= max(0.0, 1.0 + (stability - 50.0) / 50.0 * t.max_stab_tax_bonus_pct / 100.0)
    inc.after_stability = value

    cap = max(0.0, t.city_wealth_bonus_cap_pct + bundle.city_wealth_cap_delta)
    value *= 1.0 + clamp(cities * t.city_wealth_bonus_per_city_pct, 0.0, cap) / 100.0
    inc.after_city_bonus = value

    industry = (bundle.factory_output_multiplier + bundle.resource_output_multiplier) / 2.0
    inc.economy_scale = economy_scale(census.population, t.economy_scale_floor,
                                      t.economy_scale_log_span) * industry
    inc.trade_income = trade_income

    total = safe_round(value * inc.economy_scale) + trade_income
    if anarchy:
        total = safe_round(total * t.anarchy_income_multiplier)
    inc.total = total
    return inc


def compute_expenses(census: PopulationCensus, cities: int, buildings: int,
                     war_overhead: float, corruption: float, income_total: int,
                     bundle: ModifierBundle, policy_cost: int, trade_expense: int,
                     anarchy: bool, *, tuning: RealmTuning = DEFAULT_TUNING) -> ExpenseBreakdown:
    """Run the expense chain; the total never drops below zero before anarchy."""
    t = tuning
    exp = ExpenseBreakdown()
    exp.military = census.soldiers * t.military_cost_per_soldier * bundle.military_upkeep_multiplier
    city_scale = 1.0 + t.infrastructure_scale_per_city * max(0, cities - 1)
    exp.infrastructure = (cities * t.cost_per_city + buildings * t.cost_per_building) * city_scale
    exp.demography = (census.babies * t.child_cost + census.elders * t.elder_cost
                      + census.veterans * t.veteran_cost)
    base = exp.military + exp.infrastructure + exp.demography

    exp.war_overhead = base * (clamp(war_overhead, 0.0, 100.0) / 100.0) * (t.max_war_overhead_pct / 100.0)

    upkeep_pct = max(0.0, bundle.upkeep_pct)
    if income_total > 0:
        exp.law_upkeep = income_total * upkeep_pct
    else:
        exp.law_upkeep = census.population * t.law_upkeep_fallback_per_capita * upkeep_pct
    exp.policy_upkeep = float(policy_cost)
    exp.trade = trade_expense
    exp.corruption = (base + exp.war_overhead) * clamp(corruption, 0.0, 1.0)

    scale = economy_scale(census.population, t.economy_scale_floor, t.economy_scale_log_span)
    scale *= (bundle.factory_output_multiplier + bundle.resource_output_multiplier) / 2.0
    total = max(0, safe_round((base + exp.war_overhead) * scale) + safe_round(exp.law_upkeep)
                + policy_cost + trade_expense + safe_round(exp.corruption))
    if anarchy:
        total = safe_round(total * t.anarchy_expense_multiplier)
    exp.total = total
    return exp


def refresh_resources(ledger: Ledger, cities: Sequence, elapsed: float,
                      tracked: Sequence[str]) -> None:
    """Sum stockpiles over live cities; rates move only when time passed."""
    for res in tracked:
        current = 0
        for city in cities:
            current += max(0, to_int(city.resources.get(res, 0)))
        if elapsed > 0:
            ledger.resource_rates[res] = current - ledger.resource_stockpiles.get(res, 0)
        else:
            ledger.resource_rates.setdefault(res, 0)
        ledger.resource_stockpiles[res] = current


def stability_target(ledger: Ledger, census: PopulationCensus, bundle: ModifierBundle,
                     tuning: RealmTuning = DEFAULT_TUNING) -> float:
    t = tuning
    we01 = clamp(ledger.war_exhaustion / 100.0, 0.0, 1.0)
    mood = ((census.happiness_rate - 0.5) * t.happiness_stability_weight
            - census.misery_rate * t.misery_stability_weight)
    balance = ledger.balance
    if balance < 0:
        money = -t.deficit_stability_penalty
    elif balance > 0:
        money = t.surplus_stability_bonus
    else:
        money = 0.0
    drift = sum(e.stability_per_second for e in ledger.effects) * t.stability_time_constant
    return (t.stability_base
            + bundle.stability_delta
            - ledger.corruption * t.corruption_stability_penalty
            - we01 * t.war_exhaustion_stability_penalty
            + bundle.unrest_reduction
            + mood
            + money
            + drift)


def plague_step(realm, ledger: Ledger, members: Sequence, census: PopulationCensus,
                cities: int, years: float, bundle: ModifierBundle, *, world,
                rng: np.random.Generator, tuning: RealmTuning = DEFAULT_TUNING) -> bool:
    """Accumulate plague risk and roll an outbreak; return ``True`` on outbreak."""
    t = tuning
    welfare = ledger.laws.get(LawSlot.WELFARE_SPENDING, DEFAULT_LEVELS[LawSlot.WELFARE_SPENDING])
    if welfare in CURING_WELFARE:
        cured = 0
        for m in members:
            if m.has_trait("plague"):
                m.remove_trait("plague")
                cured += 1
        if cured:
            census.infected = max(0, census.infected - cured)
            logger.info("realm %s: welfare cured %d infected", ledger.realm_id, cured)
        ledger.plague_risk = 0.0
        ledger.plague_resistance_decay = 0.0
        return False

    if census.population < t.plague_min_population:
        return False

    resist = clamp(bundle.plague_resistance, 0.0, 1.0)
    ledger.plague_risk += (census.population / 1000.0 * t.plague_risk_per_thousand_pop_per_year
                           + cities * t.plague_risk_per_city_per_year) * years
    ledger.plague_resistance_decay += t.plague_resistance_decay_per_year * (1.0 - resist) * years

    resistance = t.plague_base_resistance * (1.0 + resist) - ledger.plague_resistance_decay
    true_risk = t.plague_base_risk + t.plague_risk_per_city * cities + ledger.plague_risk
    if true_risk <= resistance:
        return False

    name = getattr(realm, "name", ledger.realm_id)
    world.notify(ledger.realm_id, f"A plague has started in {name}!")
    infected = 0
    for m in members:
        if not m.alive or m.has_trait("plague") or m.has_trait("immune"):
            continue
        if rng.random() < t.plague_infection_chance:
            m.add_trait("plague")
            infected += 1
    logger.info("realm %s: plague outbreak, %d infected", ledger.realm_id, infected)
    ledger.plague_risk = 0.0
    ledger.plague_resistance_decay = 0.0
    ledger.recompute_requested = True
    return True


def anarchy_attrition(realm, ledger: Ledger, members: Sequence, elapsed: float, *, world,
                      rng: np.random.Generator, tuning: RealmTuning = DEFAULT_TUNING) -> int:
    """Remove unprotected members at ``anarchy_attrition_per_second``."""
    chance = min(1.0, tuning.anarchy_attrition_per_second * elapsed)
    removed = 0
    for m in members:
        if not m.alive or m.leader or m.ruler:
            continue
        if rng.random() < chance:
            world.remove_member(ledger.realm_id, m)
            removed += 1
    if removed:
        logger.info("realm %s: %d members lost to anarchy", ledger.realm_id, removed)
    return removed


def update_indices(ledger: Ledger, census: PopulationCensus, elapsed: float,
                   bundle: ModifierBundle, tuning: RealmTuning = DEFAULT_TUNING) -> None:
    pop = census.population
    if ledger.pop_sample <= 0 and pop > 0:
        ledger.pop_sample = pop
        ledger.pop_sample_seconds = 0.0
    ledger.pop_sample_seconds += elapsed
    if ledger.pop_sample_seconds >= tuning.population_sample_seconds:
        if ledger.pop_sample > 0:
            ledger.pop_trend = ((pop - ledger.pop_sample) / ledger.pop_sample
                                * (100.0 / ledger.pop_sample_seconds))
        ledger.pop_sample = pop
        ledger.pop_sample_seconds = 0.0
    ledger.avg_growth_rate = ledger.pop_trend + bundle.population_growth * 100.0

    we01 = clamp(ledger.war_exhaustion / 100.0, 0.0, 1.0)
    mobilization = census.soldiers / pop if pop > 0 else 0.0
    ledger.war_pressure = clamp(0.7 * we01 + 0.3 * clamp(mobilization * 2.0, 0.0, 1.0), 0.0, 1.0) * 100.0

    popf = max(1, pop)
    stab_lack = clamp((50.0 - ledger.stability) / 50.0, 0.0, 1.0)
    unemployment = census.unemployed / census.adults * 100.0 if census.adults > 0 else 0.0
    tension = clamp(0.25 * stab_lack
                    + 0.20 * clamp(unemployment / 40.0, 0.0, 1.0)
                    + 0.15 * clamp(census.homeless / popf * 100.0 / 20.0, 0.0, 1.0)
                    + 0.15 * clamp(census.hungry / popf * 100.0 / 20.0, 0.0, 1.0)
                    + 0.25 * we01, 0.0, 1.0)
    ledger.internal_tension = tension * 100.0
    ledger.public_order = clamp(ledger.stability / 100.0 * (1.0 - tension), 0.0, 1.0) * 100.0

    income_abs = max(1, abs(ledger.income.total))
    ledger.balance_index = clamp(ledger.balance / income_abs, -1.0, 1.0) * 100.0
