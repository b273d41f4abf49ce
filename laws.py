"""Law slots, their levels and the modifier bundle each level resolves to.

Every slot owns a closed :class:`~enum.Enum` of levels.  :data:`DEFAULT_LAWS`
maps each slot to a table holding one :class:`ModifierBundle` per level, and
the table is checked for completeness when the module is imported so a level
without an effect can never reach the pipeline.

Balance values can be overridden from ``balance/laws.json``.  The file maps
slot names to objects of ``LEVEL_NAME -> {channel: value}``; missing or
malformed entries are ignored and the hard coded bundles stay in place.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional, Type
import json
import logging
import os

from modifiers import IDENTITY, ModifierBundle as B

logger = logging.getLogger(__name__)


class LawSlot(Enum):
    """Mutually exclusive policy axes."""

    TAXATION = "taxation"
    MILITARY_SPENDING = "military_spending"
    SECURITY_SPENDING = "security_spending"
    GOVERNMENT_SPENDING = "government_spending"
    WELFARE_SPENDING = "welfare_spending"
    EDUCATION_SPENDING = "education_spending"
    RESEARCH_SPENDING = "research_spending"
    ANTI_CORRUPTION = "anti_corruption"
    CONSCRIPTION = "conscription"
    WAR_BONDS = "war_bonds"
    WORKING_HOURS = "working_hours"
    PRESS_REGULATION = "press_regulation"
    FIREARM_REGULATION = "firearm_regulation"
    RELIGION = "religion"
    POPULATION_GROWTH = "population_growth"
    INDUSTRIAL_SPECIALIZATION = "industrial_specialization"
    RESOURCE_SUBSIDY = "resource_subsidy"
    POWER_SHARING = "power_sharing"
    ELITIST_MILITARY = "elitist_military"
    PARTY_LOYALTY = "party_loyalty"
    RESEARCH_FOCUS = "research_focus"
    MONARCH = "monarch"
    COLLECTIVE_THEORY = "collective_theory"
    ELECTIVE_ASSEMBLY = "elective_assembly"
    DEMOCRACY_STYLE = "democracy_style"
    STATE_DOCTRINE = "state_doctrine"


class TaxationLevel(Enum):
    MINIMUM = "Minimum"
    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"
    MAXIMUM = "Maximum"


class SpendingLevel(Enum):
    NONE = "None"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    MAXIMUM = "Maximum"


class ConscriptionLevel(Enum):
    DISARMED = "Disarmed"
    VOLUNTEER = "Volunteer"
    LIMITED = "Limited"
    EXTENSIVE = "Extensive"
    REQUIRED = "Required"


class WarBondsLevel(Enum):
    INACTIVE = "Inactive"
    MODERATE = "Moderate"
    MAXIMUM = "Maximum"


class WorkingHoursLevel(Enum):
    MINIMUM = "Minimum"
    REDUCED = "Reduced"
    STANDARD = "Standard"
    EXTENDED = "Extended"
    UNLIMITED = "Unlimited"


class PressRegulationLevel(Enum):
    FREE_PRESS = "Free Press"
    LAXED = "Laxed"
    MIXED = "Mixed"
    STATE_FOCUS = "State Focus"
    PROPAGANDA = "Propaganda"


class FirearmRegulationLevel(Enum):
    NO_RESTRICTIONS = "No Restrictions"
    REDUCED = "Reduced"
    STANDARD = "Standard"
    EXPANDED = "Expanded"
    ILLEGAL = "Illegal"


class ReligionLevel(Enum):
    ATHEISM = "Atheism"
    SECULARISM = "Secularism"
    STATE_RELIGION = "State Religion"


class PopulationGrowthLevel(Enum):
    BALANCED = "Balanced"
    ENCOURAGED = "Encouraged"
    MANDATORY = "Mandatory"


class IndustrialSpecializationLevel(Enum):
    EXTRACTION = "Extraction"
    BALANCED = "Balanced"
    MANUFACTURING = "Manufacturing"


class ResourceSubsidyLevel(Enum):
    NONE = "None"
    LIMITED = "Limited"
    MODERATE = "Moderate"
    GENEROUS = "Generous"


class PowerSharingLevel(Enum):
    DECENTRALIZED = "Decentralized"
    BALANCED = "Balanced"
    CENTRALIZED = "Centralized"


class ElitistMilitaryLevel(Enum):
    DEFAULT = "Default"
    EXPANDED = "Expanded"


class PartyLoyaltyLevel(Enum):
    MINIMUM = "Minimum"
    LOW = "Low"
    STANDARD = "Standard"
    HIGH = "High"
    MAXIMUM = "Maximum"


class ResearchFocusLevel(Enum):
    CIVILIAN = "Civilian"
    BALANCED = "Balanced"
    MILITARY = "Military"


# Ideology laws


class MonarchLevel(Enum):
    NONE = "None"
    CONSTITUTIONAL = "Constitutional"
    ABSOLUTE = "Absolute"


class CollectiveTheoryLevel(Enum):
    MAOISM = "Maoism"
    MARXISM = "Marxism"
    STALINISM = "Stalinism"
    TROTSKYISM = "Trotskyism"


class ElectiveAssemblyLevel(Enum):
    INDIRECT = "Indirect"
    DIRECT = "Direct"
    TECHNOCRATIC = "Technocratic"


class DemocracyStyleLevel(Enum):
    SEMI_PRESIDENTIAL = "Semi-Presidential"
    PRESIDENTIAL = "Presidential"


class StateDoctrineLevel(Enum):
    CLASSICAL = "Classical"
    CORPORATISM = "Corporatism"
    STRATOCRACY = "Stratocracy"
    CLERICAL = "Clerical"


LAW_LEVELS: Dict[LawSlot, Type[Enum]] = {
    LawSlot.TAXATION: TaxationLevel,
    LawSlot.MILITARY_SPENDING: SpendingLevel,
    LawSlot.SECURITY_SPENDING: SpendingLevel,
    LawSlot.GOVERNMENT_SPENDING: SpendingLevel,
    LawSlot.WELFARE_SPENDING: SpendingLevel,
    LawSlot.EDUCATION_SPENDING: SpendingLevel,
    LawSlot.RESEARCH_SPENDING: SpendingLevel,
    LawSlot.ANTI_CORRUPTION: SpendingLevel,
    LawSlot.CONSCRIPTION: ConscriptionLevel,
    LawSlot.WAR_BONDS: WarBondsLevel,
    LawSlot.WORKING_HOURS: WorkingHoursLevel,
    LawSlot.PRESS_REGULATION: PressRegulationLevel,
    LawSlot.FIREARM_REGULATION: FirearmRegulationLevel,
    LawSlot.RELIGION: ReligionLevel,
    LawSlot.POPULATION_GROWTH: PopulationGrowthLevel,
    LawSlot.INDUSTRIAL_SPECIALIZATION: IndustrialSpecializationLevel,
    LawSlot.RESOURCE_SUBSIDY: ResourceSubsidyLevel,
    LawSlot.POWER_SHARING: PowerSharingLevel,
    LawSlot.ELITIST_MILITARY: ElitistMilitaryLevel,
    LawSlot.PARTY_LOYALTY: PartyLoyaltyLevel,
    LawSlot.RESEARCH_FOCUS: ResearchFocusLevel,
    LawSlot.MONARCH: MonarchLevel,
    LawSlot.COLLECTIVE_THEORY: CollectiveTheoryLevel,
    LawSlot.ELECTIVE_ASSEMBLY: ElectiveAssemblyLevel,
    LawSlot.DEMOCRACY_STYLE: DemocracyStyleLevel,
    LawSlot.STATE_DOCTRINE: StateDoctrineLevel,
}

DEFAULT_LEVELS: Dict[LawSlot, Enum] = {
    LawSlot.TAXATION: TaxationLevel.NORMAL,
    LawSlot.MILITARY_SPENDING: SpendingLevel.NONE,
    LawSlot.SECURITY_SPENDING: SpendingLevel.NONE,
    LawSlot.GOVERNMENT_SPENDING: SpendingLevel.NONE,
    LawSlot.WELFARE_SPENDING: SpendingLevel.NONE,
    LawSlot.EDUCATION_SPENDING: SpendingLevel.NONE,
    LawSlot.RESEARCH_SPENDING: SpendingLevel.NONE,
    LawSlot.ANTI_CORRUPTION: SpendingLevel.NONE,
    LawSlot.CONSCRIPTION: ConscriptionLevel.VOLUNTEER,
    LawSlot.WAR_BONDS: WarBondsLevel.INACTIVE,
    LawSlot.WORKING_HOURS: WorkingHoursLevel.STANDARD,
    LawSlot.PRESS_REGULATION: PressRegulationLevel.MIXED,
    LawSlot.FIREARM_REGULATION: FirearmRegulationLevel.STANDARD,
    LawSlot.RELIGION: ReligionLevel.SECULARISM,
    LawSlot.POPULATION_GROWTH: PopulationGrowthLevel.BALANCED,
    LawSlot.INDUSTRIAL_SPECIALIZATION: IndustrialSpecializationLevel.BALANCED,
    LawSlot.RESOURCE_SUBSIDY: ResourceSubsidyLevel.NONE,
    LawSlot.POWER_SHARING: PowerSharingLevel.BALANCED,
    LawSlot.ELITIST_MILITARY: ElitistMilitaryLevel.DEFAULT,
    LawSlot.PARTY_LOYALTY: PartyLoyaltyLevel.STANDARD,
    LawSlot.RESEARCH_FOCUS: ResearchFocusLevel.BALANCED,
    LawSlot.MONARCH: MonarchLevel.NONE,
    LawSlot.COLLECTIVE_THEORY: CollectiveTheoryLevel.MARXISM,
    LawSlot.ELECTIVE_ASSEMBLY: ElectiveAssemblyLevel.INDIRECT,
    LawSlot.DEMOCRACY_STYLE: DemocracyStyleLevel.SEMI_PRESIDENTIAL,
    LawSlot.STATE_DOCTRINE: StateDoctrineLevel.CLASSICAL,
}


# ---------------------------------------------------------------------------
# Effect tables
# ---------------------------------------------------------------------------

# Regen multipliers are relative to the 1.5%/min base manpower regen rate.
DEFAULT_LAWS: Dict[LawSlot, Dict[Enum, B]] = {
    LawSlot.TAXATION: {
        TaxationLevel.MINIMUM: B(tax_multiplier=0.40, stability_delta=20.0, war_exhaustion_gain=-0.10),
        TaxationLevel.LOW: B(tax_multiplier=0.70, stability_delta=10.0, war_exhaustion_gain=-0.05),
        TaxationLevel.NORMAL: B(stability_delta=-5.0),
        TaxationLevel.HIGH: B(tax_multiplier=1.30, stability_delta=-15.0, war_exhaustion_gain=0.03),
        TaxationLevel.MAXIMUM: B(tax_multiplier=1.75, stability_delta=-40.0, war_exhaustion_gain=0.10),
    },
    LawSlot.MILITARY_SPENDING: {
        SpendingLevel.NONE: IDENTITY,
        SpendingLevel.LOW: B(upkeep_pct=0.1125, stability_delta=7.5, war_exhaustion_gain=0.20,
                             manpower_multiplier=1.4, flat_manpower_per_city=5,
                             manpower_regen_multiplier=2.0),
        SpendingLevel.MEDIUM: B(upkeep_pct=0.40, stability_delta=10.0, war_exhaustion_gain=0.30,
                                manpower_multiplier=1.6, flat_manpower_per_city=10,
                                manpower_regen_multiplier=10.0 / 3.0),
        SpendingLevel.HIGH: B(upkeep_pct=0.45, stability_delta=12.5, war_exhaustion_gain=0.35,
                              manpower_multiplier=1.8, flat_manpower_per_city=20,
                              manpower_regen_multiplier=5.0),
        SpendingLevel.MAXIMUM: B(upkeep_pct=0.50, stability_delta=15.0, war_exhaustion_gain=0.40,
                                 manpower_multiplier=2.0, flat_manpower_per_city=40,
                                 manpower_regen_multiplier=20.0 / 3.0),
    },
    # Policing costs goodwill up front; the unrest it suppresses pays it back.
    LawSlot.SECURITY_SPENDING: {
        SpendingLevel.NONE: IDENTITY,
        SpendingLevel.LOW: B(upkeep_pct=0.1125, stability_delta=-15.0, unrest_reduction=5.0,
                             war_exhaustion_gain=0.015, corruption_delta=0.04,
                             flat_manpower_per_city=10),
        SpendingLevel.MEDIUM: B(upkeep_pct=0.125, stability_delta=-10.0, unrest_reduction=10.0,
                                war_exhaustion_gain=0.01, corruption_delta=0.06,
                                flat_manpower_per_city=15),
        SpendingLevel.HIGH: B(upkeep_pct=0.1375, stability_delta=-5.0, unrest_reduction=15.0,
                              war_exhaustion_gain=0.005, corruption_delta=0.08,
                              flat_manpower_per_city=20),
        SpendingLevel.MAXIMUM: B(upkeep_pct=0.15, unrest_reduction=20.0,
                                 war_exhaustion_gain=0.10, corruption_delta=0.10,
                                 flat_manpower_per_city=25),
    },
    LawSlot.GOVERNMENT_SPENDING: {
        SpendingLevel.NONE: IDENTITY,
        SpendingLevel.LOW: B(upkeep_pct=0.05, stability_delta=-4.0, city_wealth_cap_delta=-5.0),
        SpendingLevel.MEDIUM: B(upkeep_pct=0.10, corruption_delta=-0.10),
        SpendingLevel.HIGH: B(upkeep_pct=0.15, stability_delta=10.0, corruption_delta=-0.20,
                              city_wealth_cap_delta=10.0),
        SpendingLevel.MAXIMUM: B(upkeep_pct=0.20, stability_delta=20.0, corruption_delta=-0.30,
                                 city_wealth_cap_delta=20.0),
    },
    LawSlot.WELFARE_SPENDING: {
        SpendingLevel.NONE: IDENTITY,
        SpendingLevel.LOW: B(upkeep_pct=0.05, stability_delta=-5.0, plague_resistance=0.20),
        SpendingLevel.MEDIUM: B(upkeep_pct=0.10, war_exhaustion_gain=-0.03, plague_resistance=0.40),
        SpendingLevel.HIGH: B(upkeep_pct=0.15, stability_delta=5.0, war_exhaustion_gain=-0.06,
                              plague_resistance=0.60),
        SpendingLevel.MAXIMUM: B(upkeep_pct=0.20, stability_delta=10.0, war_exhaustion_gain=-0.10,
                                 plague_resistance=0.80),
    },
    LawSlot.EDUCATION_SPENDING: {
        SpendingLevel.NONE: IDENTITY,
        SpendingLevel.LOW: B(upkeep_pct=0.05, genius_chance=0.02),
        SpendingLevel.MEDIUM: B(upkeep_pct=0.10, stability_delta=10.0, war_exhaustion_gain=-0.04,
                                genius_chance=0.05),
        SpendingLevel.HIGH: B(upkeep_pct=0.15, stability_delta=20.0, war_exhaustion_gain=-0.07,
                              genius_chance=0.08),
        SpendingLevel.MAXIMUM: B(upkeep_pct=0.20, stability_delta=30.0, war_exhaustion_gain=-0.10,
                                 genius_chance=0.10),
    },
    LawSlot.RESEARCH_SPENDING: {
        SpendingLevel.NONE: IDENTITY,
        SpendingLevel.LOW: B(upkeep_pct=0.15, stability_delta=-5.0, tech_speed_multiplier=2.5),
        SpendingLevel.MEDIUM: B(upkeep_pct=0.20, war_exhaustion_gain=-0.04, tech_speed_multiplier=4.0),
        SpendingLevel.HIGH: B(upkeep_pct=0.25, stability_delta=5.0, war_exhaustion_gain=-0.08,
                              tech_speed_multiplier=5.0),
        SpendingLevel.MAXIMUM: B(upkeep_pct=0.30, stability_delta=10.0, war_exhaustion_gain=-0.12,
                                 tech_speed_multiplier=6.0),
    },
    LawSlot.ANTI_CORRUPTION: {
        SpendingLevel.NONE: IDENTITY,
        SpendingLevel.LOW: B(upkeep_pct=0.15, stability_delta=12.0, corruption_delta=-0.20),
        SpendingLevel.MEDIUM: B(upkeep_pct=0.20, stability_delta=18.0, corruption_delta=-0.30),
        SpendingLevel.HIGH: B(upkeep_pct=0.25, stability_delta=24.0, corruption_delta=-0.40),
        SpendingLevel.MAXIMUM: B(upkeep_pct=0.30, stability_delta=30.0, corruption_delta=-0.50),
    },
    LawSlot.CONSCRIPTION: {
        ConscriptionLevel.DISARMED: B(manpower_multiplier=0.5, manpower_regen_multiplier=0.5,
                                      tax_multiplier=1.05),
        ConscriptionLevel.VOLUNTEER: IDENTITY,
        ConscriptionLevel.LIMITED: B(manpower_multiplier=1.5, manpower_regen_multiplier=1.5,
                                     tax_multiplier=0.90, building_speed_multiplier=0.90),
        ConscriptionLevel.EXTENSIVE: B(manpower_multiplier=2.0, manpower_regen_multiplier=2.0,
                                       tax_multiplier=0.75, building_speed_multiplier=0.75),
        ConscriptionLevel.REQUIRED: B(manpower_multiplier=2.5, manpower_regen_multiplier=2.5,
                                      tax_multiplier=0.35, building_speed_multiplier=0.50),
    },
    LawSlot.WAR_BONDS: {
        WarBondsLevel.INACTIVE: IDENTITY,
        WarBondsLevel.MODERATE: B(tax_multiplier=1.5, military_upkeep_multiplier=0.75,
                                  stability_delta=-8.0, war_exhaustion_gain=0.05),
        WarBondsLevel.MAXIMUM: B(tax_multiplier=2.25, military_upkeep_multiplier=0.5,
                                 stability_delta=-15.0, war_exhaustion_gain=0.15),
    },
    LawSlot.WORKING_HOURS: {
        WorkingHoursLevel.MINIMUM: B(population_growth=0.01, stability_delta=10.0, tax_multiplier=0.75),
        WorkingHoursLevel.REDUCED: B(stability_delta=5.0, tax_multiplier=0.85),
        WorkingHoursLevel.STANDARD: IDENTITY,
        WorkingHoursLevel.EXTENDED: B(stability_delta=-5.0, tax_multiplier=1.25,
                                      building_speed_multiplier=1.25),
        WorkingHoursLevel.UNLIMITED: B(population_growth=-0.015, stability_delta=-15.0,
                                       tax_multiplier=1.5, building_speed_multiplier=1.5),
    },
    LawSlot.PRESS_REGULATION: {
        PressRegulationLevel.FREE_PRESS: B(tax_multiplier=1.10, corruption_delta=-0.10),
        PressRegulationLevel.LAXED: B(tax_multiplier=1.05, corruption_delta=-0.05),
        PressRegulationLevel.MIXED: B(tax_multiplier=0.95, stability_delta=5.0),
        PressRegulationLevel.STATE_FOCUS: B(tax_multiplier=0.90, stability_delta=10.0),
        PressRegulationLevel.PROPAGANDA: B(tax_multiplier=0.90, stability_delta=10.0,
                                           war_exhaustion_gain=-0.03),
    },
    LawSlot.FIREARM_REGULATION: {
        FirearmRegulationLevel.NO_RESTRICTIONS: B(tax_multiplier=1.13, stability_delta=-5.0),
        FirearmRegulationLevel.REDUCED: B(tax_multiplier=1.05, stability_delta=-2.5),
        FirearmRegulationLevel.STANDARD: IDENTITY,
        FirearmRegulationLevel.EXPANDED: B(stability_delta=5.0),
        FirearmRegulationLevel.ILLEGAL: B(stability_delta=15.0),
    },
    LawSlot.RELIGION: {
        ReligionLevel.ATHEISM: B(tax_multiplier=1.05, research_output_multiplier=1.1),
        ReligionLevel.SECULARISM: IDENTITY,
        ReligionLevel.STATE_RELIGION: B(tax_multiplier=0.95, research_output_multiplier=0.9,
                                        stability_delta=5.0, population_growth=0.0125,
                                        war_exhaustion_gain=-0.05),
    },
    LawSlot.POPULATION_GROWTH: {
        PopulationGrowthLevel.BALANCED: IDENTITY,
        PopulationGrowthLevel.ENCOURAGED: B(population_growth=0.025, tax_multiplier=0.85),
        PopulationGrowthLevel.MANDATORY: B(population_growth=0.05, tax_multiplier=0.70),
    },
    LawSlot.INDUSTRIAL_SPECIALIZATION: {
        IndustrialSpecializationLevel.EXTRACTION: B(resource_output_multiplier=1.25,
                                                    factory_output_multiplier=0.75,
                                                    tax_multiplier=0.80),
        IndustrialSpecializationLevel.BALANCED: IDENTITY,
        IndustrialSpecializationLevel.MANUFACTURING: B(resource_output_multiplier=0.75,
                                                       factory_output_multiplier=1.25,
                                                       tax_multiplier=0.80),
    },
    LawSlot.RESOURCE_SUBSIDY: {
        ResourceSubsidyLevel.NONE: IDENTITY,
        ResourceSubsidyLevel.LIMITED: B(tax_multiplier=0.90, factory_output_multiplier=0.80),
        ResourceSubsidyLevel.MODERATE: B(tax_multiplier=0.85, factory_output_multiplier=0.70),
        ResourceSubsidyLevel.GENEROUS: B(tax_multiplier=0.75, factory_output_multiplier=0.60),
    },
    LawSlot.POWER_SHARING: {
        PowerSharingLevel.DECENTRALIZED: B(tax_multiplier=1.05),
        PowerSharingLevel.BALANCED: IDENTITY,
        PowerSharingLevel.CENTRALIZED: B(stability_delta=2.5),
    },
    LawSlot.ELITIST_MILITARY: {
        ElitistMilitaryLevel.DEFAULT: IDENTITY,
        ElitistMilitaryLevel.EXPANDED: B(corruption_delta=0.10),
    },
    LawSlot.PARTY_LOYALTY: {
        PartyLoyaltyLevel.MINIMUM: B(tax_multiplier=1.10),
        PartyLoyaltyLevel.LOW: IDENTITY,
        PartyLoyaltyLevel.STANDARD: IDENTITY,
        PartyLoyaltyLevel.HIGH: IDENTITY,
        PartyLoyaltyLevel.MAXIMUM: B(tax_multiplier=0.90),
    },
    LawSlot.RESEARCH_FOCUS: {
        ResearchFocusLevel.CIVILIAN: B(research_output_multiplier=0.85),
        ResearchFocusLevel.BALANCED: IDENTITY,
        ResearchFocusLevel.MILITARY: B(research_output_multiplier=0.85),
    },
    LawSlot.MONARCH: {
        MonarchLevel.NONE: IDENTITY,
        MonarchLevel.CONSTITUTIONAL: B(stability_delta=5.0, manpower_multiplier=1.10,
                                       tax_multiplier=1.15),
        MonarchLevel.ABSOLUTE: B(stability_delta=10.0, manpower_multiplier=1.20,
                                 tax_multiplier=1.15, military_upkeep_multiplier=0.90),
    },
    # Marxism is the baseline level and still carries its factory bonus.
    LawSlot.COLLECTIVE_THEORY: {
        CollectiveTheoryLevel.MAOISM: B(resource_output_multiplier=1.25),
        CollectiveTheoryLevel.MARXISM: B(factory_output_multiplier=1.15),
        CollectiveTheoryLevel.STALINISM: B(stability_delta=5.0, corruption_delta=0.02),
        CollectiveTheoryLevel.TROTSKYISM: B(tax_multiplier=0.925, war_exhaustion_gain=-0.02),
    },
    LawSlot.ELECTIVE_ASSEMBLY: {
        ElectiveAssemblyLevel.INDIRECT: IDENTITY,
        ElectiveAssemblyLevel.DIRECT: B(tax_multiplier=1.35),
        ElectiveAssemblyLevel.TECHNOCRATIC: B(research_output_multiplier=1.20),
    },
    LawSlot.DEMOCRACY_STYLE: {
        DemocracyStyleLevel.SEMI_PRESIDENTIAL: IDENTITY,
        DemocracyStyleLevel.PRESIDENTIAL: B(stability_delta=5.0),
    },
    LawSlot.STATE_DOCTRINE: {
        StateDoctrineLevel.CLASSICAL: IDENTITY,
        StateDoctrineLevel.CORPORATISM: B(factory_output_multiplier=1.25),
        StateDoctrineLevel.STRATOCRACY: B(manpower_multiplier=1.20),
        StateDoctrineLevel.CLERICAL: B(population_growth=0.005, war_exhaustion_gain=-0.025),
    },
}


def _validate_tables() -> None:
    """Raise ``ValueError`` unless every slot covers every one of its levels."""
    for slot in LawSlot:
        levels = LAW_LEVELS.get(slot)
        table = DEFAULT_LAWS.get(slot)
        if levels is None or table is None:
            raise ValueError(f"law slot {slot.name} has no level table")
        missing = [lvl.name for lvl in levels if lvl not in table]
        if missing:
            raise ValueError(f"law slot {slot.name} is missing levels {missing}")
        if not isinstance(DEFAULT_LEVELS.get(slot), levels):
            raise ValueError(f"law slot {slot.name} has no valid default level")


_validate_tables()


# ---------------------------------------------------------------------------
# Lookup helpers
# ---------------------------------------------------------------------------


def _norm(text: str) -> str:
    return text.strip().lower().replace(" ", "_").replace("-", "_").replace(".", "")


def parse_slot(raw: Any) -> Optional[LawSlot]:
    """Return the :class:`LawSlot` named by ``raw`` or ``None``."""
    if isinstance(raw, LawSlot):
        return raw
    if not isinstance(raw, str):
        return None
    key = _norm(raw)
    for slot in LawSlot:
        if key in (slot.value, slot.name.lower()):
            return slot
    return None


def parse_level(slot: LawSlot, raw: Any) -> Optional[Enum]:
    """Return the level of ``slot`` named by ``raw`` or ``None``.

    Accepts the enum member itself, its name or its display value in any
    case, so ``"State Focus"``, ``"state_focus"`` and ``"STATE_FOCUS"`` are
    equivalent.
    """
    levels = LAW_LEVELS[slot]
    if isinstance(raw, levels):
        return raw
    if not isinstance(raw, str):
        return None
    key = _norm(raw)
    for level in levels:
        if key in (level.name.lower(), _norm(level.value)):
            return level
    return None


def law_bundle(slot: LawSlot, level: Enum) -> B:
    """Return the bundle for ``level``; unknown levels resolve to identity."""
    return DEFAULT_LAWS[slot].get(level, IDENTITY)


def default_laws() -> Dict[LawSlot, Enum]:
    """Return a fresh mapping of every slot to its baseline level."""
    return dict(DEFAULT_LEVELS)


def _balance_path(default_path: Optional[str] = None) -> str:
    if default_path is not None:
        return default_path
    return os.path.join(os.path.dirname(__file__), "balance", "laws.json")


def load_balance(path: Optional[str] = None) -> None:
    """Overlay law bundles from a JSON balance file if it exists."""
    fn = _balance_path(path)
    try:
        with open(fn, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return
    except ValueError:
        logger.warning("load_balance: %s is not valid JSON", fn)
        return

    for slot_name, levels in data.items():
        slot = parse_slot(slot_name)
        if slot is None or not isinstance(levels, dict):
            continue
        for level_name, channels in levels.items():
            level = parse_level(slot, level_name)
            if level is None or not isinstance(channels, dict):
                continue
            DEFAULT_LAWS[slot][level] = B.from_dict(channels)


# Load balance at import time so callers get configured defaults.
load_balance()


__all__ = [
    "LawSlot",
    "TaxationLevel",
    "SpendingLevel",
    "ConscriptionLevel",
    "WarBondsLevel",
    "WorkingHoursLevel",
    "PressRegulationLevel",
    "FirearmRegulationLevel",
    "ReligionLevel",
    "PopulationGrowthLevel",
    "IndustrialSpecializationLevel",
    "ResourceSubsidyLevel",
    "PowerSharingLevel",
    "ElitistMilitaryLevel",
    "PartyLoyaltyLevel",
    "ResearchFocusLevel",
    "MonarchLevel",
    "CollectiveTheoryLevel",
    "ElectiveAssemblyLevel",
    "DemocracyStyleLevel",
    "StateDoctrineLevel",
    "LAW_LEVELS",
    "DEFAULT_LEVELS",
    "DEFAULT_LAWS",
    "parse_slot",
    "parse_level",
    "law_bundle",
    "default_laws",
    "load_balance",
]
