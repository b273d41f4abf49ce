"""
Population census of a realm.

The census is a pure read over the realm's member collection.  Counts are
cached on the ledger so the income, expense, manpower and stability steps
all see the same snapshot within one recompute.
"""
from __future__ import annotations
from typing import Iterable
from dataclasses import dataclass


@dataclass
class PopulationCensus:
    """Head counts by age band, role and condition."""
    population: int = 0
    babies: int = 0
    children: int = 0
    teens: int = 0
    adults: int = 0
    elders: int = 0
    soldiers: int = 0
    leaders: int = 0
    veterans: int = 0
    genius: int = 0
    infected: int = 0
    immune: int = 0
    happy: int = 0
    hungry: int = 0
    starving: int = 0
    sick: int = 0
    homeless: int = 0
    unemployed: int = 0
    total_wealth: int = 0

    def _share(self, count: int) -> float:
        return count / self.population if self.population > 0 else 0.0

    @property
    def happiness_rate(self) -> float:
        return self._share(self.happy)

    @property
    def misery_rate(self) -> float:
        """Share of members that are hungry, sick or homeless (starving counts double)."""
        bad = self.hungry + self.sick + self.homeless + 2 * self.starving
        return min(1.0, self._share(bad))

    @property
    def infection_rate(self) -> float:
        return self._share(self.infected)

    @property
    def dependents(self) -> int:
        return self.babies + self.children + self.teens + self.elders


class CensusSystem:
    """Sorts members into the census bands."""

    # Age thresholds in simulated years
    BABY_AGE = 5
    TEEN_AGE = 12
    ADULT_AGE = 16
    ELDER_AGE = 60

    def take_census(self, members: Iterable) -> PopulationCensus:
        c = PopulationCensus()
        for m in members:
            if not getattr(m, "alive", False):
                continue
            c.population += 1
            age = getattr(m, "age", 0)
            if age < self.BABY_AGE:
                c.babies += 1
            elif age < self.TEEN_AGE:
                c.children += 1
            elif age < self.ADULT_AGE:
                c.teens += 1
            elif age < self.ELDER_AGE:
                c.adults += 1
            else:
                c.elders += 1

            if m.soldier:
                c.soldiers += 1
            if m.leader or m.ruler:
                c.leaders += 1
            if m.has_trait("veteran"):
                c.veterans += 1
            if m.has_trait("genius"):
                c.genius += 1
            if m.has_trait("plague"):
                c.infected += 1
            if m.has_trait("immune"):
                c.immune += 1

            if m.happy:
                c.happy += 1
            if m.starving:
                c.starving += 1
            elif m.hungry:
                c.hungry += 1
            if m.sick:
                c.sick += 1
            if m.homeless:
                c.homeless += 1
            if age >= self.ADULT_AGE and not m.soldier and not getattr(m, "employed", True):
                c.unemployed += 1
            c.total_wealth += max(0, int(getattr(m, "money", 0)))
        return c


# Global census system instance
CENSUS_SYSTEM = CensusSystem()
