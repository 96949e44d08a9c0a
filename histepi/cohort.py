"""Headless cohort runs.

Spawns a cohort of NPCs and animals for one historical context and runs
the disease engine for a number of days without the game loop:

  day 0:  spawn, constitution drawn per character, spawn-time assignment
  day t:  random pairwise encounters (proximity, or direct contact with
          probability contact_fraction) → optional terrain exposure →
          daily advance for every living character → record counts

Dead characters leave the cohort. Useful for tuning catalog rates and
checking how an era/region/year plays out over a season.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from histepi.engine import DiseaseEngine
from histepi.types import Character, CharacterStats, EntityKind, HealthStatus

logger = logging.getLogger(__name__)


@dataclass
class CohortResult:
    """Results from a cohort run. Daily arrays have length n_days + 1 (day 0 first)."""
    n_days: int = 0
    initial_size: int = 0
    initial_infected: int = 0
    final_alive: int = 0
    total_infections: int = 0
    total_recoveries: int = 0
    total_deaths: int = 0
    epidemic_disease: Optional[str] = None
    causes_of_death: Dict[str, int] = field(default_factory=dict)
    daily_healthy: Optional[np.ndarray] = None
    daily_mild: Optional[np.ndarray] = None
    daily_sick: Optional[np.ndarray] = None
    daily_critical: Optional[np.ndarray] = None
    daily_new_infections: Optional[np.ndarray] = None
    daily_recoveries: Optional[np.ndarray] = None
    daily_deaths: Optional[np.ndarray] = None

    @property
    def mortality_fraction(self) -> float:
        return self.total_deaths / self.initial_size if self.initial_size else 0.0


def spawn_cohort(
    n_characters: int,
    rng: np.random.Generator,
    animal_fraction: float = 0.2,
    constitution_range: tuple = (6, 15),
) -> List[Character]:
    """Create characters with uniformly drawn integer constitution."""
    lo, hi = constitution_range
    cohort = []
    for i in range(n_characters):
        is_animal = rng.random() < animal_fraction
        constitution = float(rng.integers(lo, hi + 1))
        if is_animal:
            cohort.append(Character(
                id=f'animal_{i}', kind=EntityKind.ANIMAL, species_name='wild dog',
                stats=CharacterStats(constitution=constitution)))
        else:
            cohort.append(Character(
                id=f'npc_{i}', kind=EntityKind.NPC, name=f'Villager {i}',
                stats=CharacterStats(constitution=constitution)))
    return cohort


def _status_counts(cohort: List[Character]) -> Counter:
    return Counter(c.health.overall_status if c.health else HealthStatus.HEALTHY
                   for c in cohort)


def run_cohort(
    engine: DiseaseEngine,
    n_characters: int,
    era: str,
    region: str,
    year: int,
    n_days: int = 90,
    animal_fraction: float = 0.2,
    encounters_per_day: Optional[int] = None,
    contact_fraction: float = 0.1,
    terrain: Optional[str] = None,
) -> CohortResult:
    """Run a cohort through n_days of encounters and disease progression.

    Args:
        engine: Engine with a ready catalog.
        n_characters: Cohort size.
        era: Game era.
        region: Cultural region.
        year: Calendar year (constant over the run).
        n_days: Number of days to simulate.
        animal_fraction: Expected fraction of animals in the cohort.
        encounters_per_day: Random pairwise encounters per day
            (default: one per character).
        contact_fraction: Fraction of encounters that are direct contact.
        terrain: Optional terrain every character stands on each day.

    Returns:
        CohortResult with daily time series.

    Raises:
        CatalogNotReadyError: If the engine's catalog is not loaded.
    """
    engine.provider.require()
    rng = engine.rng('cohort')
    radius = engine.config.transmission.proximity_radius
    if encounters_per_day is None:
        encounters_per_day = n_characters

    cohort = spawn_cohort(n_characters, rng, animal_fraction)
    for character in cohort:
        engine.assign_health(character, era, region, year)

    epidemic = engine.find_epidemic(era, region, year)
    result = CohortResult(
        n_days=n_days,
        initial_size=n_characters,
        initial_infected=sum(1 for c in cohort if c.health.current_diseases),
        epidemic_disease=epidemic.id if epidemic is not None else None,
    )

    series = {name: np.zeros(n_days + 1, dtype=np.int64) for name in (
        'healthy', 'mild', 'sick', 'critical', 'new_infections', 'recoveries', 'deaths')}

    def record(day: int) -> None:
        counts = _status_counts(cohort)
        for status in HealthStatus:
            series[status.value][day] = counts.get(status, 0)

    record(0)
    causes: Counter = Counter()

    for day in range(1, n_days + 1):
        new_infections = 0
        if len(cohort) >= 2:
            for _ in range(encounters_per_day):
                i, j = rng.choice(len(cohort), size=2, replace=False)
                source, target = cohort[int(i)], cohort[int(j)]
                if rng.random() < contact_fraction:
                    encounter = engine.check_direct_contact(source, target, year)
                else:
                    distance = float(rng.uniform(0.0, 2.0 * radius))
                    encounter = engine.check_proximity_transmission(source, target, distance, year)
                new_infections += len(encounter.new_diseases)

        if terrain is not None:
            for character in cohort:
                if engine.check_terrain_transmission(terrain, character, year).transmitted:
                    new_infections += 1

        survivors = []
        recoveries = deaths = 0
        for character in cohort:
            update = engine.advance_one_day(character, year)
            recoveries += len(update.recovered)
            if update.is_dead:
                deaths += 1
                causes[update.cause_of_death.id] += 1
            else:
                survivors.append(character)
        cohort = survivors

        series['new_infections'][day] = new_infections
        series['recoveries'][day] = recoveries
        series['deaths'][day] = deaths
        record(day)

    result.final_alive = len(cohort)
    result.total_infections = int(series['new_infections'].sum())
    result.total_recoveries = int(series['recoveries'].sum())
    result.total_deaths = int(series['deaths'].sum())
    result.causes_of_death = dict(causes)
    result.daily_healthy = series['healthy']
    result.daily_mild = series['mild']
    result.daily_sick = series['sick']
    result.daily_critical = series['critical']
    result.daily_new_infections = series['new_infections']
    result.daily_recoveries = series['recoveries']
    result.daily_deaths = series['deaths']

    logger.info("Cohort %s/%s %d: %d/%d alive after %d days, %d infections, %d deaths",
                era, region, year, result.final_alive, n_characters, n_days,
                result.total_infections, result.total_deaths)
    return result
