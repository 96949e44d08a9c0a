"""DiseaseEngine: the facade the game loop calls.

Binds the catalog provider, configuration and rng hierarchy to every
operation of the package. While the catalog is not ready, each call logs a
warning and returns an empty result of its usual type instead of raising:

    resolve_available     → []
    find_epidemic         → None
    assign_health         → empty CharacterHealth
    assign_specific       → None
    transmission checks   → non-transmitting results
    treat                 → failed TreatmentResult
    available_treatments  → []

Operations that need only the character's own records (daily advance,
forced progression, restrictions) work without the catalog.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import numpy as np

from histepi import assignment, availability, progression, transmission, treatment
from histepi.catalog import CatalogProvider, DiseaseCatalog
from histepi.config import EngineConfig, resolve_config
from histepi.restrictions import GameplayRestrictions, StageChangeTracker, StageNotification, calculate_restrictions
from histepi.rng import create_rng_hierarchy, get_stream
from histepi.types import (
    CharacterHealth,
    DiseaseCategory,
    DiseaseDefinition,
    GameDate,
    MedicineDefinition,
    attach_health,
    health_of,
)

logger = logging.getLogger(__name__)


class DiseaseEngine:
    """Stateful entry point around the pure disease functions.

    Args:
        provider: Catalog provider (READY, or loaded later via ensure_loaded()).
        config: Engine configuration; defaults when None.
        rngs: RNG hierarchy from create_rng_hierarchy(); seeded from
            config.simulation.seed when None.
    """

    def __init__(
        self,
        provider: CatalogProvider,
        config: Optional[EngineConfig] = None,
        rngs: Optional[Dict[str, np.random.Generator]] = None,
    ):
        self.provider = provider
        self.config = resolve_config(config)
        self.rngs = rngs if rngs is not None else create_rng_hierarchy(self.config.simulation.seed)
        self.stage_tracker = StageChangeTracker()

    @classmethod
    def from_config(cls, config: Optional[EngineConfig] = None) -> 'DiseaseEngine':
        """Engine over config.catalog.path (bundled catalog when unset)."""
        config = resolve_config(config)
        return cls(CatalogProvider(config.catalog.path), config)

    @classmethod
    def from_catalog(
        cls,
        catalog: DiseaseCatalog,
        config: Optional[EngineConfig] = None,
        seed: Optional[int] = None,
    ) -> 'DiseaseEngine':
        """Engine over an in-memory catalog (tests, tools)."""
        config = resolve_config(config)
        rngs = create_rng_hierarchy(seed if seed is not None else config.simulation.seed)
        return cls(CatalogProvider.from_catalog(catalog), config, rngs)

    # ── readiness ──────────────────────────────────────────────────────

    @property
    def is_ready(self) -> bool:
        return self.provider.is_ready

    async def ensure_loaded(self) -> bool:
        return await self.provider.ensure_loaded() is not None

    def load(self) -> bool:
        return self.provider.load() is not None

    def rng(self, name: str) -> np.random.Generator:
        """Named subsystem stream; KeyError for an unknown name."""
        return get_stream(self.rngs, name)

    def _catalog(self, operation: str) -> Optional[DiseaseCatalog]:
        catalog = self.provider.catalog
        if catalog is None:
            logger.warning("%s called before the disease catalog is ready (state=%s)",
                           operation, self.provider.state.value)
        return catalog

    # ── availability ───────────────────────────────────────────────────

    def resolve_available(self, era: str, region: str, year: int) -> List[DiseaseDefinition]:
        catalog = self._catalog('resolve_available')
        if catalog is None:
            return []
        return availability.resolve_available(catalog, era, region, year, self.config)

    def find_epidemic(self, era: str, region: str, year: int) -> Optional[DiseaseDefinition]:
        catalog = self._catalog('find_epidemic')
        if catalog is None:
            return None
        available = availability.resolve_available(catalog, era, region, year, self.config)
        return availability.find_epidemic(catalog, available, era, region, year, self.config)

    def disease_prevalence(self, disease_id: str, era: str, region: str, year: int) -> float:
        catalog = self._catalog('disease_prevalence')
        if catalog is None:
            return 0.0
        return availability.disease_prevalence(catalog, disease_id, era, region, year, self.config)

    def available_treatments(
        self, category: DiseaseCategory, era: str, region: str,
    ) -> List[MedicineDefinition]:
        catalog = self._catalog('available_treatments')
        if catalog is None:
            return []
        return availability.available_treatments(catalog, category, era, region, self.config)

    # ── assignment ─────────────────────────────────────────────────────

    def assign_health(
        self, entity: Any, era: str, region: str, year: int, attach: bool = True,
    ) -> CharacterHealth:
        """Spawn-time aggregate for entity; stored on it when attach is True."""
        catalog = self._catalog('assign_health')
        if catalog is None:
            health = CharacterHealth(last_update=GameDate.from_year(year))
        else:
            health = assignment.assign_health(
                entity, catalog, era, region, year, self.config, self.rng('assignment'))
        if attach:
            attach_health(entity, health)
        return health

    def assign_specific(
        self, entity: Any, disease_id: str, era: str, region: str, year: int,
        attach: bool = True,
    ) -> Optional[CharacterHealth]:
        catalog = self._catalog('assign_specific')
        if catalog is None:
            return None
        health = assignment.assign_specific(
            entity, catalog, disease_id, era, region, year, self.config)
        if health is not None and attach:
            attach_health(entity, health)
        return health

    # ── transmission ───────────────────────────────────────────────────

    def check_proximity_transmission(
        self, source: Any, target: Any, distance: float, year: int,
    ) -> transmission.EncounterResult:
        if self._catalog('check_proximity_transmission') is None:
            return transmission.EncounterResult()
        return transmission.check_proximity_transmission(
            source, target, distance, year, self.rng('transmission'), self.config)

    def check_direct_contact(self, source: Any, target: Any, year: int) -> transmission.EncounterResult:
        if self._catalog('check_direct_contact') is None:
            return transmission.EncounterResult()
        return transmission.check_direct_contact(
            source, target, year, self.rng('transmission'), self.config)

    def check_terrain_transmission(
        self, terrain: str, character: Any, year: int,
    ) -> transmission.TerrainResult:
        catalog = self._catalog('check_terrain_transmission')
        if catalog is None:
            return transmission.TerrainResult()
        return transmission.check_terrain_transmission(
            terrain, character, catalog, year, self.rng('terrain'), self.config)

    def narrative_hints_near(self, entities: Iterable[Any], x: float, y: float) -> List[str]:
        return transmission.narrative_hints_near(entities, x, y, self.rng('narrative'), self.config)

    # ── progression & treatment ────────────────────────────────────────

    def advance_one_day(self, entity: Any, year: int) -> progression.DailyUpdate:
        return progression.advance_one_day(
            entity, year, self.rng('progression'), self.config,
            narrative_rng=self.rng('narrative'))

    def force_progression(self, entity: Any, disease_id: str) -> progression.ForcedProgression:
        return progression.force_progression(entity, disease_id, self.config)

    def treat(self, entity: Any, disease_id: str, medicine_id: str) -> treatment.TreatmentResult:
        catalog = self._catalog('treat')
        if catalog is None:
            return treatment.TreatmentResult(message='Disease catalog not loaded')
        return treatment.treat(entity, catalog, disease_id, medicine_id, self.config)

    # ── restrictions ───────────────────────────────────────────────────

    def restrictions(self, entity: Any) -> GameplayRestrictions:
        return calculate_restrictions(health_of(entity))

    def stage_notifications(self, entity: Any) -> List[StageNotification]:
        return self.stage_tracker.check(str(getattr(entity, 'id', '?')), health_of(entity))
