"""Spawn-time disease assignment.

Gives a newly spawned character an initial Character Health Aggregate:
at most one active disease, drawn with era/region/year-appropriate weights,
plus prior immunities from earlier (off-screen) exposures.

Draw order per character (one rng stream, fixed order for replay):
  1. infected?                 P = animal_base_chance | human_base_chance
  2. which disease             animal pool / epidemic / common disease / uniform
  3. per immunity-granting disease, prior immunity?   P = immunity_chance
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

import numpy as np

from histepi.availability import find_epidemic, is_available, remap_era, resolve_available
from histepi.catalog import DiseaseCatalog
from histepi.config import EngineConfig, resolve_config
from histepi.types import (
    ActiveDisease,
    CharacterHealth,
    DiseaseCategory,
    DiseaseDefinition,
    EntityKind,
    GameDate,
    Immunity,
    kind_of,
)

logger = logging.getLogger(__name__)


def is_animal_disease(disease: DiseaseDefinition, cfg: Optional[EngineConfig] = None) -> bool:
    """True for diseases preferred when infecting animals."""
    cfg = resolve_config(cfg)
    return (
        disease.is_animal_disease
        or disease.category is DiseaseCategory.ZOONOTIC
        or disease.id in cfg.assignment.animal_disease_ids
    )


def _pick(rng: np.random.Generator, diseases: List[DiseaseDefinition]) -> DiseaseDefinition:
    return diseases[int(rng.integers(len(diseases)))]


def choose_disease(
    kind: EntityKind,
    available: List[DiseaseDefinition],
    epidemic: Optional[DiseaseDefinition],
    rng: np.random.Generator,
    cfg: Optional[EngineConfig] = None,
) -> DiseaseDefinition:
    """Weighted choice of the spawn disease for an infected character.

    Args:
        kind: Host kind; animals favour animal diseases.
        available: Non-empty list of eligible diseases.
        epidemic: Current epidemic disease, if any (ignored for animals).
        rng: Random generator.
        cfg: Engine configuration.
    """
    a = resolve_config(cfg).assignment

    if kind is EntityKind.ANIMAL:
        animal_pool = [d for d in available if is_animal_disease(d, cfg)]
        if animal_pool and rng.random() < a.animal_disease_preference:
            return _pick(rng, animal_pool)
        return _pick(rng, available)

    if epidemic is not None:
        if rng.random() < a.epidemic_preference:
            return epidemic
        return _pick(rng, available)

    common = next((d for d in available if d.id == a.common_disease_id), None)
    if common is not None and rng.random() < a.common_disease_preference:
        return common
    return _pick(rng, available)


def assign_health(
    entity: Any,
    catalog: DiseaseCatalog,
    era: str,
    region: str,
    year: int,
    cfg: Optional[EngineConfig] = None,
    rng: Optional[np.random.Generator] = None,
) -> CharacterHealth:
    """Build the initial health aggregate for a spawned character.

    The entity is only read (kind, id); attaching the aggregate is up to
    the caller.

    Returns:
        CharacterHealth with 0 or 1 current diseases and 0+ immunities.
    """
    cfg = resolve_config(cfg)
    if rng is None:
        rng = np.random.default_rng()
    a = cfg.assignment

    available = resolve_available(catalog, era, region, year, cfg)
    kind = kind_of(entity)
    base_chance = a.animal_base_chance if kind is EntityKind.ANIMAL else a.human_base_chance

    health = CharacterHealth(last_update=GameDate.from_year(year))

    if rng.random() < base_chance and available:
        epidemic = None
        if kind is not EntityKind.ANIMAL:
            epidemic = find_epidemic(catalog, available, era, region, year, cfg)
        disease = choose_disease(kind, available, epidemic, rng, cfg)
        health.add_disease(ActiveDisease.start(disease, year, severity=a.initial_severity))
        logger.debug("%s %s spawned with %s in %d",
                     kind.value, getattr(entity, 'id', '?'), disease.name, year)

    for disease in available:
        if disease.grants_immunity and rng.random() < a.immunity_chance:
            health.immunities.append(Immunity.from_disease(disease, year))

    return health


def assign_specific(
    entity: Any,
    catalog: DiseaseCatalog,
    disease_id: str,
    era: str,
    region: str,
    year: int,
    cfg: Optional[EngineConfig] = None,
) -> Optional[CharacterHealth]:
    """Scripted assignment of one named disease.

    Returns:
        A fresh aggregate holding only that disease, or None for an unknown id.
        An ineligible disease is assigned anyway, with a warning.
    """
    cfg = resolve_config(cfg)
    disease = catalog.get_disease(disease_id)
    if disease is None:
        logger.error("Cannot assign unknown disease '%s'", disease_id)
        return None

    if not is_available(disease, catalog, remap_era(era, cfg), region, year, cfg):
        logger.warning("Disease %s not available in %s %s %d; assigning anyway "
                       "as explicitly requested", disease_id, era, region, year)

    health = CharacterHealth(last_update=GameDate.from_year(year))
    health.add_disease(
        ActiveDisease.start(disease, year, severity=cfg.assignment.initial_severity))
    logger.info("Assigned %s to %s by request", disease.name, getattr(entity, 'id', '?'))
    return health
