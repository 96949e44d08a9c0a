"""Availability resolver and epidemic detector.

Decides which diseases may exist for an (era, region, year) context:

  1. Remap the game era onto the catalog's era vocabulary
  2. Filter by era list, region list and optional [start_year, end_year]
  3. Before the exchange year, drop diseases that had not yet crossed the
     Atlantic: New World regions lose the pre-contact-New-World set, every
     other region loses the pre-contact-Old-World set

The epidemic detector scans prevalence records for the same remapped era.

All functions here are pure: they read the catalog and config only.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from histepi.catalog import DiseaseCatalog
from histepi.config import EngineConfig, resolve_config
from histepi.types import (
    CATALOG_ERAS,
    DiseaseCategory,
    DiseaseDefinition,
    MedicineDefinition,
)

logger = logging.getLogger(__name__)

DEFAULT_PREVALENCE = 0.05
EPIDEMIC_PREVALENCE_FACTOR = 3.0
ENDEMIC_PREVALENCE_FACTOR = 1.5


def remap_era(era: str, cfg: Optional[EngineConfig] = None) -> str:
    """Map a game era onto the catalog era vocabulary.

    Catalog era names pass through silently; anything else unmapped passes
    through unchanged with a warning.
    """
    cfg = resolve_config(cfg)
    mapping = cfg.catalog.era_mapping
    if era in mapping:
        return mapping[era]
    if era not in CATALOG_ERAS:
        logger.warning("Era '%s' has no catalog mapping; using it unchanged", era)
    return era


def is_new_world(region: str, cfg: Optional[EngineConfig] = None) -> bool:
    return region in resolve_config(cfg).catalog.new_world_regions


def is_available(
    disease: DiseaseDefinition,
    catalog: DiseaseCatalog,
    catalog_era: str,
    region: str,
    year: int,
    cfg: Optional[EngineConfig] = None,
) -> bool:
    """Eligibility test for one disease. `catalog_era` is already remapped."""
    if catalog_era not in disease.available_eras:
        return False
    if region not in disease.available_regions:
        return False
    if disease.start_year is not None and year < disease.start_year:
        return False
    if disease.end_year is not None and year > disease.end_year:
        return False

    exchange = catalog.exchange
    if year < exchange.exchange_year:
        if is_new_world(region, cfg):
            if disease.id in exchange.pre_contact_new_world:
                return False
        elif disease.id in exchange.pre_contact_old_world:
            return False
    return True


def resolve_available(
    catalog: DiseaseCatalog,
    era: str,
    region: str,
    year: int,
    cfg: Optional[EngineConfig] = None,
) -> List[DiseaseDefinition]:
    """All diseases eligible for a context, in catalog order.

    Args:
        catalog: Loaded disease catalog.
        era: Game era (remapped through cfg.catalog.era_mapping).
        region: Cultural region.
        year: Calendar year.
        cfg: Engine configuration (defaults when None).

    Returns:
        List of DiseaseDefinition, possibly empty.
    """
    cfg = resolve_config(cfg)
    catalog_era = remap_era(era, cfg)
    return [
        d for d in catalog.diseases
        if is_available(d, catalog, catalog_era, region, year, cfg)
    ]


def find_epidemic(
    catalog: DiseaseCatalog,
    available: List[DiseaseDefinition],
    era: str,
    region: str,
    year: int,
    cfg: Optional[EngineConfig] = None,
) -> Optional[DiseaseDefinition]:
    """First available disease whose prevalence record lists `year` as an epidemic year."""
    catalog_era = remap_era(era, cfg)
    for disease in available:
        record = catalog.prevalence_for(disease.id, catalog_era, region)
        if record is not None and year in record.epidemic_years:
            logger.info("Epidemic detected: %s in %s/%s %d",
                        disease.name, catalog_era, region, year)
            return disease
    return None


def disease_prevalence(
    catalog: DiseaseCatalog,
    disease_id: str,
    era: str,
    region: str,
    year: int,
    cfg: Optional[EngineConfig] = None,
) -> float:
    """Background incidence of a disease in a context, in [0, 1].

    Base incidence of the matching record (DEFAULT_PREVALENCE without one),
    tripled in epidemic years, ×1.5 in the record's endemic regions.
    """
    record = catalog.prevalence_for(disease_id, remap_era(era, cfg), region)
    if record is None:
        return DEFAULT_PREVALENCE
    prevalence = record.base_incidence
    if year in record.epidemic_years:
        prevalence *= EPIDEMIC_PREVALENCE_FACTOR
    if region in record.endemic_regions:
        prevalence *= ENDEMIC_PREVALENCE_FACTOR
    return min(1.0, prevalence)


def available_treatments(
    catalog: DiseaseCatalog,
    category: DiseaseCategory,
    era: str,
    region: str,
    cfg: Optional[EngineConfig] = None,
) -> List[MedicineDefinition]:
    """Medicines legal in a context that have any effect on a disease category."""
    catalog_era = remap_era(era, cfg)
    category = DiseaseCategory(category)
    return [
        m for m in catalog.medicines
        if catalog_era in m.available_eras
        and region in m.available_regions
        and m.effectiveness_against(category) > 0
    ]
