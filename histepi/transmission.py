"""Disease transmission between characters and from the environment.

Three entry points, all built on attempt_transmission():

  - check_proximity_transmission: symptomatic diseases of a nearby source
  - check_direct_contact:         every active disease of a touched source
  - check_terrain_transmission:   environmental exposure on risky terrain

narrative_hints_near() gathers the visible-symptom hints around a point
without exposing anyone.

Infection probability for proximity contact:

    p = base_rate × exposure_strength × proximity_multiplier × resistance
    resistance = 1 − (constitution − 10) / constitution_scale

clamped to [0, 1]. Direct contact transmits unconditionally unless
transmission.guaranteed_direct_contact is disabled, in which case the same
formula is used with the direct-contact multiplier.

Every encounter appends its exposure events to both parties' exposure
histories, whether or not infection followed.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

import numpy as np

from histepi import narrative
from histepi.catalog import DiseaseCatalog
from histepi.config import EngineConfig, resolve_config
from histepi.types import (
    DEFAULT_CONSTITUTION,
    ActiveDisease,
    CharacterHealth,
    ContactType,
    DiseaseDefinition,
    DiseaseStage,
    ExposureEvent,
    GameDate,
    ProximityType,
    attach_health,
    constitution_of,
    health_of,
)
from histepi.utils import clamp

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
# RESULT TYPES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class TransmissionResult:
    transmitted: bool = False
    new_disease: Optional[ActiveDisease] = None


@dataclass
class EncounterResult:
    """Outcome of one proximity or contact encounter.

    hints holds proximity hints ("You passed near ...") for proximity
    encounters and visible-symptom sentences for direct contact.
    """
    transmitted: bool = False
    exposures: List[ExposureEvent] = field(default_factory=list)
    hints: List[str] = field(default_factory=list)
    new_diseases: List[ActiveDisease] = field(default_factory=list)


@dataclass
class TerrainResult:
    transmitted: bool = False
    disease: Optional[DiseaseDefinition] = None
    message: str = ''


# ═══════════════════════════════════════════════════════════════════════
# PRIMITIVES
# ═══════════════════════════════════════════════════════════════════════

def resistance_factor(constitution: float, scale: float = 20.0) -> float:
    """Constitution modifier on infection chance (1.0 at constitution 10)."""
    return 1.0 - (constitution - DEFAULT_CONSTITUTION) / scale


def infection_probability(
    disease: DiseaseDefinition,
    contact_type: ContactType,
    exposure_strength: float,
    constitution: float,
    cfg: Optional[EngineConfig] = None,
) -> float:
    """Probabilistic infection chance, clamped to [0, 1]."""
    t = resolve_config(cfg).transmission
    multiplier = (
        disease.direct_contact_multiplier
        if contact_type is ContactType.DIRECT_CONTACT
        else disease.proximity_multiplier
    )
    p = (disease.base_transmission_rate * exposure_strength * multiplier
         * resistance_factor(constitution, t.constitution_scale))
    return clamp(p, 0.0, 1.0)


def attempt_transmission(
    source: Any,
    target: Any,
    disease: DiseaseDefinition,
    contact_type: ContactType,
    exposure_strength: float,
    year: int,
    rng: np.random.Generator,
    cfg: Optional[EngineConfig] = None,
) -> TransmissionResult:
    """Decide whether one exposure infects the target.

    Does not mutate either party; the caller adds the new disease.

    Returns:
        TransmissionResult; new_disease is a fresh incubating course tagged
        with the source id when transmitted.
    """
    cfg = resolve_config(cfg)
    contact_type = ContactType(contact_type)
    health = health_of(target)

    if health is not None:
        if health.has_active_immunity(disease.id, year):
            return TransmissionResult(transmitted=False)
        if health.has_disease(disease.id):
            return TransmissionResult(transmitted=False)

    if (contact_type is ContactType.DIRECT_CONTACT
            and cfg.transmission.guaranteed_direct_contact):
        transmitted = True
    else:
        p = infection_probability(
            disease, contact_type, exposure_strength, constitution_of(target), cfg)
        transmitted = bool(rng.random() < p)

    if not transmitted:
        return TransmissionResult(transmitted=False)
    return TransmissionResult(
        transmitted=True,
        new_disease=ActiveDisease.start(
            disease, year,
            severity=cfg.transmission.initial_severity,
            source_id=getattr(source, 'id', None),
        ),
    )


def exposure_event(
    disease: DiseaseDefinition,
    source: Any,
    proximity: ProximityType,
    year: int,
    cfg: Optional[EngineConfig] = None,
) -> ExposureEvent:
    strengths = resolve_config(cfg).transmission.exposure_strengths
    return ExposureEvent(
        disease_id=disease.id,
        date=GameDate.from_year(year),
        transmission_vector=disease.transmission_vector,
        source_id=getattr(source, 'id', None),
        exposure_strength=strengths[proximity.value],
        proximity=proximity,
    )


def _ensure_health(entity: Any, year: int) -> CharacterHealth:
    health = health_of(entity)
    if health is None:
        health = CharacterHealth(last_update=GameDate.from_year(year))
        attach_health(entity, health)
    return health


def _log_exposures(source: Any, target: Any, events: List[ExposureEvent], year: int) -> None:
    if not events:
        return
    _ensure_health(target, year).exposure_history.extend(events)
    source_health = health_of(source)
    if source_health is not None:
        source_health.exposure_history.extend(events)


# ═══════════════════════════════════════════════════════════════════════
# ENTRY POINTS
# ═══════════════════════════════════════════════════════════════════════

def check_proximity_transmission(
    source: Any,
    target: Any,
    distance: float,
    year: int,
    rng: np.random.Generator,
    cfg: Optional[EngineConfig] = None,
) -> EncounterResult:
    """Expose target to every symptomatic disease of a source within range.

    Args:
        source: Character carrying diseases.
        target: Character being exposed.
        distance: Separation in tiles.
        year: Current year.
        rng: Random generator (transmission rolls and hint choice).
        cfg: Engine configuration.
    """
    cfg = resolve_config(cfg)
    t = cfg.transmission
    result = EncounterResult()
    source_health = health_of(source)
    if distance > t.proximity_radius or source_health is None:
        return result

    proximity = ProximityType.CLOSE if distance <= t.close_radius else ProximityType.NEARBY
    for active in list(source_health.current_diseases):
        if active.stage is not DiseaseStage.SYMPTOMATIC:
            continue
        disease = active.disease

        hint = narrative.proximity_hint(source, disease, rng)
        if hint:
            result.hints.append(hint)

        event = exposure_event(disease, source, proximity, year, cfg)
        result.exposures.append(event)

        attempt = attempt_transmission(
            source, target, disease, ContactType.PROXIMITY,
            event.exposure_strength, year, rng, cfg)
        if attempt.transmitted and _ensure_health(target, year).add_disease(attempt.new_disease):
            result.transmitted = True
            result.new_diseases.append(attempt.new_disease)

    _log_exposures(source, target, result.exposures, year)
    return result


def check_direct_contact(
    source: Any,
    target: Any,
    year: int,
    rng: np.random.Generator,
    cfg: Optional[EngineConfig] = None,
) -> EncounterResult:
    """Expose target to every active disease of a source it touched.

    Symptomatic diseases also contribute one or two visible-symptom sentences.
    """
    cfg = resolve_config(cfg)
    result = EncounterResult()
    source_health = health_of(source)
    if source_health is None:
        return result

    for active in list(source_health.current_diseases):
        disease = active.disease
        if active.stage is DiseaseStage.SYMPTOMATIC:
            result.hints.extend(narrative.visible_symptoms(
                source, disease, rng, cfg.transmission.max_visible_symptoms))

        event = exposure_event(disease, source, ProximityType.DIRECT_CONTACT, year, cfg)
        result.exposures.append(event)

        attempt = attempt_transmission(
            source, target, disease, ContactType.DIRECT_CONTACT,
            event.exposure_strength, year, rng, cfg)
        if attempt.transmitted and _ensure_health(target, year).add_disease(attempt.new_disease):
            result.transmitted = True
            result.new_diseases.append(attempt.new_disease)

    _log_exposures(source, target, result.exposures, year)
    return result


def narrative_hints_near(
    entities: Iterable[Any],
    x: float,
    y: float,
    rng: np.random.Generator,
    cfg: Optional[EngineConfig] = None,
) -> List[str]:
    """Proximity hints for every symptomatic entity within range of (x, y).

    Read-only: no exposure is logged and nothing is transmitted. Entities
    without coordinates are treated as standing at the origin.
    """
    radius = resolve_config(cfg).transmission.proximity_radius
    hints = []
    for entity in entities:
        health = health_of(entity)
        if health is None:
            continue
        distance = math.hypot(getattr(entity, 'x', 0.0) - x, getattr(entity, 'y', 0.0) - y)
        if distance > radius:
            continue
        for active in health.current_diseases:
            if active.stage is not DiseaseStage.SYMPTOMATIC:
                continue
            hint = narrative.proximity_hint(entity, active.disease, rng)
            if hint:
                hints.append(hint)
    return hints


def check_terrain_transmission(
    terrain: str,
    character: Any,
    catalog: DiseaseCatalog,
    year: int,
    rng: np.random.Generator,
    cfg: Optional[EngineConfig] = None,
) -> TerrainResult:
    """Daily environmental exposure for a character standing on `terrain`.

    The first terrain rule listing the terrain applies: one of its diseases
    is drawn uniformly, then infects with the rule's daily chance. Disease
    records come from the catalog; an id missing from it never transmits.
    """
    cfg = resolve_config(cfg)
    terrain_key = (terrain or '').lower()
    rule = next((r for r in cfg.terrain.rules if terrain_key in r.terrains), None)
    if rule is None:
        return TerrainResult()

    disease_id = rule.diseases[int(rng.integers(len(rule.diseases)))]
    if rng.random() >= rule.daily_chance:
        return TerrainResult()

    disease = catalog.get_disease(disease_id)
    if disease is None:
        logger.debug("Terrain disease %s is not in the catalog", disease_id)
        return TerrainResult()

    health = _ensure_health(character, year)
    if health.has_disease(disease.id) or health.has_active_immunity(disease.id, year):
        return TerrainResult()

    health.add_disease(ActiveDisease.start(
        disease, year, severity=cfg.transmission.initial_severity))
    return TerrainResult(
        transmitted=True,
        disease=disease,
        message=narrative.terrain_message(terrain_key, disease),
    )
