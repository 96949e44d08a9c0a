"""Daily disease progression, mortality and recovery.

One call to advance_one_day() moves every active disease of a character
forward by one simulated day. Per disease, in list order:

  1. days_remaining -= 1, days_since_contraction += 1
  2. INCUBATING → SYMPTOMATIC once days_remaining ≤ duration − incubation;
     the disease's stat effects are applied once and recorded
  3. progression stages reached by days_since_contraction are entered in
     order: severity jumps to the stage severity, stage modifiers apply
  4. mortality (severity > 0.8, mortality_rate > 0):
         p = mortality_rate × 0.01 × (1 − (con − 10)/30) × severity  ∈ [0, 0.1]
     death stops processing; remaining diseases are left untouched
  5. course complete (days_remaining ≤ 0):
         p = recovery_chance × (1 + (con − 10)/20) × (1 − 0.5·severity)  ∈ [0.01, 0.95]
     success reverses recorded effects, may grant immunity and moves the
     record to past_diseases; failure renews the course at half duration
     with severity + 0.1

Steps 4 and 5 swap when progression.mortality_before_recovery is off.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

import numpy as np

from histepi import narrative
from histepi.config import EngineConfig, resolve_config
from histepi.types import (
    DEFAULT_CONSTITUTION,
    ActiveDisease,
    CharacterHealth,
    DiseaseDefinition,
    DiseaseStage,
    GameDate,
    Immunity,
    ProgressionStage,
    StatDeltas,
    constitution_of,
    health_of,
)
from histepi.utils import clamp

logger = logging.getLogger(__name__)

DISEASE_STAT_FLOOR = 0
STAGE_STAT_FLOOR = 1


# ═══════════════════════════════════════════════════════════════════════
# RESULT TYPES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class DailyUpdate:
    """Outcome of one daily tick for one character."""
    progression_events: List[str] = field(default_factory=list)
    recovery_events: List[str] = field(default_factory=list)
    mortality_risk: bool = False
    is_dead: bool = False
    cause_of_death: Optional[DiseaseDefinition] = None
    recovered: List[str] = field(default_factory=list)   # disease ids


@dataclass
class ForcedProgression:
    progressed: bool = False
    new_stage: Optional[DiseaseStage] = None
    message: str = ''


# ═══════════════════════════════════════════════════════════════════════
# PROBABILITIES
# ═══════════════════════════════════════════════════════════════════════

def mortality_chance(
    active: ActiveDisease,
    constitution: float = DEFAULT_CONSTITUTION,
    cfg: Optional[EngineConfig] = None,
) -> float:
    """Daily death probability from one disease."""
    p = resolve_config(cfg).progression
    chance = (active.disease.mortality_rate * p.mortality_scale
              * (1.0 - (constitution - DEFAULT_CONSTITUTION) / p.mortality_constitution_scale)
              * active.severity)
    return clamp(chance, 0.0, p.mortality_cap)


def recovery_chance(
    active: ActiveDisease,
    constitution: float = DEFAULT_CONSTITUTION,
    cfg: Optional[EngineConfig] = None,
) -> float:
    """Probability of recovery when a course completes."""
    p = resolve_config(cfg).progression
    chance = (active.disease.recovery_chance
              * (1.0 + (constitution - DEFAULT_CONSTITUTION) / p.recovery_constitution_scale)
              * (1.0 - active.severity * p.recovery_severity_weight))
    return clamp(chance, p.recovery_min, p.recovery_max)


def reached_stage(active: ActiveDisease) -> Tuple[int, Optional[ProgressionStage]]:
    """Latest progression stage reached by days_since_contraction, as (index, stage)."""
    index, stage = -1, None
    for i, s in enumerate(active.disease.progression_stages):
        if active.days_since_contraction >= s.day:
            index, stage = i, s
        else:
            break
    return index, stage


# ═══════════════════════════════════════════════════════════════════════
# STAT EFFECTS
# ═══════════════════════════════════════════════════════════════════════

def _apply_to_stats(entity: Any, deltas: StatDeltas, floor: Optional[int]) -> StatDeltas:
    stats = getattr(entity, 'stats', None)
    if stats is None or not hasattr(stats, 'apply'):
        return StatDeltas()
    return stats.apply(deltas, floor=floor)


def apply_disease_effects(entity: Any, active: ActiveDisease) -> None:
    applied = _apply_to_stats(entity, active.disease.stat_effects, DISEASE_STAT_FLOOR)
    active.applied_effects = active.applied_effects + applied


def remove_disease_effects(entity: Any, active: ActiveDisease) -> None:
    _apply_to_stats(entity, -active.applied_effects, None)
    active.applied_effects = StatDeltas()


def _enter_stages(entity: Any, active: ActiveDisease, events: List[str]) -> None:
    index, _ = reached_stage(active)
    stages = active.disease.progression_stages
    for i in range(active.stage_index + 1, index + 1):
        stage = stages[i]
        active.severity = stage.severity
        applied = _apply_to_stats(entity, stage.stat_modifiers, STAGE_STAT_FLOOR)
        active.applied_effects = active.applied_effects + applied
        active.stage_index = i
        events.append(narrative.stage_description(entity, active.disease, stage))


# ═══════════════════════════════════════════════════════════════════════
# DAILY TICK
# ═══════════════════════════════════════════════════════════════════════

def _roll_mortality(
    entity: Any,
    active: ActiveDisease,
    constitution: float,
    update: DailyUpdate,
    rng: np.random.Generator,
    cfg: EngineConfig,
) -> bool:
    p = cfg.progression
    if active.severity <= p.mortality_severity_threshold or active.disease.mortality_rate <= 0:
        return False
    update.mortality_risk = True
    if rng.random() < mortality_chance(active, constitution, cfg):
        update.is_dead = True
        update.cause_of_death = active.disease
        update.progression_events.append(narrative.death_event(entity, active.disease))
        if hasattr(entity, 'is_dead'):
            entity.is_dead = True
        logger.debug("%s died from %s", getattr(entity, 'id', '?'), active.disease.id)
        return True
    return False


def _resolve_course(
    entity: Any,
    health: CharacterHealth,
    active: ActiveDisease,
    constitution: float,
    year: int,
    update: DailyUpdate,
    rng: np.random.Generator,
    cfg: EngineConfig,
) -> bool:
    """Recovery roll at course end. Returns True when the disease is gone."""
    if active.days_remaining > 0:
        return False
    disease = active.disease
    if rng.random() < recovery_chance(active, constitution, cfg):
        remove_disease_effects(entity, active)
        active.stage = DiseaseStage.RECOVERING
        update.recovery_events.append(narrative.recovery_event(entity, disease))
        update.recovered.append(disease.id)
        if disease.grants_immunity and not health.has_active_immunity(disease.id, year):
            health.immunities.append(Immunity.from_disease(disease, year))
        health.past_diseases.append(active)
        return True
    active.days_remaining = math.ceil(disease.duration_days / 2)
    active.severity = min(1.0, active.severity + cfg.progression.renewal_severity_increase)
    return False


def advance_one_day(
    entity: Any,
    year: int,
    rng: np.random.Generator,
    cfg: Optional[EngineConfig] = None,
    narrative_rng: Optional[np.random.Generator] = None,
) -> DailyUpdate:
    """Advance every active disease of a character by one day.

    Args:
        entity: Character with a health aggregate (and optionally stats).
        year: Current year (immunity stamping and expiry).
        rng: Random generator for mortality and recovery rolls.
        cfg: Engine configuration.
        narrative_rng: Generator for phrase choice; defaults to rng.

    Returns:
        DailyUpdate. The aggregate is mutated in place.
    """
    cfg = resolve_config(cfg)
    narrative_rng = narrative_rng if narrative_rng is not None else rng
    update = DailyUpdate()
    health = health_of(entity)
    if health is None:
        return update

    constitution = constitution_of(entity)
    remaining: List[ActiveDisease] = []
    diseases = list(health.current_diseases)

    for i, active in enumerate(diseases):
        disease = active.disease
        active.days_remaining -= 1
        active.days_since_contraction += 1

        if (active.stage is DiseaseStage.INCUBATING
                and active.days_remaining <= disease.symptom_onset_threshold):
            active.stage = DiseaseStage.SYMPTOMATIC
            apply_disease_effects(entity, active)
            update.progression_events.append(
                narrative.onset_event(entity, disease, narrative_rng))

        if disease.progression_stages:
            _enter_stages(entity, active, update.progression_events)

        if cfg.progression.mortality_before_recovery:
            if _roll_mortality(entity, active, constitution, update, rng, cfg):
                health.current_diseases = remaining + diseases[i:]
                break
            gone = _resolve_course(entity, health, active, constitution, year, update, rng, cfg)
        else:
            gone = _resolve_course(entity, health, active, constitution, year, update, rng, cfg)
            if not gone and _roll_mortality(entity, active, constitution, update, rng, cfg):
                health.current_diseases = remaining + diseases[i:]
                break

        if not gone:
            remaining.append(active)
    else:
        health.current_diseases = remaining

    health.last_update = GameDate.from_year(year)
    return update


def force_progression(
    entity: Any,
    disease_id: str,
    cfg: Optional[EngineConfig] = None,
) -> ForcedProgression:
    """Push one disease to its next stage (scripted events, debugging).

    INCUBATING → SYMPTOMATIC applies stat effects; SYMPTOMATIC → RECOVERING
    lowers severity by 0.3 (floor 0.1).
    """
    p = resolve_config(cfg).progression
    health = health_of(entity)
    if health is None or not health.current_diseases:
        return ForcedProgression(message='No diseases found')
    active = health.find_disease(disease_id)
    if active is None:
        return ForcedProgression(message='Disease not found')

    name = active.disease.name
    if active.stage is DiseaseStage.INCUBATING:
        active.stage = DiseaseStage.SYMPTOMATIC
        apply_disease_effects(entity, active)
        return ForcedProgression(
            progressed=True, new_stage=active.stage,
            message=f"{name} has progressed to symptomatic stage")
    if active.stage is DiseaseStage.SYMPTOMATIC:
        active.stage = DiseaseStage.RECOVERING
        active.severity = max(p.forced_recovery_severity_floor,
                              active.severity - p.forced_recovery_severity_drop)
        return ForcedProgression(
            progressed=True, new_stage=active.stage,
            message=f"{name} has entered recovery stage")
    return ForcedProgression(
        progressed=False, new_stage=active.stage,
        message=f"{name} is already recovering")
