"""Narrative strings for the presentation layer.

Pure string builders over catalog hint lists. Random phrase choice takes an
explicit generator so replays produce identical text.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

import numpy as np

from histepi.types import DiseaseDefinition, EntityKind, ProgressionStage, kind_of


def display_name(entity: Any) -> str:
    """Name an observer would use: NPC name, animal species, or a fallback."""
    if kind_of(entity) is EntityKind.ANIMAL:
        return getattr(entity, 'species_name', '') or 'an animal'
    return getattr(entity, 'name', '') or 'a stranger'


def _observer_hints(entity: Any, disease: DiseaseDefinition) -> Sequence[str]:
    if kind_of(entity) is EntityKind.ANIMAL:
        return disease.narrative_hints.animal
    return disease.narrative_hints.npc


def _choice(rng: np.random.Generator, phrases: Sequence[str]) -> str:
    return phrases[int(rng.integers(len(phrases)))]


def proximity_hint(
    source: Any, disease: DiseaseDefinition, rng: np.random.Generator,
) -> Optional[str]:
    """'You passed near X. They ...' or None when the disease has no hints."""
    phrases = _observer_hints(source, disease)
    if not phrases:
        return None
    return f"You passed near {display_name(source)}. They {_choice(rng, phrases)}."


def visible_symptoms(
    source: Any,
    disease: DiseaseDefinition,
    rng: np.random.Generator,
    max_count: int = 2,
) -> List[str]:
    """One to max_count distinct visible symptom sentences."""
    phrases = _observer_hints(source, disease)
    if not phrases:
        return []
    count = min(len(phrases), int(rng.integers(1, max_count + 1)))
    picks = rng.choice(len(phrases), size=count, replace=False)
    return [f"They {phrases[int(i)]}." for i in picks]


def onset_event(
    entity: Any, disease: DiseaseDefinition, rng: np.random.Generator,
) -> str:
    """Message for the incubating → symptomatic transition."""
    if kind_of(entity) is EntityKind.PLAYER:
        phrases = disease.narrative_hints.player
        if phrases:
            return _choice(rng, phrases)
        return f"You feel the first symptoms of {disease.name}."
    return f"{getattr(entity, 'id', '?')} is showing symptoms of {disease.name}"


def stage_description(
    entity: Any, disease: DiseaseDefinition, stage: ProgressionStage,
) -> str:
    """Message for entering a progression stage, worded by stage severity."""
    symptoms = ', '.join(stage.symptoms)
    if kind_of(entity) is not EntityKind.PLAYER:
        name = getattr(entity, 'name', '') or getattr(entity, 'id', '?')
        return f"{name}'s {disease.name} has progressed: {symptoms}"
    if stage.severity >= 0.9:
        return f"Your {disease.name} has reached a critical stage. You experience {symptoms}."
    if stage.severity >= 0.6:
        return f"Your {disease.name} worsens. You now have {symptoms}."
    if stage.severity <= 0.3:
        return f"Your {disease.name} seems to be improving. You feel {symptoms}."
    return f"Your {disease.name} progresses. You experience {symptoms}."


def recovery_event(entity: Any, disease: DiseaseDefinition) -> str:
    if kind_of(entity) is EntityKind.PLAYER:
        return f"You have recovered from {disease.name}."
    return f"{getattr(entity, 'id', '?')} has recovered from {disease.name}"


def death_event(entity: Any, disease: DiseaseDefinition) -> str:
    if kind_of(entity) is EntityKind.PLAYER:
        return f"You have succumbed to {disease.name}. The disease has claimed your life."
    name = getattr(entity, 'name', '') or getattr(entity, 'id', '?')
    return f"{name} has died from {disease.name}"


def terrain_message(terrain: str, disease: DiseaseDefinition) -> str:
    return f"The conditions of the {terrain} have given you {disease.name}!"
