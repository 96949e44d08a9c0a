"""Gameplay restrictions derived from disease state.

Each active disease maps to a restriction record through its band severity
(the severity of the latest progression stage reached, or the current
severity for diseases without stages):

    band severity   level      movement  voice  avoidance  terminal
    ≤ 0.30          early        ×1        0       0
    ≤ 0.50          moderate     ×1        0       1
    ≤ 0.70          severe       ×1        1       2
    ≤ 0.85          critical     ×1        2       3
    > 0.85          terminal     ×60       3       3          yes

Respiratory diseases additionally lose voice with severity; contact
diseases raise social avoidance. The character's restrictions are the
worst over all diseases.

StageChangeTracker turns level changes into one-off notifications.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from histepi.progression import reached_stage
from histepi.types import ActiveDisease, CharacterHealth, DiseaseCategory


class RestrictionLevel(str, Enum):
    EARLY    = 'early'
    MODERATE = 'moderate'
    SEVERE   = 'severe'
    CRITICAL = 'critical'
    TERMINAL = 'terminal'

    @property
    def rank(self) -> int:
        return _LEVEL_ORDER.index(self)


_LEVEL_ORDER = [
    RestrictionLevel.EARLY,
    RestrictionLevel.MODERATE,
    RestrictionLevel.SEVERE,
    RestrictionLevel.CRITICAL,
    RestrictionLevel.TERMINAL,
]

TERMINAL_MOVEMENT_PENALTY = 60.0

# (upper bound, level, voice loss, social avoidance)
_SEVERITY_BANDS: List[Tuple[float, RestrictionLevel, int, int]] = [
    (0.30, RestrictionLevel.EARLY,    0, 0),
    (0.50, RestrictionLevel.MODERATE, 0, 1),
    (0.70, RestrictionLevel.SEVERE,   1, 2),
    (0.85, RestrictionLevel.CRITICAL, 2, 3),
]


@dataclass
class GameplayRestrictions:
    movement_penalty: float = 1.0      # 1.0 = normal, 60.0 = 60x slower
    voice_loss: int = 0                # 0 normal .. 3 no speech
    social_avoidance: int = 0          # 0 normal .. 3 shunned
    is_terminal: bool = False
    symptom_description: str = ''
    level: RestrictionLevel = RestrictionLevel.EARLY


def generic_symptom_text(severity: float) -> str:
    if severity > 0.8:
        return 'extremely ill and weakened'
    if severity > 0.6:
        return 'visibly sick and struggling'
    if severity > 0.4:
        return 'noticeably unwell'
    if severity > 0.2:
        return 'slightly under the weather'
    return ''


def band_severity(active: ActiveDisease) -> float:
    _, stage = reached_stage(active)
    return stage.severity if stage is not None else active.severity


def severity_restrictions(severity: float) -> GameplayRestrictions:
    """Restrictions implied by a severity value alone."""
    for upper, level, voice, avoidance in _SEVERITY_BANDS:
        if severity <= upper:
            return GameplayRestrictions(
                voice_loss=voice, social_avoidance=avoidance, level=level)
    return GameplayRestrictions(
        movement_penalty=TERMINAL_MOVEMENT_PENALTY,
        voice_loss=3,
        social_avoidance=3,
        is_terminal=True,
        level=RestrictionLevel.TERMINAL,
    )


def disease_restrictions(active: ActiveDisease) -> GameplayRestrictions:
    """Restrictions from one active disease."""
    severity = band_severity(active)
    r = severity_restrictions(severity)
    category = active.disease.category

    if category is DiseaseCategory.RESPIRATORY:
        voice = 0
        if active.severity > 0.3:
            voice = 1
        if active.severity > 0.6:
            voice = 2
        if active.severity > 0.8:
            voice = 3
        r.voice_loss = max(r.voice_loss, voice)
    elif category is DiseaseCategory.CONTACT:
        avoidance = 0
        if active.severity > 0.2:
            avoidance = 2
        if active.severity > 0.5:
            avoidance = 3
        r.social_avoidance = max(r.social_avoidance, avoidance)

    r.symptom_description = generic_symptom_text(severity)
    return r


def calculate_restrictions(health: Optional[CharacterHealth]) -> GameplayRestrictions:
    """Worst-case restrictions over every active disease."""
    overall = GameplayRestrictions()
    if health is None or not health.current_diseases:
        return overall

    symptoms = []
    for active in health.current_diseases:
        r = disease_restrictions(active)
        overall.movement_penalty = max(overall.movement_penalty, r.movement_penalty)
        overall.voice_loss = max(overall.voice_loss, r.voice_loss)
        overall.social_avoidance = max(overall.social_avoidance, r.social_avoidance)
        overall.is_terminal = overall.is_terminal or r.is_terminal
        if r.level.rank > overall.level.rank:
            overall.level = r.level
        if r.symptom_description:
            symptoms.append(r.symptom_description)
    overall.symptom_description = ', '.join(symptoms)
    return overall


# ═══════════════════════════════════════════════════════════════════════
# STAGE-CHANGE NOTIFICATIONS
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StageNotification:
    character_id: str
    disease_id: str
    level: RestrictionLevel
    title: str
    description: str
    icon: str
    days_sick: int


@dataclass
class StageChangeTracker:
    """Remembers the last restriction level per (character, disease)."""
    _levels: Dict[Tuple[str, str], RestrictionLevel] = field(default_factory=dict)

    def check(self, character_id: str, health: Optional[CharacterHealth]) -> List[StageNotification]:
        """Notifications for diseases that reached a more severe level than before.

        The early level never notifies.
        """
        if health is None:
            return []
        events = []
        for active in health.current_diseases:
            key = (character_id, active.disease.id)
            level = disease_restrictions(active).level
            previous = self._levels.get(key, RestrictionLevel.EARLY)
            if level.rank > previous.rank:
                events.append(StageNotification(
                    character_id=character_id,
                    disease_id=active.disease.id,
                    level=level,
                    title=f"{active.disease.name}: {level.value} stage",
                    description=(f"After {active.days_since_contraction} days, your "
                                 f"{active.disease.name} has become {level.value}."),
                    icon=active.disease.badge_icon,
                    days_sick=active.days_since_contraction,
                ))
            self._levels[key] = level
        return events

    def forget(self, character_id: str, disease_id: Optional[str] = None) -> None:
        """Drop remembered levels for a character (one disease, or all)."""
        for key in list(self._levels):
            if key[0] == character_id and (disease_id is None or key[1] == disease_id):
                del self._levels[key]
