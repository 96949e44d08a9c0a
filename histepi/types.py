"""Core data types for histepi.

This module is the SINGLE SOURCE OF TRUTH for:
  - Vocabulary enums: DiseaseCategory, TransmissionVector, SeverityTier,
    DiseaseStage, HealthStatus, ProximityType, ContactType, EntityKind, Region
  - Immutable catalog records (DiseaseDefinition, MedicineDefinition, ...)
  - Mutable per-character records (ActiveDisease, Immunity, CharacterHealth)
  - The closed stat-delta field set (STAT_FIELDS, StatDeltas, CharacterStats)
  - Overall Health Status derivation

All modules import these types from here. No other module defines record fields.

Notes:
  - Severity on an ActiveDisease is clamped to [0, 1] on every assignment.
  - CharacterHealth.overall_status is computed on read and never stored.
  - Dates carry the year only; month and day are always 1.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, FrozenSet, List, Mapping, Optional, Tuple

from histepi.utils import clamp


# ═══════════════════════════════════════════════════════════════════════
# ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════════

class DiseaseCategory(str, Enum):
    """Clinical category. Medicine effectiveness is keyed by category."""
    RESPIRATORY      = 'respiratory'
    GASTROINTESTINAL = 'gastrointestinal'
    VECTOR_BORNE     = 'vector_borne'
    CONTACT          = 'contact'
    PARASITIC        = 'parasitic'
    ZOONOTIC         = 'zoonotic'
    TRAUMATIC        = 'traumatic'
    NUTRITIONAL      = 'nutritional'
    TOXIC            = 'toxic'
    NEUROLOGICAL     = 'neurological'


class TransmissionVector(str, Enum):
    """Physical channel by which a disease spreads."""
    AIRBORNE    = 'airborne'
    WATERBORNE  = 'waterborne'
    VECTOR      = 'vector'       # insect / tick / flea bite
    CONTACT     = 'contact'
    ZOONOTIC    = 'zoonotic'
    NUTRITIONAL = 'nutritional'  # deficiency, not contagious
    FOODBORNE   = 'foodborne'    # contaminated food, not contagious
    TRAUMATIC   = 'traumatic'    # injury, not contagious
    PSYCHOGENIC = 'psychogenic'  # mass hysteria, not contagious


class SeverityTier(str, Enum):
    MILD     = 'mild'
    MODERATE = 'moderate'
    SEVERE   = 'severe'
    CRITICAL = 'critical'


class DiseaseStage(str, Enum):
    """Clinical course of an ActiveDisease.

    INCUBATING → SYMPTOMATIC → RECOVERING. The record is dropped on cure,
    which is the terminal state.
    """
    INCUBATING  = 'incubating'
    SYMPTOMATIC = 'symptomatic'
    RECOVERING  = 'recovering'


class HealthStatus(str, Enum):
    HEALTHY  = 'healthy'
    MILD     = 'mild'
    SICK     = 'sick'
    CRITICAL = 'critical'


class ProximityType(str, Enum):
    DISTANT        = 'distant'
    NEARBY         = 'nearby'
    CLOSE          = 'close'
    DIRECT_CONTACT = 'direct_contact'


class ContactType(str, Enum):
    PROXIMITY      = 'proximity'
    DIRECT_CONTACT = 'direct_contact'


class EntityKind(str, Enum):
    PLAYER = 'player'
    NPC    = 'npc'
    ANIMAL = 'animal'


class Region(str, Enum):
    """Cultural regions used by the catalog."""
    EUROPEAN                     = 'EUROPEAN'
    EAST_ASIAN                   = 'EAST_ASIAN'
    MENA                         = 'MENA'
    NORTH_AMERICAN_PRE_COLUMBIAN = 'NORTH_AMERICAN_PRE_COLUMBIAN'
    NORTH_AMERICAN_COLONIAL      = 'NORTH_AMERICAN_COLONIAL'
    OCEANIA                      = 'OCEANIA'
    SOUTH_ASIAN                  = 'SOUTH_ASIAN'
    SOUTH_AMERICAN               = 'SOUTH_AMERICAN'
    SUB_SAHARAN_AFRICAN          = 'SUB_SAHARAN_AFRICAN'


# Era vocabulary of the catalog (game eras are remapped onto these).
CATALOG_ERAS: Tuple[str, ...] = (
    'PREHISTORIC',
    'ANCIENT',
    'MEDIEVAL',
    'EARLY_MODERN',
    'INDUSTRIAL',
    'MODERN',
    'FUTURE',
)


# ═══════════════════════════════════════════════════════════════════════
# HEALTH STATUS THRESHOLDS
# ═══════════════════════════════════════════════════════════════════════

CRITICAL_SEVERITY = 0.8   # any single disease at or above → CRITICAL
SICK_TOTAL = 1.5          # summed severity at or above → SICK
MILD_TOTAL = 0.5          # summed severity at or above → MILD

DEFAULT_CONSTITUTION = 10.0


# ═══════════════════════════════════════════════════════════════════════
# DATES
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class GameDate:
    """In-game date. Only the year is modelled."""
    year: int
    month: int = 1
    day: int = 1

    @classmethod
    def from_year(cls, year: int) -> 'GameDate':
        return cls(year=int(year))


# ═══════════════════════════════════════════════════════════════════════
# STATS
# ═══════════════════════════════════════════════════════════════════════

STAT_FIELDS: Tuple[str, ...] = (
    'health',
    'fatigue',
    'strength',
    'intelligence',
    'charisma',
    'speed',
)


@dataclass(frozen=True)
class StatDeltas:
    """Signed changes to the closed set of character stats."""
    health: int = 0
    fatigue: int = 0
    strength: int = 0
    intelligence: int = 0
    charisma: int = 0
    speed: int = 0

    def __add__(self, other: 'StatDeltas') -> 'StatDeltas':
        return StatDeltas(**{
            name: getattr(self, name) + getattr(other, name)
            for name in STAT_FIELDS
        })

    def __neg__(self) -> 'StatDeltas':
        return StatDeltas(**{name: -getattr(self, name) for name in STAT_FIELDS})

    @property
    def is_zero(self) -> bool:
        return all(getattr(self, name) == 0 for name in STAT_FIELDS)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> 'StatDeltas':
        """Build from a mapping. Unknown stat names raise ValueError."""
        if not data:
            return cls()
        unknown = set(data) - set(STAT_FIELDS)
        if unknown:
            raise ValueError(
                f"Unknown stat name(s) {sorted(unknown)}; "
                f"expected a subset of {STAT_FIELDS}"
            )
        return cls(**{k: int(v) for k, v in data.items()})


ZERO_DELTAS = StatDeltas()


@dataclass
class CharacterStats:
    """Mutable stat block of a character.

    Constitution is read by the engine; the six STAT_FIELDS are written
    only through apply().
    """
    constitution: float = DEFAULT_CONSTITUTION
    health: int = 100
    fatigue: int = 0
    strength: int = 10
    intelligence: int = 10
    charisma: int = 10
    speed: int = 10

    def apply(self, deltas: StatDeltas, floor: Optional[int] = None) -> StatDeltas:
        """Add deltas to the stat block, clamping each stat at floor.

        Returns:
            The deltas actually applied after clamping. Applying the
            negation of the return value restores the previous values
            exactly as long as nothing else touched the stats.
        """
        applied = {}
        for name in STAT_FIELDS:
            delta = getattr(deltas, name)
            before = getattr(self, name)
            after = before + delta
            if floor is not None and delta < 0:
                after = max(min(before, floor), after)
            setattr(self, name, after)
            applied[name] = after - before
        return StatDeltas(**applied)


# ═══════════════════════════════════════════════════════════════════════
# CATALOG RECORDS (immutable)
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Symptom:
    id: str
    name: str
    description: str = ''
    severity: float = 0.0


@dataclass(frozen=True)
class ProgressionStage:
    """Milestone within a disease course, reached at `day` since contraction.

    `day` may be fractional for courses shorter than a few days.
    """
    day: float
    symptoms: Tuple[str, ...] = ()
    severity: float = 0.0
    stat_modifiers: StatDeltas = ZERO_DELTAS


@dataclass(frozen=True)
class NarrativeHints:
    """Observer-specific symptom phrases."""
    npc: Tuple[str, ...] = ()      # "is coughing loudly"
    animal: Tuple[str, ...] = ()   # "appears lethargic"
    player: Tuple[str, ...] = ()   # "You feel feverish"


@dataclass(frozen=True)
class DiseaseDefinition:
    """Immutable catalog record for one disease."""
    id: str
    name: str
    category: DiseaseCategory
    severity_tier: SeverityTier
    available_eras: FrozenSet[str]
    available_regions: FrozenSet[str]
    transmission_vector: TransmissionVector
    incubation_days: int
    duration_days: int
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    base_transmission_rate: float = 0.0
    proximity_multiplier: float = 1.0
    direct_contact_multiplier: float = 1.0
    symptoms: Tuple[Symptom, ...] = ()
    mortality_rate: float = 0.0
    stat_effects: StatDeltas = ZERO_DELTAS
    recovery_chance: float = 0.5
    grants_immunity: bool = False
    immunity_duration_days: int = 0   # <= 0 = permanent
    progression_stages: Tuple[ProgressionStage, ...] = ()
    narrative_hints: NarrativeHints = field(default_factory=NarrativeHints)
    badge_icon: str = ''
    outline_color: str = ''
    is_animal_disease: bool = False

    @property
    def immunity_is_permanent(self) -> bool:
        return self.immunity_duration_days <= 0

    @property
    def symptom_onset_threshold(self) -> int:
        """days_remaining at or below which an incubating course turns symptomatic."""
        return self.duration_days - self.incubation_days


@dataclass(frozen=True)
class PrevalenceRecord:
    """Background incidence of a disease for one era/region pair."""
    disease_id: str
    era: str
    region: str
    base_incidence: float = 0.0
    epidemic_years: FrozenSet[int] = frozenset()
    endemic_regions: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class MedicineDefinition:
    """Immutable catalog record for one medicine.

    effectiveness is exhaustive over DiseaseCategory: every category carries
    an explicit entry, zero meaning "no effect".
    """
    id: str
    name: str
    available_eras: FrozenSet[str]
    available_regions: FrozenSet[str]
    effectiveness: Mapping[DiseaseCategory, float]
    side_effects: StatDeltas = ZERO_DELTAS
    cost: int = 0
    description: str = ''

    def __post_init__(self):
        missing = set(DiseaseCategory) - set(self.effectiveness)
        if missing:
            raise ValueError(
                f"Medicine {self.id}: effectiveness missing categories "
                f"{sorted(c.value for c in missing)}"
            )
        object.__setattr__(self, 'effectiveness', MappingProxyType(dict(self.effectiveness)))

    def effectiveness_against(self, category: DiseaseCategory) -> float:
        return self.effectiveness[DiseaseCategory(category)]


@dataclass(frozen=True)
class ExchangeRestriction:
    """Columbian Exchange restriction sets.

    pre_contact_new_world: diseases absent from the Americas before contact.
    pre_contact_old_world: diseases absent from Afro-Eurasia before contact.
    """
    pre_contact_new_world: FrozenSet[str] = frozenset()
    pre_contact_old_world: FrozenSet[str] = frozenset()
    exchange_year: int = 1492

    def __post_init__(self):
        overlap = self.pre_contact_new_world & self.pre_contact_old_world
        if overlap:
            raise ValueError(
                f"Columbian Exchange sets must be disjoint, both contain {sorted(overlap)}"
            )


# ═══════════════════════════════════════════════════════════════════════
# PER-CHARACTER RECORDS (mutable)
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class ActiveDisease:
    """A live infection on one character."""
    disease: DiseaseDefinition
    contracted_date: GameDate
    stage: DiseaseStage = DiseaseStage.INCUBATING
    days_remaining: int = 0
    severity: float = 0.5
    days_since_contraction: int = 0
    source_id: Optional[str] = None
    applied_effects: StatDeltas = ZERO_DELTAS
    stage_index: int = -1   # last progression stage entered

    def __setattr__(self, name: str, value: Any) -> None:
        if name == 'severity':
            value = clamp(float(value), 0.0, 1.0)
        object.__setattr__(self, name, value)

    @classmethod
    def start(
        cls,
        disease: DiseaseDefinition,
        year: int,
        severity: float = 0.5,
        source_id: Optional[str] = None,
    ) -> 'ActiveDisease':
        """Fresh incubating course with the full duration ahead."""
        return cls(
            disease=disease,
            contracted_date=GameDate.from_year(year),
            stage=DiseaseStage.INCUBATING,
            days_remaining=disease.duration_days,
            severity=severity,
            source_id=source_id,
        )

    @property
    def disease_id(self) -> str:
        return self.disease.id


@dataclass
class Immunity:
    disease_id: str
    acquired_date: GameDate
    expiration_date: Optional[GameDate] = None   # None = permanent

    @classmethod
    def from_disease(cls, disease: DiseaseDefinition, year: int) -> 'Immunity':
        """Immunity acquired in `year`.

        Finite durations round up to whole years, so even a short immunity
        protects for the rest of the acquisition year.
        """
        expiration = None
        if not disease.immunity_is_permanent:
            years = max(1, math.ceil(disease.immunity_duration_days / 365))
            expiration = GameDate.from_year(year + years)
        return cls(
            disease_id=disease.id,
            acquired_date=GameDate.from_year(year),
            expiration_date=expiration,
        )

    def is_active(self, year: int) -> bool:
        if self.expiration_date is None:
            return True
        return year < self.expiration_date.year


@dataclass(frozen=True)
class ExposureEvent:
    """Log entry: a character was exposed, whether or not infection followed."""
    disease_id: str
    date: GameDate
    transmission_vector: TransmissionVector
    source_id: Optional[str]
    exposure_strength: float
    proximity: ProximityType


def overall_health_status(diseases: List[ActiveDisease]) -> HealthStatus:
    """Classify a list of active diseases.

    Any severity ≥ 0.8 → CRITICAL; else summed severity ≥ 1.5 → SICK;
    else summed severity ≥ 0.5 → MILD; else HEALTHY.
    """
    if not diseases:
        return HealthStatus.HEALTHY
    severities = [d.severity for d in diseases]
    total = math.fsum(severities)
    if max(severities) >= CRITICAL_SEVERITY:
        return HealthStatus.CRITICAL
    if total >= SICK_TOTAL:
        return HealthStatus.SICK
    if total >= MILD_TOTAL:
        return HealthStatus.MILD
    return HealthStatus.HEALTHY


@dataclass
class CharacterHealth:
    """Per-character health aggregate, mutated in place by the engine."""
    current_diseases: List[ActiveDisease] = field(default_factory=list)
    immunities: List[Immunity] = field(default_factory=list)
    exposure_history: List[ExposureEvent] = field(default_factory=list)
    past_diseases: List[ActiveDisease] = field(default_factory=list)
    last_update: Optional[GameDate] = None

    @property
    def overall_status(self) -> HealthStatus:
        return overall_health_status(self.current_diseases)

    def find_disease(self, disease_id: str) -> Optional[ActiveDisease]:
        for active in self.current_diseases:
            if active.disease.id == disease_id:
                return active
        return None

    def has_disease(self, disease_id: str) -> bool:
        return self.find_disease(disease_id) is not None

    def add_disease(self, active: ActiveDisease) -> bool:
        """Add an infection. A second record for the same disease is rejected."""
        if self.has_disease(active.disease.id):
            return False
        self.current_diseases.append(active)
        return True

    def has_active_immunity(self, disease_id: str, year: int) -> bool:
        return any(
            imm.disease_id == disease_id and imm.is_active(year)
            for imm in self.immunities
        )


# ═══════════════════════════════════════════════════════════════════════
# CHARACTERS
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class Character:
    """Minimal character model: player, NPC or animal."""
    id: str
    kind: EntityKind = EntityKind.NPC
    name: str = ''
    species_name: str = ''
    stats: CharacterStats = field(default_factory=CharacterStats)
    health: Optional[CharacterHealth] = None
    x: float = 0.0
    y: float = 0.0
    is_dead: bool = False


def health_of(entity: Any) -> Optional[CharacterHealth]:
    """Return the health aggregate of a host entity.

    Host objects may store it as `disease_health` (players, animals) or as
    `health` (NPCs); `disease_health` wins when both exist.
    """
    health = getattr(entity, 'disease_health', None)
    if not isinstance(health, CharacterHealth):
        health = getattr(entity, 'health', None)
    return health if isinstance(health, CharacterHealth) else None


def attach_health(entity: Any, health: CharacterHealth) -> None:
    """Store a health aggregate on the field the entity already uses."""
    if hasattr(entity, 'disease_health'):
        entity.disease_health = health
    else:
        entity.health = health


def constitution_of(entity: Any) -> float:
    stats = getattr(entity, 'stats', None)
    constitution = getattr(stats, 'constitution', None) if stats is not None else None
    return float(constitution) if constitution else DEFAULT_CONSTITUTION


def kind_of(entity: Any) -> EntityKind:
    kind = getattr(entity, 'kind', None)
    if kind is None:
        return EntityKind.ANIMAL if getattr(entity, 'species_name', '') else EntityKind.NPC
    return EntityKind(kind)

