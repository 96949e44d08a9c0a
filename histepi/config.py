"""Configuration system for histepi.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → scenario override → programmatic overrides

Every tunable constant of the disease engine (base infection chances,
exposure strengths, mortality and recovery scaling, treatment scaling,
terrain rules) lives in one of the sections below. The defaults reproduce
the game's shipped behaviour; configs/default.yaml mirrors them.

Design decisions:
  - Direct contact always transmits unless guaranteed_direct_contact is off
  - Mortality is resolved before recovery in the same tick
  - Game eras are remapped onto catalog eras through catalog.era_mapping
"""

from __future__ import annotations

import copy
import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from histepi.types import CATALOG_ERAS, ProximityType


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimulationSection:
    """Top-level control."""
    seed: int = 42


@dataclass
class CatalogSection:
    """Catalog source and era/region vocabulary."""
    path: Optional[str] = None   # None → bundled histepi/data/catalog.yaml
    era_mapping: Dict[str, str] = field(default_factory=lambda: {
        'PREHISTORY': 'PREHISTORIC',
        'ANTIQUITY': 'ANCIENT',
        'MEDIEVAL': 'MEDIEVAL',
        'RENAISSANCE_EARLY_MODERN': 'EARLY_MODERN',
        'INDUSTRIAL_ERA': 'INDUSTRIAL',
        'MODERN_ERA': 'MODERN',
        'FUTURE_ERA': 'FUTURE',
    })
    new_world_regions: List[str] = field(default_factory=lambda: [
        'NORTH_AMERICAN_PRE_COLUMBIAN',
        'SOUTH_AMERICAN',
    ])


@dataclass
class AssignmentSection:
    """Spawn-time disease assignment."""
    animal_base_chance: float = 0.5
    human_base_chance: float = 0.33
    animal_disease_preference: float = 0.8   # P(draw from animal pool | animal infected)
    epidemic_preference: float = 0.8         # P(draw the epidemic | human infected)
    common_disease_id: str = 'COMMON_COLD'
    common_disease_preference: float = 0.5   # P(draw common disease | no epidemic)
    immunity_chance: float = 0.1             # per immunity-granting disease
    initial_severity: float = 0.5
    animal_disease_ids: List[str] = field(default_factory=lambda: [
        'RABIES', 'ANTHRAX', 'GLANDERS', 'BRUCELLOSIS', 'TULAREMIA',
    ])


@dataclass
class TransmissionSection:
    """Character-to-character transmission."""
    guaranteed_direct_contact: bool = True
    proximity_radius: float = 1.0
    close_radius: float = 0.5
    exposure_strengths: Dict[str, float] = field(default_factory=lambda: {
        'distant': 0.1,
        'nearby': 0.3,
        'close': 0.6,
        'direct_contact': 1.0,
    })
    constitution_scale: float = 20.0     # resistance = 1 - (con - 10) / scale
    initial_severity: float = 0.5
    max_visible_symptoms: int = 2


@dataclass
class ProgressionSection:
    """Daily clinical course, mortality and recovery."""
    mortality_severity_threshold: float = 0.8   # rolls only above this severity
    mortality_scale: float = 0.01
    mortality_constitution_scale: float = 30.0
    mortality_cap: float = 0.1
    recovery_constitution_scale: float = 20.0
    recovery_severity_weight: float = 0.5
    recovery_min: float = 0.01
    recovery_max: float = 0.95
    renewal_severity_increase: float = 0.1
    mortality_before_recovery: bool = True
    forced_recovery_severity_drop: float = 0.3
    forced_recovery_severity_floor: float = 0.1


@dataclass
class TreatmentSection:
    """Medicine application."""
    severity_reduction_scale: float = 0.5
    severity_floor: float = 0.1
    duration_reduction_scale: float = 0.3
    min_days_remaining: int = 1
    side_effect_floor: int = 1


@dataclass
class TerrainRule:
    """Daily environmental exposure on matching terrain types.

    One of `diseases` is drawn uniformly, then infects with `daily_chance`.
    """
    terrains: List[str] = field(default_factory=list)
    diseases: List[str] = field(default_factory=list)
    daily_chance: float = 0.0


def _default_terrain_rules() -> List[TerrainRule]:
    return [
        TerrainRule(
            terrains=['wetlands', 'swamp', 'marsh'],
            diseases=['MALARIA'],
            daily_chance=0.25,
        ),
        TerrainRule(
            terrains=['city', 'urban', 'city_center'],
            diseases=['SMALLPOX', 'BUBONIC_PLAGUE'],
            daily_chance=0.10,
        ),
    ]


@dataclass
class TerrainSection:
    """Environmental exposure rules."""
    rules: List[TerrainRule] = field(default_factory=_default_terrain_rules)


@dataclass
class EngineConfig:
    """Complete engine configuration.

    Load from YAML via `load_config()`. Sections map 1:1 to YAML top-level keys.
    """
    simulation: SimulationSection = field(default_factory=SimulationSection)
    catalog: CatalogSection = field(default_factory=CatalogSection)
    assignment: AssignmentSection = field(default_factory=AssignmentSection)
    transmission: TransmissionSection = field(default_factory=TransmissionSection)
    progression: ProgressionSection = field(default_factory=ProgressionSection)
    treatment: TreatmentSection = field(default_factory=TreatmentSection)
    terrain: TerrainSection = field(default_factory=TerrainSection)


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values (lists included) are replaced
    - Keys in override but not base are added

    Args:
        base: Base dictionary (modified in place).
        override: Override dictionary.

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


def _yaml_to_config(data: Dict) -> EngineConfig:
    """Convert a merged YAML dict to an EngineConfig."""
    sections = {}
    section_map = {
        'simulation': SimulationSection,
        'catalog': CatalogSection,
        'assignment': AssignmentSection,
        'transmission': TransmissionSection,
        'progression': ProgressionSection,
        'treatment': TreatmentSection,
    }
    for key, cls in section_map.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()

    # Terrain rules are a list of records, not flat fields
    terrain = data.get('terrain')
    if isinstance(terrain, dict) and isinstance(terrain.get('rules'), list):
        rules = [
            _dict_to_section(TerrainRule, dict(rule))
            for rule in terrain['rules']
            if isinstance(rule, dict)
        ]
        sections['terrain'] = TerrainSection(rules=rules)
    else:
        sections['terrain'] = TerrainSection()

    return EngineConfig(**sections)


def config_to_dict(config: EngineConfig) -> Dict:
    """Plain-dict form of a config, suitable for yaml.safe_dump."""
    return dataclasses.asdict(config)


# ═══════════════════════════════════════════════════════════════════════
# VALIDATION
# ═══════════════════════════════════════════════════════════════════════

def _check_probability(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be in [0, 1], got {value}")


def validate_config(config: EngineConfig) -> None:
    """Validate configuration constraints. Raises ValueError on failure.

    Checks:
      - Probabilities and probability caps lie in [0, 1]
      - Recovery bounds are ordered
      - Close radius lies within the proximity radius
      - Exposure strengths cover exactly the proximity types
      - Era mapping targets are catalog eras
      - Scaling divisors are positive
    """
    a = config.assignment
    for name in ('animal_base_chance', 'human_base_chance',
                 'animal_disease_preference', 'epidemic_preference',
                 'common_disease_preference', 'immunity_chance',
                 'initial_severity'):
        _check_probability(f"assignment.{name}", getattr(a, name))

    t = config.transmission
    _check_probability("transmission.initial_severity", t.initial_severity)
    if t.proximity_radius <= 0:
        raise ValueError(
            f"transmission.proximity_radius must be > 0, got {t.proximity_radius}"
        )
    if not 0 <= t.close_radius <= t.proximity_radius:
        raise ValueError(
            f"transmission.close_radius ({t.close_radius}) must lie in "
            f"[0, proximity_radius={t.proximity_radius}]"
        )
    expected_keys = {p.value for p in ProximityType}
    if set(t.exposure_strengths) != expected_keys:
        raise ValueError(
            f"transmission.exposure_strengths keys must be {sorted(expected_keys)}, "
            f"got {sorted(t.exposure_strengths)}"
        )
    for key, value in t.exposure_strengths.items():
        _check_probability(f"transmission.exposure_strengths.{key}", value)
    if t.constitution_scale <= 0:
        raise ValueError("transmission.constitution_scale must be > 0")
    if t.max_visible_symptoms < 1:
        raise ValueError("transmission.max_visible_symptoms must be >= 1")

    p = config.progression
    for name in ('mortality_severity_threshold', 'mortality_cap',
                 'recovery_min', 'recovery_max', 'recovery_severity_weight',
                 'forced_recovery_severity_floor'):
        _check_probability(f"progression.{name}", getattr(p, name))
    if p.recovery_min > p.recovery_max:
        raise ValueError(
            f"progression.recovery_min ({p.recovery_min}) must be <= "
            f"recovery_max ({p.recovery_max})"
        )
    if p.mortality_constitution_scale <= 0 or p.recovery_constitution_scale <= 0:
        raise ValueError("progression constitution scales must be > 0")
    if p.mortality_scale < 0 or p.renewal_severity_increase < 0:
        raise ValueError("progression.mortality_scale and "
                         "renewal_severity_increase must be >= 0")

    tr = config.treatment
    _check_probability("treatment.severity_floor", tr.severity_floor)
    if tr.severity_reduction_scale < 0 or tr.duration_reduction_scale < 0:
        raise ValueError("treatment reduction scales must be >= 0")
    if tr.min_days_remaining < 0:
        raise ValueError("treatment.min_days_remaining must be >= 0")

    for game_era, catalog_era in config.catalog.era_mapping.items():
        if catalog_era not in CATALOG_ERAS:
            raise ValueError(
                f"catalog.era_mapping['{game_era}'] = '{catalog_era}' is not "
                f"a catalog era; expected one of {CATALOG_ERAS}"
            )

    for i, rule in enumerate(config.terrain.rules):
        _check_probability(f"terrain.rules[{i}].daily_chance", rule.daily_chance)
        if not rule.terrains or not rule.diseases:
            raise ValueError(
                f"terrain.rules[{i}] needs at least one terrain and one disease"
            )


def load_config(
    base_path: Union[str, Path],
    scenario_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict] = None,
) -> EngineConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: base → scenario → overrides.
    Each layer overrides only the fields it specifies.

    Args:
        base_path: Path to base configuration YAML.
        scenario_path: Optional scenario override YAML.
        overrides: Optional dict of programmatic overrides.

    Returns:
        Validated EngineConfig.

    Raises:
        FileNotFoundError: If base_path doesn't exist.
        ValueError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    with open(base_path) as f:
        config_dict = yaml.safe_load(f) or {}

    if scenario_path is not None:
        scenario_path = Path(scenario_path)
        if scenario_path.exists():
            with open(scenario_path) as f:
                scenario = yaml.safe_load(f) or {}
            deep_merge(config_dict, scenario)

    if overrides is not None:
        deep_merge(config_dict, copy.deepcopy(overrides))

    config = _yaml_to_config(config_dict)
    validate_config(config)
    return config


def default_config() -> EngineConfig:
    """Return an EngineConfig with all default values."""
    config = EngineConfig()
    validate_config(config)
    return config


def resolve_config(config: Optional[EngineConfig]) -> EngineConfig:
    """Return config, or validated defaults when None."""
    return config if config is not None else default_config()
