"""Shared fixtures for the histepi tests.

SMALL_CATALOG is a seven-disease catalog covering every rule the engine
knows about: an epidemic record, the Columbian Exchange sets, a bounded
year range, progression stages and an animal disease. ScriptedRng stands
in for a numpy Generator when a test needs to force specific draws.
"""

import copy

import numpy as np
import pytest

from histepi.catalog import parse_catalog
from histepi.types import (
    ActiveDisease,
    Character,
    CharacterHealth,
    CharacterStats,
    DiseaseStage,
    EntityKind,
    GameDate,
    Region,
)


ALL_REGIONS = [r.value for r in Region]

SMALL_CATALOG = {
    'exchange': {
        'pre_contact_new_world': ['SMALLPOX', 'BUBONIC_PLAGUE', 'MALARIA'],
        'pre_contact_old_world': ['CHAGAS_DISEASE'],
        'exchange_year': 1492,
    },
    'diseases': [
        {
            'id': 'COMMON_COLD',
            'name': 'Common Cold',
            'category': 'respiratory',
            'severity_tier': 'mild',
            'available_eras': ['ANCIENT', 'MEDIEVAL', 'EARLY_MODERN', 'INDUSTRIAL', 'MODERN'],
            'available_regions': ALL_REGIONS,
            'transmission_vector': 'airborne',
            'base_transmission_rate': 0.4,
            'proximity_multiplier': 1.0,
            'direct_contact_multiplier': 1.5,
            'incubation_days': 2,
            'duration_days': 7,
            'mortality_rate': 0.0,
            'recovery_chance': 0.9,
            'grants_immunity': True,
            'immunity_duration_days': 365,
            'stat_effects': {'health': -5, 'fatigue': 10},
            'symptoms': [
                {'id': 'COUGH', 'name': 'Cough', 'severity': 0.3},
                {'id': 'SNEEZING', 'name': 'Sneezing', 'severity': 0.2},
            ],
            'narrative_hints': {
                'npc': ['is coughing', 'is sneezing', 'has a runny nose'],
                'animal': ['sneezes repeatedly'],
                'player': ['Your throat feels scratchy'],
            },
            'badge_icon': 'cold',
        },
        {
            'id': 'BUBONIC_PLAGUE',
            'name': 'Bubonic Plague',
            'category': 'vector_borne',
            'severity_tier': 'critical',
            'available_eras': ['ANCIENT', 'MEDIEVAL', 'EARLY_MODERN'],
            'available_regions': ['EUROPEAN', 'MENA', 'NORTH_AMERICAN_PRE_COLUMBIAN'],
            'transmission_vector': 'vector',
            'base_transmission_rate': 0.3,
            'proximity_multiplier': 2.0,
            'direct_contact_multiplier': 4.0,
            'incubation_days': 5,
            'duration_days': 10,
            'mortality_rate': 0.7,
            'recovery_chance': 0.15,
            'grants_immunity': True,
            'immunity_duration_days': -1,
            'stat_effects': {'health': -30, 'strength': -20, 'speed': -25},
            'narrative_hints': {
                'npc': ['is delirious with fever', 'has blackened fingers'],
                'animal': ['appears extremely ill'],
                'player': ['You burn with fever'],
            },
            'badge_icon': 'skull',
        },
        {
            'id': 'SMALLPOX',
            'name': 'Smallpox',
            'category': 'contact',
            'severity_tier': 'severe',
            'available_eras': ['MEDIEVAL', 'EARLY_MODERN'],
            'available_regions': ['EUROPEAN', 'NORTH_AMERICAN_PRE_COLUMBIAN'],
            'transmission_vector': 'contact',
            'base_transmission_rate': 0.6,
            'proximity_multiplier': 1.0,
            'direct_contact_multiplier': 2.0,
            'incubation_days': 3,
            'duration_days': 14,
            'mortality_rate': 0.3,
            'recovery_chance': 0.6,
            'grants_immunity': True,
            'immunity_duration_days': -1,
        },
        {
            'id': 'CHAGAS_DISEASE',
            'name': 'Chagas Disease',
            'category': 'parasitic',
            'severity_tier': 'moderate',
            'available_eras': ['MEDIEVAL', 'EARLY_MODERN'],
            'available_regions': ['EUROPEAN', 'NORTH_AMERICAN_PRE_COLUMBIAN'],
            'transmission_vector': 'vector',
            'base_transmission_rate': 0.1,
            'incubation_days': 7,
            'duration_days': 30,
            'mortality_rate': 0.1,
            'recovery_chance': 0.5,
        },
        {
            'id': 'RABIES',
            'name': 'Rabies',
            'category': 'zoonotic',
            'severity_tier': 'critical',
            'available_eras': ['MEDIEVAL', 'EARLY_MODERN'],
            'available_regions': ['EUROPEAN'],
            'transmission_vector': 'zoonotic',
            'base_transmission_rate': 0.8,
            'incubation_days': 1,
            'duration_days': 7,
            'mortality_rate': 0.99,
            'recovery_chance': 0.01,
            'progression_stages': [
                {'day': 1, 'symptoms': ['mild fever'], 'severity': 0.2,
                 'stat_modifiers': {'health': -5}},
                {'day': 3, 'symptoms': ['anxiety', 'confusion'], 'severity': 0.5,
                 'stat_modifiers': {'health': -15, 'intelligence': -10}},
                {'day': 5, 'symptoms': ['hydrophobia'], 'severity': 0.9,
                 'stat_modifiers': {'health': -30}},
            ],
            'narrative_hints': {
                'npc': ['foams at the mouth'],
                'animal': ['foams at the mouth', 'appears rabid'],
            },
        },
        {
            'id': 'SWEATING_SICKNESS',
            'name': 'Sweating Sickness',
            'category': 'respiratory',
            'severity_tier': 'severe',
            'available_eras': ['MEDIEVAL', 'EARLY_MODERN'],
            'available_regions': ['EUROPEAN'],
            'transmission_vector': 'airborne',
            'base_transmission_rate': 0.5,
            'start_year': 1485,
            'end_year': 1551,
            'incubation_days': 1,
            'duration_days': 3,
            'mortality_rate': 0.4,
            'recovery_chance': 0.5,
        },
        {
            'id': 'MALARIA',
            'name': 'Malaria',
            'category': 'vector_borne',
            'severity_tier': 'moderate',
            'available_eras': ['ANCIENT', 'MEDIEVAL', 'EARLY_MODERN'],
            'available_regions': ['SUB_SAHARAN_AFRICAN', 'EUROPEAN', 'SOUTH_AMERICAN'],
            'transmission_vector': 'vector',
            'base_transmission_rate': 0.2,
            'incubation_days': 10,
            'duration_days': 20,
            'mortality_rate': 0.2,
            'recovery_chance': 0.4,
            'grants_immunity': True,
            'immunity_duration_days': 730,
        },
    ],
    'prevalence': [
        {
            'disease_id': 'BUBONIC_PLAGUE',
            'era': 'MEDIEVAL',
            'region': 'EUROPEAN',
            'base_incidence': 0.15,
            'epidemic_years': [1347, 1348, 1349, 1350, 1351],
        },
        {
            'disease_id': 'MALARIA',
            'era': 'MEDIEVAL',
            'region': 'SUB_SAHARAN_AFRICAN',
            'base_incidence': 0.4,
            'endemic_regions': ['SUB_SAHARAN_AFRICAN'],
        },
    ],
    'medicines': [
        {
            'id': 'HERBAL_REMEDY',
            'name': 'Herbal Remedy',
            'available_eras': ['ANCIENT', 'MEDIEVAL', 'EARLY_MODERN'],
            'available_regions': ALL_REGIONS,
            'effectiveness': {'respiratory': 0.2, 'gastrointestinal': 0.3},
            'cost': 2,
        },
        {
            'id': 'BLOODLETTING',
            'name': 'Bloodletting',
            'available_eras': ['MEDIEVAL'],
            'available_regions': ['EUROPEAN', 'MENA'],
            'effectiveness': {'respiratory': 0.05, 'vector_borne': 0.01},
            'side_effects': {'health': -5, 'strength': -3},
            'cost': 5,
        },
        {
            'id': 'QUININE',
            'name': 'Quinine',
            'available_eras': ['EARLY_MODERN'],
            'available_regions': ['EUROPEAN'],
            'effectiveness': {'vector_borne': 0.7},
            'cost': 25,
        },
    ],
}


def catalog_data():
    """Fresh deep copy of SMALL_CATALOG, safe to modify."""
    return copy.deepcopy(SMALL_CATALOG)


class ScriptedRng:
    """Generator stand-in with scripted draws.

    random() pops the next scripted value (IndexError once exhausted, so a
    test fails loudly on an unexpected roll). integers(n) returns `pick`;
    integers(low, high) returns low. choice() takes the first `size` items.
    """

    def __init__(self, randoms=(), pick=0):
        self._randoms = list(randoms)
        self.pick = pick

    def random(self):
        return self._randoms.pop(0)

    def integers(self, low, high=None):
        return self.pick if high is None else low

    def choice(self, n, size=None, replace=True):
        return np.arange(size if size is not None else 1)

    @property
    def remaining(self):
        return len(self._randoms)


def make_npc(char_id='npc_1', name='Aldric', constitution=10.0):
    return Character(id=char_id, kind=EntityKind.NPC, name=name,
                     stats=CharacterStats(constitution=constitution))


def make_player(char_id='player', constitution=10.0):
    return Character(id=char_id, kind=EntityKind.PLAYER, name='You',
                     stats=CharacterStats(constitution=constitution))


def make_animal(char_id='animal_1', species='wolf', constitution=10.0):
    return Character(id=char_id, kind=EntityKind.ANIMAL, species_name=species,
                     stats=CharacterStats(constitution=constitution))


def infect(character, disease, year=1348, stage=DiseaseStage.SYMPTOMATIC,
           severity=0.5, days_remaining=None):
    """Give a character an active disease directly, bypassing transmission."""
    if character.health is None:
        character.health = CharacterHealth(last_update=GameDate.from_year(year))
    active = ActiveDisease.start(disease, year, severity=severity)
    active.stage = stage
    if days_remaining is not None:
        active.days_remaining = days_remaining
    character.health.add_disease(active)
    return active


@pytest.fixture
def catalog():
    return parse_catalog(catalog_data())


@pytest.fixture
def cold(catalog):
    return catalog.get_disease('COMMON_COLD')


@pytest.fixture
def plague(catalog):
    return catalog.get_disease('BUBONIC_PLAGUE')


@pytest.fixture
def rabies(catalog):
    return catalog.get_disease('RABIES')
