"""Tests for histepi.availability — era/region/year filtering and epidemics."""

import logging

import pytest

from histepi.availability import (
    DEFAULT_PREVALENCE,
    available_treatments,
    disease_prevalence,
    find_epidemic,
    remap_era,
    resolve_available,
)
from histepi.catalog import load_catalog
from histepi.config import default_config
from histepi.types import DiseaseCategory


def _ids(diseases):
    return [d.id for d in diseases]


# ── Era remapping ─────────────────────────────────────────────────────

class TestRemapEra:
    def test_mapped(self):
        assert remap_era('RENAISSANCE_EARLY_MODERN') == 'EARLY_MODERN'
        assert remap_era('MODERN_ERA') == 'MODERN'

    def test_catalog_era_passes_silently(self, caplog):
        with caplog.at_level(logging.WARNING, logger='histepi.availability'):
            assert remap_era('ANCIENT') == 'ANCIENT'
        assert caplog.records == []

    def test_unknown_passes_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger='histepi.availability'):
            assert remap_era('STEAMPUNK') == 'STEAMPUNK'
        assert "STEAMPUNK" in caplog.text

    def test_custom_mapping(self):
        config = default_config()
        config.catalog.era_mapping['BRONZE_AGE'] = 'ANCIENT'
        assert remap_era('BRONZE_AGE', config) == 'ANCIENT'


# ── Availability ──────────────────────────────────────────────────────

class TestResolveAvailable:
    def test_medieval_europe(self, catalog):
        """Chagas is absent from the Old World before contact; the sweat is not yet known."""
        available = resolve_available(catalog, 'MEDIEVAL', 'EUROPEAN', 1348)
        assert _ids(available) == [
            'COMMON_COLD', 'BUBONIC_PLAGUE', 'SMALLPOX', 'RABIES', 'MALARIA',
        ]

    def test_new_world_before_contact(self, catalog):
        available = resolve_available(catalog, 'MEDIEVAL', 'NORTH_AMERICAN_PRE_COLUMBIAN', 1400)
        assert _ids(available) == ['COMMON_COLD', 'CHAGAS_DISEASE']

    def test_exchange_boundary(self, catalog):
        region = 'NORTH_AMERICAN_PRE_COLUMBIAN'
        before = resolve_available(catalog, 'RENAISSANCE_EARLY_MODERN', region, 1491)
        after = resolve_available(catalog, 'RENAISSANCE_EARLY_MODERN', region, 1492)
        assert _ids(before) == ['COMMON_COLD', 'CHAGAS_DISEASE']
        assert _ids(after) == ['COMMON_COLD', 'BUBONIC_PLAGUE', 'SMALLPOX', 'CHAGAS_DISEASE']

    def test_old_world_after_contact(self, catalog):
        available = resolve_available(catalog, 'RENAISSANCE_EARLY_MODERN', 'EUROPEAN', 1500)
        assert 'CHAGAS_DISEASE' in _ids(available)

    def test_year_bounds_inclusive(self, catalog):
        def has_sweat(year):
            available = resolve_available(catalog, 'RENAISSANCE_EARLY_MODERN', 'EUROPEAN', year)
            return 'SWEATING_SICKNESS' in _ids(available)

        assert not has_sweat(1484)
        assert has_sweat(1485)
        assert has_sweat(1551)
        assert not has_sweat(1552)

    def test_unknown_region(self, catalog):
        assert resolve_available(catalog, 'MEDIEVAL', 'LEMURIA', 1348) == []

    def test_era_outside_catalog(self, catalog):
        assert resolve_available(catalog, 'FUTURE_ERA', 'EUROPEAN', 2300) == []


# ── Epidemics & prevalence ────────────────────────────────────────────

class TestFindEpidemic:
    def test_black_death(self, catalog):
        available = resolve_available(catalog, 'MEDIEVAL', 'EUROPEAN', 1348)
        epidemic = find_epidemic(catalog, available, 'MEDIEVAL', 'EUROPEAN', 1348)
        assert epidemic.id == 'BUBONIC_PLAGUE'

    def test_black_death_bundled_catalog(self):
        bundled = load_catalog()
        available = resolve_available(bundled, 'MEDIEVAL', 'EUROPEAN', 1348)
        epidemic = find_epidemic(bundled, available, 'MEDIEVAL', 'EUROPEAN', 1348)
        assert epidemic is not None
        assert epidemic.name == 'Bubonic Plague'

    def test_no_epidemic_outside_years(self, catalog):
        available = resolve_available(catalog, 'MEDIEVAL', 'EUROPEAN', 1346)
        assert find_epidemic(catalog, available, 'MEDIEVAL', 'EUROPEAN', 1346) is None

    def test_only_available_diseases(self, catalog):
        """An epidemic record for an unavailable disease is ignored."""
        assert find_epidemic(catalog, [], 'MEDIEVAL', 'EUROPEAN', 1348) is None

    def test_no_record_for_region(self, catalog):
        available = resolve_available(catalog, 'MEDIEVAL', 'MENA', 1348)
        assert find_epidemic(catalog, available, 'MEDIEVAL', 'MENA', 1348) is None


class TestDiseasePrevalence:
    def test_base(self, catalog):
        assert disease_prevalence(catalog, 'BUBONIC_PLAGUE', 'MEDIEVAL', 'EUROPEAN', 1300) == 0.15

    def test_epidemic_year_tripled(self, catalog):
        p = disease_prevalence(catalog, 'BUBONIC_PLAGUE', 'MEDIEVAL', 'EUROPEAN', 1348)
        assert p == pytest.approx(0.45)

    def test_endemic_region(self, catalog):
        p = disease_prevalence(catalog, 'MALARIA', 'MEDIEVAL', 'SUB_SAHARAN_AFRICAN', 1200)
        assert p == pytest.approx(0.6)

    def test_default_without_record(self, catalog):
        assert disease_prevalence(catalog, 'COMMON_COLD', 'MEDIEVAL', 'EUROPEAN', 1348) \
            == DEFAULT_PREVALENCE


class TestAvailableTreatments:
    def test_medieval_respiratory(self, catalog):
        meds = available_treatments(catalog, DiseaseCategory.RESPIRATORY, 'MEDIEVAL', 'EUROPEAN')
        assert _ids(meds) == ['HERBAL_REMEDY', 'BLOODLETTING']

    def test_remapped_era(self, catalog):
        meds = available_treatments(catalog, DiseaseCategory.VECTOR_BORNE,
                                    'RENAISSANCE_EARLY_MODERN', 'EUROPEAN')
        assert _ids(meds) == ['QUININE']

    def test_region_filter(self, catalog):
        meds = available_treatments(catalog, DiseaseCategory.RESPIRATORY, 'MEDIEVAL', 'OCEANIA')
        assert _ids(meds) == ['HERBAL_REMEDY']

    def test_zero_effectiveness_excluded(self, catalog):
        assert available_treatments(catalog, DiseaseCategory.CONTACT, 'MEDIEVAL', 'EUROPEAN') == []
