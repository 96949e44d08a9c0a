"""Tests for histepi.restrictions — gameplay restrictions and stage notifications."""

import pytest

from histepi.restrictions import (
    RestrictionLevel,
    StageChangeTracker,
    calculate_restrictions,
    disease_restrictions,
    generic_symptom_text,
    severity_restrictions,
)
from histepi.types import ActiveDisease, CharacterHealth


def _health(*actives):
    health = CharacterHealth()
    for active in actives:
        health.add_disease(active)
    return health


# ── Severity bands ────────────────────────────────────────────────────

class TestSeverityRestrictions:
    @pytest.mark.parametrize("severity,level,voice,avoidance", [
        (0.1, RestrictionLevel.EARLY, 0, 0),
        (0.3, RestrictionLevel.EARLY, 0, 0),
        (0.4, RestrictionLevel.MODERATE, 0, 1),
        (0.6, RestrictionLevel.SEVERE, 1, 2),
        (0.85, RestrictionLevel.CRITICAL, 2, 3),
    ])
    def test_bands(self, severity, level, voice, avoidance):
        r = severity_restrictions(severity)
        assert r.level is level
        assert r.voice_loss == voice
        assert r.social_avoidance == avoidance
        assert r.movement_penalty == 1.0
        assert not r.is_terminal

    def test_terminal(self):
        r = severity_restrictions(0.9)
        assert r.level is RestrictionLevel.TERMINAL
        assert r.is_terminal
        assert r.movement_penalty == 60.0
        assert r.voice_loss == 3
        assert r.social_avoidance == 3

    def test_level_rank(self):
        assert RestrictionLevel.EARLY.rank < RestrictionLevel.SEVERE.rank \
            < RestrictionLevel.TERMINAL.rank


class TestGenericSymptomText:
    def test_bands(self):
        assert generic_symptom_text(0.1) == ''
        assert generic_symptom_text(0.3) == 'slightly under the weather'
        assert generic_symptom_text(0.5) == 'noticeably unwell'
        assert generic_symptom_text(0.7) == 'visibly sick and struggling'
        assert generic_symptom_text(0.9) == 'extremely ill and weakened'


# ── Per-disease restrictions ──────────────────────────────────────────

class TestDiseaseRestrictions:
    def test_respiratory_voice_loss(self, cold):
        r = disease_restrictions(ActiveDisease.start(cold, 1348, severity=0.7))
        assert r.level is RestrictionLevel.SEVERE
        assert r.voice_loss == 2

    def test_contact_avoidance(self, catalog):
        smallpox = catalog.get_disease('SMALLPOX')
        r = disease_restrictions(ActiveDisease.start(smallpox, 1348, severity=0.3))
        assert r.level is RestrictionLevel.EARLY
        assert r.social_avoidance == 2

    def test_other_category_unchanged(self, plague):
        r = disease_restrictions(ActiveDisease.start(plague, 1348, severity=0.4))
        assert r.voice_loss == 0
        assert r.social_avoidance == 1

    def test_band_follows_reached_stage(self, rabies):
        active = ActiveDisease.start(rabies, 1348, severity=0.4)
        active.days_since_contraction = 5
        r = disease_restrictions(active)
        assert r.level is RestrictionLevel.TERMINAL
        assert r.symptom_description == 'extremely ill and weakened'


class TestCalculateRestrictions:
    def test_no_health(self):
        r = calculate_restrictions(None)
        assert r.level is RestrictionLevel.EARLY
        assert r.movement_penalty == 1.0
        assert r.symptom_description == ''

    def test_worst_case(self, cold, catalog):
        smallpox = catalog.get_disease('SMALLPOX')
        health = _health(
            ActiveDisease.start(cold, 1348, severity=0.7),
            ActiveDisease.start(smallpox, 1348, severity=0.55),
        )
        r = calculate_restrictions(health)
        assert r.level is RestrictionLevel.SEVERE
        assert r.voice_loss == 2
        assert r.social_avoidance == 3
        assert not r.is_terminal
        assert r.symptom_description == 'visibly sick and struggling, noticeably unwell'

    def test_terminal_dominates(self, cold, plague):
        health = _health(
            ActiveDisease.start(cold, 1348, severity=0.2),
            ActiveDisease.start(plague, 1348, severity=0.95),
        )
        r = calculate_restrictions(health)
        assert r.is_terminal
        assert r.movement_penalty == 60.0
        assert r.level is RestrictionLevel.TERMINAL


# ── Stage-change notifications ────────────────────────────────────────

class TestStageChangeTracker:
    def test_early_never_notifies(self, cold):
        tracker = StageChangeTracker()
        health = _health(ActiveDisease.start(cold, 1348, severity=0.2))
        assert tracker.check('npc_1', health) == []

    def test_notifies_on_worsening_only(self, cold):
        tracker = StageChangeTracker()
        active = ActiveDisease.start(cold, 1348, severity=0.6)
        active.days_since_contraction = 4
        health = _health(active)

        events = tracker.check('npc_1', health)
        assert len(events) == 1
        event = events[0]
        assert event.level is RestrictionLevel.SEVERE
        assert event.disease_id == 'COMMON_COLD'
        assert event.title == "Common Cold: severe stage"
        assert event.description == "After 4 days, your Common Cold has become severe."
        assert event.icon == 'cold'
        assert event.days_sick == 4

        assert tracker.check('npc_1', health) == []

        active.severity = 0.4
        assert tracker.check('npc_1', health) == []

        active.severity = 0.9
        events = tracker.check('npc_1', health)
        assert [e.level for e in events] == [RestrictionLevel.TERMINAL]

    def test_characters_tracked_separately(self, cold):
        tracker = StageChangeTracker()
        health = _health(ActiveDisease.start(cold, 1348, severity=0.6))
        assert len(tracker.check('npc_1', health)) == 1
        assert len(tracker.check('npc_2', health)) == 1

    def test_forget(self, cold):
        tracker = StageChangeTracker()
        health = _health(ActiveDisease.start(cold, 1348, severity=0.6))
        tracker.check('npc_1', health)
        tracker.forget('npc_1', 'COMMON_COLD')
        assert len(tracker.check('npc_1', health)) == 1
        tracker.forget('npc_1')
        assert len(tracker.check('npc_1', health)) == 1

    def test_no_health(self):
        assert StageChangeTracker().check('npc_1', None) == []
