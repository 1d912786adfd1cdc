"""Tests for the heuristic fallback engine."""

from __future__ import annotations

import pytest

from powerguard.actionables.types import ActionableType
from powerguard.core.fallback import FallbackHeuristicEngine
from powerguard.core.models import (
    Classification,
    InsightType,
    QueryCategory,
    ResourceFocus,
    Severity,
)
from tests.conftest import GB, HOUR_MS, MB, make_app, make_snapshot


@pytest.fixture
def engine():
    return FallbackHeuristicEngine()


class TestAnalyze:
    def test_four_hour_background_app(self, engine, background_snapshot):
        response = engine.analyze(background_snapshot)

        assert response.success is True
        assert len(response.insights) == 1
        insight = response.insights[0]
        assert insight.type is InsightType.BATTERY
        assert insight.severity is Severity.HIGH
        assert len(response.actionables) == 1
        actionable = response.actionables[0]
        assert actionable.type is ActionableType.SET_STANDBY_BUCKET
        assert actionable.target_package == "com.example.tracker"
        assert actionable.parameters["newMode"] == "restricted"
        assert response.battery_score == 80
        assert response.data_score == 90
        assert response.performance_score == 80

    def test_baseline_for_quiet_device(self, engine, snapshot):
        response = engine.analyze(snapshot)
        assert (response.battery_score, response.data_score, response.performance_score) == (
            85, 90, 80
        )
        assert response.insights == []
        assert response.actionables == []

    def test_background_threshold_is_exclusive(self, engine):
        snap = make_snapshot([make_app("com.a", background_ms=HOUR_MS)])
        assert engine.analyze(snap).actionables == []

    def test_only_top_three_by_total_time(self, engine):
        apps = [
            make_app(f"com.app{i}", foreground_ms=i * HOUR_MS, background_ms=2 * HOUR_MS)
            for i in range(5)
        ]
        response = engine.analyze(make_snapshot(apps))
        targets = {a.target_package for a in response.actionables}
        assert targets == {"com.app4", "com.app3", "com.app2"}
        assert response.battery_score == 70

    def test_data_and_memory_rules(self, engine, heavy_snapshot):
        response = engine.analyze(heavy_snapshot)

        data = [a for a in response.actionables
                if a.type is ActionableType.RESTRICT_BACKGROUND_DATA]
        assert {a.target_package for a in data} == {
            "com.facebook.katana", "com.instagram.android", "com.netflix.mediaclient"
        }
        assert response.data_score == 75

        kills = [a for a in response.actionables if a.type is ActionableType.KILL_APP]
        assert [a.target_package for a in kills] == [
            "com.netflix.mediaclient", "com.instagram.android"
        ]
        assert response.performance_score == 65
        perf = [i for i in response.insights if i.type is InsightType.PERFORMANCE]
        assert perf[0].severity is Severity.HIGH

    def test_data_threshold_is_exclusive(self, engine):
        snap = make_snapshot([make_app("com.a", background_data=50 * MB)])
        assert engine.analyze(snap).actionables == []

    def test_unknown_memory_skips_rule(self, engine):
        snap = make_snapshot([make_app("com.a")], available_ram=0, total_ram=0)
        assert engine.analyze(snap).performance_score == 80

    def test_scores_floor_at_zero(self, engine):
        apps = [
            make_app(f"com.app{i}", background_ms=5 * HOUR_MS, background_data=GB)
            for i in range(3)
        ]
        response = engine.analyze(make_snapshot(apps, available_ram=1, total_ram=GB))
        for score in (response.battery_score, response.data_score,
                      response.performance_score):
            assert 0 <= score <= 100

    def test_idempotent(self, engine, heavy_snapshot):
        first = engine.analyze(heavy_snapshot).to_dict()
        second = engine.analyze(heavy_snapshot).to_dict()
        assert first == second

    def test_unique_ids(self, engine, heavy_snapshot):
        ids = [a.id for a in engine.analyze(heavy_snapshot).actionables]
        assert len(ids) == len(set(ids))

    def test_empty_snapshot(self, engine):
        response = engine.analyze(make_snapshot([]))
        assert response.insights == []
        assert response.actionables == []
        assert response.estimated_savings.battery_minutes == 0


class TestAnalyzeFor:
    def test_invalid_delegates(self, engine, heavy_snapshot):
        general = engine.analyze(heavy_snapshot).to_dict()
        classified = engine.analyze_for(
            heavy_snapshot, Classification(), "what's the weather"
        ).to_dict()
        assert classified == general

    def test_information_lists_requested_count(self, engine, snapshot):
        response = engine.analyze_for(
            snapshot,
            Classification(ResourceFocus.BATTERY, QueryCategory.INFORMATION),
            "Top 2 battery apps",
        )
        assert response.actionables == []
        insight = response.insights[0]
        assert insight.type is InsightType.BATTERY
        assert insight.description.splitlines() == [
            "• YouTube: 25.0%", "• WhatsApp: 12.0%"
        ]

    def test_predictive_data(self, engine, snapshot):
        response = engine.analyze_for(
            snapshot,
            Classification(ResourceFocus.DATA, QueryCategory.PREDICTIVE),
            "Can I stream for 2 hours?",
        )
        assert response.actionables == []
        assert "3800MB" in response.insights[0].description

    def test_optimization_keeps_named_app(self, engine, snapshot):
        response = engine.analyze_for(
            snapshot,
            Classification(ResourceFocus.BATTERY, QueryCategory.OPTIMIZATION),
            "Save battery but keep YouTube running",
        )
        by_target = {a.target_package: a for a in response.actionables}
        kept = by_target["com.google.android.youtube"]
        assert kept.type is ActionableType.SET_STANDBY_BUCKET
        assert kept.parameters["newMode"] == "active"
        restricted = by_target["com.whatsapp"]
        assert restricted.parameters["newMode"] == "restricted"
        assert len(response.actionables) == 2

    def test_optimization_data(self, engine, snapshot):
        response = engine.analyze_for(
            snapshot,
            Classification(ResourceFocus.DATA, QueryCategory.OPTIMIZATION),
            "Save data",
        )
        assert [a.type for a in response.actionables] == [
            ActionableType.RESTRICT_BACKGROUND_DATA
        ]
        assert response.actionables[0].target_package == "com.google.android.youtube"

    @pytest.mark.parametrize("goal,expected", [
        ("Notify me when battery drops to 20%", ActionableType.SET_NOTIFICATION),
        ("Ring when data reaches 4GB", ActionableType.SET_ALARM),
    ])
    def test_monitoring_single_trigger(self, engine, snapshot, goal, expected):
        response = engine.analyze_for(
            snapshot,
            Classification(ResourceFocus.BATTERY, QueryCategory.MONITORING),
            goal,
        )
        assert len(response.actionables) == 1
        trigger = response.actionables[0]
        assert trigger.type is expected
        assert trigger.parameters["condition"] == goal
        assert trigger.parameters["message"]

    def test_category_fallback_is_deterministic(self, engine, snapshot):
        classification = Classification(ResourceFocus.DATA, QueryCategory.OPTIMIZATION)
        first = engine.analyze_for(snapshot, classification, "Save data").to_dict()
        second = engine.analyze_for(snapshot, classification, "Save data").to_dict()
        assert first == second
