"""Unit tests for analytics snapshot summaries."""

from datetime import datetime, timezone

import numpy as np
import pytest

from frontier_analytics.analysis import AdaptationEdgesOptimizer, AnalyticsSummarizer
from frontier_analytics.metrics import DurabilityCalculator
from frontier_analytics.models import (
    ActivityLoad,
    DurabilityAnalysisResponse,
    DurabilityFilters,
    RepeatabilityFrontier,
    RepeatabilityRecord,
    RepeatabilitySequence,
)
from frontier_analytics.services import AnalyticsService
from frontier_analytics.settings import Settings

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def summarizer(settings: Settings) -> AnalyticsSummarizer:
    return AnalyticsSummarizer(settings, clock=lambda: NOW)


def sequence(target_key: str, activity_id: str, drop: float) -> RepeatabilitySequence:
    return RepeatabilitySequence(
        target_key=target_key,
        activity_id=activity_id,
        start_time="2024-01-01T08:00:00+00:00",
        start_sec=600,
        reps=5,
        avg_watts_by_rep=[],
        avg_pct_by_rep=[],
        decay_slope=0.0,
        drop_first_to_last=drop,
    )


def record(target_key: str, activity_id: str | None, reps: int) -> RepeatabilityRecord:
    return RepeatabilityRecord(
        target_key=target_key,
        reps=reps,
        activity_id=activity_id,
        start_time="2024-01-01T08:00:00+00:00" if activity_id else None,
        start_sec=600 if activity_id else None,
    )


class TestDurabilitySummary:
    """Test the durability snapshot."""

    def test_best_and_average(self, settings, summarizer, make_activity, profile):
        calculator = DurabilityCalculator(settings)
        steady = calculator.analyze_ride(
            make_activity(np.full(10800, 250.0), heart_rate=140, activity_id="steady"),
            profile,
        )
        fading = calculator.analyze_ride(
            make_activity(
                np.r_[np.full(3240, 300.0), np.full(4320, 250.0), np.full(3240, 200.0)],
                heart_rate=150,
                activity_id="fading",
            ),
            profile,
        )
        analysis = DurabilityAnalysisResponse(
            ftp_watts=250,
            filters=DurabilityFilters(),
            rides=[fading, steady],
            disciplines=["ride"],
        )

        snapshot = summarizer.summarize_durability(analysis)

        assert snapshot.ride_count == 2
        assert snapshot.best_score == 100
        assert snapshot.best_ride.activity_id == "steady"
        assert snapshot.average_score == pytest.approx(71.5)
        assert snapshot.total_training_load_kj == pytest.approx(5400.0)
        assert snapshot.generated_at == NOW

    def test_no_rides(self, summarizer):
        analysis = DurabilityAnalysisResponse(
            filters=DurabilityFilters(), rides=[], disciplines=[]
        )
        snapshot = summarizer.summarize_durability(analysis)
        assert snapshot.ride_count == 0
        assert snapshot.average_score is None
        assert snapshot.best_ride is None
        assert snapshot.total_training_load_kj == 0.0


class TestTrainingFrontiersSummary:
    """Test the training frontiers snapshot."""

    def test_headlines(self, settings, summarizer, make_activity, profile):
        rng = np.random.default_rng(5)
        activity = make_activity(rng.uniform(150, 350, 4000), heart_rate=140)
        response = AnalyticsService(settings).training_frontiers([activity], profile)

        snapshot = summarizer.summarize_training_frontiers(response)

        values = [e.value for e in snapshot.best_duration_power]
        assert len(values) == 5
        assert values == sorted(values, reverse=True)
        assert values[0] == max(
            e.value for e in response.duration_power.durations if e.value is not None
        )
        assert snapshot.ftp_watts == 250
        assert snapshot.best_time_in_zone is not None
        assert snapshot.generated_at == NOW

    def test_repeatability_tie_prefers_smaller_drop(self, summarizer):
        frontier = RepeatabilityFrontier(
            sequences=[sequence("vo2", "a", -8.0), sequence("threshold", "b", -2.0)],
            best_repeatability=[record("vo2", "a", 5), record("threshold", "b", 5)],
        )
        best, drop = summarizer._best_repeatability(frontier)
        assert best.target_key == "vo2"
        assert drop == -8.0

    def test_repeatability_more_reps_wins(self, summarizer):
        frontier = RepeatabilityFrontier(
            sequences=[sequence("vo2", "a", -8.0)],
            best_repeatability=[record("vo2", "a", 3), record("threshold", None, 0)],
        )
        best, drop = summarizer._best_repeatability(frontier)
        assert best.reps == 3
        assert drop == -8.0


class TestAdaptationSummary:
    """Test the adaptation snapshot."""

    def test_best_windows(self, settings, summarizer):
        loads = [
            ActivityLoad(
                activity_id=f"d{day}",
                start_time=datetime(2024, 1, day, 12, tzinfo=timezone.utc),
                duration_sec=duration,
                normalized_power=np_watts,
                average_power=avg_watts,
            )
            for day, duration, np_watts, avg_watts in [
                (1, 3600, 190, 180),
                (2, 5400, 210, 200),
                (3, 7200, 230, 220),
                (4, 3600, 160, 150),
            ]
        ]
        response = AdaptationEdgesOptimizer(settings).optimize(loads)

        snapshot = summarizer.summarize_adaptation_edges(response)

        assert snapshot.ftp_estimate == 230
        assert snapshot.best_tss_window.window_days == 4
        assert snapshot.best_tss_window.total_tss == pytest.approx(441.68)
        assert snapshot.best_kj_window.total_kj == pytest.approx(3852.0)
        assert snapshot.best_kj_window.activity_ids == ["d1", "d2", "d3", "d4"]


class TestMetricSnapshot:
    """Test per-activity metric snapshots."""

    def test_camel_case_keys(self, summarizer, steady_activity):
        snapshot = summarizer.build_metric_snapshot(
            steady_activity.meta, {"normalizedPower": 200.0}
        )
        assert snapshot == {
            "activityId": "steady",
            "activityStartTime": "2024-01-01T08:00:00+00:00",
            "activityDurationSec": 3600,
            "activitySource": "ride",
            "computedAt": NOW.isoformat(),
            "summary": {"normalizedPower": 200.0},
        }
