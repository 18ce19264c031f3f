"""Unit tests for the analytics service workflows."""

from datetime import datetime, timezone

import numpy as np
import pytest

from frontier_analytics.data import ActivityDataLoader
from frontier_analytics.models import AthleteProfile, DurabilityConfig, DurabilityFilters
from frontier_analytics.services import AnalyticsService
from frontier_analytics.settings import Settings


def day(n: int) -> datetime:
    return datetime(2024, 2, n, 7, 0, tzinfo=timezone.utc)


@pytest.fixture
def service(settings: Settings) -> AnalyticsService:
    return AnalyticsService(settings)


@pytest.fixture
def long_rides(make_activity):
    """Two three-hour rides, an indoor ride and a short spin."""
    return [
        make_activity(np.full(10800, 220.0), heart_rate=140, activity_id="road1",
                      start_time=day(1), source="Road Ride"),
        make_activity(np.full(10800, 230.0), heart_rate=145, activity_id="road2",
                      start_time=day(5), source="Road Ride"),
        make_activity(np.full(10800, 210.0), heart_rate=135, activity_id="indoor",
                      start_time=day(3), source="Virtual Ride"),
        make_activity(np.full(3600, 200.0), heart_rate=130, activity_id="short",
                      start_time=day(4), source="Road Ride"),
    ]


class TestTrainingFrontiers:
    """Test the training frontiers workflow."""

    def test_from_document(self, settings, service, input_document_dict):
        """The document profile is used and empty activities are skipped."""
        document = ActivityDataLoader(settings).parse_document(input_document_dict)
        response = service.training_frontiers(document)

        assert response.activity_count == 1
        assert response.ftp_watts == 250
        assert response.hr_max_bpm == 190
        by_duration = {e.duration_sec: e for e in response.duration_power.durations}
        assert by_duration[5].activity_id == "101"
        assert len(response.time_in_zone.streaks) == 6
        assert len(response.durability.efforts) == 20

    def test_explicit_profile_wins(self, settings, service, input_document_dict):
        document = ActivityDataLoader(settings).parse_document(input_document_dict)
        response = service.training_frontiers(document, AthleteProfile(ftp_watts=300))
        assert response.ftp_watts == 300

    def test_settings_profile_fallback(self, make_activity):
        service = AnalyticsService(Settings(ftp_watts=280))
        response = service.training_frontiers([make_activity(np.full(600, 200.0))])
        assert response.ftp_watts == 280

    def test_oversized_activities_skipped(self, make_activity):
        service = AnalyticsService(Settings(max_samples_per_activity=500))
        response = service.training_frontiers(
            [make_activity(np.full(600, 200.0)), make_activity(np.full(400, 200.0))],
            AthleteProfile(),
        )
        assert response.activity_count == 1

    def test_snapshot_merged(self, service, steady_activity, profile):
        service.training_frontiers([steady_activity], profile, user_id="u1")
        analytics = service.get_profile_analytics("u1")
        assert analytics.training_frontiers is not None
        assert analytics.training_frontiers.ftp_watts == 250
        assert analytics.last_updated_at is not None

    def test_wire_format(self, service, steady_activity, profile):
        """Responses serialize with camelCase keys."""
        payload = service.training_frontiers([steady_activity], profile).model_dump(
            by_alias=True
        )
        assert "durationPower" in payload
        assert "convexHull" in payload["durationPower"]
        assert "timeInZone" in payload


class TestDurabilityAnalysis:
    """Test the durability workflow."""

    def test_default_filters(self, service, long_rides, profile):
        """Rides under three hours are excluded; newest first."""
        response = service.durability_analysis(long_rides, profile)
        assert [r.activity_id for r in response.rides] == ["road2", "indoor", "road1"]
        assert response.disciplines == ["Road Ride", "Virtual Ride"]
        assert response.ftp_watts == 250
        assert response.filters.min_duration_sec == 10800

    def test_min_duration_from_settings(self, long_rides, profile):
        """The configured minimum duration applies when the filters leave it out."""
        service = AnalyticsService(
            Settings(durability=DurabilityConfig(default_min_duration_sec=3600))
        )
        response = service.durability_analysis(
            long_rides, profile, DurabilityFilters(discipline="road")
        )
        assert [r.activity_id for r in response.rides] == ["road2", "short", "road1"]
        assert response.filters.min_duration_sec == 3600

    def test_explicit_min_duration_wins(self, long_rides, profile):
        service = AnalyticsService(
            Settings(durability=DurabilityConfig(default_min_duration_sec=3600))
        )
        response = service.durability_analysis(
            long_rides, profile, DurabilityFilters(min_duration_sec=7200)
        )
        assert "short" not in [r.activity_id for r in response.rides]

    def test_discipline_filter(self, service, long_rides, profile):
        """Discipline matches a case-insensitive part of the source."""
        response = service.durability_analysis(
            long_rides, profile, DurabilityFilters(discipline=" virtual ")
        )
        assert [r.activity_id for r in response.rides] == ["indoor"]
        assert response.filters.discipline == "virtual"

    def test_date_filter(self, service, long_rides, profile):
        response = service.durability_analysis(
            long_rides,
            profile,
            DurabilityFilters(min_duration_sec=0, start_date=day(2), end_date=day(4)),
        )
        assert [r.activity_id for r in response.rides] == ["short", "indoor"]

    def test_snapshot_and_metrics_merged(self, service, long_rides, profile):
        service.durability_analysis(long_rides, profile, user_id="u1")
        analytics = service.get_profile_analytics("u1")
        assert analytics.durability.ride_count == 3
        assert set(analytics.metrics) == {
            "durability:road1",
            "durability:road2",
            "durability:indoor",
        }
        assert analytics.metrics["durability:road1"]["summary"]["durabilityScore"] == 100


class TestDurableTss:
    """Test the durable TSS workflow."""

    def test_rides_oldest_first(self, service, long_rides, profile):
        response = service.durable_tss(long_rides, profile, threshold_kj=1000)
        assert [r.activity_id for r in response.rides] == [
            "road1",
            "indoor",
            "short",
            "road2",
        ]
        assert response.threshold_kj == 1000
        assert response.ftp_watts == 250
        assert response.filters.start_date is None
        assert response.filters.end_date is None

    def test_threshold_clamped(self, service, long_rides, profile):
        response = service.durable_tss(long_rides, profile, threshold_kj=99999)
        assert response.threshold_kj == 5000
        assert all(r.post_threshold_kj is None for r in response.rides)

    def test_date_range(self, service, long_rides, profile):
        response = service.durable_tss(
            long_rides, profile, start_date=day(3), end_date=day(4)
        )
        assert [r.activity_id for r in response.rides] == ["indoor", "short"]
        assert response.filters.start_date == day(3)
        assert response.filters.end_date == day(4)

    def test_stored_ftp_estimate_fallback(self, service, long_rides):
        """Without a profile FTP the stored adaptation estimate is used."""
        service.adaptation_edges(long_rides, user_id="u1")
        response = service.durable_tss(
            long_rides, AthleteProfile(), threshold_kj=1000, user_id="u1"
        )
        assert response.ftp_watts == pytest.approx(230.0)
        assert response.rides[0].durable_tss is not None

    def test_no_ftp_anywhere(self, service, long_rides):
        response = service.durable_tss(long_rides, AthleteProfile(), threshold_kj=1000)
        assert response.ftp_watts is None
        assert all(r.durable_tss is None for r in response.rides)


class TestAdaptationEdges:
    """Test the adaptation workflow."""

    def test_blocks_from_activities(self, service, long_rides):
        response = service.adaptation_edges(long_rides)
        assert response.total_activities == 4
        assert response.analyzed_days == 5
        assert response.ftp_estimate == pytest.approx(230.0)
        three_day = next(w for w in response.windows if w.days == 3)
        assert three_day.best_kilojoules.activity_ids == ["indoor", "short", "road2"]

    def test_snapshot_and_metrics_merged(self, service, long_rides):
        service.adaptation_edges(long_rides, user_id="u1")
        analytics = service.get_profile_analytics("u1")
        assert analytics.adaptation_edges.ftp_estimate == pytest.approx(230.0)
        assert "power:road1" in analytics.metrics
        assert analytics.metrics["power:road1"]["summary"]["normalizedPower"] == 220.0

    def test_sections_accumulate(self, service, long_rides, profile):
        """Later workflows keep the sections written by earlier ones."""
        service.adaptation_edges(long_rides, user_id="u1")
        service.durability_analysis(long_rides, profile, user_id="u1")
        analytics = service.get_profile_analytics("u1")
        assert analytics.adaptation_edges is not None
        assert analytics.durability is not None
        assert "power:road1" in analytics.metrics
        assert "durability:road1" in analytics.metrics
