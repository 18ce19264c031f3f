"""
High-level service for coordinating frontier analytics workflows.

This service orchestrates the complete analysis process including
activity preparation, the frontier calculators, ride-level durability,
durable TSS and adaptation edges, and the optional merge of snapshot
summaries into a per-user analytics record.
"""

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Protocol

from ..analysis import AdaptationEdgesOptimizer, AnalyticsSummarizer
from ..data import ActivityDataLoader, InputDocument
from ..metrics import (
    DurabilityCalculator,
    DurableTssCalculator,
    DurationPowerCalculator,
    EfficiencyCalculator,
    FatigueEffortCalculator,
    PowerCalculator,
    RepeatabilityCalculator,
    TimeInZoneCalculator,
    round_or_none,
)
from ..models import (
    AdaptationEdgesResponse,
    AthleteProfile,
    DurabilityAnalysisResponse,
    DurabilityFilters,
    DurableTssFilters,
    DurableTssResponse,
    PreparedActivity,
    ProfileAnalytics,
    TrainingFrontiersResponse,
)
from ..settings import Settings, clamp_threshold_kj
from .analytics_store import (
    AnalyticsStoreProtocol,
    InMemoryAnalyticsStore,
    merge_profile_analytics,
)

logger = logging.getLogger(__name__)

ActivityInput = Sequence[PreparedActivity] | InputDocument


class AnalyticsServiceProtocol(Protocol):
    """Protocol for analytics services."""

    def training_frontiers(
        self, activities: ActivityInput, profile: AthleteProfile | None = None
    ) -> TrainingFrontiersResponse:
        """Compute the training frontiers."""
        ...


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _in_range(
    start_time: datetime, start_date: datetime | None, end_date: datetime | None
) -> bool:
    moment = _as_utc(start_time)
    if start_date is not None and moment < _as_utc(start_date):
        return False
    if end_date is not None and moment > _as_utc(end_date):
        return False
    return True


class AnalyticsService:
    """
    High-level service coordinating the analytics workflows.

    This service orchestrates:
    - Preparing activities (skipping empty and oversized streams)
    - Training frontiers (duration power, fatigue, efficiency,
      repeatability and time in zone)
    - Per-ride durability analysis and durable TSS
    - Adaptation edges over daily training load
    - Merging snapshot summaries into the per-user analytics record
    """

    def __init__(self, settings: Settings, store: AnalyticsStoreProtocol | None = None):
        """
        Initialize the analytics service.

        Args:
            settings: Application settings
            store: Analytics record store (defaults to an in-memory store)
        """
        self.settings = settings
        self.store = store if store is not None else InMemoryAnalyticsStore()
        self.logger = logging.getLogger(__name__)

        # Initialize calculators
        self.loader = ActivityDataLoader(settings)
        self.duration_power = DurationPowerCalculator(settings)
        self.fatigue = FatigueEffortCalculator(settings)
        self.efficiency = EfficiencyCalculator(settings)
        self.repeatability = RepeatabilityCalculator(settings)
        self.time_in_zone = TimeInZoneCalculator(settings)
        self.durability = DurabilityCalculator(settings)
        self.durable_tss_calculator = DurableTssCalculator(settings)
        self.power = PowerCalculator(settings)
        self.optimizer = AdaptationEdgesOptimizer(settings)
        self.summarizer = AnalyticsSummarizer(settings)

    # ========================================================================
    # Workflows
    # ========================================================================

    def training_frontiers(
        self,
        activities: ActivityInput,
        profile: AthleteProfile | None = None,
        user_id: str | None = None,
    ) -> TrainingFrontiersResponse:
        """
        Compute every training frontier over a set of activities.

        Args:
            activities: Prepared activities or an input document
            profile: Athlete thresholds (defaults to the document profile,
                then to the settings)
            user_id: If given, merge a snapshot into this user's record

        Returns:
            TrainingFrontiersResponse
        """
        prepared, profile = self._resolve(activities, profile)
        self.logger.info(f"Computing training frontiers for {len(prepared)} activities")

        duration_power = self.duration_power.calculate(prepared, profile)
        durability = self.fatigue.calculate(
            prepared, profile, fresh=duration_power.durations
        )
        efficiency = self.efficiency.calculate(prepared, profile)
        repeatability = self.repeatability.calculate(prepared, profile)
        time_in_zone = self.time_in_zone.calculate(prepared, profile)

        response = TrainingFrontiersResponse(
            ftp_watts=profile.ftp,
            weight_kg=profile.weight_kg,
            hr_max_bpm=profile.hr_max_bpm,
            hr_rest_bpm=profile.hr_rest_bpm,
            activity_count=len(prepared),
            duration_power=duration_power,
            durability=durability,
            efficiency=efficiency,
            repeatability=repeatability,
            time_in_zone=time_in_zone,
        )

        if user_id is not None:
            snapshot = self.summarizer.summarize_training_frontiers(response)
            self._merge(user_id, ProfileAnalytics(training_frontiers=snapshot))
        return response

    def durability_analysis(
        self,
        activities: ActivityInput,
        profile: AthleteProfile | None = None,
        filters: DurabilityFilters | None = None,
        user_id: str | None = None,
    ) -> DurabilityAnalysisResponse:
        """
        Analyze durability for every ride matching the filters.

        Rides are returned newest first.

        Args:
            activities: Prepared activities or an input document
            profile: Athlete thresholds
            filters: Ride selection; the minimum duration defaults to
                ``Settings.durability.default_min_duration_sec``
            user_id: If given, merge the snapshot and per-ride metrics into
                this user's record

        Returns:
            DurabilityAnalysisResponse
        """
        prepared, profile = self._resolve(activities, profile)
        filters = self._resolve_filters(filters)
        disciplines = sorted({activity.meta.source for activity in prepared})

        selected = [a for a in prepared if self._matches(a, filters)]
        selected.sort(key=lambda a: _as_utc(a.meta.start_time), reverse=True)
        self.logger.info(
            f"Analyzing durability for {len(selected)} of {len(prepared)} rides"
        )

        rides = [self.durability.analyze_ride(a, profile) for a in selected]
        response = DurabilityAnalysisResponse(
            ftp_watts=profile.ftp,
            filters=filters,
            rides=rides,
            disciplines=disciplines,
        )

        if user_id is not None:
            metrics = {}
            for activity, ride in zip(selected, rides):
                metrics[f"durability:{activity.meta.id}"] = (
                    self.summarizer.build_metric_snapshot(
                        activity.meta,
                        {
                            "durabilityScore": ride.durability_score,
                            "normalizedPower": ride.normalized_power,
                            "heartRateDriftPct": ride.heart_rate_drift_pct,
                            "totalKj": ride.total_kj,
                            "tss": ride.tss,
                        },
                    )
                )
            snapshot = self.summarizer.summarize_durability(response)
            self._merge(user_id, ProfileAnalytics(durability=snapshot, metrics=metrics))
        return response

    def durable_tss(
        self,
        activities: ActivityInput,
        profile: AthleteProfile | None = None,
        threshold_kj: float | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        user_id: str | None = None,
    ) -> DurableTssResponse:
        """
        Compute durable TSS for every ride in the date range.

        FTP comes from the profile, falling back to the adaptation FTP
        estimate stored for ``user_id``. Rides are returned oldest first.

        Args:
            activities: Prepared activities or an input document
            profile: Athlete thresholds
            threshold_kj: Prior-work threshold (clamped to 1-5000 kJ)
            start_date: Earliest ride start to include
            end_date: Latest ride start to include
            user_id: User whose stored FTP estimate may be used

        Returns:
            DurableTssResponse
        """
        prepared, profile = self._resolve(activities, profile)
        if threshold_kj is None:
            threshold_kj = self.settings.durable_tss_threshold_kj
        threshold = clamp_threshold_kj(threshold_kj)

        ftp = profile.ftp
        if ftp is None and user_id is not None:
            ftp = self._stored_ftp_estimate(user_id)

        selected = [
            a for a in prepared if _in_range(a.meta.start_time, start_date, end_date)
        ]
        selected.sort(key=lambda a: _as_utc(a.meta.start_time))
        self.logger.info(
            f"Computing durable TSS above {threshold} kJ for {len(selected)} rides"
        )

        rides = [
            self.durable_tss_calculator.calculate(a, ftp, threshold) for a in selected
        ]
        return DurableTssResponse(
            ftp_watts=round_or_none(ftp, 1) if ftp is not None else None,
            threshold_kj=threshold,
            filters=DurableTssFilters(start_date=start_date, end_date=end_date),
            rides=rides,
        )

    def adaptation_edges(
        self, activities: ActivityInput, user_id: str | None = None
    ) -> AdaptationEdgesResponse:
        """
        Find the best multi-day training blocks.

        Args:
            activities: Prepared activities or an input document
            user_id: If given, merge the snapshot and per-activity power
                metrics into this user's record

        Returns:
            AdaptationEdgesResponse
        """
        prepared, _ = self._resolve(activities, None)
        self.logger.info(f"Optimizing adaptation edges for {len(prepared)} activities")

        loads = [self.power.activity_load(activity) for activity in prepared]
        response = self.optimizer.optimize(loads)

        if user_id is not None:
            metrics = {
                f"power:{activity.meta.id}": self.summarizer.build_metric_snapshot(
                    activity.meta,
                    {
                        "normalizedPower": round_or_none(load.normalized_power, 1),
                        "averagePower": round_or_none(load.average_power, 1),
                    },
                )
                for activity, load in zip(prepared, loads)
            }
            snapshot = self.summarizer.summarize_adaptation_edges(response)
            self._merge(
                user_id, ProfileAnalytics(adaptation_edges=snapshot, metrics=metrics)
            )
        return response

    def get_profile_analytics(self, user_id: str) -> ProfileAnalytics | None:
        """Stored analytics record for a user."""
        record = self.store.get(user_id)
        return record.analytics if record is not None else None

    # ========================================================================
    # Helpers
    # ========================================================================

    def _resolve(
        self, activities: ActivityInput, profile: AthleteProfile | None
    ) -> tuple[list[PreparedActivity], AthleteProfile]:
        """Prepare the activities and pick the profile to use."""
        if isinstance(activities, InputDocument):
            if profile is None:
                profile = activities.profile
            activities = self.loader.prepare_activities(activities)
        if profile is None:
            profile = self.settings.default_profile()
        return self._filter_activities(activities), profile

    def _filter_activities(
        self, activities: Sequence[PreparedActivity]
    ) -> list[PreparedActivity]:
        """Drop empty activities and those above the sample limit."""
        limit = self.settings.max_samples_per_activity
        kept = []
        for activity in activities:
            samples = len(activity.stream)
            if samples == 0:
                self.logger.debug(f"Activity {activity.meta.id} has no samples, skipping")
                continue
            if limit is not None and samples > limit:
                self.logger.warning(
                    f"Activity {activity.meta.id} has {samples} samples "
                    f"(limit {limit}), skipping"
                )
                continue
            kept.append(activity)
        return kept

    def _resolve_filters(self, filters: DurabilityFilters | None) -> DurabilityFilters:
        """Fill in the configured minimum duration where none was given."""
        filters = filters if filters is not None else DurabilityFilters()
        if filters.min_duration_sec is None:
            filters = filters.model_copy(
                update={
                    "min_duration_sec": self.settings.durability.default_min_duration_sec
                }
            )
        return filters

    @staticmethod
    def _matches(activity: PreparedActivity, filters: DurabilityFilters) -> bool:
        meta = activity.meta
        if meta.duration_sec < filters.min_duration_sec:
            return False
        if not _in_range(meta.start_time, filters.start_date, filters.end_date):
            return False
        if filters.discipline is not None:
            return filters.discipline.lower() in meta.source.lower()
        return True

    def _stored_ftp_estimate(self, user_id: str) -> float | None:
        analytics = self.get_profile_analytics(user_id)
        if analytics is None or analytics.adaptation_edges is None:
            return None
        estimate = analytics.adaptation_edges.ftp_estimate
        if estimate is None or estimate <= 0:
            return None
        return estimate

    def _merge(self, user_id: str, partial: ProfileAnalytics) -> None:
        merge_profile_analytics(
            self.store,
            user_id,
            partial,
            max_retries=self.settings.merge_max_retries,
            clock=self.summarizer.clock,
        )
        self.logger.info(f"Updated analytics record for {user_id}")
