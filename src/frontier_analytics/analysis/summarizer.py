"""
Analytics snapshot summaries.

This module condenses full analysis responses into the small snapshots kept
on a user's analytics record.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Protocol

from ..metrics.base import round_or_none
from ..models import (
    ActivityMeta,
    AdaptationBlock,
    AdaptationEdgesResponse,
    AdaptationSnapshot,
    AdaptationWindowSnapshot,
    DurabilityAnalysisResponse,
    DurabilityBestRide,
    DurabilitySnapshot,
    RepeatabilityFrontier,
    RepeatabilityRecord,
    TrainingFrontiersResponse,
    TrainingFrontiersSnapshot,
)
from ..settings import Settings

logger = logging.getLogger(__name__)

TOP_DURATION_COUNT = 5


class SummarizerProtocol(Protocol):
    """Protocol for summarizers."""

    def summarize_durability(
        self, analysis: DurabilityAnalysisResponse
    ) -> DurabilitySnapshot:
        """Create a snapshot of a durability analysis."""
        ...


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


class AnalyticsSummarizer:
    """
    Service for creating analytics snapshots.

    Each ``summarize_*`` method keeps the headline figures of one response
    and stamps the snapshot with its generation time.
    """

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = utc_now):
        """
        Initialize the summarizer service.

        Args:
            settings: Application settings
            clock: Source of generation timestamps
        """
        self.settings = settings
        self.clock = clock
        self.logger = logging.getLogger(__name__)

    def summarize_durability(
        self, analysis: DurabilityAnalysisResponse
    ) -> DurabilitySnapshot:
        """
        Condense a durability analysis.

        The best ride is the first with the highest score.

        Args:
            analysis: Durability analysis response

        Returns:
            DurabilitySnapshot
        """
        rides = analysis.rides
        best = None
        for ride in rides:
            if best is None or ride.durability_score > best.durability_score:
                best = ride

        total_score = sum(ride.durability_score for ride in rides)
        total_kj = sum(ride.total_kj or 0.0 for ride in rides)

        return DurabilitySnapshot(
            ftp_watts=analysis.ftp_watts,
            ride_count=len(rides),
            average_score=round_or_none(total_score / len(rides), 1) if rides else None,
            best_score=best.durability_score if best is not None else None,
            best_ride=(
                DurabilityBestRide(
                    activity_id=best.activity_id,
                    start_time=best.start_time,
                    duration_sec=best.duration_sec,
                    normalized_power=best.normalized_power,
                    normalized_power_pct_ftp=best.normalized_power_pct_ftp,
                    heart_rate_drift_pct=best.heart_rate_drift_pct,
                    total_kj=best.total_kj,
                    tss=best.tss,
                )
                if best is not None
                else None
            ),
            total_training_load_kj=round_or_none(total_kj, 1) or 0.0,
            filters=analysis.filters,
            generated_at=self.clock(),
        )

    def summarize_training_frontiers(
        self, response: TrainingFrontiersResponse
    ) -> TrainingFrontiersSnapshot:
        """
        Condense a training frontiers response.

        Keeps the five highest-power durations, the best fatigue effort, the
        most efficient window, the longest zone streak, the best
        repeatability record and the peak kJ/hour entry.

        Args:
            response: Training frontiers response

        Returns:
            TrainingFrontiersSnapshot
        """
        durations = [e for e in response.duration_power.durations if e.value is not None]
        durations.sort(key=lambda e: -e.value)

        best_effort = None
        for effort in response.durability.efforts:
            if effort.value is not None and (
                best_effort is None or effort.value > best_effort.value
            ):
                best_effort = effort

        best_window = None
        for window in response.efficiency.windows:
            if window.watts_per_bpm is not None and (
                best_window is None or window.watts_per_bpm > best_window.watts_per_bpm
            ):
                best_window = window

        best_streak = None
        for streak in response.time_in_zone.streaks:
            if best_streak is None or streak.duration_sec > best_streak.duration_sec:
                best_streak = streak

        record, drop = self._best_repeatability(response.repeatability)

        return TrainingFrontiersSnapshot(
            ftp_watts=response.ftp_watts,
            weight_kg=response.weight_kg,
            hr_max_bpm=response.hr_max_bpm,
            hr_rest_bpm=response.hr_rest_bpm,
            best_duration_power=durations[:TOP_DURATION_COUNT],
            best_durability_effort=best_effort,
            best_efficiency_window=best_window,
            best_time_in_zone=best_streak,
            best_repeatability=record,
            best_repeatability_drop=drop,
            peak_kj_per_hour=response.duration_power.peak_kj_per_hour,
            generated_at=self.clock(),
        )

    def summarize_adaptation_edges(
        self, response: AdaptationEdgesResponse
    ) -> AdaptationSnapshot:
        """
        Condense adaptation edges to the single best TSS and kJ blocks.

        Args:
            response: Adaptation edges response

        Returns:
            AdaptationSnapshot
        """
        best_tss = best_kj = None
        for window in response.windows:
            if window.best_tss is not None:
                candidate = self._window_snapshot(window.days, window.best_tss)
                if best_tss is None or candidate.total_tss > best_tss.total_tss:
                    best_tss = candidate
            if window.best_kilojoules is not None:
                candidate = self._window_snapshot(window.days, window.best_kilojoules)
                if best_kj is None or candidate.total_kj > best_kj.total_kj:
                    best_kj = candidate

        return AdaptationSnapshot(
            ftp_estimate=response.ftp_estimate,
            best_tss_window=best_tss,
            best_kj_window=best_kj,
            generated_at=self.clock(),
        )

    def build_metric_snapshot(self, meta: ActivityMeta, summary: dict) -> dict:
        """
        Snapshot of one activity-level metric result.

        Args:
            meta: Activity the metric was computed for
            summary: Metric values

        Returns:
            JSON-ready dict for ``ProfileAnalytics.metrics``
        """
        return {
            "activityId": meta.id,
            "activityStartTime": meta.start_time_iso,
            "activityDurationSec": meta.duration_sec,
            "activitySource": meta.source,
            "computedAt": self.clock().isoformat(),
            "summary": dict(summary),
        }

    @staticmethod
    def _best_repeatability(
        frontier: RepeatabilityFrontier,
    ) -> tuple[RepeatabilityRecord | None, float | None]:
        """Record with the most reps; ties go to the smaller first-to-last drop."""
        best: RepeatabilityRecord | None = None
        best_drop: float | None = None
        for record in frontier.best_repeatability:
            drop = next(
                (
                    s.drop_first_to_last
                    for s in frontier.sequences
                    if s.target_key == record.target_key
                    and s.activity_id == record.activity_id
                    and s.start_time == record.start_time
                    and (record.start_sec is None or s.start_sec == record.start_sec)
                ),
                None,
            )
            if best is None or record.reps > best.reps:
                best, best_drop = record, drop
            elif record.reps == best.reps and _drop_key(drop) < _drop_key(best_drop):
                best, best_drop = record, drop
        return best, best_drop

    @staticmethod
    def _window_snapshot(days: int, block: AdaptationBlock) -> AdaptationWindowSnapshot:
        return AdaptationWindowSnapshot(
            window_days=days,
            total_tss=round_or_none(sum(d.tss for d in block.contributing_days), 2),
            total_kj=round_or_none(sum(d.kilojoules for d in block.contributing_days), 2),
            activity_ids=list(block.activity_ids),
        )


def _drop_key(drop: float | None) -> float:
    return drop if drop is not None else float("inf")
