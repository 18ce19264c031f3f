"""
Per-ride durability analysis.

This module splits a ride into early, middle and late segments and measures
how power and heart-rate cost hold up across them:
- Segment NP, average power and heart rate, HR/power ratio
- Heart-rate drift between the early and late segments
- Best 20-minute power inside the late segment
- A 0-100 durability score combining the above
"""

import logging
import math

import numpy as np

from ..constants import EnergyConstants, StreamColumns
from ..models import (
    AthleteProfile,
    DurabilityRideAnalysis,
    DurabilitySegment,
    DurabilitySegments,
    PreparedActivity,
    TimeSeriesPoint,
)
from ..settings import Settings
from .base import pct_of_ftp, round_half_up, round_or_none
from .power import average_power, normalized_power, total_joules, training_stress_score
from .rolling import best_window_average, window_samples

logger = logging.getLogger(__name__)


def _usable(value: float | None) -> bool:
    return value is not None and not math.isnan(value)


def calculate_durability_score(
    early_np_pct: float | None,
    late_np_pct: float | None,
    heart_rate_drift_pct: float | None,
    best_late_pct_ftp: float | None,
) -> int:
    """
    Combine fade, drift and late power into a 0-100 score.

    Starting from 100: a late NP below the early NP costs half the drop; a
    late NP at or above it adds a fifth of the rise (at most 5); positive
    drift costs three quarters of the drift; a best late 20 minutes above
    100% FTP adds half the excess. Missing inputs contribute nothing.

    Args:
        early_np_pct: Early-segment NP as %FTP
        late_np_pct: Late-segment NP as %FTP
        heart_rate_drift_pct: HR/power drift between early and late segments
        best_late_pct_ftp: Best late 20-minute power as %FTP

    Returns:
        Score clamped to [0, 100], rounded half up
    """
    score = 100.0

    if _usable(early_np_pct) and _usable(late_np_pct):
        drop = early_np_pct - late_np_pct
        if drop > 0:
            score -= drop * 0.5
        else:
            score += min(abs(drop) * 0.2, 5)

    if _usable(heart_rate_drift_pct) and heart_rate_drift_pct > 0:
        score -= heart_rate_drift_pct * 0.75

    if _usable(best_late_pct_ftp) and best_late_pct_ftp > 100:
        score += (best_late_pct_ftp - 100) * 0.5

    if math.isnan(score):
        return 0
    return round_half_up(min(100.0, max(0.0, score)))


def downsample_series(points: list[TimeSeriesPoint], max_points: int) -> list[TimeSeriesPoint]:
    """Keep every ``ceil(n / max_points)``-th point plus the last one."""
    if len(points) <= max_points:
        return points
    step = math.ceil(len(points) / max_points)
    sampled = points[::step]
    if sampled[-1].t != points[-1].t:
        sampled.append(points[-1])
    return sampled


def _optional(value: float) -> float | None:
    return None if math.isnan(value) else float(value)


class DurabilityCalculator:
    """Calculates durability metrics for a single ride."""

    def __init__(self, settings: Settings):
        """
        Initialize calculator with settings.

        Args:
            settings: Application settings containing segment configuration
        """
        self.settings = settings

    def analyze_ride(
        self, activity: PreparedActivity, profile: AthleteProfile
    ) -> DurabilityRideAnalysis:
        """
        Analyze one ride.

        Args:
            activity: Prepared activity
            profile: Athlete thresholds

        Returns:
            DurabilityRideAnalysis
        """
        config = self.settings.durability
        meta = activity.meta
        ftp = profile.ftp
        rate = activity.sample_rate

        times = activity.times
        power = activity.column(StreamColumns.POWER)
        heart_rate = activity.column(StreamColumns.HEART_RATE)
        valid_power = power[np.isfinite(power)]

        np_window = window_samples(config.normalized_window_sec, rate)
        ride_np = normalized_power(valid_power, np_window)
        joules = total_joules(power, rate)

        duration = meta.duration_sec
        early_end = duration * config.early_fraction
        middle_end = duration * config.late_fraction

        streams = (times, power, heart_rate)
        early = self._segment(
            "early", streams, 0, early_end, early_end, ftp, np_window
        )
        middle = self._segment(
            "middle", streams, early_end, middle_end, middle_end, ftp, np_window
        )
        # Late segment includes the final second
        late = self._segment(
            "late", streams, middle_end, duration + 1, duration, ftp, np_window
        )

        drift = None
        early_ratio = early.heart_rate_power_ratio
        late_ratio = late.heart_rate_power_ratio
        if early_ratio is not None and early_ratio > 0 and late_ratio is not None:
            drift = round_or_none((late_ratio - early_ratio) / early_ratio * 100, 1)

        late_mask = (times >= middle_end) & (times < duration + 1)
        late_power = power[late_mask]
        late_power = late_power[np.isfinite(late_power)]
        best_late = None
        if late_power.size:
            found = best_window_average(
                late_power, window_samples(config.best_late_window_sec, rate)
            )
            best_late = found.average if found is not None else None
        best_late_pct = pct_of_ftp(best_late, ftp)

        series = [
            TimeSeriesPoint(t=float(t), power=_optional(p), heart_rate=_optional(h))
            for t, p, h in zip(times, power, heart_rate)
        ]

        hr_values = heart_rate[np.isfinite(heart_rate)]
        return DurabilityRideAnalysis(
            activity_id=meta.id,
            start_time=meta.start_time_iso,
            source=meta.source,
            duration_sec=duration,
            ftp_watts=ftp,
            normalized_power=round_or_none(ride_np, 1),
            normalized_power_pct_ftp=pct_of_ftp(ride_np, ftp),
            average_power=round_or_none(average_power(valid_power), 1),
            average_heart_rate=round_or_none(
                float(np.mean(hr_values)) if hr_values.size else None, 0
            ),
            total_kj=(
                round_or_none(joules / EnergyConstants.JOULES_PER_KJ, 1)
                if joules is not None
                else None
            ),
            tss=round_or_none(training_stress_score(ride_np, ftp, duration), 1),
            heart_rate_drift_pct=drift,
            best_late_twenty_min_watts=round_or_none(best_late, 1),
            best_late_twenty_min_pct_ftp=best_late_pct,
            durability_score=calculate_durability_score(
                early.normalized_power_pct_ftp,
                late.normalized_power_pct_ftp,
                drift,
                best_late_pct,
            ),
            segments=DurabilitySegments(early=early, middle=middle, late=late),
            time_series=downsample_series(series, config.max_series_points),
        )

    @staticmethod
    def _segment(
        label: str,
        streams: tuple[np.ndarray, np.ndarray, np.ndarray],
        start: float,
        select_end: float,
        end: float,
        ftp: float | None,
        np_window: int,
    ) -> DurabilitySegment:
        """
        Metrics for the samples with ``start <= t < select_end``.

        ``end`` is the reported boundary, which differs from ``select_end``
        only for the late segment.
        """
        times, power, heart_rate = streams
        mask = (times >= start) & (times < select_end)
        seg_power = power[mask]
        seg_power = seg_power[np.isfinite(seg_power)]
        seg_hr = heart_rate[mask]
        seg_hr = seg_hr[np.isfinite(seg_hr)]

        seg_np = normalized_power(seg_power, np_window)
        avg_power = average_power(seg_power)
        avg_hr = float(np.mean(seg_hr)) if seg_hr.size else None
        ratio = None
        if avg_power is not None and avg_power > 0 and avg_hr is not None:
            ratio = avg_hr / avg_power

        return DurabilitySegment(
            label=label,
            start_sec=start,
            end_sec=end,
            duration_sec=max(0.0, end - start),
            normalized_power=round_or_none(seg_np, 1),
            normalized_power_pct_ftp=pct_of_ftp(seg_np, ftp),
            average_power=round_or_none(avg_power, 1),
            average_heart_rate=round_or_none(avg_hr, 0),
            heart_rate_power_ratio=round_or_none(ratio, 3),
        )
