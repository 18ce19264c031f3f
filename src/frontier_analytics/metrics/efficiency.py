"""
Steady-state efficiency calculations.

This module finds long windows of continuous riding and ranks them by how
much power each heartbeat buys:
- Watts per bpm
- Watts per % heart-rate reserve
- Cadence and moving coverage of each window
"""

import logging
from collections.abc import Sequence

import numpy as np

from ..constants import StreamColumns
from ..models import AthleteProfile, EfficiencyFrontier, EfficiencyWindow, PreparedActivity
from .base import BaseFrontierCalculator, pct_of_ftp, round_or_none, window_rate
from .rolling import window_samples, window_sums

logger = logging.getLogger(__name__)


def heart_rate_reserve_pct(
    heart_rate: float | None, hr_rest: float | None, hr_max: float | None
) -> float | None:
    """
    Heart rate as a percentage of heart-rate reserve.

    Args:
        heart_rate: Heart rate in bpm
        hr_rest: Resting heart rate
        hr_max: Maximum heart rate

    Returns:
        ``(hr - rest) / (max - rest) * 100``, or None when undefined
    """
    if heart_rate is None or hr_rest is None or hr_max is None:
        return None
    if not all(np.isfinite(v) for v in (heart_rate, hr_rest, hr_max)) or hr_max <= hr_rest:
        return None
    return (heart_rate - hr_rest) / (hr_max - hr_rest) * 100


class EfficiencyCalculator(BaseFrontierCalculator):
    """Calculates the steady-state efficiency frontier."""

    def scan(
        self, activity: PreparedActivity, profile: AthleteProfile
    ) -> list[EfficiencyWindow]:
        """
        Top windows by watts per bpm for every configured duration.

        Args:
            activity: Prepared activity
            profile: Athlete thresholds

        Returns:
            Up to ``max_results`` windows per duration
        """
        config = self.settings.efficiency
        rate = window_rate(activity)
        times = activity.times

        power = activity.power_filled
        heart_rate = activity.column(StreamColumns.HEART_RATE)
        hr_valid = np.isfinite(heart_rate)
        hr_filled = np.where(hr_valid, heart_rate, 0.0)
        cadence = np.nan_to_num(activity.column(StreamColumns.CADENCE), nan=0.0)
        speed = np.nan_to_num(activity.column(StreamColumns.SPEED), nan=0.0)
        cadence_ok = (cadence > config.cadence_valid_threshold).astype(float)
        moving = (speed > config.moving_speed_threshold).astype(float)

        windows: list[EfficiencyWindow] = []
        for duration in config.durations_sec:
            size = window_samples(duration, rate)
            if size > len(power):
                continue

            cadence_cov = window_sums(cadence_ok, size) / size
            moving_cov = window_sums(moving, size) / size
            hr_count = window_sums(hr_valid.astype(float), size)
            qualifies = (
                (cadence_cov >= config.cadence_coverage_min)
                & (moving_cov >= config.moving_coverage_min)
                & (hr_count / size >= config.heart_rate_coverage_min)
            )
            starts = np.flatnonzero(qualifies)
            if starts.size == 0:
                continue

            avg_power = window_sums(power, size)[starts] / size
            with np.errstate(divide="ignore", invalid="ignore"):
                avg_hr = window_sums(hr_filled, size)[starts] / hr_count[starts]
                wpb = np.where(avg_hr > 0, avg_power / avg_hr, np.nan)

            # Ranking uses the reported (2 dp) value; ties keep the earliest window
            rank_key = np.nan_to_num(np.floor(wpb * 100 + 0.5) / 100, nan=0.0)
            order = np.argsort(-rank_key, kind="stable")[: config.max_results]

            for i in order:
                windows.append(
                    self._window(
                        activity,
                        profile,
                        duration,
                        avg_power=float(avg_power[i]),
                        avg_hr=float(avg_hr[i]),
                        watts_per_bpm=float(wpb[i]),
                        cadence_coverage=float(cadence_cov[starts[i]]),
                        moving_coverage=float(moving_cov[starts[i]]),
                        window_start=float(times[starts[i]]),
                    )
                )
        return windows

    def calculate(
        self, activities: Sequence[PreparedActivity], profile: AthleteProfile
    ) -> EfficiencyFrontier:
        """
        Merge per-activity windows, sorted by duration then watts per bpm.

        Args:
            activities: Prepared activities, in reduction order
            profile: Athlete thresholds

        Returns:
            EfficiencyFrontier
        """
        scans = self._scan_all(lambda a: self.scan(a, profile), activities)
        windows = [w for scan in scans for w in scan]
        windows.sort(key=lambda w: (w.duration_sec, -(w.watts_per_bpm or 0)))
        return EfficiencyFrontier(windows=windows)

    @staticmethod
    def _window(
        activity: PreparedActivity,
        profile: AthleteProfile,
        duration: int,
        *,
        avg_power: float,
        avg_hr: float,
        watts_per_bpm: float,
        cadence_coverage: float,
        moving_coverage: float,
        window_start: float,
    ) -> EfficiencyWindow:
        hrr_pct = heart_rate_reserve_pct(avg_hr, profile.hr_rest_bpm, profile.hr_max_bpm)
        per_hrr = avg_power / hrr_pct if hrr_pct is not None and hrr_pct > 0 else None
        return EfficiencyWindow(
            duration_sec=duration,
            value=round_or_none(avg_power, 1),
            pct_ftp=pct_of_ftp(avg_power, profile.ftp),
            activity_id=activity.meta.id,
            start_time=activity.meta.start_time_iso,
            window_start_sec=int(np.floor(window_start + 0.5)),
            average_watts=round_or_none(avg_power, 1),
            average_heart_rate=round_or_none(avg_hr, 0),
            watts_per_bpm=round_or_none(watts_per_bpm, 2),
            watts_per_heart_rate_reserve=round_or_none(per_hrr, 2),
            cadence_coverage=round_or_none(cadence_coverage * 100, 1) or 0.0,
            moving_coverage=round_or_none(moving_coverage * 100, 1) or 0.0,
        )
