"""
Time-in-zone streak analysis.

This module finds the longest stay in each power zone, judged on a 30 s
rolling average and allowing a small fraction of out-of-zone samples.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from ..constants import StreamColumns, TimeConstants
from ..models import (
    AthleteProfile,
    PreparedActivity,
    TimeInZoneFrontier,
    ZoneDefinition,
    ZoneStreak,
)
from .base import BaseFrontierCalculator, round_half_up, round_or_none, window_rate
from .rolling import window_averages, window_samples

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Streak:
    """A tolerance-bounded run of rolling samples inside one zone."""

    start: int
    end: int
    average_watts: float
    average_heart_rate: float | None


def longest_streaks(
    rolling: np.ndarray,
    heart_rate: np.ndarray,
    min_watts: float,
    max_watts: float,
    tolerance: float,
) -> list[Streak]:
    """
    Greedy streak search over a rolling-power series.

    From each start the streak extends while the out-of-zone fraction stays
    within ``tolerance``; the sample that would push it over is retracted and
    closes the streak. The next search starts after the closed streak, or one
    sample later when the streak is empty.

    Args:
        rolling: Rolling power values
        heart_rate: Heart rate aligned with ``rolling`` (NaN when missing)
        min_watts: Lower zone bound
        max_watts: Upper zone bound (inf for an open zone)
        tolerance: Maximum out-of-zone fraction

    Returns:
        Non-empty streaks in order of start
    """
    values = rolling.tolist()
    rates = heart_rate.tolist()
    outside = ((rolling < min_watts) | (rolling > max_watts)).tolist()
    n = len(values)

    streaks = []
    start = 0
    while start < n:
        out = 0
        power_sum = 0.0
        hr_sum = 0.0
        hr_count = 0
        end = start
        while end < n:
            if outside[end]:
                out += 1
            if out / (end - start + 1) > tolerance:
                break
            power_sum += values[end]
            if not math.isnan(rates[end]):
                hr_sum += rates[end]
                hr_count += 1
            end += 1

        if end > start:
            streaks.append(
                Streak(
                    start=start,
                    end=end,
                    average_watts=power_sum / (end - start),
                    average_heart_rate=hr_sum / hr_count if hr_count else None,
                )
            )
        start = max(start + 1, end)
    return streaks


class TimeInZoneCalculator(BaseFrontierCalculator):
    """Calculates the longest streak per power zone."""

    def scan(
        self, activity: PreparedActivity, ftp: float
    ) -> dict[str, tuple[float, Streak, int]]:
        """
        Longest streak per zone in one activity.

        Args:
            activity: Prepared activity
            ftp: Functional Threshold Power (positive)

        Returns:
            Mapping of zone key to (duration_sec, streak, window_start_sec)
        """
        config = self.settings.time_in_zone
        power = activity.column(StreamColumns.POWER)
        valid = np.isfinite(power)
        if not valid.any():
            return {}

        rate = window_rate(activity)
        window = window_samples(config.rolling_window_sec, rate)
        rolling = window_averages(power[valid], window)
        if rolling.size == 0:
            return {}

        # Each rolling value belongs to the last sample of its window
        times = activity.times[valid][window - 1 :]
        heart_rate = activity.column(StreamColumns.HEART_RATE)[valid][window - 1 :]

        found = {}
        for zone in config.zones:
            min_watts, max_watts = self._bounds(zone, ftp)
            best: Streak | None = None
            for streak in longest_streaks(
                rolling, heart_rate, min_watts, max_watts, config.tolerance
            ):
                if best is None or streak.end - streak.start > best.end - best.start:
                    best = streak
            if best is not None:
                found[zone.key] = (
                    (best.end - best.start) / rate,
                    best,
                    round_half_up(times[best.start]),
                )
        return found

    def calculate(
        self, activities: Sequence[PreparedActivity], profile: AthleteProfile
    ) -> TimeInZoneFrontier:
        """
        Reduce activities to the longest streak per zone.

        A streak replaces the current one only when strictly longer.

        Args:
            activities: Prepared activities, in reduction order
            profile: Athlete thresholds

        Returns:
            TimeInZoneFrontier (zero-length streaks without FTP)
        """
        zones = self.settings.time_in_zone.zones
        ftp = profile.ftp
        if ftp is None:
            return TimeInZoneFrontier(streaks=[self._empty(z) for z in zones])

        scans = self._scan_all(lambda a: self.scan(a, ftp), activities)

        best: dict[str, tuple[float, Streak, int, PreparedActivity]] = {}
        for activity, scan in zip(activities, scans):
            for key, (duration, streak, start_sec) in scan.items():
                current = best.get(key)
                if current is None or duration > current[0]:
                    best[key] = (duration, streak, start_sec, activity)

        streaks = []
        for zone in zones:
            entry = best.get(zone.key)
            if entry is None:
                streaks.append(self._empty(zone))
                continue
            duration, streak, start_sec, activity = entry
            streaks.append(
                ZoneStreak(
                    zone_key=zone.key,
                    label=zone.label,
                    min_pct=zone.min_pct,
                    max_pct=zone.max_pct,
                    duration_sec=duration,
                    value=round_or_none(duration / TimeConstants.SECONDS_PER_MINUTE, 1),
                    activity_id=activity.meta.id,
                    start_time=activity.meta.start_time_iso,
                    window_start_sec=start_sec,
                    average_watts=round_or_none(streak.average_watts, 1),
                    average_heart_rate=round_or_none(streak.average_heart_rate, 0),
                )
            )
        return TimeInZoneFrontier(streaks=streaks)

    @staticmethod
    def _bounds(zone: ZoneDefinition, ftp: float) -> tuple[float, float]:
        min_watts = zone.min_pct / 100 * ftp
        max_watts = zone.max_pct / 100 * ftp if zone.max_pct is not None else np.inf
        return min_watts, max_watts

    @staticmethod
    def _empty(zone: ZoneDefinition) -> ZoneStreak:
        return ZoneStreak(
            zone_key=zone.key,
            label=zone.label,
            min_pct=zone.min_pct,
            max_pct=zone.max_pct,
        )
