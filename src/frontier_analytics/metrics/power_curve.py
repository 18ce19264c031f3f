"""
Power curve analysis and critical power modeling.

This module builds the duration-power frontier (best average power per
duration across activities), its upper convex hull in log-log space, the
multi-hour kJ throughput frontier, and a Critical Power (CP) / W' fit.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from scipy.optimize import curve_fit

from ..constants import EnergyConstants, TimeConstants
from ..models import (
    AthleteProfile,
    CriticalPowerModel,
    DurationPowerEntry,
    DurationPowerFrontier,
    KjFrontierEntry,
    PreparedActivity,
)
from .base import BaseFrontierCalculator, pct_of_ftp, round_or_none, window_rate
from .rolling import WindowBest, best_window_average, window_samples

logger = logging.getLogger(__name__)


# pylint: disable=C0103  # Allow short variable names for mathematical functions.
def hyperbolic_model(
    t: np.ndarray | float, CP: float, W_prime: float
) -> np.ndarray | float:
    """
    Hyperbolic power-duration model: P(t) = CP + W' / t.

    Args:
        t: Duration in seconds
        CP: Critical Power
        W_prime: Anaerobic Work Capacity

    Returns:
        Predicted power output
    """
    t = np.array(t, dtype=float)
    t[t == 0] = 1e-6
    return CP + W_prime / t


def estimate_cp_wprime(points: list[tuple[int, float]]) -> CriticalPowerModel | None:
    """
    Estimate Critical Power (CP) and W' by fitting the hyperbolic model.

    Args:
        points: List of (duration, power) tuples

    Returns:
        CriticalPowerModel, or None with fewer than three points or when the
        fit does not converge
    """
    if len(points) < 3:
        return None

    durations = np.array([d for d, _ in points], dtype=float)
    powers = np.array([p for _, p in points], dtype=float)

    # CP starts at the lowest power, W' at the spread times the shortest duration
    initial_cp = max(float(powers.min()), 1.0)
    initial_w_prime = max(float((powers.max() - powers.min()) * durations.min()), 1.0)

    try:
        # pylint: disable=unbalanced-tuple-unpacking
        popt, _ = curve_fit(
            hyperbolic_model,
            durations,
            powers,
            p0=[initial_cp, initial_w_prime],
            bounds=([0, 0], [np.inf, np.inf]),
        )
    except (RuntimeError, ValueError) as e:
        logger.warning(f"Error fitting CP/W' model: {e}")
        return None

    cp_estimate, w_prime_estimate = (float(v) for v in popt)
    predicted = hyperbolic_model(durations, cp_estimate, w_prime_estimate)
    ss_res = float(np.sum((powers - predicted) ** 2))
    ss_tot = float(np.sum((powers - np.mean(powers)) ** 2))
    r_squared = 1 - ss_res / ss_tot if ss_tot > 0 else None

    return CriticalPowerModel(
        cp=round(cp_estimate, 1),
        w_prime=round(w_prime_estimate, 0),
        r_squared=round_or_none(r_squared, 4),
    )


def compute_convex_hull(entries: Sequence[DurationPowerEntry]) -> list[DurationPowerEntry]:
    """
    Upper convex hull of the frontier in (ln duration, ln power) space.

    Entries without a positive value or duration are ignored, and of several
    entries sharing a duration only the highest is kept. The result is an
    ordered subset of the input whose successive slopes strictly decrease,
    and applying the function to its own output returns the same list.

    Args:
        entries: Duration-power entries

    Returns:
        Hull entries sorted by duration
    """
    best_by_duration: dict[int, DurationPowerEntry] = {}
    for entry in entries:
        if entry.value is None or entry.value <= 0 or entry.duration_sec <= 0:
            continue
        current = best_by_duration.get(entry.duration_sec)
        if current is None or entry.value > current.value:
            best_by_duration[entry.duration_sec] = entry
    valid = [best_by_duration[d] for d in sorted(best_by_duration)]

    def slope(a: DurationPowerEntry, b: DurationPowerEntry) -> float:
        return (math.log(b.value) - math.log(a.value)) / (
            math.log(b.duration_sec) - math.log(a.duration_sec)
        )

    hull: list[DurationPowerEntry] = []
    for entry in valid:
        while len(hull) >= 2 and slope(hull[-2], hull[-1]) <= slope(hull[-1], entry):
            hull.pop()
        hull.append(entry)
    return hull


@dataclass
class _Best:
    """Running best for one frontier slot during the reduction."""

    raw: float | None = None
    activity: PreparedActivity | None = None
    window_start_sec: int | None = None


@dataclass(frozen=True)
class DurationPowerScan:
    """Per-activity best windows, keyed by duration (seconds) and kJ hours."""

    durations: dict[int, tuple[WindowBest, int]]
    kj_windows: dict[float, tuple[WindowBest, int]]


class DurationPowerCalculator(BaseFrontierCalculator):
    """Calculates the duration-power and kJ throughput frontiers."""

    def scan(self, activity: PreparedActivity) -> DurationPowerScan:
        """
        Find the best window of every configured duration in one activity.

        Args:
            activity: Prepared activity

        Returns:
            Best windows with their rounded start time in seconds
        """
        config = self.settings.duration_power
        times, power = activity.power_samples()
        rate = window_rate(activity)

        def best_for(seconds: float) -> tuple[WindowBest, int] | None:
            if power.size == 0:
                return None
            best = best_window_average(power, window_samples(seconds, rate))
            if best is None:
                return None
            return best, int(math.floor(times[best.start] + 0.5))

        durations = {}
        for duration in config.durations_sec:
            found = best_for(duration)
            if found is not None:
                durations[duration] = found

        kj_windows = {}
        for hours in config.kj_window_hours:
            found = best_for(hours * TimeConstants.SECONDS_PER_HOUR)
            if found is not None:
                kj_windows[hours] = found

        return DurationPowerScan(durations=durations, kj_windows=kj_windows)

    def calculate(
        self, activities: Sequence[PreparedActivity], profile: AthleteProfile
    ) -> DurationPowerFrontier:
        """
        Reduce activities to the duration-power frontier.

        An entry is replaced only by a strictly greater average, so ties keep
        the earlier activity.

        Args:
            activities: Prepared activities, in reduction order
            profile: Athlete thresholds

        Returns:
            DurationPowerFrontier
        """
        config = self.settings.duration_power
        scans = self._scan_all(self.scan, activities)

        duration_best = {d: _Best() for d in config.durations_sec}
        kj_best = {h: _Best() for h in config.kj_window_hours}

        for activity, scan in zip(activities, scans):
            for duration, (best, start_sec) in scan.durations.items():
                slot = duration_best[duration]
                if slot.raw is None or best.average > slot.raw:
                    duration_best[duration] = _Best(best.average, activity, start_sec)

            for hours, (best, start_sec) in scan.kj_windows.items():
                slot = kj_best[hours]
                if slot.raw is None or best.average > slot.raw:
                    kj_best[hours] = _Best(best.average, activity, start_sec)

        ftp = profile.ftp
        durations = [
            self._duration_entry(duration, slot, ftp)
            for duration, slot in duration_best.items()
        ]
        kj_frontier = [self._kj_entry(hours, slot, ftp) for hours, slot in kj_best.items()]

        peak: KjFrontierEntry | None = None
        for entry in kj_frontier:
            if entry.value is not None and (peak is None or entry.value > peak.value):
                peak = entry

        return DurationPowerFrontier(
            durations=durations,
            convex_hull=compute_convex_hull(durations),
            kj_frontier=kj_frontier,
            peak_kj_per_hour=peak,
            critical_power=self._fit_critical_power(durations),
        )

    def _fit_critical_power(
        self, durations: list[DurationPowerEntry]
    ) -> CriticalPowerModel | None:
        """Fit CP/W' to the frontier points inside the configured range."""
        config = self.settings.duration_power
        points = [
            (e.duration_sec, e.value)
            for e in durations
            if e.value is not None
            and e.value > 0
            and config.cp_fit_min_sec <= e.duration_sec <= config.cp_fit_max_sec
        ]
        return estimate_cp_wprime(points)

    @staticmethod
    def _duration_entry(
        duration: int, slot: _Best, ftp: float | None
    ) -> DurationPowerEntry:
        if slot.activity is None:
            return DurationPowerEntry(duration_sec=duration)
        return DurationPowerEntry(
            duration_sec=duration,
            value=round_or_none(slot.raw, 1),
            pct_ftp=pct_of_ftp(slot.raw, ftp),
            activity_id=slot.activity.meta.id,
            start_time=slot.activity.meta.start_time_iso,
            window_start_sec=slot.window_start_sec,
        )

    @staticmethod
    def _kj_entry(hours: float, slot: _Best, ftp: float | None) -> KjFrontierEntry:
        if slot.activity is None:
            return KjFrontierEntry(duration_hours=hours)
        return KjFrontierEntry(
            duration_hours=hours,
            value=round_or_none(slot.raw * EnergyConstants.KJ_PER_HOUR_PER_WATT, 1),
            average_watts=round_or_none(slot.raw, 1),
            total_kj=round_or_none(
                slot.raw * hours * EnergyConstants.KJ_PER_HOUR_PER_WATT, 1
            ),
            pct_ftp=pct_of_ftp(slot.raw, ftp),
            activity_id=slot.activity.meta.id,
            start_time=slot.activity.meta.start_time_iso,
            window_start_sec=slot.window_start_sec,
        )
