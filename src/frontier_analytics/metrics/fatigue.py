"""
Fatigue-adjusted power analysis.

This module provides metrics that account for the work already done in a
ride before an effort:
- Fatigue-threshold best efforts (best power after N kJ of prior work)
- Durable TSS (training stress accumulated after a kJ threshold)
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from ..constants import EnergyConstants, StreamColumns, TimeConstants
from ..models import (
    AthleteProfile,
    DurabilityEffort,
    DurabilityFrontier,
    DurableTssRide,
    DurationPowerEntry,
    PreparedActivity,
)
from ..settings import Settings, clamp_threshold_kj
from .base import BaseFrontierCalculator, pct_of_ftp, round_or_none, window_rate
from .power import normalized_power
from .rolling import best_window_average, window_samples

logger = logging.getLogger(__name__)


def energy_before(power: np.ndarray, interval: float) -> np.ndarray:
    """
    Work done before each sample, in joules.

    Args:
        power: Power samples in watts
        interval: Seconds represented by one sample

    Returns:
        Array where element ``i`` is the work of samples ``0..i-1``
    """
    cumulative = np.cumsum(power * interval)
    return np.concatenate(([0.0], cumulative[:-1]))


@dataclass(frozen=True)
class _EffortScan:
    """Best restricted window for one (fatigue_kj, duration) pair."""

    average: float
    window_start_sec: int


class FatigueEffortCalculator(BaseFrontierCalculator):
    """
    Calculates fatigue-threshold best efforts.

    For each (fatigue_kj, duration) pair the search only considers windows
    whose start is preceded by at least ``fatigue_kj`` of work.
    """

    def scan(self, activity: PreparedActivity) -> dict[tuple[float, int], _EffortScan]:
        """
        Find the best restricted window for every grid pair in one activity.

        Args:
            activity: Prepared activity

        Returns:
            Mapping of (fatigue_kj, duration_sec) to the best effort found
        """
        config = self.settings.fatigue
        times, power = activity.power_samples()
        if power.size == 0:
            return {}

        rate = window_rate(activity)
        before = energy_before(power, 1 / rate)

        found = {}
        for fatigue_kj in config.fatigue_bins_kj:
            allowed = before >= fatigue_kj * EnergyConstants.JOULES_PER_KJ
            if not allowed.any():
                continue
            for duration in config.target_durations_sec:
                best = best_window_average(
                    power, window_samples(duration, rate), allowed_starts=allowed
                )
                if best is not None:
                    found[(fatigue_kj, duration)] = _EffortScan(
                        average=best.average,
                        window_start_sec=int(np.floor(times[best.start] + 0.5)),
                    )
        return found

    def calculate(
        self,
        activities: Sequence[PreparedActivity],
        profile: AthleteProfile,
        fresh: Sequence[DurationPowerEntry] = (),
    ) -> DurabilityFrontier:
        """
        Reduce activities to the fatigue-threshold frontier.

        Args:
            activities: Prepared activities, in reduction order
            profile: Athlete thresholds
            fresh: Unrestricted duration-power frontier used for deltas

        Returns:
            DurabilityFrontier with one effort per grid pair
        """
        config = self.settings.fatigue
        fresh_lookup = {e.duration_sec: e.value for e in fresh if e.value is not None}
        scans = self._scan_all(self.scan, activities)

        best: dict[tuple[float, int], tuple[_EffortScan, PreparedActivity]] = {}
        for activity, scan in zip(activities, scans):
            for key, effort in scan.items():
                current = best.get(key)
                if current is None or effort.average > current[0].average:
                    best[key] = (effort, activity)

        ftp = profile.ftp
        efforts = []
        for fatigue_kj in config.fatigue_bins_kj:
            for duration in config.target_durations_sec:
                entry = best.get((fatigue_kj, duration))
                if entry is None:
                    efforts.append(
                        DurabilityEffort(fatigue_kj=fatigue_kj, duration_sec=duration)
                    )
                    continue

                effort, activity = entry
                delta_watts = delta_pct = None
                fresh_value = fresh_lookup.get(duration)
                if fresh_value is not None:
                    delta_watts = round_or_none(effort.average - fresh_value, 1)
                    if fresh_value > 0:
                        delta_pct = round_or_none(
                            (effort.average - fresh_value) / fresh_value * 100, 1
                        )

                efforts.append(
                    DurabilityEffort(
                        fatigue_kj=fatigue_kj,
                        duration_sec=duration,
                        value=round_or_none(effort.average, 1),
                        pct_ftp=pct_of_ftp(effort.average, ftp),
                        activity_id=activity.meta.id,
                        start_time=activity.meta.start_time_iso,
                        window_start_sec=effort.window_start_sec,
                        delta_watts=delta_watts,
                        delta_pct=delta_pct,
                    )
                )

        return DurabilityFrontier(efforts=efforts)


class DurableTssCalculator:
    """Calculates the training stress accumulated after a kJ threshold."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def calculate(
        self,
        activity: PreparedActivity,
        ftp: float | None,
        threshold_kj: float | None = None,
    ) -> DurableTssRide:
        """
        Calculate durable TSS for one ride.

        The crossing sample is the first at which cumulative work reaches the
        threshold; its overshoot counts as post-threshold work.

        Args:
            activity: Prepared activity
            ftp: Functional Threshold Power, if known
            threshold_kj: Prior-work threshold (clamped to 1-5000 kJ);
                defaults to ``Settings.durable_tss_threshold_kj``

        Returns:
            DurableTssRide
        """
        if threshold_kj is None:
            threshold_kj = self.settings.durable_tss_threshold_kj
        threshold_joules = clamp_threshold_kj(threshold_kj) * EnergyConstants.JOULES_PER_KJ

        meta = activity.meta
        interval = 1 / activity.sample_rate
        raw_power = activity.column(StreamColumns.POWER)
        joules = np.nan_to_num(raw_power, nan=0.0, posinf=0.0, neginf=0.0) * interval
        cumulative = np.cumsum(joules)
        total = float(cumulative[-1]) if cumulative.size else 0.0

        crossed = np.flatnonzero(cumulative >= threshold_joules)
        if crossed.size == 0:
            return DurableTssRide(
                activity_id=meta.id,
                start_time=meta.start_time_iso,
                source=meta.source,
                total_kj=round_or_none(total / EnergyConstants.JOULES_PER_KJ, 1),
            )

        start = int(crossed[0])
        segment = raw_power[start:]
        segment_sec = len(segment) * interval

        return DurableTssRide(
            activity_id=meta.id,
            start_time=meta.start_time_iso,
            source=meta.source,
            total_kj=round_or_none(total / EnergyConstants.JOULES_PER_KJ, 1),
            post_threshold_kj=round_or_none(
                (total - threshold_joules) / EnergyConstants.JOULES_PER_KJ, 1
            ),
            post_threshold_duration_sec=round_or_none(segment_sec, 0),
            durable_tss=self._segment_tss(segment, activity.sample_rate, segment_sec, ftp),
        )

    def _segment_tss(
        self, segment: np.ndarray, sample_rate: float, segment_sec: float, ftp: float | None
    ) -> float | None:
        """TSS of the post-threshold portion (NP, falling back to mean power)."""
        if ftp is None or ftp <= 0 or segment_sec <= 0:
            return None

        power = segment[np.isfinite(segment)]
        if power.size == 0:
            return None

        window = min(
            window_samples(self.settings.durability.normalized_window_sec, sample_rate),
            power.size,
        )
        effective = normalized_power(power, window)
        if effective is None:
            effective = float(np.nansum(segment) / sample_rate / segment_sec)

        factor = effective / ftp
        hours = segment_sec / TimeConstants.SECONDS_PER_HOUR
        return round_or_none(factor * factor * hours * 100, 1)
