"""
Interval repeatability analysis.

This module detects sets of evenly rested intervals held inside a %FTP band
and measures how well the rider repeats them:
- Interval detection from contiguous in-band runs
- Sequence grouping by rest-to-work ratio
- Decay slope of %FTP across reps
- Per-target record of reps held within tolerance of the first
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from ..models import (
    AthleteProfile,
    PreparedActivity,
    RepeatabilityFrontier,
    RepeatabilityRecord,
    RepeatabilitySequence,
    RepeatabilityTarget,
)
from .base import BaseFrontierCalculator, round_half_up, round_or_none, window_rate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepeatabilityInterval:
    """A contiguous in-band run of samples."""

    start_sec: int
    end_sec: int
    duration_sec: float
    avg_watts: float
    avg_pct_ftp: float


def find_runs(within: np.ndarray) -> list[tuple[int, int]]:
    """
    Half-open index ranges of consecutive True values.

    A run still open at the end of the array is closed there.

    Args:
        within: Boolean array

    Returns:
        List of (start, end) pairs
    """
    padded = np.concatenate(([False], within.astype(bool), [False]))
    edges = np.flatnonzero(np.diff(padded.astype(np.int8)))
    return list(zip(edges[::2].tolist(), edges[1::2].tolist()))


def decay_slope(pcts: list[float]) -> float:
    """Least-squares slope of %FTP against rep number (1-based)."""
    if len(pcts) < 2:
        return 0.0
    xs = np.arange(1, len(pcts) + 1, dtype=float)
    slope, _ = np.polyfit(xs, np.asarray(pcts, dtype=float), 1)
    return float(slope)


class RepeatabilityCalculator(BaseFrontierCalculator):
    """Calculates interval sequences and repeatability records."""

    def detect_intervals(
        self, activity: PreparedActivity, target: RepeatabilityTarget, ftp: float
    ) -> list[RepeatabilityInterval]:
        """
        Detect qualifying intervals for one target.

        Args:
            activity: Prepared activity
            target: Interval definition
            ftp: Functional Threshold Power (positive)

        Returns:
            Intervals whose duration lies inside the target range, by start time
        """
        rate = window_rate(activity)
        times = activity.times
        power = activity.power_filled
        pct = power / ftp * 100
        within = (pct >= target.min_pct) & (pct <= target.max_pct)

        intervals = []
        for start, end in find_runs(within):
            samples = end - start
            duration = samples / rate
            if not target.min_duration_sec <= duration <= target.max_duration_sec:
                continue
            avg = float(power[start:end].mean())
            intervals.append(
                RepeatabilityInterval(
                    start_sec=round_half_up(times[start]),
                    end_sec=round_half_up(times[end - 1]),
                    duration_sec=duration,
                    avg_watts=avg,
                    avg_pct_ftp=avg / ftp * 100,
                )
            )
        intervals.sort(key=lambda i: i.start_sec)
        return intervals

    def group_sequences(
        self,
        activity: PreparedActivity,
        target: RepeatabilityTarget,
        intervals: list[RepeatabilityInterval],
    ) -> list[RepeatabilitySequence]:
        """
        Group consecutive intervals whose rests fit the work-to-rest ratio.

        Args:
            activity: Activity the intervals belong to
            target: Interval definition
            intervals: Intervals sorted by start time

        Returns:
            Sequences with at least ``min_interval_count`` reps
        """
        config = self.settings.repeatability
        sequences = []
        cursor = 0
        while cursor < len(intervals):
            index = cursor + 1
            while index < len(intervals):
                previous = intervals[index - 1]
                rest = intervals[index].start_sec - previous.end_sec
                if not (
                    previous.duration_sec * config.rest_min_ratio
                    <= rest
                    <= previous.duration_sec * config.rest_max_ratio
                ):
                    break
                index += 1

            reps = intervals[cursor:index]
            if len(reps) >= config.min_interval_count:
                sequences.append(self._sequence(activity, target, reps))
            cursor = max(cursor + 1, index)
        return sequences

    def calculate(
        self, activities: Sequence[PreparedActivity], profile: AthleteProfile
    ) -> RepeatabilityFrontier:
        """
        Detect sequences across activities and keep the best record per target.

        Args:
            activities: Prepared activities, in reduction order
            profile: Athlete thresholds

        Returns:
            RepeatabilityFrontier (empty without FTP)
        """
        config = self.settings.repeatability
        ftp = profile.ftp
        records = {
            t.key: RepeatabilityRecord(target_key=t.key) for t in config.targets
        }
        if ftp is None:
            return RepeatabilityFrontier(
                sequences=[], best_repeatability=list(records.values())
            )

        def scan(activity: PreparedActivity) -> list[RepeatabilitySequence]:
            found = []
            for target in config.targets:
                intervals = self.detect_intervals(activity, target, ftp)
                if len(intervals) >= config.min_interval_count:
                    found.extend(self.group_sequences(activity, target, intervals))
            return found

        sequences = [s for found in self._scan_all(scan, activities) for s in found]

        for sequence in sequences:
            held = self.reps_within_tolerance(sequence.avg_pct_by_rep)
            if held > records[sequence.target_key].reps:
                records[sequence.target_key] = RepeatabilityRecord(
                    target_key=sequence.target_key,
                    reps=held,
                    activity_id=sequence.activity_id,
                    start_time=sequence.start_time,
                    start_sec=sequence.start_sec,
                )

        sequences.sort(key=lambda s: (s.target_key, s.decay_slope, -s.reps))
        return RepeatabilityFrontier(
            sequences=sequences, best_repeatability=list(records.values())
        )

    def reps_within_tolerance(self, pcts: list[float]) -> int:
        """Leading reps whose %FTP stays at or above the first rep minus the tolerance."""
        if not pcts:
            return 0
        floor = pcts[0] - self.settings.repeatability.record_tolerance_pct
        held = 0
        for pct in pcts:
            if pct < floor:
                break
            held += 1
        return held

    @staticmethod
    def _sequence(
        activity: PreparedActivity,
        target: RepeatabilityTarget,
        reps: list[RepeatabilityInterval],
    ) -> RepeatabilitySequence:
        watts = [round_or_none(r.avg_watts, 1) or 0.0 for r in reps]
        pcts = [round_or_none(r.avg_pct_ftp, 1) or 0.0 for r in reps]
        return RepeatabilitySequence(
            target_key=target.key,
            activity_id=activity.meta.id,
            start_time=activity.meta.start_time_iso,
            start_sec=reps[0].start_sec,
            reps=len(reps),
            avg_watts_by_rep=watts,
            avg_pct_by_rep=pcts,
            decay_slope=round_or_none(decay_slope(pcts), 3) or 0.0,
            drop_first_to_last=round_or_none(pcts[-1] - pcts[0], 1) or 0.0,
        )
