"""
Adaptation edges optimization.

This module finds the contiguous blocks of days that carried the most
training load (TSS and kJ) for every window length, from per-activity load
entries bucketed per UTC calendar day.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import numpy as np
import pandas as pd

from ..constants import EnergyConstants, TimeConstants
from ..metrics.base import round_or_none
from ..metrics.rolling import window_sums
from ..models import (
    ActivityLoad,
    AdaptationBlock,
    AdaptationDay,
    AdaptationEdgesResponse,
    AdaptationWindowResult,
)
from ..settings import Settings

logger = logging.getLogger(__name__)


class AdaptationOptimizerProtocol(Protocol):
    """Protocol for adaptation optimizers."""

    def optimize(self, loads: Sequence[ActivityLoad]) -> AdaptationEdgesResponse:
        """Find the best training blocks."""
        ...


@dataclass(frozen=True)
class DaySeries:
    """Gap-free daily totals between the first and last active day."""

    days: pd.DatetimeIndex
    tss: np.ndarray
    kilojoules: np.ndarray
    activity_ids: list[list[str]]
    total_tss: float
    total_kilojoules: float


def estimate_ftp(loads: Sequence[ActivityLoad]) -> float | None:
    """FTP estimate as the highest NP seen, None when no NP is positive."""
    powers = [
        load.normalized_power for load in loads if load.normalized_power is not None
    ]
    best = max(powers, default=0.0)
    return best if best > 0 else None


class AdaptationEdgesOptimizer:
    """
    Finds the best contiguous training blocks.

    For each window length the earliest block whose total beats the previous
    best by more than ``epsilon`` wins; totals that never rise above
    ``epsilon`` produce no block.
    """

    def __init__(self, settings: Settings):
        """
        Initialize the optimizer.

        Args:
            settings: Application settings containing window configuration
        """
        self.settings = settings
        self.logger = logging.getLogger(__name__)

    def build_day_series(
        self, loads: Sequence[ActivityLoad], ftp: float | None
    ) -> DaySeries:
        """
        Aggregate loads per UTC day and fill the gaps with zero days.

        Args:
            loads: Activity load entries
            ftp: FTP used for TSS (None skips TSS)

        Returns:
            DaySeries
        """
        frame = pd.DataFrame(
            {
                "activity_id": [load.activity_id for load in loads],
                "start": pd.to_datetime([load.start_time for load in loads], utc=True),
                "duration_sec": [load.duration_sec for load in loads],
                "np": [load.normalized_power for load in loads],
                "avg": [load.average_power for load in loads],
            }
        )
        frame["np"] = frame["np"].astype(float)
        frame["avg"] = frame["avg"].astype(float)
        frame = frame.sort_values("start", kind="stable")
        frame["day"] = frame["start"].dt.floor("D")

        frame["kj"] = (
            frame["avg"] * frame["duration_sec"] / EnergyConstants.JOULES_PER_KJ
        ).fillna(0.0)
        if ftp is not None:
            hours = frame["duration_sec"] / TimeConstants.SECONDS_PER_HOUR
            frame["tss"] = (hours * (frame["np"] / ftp) ** 2 * 100).fillna(0.0)
        else:
            frame["tss"] = 0.0

        grouped = frame.groupby("day", sort=True)
        days = pd.date_range(frame["day"].min(), frame["day"].max(), freq="D")
        totals = grouped[["tss", "kj"]].sum().reindex(days, fill_value=0.0)
        ids = grouped["activity_id"].agg(list).to_dict()

        return DaySeries(
            days=days,
            tss=totals["tss"].to_numpy(dtype=float),
            kilojoules=totals["kj"].to_numpy(dtype=float),
            activity_ids=[list(ids.get(day, [])) for day in days],
            total_tss=float(frame["tss"].sum()),
            total_kilojoules=float(frame["kj"].sum()),
        )

    def find_best_window(
        self, series: DaySeries, values: np.ndarray, length: int
    ) -> AdaptationBlock | None:
        """
        Best block of ``length`` consecutive days for one metric.

        Args:
            series: Day series the values belong to
            values: Daily totals of the metric
            length: Window length in days

        Returns:
            AdaptationBlock, or None when the series is too short or the
            best total does not exceed ``epsilon``
        """
        epsilon = self.settings.adaptation.epsilon
        sums = window_sums(values, length)
        best_total = -np.inf
        best_start = -1
        for start, total in enumerate(sums.tolist()):
            if total > best_total + epsilon:
                best_total = total
                best_start = start

        if best_start < 0 or best_total <= epsilon:
            return None
        return self._build_block(series, best_start, length, best_total)

    def optimize(self, loads: Sequence[ActivityLoad]) -> AdaptationEdgesResponse:
        """
        Find the best TSS and kJ blocks for every configured window length.

        Args:
            loads: Activity load entries (entries without duration are ignored)

        Returns:
            AdaptationEdgesResponse
        """
        config = self.settings.adaptation
        loads = [load for load in loads if load.duration_sec > 0]
        if not loads:
            return AdaptationEdgesResponse()

        ftp = estimate_ftp(loads)
        series = self.build_day_series(loads, ftp)
        self.logger.debug(
            f"Optimizing {len(loads)} activities over {len(series.days)} days"
        )

        windows = []
        for length in range(config.min_window_days, config.max_window_days + 1):
            windows.append(
                AdaptationWindowResult(
                    days=length,
                    best_tss=(
                        self.find_best_window(series, series.tss, length)
                        if ftp is not None
                        else None
                    ),
                    best_kilojoules=self.find_best_window(
                        series, series.kilojoules, length
                    ),
                )
            )

        return AdaptationEdgesResponse(
            ftp_estimate=ftp,
            total_activities=len(loads),
            total_kilojoules=round_or_none(series.total_kilojoules, 2) or 0.0,
            total_tss=round_or_none(series.total_tss, 2) or 0.0,
            analyzed_days=len(series.days),
            windows=windows,
        )

    @staticmethod
    def _build_block(
        series: DaySeries, start: int, length: int, total: float
    ) -> AdaptationBlock:
        span = range(start, start + length)
        activity_ids = list(
            dict.fromkeys(a for i in span for a in series.activity_ids[i])
        )
        contributing = [
            AdaptationDay(
                date=series.days[i].date(),
                tss=round_or_none(float(series.tss[i]), 2),
                kilojoules=round_or_none(float(series.kilojoules[i]), 2),
                activity_ids=list(series.activity_ids[i]),
            )
            for i in span
        ]
        return AdaptationBlock(
            total=round_or_none(total, 2),
            average_per_day=round_or_none(total / length, 2),
            start_date=series.days[start].date(),
            end_date=series.days[start + length - 1].date(),
            day_count=length,
            activity_ids=activity_ids,
            contributing_days=contributing,
        )
