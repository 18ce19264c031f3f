"""
Power-based metric calculations.

This module handles all ride-level power metrics including:
- Normalized Power (NP)
- Intensity Factor (IF)
- Training Stress Score (TSS)
- Average power and total work
"""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from ..constants import EnergyConstants, StreamColumns, TimeConstants
from ..models import ActivityLoad, AthleteProfile, PreparedActivity
from ..settings import Settings
from .rolling import window_averages, window_samples

logger = logging.getLogger(__name__)


def extract_power(stream: pd.DataFrame) -> pd.DataFrame:
    """
    Keep the samples that carry a finite power reading.

    Args:
        stream: Activity stream with ``t`` and ``power`` columns

    Returns:
        DataFrame with ``t`` and ``power`` columns, sorted by time
    """
    if StreamColumns.POWER not in stream.columns:
        return pd.DataFrame({StreamColumns.TIME: [], StreamColumns.POWER: []})
    power = pd.to_numeric(stream[StreamColumns.POWER], errors="coerce")
    valid = np.isfinite(power.to_numpy(dtype=float))
    out = stream.loc[valid, [StreamColumns.TIME, StreamColumns.POWER]]
    return out.sort_values(StreamColumns.TIME, kind="stable").reset_index(drop=True)


def average_power(power: np.ndarray) -> float | None:
    """Arithmetic mean of power samples, None when empty."""
    if len(power) == 0:
        return None
    return float(np.mean(power))


def normalized_power(power: np.ndarray, window: int) -> float | None:
    """
    Calculate Normalized Power using the rolling-average method.

    The rolling mean over every full window is raised to the 4th power,
    averaged, and the 4th root taken.

    Args:
        power: Power samples in watts
        window: Rolling window length in samples

    Returns:
        Normalized Power, or None when fewer than ``window`` samples exist
    """
    rolling = window_averages(power, window)
    if rolling.size == 0:
        return None
    mean_fourth = float(np.mean(rolling**4))
    return mean_fourth**0.25 if mean_fourth > 0 else 0.0


def total_joules(power: np.ndarray, sample_rate: float) -> float | None:
    """
    Total mechanical work assuming each sample lasts ``1 / sample_rate`` seconds.

    Args:
        power: Power samples in watts (non-finite samples contribute nothing)
        sample_rate: Samples per second

    Returns:
        Work in joules, or None for an empty series
    """
    if len(power) == 0 or sample_rate <= 0:
        return None
    return float(np.nansum(power) / sample_rate)


def intensity_factor(np_watts: float | None, ftp: float | None) -> float | None:
    """NP relative to FTP, None when either is missing."""
    if np_watts is None or ftp is None or ftp <= 0:
        return None
    return np_watts / ftp


def training_stress_score(
    np_watts: float | None, ftp: float | None, duration_sec: float
) -> float | None:
    """
    Training Stress Score: ``IF^2 x hours x 100``.

    Args:
        np_watts: Normalized Power
        ftp: Functional Threshold Power
        duration_sec: Duration the load applies to

    Returns:
        TSS, or None without NP or FTP
    """
    factor = intensity_factor(np_watts, ftp)
    if factor is None:
        return None
    return factor * factor * (duration_sec / TimeConstants.SECONDS_PER_HOUR) * 100


@dataclass(frozen=True)
class PowerSummary:
    """Ride-level power figures."""

    normalized_power: float | None
    average_power: float | None
    total_kj: float | None
    intensity_factor: float | None
    training_stress_score: float | None


class PowerCalculator:
    """Calculates ride-level power metrics for a prepared activity."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def calculate(
        self, activity: PreparedActivity, profile: AthleteProfile
    ) -> PowerSummary:
        """
        Calculate NP, average power, work, IF and TSS for one activity.

        Args:
            activity: Prepared activity
            profile: Athlete thresholds (FTP drives IF and TSS)

        Returns:
            PowerSummary for the ride
        """
        _, power = activity.power_samples()
        window = window_samples(
            self.settings.durability.normalized_window_sec, activity.sample_rate
        )
        np_watts = normalized_power(power, window)
        joules = total_joules(power, activity.sample_rate)

        return PowerSummary(
            normalized_power=np_watts,
            average_power=average_power(power),
            total_kj=(
                joules / EnergyConstants.JOULES_PER_KJ if joules is not None else None
            ),
            intensity_factor=intensity_factor(np_watts, profile.ftp),
            training_stress_score=training_stress_score(
                np_watts, profile.ftp, activity.meta.duration_sec
            ),
        )

    def activity_load(self, activity: PreparedActivity) -> ActivityLoad:
        """Build the load entry used by the adaptation optimizer."""
        summary = self.calculate(activity, AthleteProfile())
        return ActivityLoad(
            activity_id=activity.meta.id,
            start_time=activity.meta.start_time,
            duration_sec=activity.meta.duration_sec,
            normalized_power=summary.normalized_power,
            average_power=summary.average_power,
        )
