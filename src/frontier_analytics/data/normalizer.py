"""
Stream normalization.

This module turns raw sample series into prepared activities: column aliases
are resolved, values coerced to numbers, samples sorted by time and the
effective sample rate inferred.
"""

import logging
from typing import Protocol

import numpy as np
import pandas as pd

from ..constants import StreamColumns
from ..exceptions import StreamDataError
from ..models import ActivityMeta, PreparedActivity
from ..settings import Settings

logger = logging.getLogger(__name__)

VALUE_COLUMNS = (
    StreamColumns.POWER,
    StreamColumns.HEART_RATE,
    StreamColumns.CADENCE,
    StreamColumns.SPEED,
)


class StreamNormalizerProtocol(Protocol):
    """Protocol for stream normalizers."""

    def prepare(
        self, meta: ActivityMeta, samples: pd.DataFrame | list[dict]
    ) -> PreparedActivity | None:
        """Normalize samples and attach the sample rate."""
        ...


def infer_sample_rate(meta: ActivityMeta, times: np.ndarray) -> float:
    """
    Infer the sample rate of an activity in Hz.

    Order of preference:
    1. The stated ``sample_rate_hz`` when positive
    2. ``(n - 1) / (t_last - t_first)`` when the time span is positive
    3. ``n / duration_sec`` when the duration is positive
    4. 1 Hz

    Args:
        meta: Activity metadata
        times: Sorted sample timestamps in seconds

    Returns:
        Sample rate in Hz (always positive)
    """
    if meta.sample_rate_hz is not None and meta.sample_rate_hz > 0:
        return float(meta.sample_rate_hz)

    n = len(times)
    if n >= 2:
        span = float(times[-1] - times[0])
        if span > 0:
            return (n - 1) / span

    if meta.duration_sec > 0 and n > 0:
        return n / meta.duration_sec

    return 1.0


class StreamNormalizer:
    """
    Normalizes raw activity samples.

    Accepts a DataFrame or a list of sample dicts using either canonical
    column names or their wire aliases (``heartRate``, ``watts``...).
    """

    def __init__(self, settings: Settings):
        """
        Initialize the normalizer.

        Args:
            settings: Application settings
        """
        self.settings = settings
        self.logger = logging.getLogger(__name__)

    def normalize(self, samples: pd.DataFrame | list[dict]) -> pd.DataFrame:
        """
        Return a sorted, numeric copy of the samples.

        Args:
            samples: Raw samples

        Returns:
            DataFrame with ``t`` and every value column, sorted by ``t``

        Raises:
            StreamDataError: If timestamps are missing or not numeric
        """
        df = pd.DataFrame(samples).copy()
        df = df.rename(
            columns={k: v for k, v in StreamColumns.ALIASES.items() if k in df.columns}
        )
        df = df.loc[:, ~df.columns.duplicated()]

        if df.empty:
            return pd.DataFrame(columns=[StreamColumns.TIME, *VALUE_COLUMNS], dtype=float)

        if StreamColumns.TIME not in df.columns:
            raise StreamDataError("Samples have no time column 't'")

        times = pd.to_numeric(df[StreamColumns.TIME], errors="coerce")
        if times.isna().any():
            raise StreamDataError("Sample timestamps must be numeric")
        df[StreamColumns.TIME] = times.astype(float)

        for col in VALUE_COLUMNS:
            if col in df.columns:
                df[col] = pd.to_numeric(df[col], errors="coerce").astype(float)
            else:
                df[col] = np.nan

        df = df[[StreamColumns.TIME, *VALUE_COLUMNS]]
        return df.sort_values(StreamColumns.TIME, kind="stable").reset_index(drop=True)

    def prepare(
        self, meta: ActivityMeta, samples: pd.DataFrame | list[dict]
    ) -> PreparedActivity | None:
        """
        Normalize samples and infer the sample rate.

        Args:
            meta: Activity metadata
            samples: Raw samples

        Returns:
            PreparedActivity, or None when the activity has no samples

        Raises:
            StreamDataError: If the samples are malformed
        """
        stream = self.normalize(samples)
        if stream.empty:
            self.logger.debug(f"Activity {meta.id} has no samples, skipping")
            return None

        rate = infer_sample_rate(meta, stream[StreamColumns.TIME].to_numpy())
        return PreparedActivity(meta=meta, stream=stream, sample_rate=rate)
