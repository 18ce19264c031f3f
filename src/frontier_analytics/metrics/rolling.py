"""
Rolling-window primitives shared by every frontier calculator.

All window statistics are derived from prefix sums so a full scan of a
stream is O(N) regardless of the window length:
- prefix_sums: cumulative sums with a leading zero
- window_averages: mean of every fixed-length window
- best_window_average: highest-mean window, optionally restricted to a set
  of allowed start indices
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class WindowBest:
    """Best window found by a rolling scan."""

    average: float
    start: int


def prefix_sums(values: np.ndarray) -> np.ndarray:
    """
    Cumulative sums with ``P[0] = 0`` and ``P[i] = sum(values[:i])``.

    Args:
        values: 1-D array of samples

    Returns:
        Array of length ``len(values) + 1``
    """
    values = np.asarray(values, dtype=float)
    out = np.zeros(len(values) + 1)
    np.cumsum(values, out=out[1:])
    return out


def window_sums(values: np.ndarray, window: int) -> np.ndarray:
    """Sum of every contiguous window of ``window`` samples."""
    if window < 1:
        raise ValueError(f"Window must be at least 1 sample, got {window}")
    sums = prefix_sums(values)
    if window > len(sums) - 1:
        return np.empty(0)
    return sums[window:] - sums[:-window]


def window_averages(values: np.ndarray, window: int) -> np.ndarray:
    """
    Mean of every contiguous window of ``window`` samples.

    Args:
        values: 1-D array of samples
        window: Window length in samples (>= 1)

    Returns:
        Array of ``N - window + 1`` means; empty when the window is longer
        than the series

    Raises:
        ValueError: If ``window`` is smaller than 1
    """
    return window_sums(values, window) / window


def best_window_average(
    values: np.ndarray,
    window: int,
    allowed_starts: np.ndarray | None = None,
) -> WindowBest | None:
    """
    Find the window with the highest mean.

    Ties resolve to the earliest start index. Negative series return their
    true maximum rather than a zero floor.

    Args:
        values: 1-D array of samples
        window: Window length in samples (>= 1)
        allowed_starts: Optional boolean mask over all ``N`` sample indices;
            only windows starting at a True index are considered

    Returns:
        WindowBest with the mean and start index, or None when no window fits
        or no start is allowed
    """
    sums = window_sums(values, window)
    if sums.size == 0:
        return None

    if allowed_starts is not None:
        mask = np.asarray(allowed_starts, dtype=bool)[: sums.size]
        if not mask.any():
            return None
        sums = np.where(mask, sums, -np.inf)

    start = int(np.argmax(sums))
    return WindowBest(average=float(sums[start] / window), start=start)


def window_samples(seconds: float, sample_rate: float) -> int:
    """Number of samples covering ``seconds`` at ``sample_rate`` (at least 1)."""
    return max(1, int(np.floor(seconds * sample_rate + 0.5)))
