"""Unit tests for the rolling-window primitives."""

import numpy as np
import pytest

from frontier_analytics.metrics.rolling import (
    best_window_average,
    prefix_sums,
    window_averages,
    window_samples,
    window_sums,
)


def brute_force_best(values: np.ndarray, window: int) -> tuple[float, int] | None:
    """Reference implementation: try every start."""
    best = None
    for start in range(len(values) - window + 1):
        avg = float(np.mean(values[start : start + window]))
        if best is None or avg > best[0]:
            best = (avg, start)
    return best


class TestPrefixSums:
    """Test cumulative sums."""

    def test_leading_zero(self):
        """P[0] is zero and P[i] sums the first i samples."""
        sums = prefix_sums(np.array([1.0, 2.0, 3.0]))
        np.testing.assert_allclose(sums, [0.0, 1.0, 3.0, 6.0])

    def test_empty(self):
        """Empty input gives a single zero."""
        np.testing.assert_allclose(prefix_sums(np.array([])), [0.0])


class TestWindowAverages:
    """Test fixed-length window means."""

    def test_matches_brute_force(self):
        """Every window mean equals the direct mean."""
        rng = np.random.default_rng(42)
        values = rng.uniform(0, 400, size=200)
        for window in (1, 5, 30, 200):
            expected = [
                np.mean(values[i : i + window]) for i in range(len(values) - window + 1)
            ]
            np.testing.assert_allclose(window_averages(values, window), expected)

    def test_window_longer_than_series(self):
        """No windows fit."""
        assert window_averages(np.ones(5), 6).size == 0

    def test_invalid_window(self):
        """Windows shorter than one sample are rejected."""
        with pytest.raises(ValueError):
            window_sums(np.ones(5), 0)


class TestBestWindowAverage:
    """Test best-window search."""

    def test_matches_brute_force(self):
        """Best mean and start equal an exhaustive search."""
        rng = np.random.default_rng(7)
        values = rng.uniform(50, 600, size=500)
        for window in (1, 3, 60, 499, 500):
            found = best_window_average(values, window)
            expected = brute_force_best(values, window)
            assert found is not None
            assert found.average == pytest.approx(expected[0])
            assert found.start == expected[1]

    def test_ties_resolve_to_earliest(self):
        """Equal windows keep the earliest start."""
        values = np.array([5.0, 1.0, 5.0, 1.0, 5.0])
        found = best_window_average(values, 1)
        assert found.start == 0

    def test_negative_values_keep_true_maximum(self):
        """A negative series is not floored at zero."""
        found = best_window_average(np.array([-5.0, -2.0, -9.0]), 1)
        assert found.average == pytest.approx(-2.0)
        assert found.start == 1

    def test_window_longer_than_series(self):
        """No window fits."""
        assert best_window_average(np.ones(10), 11) is None

    def test_allowed_starts_restrict_search(self):
        """Only starts marked allowed are considered."""
        values = np.array([10.0, 9.0, 1.0, 2.0, 3.0])
        allowed = np.array([False, False, True, True, True])
        found = best_window_average(values, 2, allowed)
        assert found.start == 3
        assert found.average == pytest.approx(2.5)

    def test_no_allowed_start(self):
        """An all-False mask finds nothing."""
        assert best_window_average(np.ones(5), 2, np.zeros(5, dtype=bool)) is None


class TestWindowSamples:
    """Test seconds-to-samples conversion."""

    @pytest.mark.parametrize(
        "seconds, rate, expected",
        [(30, 1.0, 30), (30, 2.0, 60), (1, 0.25, 1), (10, 0.25, 3), (0, 1.0, 1)],
    )
    def test_rounding(self, seconds, rate, expected):
        """Half-up rounding with a floor of one sample."""
        assert window_samples(seconds, rate) == expected
