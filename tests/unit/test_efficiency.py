"""Unit tests for steady-state efficiency windows."""

import numpy as np
import pytest

from frontier_analytics.metrics.efficiency import EfficiencyCalculator, heart_rate_reserve_pct
from frontier_analytics.models import AthleteProfile, EfficiencyConfig
from frontier_analytics.settings import Settings


@pytest.fixture
def calculator() -> EfficiencyCalculator:
    return EfficiencyCalculator(
        Settings(efficiency=EfficiencyConfig(durations_sec=[600], max_results=2))
    )


class TestHeartRateReserve:
    """Test heart-rate reserve percentage."""

    def test_reserve(self):
        assert heart_rate_reserve_pct(120, 50, 190) == pytest.approx(50.0)

    def test_undefined_without_thresholds(self):
        assert heart_rate_reserve_pct(120, None, 190) is None
        assert heart_rate_reserve_pct(120, 190, 190) is None


class TestEfficiencyCalculator:
    """Test efficiency window detection and ranking."""

    def test_steady_window(self, calculator, make_activity, profile):
        """A steady ride yields the configured number of windows."""
        activity = make_activity(np.full(900, 200.0), heart_rate=140, cadence=90, speed=8)
        frontier = calculator.calculate([activity], profile)

        assert len(frontier.windows) == 2
        window = frontier.windows[0]
        assert window.duration_sec == 600
        assert window.window_start_sec == 0
        assert window.average_watts == pytest.approx(200.0)
        assert window.average_heart_rate == pytest.approx(140.0)
        assert window.watts_per_bpm == pytest.approx(1.43)
        assert window.watts_per_heart_rate_reserve == pytest.approx(3.11)
        assert window.pct_ftp == pytest.approx(80.0)
        assert window.cadence_coverage == pytest.approx(100.0)
        assert window.moving_coverage == pytest.approx(100.0)

    def test_low_cadence_coverage_rejected(self, calculator, make_activity, profile):
        """Windows with too much coasting are skipped."""
        cadence = np.full(900, 90.0)
        cadence[::5] = 0.0
        activity = make_activity(
            np.full(900, 200.0), heart_rate=140, cadence=cadence, speed=8
        )
        assert calculator.calculate([activity], profile).windows == []

    def test_stopped_rider_rejected(self, calculator, make_activity, profile):
        """Windows must be almost entirely moving."""
        activity = make_activity(np.full(900, 200.0), heart_rate=140, cadence=90, speed=0)
        assert calculator.calculate([activity], profile).windows == []

    def test_missing_heart_rate_rejected(self, calculator, make_activity, profile):
        """Heart rate coverage is required."""
        activity = make_activity(np.full(900, 200.0), cadence=90, speed=8)
        assert calculator.calculate([activity], profile).windows == []

    def test_short_activity(self, calculator, make_activity, profile):
        """Activities shorter than the window contribute nothing."""
        activity = make_activity(np.full(300, 200.0), heart_rate=140, cadence=90, speed=8)
        assert calculator.calculate([activity], profile).windows == []

    def test_sorted_by_efficiency(self, calculator, make_activity, profile):
        """The more efficient activity ranks first."""
        easy = make_activity(
            np.full(900, 200.0), heart_rate=140, cadence=90, speed=8, activity_id="easy"
        )
        strong = make_activity(
            np.full(900, 250.0), heart_rate=140, cadence=90, speed=8, activity_id="strong"
        )
        frontier = calculator.calculate([easy, strong], profile)
        assert [w.activity_id for w in frontier.windows] == [
            "strong",
            "strong",
            "easy",
            "easy",
        ]

    def test_without_heart_rate_reserve(self, calculator, make_activity):
        """Watts per HRR needs resting and max heart rate."""
        activity = make_activity(np.full(900, 200.0), heart_rate=140, cadence=90, speed=8)
        frontier = calculator.calculate([activity], AthleteProfile(ftp_watts=250))
        assert frontier.windows[0].watts_per_heart_rate_reserve is None
        assert frontier.windows[0].watts_per_bpm == pytest.approx(1.43)
