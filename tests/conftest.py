"""
Shared pytest fixtures for Frontier Analytics tests.

This module provides reusable fixtures for:
- Settings configurations
- Athlete profiles
- Synthetic activity streams
- Input documents written to temporary files
"""

import json
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

import numpy as np
import pytest
import yaml

from frontier_analytics.data import StreamNormalizer
from frontier_analytics.models import ActivityMeta, AthleteProfile, PreparedActivity
from frontier_analytics.settings import Settings

# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def settings() -> Settings:
    """Provide default settings."""
    return Settings()


@pytest.fixture
def sample_config_dict() -> dict:
    """Provide a sample configuration dictionary."""
    return {
        "ftp_watts": 250,
        "weight_kg": 70.0,
        "hr_max_bpm": 190,
        "hr_rest_bpm": 50,
        "max_workers": 2,
        "durable_tss_threshold_kj": 1500,
        "duration_power": {"durations_sec": [60, 5, 300]},
        "adaptation": {"min_window_days": 2, "max_window_days": 4},
    }


@pytest.fixture
def sample_config_file(tmp_path: Path, sample_config_dict: dict) -> Path:
    """Create a temporary config file with sample data."""
    config_path = tmp_path / "config.yaml"
    with open(config_path, "w") as f:
        yaml.dump(sample_config_dict, f)
    return config_path


# ============================================================================
# Profile Fixtures
# ============================================================================


@pytest.fixture
def profile() -> AthleteProfile:
    """Provide a profile with FTP=250W."""
    return AthleteProfile(ftp_watts=250, weight_kg=70, hr_max_bpm=190, hr_rest_bpm=50)


@pytest.fixture
def profile_without_ftp() -> AthleteProfile:
    """Provide a profile with no usable FTP."""
    return AthleteProfile(ftp_watts=0, hr_max_bpm=190, hr_rest_bpm=50)


# ============================================================================
# Data Fixtures - Streams
# ============================================================================


@pytest.fixture
def make_activity(settings: Settings) -> Callable[..., PreparedActivity]:
    """
    Factory for prepared activities, sampled at 1 Hz unless told otherwise.

    Missing channels are left as NaN. ``duration_sec`` defaults to the
    span covered by the samples.
    """
    normalizer = StreamNormalizer(settings)

    def _make(
        power,
        heart_rate=None,
        cadence=None,
        speed=None,
        activity_id: str = "a1",
        start_time: datetime = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc),
        source: str = "ride",
        duration_sec: float | None = None,
        sample_rate: float = 1.0,
    ) -> PreparedActivity:
        power = np.asarray(power, dtype=float)
        n = len(power)
        samples = {"t": np.arange(n, dtype=float) / sample_rate, "power": power}
        for name, values in (
            ("heart_rate", heart_rate),
            ("cadence", cadence),
            ("speed", speed),
        ):
            if values is not None:
                samples[name] = np.broadcast_to(np.asarray(values, dtype=float), n)
        meta = ActivityMeta(
            id=activity_id,
            start_time=start_time,
            duration_sec=n / sample_rate if duration_sec is None else duration_sec,
            source=source,
        )
        stream = normalizer.normalize(
            [dict(zip(samples, row)) for row in zip(*samples.values())]
        )
        return PreparedActivity(meta=meta, stream=stream, sample_rate=sample_rate)

    return _make


@pytest.fixture
def steady_activity(make_activity) -> PreparedActivity:
    """One hour at a constant 200W with steady heart rate, cadence and speed."""
    return make_activity(
        np.full(3600, 200.0), heart_rate=140, cadence=90, speed=8.0, activity_id="steady"
    )


# ============================================================================
# Data Fixtures - Input Documents
# ============================================================================


@pytest.fixture
def input_document_dict() -> dict:
    """Provide a small input document using camelCase wire names."""
    samples = [
        {"t": t, "power": 200 + (t % 10), "heartRate": 140, "cadence": 90, "speed": 8}
        for t in range(600)
    ]
    return {
        "profile": {"ftpWatts": 250, "hrMaxBpm": 190, "hrRestBpm": 50},
        "activities": [
            {
                "id": 101,
                "startTime": "2024-03-01T07:00:00Z",
                "durationSec": 600,
                "source": "Road Ride",
                "samples": samples,
            },
            {
                "id": "empty",
                "startTime": "2024-03-02T07:00:00Z",
                "durationSec": 0,
                "source": "Virtual Ride",
                "samples": [],
            },
        ],
    }


@pytest.fixture
def input_document_file(tmp_path: Path, input_document_dict: dict) -> Path:
    """Write the sample input document to a temporary JSON file."""
    path = tmp_path / "input.json"
    path.write_text(json.dumps(input_document_dict), encoding="utf-8")
    return path
