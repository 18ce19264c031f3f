"""Unit tests for Settings module."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from frontier_analytics.exceptions import ConfigurationError
from frontier_analytics.models import (
    AdaptationConfig,
    DurabilityConfig,
    DurationPowerConfig,
    ZoneDefinition,
)
from frontier_analytics.settings import Settings, clamp_threshold_kj, load_settings


class TestSettingsBasicLoading:
    """Test basic settings loading from different sources."""

    def test_load_from_env_vars(self, monkeypatch):
        """Test that settings are correctly loaded from environment variables."""
        monkeypatch.setenv("FRONTIER_ANALYTICS_FTP_WATTS", "300")
        monkeypatch.setenv("FRONTIER_ANALYTICS_MAX_WORKERS", "4")
        monkeypatch.setenv("FRONTIER_ANALYTICS_ADAPTATION__MAX_WINDOW_DAYS", "10")

        settings = load_settings()

        assert settings.ftp_watts == 300
        assert settings.max_workers == 4
        assert settings.adaptation.max_window_days == 10

    def test_load_from_yaml(self, sample_config_file: Path):
        """Test that settings are correctly loaded from a YAML file."""
        settings = load_settings(config_file=sample_config_file)

        assert settings.ftp_watts == 250
        assert settings.weight_kg == 70.0
        assert settings.max_workers == 2
        assert settings.durable_tss_threshold_kj == 1500
        assert settings.duration_power.durations_sec == [5, 60, 300]
        assert settings.adaptation.min_window_days == 2

    def test_yaml_overrides_env_vars(self, monkeypatch, sample_config_file: Path):
        """Test that YAML settings override environment variables."""
        monkeypatch.setenv("FRONTIER_ANALYTICS_FTP_WATTS", "300")
        monkeypatch.setenv("FRONTIER_ANALYTICS_HR_MAX_BPM", "200")

        settings = load_settings(config_file=sample_config_file)

        assert settings.ftp_watts == 250
        assert settings.hr_max_bpm == 190

    def test_default_values(self):
        """Test that settings use default values when no config is provided."""
        settings = Settings()

        assert settings.ftp_watts is None
        assert settings.max_workers == 1
        assert settings.max_samples_per_activity is None
        assert settings.merge_max_retries == 5
        assert settings.durable_tss_threshold_kj == 1000
        assert settings.duration_power.durations_sec[0] == 5
        assert settings.fatigue.fatigue_bins_kj == [1000, 1500, 2000, 2500, 3000]
        assert [z.key for z in settings.time_in_zone.zones] == [
            "Z1",
            "Z2",
            "Z3",
            "Z4",
            "Z5",
            "Z6",
        ]

    def test_default_profile(self):
        """The configured thresholds form the fallback profile."""
        profile = Settings(ftp_watts=260, hr_rest_bpm=48).default_profile()
        assert profile.ftp == 260
        assert profile.hr_rest_bpm == 48


class TestSettingsErrors:
    """Test configuration error handling."""

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("ftp_watts: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_settings(path)

    def test_non_mapping_yaml(self, tmp_path: Path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_settings(path)

    def test_invalid_values(self, tmp_path: Path):
        path = tmp_path / "invalid.yaml"
        path.write_text("max_workers: 0\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_settings(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigurationError):
            load_settings(tmp_path / "absent.yaml")

    def test_non_positive_sample_limit(self):
        with pytest.raises(ValidationError):
            Settings(max_samples_per_activity=0)


class TestThresholdClamping:
    """Test durable TSS threshold clamping."""

    @pytest.mark.parametrize(
        "value, expected", [(0, 1), (-50, 1), (1000.4, 1000), (9999, 5000), (2500, 2500)]
    )
    def test_clamp(self, value, expected):
        assert clamp_threshold_kj(value) == expected

    def test_settings_clamp(self):
        assert Settings(durable_tss_threshold_kj=12000).durable_tss_threshold_kj == 5000


class TestConfigModels:
    """Test validation of the injectable configuration models."""

    def test_durations_sorted_and_unique(self):
        config = DurationPowerConfig(durations_sec=[300, 5, 60, 5])
        assert config.durations_sec == [5, 60, 300]

    def test_durations_must_be_positive(self):
        with pytest.raises(ValidationError):
            DurationPowerConfig(durations_sec=[0, 60])

    def test_segment_fractions_ordered(self):
        with pytest.raises(ValidationError):
            DurabilityConfig(early_fraction=0.8, late_fraction=0.5)

    def test_window_range_ordered(self):
        with pytest.raises(ValidationError):
            AdaptationConfig(min_window_days=10, max_window_days=5)

    def test_zone_bounds(self):
        with pytest.raises(ValidationError):
            ZoneDefinition(key="bad", label="Bad", min_pct=90, max_pct=80)
