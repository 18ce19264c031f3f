"""Application settings and configuration management."""

from pathlib import Path

import yaml
from pydantic import Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import FatigueDefaults
from .exceptions import ConfigurationError
from .models import (
    AdaptationConfig,
    AthleteProfile,
    DurabilityConfig,
    DurationPowerConfig,
    EfficiencyConfig,
    FatigueConfig,
    RepeatabilityConfig,
    TimeInZoneConfig,
)


class Settings(BaseSettings):
    """
    Application settings for Frontier Analytics.

    Settings are loaded in the following order of precedence (highest to lowest):
    1. Values passed explicitly (e.g. from a YAML file via ``load_settings``)
    2. Environment variables (e.g., FRONTIER_ANALYTICS_FTP_WATTS)
    3. .env file (if found)
    4. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="FRONTIER_ANALYTICS_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # --- Default Athlete Profile ---
    # Used when an input document carries no profile of its own
    ftp_watts: float | None = None
    weight_kg: float | None = None
    hr_max_bpm: float | None = None
    hr_rest_bpm: float | None = None

    # --- Execution ---
    max_workers: int = Field(1, ge=1)  # >1 fans activity scans out over threads
    max_samples_per_activity: int | None = None  # None means unbounded
    merge_max_retries: int = Field(5, ge=1)

    # --- Durable TSS ---
    durable_tss_threshold_kj: float = FatigueDefaults.DURABLE_TSS_THRESHOLD_KJ

    # --- Frontier Configuration ---
    duration_power: DurationPowerConfig = DurationPowerConfig()
    fatigue: FatigueConfig = FatigueConfig()
    durability: DurabilityConfig = DurabilityConfig()
    efficiency: EfficiencyConfig = EfficiencyConfig()
    repeatability: RepeatabilityConfig = RepeatabilityConfig()
    time_in_zone: TimeInZoneConfig = TimeInZoneConfig()
    adaptation: AdaptationConfig = AdaptationConfig()

    @field_validator("durable_tss_threshold_kj")
    @classmethod
    def clamp_threshold(cls, v: float) -> float:
        """Keep the durable TSS threshold inside the supported range."""
        return clamp_threshold_kj(v)

    @field_validator("max_samples_per_activity")
    @classmethod
    def check_sample_limit(cls, v: int | None) -> int | None:
        """A sample limit, when set, must be positive."""
        if v is not None and v <= 0:
            raise ValueError("max_samples_per_activity must be positive")
        return v

    def default_profile(self) -> AthleteProfile:
        """Athlete profile built from the configured defaults."""
        return AthleteProfile(
            ftp_watts=self.ftp_watts,
            weight_kg=self.weight_kg,
            hr_max_bpm=self.hr_max_bpm,
            hr_rest_bpm=self.hr_rest_bpm,
        )


def clamp_threshold_kj(value: float) -> int:
    """Round a kJ threshold and clamp it to 1-5000."""
    rounded = int(round(value))
    return max(
        FatigueDefaults.MIN_THRESHOLD_KJ,
        min(FatigueDefaults.MAX_THRESHOLD_KJ, rounded),
    )


def load_settings(config_file: Path | None = None) -> Settings:
    """Load settings from a YAML file, environment variables, and defaults."""
    if config_file:
        try:
            with open(config_file, encoding="utf-8") as f:
                yaml_settings = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read config file {config_file}: {e}") from e

        if not isinstance(yaml_settings, dict):
            raise ConfigurationError(
                f"Config file {config_file} must contain a mapping at the top level"
            )

        # Create a Settings object from YAML, then merge with env vars/defaults
        try:
            return Settings(**yaml_settings)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid settings in {config_file}: {e}") from e

    return Settings()
