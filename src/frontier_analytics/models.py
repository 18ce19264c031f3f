"""
Data models for the Frontier Analytics package.

This module defines the core data structures used throughout the application:
input metadata, the injectable configuration models for every frontier type,
and the JSON-serializable response models. Response models serialize with
camelCase aliases (``model_dump(by_alias=True)``) to match the wire contract.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime

import numpy as np
from pandas import DataFrame
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .constants import (
    AdaptationWindows,
    CoverageThresholds,
    DurabilityDefaults,
    FatigueDefaults,
    PowerCurveDurations,
    PowerZoneThresholds,
    RepeatabilityDefaults,
    StreamColumns,
    TimeConstants,
)


class WireModel(BaseModel):
    """Base for immutable models exchanged with collaborators (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


# ============================================================================
# Inputs
# ============================================================================


class ActivityMeta(WireModel):
    """Read-only metadata for a recorded activity."""

    id: str = Field(..., description="Unique activity ID")
    start_time: datetime = Field(..., description="Activity start time")
    duration_sec: float = Field(0.0, description="Elapsed duration in seconds")
    source: str = Field("unknown", description="Recording source / discipline")
    sample_rate_hz: float | None = Field(
        None, description="Stated sample rate in Hz, if known"
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: object) -> str:
        """Accept numeric IDs from upstream systems."""
        return str(v)

    @property
    def start_time_iso(self) -> str:
        """Start time as ISO-8601 text."""
        return self.start_time.isoformat()


class AthleteProfile(WireModel):
    """Optional athlete thresholds used to express results relative to the rider."""

    ftp_watts: float | None = Field(None, description="Functional Threshold Power")
    weight_kg: float | None = Field(None, description="Rider weight in kg")
    hr_max_bpm: float | None = Field(None, description="Maximum heart rate")
    hr_rest_bpm: float | None = Field(None, description="Resting heart rate")

    @property
    def ftp(self) -> float | None:
        """FTP if it is usable as a denominator, otherwise None."""
        if self.ftp_watts is None or not math.isfinite(self.ftp_watts):
            return None
        return self.ftp_watts if self.ftp_watts > 0 else None


# ActivityStream is a typed alias for a pandas DataFrame holding one activity's
# samples (columns "t", "power", "heart_rate", "cadence", "speed"). Missing
# readings are NaN.
ActivityStream = DataFrame


@dataclass(frozen=True)
class PreparedActivity:
    """
    An activity whose stream has been sorted and whose sample rate is known.

    Attributes:
        meta: Activity metadata
        stream: Normalized stream (sorted by ``t``, numeric columns)
        sample_rate: Effective sample rate in Hz
    """

    meta: ActivityMeta
    stream: ActivityStream
    sample_rate: float

    @property
    def times(self) -> np.ndarray:
        """Sample timestamps in seconds."""
        return self.stream[StreamColumns.TIME].to_numpy(dtype=float)

    def column(self, name: str) -> np.ndarray:
        """Return a column as a float array, NaN-filled when absent."""
        if name not in self.stream.columns:
            return np.full(len(self.stream), np.nan)
        return self.stream[name].to_numpy(dtype=float)

    @property
    def power_filled(self) -> np.ndarray:
        """Power with missing readings counted as 0 W."""
        return np.nan_to_num(self.column(StreamColumns.POWER), nan=0.0)

    def power_samples(self) -> tuple[np.ndarray, np.ndarray]:
        """Timestamps and values of the samples that carry a finite power reading."""
        power = self.column(StreamColumns.POWER)
        valid = np.isfinite(power)
        return self.times[valid], power[valid]


# ============================================================================
# Configuration
# ============================================================================


class DurationPowerConfig(BaseModel):
    """Durations searched by the duration-power and kJ frontiers."""

    durations_sec: list[int] = Field(
        default_factory=lambda: list(PowerCurveDurations.STANDARD),
        description="Best-effort durations in seconds",
    )
    kj_window_hours: list[float] = Field(
        default_factory=lambda: list(PowerCurveDurations.KJ_WINDOW_HOURS),
        description="Multi-hour windows for the kJ throughput frontier",
    )
    cp_fit_min_sec: int = Field(PowerCurveDurations.CP_FIT_MIN)
    cp_fit_max_sec: int = Field(PowerCurveDurations.CP_FIT_MAX)

    @field_validator("durations_sec", "kj_window_hours")
    @classmethod
    def check_positive_sorted(cls, v: list) -> list:
        """Durations must be positive; they are kept in ascending order."""
        if any(d <= 0 for d in v):
            raise ValueError("Durations must be positive")
        return sorted(set(v))


class FatigueConfig(BaseModel):
    """Prior-work grid for fatigue-threshold efforts."""

    fatigue_bins_kj: list[float] = Field(
        default_factory=lambda: list(FatigueDefaults.FATIGUE_BINS_KJ)
    )
    target_durations_sec: list[int] = Field(
        default_factory=lambda: list(FatigueDefaults.TARGET_DURATIONS)
    )

    @field_validator("fatigue_bins_kj", "target_durations_sec")
    @classmethod
    def check_positive(cls, v: list) -> list:
        """Grid values must be positive."""
        if any(x <= 0 for x in v):
            raise ValueError("Fatigue grid values must be positive")
        return v


class DurabilityConfig(BaseModel):
    """Segment boundaries and windows for per-ride durability analysis."""

    early_fraction: float = Field(DurabilityDefaults.EARLY_FRACTION)
    late_fraction: float = Field(DurabilityDefaults.LATE_FRACTION)
    normalized_window_sec: int = Field(TimeConstants.NORMALIZED_POWER_WINDOW)
    best_late_window_sec: int = Field(TimeConstants.BEST_LATE_EFFORT_WINDOW)
    max_series_points: int = Field(DurabilityDefaults.MAX_SERIES_POINTS, gt=1)
    default_min_duration_sec: int = Field(
        TimeConstants.DEFAULT_MIN_DURABILITY_DURATION
    )

    @model_validator(mode="after")
    def check_fractions(self) -> "DurabilityConfig":
        """Segment split points must be ordered inside (0, 1)."""
        if not 0 < self.early_fraction < self.late_fraction < 1:
            raise ValueError("Require 0 < early_fraction < late_fraction < 1")
        return self


class EfficiencyConfig(BaseModel):
    """Coverage filters for steady-state efficiency windows."""

    durations_sec: list[int] = Field(
        default_factory=lambda: list(CoverageThresholds.DURATIONS)
    )
    max_results: int = Field(CoverageThresholds.MAX_RESULTS, ge=1)
    cadence_valid_threshold: float = Field(CoverageThresholds.CADENCE_VALID_THRESHOLD)
    cadence_coverage_min: float = Field(CoverageThresholds.CADENCE_COVERAGE_MIN)
    moving_speed_threshold: float = Field(CoverageThresholds.MOVING_SPEED_THRESHOLD)
    moving_coverage_min: float = Field(CoverageThresholds.MOVING_COVERAGE_MIN)
    heart_rate_coverage_min: float = Field(CoverageThresholds.HEART_RATE_COVERAGE_MIN)

    @field_validator(
        "cadence_coverage_min", "moving_coverage_min", "heart_rate_coverage_min"
    )
    @classmethod
    def check_fraction(cls, v: float) -> float:
        """Coverage requirements are fractions."""
        if v < 0 or v > 1:
            raise ValueError("Coverage must be between 0 and 1")
        return v


class RepeatabilityTarget(BaseModel):
    """A %FTP band and duration range that defines one kind of interval."""

    key: str
    label: str
    min_pct: float
    max_pct: float
    min_duration_sec: float
    max_duration_sec: float

    @model_validator(mode="after")
    def check_ranges(self) -> "RepeatabilityTarget":
        """Bands and duration ranges must be non-empty."""
        if self.min_pct >= self.max_pct:
            raise ValueError(f"{self.key}: min_pct must be below max_pct")
        if self.min_duration_sec > self.max_duration_sec:
            raise ValueError(f"{self.key}: min_duration_sec exceeds max_duration_sec")
        return self


def default_repeatability_targets() -> list[RepeatabilityTarget]:
    """VO2 max and threshold interval definitions."""
    return [
        RepeatabilityTarget(
            key="vo2",
            label="VO2 max intervals",
            min_pct=110,
            max_pct=120,
            min_duration_sec=180,
            max_duration_sec=360,
        ),
        RepeatabilityTarget(
            key="threshold",
            label="Threshold intervals",
            min_pct=95,
            max_pct=105,
            min_duration_sec=480,
            max_duration_sec=1200,
        ),
    ]


class RepeatabilityConfig(BaseModel):
    """Interval targets and sequence grouping rules."""

    targets: list[RepeatabilityTarget] = Field(
        default_factory=default_repeatability_targets
    )
    min_interval_count: int = Field(RepeatabilityDefaults.MIN_INTERVAL_COUNT, ge=1)
    rest_min_ratio: float = Field(RepeatabilityDefaults.REST_MIN_RATIO)
    rest_max_ratio: float = Field(RepeatabilityDefaults.REST_MAX_RATIO)
    record_tolerance_pct: float = Field(RepeatabilityDefaults.RECORD_TOLERANCE_PCT)


class ZoneDefinition(BaseModel):
    """A power zone bounded by %FTP; ``max_pct`` of None means open-ended."""

    key: str
    label: str
    min_pct: float
    max_pct: float | None = None

    @model_validator(mode="after")
    def check_bounds(self) -> "ZoneDefinition":
        """Upper bound must lie above the lower bound."""
        if self.max_pct is not None and self.max_pct <= self.min_pct:
            raise ValueError(f"{self.key}: max_pct must exceed min_pct")
        return self


def default_zones() -> list[ZoneDefinition]:
    """Six-zone %FTP model."""
    return [
        ZoneDefinition(
            key="Z1",
            label="Active recovery",
            min_pct=0,
            max_pct=PowerZoneThresholds.ZONE_1_MAX,
        ),
        ZoneDefinition(
            key="Z2",
            label="Endurance",
            min_pct=PowerZoneThresholds.ZONE_1_MAX,
            max_pct=PowerZoneThresholds.ZONE_2_MAX,
        ),
        ZoneDefinition(
            key="Z3",
            label="Tempo",
            min_pct=PowerZoneThresholds.ZONE_2_MAX,
            max_pct=PowerZoneThresholds.ZONE_3_MAX,
        ),
        ZoneDefinition(
            key="Z4",
            label="Threshold",
            min_pct=PowerZoneThresholds.ZONE_3_MAX,
            max_pct=PowerZoneThresholds.ZONE_4_MAX,
        ),
        ZoneDefinition(
            key="Z5",
            label="VO2 max",
            min_pct=PowerZoneThresholds.ZONE_4_MAX,
            max_pct=PowerZoneThresholds.ZONE_5_MAX,
        ),
        ZoneDefinition(
            key="Z6", label="Anaerobic", min_pct=PowerZoneThresholds.ZONE_5_MAX
        ),
    ]


class TimeInZoneConfig(BaseModel):
    """Zones and tolerance for streak detection."""

    zones: list[ZoneDefinition] = Field(default_factory=default_zones)
    tolerance: float = Field(PowerZoneThresholds.STREAK_TOLERANCE, ge=0, lt=1)
    rolling_window_sec: int = Field(TimeConstants.ZONE_ROLLING_WINDOW, ge=1)


class AdaptationConfig(BaseModel):
    """Window lengths for the best-block search."""

    min_window_days: int = Field(AdaptationWindows.MIN_WINDOW_DAYS, ge=1)
    max_window_days: int = Field(AdaptationWindows.MAX_WINDOW_DAYS, ge=1)
    epsilon: float = Field(AdaptationWindows.EPSILON, ge=0)

    @model_validator(mode="after")
    def check_order(self) -> "AdaptationConfig":
        """Window range must be non-empty."""
        if self.min_window_days > self.max_window_days:
            raise ValueError("min_window_days must not exceed max_window_days")
        return self


# ============================================================================
# Training frontiers
# ============================================================================


class FrontierPoint(WireModel):
    """Best observed value and where it happened."""

    value: float | None = None
    pct_ftp: float | None = None
    activity_id: str | None = None
    start_time: str | None = None
    window_start_sec: int | None = None


class DurationPowerEntry(FrontierPoint):
    """Best average power for one duration."""

    duration_sec: int


class KjFrontierEntry(FrontierPoint):
    """Best energy throughput for one multi-hour window (value is kJ/hour)."""

    duration_hours: float
    average_watts: float | None = None
    total_kj: float | None = None


class CriticalPowerModel(WireModel):
    """Critical power model parameters."""

    cp: float = Field(..., description="Critical Power estimate in watts")
    w_prime: float = Field(..., description="W' (W prime) estimate in joules")
    r_squared: float | None = Field(None, description="R-squared of CP model fit")


class DurationPowerFrontier(WireModel):
    """Duration-power frontier with its log-log hull and kJ throughput frontier."""

    durations: list[DurationPowerEntry]
    convex_hull: list[DurationPowerEntry]
    kj_frontier: list[KjFrontierEntry]
    peak_kj_per_hour: KjFrontierEntry | None = None
    critical_power: CriticalPowerModel | None = None


class DurabilityEffort(FrontierPoint):
    """Best power for a duration after a given amount of prior work."""

    fatigue_kj: float
    duration_sec: int
    delta_watts: float | None = None
    delta_pct: float | None = None


class DurabilityFrontier(WireModel):
    """Fatigue-threshold efforts across the (fatigue_kj, duration) grid."""

    efforts: list[DurabilityEffort]


class EfficiencyWindow(FrontierPoint):
    """A steady-state window and its watts-per-heartbeat efficiency."""

    duration_sec: int
    average_watts: float | None = None
    average_heart_rate: float | None = None
    watts_per_bpm: float | None = None
    watts_per_heart_rate_reserve: float | None = None
    cadence_coverage: float = 0.0
    moving_coverage: float = 0.0


class EfficiencyFrontier(WireModel):
    """Top efficiency windows per duration."""

    windows: list[EfficiencyWindow]


class RepeatabilitySequence(WireModel):
    """A run of evenly rested intervals of the same target."""

    target_key: str
    activity_id: str
    start_time: str
    start_sec: int
    reps: int
    avg_watts_by_rep: list[float]
    avg_pct_by_rep: list[float]
    decay_slope: float
    drop_first_to_last: float


class RepeatabilityRecord(WireModel):
    """Most reps held within tolerance of the first rep, per target."""

    target_key: str
    reps: int = 0
    activity_id: str | None = None
    start_time: str | None = None
    start_sec: int | None = None


class RepeatabilityFrontier(WireModel):
    """Detected sequences and per-target repeatability records."""

    sequences: list[RepeatabilitySequence]
    best_repeatability: list[RepeatabilityRecord]


class ZoneStreak(FrontierPoint):
    """Longest tolerance-bounded stay in a zone (value is minutes)."""

    zone_key: str
    label: str
    min_pct: float
    max_pct: float | None = None
    duration_sec: float = 0.0
    average_watts: float | None = None
    average_heart_rate: float | None = None


class TimeInZoneFrontier(WireModel):
    """Longest streak per zone."""

    streaks: list[ZoneStreak]


class TrainingFrontiersResponse(WireModel):
    """All training frontiers for a set of activities."""

    ftp_watts: float | None = None
    weight_kg: float | None = None
    hr_max_bpm: float | None = None
    hr_rest_bpm: float | None = None
    activity_count: int = 0
    duration_power: DurationPowerFrontier
    durability: DurabilityFrontier
    efficiency: EfficiencyFrontier
    repeatability: RepeatabilityFrontier
    time_in_zone: TimeInZoneFrontier


# ============================================================================
# Durability analysis
# ============================================================================


class DurabilitySegment(WireModel):
    """Early, middle or late portion of a ride."""

    label: str
    start_sec: float
    end_sec: float
    duration_sec: float
    normalized_power: float | None = None
    normalized_power_pct_ftp: float | None = None
    average_power: float | None = None
    average_heart_rate: float | None = None
    heart_rate_power_ratio: float | None = None


class DurabilitySegments(WireModel):
    """The three ride segments."""

    early: DurabilitySegment
    middle: DurabilitySegment
    late: DurabilitySegment


class TimeSeriesPoint(WireModel):
    """Downsampled stream point for transport."""

    t: float
    power: float | None = None
    heart_rate: float | None = None


class DurabilityRideAnalysis(WireModel):
    """Durability metrics for one ride."""

    activity_id: str
    start_time: str
    source: str
    duration_sec: float
    ftp_watts: float | None = None
    normalized_power: float | None = None
    normalized_power_pct_ftp: float | None = None
    average_power: float | None = None
    average_heart_rate: float | None = None
    total_kj: float | None = None
    tss: float | None = None
    heart_rate_drift_pct: float | None = None
    best_late_twenty_min_watts: float | None = None
    best_late_twenty_min_pct_ftp: float | None = None
    durability_score: int
    segments: DurabilitySegments
    time_series: list[TimeSeriesPoint]


class DurabilityFilters(WireModel):
    """
    Ride selection for durability analysis.

    A missing ``min_duration_sec`` is filled from
    ``Settings.durability.default_min_duration_sec`` when the analysis runs.
    """

    min_duration_sec: float | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    discipline: str | None = None

    @field_validator("discipline")
    @classmethod
    def strip_discipline(cls, v: str | None) -> str | None:
        """Blank disciplines mean no filter."""
        if v is None:
            return None
        return v.strip() or None


class DurabilityAnalysisResponse(WireModel):
    """Durability analysis for all matching rides."""

    ftp_watts: float | None = None
    filters: DurabilityFilters
    rides: list[DurabilityRideAnalysis]
    disciplines: list[str]


class DurableTssRide(WireModel):
    """Training stress accumulated after a kJ threshold is crossed."""

    activity_id: str
    start_time: str
    source: str
    total_kj: float | None = None
    post_threshold_kj: float | None = None
    post_threshold_duration_sec: float | None = None
    durable_tss: float | None = None


class DurableTssFilters(WireModel):
    """Date range applied to durable TSS rides."""

    start_date: datetime | None = None
    end_date: datetime | None = None


class DurableTssResponse(WireModel):
    """Durable TSS for all rides."""

    ftp_watts: float | None = None
    threshold_kj: int
    filters: DurableTssFilters = Field(default_factory=DurableTssFilters)
    rides: list[DurableTssRide]


# ============================================================================
# Adaptation edges
# ============================================================================


class ActivityLoad(WireModel):
    """Per-activity load figures feeding the daily aggregates."""

    activity_id: str
    start_time: datetime
    duration_sec: float
    normalized_power: float | None = None
    average_power: float | None = None

    @field_validator("normalized_power", "average_power")
    @classmethod
    def drop_non_finite(cls, v: float | None) -> float | None:
        """Non-finite power figures are treated as missing."""
        if v is None or not math.isfinite(v):
            return None
        return v


class AdaptationDay(WireModel):
    """Daily totals inside a block."""

    date: date
    tss: float
    kilojoules: float
    activity_ids: list[str]


class AdaptationBlock(WireModel):
    """Best contiguous block of days for one metric and window length."""

    total: float
    average_per_day: float
    start_date: date
    end_date: date
    day_count: int
    activity_ids: list[str]
    contributing_days: list[AdaptationDay]


class AdaptationWindowResult(WireModel):
    """Best TSS and kJ blocks for one window length."""

    days: int
    best_tss: AdaptationBlock | None = None
    best_kilojoules: AdaptationBlock | None = None


class AdaptationEdgesResponse(WireModel):
    """Best training blocks for every window length."""

    ftp_estimate: float | None = None
    total_activities: int = 0
    total_kilojoules: float = 0.0
    total_tss: float = 0.0
    analyzed_days: int = 0
    windows: list[AdaptationWindowResult] = Field(default_factory=list)


# ============================================================================
# Persisted snapshots
# ============================================================================


class DurabilityBestRide(WireModel):
    """Headline figures of the highest-scoring ride."""

    activity_id: str
    start_time: str
    duration_sec: float
    normalized_power: float | None = None
    normalized_power_pct_ftp: float | None = None
    heart_rate_drift_pct: float | None = None
    total_kj: float | None = None
    tss: float | None = None


class DurabilitySnapshot(WireModel):
    """Condensed durability analysis."""

    ftp_watts: float | None = None
    ride_count: int
    average_score: float | None = None
    best_score: int | None = None
    best_ride: DurabilityBestRide | None = None
    total_training_load_kj: float
    filters: DurabilityFilters
    generated_at: datetime


class TrainingFrontiersSnapshot(WireModel):
    """Condensed training frontiers."""

    ftp_watts: float | None = None
    weight_kg: float | None = None
    hr_max_bpm: float | None = None
    hr_rest_bpm: float | None = None
    best_duration_power: list[DurationPowerEntry]
    best_durability_effort: DurabilityEffort | None = None
    best_efficiency_window: EfficiencyWindow | None = None
    best_time_in_zone: ZoneStreak | None = None
    best_repeatability: RepeatabilityRecord | None = None
    best_repeatability_drop: float | None = None
    peak_kj_per_hour: KjFrontierEntry | None = None
    generated_at: datetime


class AdaptationWindowSnapshot(WireModel):
    """A best block with the other metric's total for the same days."""

    window_days: int
    total_tss: float
    total_kj: float
    activity_ids: list[str]


class AdaptationSnapshot(WireModel):
    """Condensed adaptation edges."""

    ftp_estimate: float | None = None
    best_tss_window: AdaptationWindowSnapshot | None = None
    best_kj_window: AdaptationWindowSnapshot | None = None
    generated_at: datetime


class ProfileAnalytics(WireModel):
    """Per-user analytics record assembled from snapshots."""

    metrics: dict[str, dict] = Field(default_factory=dict)
    durability: DurabilitySnapshot | None = None
    training_frontiers: TrainingFrontiersSnapshot | None = None
    adaptation_edges: AdaptationSnapshot | None = None
    last_updated_at: datetime | None = None
