"""
Constants used throughout the Frontier Analytics package.

This module centralizes the default tables (durations, coverage thresholds,
zone bounds) that seed the injectable configuration models in ``models.py``.
"""

from typing import Final


# === Time Constants ===
class TimeConstants:
    """Time-related constants in seconds."""

    SECONDS_PER_MINUTE: Final[int] = 60
    SECONDS_PER_HOUR: Final[int] = 3600

    # Rolling window sizes
    NORMALIZED_POWER_WINDOW: Final[int] = 30  # 30 seconds for NP calculation
    ZONE_ROLLING_WINDOW: Final[int] = 30  # 30 seconds for zone streak smoothing
    BEST_LATE_EFFORT_WINDOW: Final[int] = 1200  # 20 minutes in the late segment

    # Durability filters
    DEFAULT_MIN_DURABILITY_DURATION: Final[int] = 3 * 3600


# === Energy Conversion ===
class EnergyConstants:
    """Energy conversion factors."""

    JOULES_PER_KJ: Final[int] = 1000
    KJ_PER_HOUR_PER_WATT: Final[float] = 3.6  # 1 W sustained for 1 h = 3.6 kJ


# === Duration Power Frontier ===
class PowerCurveDurations:
    """Standard durations for the duration-power frontier (in seconds)."""

    STANDARD: Final[tuple[int, ...]] = (
        5,
        15,
        30,
        60,
        120,
        180,
        300,
        480,
        600,
        1200,
        1800,
        2700,
        3600,
        5400,
        7200,
        10800,
        14400,
    )
    KJ_WINDOW_HOURS: Final[tuple[int, ...]] = (2, 3, 4, 5)

    # Durations used for the hyperbolic CP/W' fit (2-30 minutes)
    CP_FIT_MIN: Final[int] = 120
    CP_FIT_MAX: Final[int] = 1800


# === Fatigue Thresholds ===
class FatigueDefaults:
    """Prior-work grid for fatigue-threshold best efforts."""

    FATIGUE_BINS_KJ: Final[tuple[int, ...]] = (1000, 1500, 2000, 2500, 3000)
    TARGET_DURATIONS: Final[tuple[int, ...]] = (300, 600, 1200, 1800)

    DURABLE_TSS_THRESHOLD_KJ: Final[int] = 1000
    MIN_THRESHOLD_KJ: Final[int] = 1
    MAX_THRESHOLD_KJ: Final[int] = 5000


# === Durability Segments ===
class DurabilityDefaults:
    """Segment boundaries and transport limits for durability analysis."""

    EARLY_FRACTION: Final[float] = 0.3
    LATE_FRACTION: Final[float] = 0.7
    MAX_SERIES_POINTS: Final[int] = 600


# === Efficiency Coverage ===
class CoverageThresholds:
    """Coverage requirements for steady-state efficiency windows."""

    DURATIONS: Final[tuple[int, ...]] = (10800, 14400, 18000)
    MAX_RESULTS: Final[int] = 3

    CADENCE_VALID_THRESHOLD: Final[float] = 0.0  # rpm
    CADENCE_COVERAGE_MIN: Final[float] = 0.85
    MOVING_SPEED_THRESHOLD: Final[float] = 0.5  # m/s
    MOVING_COVERAGE_MIN: Final[float] = 0.98
    HEART_RATE_COVERAGE_MIN: Final[float] = 0.90


# === Repeatability ===
class RepeatabilityDefaults:
    """Interval grouping rules."""

    MIN_INTERVAL_COUNT: Final[int] = 3
    REST_MIN_RATIO: Final[float] = 1.0
    REST_MAX_RATIO: Final[float] = 1.5
    RECORD_TOLERANCE_PCT: Final[float] = 10.0


# === Zone Percentages ===
class PowerZoneThresholds:
    """Power zone boundaries as percentages of FTP (six-zone model)."""

    ZONE_1_MAX: Final[float] = 55.0  # Active Recovery
    ZONE_2_MAX: Final[float] = 75.0  # Endurance
    ZONE_3_MAX: Final[float] = 90.0  # Tempo
    ZONE_4_MAX: Final[float] = 105.0  # Threshold
    ZONE_5_MAX: Final[float] = 120.0  # VO2 Max
    # Zone 6 is everything above 120

    STREAK_TOLERANCE: Final[float] = 0.05  # Max out-of-zone fraction in a streak


# === Adaptation Windows ===
class AdaptationWindows:
    """Window lengths for the best contiguous training block search."""

    MIN_WINDOW_DAYS: Final[int] = 3
    MAX_WINDOW_DAYS: Final[int] = 25
    EPSILON: Final[float] = 1e-6


# === Wire Format ===
class StreamColumns:
    """Canonical stream column names and their accepted wire aliases."""

    TIME: Final[str] = "t"
    POWER: Final[str] = "power"
    HEART_RATE: Final[str] = "heart_rate"
    CADENCE: Final[str] = "cadence"
    SPEED: Final[str] = "speed"

    ALIASES: Final[dict[str, str]] = {
        "time": "t",
        "watts": "power",
        "heartRate": "heart_rate",
        "heartrate": "heart_rate",
        "hr": "heart_rate",
        "velocity_smooth": "speed",
    }
