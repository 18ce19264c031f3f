"""
Metrics calculation modules.

This package contains all frontier and ride-level calculation logic:
- rolling: Prefix-sum rolling-window primitives
- power: Ride-level power metrics (NP, IF, TSS, work)
- power_curve: Duration-power frontier, convex hull and critical power fit
- fatigue: Fatigue-threshold efforts and durable TSS
- durability: Per-ride durability analysis and score
- efficiency: Steady-state watts-per-heartbeat windows
- repeatability: Interval sequences and repeatability records
- zones: Longest time-in-zone streaks
"""

from .base import BaseFrontierCalculator, pct_of_ftp, round_half_up, round_or_none
from .durability import DurabilityCalculator, calculate_durability_score
from .efficiency import EfficiencyCalculator
from .fatigue import DurableTssCalculator, FatigueEffortCalculator
from .power import PowerCalculator, normalized_power, training_stress_score
from .power_curve import (
    DurationPowerCalculator,
    compute_convex_hull,
    estimate_cp_wprime,
    hyperbolic_model,
)
from .repeatability import RepeatabilityCalculator
from .rolling import best_window_average, prefix_sums, window_averages
from .zones import TimeInZoneCalculator

__all__ = [
    "BaseFrontierCalculator",
    "DurabilityCalculator",
    "DurableTssCalculator",
    "DurationPowerCalculator",
    "EfficiencyCalculator",
    "FatigueEffortCalculator",
    "PowerCalculator",
    "RepeatabilityCalculator",
    "TimeInZoneCalculator",
    "best_window_average",
    "calculate_durability_score",
    "compute_convex_hull",
    "estimate_cp_wprime",
    "hyperbolic_model",
    "normalized_power",
    "pct_of_ftp",
    "prefix_sums",
    "round_half_up",
    "round_or_none",
    "training_stress_score",
    "window_averages",
]
