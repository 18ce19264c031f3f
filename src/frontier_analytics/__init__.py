"""Frontier Analytics - a package for cycling performance frontiers and durability."""

__version__ = "0.3.0"

from . import analysis, constants, data, exceptions, metrics, models, services
from .analysis import AdaptationEdgesOptimizer, AnalyticsSummarizer
from .data import ActivityDataLoader, StreamNormalizer
from .metrics import (
    DurabilityCalculator,
    DurableTssCalculator,
    DurationPowerCalculator,
    EfficiencyCalculator,
    FatigueEffortCalculator,
    PowerCalculator,
    RepeatabilityCalculator,
    TimeInZoneCalculator,
)
from .models import (
    ActivityMeta,
    AdaptationEdgesResponse,
    AthleteProfile,
    DurabilityAnalysisResponse,
    DurabilityFilters,
    DurableTssFilters,
    DurableTssResponse,
    PreparedActivity,
    ProfileAnalytics,
    TrainingFrontiersResponse,
)
from .services import AnalyticsService, InMemoryAnalyticsStore
from .settings import Settings, load_settings


def get_version() -> str:
    """Get the current version of frontier_analytics."""
    return __version__


def get_package_info() -> dict[str, str]:
    """Get package information including name and version."""
    return {
        "name": "frontier-analytics",
        "version": __version__,
        "description": "Performance frontiers and durability analytics for cycling",
    }


__all__ = [
    # Version & Info
    "get_version",
    "get_package_info",
    # Settings
    "Settings",
    "load_settings",
    # Models
    "ActivityMeta",
    "AdaptationEdgesResponse",
    "AthleteProfile",
    "DurabilityAnalysisResponse",
    "DurabilityFilters",
    "DurableTssFilters",
    "DurableTssResponse",
    "PreparedActivity",
    "ProfileAnalytics",
    "TrainingFrontiersResponse",
    # Calculators
    "DurabilityCalculator",
    "DurableTssCalculator",
    "DurationPowerCalculator",
    "EfficiencyCalculator",
    "FatigueEffortCalculator",
    "PowerCalculator",
    "RepeatabilityCalculator",
    "TimeInZoneCalculator",
    # Data Layer
    "ActivityDataLoader",
    "StreamNormalizer",
    # Analysis Layer
    "AdaptationEdgesOptimizer",
    "AnalyticsSummarizer",
    # Services
    "AnalyticsService",
    "InMemoryAnalyticsStore",
    # Modules
    "analysis",
    "constants",
    "data",
    "exceptions",
    "metrics",
    "models",
    "services",
]
