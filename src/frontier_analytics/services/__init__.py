"""
Service layer for coordinating analytics workflows.

This package provides high-level services that orchestrate the
calculators and the per-user analytics record.
"""

from .analytics_service import AnalyticsService
from .analytics_store import (
    InMemoryAnalyticsStore,
    VersionedRecord,
    merge_analytics,
    merge_profile_analytics,
)

__all__ = [
    "AnalyticsService",
    "InMemoryAnalyticsStore",
    "VersionedRecord",
    "merge_analytics",
    "merge_profile_analytics",
]
