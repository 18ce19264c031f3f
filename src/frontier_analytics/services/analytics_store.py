"""
Per-user analytics record storage.

This module provides a versioned record store and the optimistic
read-merge-write loop used to fold analysis snapshots into a user's
analytics record.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from ..analysis.summarizer import utc_now
from ..exceptions import ConcurrentUpdateError
from ..models import ProfileAnalytics

logger = logging.getLogger(__name__)

SECTION_FIELDS = ("durability", "training_frontiers", "adaptation_edges")


@dataclass(frozen=True)
class VersionedRecord:
    """An analytics record and the version it was read at."""

    version: int
    analytics: ProfileAnalytics


class AnalyticsStoreProtocol(Protocol):
    """Protocol for analytics record stores."""

    def get(self, user_id: str) -> VersionedRecord | None:
        """Read a user's record."""
        ...

    def compare_and_swap(
        self, user_id: str, expected_version: int | None, analytics: ProfileAnalytics
    ) -> bool:
        """Write a record only if it is still at ``expected_version``."""
        ...


class InMemoryAnalyticsStore:
    """
    Thread-safe in-memory analytics store.

    Every successful write bumps the record version; a write against a stale
    version is rejected.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._records: dict[str, VersionedRecord] = {}

    def get(self, user_id: str) -> VersionedRecord | None:
        """
        Read a user's record.

        Args:
            user_id: User identifier

        Returns:
            VersionedRecord, or None when the user has no record yet
        """
        with self._lock:
            return self._records.get(user_id)

    def compare_and_swap(
        self, user_id: str, expected_version: int | None, analytics: ProfileAnalytics
    ) -> bool:
        """
        Write a record if nobody else wrote it since it was read.

        Args:
            user_id: User identifier
            expected_version: Version read before merging (None for a new record)
            analytics: Record to store

        Returns:
            True if the write was applied
        """
        with self._lock:
            current = self._records.get(user_id)
            current_version = current.version if current is not None else None
            if current_version != expected_version:
                return False
            next_version = (current_version or 0) + 1
            self._records[user_id] = VersionedRecord(next_version, analytics)
            return True


def has_update(partial: ProfileAnalytics) -> bool:
    """Whether a partial record carries anything to merge."""
    fields = partial.model_fields_set
    if "metrics" in fields and partial.metrics:
        return True
    return any(name in fields for name in SECTION_FIELDS)


def merge_analytics(
    base: ProfileAnalytics, partial: ProfileAnalytics, now: datetime
) -> ProfileAnalytics:
    """
    Fold a partial record into a base record.

    Sections explicitly set on ``partial`` replace the base sections; metric
    snapshots are merged key by key.

    Args:
        base: Current record
        partial: Update, where only explicitly set fields apply
        now: Timestamp for ``last_updated_at``

    Returns:
        New merged record
    """
    updates: dict = {"last_updated_at": now}
    fields = partial.model_fields_set
    if "metrics" in fields:
        updates["metrics"] = {**base.metrics, **partial.metrics}
    for name in SECTION_FIELDS:
        if name in fields:
            updates[name] = getattr(partial, name)
    return base.model_copy(update=updates)


def merge_profile_analytics(
    store: AnalyticsStoreProtocol,
    user_id: str,
    partial: ProfileAnalytics,
    max_retries: int = 5,
    clock: Callable[[], datetime] = utc_now,
) -> ProfileAnalytics | None:
    """
    Merge a partial record into a user's analytics with optimistic retries.

    Args:
        store: Versioned record store
        user_id: User identifier
        partial: Update to merge
        max_retries: Attempts before giving up
        clock: Source of the ``last_updated_at`` timestamp

    Returns:
        The stored record, or None when ``partial`` carried nothing to merge

    Raises:
        ConcurrentUpdateError: If every attempt lost the race
    """
    if not has_update(partial):
        return None

    for attempt in range(1, max_retries + 1):
        current = store.get(user_id)
        base = current.analytics if current is not None else ProfileAnalytics()
        merged = merge_analytics(base, partial, clock())
        expected = current.version if current is not None else None
        if store.compare_and_swap(user_id, expected, merged):
            return merged
        logger.debug(f"Analytics for {user_id} changed during merge (attempt {attempt})")

    raise ConcurrentUpdateError(
        f"Analytics for {user_id} kept changing; gave up after {max_retries} attempts"
    )
