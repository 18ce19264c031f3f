"""
Base classes and helpers for frontier calculators.

Defines the interface that all frontier calculators follow and the small
numeric helpers (rounding, %FTP) they share.
"""

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol, TypeVar

from ..models import AthleteProfile, PreparedActivity
from ..settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return int(math.floor(value + 0.5))


def round_or_none(value: float | None, digits: int = 1) -> float | None:
    """
    Round a value, mapping missing or non-finite values to None.

    Args:
        value: Value to round
        digits: Number of decimal places

    Returns:
        Rounded value or None
    """
    if value is None or not math.isfinite(value):
        return None
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def pct_of_ftp(value: float | None, ftp: float | None, digits: int = 1) -> float | None:
    """Express watts as a rounded percentage of FTP (None without FTP)."""
    if value is None or ftp is None or ftp <= 0:
        return None
    return round_or_none(value / ftp * 100, digits)


def window_rate(activity: PreparedActivity) -> float:
    """
    Samples per second used to size every duration window.

    All calculators convert seconds to samples with this rate, so a window of
    a given duration covers the same span of ride whichever frontier asks.
    """
    return max(1e-6, activity.sample_rate)


class FrontierCalculatorProtocol(Protocol):
    """Protocol defining the interface for frontier calculators."""

    def calculate(
        self, activities: Sequence[PreparedActivity], profile: AthleteProfile
    ):
        """
        Reduce a set of activities to a frontier.

        Args:
            activities: Prepared activities, in reduction order
            profile: Athlete thresholds

        Returns:
            Frontier response model
        """
        ...


class BaseFrontierCalculator(ABC):
    """
    Abstract base class for frontier calculators.

    A frontier is computed in two phases: an independent scan of every
    activity, then a sequential reduction in activity order. Only the scan
    phase may run concurrently, so ties always keep the earlier activity.
    """

    def __init__(self, settings: Settings):
        """
        Initialize calculator with settings.

        Args:
            settings: Application settings containing thresholds and configuration
        """
        self.settings = settings

    @abstractmethod
    def calculate(self, activities: Sequence[PreparedActivity], profile: AthleteProfile):
        """
        Reduce a set of activities to a frontier.

        Args:
            activities: Prepared activities, in reduction order
            profile: Athlete thresholds

        Returns:
            Frontier response model
        """
        raise NotImplementedError("Subclasses must implement calculate()")

    def _scan_all(
        self, scan: Callable[[PreparedActivity], T], activities: Iterable[PreparedActivity]
    ) -> list[T]:
        """
        Run ``scan`` over every activity, returning results in input order.

        Args:
            scan: Per-activity scan function
            activities: Activities to scan

        Returns:
            List of scan results aligned with ``activities``
        """
        activities = list(activities)
        workers = min(self.settings.max_workers, len(activities))
        if workers <= 1:
            return [scan(activity) for activity in activities]

        logger.debug(f"Scanning {len(activities)} activities on {workers} threads")
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(scan, activities))
