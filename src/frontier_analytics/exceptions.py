"""
Custom exceptions for the Frontier Analytics package.

This module defines all custom exceptions used throughout the application,
providing clear error hierarchies and specific error types for different scenarios.
"""


class FrontierAnalyticsError(Exception):
    """Base exception for all Frontier Analytics errors."""


class ConfigurationError(FrontierAnalyticsError):
    """Raised when there is an issue with configuration settings."""


class ValidationError(FrontierAnalyticsError):
    """Raised when data validation fails."""


class InvalidDataError(ValidationError):
    """Raised when input data is invalid or missing required fields."""


class CalculationError(FrontierAnalyticsError):
    """Raised when there is an error during metric calculation."""


class DataLoadError(FrontierAnalyticsError):
    """Raised when there is an error loading an input document."""


class StreamDataError(FrontierAnalyticsError):
    """Raised when there are issues with activity stream data."""


class ConcurrentUpdateError(FrontierAnalyticsError):
    """Raised when an analytics record keeps changing under an optimistic merge."""
