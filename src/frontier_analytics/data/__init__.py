"""
Data layer for Frontier Analytics.

This package handles input loading and stream normalization.
"""

from .loader import ActivityDataLoader, ActivityRecord, InputDocument
from .normalizer import StreamNormalizer, infer_sample_rate

__all__ = [
    "ActivityDataLoader",
    "ActivityRecord",
    "InputDocument",
    "StreamNormalizer",
    "infer_sample_rate",
]
