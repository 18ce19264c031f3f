"""
Analysis layer for Frontier Analytics.

This package provides multi-activity analysis:
- adaptation: Best contiguous training blocks (TSS and kJ)
- summarizer: Snapshot summaries for per-user analytics records
"""

from .adaptation import AdaptationEdgesOptimizer, estimate_ftp
from .summarizer import AnalyticsSummarizer

__all__ = [
    "AdaptationEdgesOptimizer",
    "AnalyticsSummarizer",
    "estimate_ftp",
]
