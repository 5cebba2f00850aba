"""
Aggregation and reporting of spell check results.
"""

from .aggregator import AggregateReport, ReportSummary, GlobalIndex, aggregate, fold, empty_index
from .renderer import ReportRenderer, rank_words, highlight

__all__ = [
    'AggregateReport', 'ReportSummary', 'GlobalIndex', 'aggregate', 'fold', 'empty_index',
    'ReportRenderer', 'rank_words', 'highlight'
]
