"""
Spell crawler core components.
"""

from .records import Record, RecordSourceError, load_records, parse_records
from .fetcher import (
    BaseFetcher, HttpFetcher, BrowserFetcher, FetchResult, FetchError, FetcherInitError,
    create_fetcher
)
from .parser import ContentParser, ParsedContent
from .spelling import SpellingOracle, Span
from .analysis import Occurrence, RecordResult, analyze_text, normalize_snippet
from .scheduler import BatchScheduler, CrawlStats, RecordFailure

__all__ = [
    'Record', 'RecordSourceError', 'load_records', 'parse_records',
    'BaseFetcher', 'HttpFetcher', 'BrowserFetcher', 'FetchResult', 'FetchError',
    'FetcherInitError', 'create_fetcher',
    'ContentParser', 'ParsedContent',
    'SpellingOracle', 'Span',
    'Occurrence', 'RecordResult', 'analyze_text', 'normalize_snippet',
    'BatchScheduler', 'CrawlStats', 'RecordFailure'
]
