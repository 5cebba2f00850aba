"""
Merge per-page results into a cross-page index of misspelled words.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

from ..crawler.analysis import RecordResult


# word -> target -> contexts
GlobalIndex = Mapping[str, Mapping[str, Tuple[str, ...]]]


@dataclass(frozen=True)
class ReportSummary:
    """Counters shown at the top of the report."""
    records_attempted: int
    records_processed: int
    total_occurrences: int
    unique_words: int

    @property
    def records_failed(self) -> int:
        return self.records_attempted - self.records_processed


@dataclass(frozen=True)
class AggregateReport:
    """Frozen index plus its summary."""
    index: GlobalIndex
    summary: ReportSummary


def empty_index() -> GlobalIndex:
    return MappingProxyType({})


def fold(index: GlobalIndex, result: RecordResult) -> GlobalIndex:
    """
    Return a new index with ``result`` merged in; ``index`` is left untouched.

    A word seen for the first time is appended after existing words, so
    folding in input order keeps words in first-occurrence order. If the
    same target already holds contexts for a word, they are replaced.
    """
    if not result.misspellings:
        return index

    merged = dict(index)
    for word, contexts in result.misspellings.items():
        pages = dict(merged.get(word, {}))
        pages[result.target] = tuple(contexts)
        merged[word] = MappingProxyType(pages)
    return MappingProxyType(merged)


def count_occurrences(index: GlobalIndex) -> int:
    """Every context counts, including repeats of a word on the same page."""
    return sum(len(contexts) for pages in index.values() for contexts in pages.values())


def aggregate(outcomes: Iterable[Optional[RecordResult]]) -> AggregateReport:
    """
    Fold all scheduler outcomes into one index, once.

    Args:
        outcomes: Scheduler outcomes; ``None`` marks a failed record

    Returns:
        AggregateReport with the frozen index and summary counters
    """
    index = empty_index()
    attempted = 0
    processed = 0

    for outcome in outcomes:
        attempted += 1
        if outcome is None:
            continue
        processed += 1
        index = fold(index, outcome)

    summary = ReportSummary(
        records_attempted=attempted,
        records_processed=processed,
        total_occurrences=count_occurrences(index),
        unique_words=len(index),
    )
    return AggregateReport(index=index, summary=summary)
