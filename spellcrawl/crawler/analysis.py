"""
Per-page analysis: turn misspelling spans into words with context snippets.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Tuple

from .spelling import Span


DEFAULT_CONTEXT_WINDOW = 30

_WHITESPACE = re.compile(r'\s+')


@dataclass(frozen=True)
class Occurrence:
    """One misspelled word on one page, with the text around it."""
    word: str
    context: str


@dataclass(frozen=True)
class RecordResult:
    """Misspellings found on one page, keyed by word in order of first appearance."""
    label: str
    target: str
    misspellings: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)

    @property
    def occurrence_count(self) -> int:
        return sum(len(contexts) for contexts in self.misspellings.values())


def normalize_snippet(snippet: str) -> str:
    """Collapse whitespace runs to single spaces and trim. Idempotent."""
    return _WHITESPACE.sub(' ', snippet).strip()


def context_snippet(text: str, span: Span, window: int = DEFAULT_CONTEXT_WINDOW) -> str:
    """Text from ``window`` characters before the span to ``window`` characters after it."""
    start = max(0, span.start - window)
    end = min(len(text), span.end + window)
    return normalize_snippet(text[start:end])


def find_occurrences(text: str, spans: Iterable[Span],
                     window: int = DEFAULT_CONTEXT_WINDOW) -> List[Occurrence]:
    return [
        Occurrence(word=text[span.start:span.end], context=context_snippet(text, span, window))
        for span in spans
    ]


def group_occurrences(occurrences: Iterable[Occurrence]) -> Dict[str, Tuple[str, ...]]:
    """
    Group occurrences by word.

    Every context is kept, repeats included, in the order found.
    """
    grouped: Dict[str, List[str]] = {}
    for occurrence in occurrences:
        grouped.setdefault(occurrence.word, []).append(occurrence.context)
    return {word: tuple(contexts) for word, contexts in grouped.items()}


def analyze_text(label: str, target: str, text: str, spans: Iterable[Span],
                 window: int = DEFAULT_CONTEXT_WINDOW) -> RecordResult:
    """Build the RecordResult for one page."""
    return RecordResult(
        label=label,
        target=target,
        misspellings=group_occurrences(find_occurrences(text, spans, window)),
    )
