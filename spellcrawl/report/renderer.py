"""
Report rendering for aggregated spell check results.
"""

import json
import re
from typing import Any, Dict, List, Sequence

from .aggregator import AggregateReport, GlobalIndex
from ..crawler.scheduler import RecordFailure


def rank_words(index: GlobalIndex) -> List[str]:
    """
    Words ordered by the number of distinct pages they appear on, most first.

    The sort is stable, so ties keep index order (first occurrence).
    """
    return sorted(index, key=lambda word: len(index[word]), reverse=True)


def highlight(snippet: str, word: str, start: str = '**', end: str = '**') -> str:
    """
    Mark every whole-token, case-sensitive occurrence of ``word`` in ``snippet``.

    A match directly preceded or followed by a letter or digit is left alone,
    so "Helo" is not marked inside "Helot".
    """
    pattern = re.compile(r'(?<![^\W_])' + re.escape(word) + r'(?![^\W_])')
    return pattern.sub(lambda match: f"{start}{match.group()}{end}", snippet)


class ReportRenderer:
    """Formats an AggregateReport as text or JSON. Never modifies the report."""

    def __init__(self, highlight_start: str = '**', highlight_end: str = '**'):
        self.highlight_start = highlight_start
        self.highlight_end = highlight_end

    def render(self, report: AggregateReport, output_format: str = 'text',
               failures: Sequence[RecordFailure] = ()) -> str:
        if output_format == 'json':
            return self.render_json(report, failures)
        return self.render_text(report)

    def render_summary(self, report: AggregateReport) -> List[str]:
        summary = report.summary
        return [
            "=== SPELL CHECK REPORT ===",
            f"Records processed: {summary.records_processed} of {summary.records_attempted}"
            f" ({summary.records_failed} failed)",
            f"Total occurrences: {summary.total_occurrences}",
            f"Unique words: {summary.unique_words}",
        ]

    def render_text(self, report: AggregateReport) -> str:
        """Summary block followed by the per-word breakdown."""
        lines = self.render_summary(report)
        index = report.index

        for word in rank_words(index):
            pages = index[word]
            occurrences = sum(len(contexts) for contexts in pages.values())
            lines.append("")
            lines.append(f'"{word}" - {len(pages)} page(s), {occurrences} occurrence(s)')
            for target, contexts in pages.items():
                lines.append(f"  {target}")
                for context in contexts:
                    marked = highlight(context, word, self.highlight_start, self.highlight_end)
                    lines.append(f"    - {marked}")

        return "\n".join(lines) + "\n"

    def render_json(self, report: AggregateReport,
                    failures: Sequence[RecordFailure] = ()) -> str:
        """Same structure as the text report, as a JSON document."""
        summary = report.summary
        index = report.index

        document: Dict[str, Any] = {
            'summary': {
                'records_attempted': summary.records_attempted,
                'records_processed': summary.records_processed,
                'records_failed': summary.records_failed,
                'total_occurrences': summary.total_occurrences,
                'unique_words': summary.unique_words,
            },
            'words': [
                {
                    'word': word,
                    'pages': [
                        {'target': target, 'contexts': list(contexts)}
                        for target, contexts in index[word].items()
                    ],
                }
                for word in rank_words(index)
            ],
            'failures': [
                {'label': failure.label, 'target': failure.target, 'reason': failure.reason}
                for failure in failures
            ],
        }
        return json.dumps(document, indent=2, ensure_ascii=False) + "\n"
