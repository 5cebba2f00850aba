"""
Spelling oracle backed by pyspellchecker.
"""

import re
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from spellchecker import SpellChecker


# Alphabetic tokens, allowing inner apostrophes ("don't", "O'Neil")
WORD_PATTERN = re.compile(r"[^\W\d_]+(?:['\u2019][^\W\d_]+)*")


@dataclass(frozen=True)
class Span:
    """Offsets of one misspelled token: text[start:end]."""
    start: int
    end: int


class SpellingOracle:
    """
    Finds misspelled tokens in a block of text.

    ``check`` is pure and synchronous; results of dictionary lookups are
    cached per lowercase word.
    """

    def __init__(self, language: str = 'en', min_word_length: int = 2,
                 ignore_capitalized: bool = False,
                 custom_words: Optional[Iterable[str]] = None,
                 custom_dictionaries: Optional[Iterable[str]] = None):
        self.logger = logging.getLogger(__name__)
        self.min_word_length = min_word_length
        self.ignore_capitalized = ignore_capitalized

        self.spell_checker = SpellChecker(language=language)
        self._known: Dict[str, bool] = {}

        words = [word.strip().lower() for word in (custom_words or []) if word.strip()]
        for dictionary in custom_dictionaries or []:
            words.extend(self._read_dictionary(dictionary))
        if words:
            self.spell_checker.word_frequency.load_words(words)
            self.logger.info(f"Loaded {len(words)} custom words")

    def _read_dictionary(self, path: str) -> List[str]:
        """One word per line; blank lines and '#' comments are skipped."""
        with open(Path(path), 'r', encoding='utf-8') as file:
            return [
                line.strip().lower()
                for line in file
                if line.strip() and not line.lstrip().startswith('#')
            ]

    def is_known(self, word: str) -> bool:
        key = word.lower().replace("\u2019", "'")
        if key not in self._known:
            known = key in self.spell_checker
            if not known and "'" in key:
                # Possessives and contractions: accept when the stem is known
                known = key.split("'", 1)[0] in self.spell_checker
            self._known[key] = known
        return self._known[key]

    def check(self, text: str) -> List[Span]:
        """
        Return the spans of all misspelled tokens in ``text``, in text order.

        Args:
            text: Visible page text

        Returns:
            List of Span objects
        """
        spans = []
        for match in WORD_PATTERN.finditer(text):
            word = match.group()
            if len(word) < self.min_word_length:
                continue
            if self.ignore_capitalized and word[0].isupper():
                continue
            if not self.is_known(word):
                spans.append(Span(match.start(), match.end()))
        return spans

