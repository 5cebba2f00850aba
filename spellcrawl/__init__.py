"""
Spell Crawler

Fetches a list of web pages, spell checks their visible text and reports each
misspelled word with the pages and contexts it appears in.
"""

__version__ = "1.0.0"
__author__ = "Alex Nguyen"
__description__ = "A batched, concurrent spell checker for lists of web pages"
