"""
Visible text extraction from HTML pages.
"""

import re
import logging
from typing import Optional
from dataclasses import dataclass
from bs4 import BeautifulSoup, Comment, NavigableString


# Elements whose content is never shown to the user
NON_VISIBLE_TAGS = ["script", "style", "noscript", "template", "head"]

# Elements rendered on their own line; everything else flows inline
BLOCK_TAGS = [
    "address", "article", "aside", "blockquote", "dd", "details", "div", "dl",
    "dt", "fieldset", "figcaption", "figure", "footer", "form", "h1", "h2",
    "h3", "h4", "h5", "h6", "header", "hr", "li", "main", "nav", "ol", "p",
    "pre", "section", "summary", "table", "td", "th", "tr", "ul",
]


@dataclass
class ParsedContent:
    """Container for the visible content of a page."""
    url: str
    title: Optional[str] = None
    text: str = ""
    word_count: int = 0


class ContentParser:
    """
    Parses HTML content and keeps only what a reader would see.
    """

    def __init__(self, parser_features: str = 'lxml'):
        self.parser_features = parser_features
        self.logger = logging.getLogger(__name__)
        self.inline_space_pattern = re.compile(r'[ \t\r\f\v]+')

    def parse(self, url: str, html_content: str) -> ParsedContent:
        """
        Parse HTML content and extract its visible text.

        Args:
            url: The URL of the page
            html_content: Raw HTML content

        Returns:
            ParsedContent with the title and the visible text, one block per line
        """
        soup = BeautifulSoup(html_content, self.parser_features)

        title_tag = soup.find('title')
        title = self._clean_line(title_tag.get_text()) if title_tag else None

        for element in soup(NON_VISIBLE_TAGS):
            element.decompose()

        for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()

        self._break_blocks(soup)

        root = soup.body or soup
        text = self._clean_text(root.get_text())

        parsed_content = ParsedContent(
            url=url,
            title=title,
            text=text,
            word_count=len(text.split())
        )
        self.logger.debug(f"Parsed content from {url}: {parsed_content.word_count} words")
        return parsed_content

    def extract_text(self, url: str, html_content: str) -> str:
        """Shortcut returning only the visible text."""
        return self.parse(url, html_content).text

    def _break_blocks(self, soup: BeautifulSoup):
        """Put line breaks around block elements so inline markup stays joined."""
        for br in soup.find_all('br'):
            br.replace_with(NavigableString('\n'))

        for element in soup.find_all(BLOCK_TAGS):
            element.insert_before(NavigableString('\n'))
            element.insert_after(NavigableString('\n'))

    def _clean_line(self, text: str) -> str:
        return self.inline_space_pattern.sub(' ', text).strip()

    def _clean_text(self, text: str) -> str:
        """Collapse runs of spaces and drop empty lines."""
        lines = (self._clean_line(line) for line in text.split('\n'))
        return '\n'.join(line for line in lines if line)
