# src/source_monitor/parsers/oim_parser.py
import logging
import re
from datetime import date
from typing import List, Tuple

from bs4 import BeautifulSoup, Tag

from .base_parser import (
    BaseParser, ExtractionRule, DOCUMENT_LINK_PATTERN, anchor_title, enclosing_text, find_anchors,
)
from ..types import ScrapedItem
from . import data_cleaner

logger = logging.getLogger(__name__)

HANDBOOK_LINK_PATTERN = re.compile(r"\.html?(?:$|[?#])", re.IGNORECASE)

# Policy manual pages link across the state's hosts
STATE_DOMAINS = ("pa.gov", "state.pa.us")


class OpsMemoParser(BaseParser):
    """
    Operations memoranda and policy clarification listings.

    Memo titles start with a number such as ``25-06-01`` (year, month,
    sequence); the number becomes the description and its year/month the date.
    """
    allowed_domains = STATE_DOMAINS

    def rules(self) -> List[ExtractionRule]:
        return [self.document_links, self.table_rows]

    def _memo_item(self, anchor: Tag) -> ScrapedItem:
        title = anchor_title(anchor) or ""
        memo_number = data_cleaner.extract_memo_number(title)
        item_date = data_cleaner.memo_number_to_date(memo_number) or \
            data_cleaner.find_date_in_text(enclosing_text(anchor))
        return ScrapedItem(title=title, url=anchor["href"], description=memo_number, date=item_date)

    def document_links(self, soup: BeautifulSoup, base_url: str) -> List[ScrapedItem]:
        return [self._memo_item(a) for a in find_anchors(soup, href_pattern=DOCUMENT_LINK_PATTERN)]

    def table_rows(self, soup: BeautifulSoup, base_url: str) -> List[ScrapedItem]:
        items = []
        for row in soup.find_all("tr"):
            anchor = row.find("a", href=True)
            if anchor is not None:
                items.append(self._memo_item(anchor))
        return items

    def sort_key(self, item: ScrapedItem) -> Tuple:
        # Newest first; undated items after dated ones, by title
        if item.date is not None:
            return (0, -item.date.toordinal(), item.title.lower(), item.url)
        return (1, 0, item.title.lower(), item.url)


class HandbookParser(BaseParser):
    """Numbered handbook tables of contents (e.g. ``403.1 Definitions``)."""
    navigation_terms = ("home", "back", "index", "contents", "top", "table of contents", "toc")
    allowed_domains = STATE_DOMAINS

    def rules(self) -> List[ExtractionRule]:
        return [self.chapter_links]

    def chapter_links(self, soup: BeautifulSoup, base_url: str) -> List[ScrapedItem]:
        items = []
        for anchor in find_anchors(soup, href_pattern=HANDBOOK_LINK_PATTERN):
            title = anchor_title(anchor) or ""
            items.append(ScrapedItem(
                title=title,
                url=anchor["href"],
                description=data_cleaner.extract_handbook_section(title),
            ))
        return items

    def sort_key(self, item: ScrapedItem) -> Tuple:
        section = data_cleaner.section_sort_key(item.description)
        return (0 if section else 1, section, item.title.lower(), item.url)
