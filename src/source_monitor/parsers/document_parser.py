# src/source_monitor/parsers/document_parser.py
import re
from typing import List

from bs4 import BeautifulSoup

from .base_parser import BaseParser, ExtractionRule, anchor_title, find_anchors
from ..types import ScrapedItem

DOCUMENT_FILE_PATTERN = re.compile(r"\.(?:pdf|docx?|html?)(?:$|[?#])", re.IGNORECASE)


class DocumentLinkParser(BaseParser):
    """Generic hub page: every same-site link to a document, ordered by title."""

    def rules(self) -> List[ExtractionRule]:
        return [self.document_links]

    def document_links(self, soup: BeautifulSoup, base_url: str) -> List[ScrapedItem]:
        return [
            ScrapedItem(title=anchor_title(a) or "", url=a["href"])
            for a in find_anchors(soup, href_pattern=DOCUMENT_FILE_PATTERN)
        ]
