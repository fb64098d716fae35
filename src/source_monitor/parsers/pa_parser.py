# src/source_monitor/parsers/pa_parser.py
import logging
import re
from typing import List, Tuple

from bs4 import BeautifulSoup

from .base_parser import BaseParser, ExtractionRule, anchor_title, enclosing_text, find_anchors
from ..types import ScrapedItem
from . import data_cleaner

logger = logging.getLogger(__name__)

BULLETIN_LINK_PATTERN = re.compile(r"pabull|bulletin", re.IGNORECASE)
DHS_HEADING_PATTERN = re.compile(r"\b(?:Department of Human Services|DHS)\b")
CODE_SECTION_LINK_PATTERN = re.compile(r"s(\d+\.\d+)", re.IGNORECASE)

DHS_AGENCY = "Department of Human Services"


class BulletinParser(BaseParser):
    """
    PA Bulletin notice boards. Notices come as agency/notice table rows, as
    link lists under a DHS heading, or as plain bulletin links.
    """
    navigation_terms = (
        "home", "back", "next", "previous", "top", "index",
        "table of contents", "search", "subscribe", "about",
    )
    allowed_domains = ("pa.gov", "pacodeandbulletin.gov")

    def rules(self) -> List[ExtractionRule]:
        # Agency-qualified titles first so they win deduplication
        return [self.agency_rows, self.dhs_sections, self.notice_links]

    def agency_rows(self, soup: BeautifulSoup, base_url: str) -> List[ScrapedItem]:
        items = []
        for row in soup.find_all("tr"):
            cells = row.find_all("td")
            if len(cells) < 2 or cells[0].find("a"):
                continue
            agency = data_cleaner.clean_text(cells[0].get_text(" "))
            anchor = next((c.find("a", href=True) for c in cells[1:] if c.find("a", href=True)), None)
            if not agency or anchor is None:
                continue
            title = anchor_title(anchor) or ""
            items.append(ScrapedItem(
                title=f"{agency}: {title}",
                url=anchor["href"],
                description=agency,
                date=data_cleaner.find_date_in_text(row.get_text(" ")),
            ))
        return items

    def dhs_sections(self, soup: BeautifulSoup, base_url: str) -> List[ScrapedItem]:
        items = []
        visited = set()
        for heading in soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6", "strong", "b", "p", "dt"]):
            if not DHS_HEADING_PATTERN.search(heading.get_text(" ")):
                continue
            container = heading.parent if heading.name in ("strong", "b") and heading.parent is not None else heading
            link_list = container.find_next_sibling("ul")
            if link_list is None or id(link_list) in visited:
                continue
            visited.add(id(link_list))
            for anchor in find_anchors(link_list):
                title = anchor_title(anchor) or ""
                items.append(ScrapedItem(
                    title=f"DHS: {title}",
                    url=anchor["href"],
                    description=DHS_AGENCY,
                    date=data_cleaner.find_date_in_text(enclosing_text(anchor, ("li",))),
                ))
        return items

    def notice_links(self, soup: BeautifulSoup, base_url: str) -> List[ScrapedItem]:
        items = []
        for anchor in find_anchors(soup, href_pattern=BULLETIN_LINK_PATTERN):
            title = anchor_title(anchor) or ""
            items.append(ScrapedItem(
                title=title,
                url=anchor["href"],
                description=data_cleaner.extract_bulletin_citation(title),
                date=data_cleaner.find_date_in_text(enclosing_text(anchor)) or data_cleaner.find_date_in_text(title),
            ))
        return items

    def sort_key(self, item: ScrapedItem) -> Tuple:
        if item.date is not None:
            return (0, -item.date.toordinal(), item.title.lower(), item.url)
        return (1, 0, item.title.lower(), item.url)


class CodeParser(BaseParser):
    """PA Code chapter tables of contents: one link per ``§ 258.1`` style section."""
    allowed_domains = ("pacodeandbulletin.gov",)

    def rules(self) -> List[ExtractionRule]:
        return [self.section_links]

    def section_links(self, soup: BeautifulSoup, base_url: str) -> List[ScrapedItem]:
        items = []
        for anchor in find_anchors(soup, href_pattern=CODE_SECTION_LINK_PATTERN):
            title = anchor_title(anchor) or ""
            section = data_cleaner.extract_code_section(title)
            if section is None:
                section = CODE_SECTION_LINK_PATTERN.search(anchor["href"]).group(1)
            items.append(ScrapedItem(title=title, url=anchor["href"], description=section))
        return items

    def sort_key(self, item: ScrapedItem) -> Tuple:
        section = data_cleaner.section_sort_key(item.description)
        return (0 if section else 1, section, item.title.lower(), item.url)
