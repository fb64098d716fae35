# src/source_monitor/parsers/chc_parser.py
import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup

from .base_parser import BaseParser, ExtractionRule, PDF_LINK_PATTERN, anchor_title, find_anchors
from ..constants import CHC_PARTNER_DOMAINS
from ..types import ScrapedItem

logger = logging.getLogger(__name__)

DHS_PAGE_LINK_PATTERN = re.compile(r"^(?:/agencies/dhs|https?://(?:www\.)?pa\.gov/agencies/dhs)", re.IGNORECASE)
CONTENT_CLASS_PATTERN = re.compile(r"card|link|document|resource", re.IGNORECASE)
MEMBER_DOCUMENT_TEXT_PATTERN = re.compile(r"handbook|guide|member", re.IGNORECASE)

MCO_URL_MARKERS = (
    ("upmc", "UPMC"),
    ("amerihealth", "AmeriHealth Caritas"),
    ("pahealthwellness", "PA Health & Wellness"),
)


def classify_publication(title: str) -> Optional[str]:
    """Coarse document kind for a CHC publication title."""
    lowered = title.lower()
    if "handbook" in lowered or "member guide" in lowered:
        return "Handbook"
    if "fair hearing" in lowered or "appeal" in lowered:
        return "Fair Hearing"
    if "grievance" in lowered:
        return "Grievance"
    if "contact" in lowered or "phone" in lowered:
        return "Contact Info"
    if "service" in lowered and "coordinator" in lowered:
        return "Service Coordinator"
    return None


def detect_mco(url: str) -> Optional[str]:
    lowered = url.lower()
    for marker, name in MCO_URL_MARKERS:
        if marker in lowered:
            return name
    return None


class PublicationsParser(BaseParser):
    """Community HealthChoices publication hubs on pa.gov."""
    navigation_terms = (
        "home", "back", "next", "previous", "top", "menu", "navigation",
        "main content", "footer", "contact", "contact us", "sign in", "login", "register",
    )
    allowed_domains = ("pa.gov",) + tuple(CHC_PARTNER_DOMAINS)

    def rules(self) -> List[ExtractionRule]:
        return [self.pdf_links, self.dhs_page_links, self.content_links]

    def _items(self, anchors) -> List[ScrapedItem]:
        items = []
        for anchor in anchors:
            title = anchor_title(anchor) or ""
            items.append(ScrapedItem(title=title, url=anchor["href"], description=classify_publication(title)))
        return items

    def pdf_links(self, soup: BeautifulSoup, base_url: str) -> List[ScrapedItem]:
        return self._items(find_anchors(soup, href_pattern=PDF_LINK_PATTERN))

    def dhs_page_links(self, soup: BeautifulSoup, base_url: str) -> List[ScrapedItem]:
        return self._items(find_anchors(soup, href_pattern=DHS_PAGE_LINK_PATTERN))

    def content_links(self, soup: BeautifulSoup, base_url: str) -> List[ScrapedItem]:
        return self._items(find_anchors(soup, class_pattern=CONTENT_CLASS_PATTERN))


class MCOHandbookParser(BaseParser):
    """Member handbook pages published by the CHC managed care organizations."""
    navigation_terms = ("home", "back", "menu", "navigation", "login", "sign in")
    allowed_domains = tuple(CHC_PARTNER_DOMAINS)

    def __init__(self, mco_name: Optional[str] = None):
        self.mco_name = mco_name

    def rules(self) -> List[ExtractionRule]:
        return [self.pdf_links, self.member_document_links]

    def _items(self, anchors, base_url: str) -> List[ScrapedItem]:
        mco = detect_mco(base_url) or self.mco_name
        return [ScrapedItem(title=anchor_title(a) or "", url=a["href"], description=mco) for a in anchors]

    def pdf_links(self, soup: BeautifulSoup, base_url: str) -> List[ScrapedItem]:
        return self._items(find_anchors(soup, href_pattern=PDF_LINK_PATTERN), base_url)

    def member_document_links(self, soup: BeautifulSoup, base_url: str) -> List[ScrapedItem]:
        return self._items(find_anchors(soup, text_pattern=MEMBER_DOCUMENT_TEXT_PATTERN), base_url)
