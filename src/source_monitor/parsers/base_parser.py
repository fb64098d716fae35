# src/source_monitor/parsers/base_parser.py
import logging
import re
from abc import ABC, abstractmethod
from pathlib import PurePosixPath
from typing import Callable, List, Optional, Pattern, Sequence, Tuple
from urllib.parse import urldefrag, urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from ..types import ScrapedItem
from . import data_cleaner

logger = logging.getLogger(__name__)

# A rule reads the parsed page and returns candidate items. Candidate urls are the
# hrefs as written in the page; BaseParser.parse resolves them.
ExtractionRule = Callable[[BeautifulSoup, str], List[ScrapedItem]]

DEFAULT_NAVIGATION_TERMS = (
    "home", "back", "next", "previous", "top", "index", "menu", "navigation",
    "login", "log in", "sign in", "table of contents", "toc",
)
NAVIGATION_PREFIXES = ("back to", "return to", "skip to", "go to")
NON_DOCUMENT_SCHEMES = ("#", "javascript:", "mailto:", "tel:")

DOCUMENT_LINK_PATTERN = re.compile(r"\.(?:html?|pdf)(?:$|[?#])", re.IGNORECASE)
PDF_LINK_PATTERN = re.compile(r"\.pdf(?:$|[?#])", re.IGNORECASE)


def _normalize_host(netloc: str) -> str:
    host = netloc.lower().split("@")[-1].split(":")[0]
    return host[4:] if host.startswith("www.") else host


def host_matches(host: str, domain: str) -> bool:
    """`domain` with a dot must match the host or a parent of it; a bare word is a substring match."""
    host = _normalize_host(host)
    domain = domain.lower()
    if "." in domain:
        return host == domain or host.endswith("." + domain)
    return domain in host


def anchor_title(anchor: Tag) -> Optional[str]:
    return data_cleaner.clean_text(anchor.get_text(" "))


def find_anchors(soup, href_pattern: Optional[Pattern] = None,
                 text_pattern: Optional[Pattern] = None,
                 class_pattern: Optional[Pattern] = None) -> List[Tag]:
    """All <a href> tags under `soup` matching every pattern that is given."""
    anchors = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if href_pattern is not None and not href_pattern.search(href):
            continue
        if text_pattern is not None and not text_pattern.search(anchor.get_text(" ")):
            continue
        if class_pattern is not None and not class_pattern.search(" ".join(anchor.get("class", []))):
            continue
        anchors.append(anchor)
    return anchors


def enclosing_text(anchor: Tag, names: Sequence[str] = ("tr", "li", "p", "dd", "div")) -> str:
    """Text of the closest block around an anchor, used to find nearby dates."""
    block = anchor.find_parent(list(names))
    return (block or anchor).get_text(" ")


class BaseParser(ABC):
    """
    Turns a fetched page into a normalized, ordered item list.

    Subclasses supply the ordered extraction rules and a sort key; the pipeline
    (run rules, drop navigation chrome, dedupe by resolved URL keeping the
    first occurrence, sort) is shared.
    """
    navigation_terms: Sequence[str] = DEFAULT_NAVIGATION_TERMS
    # External hosts permitted besides the page's own host
    allowed_domains: Sequence[str] = ()

    @abstractmethod
    def rules(self) -> List[ExtractionRule]:
        """Ordered extraction rules for this page shape."""
        pass

    def sort_key(self, item: ScrapedItem) -> Tuple:
        return (item.title.lower(), item.url)

    def parse(self, html_content: str, source_url: str) -> List[ScrapedItem]:
        soup = BeautifulSoup(html_content or "", "lxml")

        candidates: List[ScrapedItem] = []
        for rule in self.rules():
            found = rule(soup, source_url)
            logger.debug(f"{type(self).__name__}: rule '{getattr(rule, '__name__', rule)}' found {len(found)} candidate(s)")
            candidates.extend(found)

        items: List[ScrapedItem] = []
        seen_urls = set()
        for candidate in candidates:
            if not candidate.title or self.is_navigation_link(candidate.url, candidate.title, source_url):
                continue
            resolved = self.resolve_url(candidate.url, source_url)
            if resolved in seen_urls:
                continue
            seen_urls.add(resolved)
            items.append(candidate.model_copy(update={"url": resolved}))

        items.sort(key=self.sort_key)
        logger.debug(f"{type(self).__name__}: {len(candidates)} candidate(s) -> {len(items)} item(s) for {source_url}")
        return items

    @staticmethod
    def resolve_url(href: str, base_url: str) -> str:
        absolute, _fragment = urldefrag(urljoin(base_url, href.strip()))
        return absolute

    def is_navigation_link(self, href: str, title: str, base_url: str) -> bool:
        lowered_title = (data_cleaner.clean_text(title) or "").lower()
        if lowered_title in self.navigation_terms or lowered_title.startswith(NAVIGATION_PREFIXES):
            return True

        lowered_href = (href or "").strip().lower()
        if not lowered_href or lowered_href.startswith(NON_DOCUMENT_SCHEMES):
            return True

        parsed = urlparse(urljoin(base_url, href.strip()))
        if parsed.scheme not in ("http", "https"):
            return True
        if PurePosixPath(parsed.path).stem.lower() in self.navigation_terms:
            return True
        return self.is_external(parsed.netloc, base_url)

    def is_external(self, netloc: str, base_url: str) -> bool:
        base_host = _normalize_host(urlparse(base_url).netloc)
        host = _normalize_host(netloc)
        if not host or host == base_host or host.endswith("." + base_host):
            return False
        return not any(host_matches(host, domain) for domain in self.allowed_domains)
