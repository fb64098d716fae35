# src/source_monitor/scraper.py
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from .change_detection import detect_changes
from .constants import SourceType
from .exceptions import ParseError
from .extractors.request_manager import RequestManager
from .parsers.base_parser import BaseParser
from .types import ChangeDetection, ScrapeMetadata, ScrapedItem, ScraperResult
from .utils.hash import generate_content_hash

logger = logging.getLogger(__name__)


def filter_by_keywords(items: List[ScrapedItem], keywords: Optional[Sequence[str]]) -> List[ScrapedItem]:
    """Keeps items whose title contains at least one keyword (case-insensitive). No keywords, no filtering."""
    lowered = [k.strip().lower() for k in (keywords or []) if k and k.strip()]
    if not lowered:
        return list(items)
    return [item for item in items if any(k in item.title.lower() for k in lowered)]


class Scraper:
    """
    Fetches one source page, extracts its items with the variant's parser,
    hashes the raw bytes and applies keyword filtering.
    """

    def __init__(self, source_type: SourceType, parser: BaseParser, request_manager: RequestManager,
                 filter_keywords: Optional[Sequence[str]] = None,
                 default_keywords: Optional[Sequence[str]] = None):
        self.source_type = source_type
        self.parser = parser
        self.request_manager = request_manager
        self.filter_keywords = list(filter_keywords or default_keywords or [])

    def extract_items(self, content: str, source_url: str) -> List[ScrapedItem]:
        try:
            return self.parser.parse(content, source_url)
        except Exception as e:
            logger.error(f"Extraction failed for {source_url} ({self.source_type.value}): {e}")
            raise ParseError(f"Could not extract items from {source_url}: {e}", url=source_url) from e

    def scrape(self, url: str) -> ScraperResult:
        """Raises FetchError when the page cannot be fetched, ParseError when extraction throws."""
        page = self.request_manager.fetch(url)
        all_items = self.extract_items(page.content, url)
        items = filter_by_keywords(all_items, self.filter_keywords)

        logger.info(
            f"Scraped {url} as {self.source_type.value}: {len(all_items)} item(s) extracted, "
            f"{len(items)} after keyword filtering"
        )
        return ScraperResult(
            content_hash=generate_content_hash(page.raw),
            content=page.content,
            items=items,
            metadata=ScrapeMetadata(
                scraped_at=datetime.now(timezone.utc),
                source_url=url,
                item_count=len(items),
                http_status=page.status,
                content_type=page.content_type,
            ),
        )

    @staticmethod
    def detect_changes(previous: Optional[ScraperResult], current: ScraperResult) -> ChangeDetection:
        return detect_changes(previous, current)
