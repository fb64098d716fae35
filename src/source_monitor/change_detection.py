# src/source_monitor/change_detection.py
import logging
from typing import List, Optional

from .constants import ChangeType
from .types import ChangeDetection, ScrapedItem, ScraperResult

logger = logging.getLogger(__name__)


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def detect_changes(previous: Optional[ScraperResult], current: ScraperResult) -> ChangeDetection:
    """
    Classifies the difference between the previous and the current scrape.

    - no previous result: content_modified, every current item is new
    - identical hashes: no_change
    - only URLs added: items_added; only URLs removed: items_removed
    - anything else (churn, in-place edits, unknown previous items): content_modified

    For churn both ``new_items`` and ``removed_items`` are still filled in so
    the counts survive into the change log.
    """
    current_items = current.items or []

    if previous is None:
        return ChangeDetection(
            has_changes=True,
            change_type=ChangeType.CONTENT_MODIFIED,
            new_items=list(current_items),
            removed_items=[],
            previous_hash=None,
            new_hash=current.content_hash,
            summary=f"Initial scrape: {_plural(len(current_items), 'item')} found, no previous content to compare",
        )

    if previous.content_hash == current.content_hash:
        return ChangeDetection(
            has_changes=False,
            change_type=ChangeType.NO_CHANGE,
            previous_hash=previous.content_hash,
            new_hash=current.content_hash,
            summary="No changes detected",
        )

    if previous.items is None:
        # Only a hash is known for the last check; item-level diff is impossible
        return ChangeDetection(
            has_changes=True,
            change_type=ChangeType.CONTENT_MODIFIED,
            previous_hash=previous.content_hash,
            new_hash=current.content_hash,
            summary="Content was modified (previous item list unavailable)",
        )

    previous_urls = {item.url for item in previous.items}
    current_urls = {item.url for item in current_items}
    new_items: List[ScrapedItem] = [item for item in current_items if item.url not in previous_urls]
    removed_items: List[ScrapedItem] = [item for item in previous.items if item.url not in current_urls]

    if new_items and not removed_items:
        change_type = ChangeType.ITEMS_ADDED
        summary = _plural(len(new_items), "new item")
    elif removed_items and not new_items:
        change_type = ChangeType.ITEMS_REMOVED
        summary = _plural(len(removed_items), "removed item")
    elif new_items and removed_items:
        change_type = ChangeType.CONTENT_MODIFIED
        summary = f"Content modified: {_plural(len(new_items), 'new item')}, {_plural(len(removed_items), 'removed item')}"
    else:
        change_type = ChangeType.CONTENT_MODIFIED
        summary = "Content was modified"

    return ChangeDetection(
        has_changes=True,
        change_type=change_type,
        new_items=new_items,
        removed_items=removed_items,
        previous_hash=previous.content_hash,
        new_hash=current.content_hash,
        summary=summary,
    )
