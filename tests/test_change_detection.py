# tests/test_change_detection.py
from source_monitor.change_detection import detect_changes
from source_monitor.constants import ChangeType
from source_monitor.types import ScrapedItem, ScraperResult


def result(content_hash, *urls):
    return ScraperResult(
        content_hash=content_hash,
        items=[ScrapedItem(title=url.rsplit("/", 1)[-1], url=url) for url in urls],
    )


A = "https://example.gov/a.pdf"
B = "https://example.gov/b.pdf"
C = "https://example.gov/c.pdf"


def test_first_scrape_reports_every_item_as_new():
    detection = detect_changes(None, result("h1", A, B))

    assert detection.has_changes
    assert detection.change_type == ChangeType.CONTENT_MODIFIED
    assert [item.url for item in detection.new_items] == [A, B]
    assert detection.previous_hash is None
    assert detection.new_hash == "h1"
    assert "Initial scrape" in detection.summary


def test_same_hash_is_no_change_even_if_items_differ():
    detection = detect_changes(result("h1", A), result("h1", A, B))

    assert not detection.has_changes
    assert detection.change_type == ChangeType.NO_CHANGE
    assert detection.new_items == []
    assert detection.removed_items == []


def test_only_additions():
    detection = detect_changes(result("h1", A), result("h2", A, B, C))

    assert detection.change_type == ChangeType.ITEMS_ADDED
    assert [item.url for item in detection.new_items] == [B, C]
    assert detection.summary == "2 new items"


def test_only_removals():
    detection = detect_changes(result("h1", A, B), result("h2", A))

    assert detection.change_type == ChangeType.ITEMS_REMOVED
    assert [item.url for item in detection.removed_items] == [B]
    assert detection.summary == "1 removed item"


def test_churn_is_content_modified_with_both_lists():
    detection = detect_changes(result("h1", A, B), result("h2", A, C))

    assert detection.has_changes
    assert detection.change_type == ChangeType.CONTENT_MODIFIED
    assert [item.url for item in detection.new_items] == [C]
    assert [item.url for item in detection.removed_items] == [B]


def test_edit_without_url_changes_is_content_modified():
    detection = detect_changes(result("h1", A, B), result("h2", A, B))

    assert detection.change_type == ChangeType.CONTENT_MODIFIED
    assert detection.summary == "Content was modified"
    assert detection.new_items == []


def test_unknown_previous_items_cannot_be_diffed():
    previous = ScraperResult(content_hash="h1", items=None)
    detection = detect_changes(previous, result("h2", A))

    assert detection.change_type == ChangeType.CONTENT_MODIFIED
    assert detection.new_items == []
    assert "previous item list unavailable" in detection.summary


def test_titles_do_not_matter_only_urls():
    previous = ScraperResult(content_hash="h1", items=[ScrapedItem(title="", url=A)])
    current = ScraperResult(content_hash="h2", items=[ScrapedItem(title="Renamed", url=A)])

    assert detect_changes(previous, current).change_type == ChangeType.CONTENT_MODIFIED
