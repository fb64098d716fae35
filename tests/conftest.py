# tests/conftest.py
from datetime import datetime, timedelta, timezone

import pytest

from source_monitor.extractors.request_manager import FetchedPage
from source_monitor.registry import ScraperRegistry
from source_monitor.storage.database import MonitorRepository


class FakeRequestManager:
    """Serves canned pages by URL. An Exception value is raised instead; a callable is called."""

    def __init__(self):
        self.pages = {}
        self.calls = []

    def fetch(self, url):
        self.calls.append(url)
        page = self.pages[url]
        if isinstance(page, Exception):
            raise page
        if callable(page):
            page = page(url)
        return FetchedPage(url=url, content=page, raw=page.encode("utf-8"), status=200,
                           content_type="text/html; charset=utf-8")

    def close(self):
        pass


@pytest.fixture
def fake_http():
    return FakeRequestManager()


@pytest.fixture
def registry(fake_http):
    return ScraperRegistry(fake_http)


@pytest.fixture
def repository(tmp_path):
    repo = MonitorRepository(str(tmp_path / "monitors.db"))
    yield repo
    repo.close_connection()


@pytest.fixture
def add_monitor(repository):
    """Adds a monitor and returns it as stored."""
    def _add(name, url, source_type="dhs_page", frequency="weekly", **extra):
        repository.add_monitor(dict(
            source_name=name,
            source_url=url,
            source_type=source_type,
            check_frequency=frequency,
            **extra
        ))
        return repository.get_monitor_by_name(name)
    return _add


@pytest.fixture
def now():
    return datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def hours_ago(reference, hours):
    return reference - timedelta(hours=hours)


def links_page(*links):
    """HTML page with one <li><a> per (href, text) pair."""
    items = "\n".join(f'<li><a href="{href}">{text}</a></li>' for href, text in links)
    return f"<html><body><ul>\n{items}\n</ul></body></html>"
