# src/source_monitor/main.py
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Tuple

from .constants import IngestionStatus, PRIMARY_SOURCE_AUTHORITY
from .exceptions import IngestionError, MonitorException
from .ingestion import IngestionPipeline
from .registry import ScraperRegistry
from .scheduling import is_due
from .storage.database import MonitorRepository
from .storage.models import SourceMonitor
from .utils.hash import short_hash
from .types import (
    ChangeDetection, Config, RunOptions, RunReport, ScrapeOutcome, ScrapedItem, ScraperResult, SourceRunResult,
)

logger = logging.getLogger(__name__)


class SourceMonitorService:
    """
    Runs due source monitors: scrape, compare with the last known state,
    persist, log the change and hand new items to ingestion.

    Fetching may be spread over a bounded thread pool; everything that writes
    (monitor status, change log, ingestion) happens on the calling thread, one
    monitor at a time, in source_name order.
    """

    def __init__(self, repository: MonitorRepository, registry: ScraperRegistry,
                 ingestion: Optional[IngestionPipeline] = None, config: Optional[Config] = None):
        self.repository = repository
        self.registry = registry
        self.ingestion = ingestion
        self.monitoring_config = (config or {}).get("monitoring", {}) or {}
        self.max_workers = max(1, int(self.monitoring_config.get("max_workers", 1)))
        self.stop_event = threading.Event()

    def request_stop(self):
        """Asks a running `run` to stop before the next monitor."""
        logger.info("Stop requested; the current monitor will finish first.")
        self.stop_event.set()

    # --- queries passed through for the CLI ---

    def get_monitors(self, frequency=None) -> List[SourceMonitor]:
        return self.repository.get_monitors(frequency=frequency)

    def is_due(self, monitor: SourceMonitor, now: Optional[datetime] = None) -> bool:
        return is_due(monitor, now)

    # --- checking ---

    @staticmethod
    def previous_result(monitor: SourceMonitor) -> Optional[ScraperResult]:
        """
        Rebuilds the last scrape from stored state. Without a stored URL list the
        previous items are unknown (None), which limits classification to
        content_modified.
        """
        if monitor.last_content_hash is None:
            return None
        items = None
        if monitor.last_item_urls is not None:
            items = [ScrapedItem(title="", url=url) for url in monitor.last_item_urls]
        return ScraperResult(content_hash=monitor.last_content_hash, items=items)

    def check_source(self, monitor: SourceMonitor) -> ScrapeOutcome:
        """Scrapes one monitor and compares against its stored state. Never raises; nothing is persisted."""
        try:
            scraper = self.registry.get_scraper(monitor.source_type, monitor.filter_keywords)
            result = scraper.scrape(monitor.source_url)
            detection = scraper.detect_changes(self.previous_result(monitor), result)
            return ScrapeOutcome(result=result, change_detection=detection)
        except MonitorException as e:
            logger.error(f"Check failed for '{monitor.source_name}': {e}")
            return ScrapeOutcome(error=str(e), error_type=type(e).__name__)
        except Exception as e:
            logger.exception(f"Unexpected error checking '{monitor.source_name}': {e}")
            return ScrapeOutcome(error=f"{type(e).__name__}: {e}", error_type=type(e).__name__)

    def _outcomes(self, monitors: List[SourceMonitor]) -> Iterator[Tuple[SourceMonitor, ScrapeOutcome]]:
        if self.max_workers == 1 or len(monitors) <= 1:
            for monitor in monitors:
                if self.stop_event.is_set():
                    return
                yield monitor, self.check_source(monitor)
            return

        logger.info(f"Fetching {len(monitors)} source(s) with up to {self.max_workers} worker(s).")
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="monitor-fetch") as executor:
            futures = [executor.submit(self.check_source, monitor) for monitor in monitors]
            for monitor, future in zip(monitors, futures):
                if self.stop_event.is_set():
                    for pending in futures:
                        pending.cancel()
                    return
                yield monitor, future.result()

    def run(self, options: Optional[RunOptions] = None) -> RunReport:
        options = options or RunOptions()
        self.stop_event.clear()
        report = RunReport(started_at=datetime.now(timezone.utc))

        monitors = self.repository.get_monitors(frequency=options.frequency, source_name=options.source_name)
        logger.info(
            f"Monitor run starting: {len(monitors)} active monitor(s)"
            f"{' (forced)' if options.force else ''}{' (dry run)' if options.dry_run else ''}."
        )

        now = datetime.now(timezone.utc)
        due: List[SourceMonitor] = []
        results = {}
        for monitor in monitors:
            if is_due(monitor, now, force=options.force):
                due.append(monitor)
            else:
                logger.debug(f"'{monitor.source_name}' is not due; skipping.")
                results[monitor.id] = SourceRunResult(source_name=monitor.source_name, source_url=monitor.source_url)

        for monitor, outcome in self._outcomes(due):
            results[monitor.id] = self._process(monitor, outcome, options)

        if len(results) < len(monitors):
            report.cancelled = True
            logger.warning(f"Monitor run cancelled after {len(results)} of {len(monitors)} monitor(s).")

        for monitor in monitors:
            detail = results.get(monitor.id)
            if detail is None:
                continue
            report.details.append(detail)
            report.sources_checked += int(detail.checked)
            report.changes_detected += int(detail.has_changes)
            report.ingestions_succeeded += int(detail.ingestion_status == IngestionStatus.SUCCESS)
            report.ingestions_failed += int(detail.ingestion_status == IngestionStatus.FAILED)

        report.completed_at = datetime.now(timezone.utc)
        logger.info(
            f"Monitor run complete: {report.sources_checked} checked, {report.changes_detected} changed, "
            f"{report.ingestions_succeeded} ingested, {report.ingestions_failed} ingestion failure(s)."
        )
        return report

    def _process(self, monitor: SourceMonitor, outcome: ScrapeOutcome, options: RunOptions) -> SourceRunResult:
        detail = SourceRunResult(source_name=monitor.source_name, source_url=monitor.source_url)
        if not outcome.ok:
            detail.error = outcome.error
            return detail

        result, detection = outcome.result, outcome.change_detection
        try:
            # Status and the pending change log row are written together
            change_id = self.repository.record_check(
                monitor.id, detection, item_urls=[item.url for item in result.items or []])
        except MonitorException as e:
            logger.error(f"Could not record check for '{monitor.source_name}': {e}")
            detail.error = str(e)
            return detail

        detail.checked = True
        detail.has_changes = detection.has_changes
        detail.change_detection = detection
        if not detection.has_changes:
            logger.info(f"'{monitor.source_name}': no changes.")
            return detail

        logger.info(
            f"'{monitor.source_name}': {detection.summary} "
            f"({short_hash(detection.previous_hash)} -> {short_hash(detection.new_hash)})"
        )
        status, ingested, error = self._ingest(monitor, detection, options)
        detail.ingestion_status = status
        detail.ingested = ingested

        try:
            self.repository.update_change_ingestion(change_id, status, auto_ingested=ingested, ingestion_error=error)
        except MonitorException as e:
            logger.error(f"Could not store ingestion outcome for '{monitor.source_name}' (change {change_id}): {e}")
            detail.error = str(e)
        return detail

    def _ingest(self, monitor: SourceMonitor, detection: ChangeDetection,
                options: RunOptions) -> Tuple[IngestionStatus, bool, Optional[str]]:
        """Returns (status, whether ingestion was invoked, error text)."""
        if options.dry_run:
            return IngestionStatus.PENDING, False, None
        if not monitor.auto_ingest:
            return IngestionStatus.SKIPPED, False, None
        if self.ingestion is None:
            logger.warning(f"No ingestion pipeline configured; changes for '{monitor.source_name}' were not ingested.")
            return IngestionStatus.SKIPPED, False, None
        if not detection.new_items:
            return IngestionStatus.SKIPPED, False, None

        classification = self.registry.classify(monitor.source_type)
        try:
            stats = self.ingestion.ingest_scraped_items(
                detection.new_items,
                classification.document_type,
                PRIMARY_SOURCE_AUTHORITY,
                classification.legal_weight.value,
            )
        except IngestionError as e:
            logger.error(f"Ingestion failed for '{monitor.source_name}': {e}")
            return IngestionStatus.FAILED, True, str(e)
        except Exception as e:
            logger.exception(f"Unexpected ingestion error for '{monitor.source_name}': {e}")
            return IngestionStatus.FAILED, True, f"{type(e).__name__}: {e}"

        if stats.errors:
            error_text = "; ".join(stats.errors)
            logger.error(f"Ingestion reported {len(stats.errors)} error(s) for '{monitor.source_name}': {error_text}")
            return IngestionStatus.FAILED, True, error_text

        logger.info(
            f"Ingested {stats.documents_processed} document(s) from '{monitor.source_name}' "
            f"({stats.documents_skipped} skipped, {stats.chunks_created} chunk(s))."
        )
        return IngestionStatus.SUCCESS, True, None
