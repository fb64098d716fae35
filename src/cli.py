# src/cli.py
import argparse
import logging
import signal
from typing import List, Optional

from source_monitor.config import load_config
from source_monitor.constants import CheckFrequency, SourceType
from source_monitor.exceptions import ConfigurationError, MonitorException
from source_monitor.extractors.request_manager import RequestManager
from source_monitor.main import SourceMonitorService
from source_monitor.registry import ScraperRegistry
from source_monitor.storage.database import MonitorRepository
from source_monitor.types import RunOptions, RunReport
from source_monitor.utils.hash import short_hash
from source_monitor.utils.logging import setup_logging

cli_logger = logging.getLogger("cli")

RULE = "-" * 72
TEMP_LOG_CONFIG = {"level": "WARNING", "console": True, "format": "%(asctime)s [%(levelname)s] %(name)s - %(message)s"}


def _frequency(value: str) -> CheckFrequency:
    try:
        return CheckFrequency.from_string(value)
    except ConfigurationError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="source-monitor",
        description="Source monitor: watches government policy pages for changes and hands new items to ingestion.",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        help=(
            "Path to a YAML configuration file. \n"
            "Default: config/default.yaml, merged with '<env>.yaml' from the same directory."
        ),
    )
    parser.add_argument(
        "--env", "-e",
        type=str,
        default="development",
        help="Environment overrides to merge (e.g. 'development', 'production'). Default: 'development'.",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute", required=True)

    list_parser = subparsers.add_parser("list", help="List active source monitors.")
    list_parser.add_argument("--frequency", "-f", type=_frequency, help="Only monitors with this check frequency.")

    subparsers.add_parser("status", help="Show monitor counts by frequency.")

    changes_parser = subparsers.add_parser("changes", help="Show recently detected changes.")
    changes_parser.add_argument("--limit", "-n", type=int, default=20, help="Number of changes to show (default: 20).")

    check_parser = subparsers.add_parser("check", help="Check due sources for changes.")
    check_parser.add_argument("--frequency", "-f", type=_frequency, help="Only sources with this check frequency.")
    check_parser.add_argument("--source", "-s", type=str, help="Only the source with this name.")
    check_parser.add_argument("--force", action="store_true", help="Check even if not due.")
    check_parser.add_argument("--dry-run", action="store_true", help="Record changes but do not ingest.")

    test_parser = subparsers.add_parser("test-scrape", help="Scrape a URL and print the extracted items (nothing is saved).")
    test_parser.add_argument("url", type=str)
    test_parser.add_argument(
        "--type", "-t",
        dest="source_type",
        default=SourceType.OIM_OPS_MEMO.value,
        help="Source type, one of: " + ", ".join(t.value for t in SourceType) + " (default: oim_ops_memo).",
    )

    subparsers.add_parser("seed", help="Add the monitors listed under 'monitors:' in the configuration.")

    enable_parser = subparsers.add_parser("enable", help="Re-activate a monitor.")
    enable_parser.add_argument("name", type=str)
    disable_parser = subparsers.add_parser("disable", help="Deactivate a monitor without deleting it.")
    disable_parser.add_argument("name", type=str)

    subparsers.add_parser("db-health", help="Check database connectivity and schema.")
    return parser


def _format_ts(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M UTC") if value else "Never"


def print_run_report(report: RunReport):
    duration_ms = int(((report.completed_at or report.started_at) - report.started_at).total_seconds() * 1000)
    print(RULE)
    print("Results:")
    print(f"  Sources checked: {report.sources_checked}")
    print(f"  Changes detected: {report.changes_detected}")
    print(f"  Ingestions succeeded: {report.ingestions_succeeded}")
    print(f"  Ingestions failed: {report.ingestions_failed}")
    print(f"  Duration: {duration_ms}ms")
    if report.cancelled:
        print("  Run was cancelled before all sources were processed.")
    print(RULE)

    for detail in report.details:
        if detail.error:
            status = f"ERROR: {detail.error}"
        elif detail.has_changes:
            summary = detail.change_detection.summary if detail.change_detection else "detected"
            status = f"Changes: {summary} (ingestion: {detail.ingestion_status.value if detail.ingestion_status else 'n/a'})"
        elif detail.checked:
            status = "No changes"
        else:
            status = "Skipped (not due)"
        print(f"* {detail.source_name}")
        print(f"    {status}")

        new_items = detail.change_detection.new_items if detail.change_detection else []
        if new_items:
            print(f"    New items: {len(new_items)}")
            for item in new_items[:3]:
                print(f"      - {item.title}")
            if len(new_items) > 3:
                print(f"      ... and {len(new_items) - 3} more")


def cmd_list(service: SourceMonitorService, args: argparse.Namespace) -> int:
    monitors = service.get_monitors(frequency=args.frequency)
    print(RULE)
    if not monitors:
        print("No monitors found.")
    for monitor in monitors:
        print(f"{monitor.source_name}")
        print(f"    Type: {monitor.source_type.value}")
        print(f"    URL: {monitor.source_url}")
        print(f"    Frequency: {monitor.check_frequency.value}")
        print(f"    Last checked: {_format_ts(monitor.last_checked_at)}")
        print(f"    Status: {'Due' if service.is_due(monitor) else 'Current'}")
        if monitor.filter_keywords:
            print(f"    Filters: {', '.join(monitor.filter_keywords)}")
    print(RULE)
    return 0


def cmd_status(repository: MonitorRepository, args: argparse.Namespace) -> int:
    status = repository.get_status()
    print(RULE)
    print(f"Total monitors: {status.total_monitors}")
    print(f"Active monitors: {status.active_monitors}")
    print("By frequency:")
    for frequency in CheckFrequency:
        print(f"  {frequency.value.capitalize()}: {status.by_frequency.get(frequency.value, 0)}")
    print(RULE)
    return 0


def cmd_changes(repository: MonitorRepository, args: argparse.Namespace) -> int:
    changes = repository.get_recent_changes(args.limit)
    print(RULE)
    if not changes:
        print("No changes recorded.")
    for change in changes:
        print(f"[{change.ingestion_status.value}] {change.source_name}")
        print(f"    Date: {_format_ts(change.detected_at)}")
        print(f"    Summary: {change.change_summary}")
        print(f"    Items added: {change.items_added}, removed: {change.items_removed}")
        if change.ingestion_error:
            print(f"    Error: {change.ingestion_error}")
    print(RULE)
    return 0


def cmd_check(service: SourceMonitorService, args: argparse.Namespace) -> int:
    options = RunOptions(
        frequency=args.frequency,
        source_name=args.source,
        force=args.force,
        dry_run=args.dry_run,
    )
    previous_handler = signal.signal(signal.SIGTERM, lambda signum, frame: service.request_stop())
    try:
        report = service.run(options)
    finally:
        signal.signal(signal.SIGTERM, previous_handler)
    print_run_report(report)
    return 0


def cmd_test_scrape(registry: ScraperRegistry, args: argparse.Namespace) -> int:
    scraper = registry.get_scraper(args.source_type)
    print(f"Test scraping {args.url} as {scraper.source_type.value}")
    print(RULE)
    result = scraper.scrape(args.url)
    print(f"  Content hash: {short_hash(result.content_hash)}")
    print(f"  Content length: {len(result.content)} chars")
    print(f"  Items found: {len(result.items or [])}")
    print(f"  HTTP status: {result.metadata.http_status}")
    for item in (result.items or [])[:10]:
        print(f"  - {item.title}")
        print(f"    URL: {item.url}")
        if item.date:
            print(f"    Date: {item.date.isoformat()}")
    if len(result.items or []) > 10:
        print(f"  ... and {len(result.items) - 10} more items")
    print(RULE)
    return 0


def main_cli(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    try:
        args = build_parser().parse_args(argv)
    except SystemExit as e:
        # argparse exits 0 for --help and 2 for usage errors
        return 0 if not e.code else 1

    try:
        config = load_config(config_path=args.config, env=args.env)
        setup_logging(config.get("logging", TEMP_LOG_CONFIG))
    except ConfigurationError as e:
        setup_logging(TEMP_LOG_CONFIG)
        cli_logger.error(f"Configuration error: {e}")
        return 1

    cli_logger.debug(f"Running command '{args.command}' with arguments: {args}")

    request_manager: Optional[RequestManager] = None
    repository: Optional[MonitorRepository] = None
    try:
        request_manager = RequestManager(config)
        registry = ScraperRegistry(request_manager)
        if args.command == "test-scrape":
            return cmd_test_scrape(registry, args)

        db_path = (config.get("database") or {}).get("path")
        if not db_path:
            raise ConfigurationError("database.path is not configured.")
        repository = MonitorRepository(db_path, config=config)
        service = SourceMonitorService(repository, registry, ingestion=None, config=config)

        if args.command == "list":
            return cmd_list(service, args)
        if args.command == "status":
            return cmd_status(repository, args)
        if args.command == "changes":
            return cmd_changes(repository, args)
        if args.command == "check":
            return cmd_check(service, args)
        if args.command == "seed":
            added = repository.seed_monitors(config.get("monitors") or [])
            print(f"Seeded {added} new monitor(s).")
            return 0
        if args.command in ("enable", "disable"):
            if not repository.set_monitor_active(args.name, args.command == "enable"):
                print(f"No monitor named '{args.name}'.")
                return 1
            print(f"Monitor '{args.name}' {args.command}d.")
            return 0
        if args.command == "db-health":
            healthy = repository.health_check()
            print("Database health check: " + ("PASSED" if healthy else "FAILED"))
            return 0 if healthy else 1

        cli_logger.error(f"Unknown command: {args.command}")
        return 1

    except KeyboardInterrupt:
        cli_logger.info("Keyboard interrupt received. Shutting down.")
        return 130
    except MonitorException as e:
        cli_logger.error(f"{type(e).__name__}: {e}")
        print(f"Error: {e}")
        return 1
    except Exception as e:
        cli_logger.error(f"An unexpected error occurred: {e}", exc_info=True)
        print(f"Error: {e}")
        return 1
    finally:
        if repository:
            repository.close_connection()
        if request_manager:
            request_manager.close()


if __name__ == "__main__":
    raise SystemExit(main_cli())
