# src/source_monitor/storage/database.py
import json
import sqlite3
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Dict, Any, Iterable, Optional, Union

from pydantic import ValidationError

from .schema import SCHEMA_DEFINITIONS, INDICES, PRAGMAS, TRIGGERS
from .query_builder import SQLQueryBuilder
from .models import MonitorDefinition, MonitorStatus, SourceChangeLog, SourceMonitor
from ..constants import CheckFrequency, IngestionStatus
from ..types import ChangeDetection
from ..exceptions import ConfigurationError, DatabaseError

logger = logging.getLogger(__name__)

MONITOR_TIMESTAMP_COLUMNS = ("last_checked_at", "last_change_detected_at", "created_at", "updated_at")
MONITOR_JSON_COLUMNS = ("last_item_urls", "filter_keywords")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_db_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def from_db_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class MonitorRepository:
    """
    Stores source monitors and their change log in SQLite.
    The orchestrator is the only writer of a monitor's check state.
    """

    def __init__(self, db_path: str, config: Optional[Dict[str, Any]] = None):
        self.db_path = str(db_path)
        self.db_config = config.get("database", {}) if config else {}
        self._thread_local = threading.local()
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Gets a thread-local database connection, creating the schema on first use."""
        conn = getattr(self._thread_local, 'connection', None)
        if conn is None:
            try:
                logger.debug(f"Connecting to database: {self.db_path}")
                conn = sqlite3.connect(self.db_path, timeout=self.db_config.get("timeout", 5.0))
                conn.row_factory = sqlite3.Row
                self._apply_pragmas(conn)
                self._create_schema_if_needed(conn)
                self._thread_local.connection = conn
                logger.debug(f"New SQLite connection established for thread {threading.get_ident()}.")
            except sqlite3.Error as e:
                logger.error(f"Failed to connect to database {self.db_path}: {e}")
                raise DatabaseError(f"Database connection failed: {e}") from e
        return conn

    def close_connection(self):
        """Closes the thread-local database connection if it exists."""
        conn = getattr(self._thread_local, 'connection', None)
        if conn is not None:
            logger.debug(f"Closing SQLite connection for thread {threading.get_ident()}.")
            conn.close()
            self._thread_local.connection = None

    def _apply_pragmas(self, conn: sqlite3.Connection):
        if self.db_config.get("optimize", True):
            for pragma in PRAGMAS:
                try:
                    conn.execute(pragma)
                except sqlite3.Error as e:
                    logger.warning(f"Failed to execute PRAGMA {pragma}: {e}")
        else:
            conn.execute('PRAGMA foreign_keys=ON;')
        conn.commit()

    def _create_schema_if_needed(self, conn: sqlite3.Connection):
        """Creates tables, indices and triggers if they don't exist."""
        try:
            with conn:
                cursor = conn.cursor()
                for table_name, ddl_statement in SCHEMA_DEFINITIONS.items():
                    logger.debug(f"Ensuring table '{table_name}' exists...")
                    cursor.execute(ddl_statement)
                for index_statement in INDICES:
                    cursor.execute(index_statement)
                for trigger_name, trigger_ddl in TRIGGERS.items():
                    logger.debug(f"Ensuring trigger '{trigger_name}' exists...")
                    cursor.execute(trigger_ddl)
        except sqlite3.Error as e:
            logger.error(f"Error during schema creation: {e}")
            raise DatabaseError(f"Schema creation failed: {e}") from e

    def initialize(self):
        """Opens the connection for the calling thread, which creates the schema."""
        self._get_connection()

    def _execute(self, query: str, values: Iterable[Any] = ()) -> sqlite3.Cursor:
        conn = self._get_connection()
        try:
            with conn:
                return conn.execute(query, list(values))
        except sqlite3.Error as e:
            logger.error(f"Database error executing '{query.split()[0]}' statement: {e}")
            raise DatabaseError(f"Database operation failed: {e}") from e

    def _fetch_all(self, query: str, values: Iterable[Any] = ()) -> List[sqlite3.Row]:
        conn = self._get_connection()
        try:
            return conn.execute(query, list(values)).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Database error running query: {e}")
            raise DatabaseError(f"Database query failed: {e}") from e

    @staticmethod
    def _row_to_monitor(row: sqlite3.Row) -> SourceMonitor:
        data = dict(row)
        for column in MONITOR_TIMESTAMP_COLUMNS:
            data[column] = from_db_timestamp(data.get(column))
        for column in MONITOR_JSON_COLUMNS:
            raw = data.get(column)
            data[column] = json.loads(raw) if raw else None
        data["is_active"] = bool(data.get("is_active"))
        data["auto_ingest"] = bool(data.get("auto_ingest"))
        try:
            return SourceMonitor(**data)
        except ValidationError as e:
            raise DatabaseError(f"Invalid monitor row '{data.get('source_name')}': {e}") from e

    # --- source_monitors ---

    def add_monitor(self, definition: Union[MonitorDefinition, Dict[str, Any]]) -> Optional[str]:
        """Inserts a monitor. Returns its id, or None when a monitor with that name already exists."""
        if not isinstance(definition, MonitorDefinition):
            try:
                definition = MonitorDefinition(**definition)
            except ValidationError as e:
                raise ConfigurationError(f"Invalid monitor definition {definition!r}: {e}") from e

        monitor_id = uuid.uuid4().hex
        now = to_db_timestamp(utc_now())
        data = {
            "id": monitor_id,
            "source_name": definition.source_name,
            "source_url": definition.source_url,
            "source_type": definition.source_type.value,
            "check_frequency": definition.check_frequency.value,
            "is_active": int(definition.is_active),
            "auto_ingest": int(definition.auto_ingest),
            "filter_keywords": json.dumps(definition.filter_keywords) if definition.filter_keywords else None,
            "created_at": now,
            "updated_at": now,
        }
        query, values = SQLQueryBuilder.build_insert_on_conflict_do_nothing(
            "source_monitors", data, conflict_target_column="source_name")
        cursor = self._execute(query, values)
        if cursor.rowcount == 0:
            logger.debug(f"Monitor '{definition.source_name}' already exists; left unchanged.")
            return None
        logger.info(f"Added monitor '{definition.source_name}' ({definition.source_type.value}, {definition.check_frequency.value}).")
        return monitor_id

    def seed_monitors(self, definitions: Iterable[Union[MonitorDefinition, Dict[str, Any]]]) -> int:
        """Adds every definition not already present by name. Returns the number inserted."""
        return sum(1 for definition in definitions if self.add_monitor(definition) is not None)

    def get_monitors(self, frequency: Optional[Union[CheckFrequency, str]] = None,
                     source_name: Optional[str] = None, active_only: bool = True) -> List[SourceMonitor]:
        """Monitors ordered by source_name, optionally filtered."""
        conditions: Dict[str, Any] = {}
        if active_only:
            conditions["is_active"] = 1
        if frequency is not None:
            conditions["check_frequency"] = CheckFrequency.from_string(frequency).value
        if source_name is not None:
            conditions["source_name"] = source_name
        query, values = SQLQueryBuilder.build_select_query(
            "source_monitors", conditions=conditions or None, order_by="source_name")
        return [self._row_to_monitor(row) for row in self._fetch_all(query, values)]

    def get_monitor_by_name(self, name: str) -> Optional[SourceMonitor]:
        query, values = SQLQueryBuilder.build_select_query(
            "source_monitors", conditions={"source_name": name}, limit=1)
        rows = self._fetch_all(query, values)
        return self._row_to_monitor(rows[0]) if rows else None

    @staticmethod
    def _status_update_query(monitor_id: str, content_hash: str, changed: bool,
                             item_urls: Optional[List[str]], checked_at: datetime):
        now = to_db_timestamp(checked_at)
        data: Dict[str, Any] = {
            "last_checked_at": now,
            "last_content_hash": content_hash,
            "updated_at": now,
        }
        if changed:
            data["last_change_detected_at"] = now
        if item_urls is not None:
            data["last_item_urls"] = json.dumps(item_urls)
        return SQLQueryBuilder.build_update_query("source_monitors", data, {"id": monitor_id})

    def update_monitor_status(self, monitor_id: str, content_hash: str, changed: bool,
                              item_urls: Optional[List[str]] = None,
                              checked_at: Optional[datetime] = None) -> None:
        """
        Records a completed check: last_checked_at and last_content_hash always,
        last_change_detected_at only when `changed`. last_item_urls is replaced
        when `item_urls` is given.
        """
        query, values = self._status_update_query(
            monitor_id, content_hash, changed, item_urls, checked_at or utc_now())
        cursor = self._execute(query, values)
        if cursor.rowcount == 0:
            raise DatabaseError(f"No monitor with id {monitor_id}")
        logger.debug(f"Monitor {monitor_id} status updated (changed={changed}).")

    def record_check(self, monitor_id: str, detection: ChangeDetection,
                     item_urls: Optional[List[str]] = None,
                     checked_at: Optional[datetime] = None) -> Optional[str]:
        """
        Stores a completed check together with its change log row (ingestion
        pending) in one transaction, so a new hash is never saved without the
        change it represents. Returns the change log id, or None when nothing changed.
        """
        checked_at = checked_at or utc_now()
        update_query, update_values = self._status_update_query(
            monitor_id, detection.new_hash, detection.has_changes, item_urls, checked_at)
        change_id = None
        conn = self._get_connection()
        try:
            with conn:
                if conn.execute(update_query, list(update_values)).rowcount == 0:
                    raise DatabaseError(f"No monitor with id {monitor_id}")
                if detection.has_changes:
                    change_id = uuid.uuid4().hex
                    insert_query, insert_values = self._change_log_insert_query(
                        change_id, monitor_id,
                        previous_hash=detection.previous_hash,
                        new_hash=detection.new_hash,
                        change_summary=detection.summary,
                        items_added=len(detection.new_items),
                        items_removed=len(detection.removed_items),
                        auto_ingested=False,
                        ingestion_status=IngestionStatus.PENDING,
                        change_type=detection.change_type.value,
                        detected_at=checked_at,
                    )
                    conn.execute(insert_query, list(insert_values))
        except sqlite3.Error as e:
            logger.error(f"Database error recording check for monitor {monitor_id}: {e}")
            raise DatabaseError(f"Recording check failed: {e}") from e
        logger.debug(f"Monitor {monitor_id} check recorded (changed={detection.has_changes}, change={change_id}).")
        return change_id

    def set_monitor_active(self, name: str, active: bool) -> bool:
        """Soft-enables or disables a monitor. Returns False when no monitor has that name."""
        query, values = SQLQueryBuilder.build_update_query(
            "source_monitors", {"is_active": int(active)}, {"source_name": name})
        cursor = self._execute(query, values)
        if cursor.rowcount:
            logger.info(f"Monitor '{name}' {'enabled' if active else 'disabled'}.")
        return cursor.rowcount > 0

    def get_status(self) -> MonitorStatus:
        rows = self._fetch_all(
            "SELECT check_frequency, is_active, COUNT(*) AS n FROM source_monitors GROUP BY check_frequency, is_active")
        status = MonitorStatus()
        for row in rows:
            status.total_monitors += row["n"]
            if row["is_active"]:
                status.active_monitors += row["n"]
                if row["check_frequency"] in status.by_frequency:
                    status.by_frequency[row["check_frequency"]] += row["n"]
        return status

    # --- source_change_log ---

    @staticmethod
    def _change_log_insert_query(change_id: str, monitor_id: str, previous_hash: Optional[str],
                                 new_hash: Optional[str], change_summary: str, items_added: int,
                                 items_removed: int, auto_ingested: bool, ingestion_status: IngestionStatus,
                                 ingestion_error: Optional[str] = None, change_type: Optional[str] = None,
                                 detected_at: Optional[datetime] = None):
        return SQLQueryBuilder.build_insert_query("source_change_log", {
            "id": change_id,
            "monitor_id": monitor_id,
            "detected_at": to_db_timestamp(detected_at or utc_now()),
            "previous_hash": previous_hash,
            "new_hash": new_hash,
            "change_type": change_type,
            "change_summary": change_summary,
            "items_added": items_added,
            "items_removed": items_removed,
            "auto_ingested": int(auto_ingested),
            "ingestion_status": IngestionStatus.from_string(ingestion_status).value,
            "ingestion_error": ingestion_error,
        })

    def log_change(self, monitor_id: str, previous_hash: Optional[str], new_hash: Optional[str],
                   change_summary: str, items_added: int, items_removed: int,
                   auto_ingested: bool, ingestion_status: IngestionStatus,
                   ingestion_error: Optional[str] = None, change_type: Optional[str] = None,
                   detected_at: Optional[datetime] = None) -> str:
        """Appends a change log row and returns its id."""
        change_id = uuid.uuid4().hex
        query, values = self._change_log_insert_query(
            change_id, monitor_id, previous_hash, new_hash, change_summary, items_added, items_removed,
            auto_ingested, ingestion_status, ingestion_error, change_type, detected_at)
        self._execute(query, values)
        logger.debug(f"Logged change {change_id} for monitor {monitor_id}: {change_summary}")
        return change_id

    def update_change_ingestion(self, change_id: str, ingestion_status: IngestionStatus,
                                auto_ingested: bool, ingestion_error: Optional[str] = None) -> None:
        """Fills in the ingestion outcome of a change recorded by `record_check`."""
        query, values = SQLQueryBuilder.build_update_query("source_change_log", {
            "auto_ingested": int(auto_ingested),
            "ingestion_status": IngestionStatus.from_string(ingestion_status).value,
            "ingestion_error": ingestion_error,
        }, {"id": change_id})
        if self._execute(query, values).rowcount == 0:
            raise DatabaseError(f"No change log entry with id {change_id}")

    def get_recent_changes(self, limit: int = 20) -> List[SourceChangeLog]:
        rows = self._fetch_all(
            """
            SELECT l.*, m.source_name
            FROM source_change_log l
            JOIN source_monitors m ON m.id = l.monitor_id
            ORDER BY l.detected_at DESC, l.rowid DESC
            LIMIT ?
            """,
            (int(limit),),
        )
        changes = []
        for row in rows:
            data = dict(row)
            data["detected_at"] = from_db_timestamp(data["detected_at"])
            data["created_at"] = from_db_timestamp(data.get("created_at"))
            data["auto_ingested"] = bool(data["auto_ingested"])
            changes.append(SourceChangeLog(**data))
        return changes

    def health_check(self) -> bool:
        """Checks connectivity and that the monitor tables exist."""
        try:
            rows = self._fetch_all(
                "SELECT name FROM sqlite_master WHERE type='table' AND name IN ('source_monitors', 'source_change_log')")
        except DatabaseError as e:
            logger.error(f"Database health check failed: {e}")
            return False
        found = {row["name"] for row in rows}
        if found == {"source_monitors", "source_change_log"}:
            logger.info("Database health check: monitor tables exist.")
            return True
        logger.warning(f"Database health check: tables missing, found only {sorted(found)}.")
        return False
