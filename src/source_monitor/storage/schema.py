# src/source_monitor/storage/schema.py

SCHEMA_DEFINITIONS = {
    'source_monitors': '''
        CREATE TABLE IF NOT EXISTS source_monitors (
            id TEXT PRIMARY KEY,                       -- uuid4 hex
            source_name TEXT NOT NULL UNIQUE,
            source_url TEXT NOT NULL,
            source_type TEXT NOT NULL,                 -- oim_ops_memo, pa_bulletin, pa_code, ...
            check_frequency TEXT NOT NULL,             -- weekly, monthly, quarterly, annually
            last_checked_at TEXT,                      -- ISO-8601 UTC; NULL = never checked
            last_content_hash TEXT,                    -- SHA-256 of the last fetched page
            last_change_detected_at TEXT,              -- only ever moves forward
            last_item_urls TEXT,                       -- JSON array of item URLs from the last scrape
            is_active INTEGER NOT NULL DEFAULT 1,
            auto_ingest INTEGER NOT NULL DEFAULT 1,
            filter_keywords TEXT,                      -- JSON array, NULL = no filtering
            created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now')),
            updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now'))
        );
    ''',

    'source_change_log': '''
        CREATE TABLE IF NOT EXISTS source_change_log (
            id TEXT PRIMARY KEY,
            monitor_id TEXT NOT NULL REFERENCES source_monitors(id) ON DELETE CASCADE,
            detected_at TEXT NOT NULL,
            previous_hash TEXT,
            new_hash TEXT,
            change_type TEXT,
            change_summary TEXT,
            items_added INTEGER NOT NULL DEFAULT 0,
            items_removed INTEGER NOT NULL DEFAULT 0,
            auto_ingested INTEGER NOT NULL DEFAULT 0,
            ingestion_status TEXT NOT NULL DEFAULT 'pending',  -- pending, success, failed, skipped
            ingestion_error TEXT,
            created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now'))
        );
    '''
}

INDICES = [
    'CREATE INDEX IF NOT EXISTS idx_source_monitors_frequency ON source_monitors(check_frequency)',
    'CREATE INDEX IF NOT EXISTS idx_source_monitors_last_checked ON source_monitors(last_checked_at)',
    'CREATE INDEX IF NOT EXISTS idx_source_monitors_active ON source_monitors(is_active) WHERE is_active = 1',
    'CREATE INDEX IF NOT EXISTS idx_change_log_monitor ON source_change_log(monitor_id)',
    'CREATE INDEX IF NOT EXISTS idx_change_log_detected_at ON source_change_log(detected_at DESC)',
]

PRAGMAS = [
    'PRAGMA journal_mode=WAL;',
    'PRAGMA synchronous=NORMAL;',
    'PRAGMA temp_store=MEMORY;',
    'PRAGMA foreign_keys=ON;',
    'PRAGMA busy_timeout=5000;'
]

TRIGGERS = {
    'update_source_monitors_updated_at': '''
        CREATE TRIGGER IF NOT EXISTS update_source_monitors_updated_at
        AFTER UPDATE ON source_monitors
        FOR EACH ROW WHEN NEW.updated_at = OLD.updated_at
        BEGIN
            UPDATE source_monitors SET updated_at = strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now')
            WHERE id = OLD.id;
        END;
    '''
}
