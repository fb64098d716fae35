# src/source_monitor/utils/logging.py
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Dict, Any

DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"

def setup_logging(config: Dict[str, Any]) -> logging.Logger:
    """
    Configures logging for the application.

    Handlers are installed on the root logger so every module logger
    (``logging.getLogger(__name__)``) inherits them. Calling this twice replaces
    the handlers instead of duplicating them.
    """
    log_level_str = str(config.get("level", "INFO")).upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    log_format = config.get("format", DEFAULT_LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(log_format)

    if config.get("console", True):
        # stderr keeps stdout free for command output
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        console_handler.setLevel(log_level)
        root_logger.addHandler(console_handler)

    if config.get("file"):
        log_file_path = Path(config["file"])
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file_path,
            maxBytes=config.get("max_size", 10 * 1024 * 1024),
            backupCount=config.get("backup_count", 5),
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("requests_cache").setLevel(logging.WARNING)

    app_logger = logging.getLogger("source_monitor")
    app_logger.debug(f"Logging setup complete. Level: {log_level_str}, File: {config.get('file')}")
    return app_logger
