"""Centralized logging configuration for the reachability filter services.

Usage:
    from shared.utils.logging_config import setup_logging

    # Writes to stderr + logs/<server_name>.log:
    setup_logging(server_name="reachability_filter")

    # With debug level:
    setup_logging(server_name="reachability_filter", debug=True)

    # Custom log directory:
    setup_logging(server_name="reachability_filter", log_dir="/var/log/reachfilter")

    # Console only (tools, scripts):
    setup_logging()
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Log rotation defaults
MAX_BYTES = 5 * 1024 * 1024  # 5 MB
BACKUP_COUNT = 3

# Standard log directory — project_root/logs/
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DEFAULT_LOG_DIR = _PROJECT_ROOT / "logs"


def setup_logging(
    level: int = logging.INFO,
    fmt: str = DEFAULT_FORMAT,
    max_bytes: int = MAX_BYTES,
    backup_count: int = BACKUP_COUNT,
    *,
    server_name: str | None = None,
    log_dir: str | Path | None = None,
    debug: bool = False,
) -> None:
    """Configure root logger with consistent format and file output.

    Call this once at the start of each entry point (server, script).
    When *server_name* is given, a RotatingFileHandler writes to
    ``<log_dir>/<server_name>.log`` capped at *max_bytes* with
    *backup_count* rotated backups.
    """
    if debug:
        level = logging.DEBUG

    log_file = None
    if server_name:
        target_dir = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
        target_dir.mkdir(parents=True, exist_ok=True)
        log_file = target_dir / f"{server_name}.log"

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(
            RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
        )
    logging.basicConfig(level=level, format=fmt, handlers=handlers)

    if log_file:
        logging.getLogger().info("Logging to %s", log_file)
