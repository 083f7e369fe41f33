"""
Logging - Application logging configuration and disk persistence.

Provides:
- Python logging configuration with console and optional file output
- Log persistence to daily files: hexa-YYYY-MM-DD.log
- Automatic cleanup of old log files
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional
import logging

from hexa_connect.utils import get_logs_dir


LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def configure_logging(level: int = logging.INFO, retention_days: int = 0) -> None:
    """
    Configure Python logging for the application.

    Sets up a root logger with console output, plus a daily log file
    when retention_days > 0.

    Args:
        level: Logging level (default: INFO)
        retention_days: Days of log files to keep (0 = no file logging)
    """
    root_logger = logging.getLogger()

    # Only configure if not already configured
    if root_logger.handlers:
        return

    root_logger.setLevel(level)

    # Console handler with simple format
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S'))
    root_logger.addHandler(console_handler)

    if retention_days > 0:
        file_handler = DailyFileHandler(retention_days)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        root_logger.addHandler(file_handler)
        cleanup_old_logs(retention_days)


class DailyFileHandler(logging.Handler):
    """Logging handler that appends to today's log file."""

    def __init__(self, retention_days: int):
        super().__init__()
        self.retention_days = retention_days

    def emit(self, record: logging.LogRecord) -> None:
        try:
            append_log(self.format(record), self.retention_days)
        except Exception:
            self.handleError(record)


def get_log_file_path(date: Optional[datetime] = None) -> Path:
    """Get the log file path for a specific date (defaults to today)."""
    if date is None:
        date = datetime.now()
    filename = f"hexa-{date.strftime('%Y-%m-%d')}.log"
    return get_logs_dir() / filename


def append_log(message: str, retention_days: int = 0) -> None:
    """
    Append a log message to today's log file.

    Args:
        message: The formatted log message
        retention_days: If 0, don't save to disk
    """
    if retention_days <= 0:
        return

    with open(get_log_file_path(), 'a', encoding='utf-8') as f:
        f.write(message + '\n')


def cleanup_old_logs(retention_days: int) -> int:
    """
    Delete log files older than retention_days.

    Args:
        retention_days: Delete files older than this (0 = delete all)

    Returns:
        Number of files deleted
    """
    if retention_days < 0:
        return 0

    logs_dir = get_logs_dir()
    cutoff_date = datetime.now() - timedelta(days=retention_days)
    deleted_count = 0

    for file_path in logs_dir.glob("hexa-*.log"):
        # Parse date from filename
        try:
            date_str = file_path.stem.replace("hexa-", "")
            file_date = datetime.strptime(date_str, "%Y-%m-%d")

            if file_date < cutoff_date:
                file_path.unlink()
                deleted_count += 1
        except (ValueError, OSError):
            # Skip files that don't match expected format
            pass

    return deleted_count
