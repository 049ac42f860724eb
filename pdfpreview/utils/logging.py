"""
Session-based logging for pdfpreview.

Log Location:
-------------
- Default: ~/.pdfpreview/logs/
- Each CLI run creates a timestamped log file with a session ID
- A symlink 'pdfpreview.log' always points to the latest session
- Can be overridden via PDFPREVIEW_LOG_DIR environment variable

Log Levels:
-----------
- DEBUG: Capability probes, structural parser results, skipped documents
- INFO: Processing flow, cache sweeps, bulk run summaries
- WARNING: Backend fallbacks, preview failures
- ERROR: Unreadable files, cache directory failures

Usage:
------
    from pdfpreview.utils.logging import setup_logging

    log_file = setup_logging(level="DEBUG")

Library modules only ever call ``logging.getLogger(__name__)``; nothing is
written anywhere until an entry point calls :func:`setup_logging`.
"""

from __future__ import annotations

import logging
import os
import sys
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

# ============================================================================
# Constants
# ============================================================================

LOGGER_NAMESPACE = "pdfpreview"
DEFAULT_LOG_DIR = Path.home() / ".pdfpreview" / "logs"
DEFAULT_LOG_LEVEL = "INFO"
SYMLINK_NAME = "pdfpreview.log"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(session_id)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# File output carries line numbers as well.
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(session_id)s | %(name)s:%(lineno)d | %(message)s"

_log_file_path: Optional[Path] = None
_session_id: Optional[str] = None


# ============================================================================
# Filter / Formatter
# ============================================================================

class SessionIdFilter(logging.Filter):
    """Stamp every record with the current session ID."""

    def __init__(self, session_id: str):
        super().__init__()
        self.session_id = session_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = self.session_id  # type: ignore[attr-defined]
        return True


class SessionFormatter(logging.Formatter):
    """Formatter that tolerates records emitted before the filter ran."""

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "session_id"):
            record.session_id = _session_id or "N/A"  # type: ignore[attr-defined]
        return super().format(record)


# ============================================================================
# Setup
# ============================================================================

def generate_session_id() -> str:
    """Short unique session ID (6 hex characters)."""
    return uuid.uuid4().hex[:6]


def get_log_directory(default: Optional[Path] = None) -> Path:
    """Log directory, respecting PDFPREVIEW_LOG_DIR."""
    env_log_dir = os.getenv("PDFPREVIEW_LOG_DIR")
    if env_log_dir:
        return Path(env_log_dir)
    return default if default is not None else DEFAULT_LOG_DIR


def generate_log_filename(session_id: str) -> str:
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"pdfpreview_{timestamp}_{session_id}.log"


def setup_logging(
    level: Optional[str] = None,
    log_dir: Optional[Path] = None,
    console_output: bool = False,
    quiet: bool = False,
) -> Path:
    """
    Initialise pdfpreview logging with a per-session file.

    Parameters
    ----------
    level : str, optional
        DEBUG, INFO, WARNING or ERROR. Defaults to PDFPREVIEW_LOG_LEVEL,
        then INFO.
    log_dir : Path, optional
        Directory for log files. Defaults to PDFPREVIEW_LOG_DIR, then
        ~/.pdfpreview/logs/.
    console_output : bool
        Also log to stderr.
    quiet : bool
        Suppress console output even when ``console_output`` is set.

    Returns
    -------
    Path
        The session log file.
    """
    global _log_file_path, _session_id

    _session_id = generate_session_id()

    if level is None:
        level = os.getenv("PDFPREVIEW_LOG_LEVEL", DEFAULT_LOG_LEVEL)
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_dir is None:
        log_dir = get_log_directory()
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / generate_log_filename(_session_id)
    _log_file_path = log_file

    root = logging.getLogger(LOGGER_NAMESPACE)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for f in root.filters[:]:
        root.removeFilter(f)

    root.setLevel(log_level)
    # Handler-level so records from child loggers are stamped too.
    session_filter = SessionIdFilter(_session_id)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(log_level)
    file_handler.setFormatter(SessionFormatter(FILE_LOG_FORMAT, LOG_DATE_FORMAT))
    file_handler.addFilter(session_filter)
    root.addHandler(file_handler)

    if console_output and not quiet:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(SessionFormatter(LOG_FORMAT, LOG_DATE_FORMAT))
        console_handler.addFilter(session_filter)
        root.addHandler(console_handler)

    root.propagate = False

    symlink_path = log_dir / SYMLINK_NAME
    try:
        if symlink_path.is_symlink() or symlink_path.exists():
            symlink_path.unlink()
        symlink_path.symlink_to(log_file.name)
    except OSError:
        # Symlinks need extra privileges on some platforms.
        pass

    root.info("=" * 80)
    root.info("pdfpreview logging session started")
    root.info("  Session ID: %s", _session_id)
    root.info("  Log file: %s", log_file)
    root.info("  Log level: %s", level.upper())
    root.info("=" * 80)

    return log_file


def get_current_log_file() -> Optional[Path]:
    """Path of the current session log, if logging was set up."""
    return _log_file_path


def get_session_id() -> Optional[str]:
    return _session_id
