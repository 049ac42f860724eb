"""Cross-cutting helpers shared by the CLI and the library."""

from .logging import get_current_log_file, get_session_id, setup_logging

__all__ = [
    "setup_logging",
    "get_current_log_file",
    "get_session_id",
]
