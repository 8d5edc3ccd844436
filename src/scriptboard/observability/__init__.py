"""Observability module for Scriptboard.

Provides structured logging with console and JSONL file output.
"""

from scriptboard.observability.logging import (
    close_file_logging,
    configure_logging,
    get_logger,
    get_logs_dir,
    job_context,
)

__all__ = [
    "close_file_logging",
    "configure_logging",
    "get_logger",
    "get_logs_dir",
    "job_context",
]
