"""Structured logging for Scriptboard.

Console output goes through rich on stderr and is gated by ``-v``. With
``--log`` every event is also appended as JSON lines to
``<db dir>/logs/scriptboard.jsonl``.

Events emitted while a generation job runs carry its ``job_id`` through
structlog context variables, so interleaved runs stay separable in the file.
Credentials and image payloads never reach either output.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003 - Used at runtime for path operations
from typing import TYPE_CHECKING, Any

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from collections.abc import Iterator, MutableMapping

    from structlog.typing import Processor

LOG_FILE_NAME = "scriptboard.jsonl"

_configured = False
_file_handler: logging.FileHandler | None = None
_logs_dir: Path | None = None

_QUIET_LOGGERS = ("httpx", "httpcore", "openai", "asyncio")

_SECRET_KEYS = frozenset(
    {
        "api_key",
        "authorization",
        "secret_access_key",
        "session_token",
        "x-amz-security-token",
    }
)
_PAYLOAD_KEYS = frozenset({"data_base64", "b64_data", "images"})


def _scrub(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _scrub_item(key, item) for key, item in value.items()}
    return value


def _scrub_item(key: Any, value: Any) -> Any:
    name = str(key).lower()
    if name in _SECRET_KEYS:
        return "***"
    if name in _PAYLOAD_KEYS:
        size = len(value) if isinstance(value, (str, list)) else 0
        return f"<omitted {size}>"
    return _scrub(value)


def scrub_event(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask credentials and drop base64 image payloads, nested dicts included."""
    for key in list(event_dict):
        event_dict[key] = _scrub_item(key, event_dict[key])
    return event_dict


class JSONLFileHandler(logging.FileHandler):
    """File handler that writes one JSON object per line."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry: dict[str, Any] = {
                "timestamp": datetime.now(UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
            }
            if isinstance(record.msg, dict):
                fields = dict(record.msg)
                fields.pop("level", None)
                fields.pop("timestamp", None)
                entry["message"] = fields.pop("event", "")
                entry.update(fields)
            else:
                entry["message"] = record.getMessage()

            if self.stream:
                self.stream.write(json.dumps(entry, default=str) + "\n")
                self.stream.flush()
        except Exception:
            self.handleError(record)


def _console_handler(verbosity: int) -> RichHandler:
    levels = {0: logging.WARNING, 1: logging.INFO}
    return RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbosity >= 2,
        show_time=verbosity >= 1,
        show_path=verbosity >= 2,
        markup=False,
        level=levels.get(verbosity, logging.DEBUG),
    )


def configure_logging(
    verbosity: int = 0,
    log_to_file: bool = False,
    log_dir: Path | None = None,
) -> None:
    """Configure console and optional JSONL file logging.

    Safe to call again; a previously opened log file is closed first.

    Args:
        verbosity: 0=WARNING (default), 1=INFO, 2+=DEBUG on the console.
        log_to_file: Also write every event to ``{log_dir}/logs/scriptboard.jsonl``.
        log_dir: Directory that receives the ``logs/`` folder, usually the
            directory holding the ledger database.

    Raises:
        ValueError: If log_to_file is set without a log_dir.
    """
    global _configured, _file_handler, _logs_dir

    if log_to_file and log_dir is None:
        raise ValueError("log_dir is required when log_to_file=True")

    close_file_logging()
    _logs_dir = None

    handlers: list[logging.Handler] = [_console_handler(verbosity)]
    if log_to_file and log_dir is not None:
        _logs_dir = log_dir / "logs"
        _logs_dir.mkdir(parents=True, exist_ok=True)
        _file_handler = JSONLFileHandler(str(_logs_dir / LOG_FILE_NAME), mode="a")
        _file_handler.setLevel(logging.DEBUG)
        handlers.append(_file_handler)

    root_level = logging.DEBUG if (verbosity > 0 or log_to_file) else logging.WARNING
    logging.basicConfig(level=root_level, format="%(message)s", handlers=handlers, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        scrub_event,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]
    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a structured logger, configuring defaults on first use."""
    if not _configured:
        configure_logging()

    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger


@contextmanager
def job_context(job_id: int) -> Iterator[None]:
    """Bind ``job_id`` to every event logged inside the block."""
    with structlog.contextvars.bound_contextvars(job_id=job_id):
        yield


def get_logs_dir() -> Path | None:
    """Return the logs directory if file logging is enabled, None otherwise."""
    return _logs_dir


def close_file_logging() -> None:
    """Close the JSONL file handler, if open."""
    global _file_handler
    if _file_handler is not None:
        _file_handler.close()
        _file_handler = None
