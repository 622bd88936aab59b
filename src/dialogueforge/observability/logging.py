"""Logging setup for dialogueforge.

structlog events are routed through the stdlib ``logging`` tree so one set
of handlers serves library and CLI code alike:

- a rich console handler on stderr, its level chosen by ``-v``
- with ``--log``, a JSONL file (``<log_dir>/debug.jsonl``) at DEBUG

Keys bound with ``structlog.contextvars`` (the CLI binds ``root_graph_id``
around ``compile`` and ``play``) are merged into every event and land as
top-level JSON fields in the file log.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import TYPE_CHECKING, Any

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from structlog.typing import Processor

DEBUG_LOG_NAME = "debug.jsonl"

_VERBOSITY_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)

_configured = False
_file_handler: logging.FileHandler | None = None


def level_for_verbosity(verbosity: int) -> int:
    """Console level for a ``-v`` count: 0 WARNING, 1 INFO, 2+ DEBUG."""
    index = min(max(verbosity, 0), len(_VERBOSITY_LEVELS) - 1)
    return _VERBOSITY_LEVELS[index]


class JSONLFileHandler(logging.FileHandler):
    """File handler writing one JSON object per record.

    Each line holds ``timestamp``, ``level``, ``logger`` and ``event`` plus
    whatever key/value context the structlog event carried.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }
        # wrap_for_formatter hands over the structlog event dict as record.msg
        if isinstance(record.msg, dict):
            fields = {k: v for k, v in record.msg.items() if k not in ("level", "timestamp")}
            entry["event"] = fields.pop("event", "")
            entry.update(fields)
        else:
            entry["event"] = record.getMessage()
        return json.dumps(entry, default=str)


def _console_handler(verbosity: int) -> RichHandler:
    return RichHandler(
        console=Console(stderr=True),
        level=level_for_verbosity(verbosity),
        rich_tracebacks=True,
        tracebacks_show_locals=verbosity >= 2,
        show_time=verbosity >= 1,
        show_path=verbosity >= 2,
        markup=False,
    )


def _open_file_handler(log_dir: Path) -> JSONLFileHandler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = JSONLFileHandler(str(log_dir / DEBUG_LOG_NAME), mode="a", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    return handler


def configure_logging(
    verbosity: int = 0,
    log_to_file: bool = False,
    log_dir: Path | None = None,
) -> None:
    """(Re)configure console and optional file logging.

    Calling it again replaces the previous handlers and closes any open
    log file.

    Args:
        verbosity: ``-v`` count; see ``level_for_verbosity``.
        log_to_file: Also append every event to ``log_dir/debug.jsonl``.
        log_dir: Directory for the file log. Required with ``log_to_file``.

    Raises:
        ValueError: If ``log_to_file`` is set without a ``log_dir``.
    """
    global _configured, _file_handler

    if log_to_file and log_dir is None:
        raise ValueError("log_dir is required when log_to_file=True")

    close_file_logging()

    handlers: list[logging.Handler] = [_console_handler(verbosity)]
    if log_to_file and log_dir is not None:
        _file_handler = _open_file_handler(log_dir)
        handlers.append(_file_handler)

    # The root stays open whenever anything below WARNING can be shown or
    # recorded; each handler filters for itself.
    root_level = logging.DEBUG if (verbosity > 0 or log_to_file) else logging.WARNING
    logging.basicConfig(level=root_level, format="%(message)s", handlers=handlers, force=True)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
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
    """Return a bound logger, configuring defaults on first use."""
    if not _configured:
        configure_logging()
    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger


def close_file_logging() -> None:
    """Flush and close the JSONL file log, if one is open."""
    global _file_handler
    if _file_handler is not None:
        _file_handler.close()
        _file_handler = None
