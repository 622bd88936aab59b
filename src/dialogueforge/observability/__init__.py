"""Observability module for dialogueforge.

Provides structured logging (structlog rendered through rich).
"""

from dialogueforge.observability.logging import (
    close_file_logging,
    configure_logging,
    get_logger,
    level_for_verbosity,
)

__all__ = [
    "close_file_logging",
    "configure_logging",
    "get_logger",
    "level_for_verbosity",
]
