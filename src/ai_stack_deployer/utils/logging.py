"""Logging helpers."""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.text import Text

_LOGGING_CONFIGURED = False

_error_console = Console(stderr=True, highlight=False)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    global _LOGGING_CONFIGURED
    if not _LOGGING_CONFIGURED:
        logging.basicConfig(
            level=logging.INFO,
            format="[%(asctime)s] %(levelname)s %(name)s - %(message)s",
        )
        _LOGGING_CONFIGURED = True
    return logging.getLogger(name)


def print_error(message: str) -> None:
    """Print a single red error line to stderr."""
    _error_console.print(Text.assemble(("[ERROR]", "bold red"), " ", message), soft_wrap=True)
