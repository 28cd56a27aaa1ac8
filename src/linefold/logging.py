"""Logging helpers for linefold.

Loggers live under the ``linefold`` namespace. While the live view owns the
terminal, log records should go to a file (``--log-file``); otherwise they are
written to stderr through rich.

Example:
    ```python
    from linefold.logging import get_logger

    logger = get_logger("fold.folder")
    logger.debug("Opened node 3")
    ```
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from pathlib import Path

ROOT_LOGGER = "linefold"

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Get a logger in the linefold namespace.

    Args:
        name: Dotted suffix (e.g., "fold.folder").

    Returns:
        Logger named ``linefold.<name>``.
    """
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def configure_logging(*, debug: bool = False, log_file: Path | None = None) -> logging.Logger:
    """Install the linefold log handler.

    Args:
        debug: Log at DEBUG instead of WARNING.
        log_file: Write records to this file instead of stderr.

    Returns:
        The configured root linefold logger.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(logging.DEBUG if debug else logging.WARNING)

    for existing in list(root.handlers):
        root.removeHandler(existing)
        existing.close()

    handler: logging.Handler
    if log_file is not None:
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    else:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=debug,
        )

    root.addHandler(handler)
    root.propagate = False
    return root
