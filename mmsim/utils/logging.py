"""Rich logging setup shared by the engine, the live feed and the CLI."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from rich.logging import RichHandler

# Transport libraries log every request at DEBUG; the live feed polls often.
NOISY_LOGGERS = ("urllib3", "requests")


def setup_logging(level: str | int = "INFO", quiet: Iterable[str] = NOISY_LOGGERS) -> None:
    """Install a Rich handler on the root logger and calm chatty dependencies."""

    if isinstance(level, str):
        numeric_level = logging.getLevelName(level.upper())
    else:
        numeric_level = level
    logging.basicConfig(
        level=numeric_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, markup=True, show_path=False)],
        force=True,
    )
    for name in quiet:
        logging.getLogger(name).setLevel(max(logging.WARNING, logging.getLogger().level))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger, installing the Rich handler on first use."""

    if not logging.getLogger().handlers:
        setup_logging()
    return logging.getLogger(name)


__all__ = ["setup_logging", "get_logger", "NOISY_LOGGERS"]
