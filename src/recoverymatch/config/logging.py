"""Logging set-up for the command line entry point."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger with the project's terse format.

    Library modules only ever call ``logging.getLogger(__name__)``; the root logger
    is configured here, by the CLI. ``force=True`` replaces existing handlers, which
    tests and re-entrant entry points need.
    """

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
