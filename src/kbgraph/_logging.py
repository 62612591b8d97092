"""Logging setup for the kbgraph command line.

Library modules only ever do::

    log = logging.getLogger(__name__)

and never configure handlers themselves. The CLI calls configure_logging()
once per invocation, which routes the ``kbgraph`` logger to stderr so stdout
stays clean for --json output.

Level, from highest precedence:
    - the ``level`` argument (``kbgraph -v`` passes DEBUG)
    - the KBGRAPH_LOG_LEVEL environment variable
    - INFO

At INFO a build logs its phases; unresolved links and lenient title
collisions are WARNING; DEBUG adds skipped documents and dropped edges.
"""

from __future__ import annotations

import logging
import os
import sys

PACKAGE_LOGGER = "kbgraph"
LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def _resolve_level(level: str | int | None) -> int:
    if level is None:
        level = os.environ.get("KBGRAPH_LOG_LEVEL", "INFO")
    if isinstance(level, int):
        return level
    return logging.getLevelNamesMapping().get(level.strip().upper(), logging.INFO)


def configure_logging(level: str | int | None = None) -> logging.Logger:
    """Send kbgraph log records to the current stderr.

    A handler installed by an earlier call is replaced rather than kept, so
    the logger always writes to the stderr of the running invocation.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, "_kbgraph", False):
            logger.removeHandler(handler)

    resolved = _resolve_level(level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.setLevel(resolved)
    handler._kbgraph = True  # type: ignore[attr-defined]

    logger.addHandler(handler)
    logger.setLevel(resolved)
    logger.propagate = False
    return logger
