"""
gatherKids: logging setup for scripts and host applications.

``configure_logging()`` installs one stdout handler on the root logger and
then tunes the loggers this package cares about:

  gatherkids.diagnostics  - structured events from ``LoggingDiagnosticSink``
  httpx / httpcore        - PostgREST traffic, one line per request
  aiohttp                 - Realtime socket
  sqlalchemy.engine       - local store SQL, only with ``LOG_SQL=1``

Libraries embedding gatherkids should skip this and configure logging
themselves.
"""

from __future__ import annotations

import logging
import sys
from typing import Dict, Optional

from gatherkids import config

DIAGNOSTICS_LOGGER = "gatherkids.diagnostics"

_TRANSPORT_LOGGERS = ("httpx", "httpcore", "aiohttp")

_configured = False


def _level(name: Optional[str], default: int) -> int:
    if not name:
        return default
    value = logging.getLevelName(name.strip().upper())
    return value if isinstance(value, int) else default


def package_levels(level: int) -> Dict[str, int]:
    """Logger name -> level applied by ``configure_logging`` for a root ``level``."""
    levels = {name: max(level, logging.WARNING) for name in _TRANSPORT_LOGGERS}
    levels["sqlalchemy.engine"] = logging.INFO if config.LOG_SQL else logging.WARNING
    # Capped at WARNING.
    levels[DIAGNOSTICS_LOGGER] = min(_level(config.DIAGNOSTICS_LOG_LEVEL, logging.WARNING), logging.WARNING)
    return levels


def configure_logging(level: Optional[str] = None, *, force: bool = False) -> None:
    """Set up root and package loggers once per process.

    ``level`` overrides ``LOG_LEVEL``; ``force`` re-applies the levels.
    """
    global _configured
    if _configured and not force:
        return

    root_level = _level(level or config.LOG_LEVEL, logging.INFO)
    root = logging.getLogger()
    root.setLevel(root_level)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S",
        ))
        root.addHandler(handler)

    for name, value in package_levels(root_level).items():
        logging.getLogger(name).setLevel(value)

    _configured = True
