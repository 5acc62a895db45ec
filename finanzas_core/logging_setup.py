"""Package logging. The CLI calls ``configure_logging`` once; modules use ``get_logger``."""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_ROOT = "finanzas_core"
_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_configured = False


def resolve_level(level: int | str | None) -> int:
    """Level from the argument, then ``FINANZAS_LOG_LEVEL``, then INFO."""
    if isinstance(level, int):
        return level
    name = (level or os.getenv("FINANZAS_LOG_LEVEL") or "INFO").strip().upper()
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.INFO


def configure_logging(level: int | str | None = None, stream: IO[str] = sys.stderr) -> None:
    global _configured
    if _configured:
        return
    root = logging.getLogger(_ROOT)
    root.handlers = [h for h in root.handlers if not isinstance(h, logging.NullHandler)]
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(handler)
    root.setLevel(resolve_level(level))
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    root = logging.getLogger(_ROOT)
    if not _configured and not root.handlers:
        root.addHandler(logging.NullHandler())
    return logging.getLogger(name)
