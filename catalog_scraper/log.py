"""Tagged console output shared by the scraper modules."""

from __future__ import annotations

import sys
from typing import Optional

_STDERR_LEVELS = {"warn", "error"}


def log(level: str, msg: str, source: Optional[str] = None) -> None:
    """Print ``[level] [source] msg``; warnings and errors go to stderr."""
    prefix = f"[{level}]"
    if source:
        prefix = f"{prefix} [{source}]"
    stream = sys.stderr if level in _STDERR_LEVELS else sys.stdout
    print(f"{prefix} {msg}", file=stream)
