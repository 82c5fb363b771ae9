"""Logging setup for the CLI.

Library modules only call ``logging.getLogger(__name__)``; the CLI installs a
rich handler on stderr so stdout stays clean for JSON output.
"""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_LOG_LEVEL = "WARNING"


def resolve_log_level(level: str | None = None) -> str:
    """Explicit level first, then TASKGRAPH_LOG_LEVEL, then WARNING."""
    chosen = (level or os.getenv("TASKGRAPH_LOG_LEVEL", "") or DEFAULT_LOG_LEVEL).strip().upper()
    if not isinstance(logging.getLevelName(chosen), int):
        raise ValueError(f"unknown log level: {chosen}")
    return chosen


def configure_logging(level: str | None = None) -> None:
    root = logging.getLogger()

    # Remove any existing handlers to avoid duplicate logs when re-configuring.
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=False)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root.addHandler(handler)
    root.setLevel(resolve_log_level(level))

    # The OpenAI SDK logs every HTTP request at INFO.
    logging.getLogger("httpx").setLevel(max(root.level, logging.WARNING))
