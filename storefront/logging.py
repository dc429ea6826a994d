"""
Logging for the storefront API.

`configure_logging()` is called once by the app entry point; modules
just ask for a named logger:

    from storefront.logging import get_logger
    logger = get_logger(__name__)

Session ids are bearer values and product names are shopper-supplied
text, so both go through the sanitize helpers before being logged.
"""

import logging
import os
import sys
from functools import cache

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
# Vercel already timestamps every line
LOG_FORMAT_VERCEL = "%(levelname)s [%(name)s] %(message)s"

# Supabase and Upstash go through httpx; Stripe logs each API call
NOISY_LOGGERS = ("httpx", "httpcore", "hpack", "stripe", "upstash_redis")

SESSION_ID_LOG_CHARS = 8


def configure_logging(level: str | None = None) -> None:
    """
    Attach one stdout handler to the root logger.

    Does nothing if the root logger already has handlers (pytest,
    uvicorn --log-config), so calling it twice is safe.

    Args:
        level: Level name; defaults to $LOG_LEVEL, then INFO
    """
    root = logging.getLogger()
    if root.handlers:
        return

    level_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    on_vercel = os.environ.get("VERCEL") == "1"
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT_VERCEL if on_vercel else LOG_FORMAT))
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@cache
def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def _strip_control_chars(value: str) -> str:
    """Keep one log record on one line (CWE-117)."""
    return (
        value.replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
        .replace("\x00", "")
    )


def sanitize_id_for_logging(id_value: str | None) -> str:
    """First few characters of a session or Stripe id, or "N/A"."""
    if not id_value:
        return "N/A"
    return _strip_control_chars(str(id_value))[:SESSION_ID_LOG_CHARS]


def sanitize_string_for_logging(value: str | None, max_length: int = 50) -> str:
    """
    Single-line, length-capped rendering of shopper-supplied text.

    Args:
        value: Product name, variant id or similar (can be None)
        max_length: Characters kept before "..." is appended
    """
    if not value:
        return "N/A"
    safe_value = _strip_control_chars(str(value))
    if len(safe_value) <= max_length:
        return safe_value
    return safe_value[:max_length] + "..."


__all__ = [
    "NOISY_LOGGERS",
    "configure_logging",
    "get_logger",
    "sanitize_id_for_logging",
    "sanitize_string_for_logging",
]
