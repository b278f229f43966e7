"""Utility functions and helpers."""

import json
from datetime import datetime, timezone


def truncate_text(text: str, max_length: int = 1000) -> str:
    """Truncate text to maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length

    Returns:
        Truncated text with a marker if needed
    """
    if len(text) <= max_length:
        return text
    return text[:max_length] + "... (truncated)"


def preview_body(body: bytes, json_limit: int = 2000, raw_limit: int = 1000) -> str:
    """Render a response body for debug logging.

    JSON bodies are pretty-printed and cut at ``json_limit`` characters;
    anything else is shown as text cut at ``raw_limit``.

    Args:
        body: Response body bytes
        json_limit: Max characters for pretty-printed JSON
        raw_limit: Max characters for non-JSON bodies

    Returns:
        Printable preview string
    """
    try:
        data = json.loads(body)
    except ValueError:
        return truncate_text(body.decode("utf-8", errors="replace"), raw_limit)
    return truncate_text(json.dumps(data, indent=2, ensure_ascii=False), json_limit)


def format_bytes(size: int) -> str:
    """Format a byte count (e.g., "1,250 B")."""
    return f"{size:,} B"


def utc_timestamp() -> str:
    """Current time as an RFC 3339 string."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")
