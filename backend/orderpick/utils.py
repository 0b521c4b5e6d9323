"""
Utility functions: URL cleanup, id parsing, timestamp normalisation.
"""
from datetime import datetime, timezone
from typing import Any

from orderpick.errors import ValidationError

WC_API_PATH = "/wp-json/wc/v3"


def api_root(base_url: str) -> str:
    """Return the REST root for a store URL, tolerating a trailing slash."""
    return base_url.rstrip("/") + WC_API_PATH


def parse_order_id(raw: Any) -> int:
    """
    Parse an order id from a path segment.
    Raises ValidationError for anything that is not a positive integer.
    """
    text = str(raw).strip()
    if not text.isdigit() or int(text) <= 0:
        raise ValidationError(f"Order id must be a positive integer, got {raw!r}")
    return int(text)


def to_naive_utc(value: datetime) -> datetime:
    """Drop tzinfo after converting to UTC so remote timestamps compare safely."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def truncate(text: str, limit: int = 500) -> str:
    """Cap stored/returned upstream bodies."""
    return text if len(text) <= limit else text[:limit]
