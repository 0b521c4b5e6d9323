"""
Process configuration read from the environment.
Remote credentials are checked at first use, not at import, so the app can
start (and serve /health and progress routes) without them.
"""
import os
from dataclasses import dataclass
from typing import Optional

from orderpick.errors import ConfigMissing

DEFAULT_TIMEOUT = 15.0
# Remote platform page size; list calls never paginate past it.
PAGE_SIZE = 100


@dataclass(frozen=True)
class RemoteSettings:
    """Base URL and credential pair for the remote order platform."""

    base_url: str
    consumer_key: str
    consumer_secret: str
    timeout: float = DEFAULT_TIMEOUT


def load_remote_settings() -> RemoteSettings:
    """Read WOO_* variables. Raises ConfigMissing naming every absent one."""
    values = {
        "WOO_BASE_URL": os.environ.get("WOO_BASE_URL", "").strip(),
        "WOO_CONSUMER_KEY": os.environ.get("WOO_CONSUMER_KEY", "").strip(),
        "WOO_CONSUMER_SECRET": os.environ.get("WOO_CONSUMER_SECRET", "").strip(),
    }
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ConfigMissing(f"Missing remote platform configuration: {', '.join(missing)}")
    try:
        timeout = float(os.environ.get("WOO_TIMEOUT", DEFAULT_TIMEOUT))
    except ValueError:
        raise ConfigMissing("WOO_TIMEOUT must be a number of seconds")
    return RemoteSettings(
        base_url=values["WOO_BASE_URL"],
        consumer_key=values["WOO_CONSUMER_KEY"],
        consumer_secret=values["WOO_CONSUMER_SECRET"],
        timeout=timeout,
    )


def operator_token() -> Optional[str]:
    """Shared operator credential; None disables the check."""
    return os.environ.get("OPERATOR_TOKEN") or None
