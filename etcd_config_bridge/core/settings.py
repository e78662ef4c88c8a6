"""Environment lookups for the default accessor and property source."""

import os
from typing import Optional

from .errors import InvalidConfiguration

DEFAULT_ETCD_URL = "http://127.0.0.1:4001"
DEFAULT_TIMEOUT_SECONDS = 5.0


def get_server_url() -> str:
    """Get the etcd server URL from environment or default"""
    return (
        os.getenv("EtcdSettings__Url")
        or os.getenv("etcd.url")
        or DEFAULT_ETCD_URL
    )


def get_timeout_seconds() -> float:
    """Get the default request timeout from environment or default"""
    raw = os.getenv("EtcdSettings__TimeoutSeconds")
    if raw is None or not raw.strip():
        return DEFAULT_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError as e:
        raise InvalidConfiguration(
            f"EtcdSettings__TimeoutSeconds is not a number: {raw!r}", cause=e
        )
    if value <= 0:
        raise InvalidConfiguration(
            f"EtcdSettings__TimeoutSeconds must be positive, got {value}"
        )
    return value


def get_root_key() -> Optional[str]:
    """Get the etcd directory served by the default property source"""
    root = os.getenv("EtcdSettings__RootKey")
    if root is None:
        return None
    root = root.strip()
    return root or None


__all__ = [
    "DEFAULT_ETCD_URL",
    "DEFAULT_TIMEOUT_SECONDS",
    "get_root_key",
    "get_server_url",
    "get_timeout_seconds",
]
