"""Error types raised (or captured) by the etcd accessor."""

from typing import Optional


class EtcdAccessError(Exception):
    """Base class for everything that can go wrong talking to etcd."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.key = key
        self.cause = cause

    def describe(self) -> str:
        """Description stored under ``_key.error`` in result maps."""
        if self.cause is not None:
            return f"{type(self.cause).__name__}: {self.cause}"
        return f"{type(self).__name__}: {self}"


class NetworkError(EtcdAccessError):
    """Transport failure, or an unexpected HTTP status for strict callers."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        cause: Optional[BaseException] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, key=key, cause=cause)
        self.status_code = status_code


class ParseError(EtcdAccessError):
    """etcd answered 200 but the body is not a usable node document."""


class InvalidConfiguration(EtcdAccessError):
    """Bad server URL or settings value."""


__all__ = ["EtcdAccessError", "InvalidConfiguration", "NetworkError", "ParseError"]
