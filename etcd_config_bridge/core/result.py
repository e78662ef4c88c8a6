"""Typed outcome of a single etcd round-trip."""

from dataclasses import dataclass, field
from typing import Dict, Optional

from .errors import EtcdAccessError, NetworkError

SUCCESS_STATUSES = (200, 201)


def meta_key(key: str, name: str) -> str:
    """Companion key for ``key``, e.g. ``_/message.createdIndex``."""
    return f"_{key}.{name}"


@dataclass
class EtcdResult:
    """Outcome of one accessor call.

    ``entries`` holds the flattened ``key -> value`` pairs and their metadata
    companions, but not the ``_key.source`` marker; ``to_map()`` adds that
    (and ``_key.error`` on failure) to produce the flat map consumed by
    property sources.
    """

    key: str
    source: str
    status_code: Optional[int] = None
    entries: Dict[str, str] = field(default_factory=dict)
    error: Optional[EtcdAccessError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.status_code in SUCCESS_STATUSES

    @property
    def value(self) -> Optional[str]:
        return self.entries.get(self.key)

    def to_map(self) -> Dict[str, str]:
        result = {meta_key(self.key, "source"): self.source}
        if self.error is not None:
            # entries from a failed call are never trusted
            result[meta_key(self.key, "error")] = self.error.describe()
            return result
        result.update(self.entries)
        return result

    def raise_for_error(self) -> "EtcdResult":
        """Raise the captured error, or NetworkError on an unsuccessful status."""
        if self.error is not None:
            raise self.error
        if self.status_code not in SUCCESS_STATUSES:
            raise NetworkError(
                f"etcd returned HTTP {self.status_code} for {self.key!r}",
                key=self.key,
                status_code=self.status_code,
            )
        return self


__all__ = ["EtcdResult", "SUCCESS_STATUSES", "meta_key"]
