"""Property source backed by an etcd directory."""

import logging
from typing import Dict, Optional

from .accessor import EtcdAccessor, get_default_accessor
from .result import meta_key


class EtcdPropertySource:
    """Exposes the flattened listing of one etcd directory.

    The map is returned exactly as the accessor produced it, metadata and
    ``_<directory>.error`` entries included; merging several sources is up to
    the caller.
    """

    DEFAULT_ORDINAL = 1000

    def __init__(
        self,
        accessor: Optional[EtcdAccessor] = None,
        directory: str = "",
        name: Optional[str] = None,
        ordinal: int = DEFAULT_ORDINAL,
    ):
        self._logger = logging.getLogger("etcd_config_bridge.property_source")
        self._accessor = accessor
        self._directory = directory
        self._name = name
        self._ordinal = ordinal

    @property
    def accessor(self) -> EtcdAccessor:
        if self._accessor is None:
            self._accessor = get_default_accessor()
        return self._accessor

    @property
    def name(self) -> str:
        if self._name is None:
            return f"etcd:{self.accessor.server_url}/{self._directory.lstrip('/')}"
        return self._name

    @property
    def directory(self) -> str:
        return self._directory

    @property
    def ordinal(self) -> int:
        return self._ordinal

    def get_properties(self) -> Dict[str, str]:
        properties = self.accessor.get_properties(self._directory, recursive=True)
        error = properties.get(meta_key(self._directory, "error"))
        if error is not None:
            self._logger.warning(
                "etcd_property_source_load_failed",
                extra={
                    "event": {"category": ["config"], "action": "load_failed"},
                    "etcd": {"source": self.name, "directory": self._directory},
                    "error": {"message": error},
                },
            )
        return properties

    def get(self, key: str) -> Optional[str]:
        """Current value of a single key, None if missing or unreadable."""
        return self.accessor.read(key).value

    def __repr__(self) -> str:
        return f"EtcdPropertySource(name={self.name!r}, ordinal={self._ordinal})"


__all__ = ["EtcdPropertySource"]
