"""Default configuration provider backed by etcd property sources."""

import asyncio
import logging
import threading
from typing import Dict, List, Mapping, Optional, Sequence

from .configuration import Configuration
from .property_source import EtcdPropertySource
from .result import meta_key
from .settings import get_root_key


class ConfigurationProvider:
    """Holds the current Configuration and builds new ones.

    Features:
    - Lazy build from property sources, lowest ordinal first so higher
      ordinals win on conflicting keys
    - Replaceable configuration (``set_configuration``)
    - Thread-safe operations
    - Async start/get helpers that keep HTTP off the event loop
    """

    def __init__(
        self, property_sources: Optional[Sequence[EtcdPropertySource]] = None
    ) -> None:
        if property_sources is None:
            property_sources = [EtcdPropertySource(directory=get_root_key() or "")]

        self._property_sources: List[EtcdPropertySource] = list(property_sources)
        self._config: Optional[Configuration] = None
        self._lock = threading.RLock()
        self._logger = logging.getLogger("etcd_config_bridge.provider")

    @property
    def property_sources(self) -> List[EtcdPropertySource]:
        return list(self._property_sources)

    def _build(self) -> Configuration:
        ordered = sorted(self._property_sources, key=lambda s: s.ordinal)
        properties: Dict[str, str] = {}
        for source in ordered:
            properties.update(source.get_properties())
        config = Configuration(properties, sources=[s.name for s in ordered])
        self._logger.info(
            "etcd_configuration_built",
            extra={
                "event": {"category": ["config"], "action": "built"},
                "config": {
                    "sources": list(config.sources),
                    "keys_loaded": len(config.properties()),
                },
            },
        )
        return config

    def get_configuration(self) -> Configuration:
        with self._lock:
            if self._config is None:
                self._config = self._build()
            return self._config

    def create_configuration(
        self, properties: Mapping[str, str], sources: Sequence[str] = ()
    ) -> Configuration:
        return Configuration(properties, sources=sources)

    def set_configuration(self, config: Configuration) -> None:
        if config is None:
            raise ValueError("config must not be None")
        if not isinstance(config, Configuration):
            raise TypeError(f"expected Configuration, got {type(config).__name__}")
        with self._lock:
            self._config = config
        self._logger.info(
            "etcd_configuration_replaced",
            extra={"event": {"category": ["config"], "action": "replaced"}},
        )

    def is_configuration_settable(self) -> bool:
        return True

    def reload(self) -> Configuration:
        """Rebuild from the property sources, replacing the current configuration."""
        config = self._build()
        with self._lock:
            self._config = config
        return config

    def _load_initial(self) -> bool:
        """Load the configuration. Returns True if no source reported an error."""
        try:
            config = self.reload()
        except Exception as e:
            self._logger.error(
                "etcd_configuration_load_failed",
                extra={
                    "event": {"category": ["config"], "action": "load_failed"},
                    "error": {"message": str(e), "type": type(e).__name__},
                },
                exc_info=True,
            )
            return False
        failed = [
            source.name
            for source in self._property_sources
            if meta_key(source.directory, "error") in config
        ]
        if failed:
            self._logger.warning(
                "etcd_configuration_partially_loaded",
                extra={
                    "event": {"category": ["config"], "action": "load_incomplete"},
                    "config": {"failed_sources": failed},
                },
            )
        return not failed

    async def start(self) -> bool:
        """Load the configuration in a worker thread. Returns True if successful."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._load_initial)

    async def get_all_configs(self) -> Dict[str, str]:
        with self._lock:
            if self._config is not None:
                return self._config.properties()
        loop = asyncio.get_running_loop()
        config = await loop.run_in_executor(None, self.get_configuration)
        return config.properties()


_default_provider: Optional[ConfigurationProvider] = None
_default_lock = threading.Lock()


def get_configuration_provider() -> ConfigurationProvider:
    """Return the process-wide provider over the default etcd accessor."""
    global _default_provider
    with _default_lock:
        if _default_provider is None:
            _default_provider = ConfigurationProvider()
        return _default_provider


__all__ = ["ConfigurationProvider", "get_configuration_provider"]
