"""etcd-config-bridge - flat property maps on top of the etcd v2 HTTP keys API."""

__version__ = "0.1.0"

from .core.accessor import VERSION_ERROR, EtcdAccessor, get_default_accessor
from .core.configuration import Configuration
from .core.errors import EtcdAccessError, InvalidConfiguration, NetworkError, ParseError
from .core.logging import setup_logging
from .core.operator import ConfigOperator  # Deprecated, kept for compatibility
from .core.property_source import EtcdPropertySource
from .core.provider import ConfigurationProvider, get_configuration_provider
from .core.result import EtcdResult

__all__ = [
    "ConfigOperator",  # Deprecated
    "Configuration",
    "ConfigurationProvider",
    "EtcdAccessError",
    "EtcdAccessor",
    "EtcdPropertySource",
    "EtcdResult",
    "InvalidConfiguration",
    "NetworkError",
    "ParseError",
    "VERSION_ERROR",
    "get_configuration_provider",
    "get_default_accessor",
    "setup_logging",
]
