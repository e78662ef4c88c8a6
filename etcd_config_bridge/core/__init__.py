"""Core components for the etcd v2 configuration bridge."""

from .accessor import EtcdAccessor, get_default_accessor
from .configuration import Configuration
from .errors import EtcdAccessError, InvalidConfiguration, NetworkError, ParseError
from .logging import setup_logging
from .operator import ConfigOperator
from .property_source import EtcdPropertySource
from .provider import ConfigurationProvider, get_configuration_provider
from .result import EtcdResult

__all__ = [
    "ConfigOperator",
    "Configuration",
    "ConfigurationProvider",
    "EtcdAccessError",
    "EtcdAccessor",
    "EtcdPropertySource",
    "EtcdResult",
    "InvalidConfiguration",
    "NetworkError",
    "ParseError",
    "get_configuration_provider",
    "get_default_accessor",
    "setup_logging",
]
