"""Read-only configuration view over a flat property map."""

from typing import Callable, Dict, Iterable, Iterator, Mapping, Optional, Tuple, Union

from .operator import ConfigOperator

Operator = Union[ConfigOperator, Callable[["Configuration"], "Configuration"]]


class Configuration(Mapping[str, str]):
    """Immutable ``str -> str`` view as produced by property sources.

    Keys starting with ``_`` are metadata (``_key.source``,
    ``_key.createdIndex``, ...); ``properties()`` hides them and ``meta()``
    groups them per key.
    """

    def __init__(self, properties: Mapping[str, str], sources: Iterable[str] = ()):
        self._properties: Dict[str, str] = dict(properties)
        self._sources: Tuple[str, ...] = tuple(sources)

    @property
    def sources(self) -> Tuple[str, ...]:
        return self._sources

    def __getitem__(self, key: str) -> str:
        return self._properties[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._properties)

    def __len__(self) -> int:
        return len(self._properties)

    def get_or_default(self, key: str, default: str) -> str:
        if default is None:
            raise ValueError("default must not be None")
        value = self._properties.get(key)
        return default if value is None else value

    def properties(self) -> Dict[str, str]:
        return {k: v for k, v in self._properties.items() if not k.startswith("_")}

    def meta(self, key: str) -> Dict[str, str]:
        """Metadata of ``key`` with the ``_key.`` prefix removed."""
        prefix = f"_{key}."
        return {
            k[len(prefix):]: v
            for k, v in self._properties.items()
            if k.startswith(prefix)
        }

    def with_(self, operator: Operator) -> "Configuration":
        """Apply an operator and return its result."""
        result: Optional[Configuration] = operator(self)
        if not isinstance(result, Configuration):
            raise TypeError(
                f"operator returned {type(result).__name__}, expected Configuration"
            )
        return result

    def __eq__(self, other) -> bool:
        if isinstance(other, Configuration):
            return self._properties == other._properties
        return super().__eq__(other)

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"Configuration(properties={len(self.properties())}, "
            f"sources={list(self._sources)!r})"
        )


__all__ = ["Configuration", "Operator"]
