"""Deprecated operator type for Configuration.with_()."""

import warnings
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .configuration import Configuration


class ConfigOperator(ABC):
    """Maps a Configuration to another Configuration.

    Operators act like decorators: the returned instance may restrict or
    rewrite what the input exposes (security constraints, views, ...).

    Deprecated: pass any ``Callable[[Configuration], Configuration]`` to
    ``Configuration.with_()`` instead. Defining a subclass emits a
    ``DeprecationWarning``.
    """

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        warnings.warn(
            f"{cls.__name__} subclasses ConfigOperator, which is deprecated; "
            "use a plain callable instead",
            DeprecationWarning,
            stacklevel=2,
        )

    @abstractmethod
    def operate(self, config: "Configuration") -> "Configuration":
        """Return the operated configuration, never None."""

    def __call__(self, config: "Configuration") -> "Configuration":
        return self.operate(config)


__all__ = ["ConfigOperator"]
