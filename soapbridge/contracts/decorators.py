"""
Contract declaration markers.

A bridgeable contract is a plain class (typically a ``typing.Protocol`` or
an abstract base) decorated with :func:`bridge_contract`. Its public
methods are the operations; :func:`operation` renames a method so that
several Python methods can form one overload set.

Usage:
    @bridge_contract("Calculator")
    class ICalculator(Protocol):
        @operation("Add")
        def add_pair(self, a: int, b: int) -> int: ...

        @operation("Add", remote_name="AddTriple")
        def add_triple(self, a: int, b: int, c: int) -> int: ...
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

CONTRACT_MARKER = "__bridge_contract__"
OPERATION_MARKER = "__bridge_operation__"

C = TypeVar("C", bound=type)
F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True)
class ContractMarker:
    """Declared identity of a bridgeable contract."""

    name: str


@dataclass(frozen=True)
class OperationMarker:
    """Declared operation name and remote operation name of a method."""

    name: str | None = None
    remote_name: str | None = None


def bridge_contract(name: str | None = None) -> Callable[[C], C]:
    """Mark a class as a bridgeable contract exposed under ``name``."""

    def decorator(cls: C) -> C:
        if not isinstance(cls, type):
            raise TypeError("bridge_contract can only decorate classes")
        setattr(cls, CONTRACT_MARKER, ContractMarker(name or cls.__name__))
        return cls

    return decorator


def operation(name: str | None = None, *, remote_name: str | None = None) -> Callable[[F], F]:
    """Set the operation name (and optionally the remote name) of a contract method."""

    def decorator(func: F) -> F:
        setattr(func, OPERATION_MARKER, OperationMarker(name, remote_name))
        return func

    return decorator


def contract_marker(obj: Any) -> ContractMarker | None:
    """Return the marker declared directly on ``obj``, if any."""
    if not isinstance(obj, type):
        return None
    marker = obj.__dict__.get(CONTRACT_MARKER)
    return marker if isinstance(marker, ContractMarker) else None
