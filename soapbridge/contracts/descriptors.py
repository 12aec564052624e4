"""
Contract descriptors.

Descriptors are built once at discovery time and never mutated. Each
parameter carries a cached pydantic TypeAdapter so binding a request does
no per-call type inspection.
"""

import inspect
import types
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Union, get_args, get_origin

from pydantic import TypeAdapter

from ..exceptions import OperationNotFoundError

NO_DEFAULT: Any = inspect.Parameter.empty


def is_nullable(annotation: Any) -> bool:
    """True when ``annotation`` admits None (Optional, ``X | None``, Any)."""
    if annotation is Any or annotation is None or annotation is type(None):
        return True
    if get_origin(annotation) in (Union, types.UnionType):
        return type(None) in get_args(annotation)
    return False


@dataclass(frozen=True)
class ParameterDescriptor:
    """A single operation parameter."""

    name: str
    annotation: Any
    nullable: bool
    default: Any = NO_DEFAULT
    adapter: TypeAdapter | None = field(default=None, compare=False, repr=False)

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT

    @classmethod
    def create(cls, name: str, annotation: Any, default: Any = NO_DEFAULT) -> "ParameterDescriptor":
        if annotation is inspect.Parameter.empty:
            annotation = Any
        return cls(
            name=name,
            annotation=annotation,
            nullable=is_nullable(annotation),
            default=default,
            adapter=TypeAdapter(annotation),
        )


@dataclass(frozen=True)
class OperationDescriptor:
    """One overload of a named remote operation."""

    name: str
    remote_name: str
    parameters: tuple[ParameterDescriptor, ...]
    return_type: Any
    handle: Callable[..., Any] = field(compare=False, repr=False)

    @property
    def parameter_names(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.parameters)

    def signature(self) -> str:
        """Human readable signature, e.g. ``Add(a: int, b: int) -> int``."""
        params = ", ".join(f"{p.name}: {_type_name(p.annotation)}" for p in self.parameters)
        returns = "None" if self.return_type is None else _type_name(self.return_type)
        return f"{self.name}({params}) -> {returns}"


@dataclass(frozen=True, eq=False)
class ServiceDescriptor:
    """A bridgeable contract and its overload sets."""

    name: str
    contract: type
    operations: Mapping[str, tuple[OperationDescriptor, ...]]

    def find_overloads(self, operation_name: str) -> tuple[OperationDescriptor, ...]:
        """Return the overloads of ``operation_name`` (case-insensitive).

        Raises:
            OperationNotFoundError: If the service has no such operation.
        """
        overloads = self.operations.get(operation_name.lower())
        if not overloads:
            raise OperationNotFoundError(
                f"Method '{operation_name}' not found on service '{self.name}'",
                details={"service": self.name, "operation": operation_name},
            )
        return overloads

    @property
    def operation_names(self) -> list[str]:
        return [overloads[0].name for overloads in self.operations.values()]


def _type_name(annotation: Any) -> str:
    if annotation is Any:
        return "Any"
    if isinstance(annotation, type) and get_origin(annotation) is None:
        return annotation.__name__
    return str(annotation).replace("typing.", "")


def freeze_operations(
    grouped: Mapping[str, list[OperationDescriptor]],
) -> Mapping[str, tuple[OperationDescriptor, ...]]:
    return types.MappingProxyType({key: tuple(value) for key, value in grouped.items()})
