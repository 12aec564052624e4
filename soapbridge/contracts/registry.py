"""
Contract discovery and registry.

Discovery walks modules and classes, keeps the ones marked with
``@bridge_contract`` and turns their public methods into overload sets.
It is expected to run once at process start; the resulting
ContractRegistry is read-only and safe for concurrent readers.
"""

import importlib
import inspect
import types
import typing
from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from pydantic.errors import PydanticUserError

from ..exceptions import ServiceNotFoundError
from ..logger import get_logger
from .decorators import OPERATION_MARKER, OperationMarker, contract_marker
from .descriptors import (
    OperationDescriptor,
    ParameterDescriptor,
    ServiceDescriptor,
    freeze_operations,
)

logger = get_logger(__name__)

_SKIPPED_BASES = (object, Protocol, typing.Generic)


class MalformedContractError(Exception):
    """Raised internally when a contract cannot be described."""


def discover(*sources: Any) -> tuple[ServiceDescriptor, ...]:
    """Discover bridgeable contracts in ``sources``.

    Sources may be modules, importable module names, classes, or iterables
    of these. Classes without the contract marker are ignored; malformed
    contracts are excluded with a warning.
    """
    services: list[ServiceDescriptor] = []
    seen: set[type] = set()
    for cls in _iter_candidate_classes(sources):
        if cls in seen:
            continue
        seen.add(cls)
        marker = contract_marker(cls)
        if marker is None:
            continue
        try:
            services.append(describe_contract(cls, marker.name))
        except MalformedContractError as e:
            logger.warning("Skipping malformed contract", contract=cls.__qualname__, reason=str(e))
    return tuple(services)


def describe_contract(cls: type, name: str) -> ServiceDescriptor:
    """Build the ServiceDescriptor of a single contract class."""
    grouped: dict[str, list[OperationDescriptor]] = {}
    for attr_name, func in _public_functions(cls):
        descriptor = _describe_operation(cls, attr_name, func)
        grouped.setdefault(descriptor.name.lower(), []).append(descriptor)

    return ServiceDescriptor(name=name, contract=cls, operations=freeze_operations(grouped))


def _describe_operation(cls: type, attr_name: str, func: types.FunctionType) -> OperationDescriptor:
    marker = getattr(func, OPERATION_MARKER, None) or OperationMarker()
    op_name = marker.name or attr_name

    try:
        hints = typing.get_type_hints(func)
    except (NameError, TypeError) as e:
        raise MalformedContractError(f"{cls.__qualname__}.{attr_name}: unresolvable annotation ({e})")

    signature = inspect.signature(func)
    parameters: list[ParameterDescriptor] = []
    for index, param in enumerate(signature.parameters.values()):
        if index == 0 and param.name in ("self", "cls"):
            continue
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            raise MalformedContractError(
                f"{cls.__qualname__}.{attr_name}: variadic parameter '{param.name}'"
            )
        try:
            parameters.append(
                ParameterDescriptor.create(
                    param.name, hints.get(param.name, inspect.Parameter.empty), param.default
                )
            )
        except PydanticUserError as e:
            raise MalformedContractError(
                f"{cls.__qualname__}.{attr_name}: unsupported type for '{param.name}' ({e})"
            )

    return_type = hints.get("return", Any)
    if return_type is type(None):
        return_type = None

    return OperationDescriptor(
        name=op_name,
        remote_name=marker.remote_name or op_name,
        parameters=tuple(parameters),
        return_type=return_type,
        handle=func,
    )


def _public_functions(cls: type) -> list[tuple[str, types.FunctionType]]:
    # Base classes first so declaration order reads top-down; overrides keep their slot.
    members: dict[str, types.FunctionType] = {}
    for klass in reversed(cls.__mro__):
        if klass in _SKIPPED_BASES or klass.__module__ in ("typing", "abc", "builtins"):
            continue
        for name, member in vars(klass).items():
            if name.startswith("_") or not inspect.isfunction(member):
                continue
            members[name] = member
    return list(members.items())


def _iter_candidate_classes(sources: Iterable[Any]) -> Iterable[type]:
    for source in sources:
        if isinstance(source, str):
            source = importlib.import_module(source)
        if isinstance(source, types.ModuleType):
            for value in vars(source).values():
                if isinstance(value, type) and value.__module__ == source.__name__:
                    yield value
        elif isinstance(source, type):
            yield source
        elif isinstance(source, Iterable):
            yield from _iter_candidate_classes(source)


class ContractRegistry:
    """Immutable snapshot of discovered services keyed by name (case-insensitive)."""

    def __init__(self, services: Iterable[ServiceDescriptor]):
        by_name: dict[str, ServiceDescriptor] = {}
        for service in services:
            key = service.name.lower()
            if key in by_name:
                logger.warning(
                    "Duplicate service name, keeping first",
                    service=service.name,
                    kept=by_name[key].contract.__qualname__,
                    dropped=service.contract.__qualname__,
                )
                continue
            by_name[key] = service
        self._services: Mapping[str, ServiceDescriptor] = types.MappingProxyType(by_name)

    @classmethod
    def from_sources(cls, *sources: Any) -> "ContractRegistry":
        """Run discovery over ``sources`` and freeze the result."""
        registry = cls(discover(*sources))
        logger.info("Contract registry built", services=registry.service_names)
        return registry

    @property
    def services(self) -> list[ServiceDescriptor]:
        return list(self._services.values())

    @property
    def service_names(self) -> list[str]:
        return [service.name for service in self._services.values()]

    def get_service(self, name: str) -> ServiceDescriptor:
        """Return the service registered under ``name``.

        Raises:
            ServiceNotFoundError: If no service matches.
        """
        service = self._services.get(name.lower())
        if service is None:
            raise ServiceNotFoundError(f"Service '{name}' not found", details={"service": name})
        return service

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._services

    def __len__(self) -> int:
        return len(self._services)
