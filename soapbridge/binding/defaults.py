"""
Zero values for parameters the request document does not supply.

Missing fields never fail binding: they are filled with the zero value of
the declared type, the way a default-constructed value type would be.
"""

import copy
import dataclasses
import datetime
import enum
import uuid
from collections.abc import Mapping, MutableMapping, MutableSequence, MutableSet, Sequence
from collections.abc import Set as AbstractSet
from decimal import Decimal
from typing import Annotated, Any, Literal, get_args, get_origin

from pydantic import BaseModel, TypeAdapter, ValidationError

from ..contracts.descriptors import ParameterDescriptor, is_nullable

_SCALAR_ZEROS: dict[Any, Any] = {
    bool: False,
    int: 0,
    float: 0.0,
    complex: 0j,
    str: "",
    bytes: b"",
    Decimal: Decimal(0),
    datetime.datetime: datetime.datetime.min,
    datetime.date: datetime.date.min,
    datetime.time: datetime.time.min,
    datetime.timedelta: datetime.timedelta(0),
    uuid.UUID: uuid.UUID(int=0),
}


def zero_value(annotation: Any) -> Any:
    """Return the zero value of ``annotation``; None when it has none."""
    if is_nullable(annotation):
        return None

    origin = get_origin(annotation)
    if origin is Annotated:
        return zero_value(get_args(annotation)[0])
    if origin is Literal:
        return get_args(annotation)[0]

    target = origin or annotation
    if target in _SCALAR_ZEROS:
        return _SCALAR_ZEROS[target]
    if not isinstance(target, type):
        return None

    if issubclass(target, enum.Enum):
        return next(iter(target), None)
    if issubclass(target, (str, bytes)):
        return target()
    if issubclass(target, tuple):
        return ()
    if issubclass(target, (Mapping, MutableMapping, dict)):
        return {}
    if issubclass(target, (AbstractSet, MutableSet, set, frozenset)):
        return frozenset() if issubclass(target, frozenset) else set()
    if issubclass(target, (Sequence, MutableSequence, list)):
        return []
    if issubclass(target, BaseModel) or dataclasses.is_dataclass(target):
        return _default_construct(annotation)
    return None


def default_for(parameter: ParameterDescriptor) -> Any:
    """Value bound to ``parameter`` when the document does not supply it."""
    if parameter.has_default:
        return copy.deepcopy(parameter.default)
    return zero_value(parameter.annotation)


def _default_construct(annotation: Any) -> Any:
    try:
        return TypeAdapter(annotation).validate_python({})
    except ValidationError:
        return None
