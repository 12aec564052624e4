"""
Argument binding.

Turns a loosely typed request document into the ordered argument list of
one operation overload. Missing fields are filled with zero values and
never fail; a supplied field that cannot be converted fails the whole
overload attempt. The score counts explicitly matched fields so the
resolver can prefer the overload whose fields the caller actually sent.
"""

import collections.abc
import dataclasses
import types
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Annotated, Any, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel, ValidationError

from ..contracts.descriptors import OperationDescriptor, ParameterDescriptor
from ..exceptions import ArgumentBindingError
from .defaults import default_for

_MISSING = object()


@dataclass(frozen=True)
class BindingResult:
    """Arguments bound for one overload and how many fields matched explicitly."""

    arguments: tuple[Any, ...]
    score: int


class ArgumentBinder:
    """Binds request documents to operation parameters."""

    def __init__(self, strict: bool = False):
        self.strict = strict

    def bind(self, operation: OperationDescriptor, document: Any) -> BindingResult | None:
        """Bind ``document`` to ``operation``.

        Returns:
            BindingResult, or None when the document is not object-shaped.

        Raises:
            ArgumentBindingError: If a supplied field cannot be converted.
        """
        if not isinstance(document, Mapping):
            return None

        fields = _FieldIndex(document)
        arguments: list[Any] = []
        score = 0
        for parameter in operation.parameters:
            raw = fields.lookup(parameter.name)
            if raw is _MISSING:
                arguments.append(default_for(parameter))
                continue
            arguments.append(self._convert(operation, parameter, raw))
            score += 1

        return BindingResult(arguments=tuple(arguments), score=score)

    def _convert(self, operation: OperationDescriptor, parameter: ParameterDescriptor, raw: Any) -> Any:
        try:
            return parameter.adapter.validate_python(
                fold_field_names(parameter.annotation, raw), strict=self.strict
            )
        except ValidationError as e:
            raise ArgumentBindingError(
                f"Cannot convert field '{parameter.name}' of '{operation.name}' "
                f"to {parameter.annotation!r}",
                details={
                    "operation": operation.name,
                    "signature": operation.signature(),
                    "parameter": parameter.name,
                    "errors": [
                        {"type": err["type"], "msg": err["msg"], "loc": list(err["loc"])}
                        for err in e.errors()
                    ],
                },
            ) from e


def fold_field_names(annotation: Any, value: Any) -> Any:
    """Re-key nested documents to the field names declared by ``annotation``.

    Member names of models and dataclasses match case-insensitively, the same
    way top-level parameters do. Keys that match no field are kept as sent.
    """
    origin = get_origin(annotation)
    args = get_args(annotation)
    if origin is Annotated:
        return fold_field_names(args[0], value)
    if origin in (Union, types.UnionType):
        arms = [arm for arm in args if arm is not type(None)]
        if len(arms) == 1:
            return fold_field_names(arms[0], value)
        for arm in arms:
            if _declared_fields(arm) is not None:
                return fold_field_names(arm, value)
        return value

    if isinstance(value, Mapping):
        fields = _declared_fields(annotation)
        if fields is not None:
            return _fold_mapping(fields, value)
        if origin in _MAPPING_ORIGINS and len(args) == 2:
            return {key: fold_field_names(args[1], item) for key, item in value.items()}
        return value

    if isinstance(value, (list, tuple)) and args:
        if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
            items = [fold_field_names(item_type, item) for item_type, item in zip(args, value)]
            items.extend(value[len(args):])
        elif origin in _SEQUENCE_ORIGINS:
            items = [fold_field_names(args[0], item) for item in value]
        else:
            return value
        return tuple(items) if isinstance(value, tuple) else items
    return value


_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)
_SEQUENCE_ORIGINS = (
    list,
    tuple,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.Iterable,
)


def _declared_fields(annotation: Any) -> dict[str, Any] | None:
    """Field name -> annotation for models and dataclasses, else None."""
    if not isinstance(annotation, type):
        return None
    if issubclass(annotation, BaseModel):
        return {
            field.alias or name: field.annotation
            for name, field in annotation.model_fields.items()
        }
    if dataclasses.is_dataclass(annotation):
        try:
            hints = get_type_hints(annotation, include_extras=True)
        except (NameError, TypeError):
            hints = {}
        return {f.name: hints.get(f.name, f.type) for f in dataclasses.fields(annotation)}
    return None


def _fold_mapping(fields: dict[str, Any], value: Mapping[Any, Any]) -> dict[Any, Any]:
    index = _FieldIndex(value)
    folded: dict[Any, Any] = {}
    consumed = set()
    for name, field_type in fields.items():
        key = index.key_for(name)
        if key is _MISSING:
            continue
        folded[name] = fold_field_names(field_type, value[key])
        consumed.add(key)
    for key, item in value.items():
        if key not in consumed and key not in folded:
            folded[key] = item
    return folded


class _FieldIndex:
    """Case-insensitive view of a document; an exact-case key wins over folded ones."""

    def __init__(self, document: Mapping[Any, Any]):
        self._document = document
        self._folded: dict[str, Any] = {}
        for key in document:
            if isinstance(key, str):
                self._folded.setdefault(key.casefold(), key)

    def key_for(self, name: str) -> Any:
        if name in self._document:
            return name
        return self._folded.get(name.casefold(), _MISSING)

    def lookup(self, name: str) -> Any:
        key = self.key_for(name)
        if key is _MISSING:
            return _MISSING
        return self._document[key]
