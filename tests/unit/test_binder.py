"""
Tests for argument binding and zero values.
"""

import datetime
import uuid
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional

import pytest
from pydantic import BaseModel, Field

import sample_contracts
from soapbridge.binding import ArgumentBinder, default_for, zero_value
from soapbridge.binding.binder import fold_field_names
from soapbridge.contracts import ParameterDescriptor
from soapbridge.exceptions import ArgumentBindingError


@pytest.fixture
def binder():
    return ArgumentBinder()


@pytest.fixture
def add(calculator):
    (operation,) = calculator.find_overloads("Add")
    return operation


@pytest.fixture
def place_order(echo):
    (operation,) = echo.find_overloads("PlaceOrder")
    return operation


class TestArgumentBinder:
    """Test binding documents to a single overload."""

    def test_binds_all_fields(self, binder, add):
        result = binder.bind(add, {"a": 1, "b": 2})

        assert result.arguments == (1, 2)
        assert result.score == 2

    def test_missing_fields_get_zero_values(self, binder, add):
        result = binder.bind(add, {})

        assert result.arguments == (0, 0)
        assert result.score == 0

    def test_field_names_are_case_insensitive(self, binder, add):
        result = binder.bind(add, {"A": 1})

        assert result.arguments == (1, 0)
        assert result.score == 1

    def test_exact_case_wins(self, binder, add):
        result = binder.bind(add, {"A": 5, "a": 1})

        assert result.arguments == (1, 0)

    def test_first_folded_match_in_document_order(self, binder, place_order):
        result = binder.bind(place_order, {"NOTE": "first", "Note": "second"})

        assert result.arguments[1] == "first"

    def test_unknown_fields_are_ignored(self, binder, add):
        result = binder.bind(add, {"a": 1, "b": 2, "c": 3})

        assert result.arguments == (1, 2)
        assert result.score == 2

    def test_lax_conversion(self, binder, add):
        result = binder.bind(add, {"a": "5", "b": 2.0})

        assert result.arguments == (5, 2)

    def test_strict_conversion_rejects_strings(self, add):
        with pytest.raises(ArgumentBindingError):
            ArgumentBinder(strict=True).bind(add, {"a": "5"})

    def test_conversion_failure_is_hard(self, binder, add):
        with pytest.raises(ArgumentBindingError) as exc_info:
            binder.bind(add, {"a": "not-a-number"})

        error = exc_info.value
        assert error.error_code == "ARGUMENT_BINDING_ERROR"
        assert error.details["parameter"] == "a"
        assert error.details["signature"] == "Add(a: int, b: int) -> int"
        assert error.details["errors"][0]["type"] == "int_parsing"

    @pytest.mark.parametrize("document", [[1, 2], "a=1", 42, None])
    def test_non_object_document_does_not_match(self, binder, add, document):
        assert binder.bind(add, document) is None

    def test_model_parameter_and_declared_default(self, binder, place_order):
        result = binder.bind(place_order, {"Order": {"id": "7", "item": "pen", "priority": "high"}})

        order, note = result.arguments
        assert order == sample_contracts.Order(id=7, item="pen", priority=sample_contracts.Priority.HIGH)
        assert note is None
        assert result.score == 1

    def test_model_member_names_are_case_insensitive(self, binder, place_order):
        result = binder.bind(place_order, {"Order": {"ID": 7, "Item": "x", "PRIORITY": "high"}})

        order, _ = result.arguments
        assert order == sample_contracts.Order(id=7, item="x", priority=sample_contracts.Priority.HIGH)

    def test_model_member_exact_case_wins(self, binder, place_order):
        result = binder.bind(place_order, {"order": {"ID": 1, "id": 2}})

        assert result.arguments[0].id == 2

    def test_missing_model_with_required_fields_is_none(self, binder, place_order):
        result = binder.bind(place_order, {"note": "rush"})

        assert result.arguments == (None, "rush")


class Colour(Enum):
    RED = 1
    GREEN = 2


class Settings(BaseModel):
    retries: int = 3
    tags: list[str] = Field(default_factory=list)


class Required(BaseModel):
    id: int


@dataclass
class Point:
    x: int = 0
    y: int = 0


class TestZeroValues:
    """Test zero values for missing parameters."""

    @pytest.mark.parametrize(
        "annotation, expected",
        [
            (int, 0),
            (float, 0.0),
            (bool, False),
            (str, ""),
            (bytes, b""),
            (Decimal, Decimal(0)),
            (datetime.datetime, datetime.datetime.min),
            (datetime.timedelta, datetime.timedelta(0)),
            (uuid.UUID, uuid.UUID(int=0)),
            (Optional[int], None),
            (int | None, None),
            (list[int], []),
            (dict[str, int], {}),
            (set[int], set()),
            (tuple[int, str], ()),
            (Colour, Colour.RED),
            (Literal["fast", "slow"], "fast"),
            (Annotated[int, "meta"], 0),
        ],
    )
    def test_zero_value(self, annotation, expected):
        assert zero_value(annotation) == expected

    def test_models_are_default_constructed(self):
        assert zero_value(Settings) == Settings()
        assert zero_value(Point) == Point()

    def test_models_with_required_fields_have_no_zero(self):
        assert zero_value(Required) is None

    def test_declared_default_is_copied(self):
        default: list[int] = [1, 2]
        parameter = ParameterDescriptor.create("values", list[int], default)

        value = default_for(parameter)

        assert value == [1, 2]
        assert value is not default


class Route(BaseModel):
    name: str
    stops: list[Point] = Field(default_factory=list)
    legs: dict[str, Point] = Field(default_factory=dict)
    origin: Optional[Point] = None


class TestFieldNameFolding:
    """Test case-insensitive member names in nested documents."""

    def test_nested_members_are_rekeyed(self):
        folded = fold_field_names(
            Route,
            {
                "NAME": "north",
                "Stops": [{"X": 1, "Y": 2}],
                "legs": {"first": {"x": 3, "Y": 4}},
                "Origin": {"X": 5},
            },
        )

        assert folded == {
            "name": "north",
            "stops": [{"x": 1, "y": 2}],
            "legs": {"first": {"x": 3, "y": 4}},
            "origin": {"x": 5},
        }
        assert Route.model_validate(folded).stops == [Point(1, 2)]

    def test_unmatched_keys_are_kept(self):
        assert fold_field_names(Point, {"X": 1, "z": 9}) == {"x": 1, "z": 9}

    def test_scalars_pass_through(self):
        assert fold_field_names(int, "5") == "5"
        assert fold_field_names(list[int], [1, 2]) == [1, 2]
