from __future__ import annotations

from typing import Any

import pytest
from pydantic import BaseModel

from flowkit.ai.document import MediaPart, Part, TextPart
from flowkit.errors import SchemaValidationError
from flowkit.schema import Shape, validate


class Point(BaseModel):
    x: int
    y: int


def test_validate_returns_typed_value() -> None:
    point = validate(Shape.of(Point), {"x": 1, "y": "2"})

    assert point == Point(x=1, y=2)


def test_validate_reports_first_mismatch_path() -> None:
    with pytest.raises(SchemaValidationError) as exc_info:
        validate(Shape.of(Point), {"x": 1, "y": "north"})

    assert exc_info.value.path == "y"
    assert exc_info.value.actual == "north"
    assert "int" in exc_info.value.expected


def test_validate_nested_path() -> None:
    with pytest.raises(SchemaValidationError) as exc_info:
        validate(Shape.of(list[Point]), [{"x": 1, "y": 2}, {"x": 1}])

    assert exc_info.value.path == "1.y"


def test_part_accepts_exactly_one_variant() -> None:
    shape = Shape.of(Part)

    assert isinstance(shape.validate({"text": "hi"}), TextPart)
    assert isinstance(shape.validate({"media": {"url": "https://example.com/cat.png"}}), MediaPart)
    with pytest.raises(SchemaValidationError):
        shape.validate({"text": "hi", "media": {"url": "https://example.com/cat.png"}})
    with pytest.raises(SchemaValidationError):
        shape.validate({})


def test_any_shape_accepts_everything() -> None:
    shape = Shape.any()

    assert shape.is_any
    assert shape.validate(object) is object
    assert shape.json_schema() is None
    assert Shape.of(Any).is_any


def test_shape_of_is_idempotent() -> None:
    shape = Shape.of(Point)

    assert Shape.of(shape) is shape
    assert shape.json_schema()["required"] == ["x", "y"]
