"""Shape declarations and boundary validation.

A ``Shape`` describes the structure an action accepts or returns. Values
crossing an action boundary, or coming back from an external provider, are
checked with ``validate``; everything in between is plain Python data or
pydantic models.
"""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from flowkit.errors import SchemaValidationError


class Shape[T]:
    """Declared structure of a value, backed by a pydantic ``TypeAdapter``."""

    def __init__(self, tp: type[T] | Any) -> None:
        self.type = tp
        self._adapter: TypeAdapter[T] = TypeAdapter(tp)

    @classmethod
    def of(cls, tp: type[T] | Any) -> Shape[T]:
        if isinstance(tp, Shape):
            return tp
        return cls(tp)

    @classmethod
    def any(cls) -> Shape[Any]:
        return cls(Any)

    @property
    def is_any(self) -> bool:
        return self.type is Any

    def validate(self, value: Any) -> T:
        try:
            return self._adapter.validate_python(value)
        except PydanticValidationError as exc:
            raise _first_error(exc) from exc

    def json_schema(self) -> dict[str, Any] | None:
        if self.is_any:
            return None
        return self._adapter.json_schema()

    def __repr__(self) -> str:
        return f"Shape({getattr(self.type, '__name__', self.type)!s})"


def validate[T](shape: Shape[T], value: Any) -> T:
    """Validate ``value`` against ``shape`` and return the typed value.

    Raises:
        SchemaValidationError: On the first structural mismatch
    """
    return shape.validate(value)


def _first_error(exc: PydanticValidationError) -> SchemaValidationError:
    errors = exc.errors(include_url=False)
    if not errors:
        return SchemaValidationError("", str(exc), None)
    first = errors[0]
    path = ".".join(str(part) for part in first.get("loc", ()))
    expected = f"{first.get('type', 'value')} ({first.get('msg', '')})"
    return SchemaValidationError(path, expected, first.get("input"))
