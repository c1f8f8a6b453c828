"""Conversion of response payloads into typed values.

:class:`Deserializer` runs three steps on a raw body:

1. :meth:`~Deserializer.decode` -- JSON text to Python objects.
2. ``unwrap`` -- pull the interesting part out of an envelope such as
   ``{"data": {...}, "meta": {...}}`` (identity by default).
3. :meth:`~Deserializer.to_one` / :meth:`~Deserializer.to_many` -- apply the
   caller's converter to a mapping, or to every mapping of a list.

Whatever goes wrong along the way -- invalid JSON, a list where a mapping was
expected, a ``KeyError`` or pydantic ``ValidationError`` inside the converter
-- surfaces as a single :class:`~bifrost.exceptions.DeserializationError`.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, Callable, Optional, TypeVar

from bifrost.exceptions import DeserializationError

T = TypeVar("T")

Converter = Callable[[Mapping[str, Any]], T]
Unwrapper = Callable[[Any], Any]


def identity(decoded: Any) -> Any:
    return decoded


def unwrap_field(name: str) -> Unwrapper:
    """Return an unwrapper extracting ``decoded[name]``.

    Example::

        Deserializer(unwrap=unwrap_field("data"))
    """

    def _unwrap(decoded: Any) -> Any:
        if not isinstance(decoded, Mapping):
            raise TypeError(f"expected an object with a '{name}' field, got {type(decoded).__name__}")
        return decoded[name]

    return _unwrap


class Deserializer:
    """Turns decoded payloads into typed values.

    Args:
        unwrap: Applied to the decoded payload before conversion.
            Defaults to :func:`identity`.
    """

    def __init__(self, unwrap: Optional[Unwrapper] = None) -> None:
        self._unwrap = unwrap or identity

    def decode(self, body: str) -> Any:
        """Decode a JSON body.

        Raises:
            DeserializationError: If *body* is not valid JSON.
        """
        try:
            return json.loads(body)
        except (TypeError, ValueError) as exc:
            raise DeserializationError(f"Invalid JSON payload: {exc}") from exc

    def to_one(self, decoded: Any, converter: Converter[T]) -> T:
        """Convert a decoded payload holding a single object.

        Raises:
            DeserializationError: If the unwrapped value is not a mapping or
                the converter raises.
        """
        value = self._apply_unwrap(decoded)
        if not isinstance(value, Mapping):
            raise DeserializationError(f"Expected an object, got {type(value).__name__}")
        return self._convert(value, converter)

    def to_many(self, decoded: Any, converter: Converter[T]) -> list[T]:
        """Convert a decoded payload holding a list of objects, keeping order.

        Raises:
            DeserializationError: If the unwrapped value is not a list, an
                element is not a mapping, or the converter raises.
        """
        value = self._apply_unwrap(decoded)
        if not isinstance(value, (list, tuple)):
            raise DeserializationError(f"Expected a list, got {type(value).__name__}")

        results: list[T] = []
        for index, item in enumerate(value):
            if not isinstance(item, Mapping):
                raise DeserializationError(
                    f"Expected an object at index {index}, got {type(item).__name__}"
                )
            results.append(self._convert(item, converter))
        return results

    def _apply_unwrap(self, decoded: Any) -> Any:
        try:
            return self._unwrap(decoded)
        except Exception as exc:
            raise DeserializationError(f"Could not unwrap response: {exc!r}") from exc

    @staticmethod
    def _convert(value: Mapping[str, Any], converter: Converter[T]) -> T:
        try:
            return converter(value)
        except Exception as exc:
            raise DeserializationError(f"Converter failed: {exc!r}") from exc
