"""
Value transforms for declared attributes.

A transform converts between the Python value held by a record and its wire
representation. Attributes name their transform when declared:

    class Post(Record):
        title = attr('string')
        published_at = attr('date')

The serializer looks the transform up by name. Transforms are stateless and
shared across all record types.
"""
import datetime
import json
from typing import Any, Dict

from recordstate.exceptions import FieldConfigurationError


class Transform:
    """Identity transform. Subclasses override serialize/deserialize."""

    def serialize(self, value: Any) -> Any:
        return value

    def deserialize(self, value: Any) -> Any:
        return value


class StringTransform(Transform):
    def serialize(self, value: Any) -> Any:
        return None if value is None else str(value)

    def deserialize(self, value: Any) -> Any:
        return None if value is None else str(value)


class NumberTransform(Transform):
    """Integers stay integers; anything else numeric becomes a float."""

    @staticmethod
    def _to_number(value: Any) -> Any:
        if value is None or value == '':
            return None
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, (int, float)):
            return value
        text = str(value)
        try:
            return int(text)
        except ValueError:
            return float(text)

    def serialize(self, value: Any) -> Any:
        return self._to_number(value)

    def deserialize(self, value: Any) -> Any:
        return self._to_number(value)


class BooleanTransform(Transform):
    _TRUE_STRINGS = frozenset({'true', 't', '1', 'yes', 'y'})

    def serialize(self, value: Any) -> Any:
        return None if value is None else bool(value)

    def deserialize(self, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            return value.strip().lower() in self._TRUE_STRINGS
        return bool(value)


class DateTransform(Transform):
    """ISO 8601 on the wire, datetime.date / datetime.datetime in memory."""

    def serialize(self, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, (datetime.date, datetime.datetime)):
            return value.isoformat()
        return str(value)

    def deserialize(self, value: Any) -> Any:
        if value is None or value == '':
            return None
        if isinstance(value, (datetime.date, datetime.datetime)):
            return value
        if isinstance(value, (int, float)):
            return datetime.datetime.fromtimestamp(value, tz=datetime.timezone.utc)
        text = str(value)
        if len(text) == 10:
            return datetime.date.fromisoformat(text)
        return datetime.datetime.fromisoformat(text.replace('Z', '+00:00'))


class JSONTransform(Transform):
    """Structured values; strings on the wire are decoded as JSON."""

    def deserialize(self, value: Any) -> Any:
        if isinstance(value, str):
            return json.loads(value)
        return value


_transforms: Dict[str, Transform] = {
    'string': StringTransform(),
    'number': NumberTransform(),
    'boolean': BooleanTransform(),
    'date': DateTransform(),
    'json': JSONTransform(),
}


def register_transform(name: str, transform: Transform) -> None:
    """Register a custom transform under name (replaces an existing one)."""
    _transforms[name] = transform


def get_transform(name: str) -> Transform:
    """Look up a transform by name.

    Raises:
        FieldConfigurationError: If no transform is registered under name.
    """
    try:
        return _transforms[name]
    except KeyError:
        raise FieldConfigurationError(
            f"Unknown attribute transform '{name}'. Known: {sorted(_transforms)}"
        ) from None


def has_transform(name: str) -> bool:
    return name in _transforms
