"""
Serializers convert records to and from their data representation.

Serializer is the interface adapters and records call. JSONSerializer maps
declared fields onto a plain dict: attributes go through their transform,
belongs_to relationships are embedded (or reduced to the related key when
declared with embedded=False) and has_many relationships become lists.

Deserialization assigns fields through the normal accessors. Callers that
must not dirty the record (load, did_save) wrap it in suspended_changes().
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from recordstate.fields import FieldDescriptor
from recordstate.record_array import RecordArray
from recordstate.transforms import get_transform

logger = logging.getLogger(__name__)


class Serializer(ABC):
    """Interface between records and their wire representation."""

    @abstractmethod
    def serialize(self, record: Any) -> Any:
        """Return the representation of record."""

    @abstractmethod
    def deserialize(self, record: Any, data: Any) -> Any:
        """Populate record's declared fields from data and return record."""

    def key_for_attribute_name(self, name: str) -> str:
        """Payload key for a field. Override for camelCase or prefixed keys."""
        return name

    def serialize_many(self, records: Iterable[Any]) -> List[Any]:
        return [self.serialize(record) for record in records]

    def deserialize_many(self, record_array: RecordArray, data: Optional[Iterable[Any]]) -> RecordArray:
        """Replace record_array's content with records loaded from data."""
        record_type = record_array.record_type
        records = [record_type.load(item) for item in data or ()]
        record_array._replace_content(records)
        logger.debug(f"Deserialized {len(records)} {record_type.__name__} record(s)")
        record_array.is_loaded = True
        return record_array


class JSONSerializer(Serializer):
    """Dict-based serializer for JSON payloads."""

    def serialize(self, record: Any) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for name, descriptor in type(record).fields.items():
            if descriptor.read_only:
                continue
            key = self.key_for_attribute_name(name)
            value = getattr(record, name)
            if descriptor.is_attribute:
                payload[key] = get_transform(descriptor.transform).serialize(value)
            elif descriptor.is_many:
                payload[key] = self.serialize_many(value)
            else:
                payload[key] = self._serialize_related(descriptor, value)
        return payload

    def _serialize_related(self, descriptor: FieldDescriptor, related: Any) -> Any:
        if related is None:
            return None
        if descriptor.embedded:
            return self.serialize(related)
        return related.primary_key_value

    def deserialize(self, record: Any, data: Any) -> Any:
        if not data:
            return record
        for name, descriptor in type(record).fields.items():
            key = self.key_for_attribute_name(name)
            if key not in data:
                continue
            value = data[key]
            if descriptor.is_attribute:
                setattr(record, name, get_transform(descriptor.transform).deserialize(value))
            elif descriptor.is_many:
                # In place, so the owner keeps watching the same array
                getattr(record, name).deserialize_many(value)
                record.notify_field_changed(name)
            else:
                setattr(record, name, self._deserialize_related(descriptor, value))
        return record

    def _deserialize_related(self, descriptor: FieldDescriptor, value: Any) -> Any:
        if value is None:
            return None
        related_type = descriptor.resolve_related_type()
        if isinstance(value, related_type):
            return value
        if isinstance(value, dict):
            return related_type.load(value)
        # A bare key: identity only, nothing loaded
        return related_type.create(**{related_type.primary_key: value})
