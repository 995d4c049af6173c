"""
Adapters perform persistence operations on behalf of records.

Adapter is the interface Record delegates to. An adapter owns the outcome of
each operation: it calls the record's acknowledgements (begin_saving,
did_save, did_fail, did_delete) and returns whatever handle suits its
transport. Errors are reported with did_fail() and then re-raised.

MemoryAdapter keeps serialized payloads in process, keyed by resource name
and primary key. It is synchronous and returns the record (or RecordArray)
itself as the handle.
"""
import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, Mapping, Optional

from recordstate.exceptions import RecordNotFoundError
from recordstate.record_array import RecordArray
from recordstate.serializer import JSONSerializer, Serializer

logger = logging.getLogger(__name__)


class Adapter(ABC):
    """Persistence interface consumed by records and record types."""

    def __init__(self, serializer: Optional[Serializer] = None):
        self.serializer = serializer if serializer is not None else JSONSerializer()

    @abstractmethod
    def save_record(self, record: Any) -> Any:
        """Create or update record."""

    @abstractmethod
    def delete_record(self, record: Any) -> Any:
        """Delete record."""

    @abstractmethod
    def find_all(self, record_type: type) -> Any:
        """Fetch every record of record_type."""

    @abstractmethod
    def find_query(self, record_type: type, params: Optional[Mapping]) -> Any:
        """Fetch the records of record_type matching params."""

    @abstractmethod
    def find_by_key(self, record_type: type, key: Any, params: Optional[Mapping] = None) -> Any:
        """Fetch a single record of record_type by primary key."""


class MemoryAdapter(Adapter):
    """In-process store of serialized records."""

    def __init__(self, serializer: Optional[Serializer] = None):
        super().__init__(serializer)
        self._tables: Dict[str, Dict[Any, Dict[str, Any]]] = {}
        self._last_keys: Dict[str, int] = {}

    def _table(self, record_type: type) -> Dict[Any, Dict[str, Any]]:
        return self._tables.setdefault(record_type.resource_name, {})

    def _next_key(self, record_type: type) -> int:
        resource = record_type.resource_name
        table = self._table(record_type)
        last = max(self._last_keys.get(resource, 0), *(k for k in table if isinstance(k, int)), 0)
        self._last_keys[resource] = last + 1
        return last + 1

    def _rows(self, record_type: type) -> Iterator[Dict[str, Any]]:
        for row in self._table(record_type).values():
            yield copy.deepcopy(row)

    def seed(self, record_type: type, rows: Any) -> None:
        """Store raw payloads directly, as if saved earlier."""
        key_name = self.serializer.key_for_attribute_name(record_type.primary_key)
        table = self._table(record_type)
        for row in rows:
            table[row[key_name]] = copy.deepcopy(row)

    def save_record(self, record: Any) -> Any:
        record_type = type(record)
        record.begin_saving()
        try:
            payload = self.serializer.serialize(record)
            key_name = self.serializer.key_for_attribute_name(record_type.primary_key)
            if payload.get(key_name) is None:
                payload[key_name] = self._next_key(record_type)
            self._table(record_type)[payload[key_name]] = copy.deepcopy(payload)
        except Exception as e:
            record.did_fail(e)
            raise

        logger.info(f"Saved {record_type.resource_name} {payload[key_name]!r}")
        record.did_save({key_name: payload[key_name]})
        return record

    def delete_record(self, record: Any) -> Any:
        record_type = type(record)
        key = record.primary_key_value
        table = self._table(record_type)
        if key not in table:
            error = RecordNotFoundError(f"{record_type.resource_name} {key!r} not found")
            record.did_fail(error)
            raise error

        del table[key]
        logger.info(f"Deleted {record_type.resource_name} {key!r}")
        record.did_delete()
        return record

    def find_all(self, record_type: type) -> RecordArray:
        return record_type.load_many(list(self._rows(record_type)))

    def find_query(self, record_type: type, params: Optional[Mapping]) -> RecordArray:
        """Rows whose values equal every item of params."""
        params = params or {}
        rows = [
            row for row in self._rows(record_type)
            if all(row.get(self.serializer.key_for_attribute_name(k)) == v for k, v in params.items())
        ]
        return record_type.load_many(rows)

    def find_by_key(self, record_type: type, key: Any, params: Optional[Mapping] = None) -> Any:
        table = self._table(record_type)
        if key not in table:
            raise RecordNotFoundError(f"{record_type.resource_name} {key!r} not found")
        if params:
            logger.debug(f"MemoryAdapter ignores find_by_key params: {dict(params)}")
        return record_type.load(copy.deepcopy(table[key]))
