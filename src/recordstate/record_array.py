"""
RecordArray: list-like container of records with its own RecordState.

Used for to-many relationships and for collection fetches (load_many,
adapter find_all/find_query). The array becomes dirty when its membership
changes or one of its records becomes dirty, as long as it is ready. Its own
dirty signal is what an owning record watches for a has_many field.
"""
import logging
from collections.abc import MutableSequence
from typing import Any, Iterable, List, Optional, Type, Union

from recordstate.client import resolve_client
from recordstate.observer import ChangeObserver
from recordstate.state import RecordState

logger = logging.getLogger(__name__)

_CONTENT_KEY = '[]'


class RecordArray(RecordState, MutableSequence):
    """Ordered collection of records of one type."""

    def __init__(self, type: Union[Type, str, None] = None, content: Optional[Iterable[Any]] = None):
        self._init_state(is_new=False)
        self.type = type
        self._content: List[Any] = []
        self._observer = ChangeObserver(self, self._on_content_changed)
        with self._observer.suspended():
            for item in content or ():
                self.append(item)

    @classmethod
    def create_with_content(cls, type: Union[Type, str, None] = None,
                            content: Optional[Iterable[Any]] = None) -> 'RecordArray':
        return cls(type=type, content=content)

    @property
    def record_type(self) -> Type:
        """The element record class (resolved lazily from a name)."""
        from recordstate.fields import FieldRegistry
        return FieldRegistry.resolve_type(self.type)

    # ========== SEQUENCE PROTOCOL ==========

    def __len__(self) -> int:
        return len(self._content)

    def __getitem__(self, index):
        return self._content[index]

    def __setitem__(self, index, value) -> None:
        if isinstance(index, slice):
            removed = self._content[index]
            added = list(value)
            self._content[index] = added
        else:
            removed = [self._content[index]]
            self._content[index] = value
            added = [value]
        for item in removed:
            self._unwatch_item(item)
        for item in added:
            self._watch_item(item)
        self._observer.notify(_CONTENT_KEY)

    def __delitem__(self, index) -> None:
        removed = self._content[index] if isinstance(index, slice) else [self._content[index]]
        del self._content[index]
        for item in removed:
            self._unwatch_item(item)
        self._observer.notify(_CONTENT_KEY)

    def insert(self, index: int, value: Any) -> None:
        self._content.insert(index, value)
        self._watch_item(value)
        self._observer.notify(_CONTENT_KEY)

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, RecordArray):
            return self._content == other._content
        if isinstance(other, list):
            return self._content == other
        return NotImplemented

    __hash__ = None

    def __repr__(self) -> str:
        type_label = getattr(self.type, '__name__', self.type)
        return f"<RecordArray type={type_label} len={len(self._content)}>"

    def to_list(self) -> List[Any]:
        return list(self._content)

    # ========== CHANGE TRACKING ==========

    def _item_key(self, item: Any) -> str:
        return f"item:{id(item)}"

    def _watch_item(self, item: Any) -> None:
        if isinstance(item, RecordState):
            self._observer.watch(self._item_key(item), item)

    def _unwatch_item(self, item: Any) -> None:
        # The same record may appear twice; keep watching while any copy remains
        if not any(existing is item for existing in self._content):
            self._observer.unwatch(self._item_key(item))

    def _on_content_changed(self, key: str) -> None:
        if self._is_ready:
            self.is_dirty = True
        else:
            logger.debug(f"[SUSPEND] RecordArray change '{key}' while not ready")

    def _replace_content(self, records: Iterable[Any]) -> None:
        """Swap the whole content without dirtying the array."""
        with self._observer.suspended():
            del self[:]
            self.extend(records)

    def did_save(self) -> None:
        """Acknowledge a save of the owning record, which carried these items."""
        for item in self._content:
            if isinstance(item, RecordState):
                item.is_dirty = False
        self._acknowledge_save(was_new=False)

    # ========== SERIALIZATION ==========

    def deserialize_many(self, data: Optional[Iterable[Any]]) -> 'RecordArray':
        """Populate from a list of record representations via the serializer."""
        serializer = resolve_client(self.record_type).require_serializer()
        return serializer.deserialize_many(self, data)

    def serialize_many(self) -> List[Any]:
        serializer = resolve_client(self.record_type).require_serializer()
        return serializer.serialize_many(self)
