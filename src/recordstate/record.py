"""
Record: the addressable domain object, and its class-level surface.

    class Post(Record):
        title = attr('string')
        comments = has_many('Comment')

    post = Post.create(title='Hello')      # new, clean
    post.title = 'Hello, world'            # new and ready -> dirty
    post.save_record()                     # delegated to the client's adapter

    loaded = Post.load({'id': 1, 'title': 'x'})   # loaded, clean
    Post.find(1)                                  # -> find_by_key(1, None)

Construction, copy() and load() all assign fields inside the observer's
suspended() bracket, so the initial population never dirties the record.

RecordMeta provides the class properties primary_key, resource_name and
fields; the fetch entry points are classmethods on Record.
"""
import copy as copy_module
import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional, TypeVar

from recordstate.client import Client, resolve_client, type_name
from recordstate.exceptions import RecordRoutingError
from recordstate.fields import FieldRegistry, attr
from recordstate.observer import ChangeObserver
from recordstate.record_array import RecordArray
from recordstate.state import RecordState

logger = logging.getLogger(__name__)

R = TypeVar('R', bound='Record')


class RecordMeta(type):
    """Metaclass for record types.

    Accepts an optional client at class definition:

        class Post(Record, client=my_client):
            ...
    """

    def __new__(mcs, name: str, bases: tuple, namespace: dict, client: Optional[Client] = None, **kwargs):
        cls = super().__new__(mcs, name, bases, namespace, **kwargs)
        if client is not None:
            cls._client = client
        FieldRegistry.register_type(cls)
        return cls

    def __init__(cls, name: str, bases: tuple, namespace: dict, client: Optional[Client] = None, **kwargs):
        super().__init__(name, bases, namespace, **kwargs)

    @property
    def primary_key(cls) -> str:
        """Primary key field name: the client's per-type override, else 'id'.

        Read on every access, so reconfiguring the client takes effect at once.
        """
        client = resolve_client(cls, required=False)
        if client is None:
            return 'id'
        return client.primary_key_for(cls)

    @property
    def resource_name(cls) -> str:
        """Type name without its namespace: app.models.PostGroup -> 'PostGroup'."""
        return type_name(cls).rsplit('.', 1)[-1]

    @property
    def fields(cls):
        return FieldRegistry.fields_of(cls)


class Record(RecordState, metaclass=RecordMeta):
    """Base class for all records."""

    id = attr('number')

    _client: Optional[Client] = None

    def __init__(self, **values: Any):
        self._init_state(is_new=True)
        self.__data: Optional[Dict[str, Any]] = None
        self._observer = ChangeObserver(self, self._on_field_changed)

        fields = type(self).fields
        with self._observer.suspended():
            for name, value in values.items():
                if name not in fields:
                    raise TypeError(f"{type(self).__name__} has no field '{name}'")
                setattr(self, name, value)

    @property
    def _data(self) -> Dict[str, Any]:
        """Raw field storage. Use the declared fields instead."""
        if self.__data is None:
            self.__data = {}
        return self.__data

    @property
    def fields(self):
        return type(self).fields

    @property
    def primary_key_value(self) -> Any:
        return getattr(self, type(self).primary_key)

    def _primary_key_name(self) -> str:
        return type(self).primary_key

    def __repr__(self) -> str:
        flags = [flag for flag in ('new', 'loaded', 'dirty') if getattr(self, f'is_{flag}')]
        return f"<{type(self).__name__} {type(self).primary_key}={self.primary_key_value!r} {'|'.join(flags) or 'clean'}>"

    # ========== COPY ==========

    def copy(self: R, deep: bool = False) -> R:
        """Copy declared field values into a fresh, clean instance.

        Relationships are copied by reference whatever `deep` says; a to-many
        field gets its own RecordArray holding the same records. With deep,
        attribute values are deep-copied.
        """
        clone = type(self)()
        with clone.suspended_changes():
            for name, descriptor in self.fields.items():
                value = self._data.get(name)
                if value is None:
                    continue
                if descriptor.is_attribute and deep:
                    value = copy_module.deepcopy(value)
                elif descriptor.is_many:
                    value = value.to_list()
                setattr(clone, name, value)
        logger.debug(f"Copied {self!r} -> {clone!r} (deep={deep})")
        return clone

    def copy_with_state(self: R, deep: bool = False) -> R:
        """copy() plus the source's is_new / is_loaded / is_dirty flags."""
        return self.copy_state(self.copy(deep))

    # ========== ACKNOWLEDGEMENTS ==========

    def did_save(self, data: Any = None) -> None:
        """Apply a successful save, optionally merging the adapter's response."""
        was_new = self.is_new
        if data is not None:
            with self.suspended_changes():
                self.deserialize(data)
        for name, descriptor in self.fields.items():
            if descriptor.is_many:
                array = self._data.get(name)
                if array is not None:
                    array.did_save()
        self._acknowledge_save(was_new)

    def teardown(self) -> None:
        """Stop tracking related records."""
        self._observer.teardown()

    # ========== DELEGATION ==========

    def save_record(self) -> Any:
        return resolve_client(type(self)).require_adapter().save_record(self)

    def delete_record(self) -> Any:
        return resolve_client(type(self)).require_adapter().delete_record(self)

    def serialize(self) -> Any:
        return resolve_client(type(self)).require_serializer().serialize(self)

    def deserialize(self: R, data: Any) -> R:
        return resolve_client(type(self)).require_serializer().deserialize(self, data)

    # ========== CLASS-LEVEL API ==========

    @classmethod
    def create(cls, **values: Any):
        """Allocate, populate without tracking, then mark ready."""
        return cls(**values)

    @classmethod
    def find_all(cls) -> Any:
        return resolve_client(cls).require_adapter().find_all(cls)

    @classmethod
    def find_query(cls, params: Optional[Mapping] = None) -> Any:
        return resolve_client(cls).require_adapter().find_query(cls, params)

    @classmethod
    def find_by_key(cls, key: Any, params: Optional[Mapping] = None) -> Any:
        return resolve_client(cls).require_adapter().find_by_key(cls, key, params)

    # The primary key is configurable, so "id" is not always accurate
    find_by_id = find_by_key

    @classmethod
    def find(cls, params: Any = None) -> Any:
        """Route to find_by_key / find_query / find_all based on params.

        - scalar (str, int, float): find_by_key(params, None)
        - mapping holding the primary key: find_by_key(key, remaining params)
        - other mapping: find_query(params)
        - None: find_all()

        The caller's mapping is left untouched.

        Raises:
            RecordRoutingError: For any other params type.
        """
        if params is None:
            return cls.find_all()
        if isinstance(params, (str, int, float)) and not isinstance(params, bool):
            return cls.find_by_key(params, None)
        if isinstance(params, Mapping):
            primary_key = cls.primary_key
            if primary_key in params:
                remaining = dict(params)
                key = remaining.pop(primary_key)
                return cls.find_by_key(key, remaining)
            return cls.find_query(params)
        raise RecordRoutingError(
            f"Cannot route find() params of type {type(params).__name__} for {cls.__name__}"
        )

    @classmethod
    def load(cls, data: Any):
        """Create a record directly from its data representation.

        The record is not ready while deserializing and comes out loaded and
        clean.
        """
        record = cls.create()
        with record.suspended_changes():
            record.deserialize(data)
            record.is_loaded = True
        logger.debug(f"Loaded {record!r}")
        return record

    @classmethod
    def load_many(cls, data: Any) -> RecordArray:
        """Create a loaded RecordArray of records from a list of representations."""
        array = RecordArray.create_with_content(type=cls)
        array.deserialize_many(data)
        array.is_loaded = True
        return array
