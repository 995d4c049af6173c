"""
Declared fields and the per-type FieldRegistry.

Record types declare their fields as class attributes:

    class Post(Record):
        title = attr('string')
        author = belongs_to('Author')
        comments = has_many('Comment')

Each accessor registers an immutable FieldDescriptor with FieldRegistry when
the class body is executed (__set_name__). FieldRegistry.fields_of() builds
the ordered field table of a type on first access by walking its MRO, caches
it, and refuses further registrations for that type afterwards.

Accessors store values in the record's raw data and then call the record's
notify_field_changed(). Relationship accessors also hand the related record
(or the RecordArray of a to-many field) to the record's ChangeObserver so
that its dirtiness propagates to the owner.
"""
import copy
import dataclasses
import inspect
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Type, Union

from recordstate.client import type_name
from recordstate.exceptions import FieldConfigurationError
from recordstate.record_array import RecordArray
from recordstate.state import RecordState
from recordstate.transforms import has_transform

logger = logging.getLogger(__name__)

ATTRIBUTE = 'attribute'
RELATIONSHIP = 'relationship'

ONE = 'one'
MANY = 'many'


@dataclass(frozen=True)
class FieldDescriptor:
    """Immutable metadata for one declared field, shared by all instances."""
    name: str
    kind: str
    transform: Optional[str] = None
    related_type: Union[Type, str, None] = None
    cardinality: Optional[str] = None
    read_only: bool = False
    embedded: bool = True
    default: Any = None

    @property
    def is_attribute(self) -> bool:
        return self.kind == ATTRIBUTE

    @property
    def is_relationship(self) -> bool:
        return self.kind == RELATIONSHIP

    @property
    def is_many(self) -> bool:
        return self.cardinality == MANY

    def resolve_related_type(self) -> Type:
        """Related record class, resolving names given as strings."""
        return FieldRegistry.resolve_type(self.related_type)


class FieldRegistry:
    """Registry of field descriptors, keyed by record type identity.

    Also indexes record types by fully-qualified name and resource name so
    relationships can refer to types that are defined later.

    Thread safety: Not thread-safe (types are expected to be defined at import).
    """
    _declared: Dict[type, Dict[str, FieldDescriptor]] = {}
    _computed: Dict[type, Mapping[str, FieldDescriptor]] = {}
    _types_by_name: Dict[str, type] = {}

    @classmethod
    def register_field(cls, record_type: type, name: str, descriptor: FieldDescriptor) -> None:
        """Add a descriptor for (record_type, name).

        Registering an identical descriptor again is a no-op. The same name
        with the same kind replaces the options.

        Raises:
            FieldConfigurationError: If the name is already registered with a
                different kind, or the field table of record_type (or of a
                subclass) has already been computed.
        """
        if descriptor.name != name:
            descriptor = dataclasses.replace(descriptor, name=name)

        for computed_type in cls._computed:
            if record_type in computed_type.__mro__:
                raise FieldConfigurationError(
                    f"Cannot register field '{name}' on {record_type.__name__}: "
                    f"fields of {computed_type.__name__} are already in use"
                )

        declared = cls._declared.setdefault(record_type, {})
        existing = declared.get(name)
        if existing is not None:
            if existing == descriptor:
                return
            if existing.kind != descriptor.kind:
                raise FieldConfigurationError(
                    f"Field '{name}' on {record_type.__name__} is already registered as "
                    f"{existing.kind}, cannot register it as {descriptor.kind}"
                )
            logger.debug(f"[REGISTRY] Replacing options of {record_type.__name__}.{name}")

        declared[name] = descriptor
        logger.debug(f"[REGISTRY] Registered {descriptor.kind} {record_type.__name__}.{name}")

    @classmethod
    def fields_of(cls, record_type: type) -> Mapping[str, FieldDescriptor]:
        """Ordered, read-only field table of record_type (memoized)."""
        fields = cls._computed.get(record_type)
        if fields is not None:
            return fields

        collected: Dict[str, FieldDescriptor] = {}
        for klass in reversed(record_type.__mro__):
            for name, descriptor in cls._declared.get(klass, {}).items():
                collected[name] = descriptor

        # A subclass may shadow a field with a plain attribute or property
        visible = {
            name: descriptor for name, descriptor in collected.items()
            if isinstance(inspect.getattr_static(record_type, name, None), Field)
        }

        fields = MappingProxyType(visible)
        cls._computed[record_type] = fields
        logger.debug(f"[REGISTRY] Computed {len(fields)} field(s) for {record_type.__name__}")
        return fields

    @classmethod
    def register_type(cls, record_type: type) -> None:
        """Index a record type by its qualified and resource names."""
        qualified = type_name(record_type)
        short = qualified.rsplit('.', 1)[-1]
        previous = cls._types_by_name.get(short)
        if previous is not None and previous is not record_type:
            # Relationships declared by this name resolve to the newest type
            logger.warning(
                f"[REGISTRY] Resource name '{short}' rebound from {type_name(previous)} to {qualified}"
            )
        cls._types_by_name[qualified] = record_type
        cls._types_by_name[short] = record_type

    @classmethod
    def resolve_type(cls, ref: Union[Type, str, None]) -> Type:
        """Resolve a class, fully-qualified name or resource name to a record type.

        Raises:
            FieldConfigurationError: If a name does not match any defined type.
        """
        if isinstance(ref, type):
            return ref
        if ref is None:
            raise FieldConfigurationError("Relationship has no related type")
        try:
            return cls._types_by_name[ref]
        except KeyError:
            raise FieldConfigurationError(f"Unknown record type '{ref}'") from None


class Field:
    """Base accessor. Registers its descriptor when bound to a class."""

    kind: str = ''

    def __init__(self, **options: Any):
        self._options = options
        self.name: Optional[str] = None
        self.descriptor: Optional[FieldDescriptor] = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        self.descriptor = FieldDescriptor(name=name, kind=self.kind, **self._options)
        FieldRegistry.register_field(owner, name, self.descriptor)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


class AttributeField(Field):
    kind = ATTRIBUTE

    def __get__(self, record: Any, owner: Optional[type] = None) -> Any:
        if record is None:
            return self
        data = record._data
        if self.name in data:
            return data[self.name]
        default = self.descriptor.default
        if callable(default):
            # Materialize factory defaults once so in-place edits stick
            data[self.name] = default()
            return data[self.name]
        return copy.copy(default)

    def __set__(self, record: Any, value: Any) -> None:
        record._data[self.name] = value
        record.notify_field_changed(self.name)


class BelongsToField(Field):
    kind = RELATIONSHIP

    def __get__(self, record: Any, owner: Optional[type] = None) -> Any:
        if record is None:
            return self
        return record._data.get(self.name)

    def __set__(self, record: Any, value: Any) -> None:
        record._data[self.name] = value
        record._observer.watch(self.name, value if isinstance(value, RecordState) else None)
        record.notify_field_changed(self.name)


class HasManyField(Field):
    kind = RELATIONSHIP

    def __get__(self, record: Any, owner: Optional[type] = None) -> Any:
        if record is None:
            return self
        array = record._data.get(self.name)
        if array is None:
            # Created lazily; not a mutation of the owner
            array = RecordArray.create_with_content(type=self.descriptor.related_type)
            record._data[self.name] = array
            record._observer.watch(self.name, array)
        return array

    def __set__(self, record: Any, value: Any) -> None:
        if value is not None and not isinstance(value, RecordArray):
            value = RecordArray.create_with_content(type=self.descriptor.related_type, content=value)
        record._data[self.name] = value
        record._observer.watch(self.name, value)
        record.notify_field_changed(self.name)


def attr(transform: str = 'string', *, default: Any = None, read_only: bool = False) -> AttributeField:
    """Declare a scalar attribute with a named value transform.

    Args:
        transform: Transform name ('string', 'number', 'boolean', 'date', 'json').
        default: Value returned while nothing is stored. A callable is used as
            a factory and its result is stored on first access.
        read_only: Deserialized from payloads but never serialized.
    """
    if not has_transform(transform):
        raise FieldConfigurationError(f"Unknown attribute transform '{transform}'")
    return AttributeField(transform=transform, default=default, read_only=read_only)


def belongs_to(related_type: Union[Type, str], *, embedded: bool = True, read_only: bool = False) -> BelongsToField:
    """Declare a to-one relationship.

    Args:
        related_type: Record class or its (qualified or resource) name.
        embedded: Serialize the related record in full; otherwise only its key.
        read_only: Deserialized from payloads but never serialized.
    """
    return BelongsToField(related_type=related_type, cardinality=ONE,
                          embedded=embedded, read_only=read_only)


def has_many(related_type: Union[Type, str], *, read_only: bool = False) -> HasManyField:
    """Declare a to-many relationship held in a RecordArray."""
    return HasManyField(related_type=related_type, cardinality=MANY, read_only=read_only)
