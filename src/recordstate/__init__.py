"""
Record state tracking for client-side persistence.

Records know whether they are new, loaded or dirty. Field and relationship
mutations are funnelled into a single change handler; dirtiness of related
records propagates to their owner; construction, copy and load populate
fields without dirtying anything. Persistence and wire formats are delegated
to a pluggable adapter and serializer.

Quick Start:
    >>> from recordstate import Client, MemoryAdapter, Record, attr, has_many, set_current_client
    >>>
    >>> set_current_client(Client(adapter=MemoryAdapter()))
    >>>
    >>> class Comment(Record):
    ...     body = attr('string')
    >>>
    >>> class Post(Record):
    ...     title = attr('string')
    ...     comments = has_many(Comment)
    >>>
    >>> post = Post.load({'id': 1, 'title': 'Hello', 'comments': [{'id': 7, 'body': 'hi'}]})
    >>> post.is_dirty
    False
    >>> post.comments[0].body = 'edited'
    >>> post.is_dirty
    True

Modules:
    - record: Record base class and the record type surface (find, load, ...)
    - state: RecordState flags and the dirty transition table
    - observer: ChangeObserver (notification, suspension, relationship watching)
    - fields: attr/belongs_to/has_many and the FieldRegistry
    - record_array: RecordArray collection container
    - client: Client configuration and its lifecycle
    - serializer: Serializer interface and JSONSerializer
    - adapter: Adapter interface and MemoryAdapter
    - transforms: attribute value transforms
"""

from recordstate.exceptions import (
    RecordStateError,
    FieldConfigurationError,
    RecordRoutingError,
    ClientNotConfiguredError,
    RecordNotFoundError,
)

from recordstate.client import (
    Client,
    set_current_client,
    get_current_client,
    clear_current_client,
    client_context,
    resolve_client,
)

from recordstate.state import RecordState
from recordstate.observer import ChangeObserver

from recordstate.fields import (
    FieldDescriptor,
    FieldRegistry,
    attr,
    belongs_to,
    has_many,
)

from recordstate.record_array import RecordArray
from recordstate.record import Record, RecordMeta

from recordstate.serializer import Serializer, JSONSerializer
from recordstate.adapter import Adapter, MemoryAdapter

from recordstate.transforms import Transform, register_transform, get_transform

__all__ = [
    # Errors
    'RecordStateError',
    'FieldConfigurationError',
    'RecordRoutingError',
    'ClientNotConfiguredError',
    'RecordNotFoundError',
    # Configuration
    'Client',
    'set_current_client',
    'get_current_client',
    'clear_current_client',
    'client_context',
    'resolve_client',
    # State and observation
    'RecordState',
    'ChangeObserver',
    # Fields
    'FieldDescriptor',
    'FieldRegistry',
    'attr',
    'belongs_to',
    'has_many',
    # Records
    'Record',
    'RecordMeta',
    'RecordArray',
    # Collaborators
    'Serializer',
    'JSONSerializer',
    'Adapter',
    'MemoryAdapter',
    # Transforms
    'Transform',
    'register_transform',
    'get_transform',
]

__version__ = '1.0.0'
