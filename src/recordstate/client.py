"""
Client configuration: the adapter records delegate to, plus per-type options.

A Client is an explicit object. A record type finds its client in this order:

1. A client bound at class definition: class Post(Record, client=my_client)
2. The client installed for the current context via client_context()
3. The process client installed with set_current_client()

Lifecycle: the application creates a Client at startup and either binds it
to its record types or installs it once with set_current_client(). Tests
use client_context() to scope a client to a block.
"""
import contextvars
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Generator, Optional, TYPE_CHECKING, Union

from recordstate.exceptions import ClientNotConfiguredError

if TYPE_CHECKING:
    from recordstate.adapter import Adapter
    from recordstate.serializer import Serializer

logger = logging.getLogger(__name__)

DEFAULT_PRIMARY_KEY = 'id'


def type_name(record_type: Union[type, str]) -> str:
    """Fully-qualified name of a record type ('app.models.Post')."""
    if isinstance(record_type, str):
        return record_type
    return f"{record_type.__module__}.{record_type.__qualname__}"


@dataclass
class Client:
    """Adapter plus per-type configuration keyed by fully-qualified type name."""
    adapter: Optional['Adapter'] = None
    model_configs: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def configure_model(self, record_type: Union[type, str], **options: Any) -> None:
        """Set options (currently 'primary_key') for a record type or type name."""
        key = type_name(record_type)
        config = self.model_configs.setdefault(key, {})
        for option, value in options.items():
            if option in config and config[option] != value:
                logger.warning(f"Overwriting {option}={config[option]!r} for {key} with {value!r}")
            config[option] = value

    def model_config(self, record_type: Union[type, str]) -> Dict[str, Any]:
        return self.model_configs.get(type_name(record_type), {})

    def primary_key_for(self, record_type: Union[type, str]) -> str:
        return self.model_config(record_type).get('primary_key') or DEFAULT_PRIMARY_KEY

    @property
    def serializer(self) -> Optional['Serializer']:
        return self.adapter.serializer if self.adapter is not None else None

    def require_adapter(self) -> 'Adapter':
        if self.adapter is None:
            raise ClientNotConfiguredError("Client has no adapter")
        return self.adapter

    def require_serializer(self) -> 'Serializer':
        serializer = self.require_adapter().serializer
        if serializer is None:
            raise ClientNotConfiguredError("Client adapter has no serializer")
        return serializer


_current_client: Optional[Client] = None

_context_client: contextvars.ContextVar[Optional[Client]] = contextvars.ContextVar(
    'recordstate_client', default=None
)


def set_current_client(client: Optional[Client]) -> None:
    """Install the process client (None uninstalls it)."""
    global _current_client
    _current_client = client
    logger.debug(f"Current client set: {client!r}")


def clear_current_client() -> None:
    set_current_client(None)


def get_current_client() -> Optional[Client]:
    """Context client if one is active, else the process client."""
    client = _context_client.get()
    return client if client is not None else _current_client


@contextmanager
def client_context(client: Client) -> Generator[Client, None, None]:
    """Use client for every record type without a bound client inside the block."""
    token = _context_client.set(client)
    try:
        yield client
    finally:
        _context_client.reset(token)


def resolve_client(record_type: Optional[type] = None, required: bool = True) -> Optional[Client]:
    """Client for record_type following the documented resolution order.

    Raises:
        ClientNotConfiguredError: If required and no client is available.
    """
    client = getattr(record_type, '_client', None) if record_type is not None else None
    if client is None:
        client = get_current_client()
    if client is None and required:
        name = record_type.__name__ if record_type is not None else 'records'
        raise ClientNotConfiguredError(
            f"No client configured for {name}. Call set_current_client() or use client_context()."
        )
    return client
