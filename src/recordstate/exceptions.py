"""Error taxonomy for recordstate.

Collaborator failures (adapter, serializer) are not wrapped: they propagate
to the caller unchanged.
"""


class RecordStateError(Exception):
    """Base class for all recordstate errors."""


class FieldConfigurationError(RecordStateError, ValueError):
    """Raised when field declarations for a record type are inconsistent."""


class RecordRoutingError(RecordStateError, TypeError):
    """Raised when find() cannot decide how to route its params."""


class ClientNotConfiguredError(RecordStateError, RuntimeError):
    """Raised when a record needs a client, adapter or serializer and none is set."""


class RecordNotFoundError(RecordStateError, LookupError):
    """Raised by an adapter when no record exists for a key."""
