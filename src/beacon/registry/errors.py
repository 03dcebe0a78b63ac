"""Registry error taxonomy."""


class RegistryError(Exception):
    """Base class for every error raised by the registry."""


class InvalidArgument(RegistryError, ValueError):
    """The caller passed a service the registry cannot store."""


class NotFound(RegistryError, LookupError):
    """No records exist for the requested service."""


class Unsupported(RegistryError, NotImplementedError):
    """The operation is not implemented by this backend."""


class BackendFailure(RegistryError):
    """A store call failed while running *operation*."""

    def __init__(self, operation: str, detail: str):
        super().__init__(f"{operation}: {detail}")
        self.operation = operation
        self.detail = detail


class MarshalFailure(BackendFailure):
    """A record could not be converted to or from its stored form."""


class QueryFailure(BackendFailure):
    """A read against the store failed."""


class WriteFailure(BackendFailure):
    """A put or delete against the store failed."""


class PartialWriteFailure(WriteFailure):
    """A batched write came back with unprocessed items."""

    def __init__(self, operation: str, count: int):
        super().__init__(operation, f"{count} items were not registered")
        self.count = count


class StoreError(Exception):
    """Raised by Store implementations when the backend rejects a call."""


class RecordError(ValueError):
    """Raised by the record mapper for values it cannot encode or decode."""
