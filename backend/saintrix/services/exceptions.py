"""
Service-layer exceptions.

Store errors (SQLAlchemyError) propagate unchanged; only not-found and
version conflicts are translated so callers can tell them apart.
"""


class ServiceError(Exception):
    """Base exception for service operations."""
    pass


class RecordNotFoundError(ServiceError):
    """The row addressed by an update does not exist."""

    def __init__(self, table: str, record_id: str):
        self.table = table
        self.record_id = record_id
        super().__init__(f"{table} row not found: {record_id}")


class ConcurrentUpdateError(ServiceError):
    """The row changed between read and write (version mismatch)."""

    def __init__(self, table: str, record_id: str, expected_version=None, actual_version=None):
        self.table = table
        self.record_id = record_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        detail = f"{table} row {record_id} was modified concurrently"
        if expected_version is not None:
            detail += f" (expected version {expected_version}, found {actual_version})"
        super().__init__(detail)


class ExternalServiceError(ServiceError):
    """An external collaborator (LLM, storage, email transport) failed."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"{service}: {message}")
