"""Domain exceptions for the cache store.

Infrastructure failures (SQLite errors, missing connection) are kept apart
from schema problems so the refresh pipeline can map them onto a failure
kind without inspecting ``sqlite3`` exceptions itself.
"""


class CacheStoreError(Exception):
    """Base exception for all cache store errors."""


class StoreConnectionError(CacheStoreError):
    """Raised when the database connection is missing or cannot be opened."""

    def __init__(self, message: str = "Database not connected") -> None:
        """Initialize the connection error.

        Args:
            message: Human-readable error message.
        """
        super().__init__(message)


class StorageUnavailableError(CacheStoreError):
    """Raised when a write could not be committed.

    The prior snapshot is guaranteed to be intact when this is raised, so
    the caller may retry the same operation later.
    """

    def __init__(self, operation: str, message: str) -> None:
        """Initialize the error.

        Args:
            operation: Name of the store operation that failed.
            message: Underlying error description.
        """
        self.operation = operation
        super().__init__(f"Storage unavailable during {operation}: {message}")


class MigrationError(CacheStoreError):
    """Raised when a schema migration fails."""

    def __init__(self, version: int, message: str) -> None:
        """Initialize the migration error.

        Args:
            version: The migration version that failed.
            message: Human-readable error message.
        """
        self.version = version
        super().__init__(f"Migration {version} failed: {message}")
