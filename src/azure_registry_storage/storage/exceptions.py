"""Common exception hierarchy for registry storage operations."""


class StorageError(Exception):
    """Base exception for all storage operations."""

    status_code = 500

    def __init__(self, message: str, key: str | None = None, cause: Exception | None = None):
        self.key = key
        self.cause = cause
        super().__init__(message)


class StorageNotFoundError(StorageError):
    """Raised when a requested key does not exist."""

    status_code = 404


class StorageConflictError(StorageError):
    """Raised when creating a resource that already exists."""

    status_code = 409


class StorageMalformedError(StorageError):
    """Raised when a stored document cannot be parsed."""


class StoragePermissionError(StorageError):
    """Raised when credentials are invalid or access is denied."""

    status_code = 403


class StorageConnectionError(StorageError):
    """Raised when the storage backend is unreachable."""

    status_code = 503


class StorageNotImplementedError(StorageError):
    """Raised for registry operations this storage does not support."""

    status_code = 501


class StorageConfigurationError(ValueError):
    """Raised when the plugin configuration is missing or invalid."""
