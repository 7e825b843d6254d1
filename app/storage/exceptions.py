class StorageError(Exception):
    """Base exception for all document-storage errors."""


class ConfigurationFaultError(StorageError):
    """Raised when the document root cannot be created or accessed."""


class UnknownEntityKindOrTypeError(StorageError, ValueError):
    """Raised when a caller names an entity kind or document type outside the taxonomy."""


class InvalidEntityIdError(StorageError, ValueError):
    """Raised when an entity id cannot be embedded in a stored filename."""


class PathOutsideRootError(StorageError):
    """Raised when a relative path resolves outside the document root."""


class DocumentNotFoundError(StorageError):
    """Raised when a referenced document does not exist on disk."""
