class UploadError(Exception):
    """Base exception for the document write path."""


class UploadConflictError(UploadError):
    """Raised when the write lock for an entity and document type cannot be acquired."""


class UnsupportedExtensionError(UploadError, ValueError):
    """Raised when an upload's extension is not allowed."""


class DocumentWriteError(UploadError):
    """Raised when writing or renaming the stored file fails."""
