from dataclasses import dataclass

from app.storage.taxonomy import DocumentType


@dataclass(frozen=True)
class ParsedFilename:
    """Decoded parts of a stored filename."""

    entity_id: str
    document_type: DocumentType
    suffix: str
    extension: str


@dataclass(frozen=True)
class ParseFailure:
    """Returned instead of ParsedFilename when a name does not match the grammar."""

    filename: str
    reason: str
