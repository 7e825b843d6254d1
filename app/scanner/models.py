from dataclasses import dataclass
from datetime import datetime
from pathlib import Path, PurePosixPath

from app.storage.taxonomy import DocumentType


@dataclass(frozen=True)
class DocumentRecord:
    """Scan-derived metadata for one stored file. Never persisted."""

    entity_id: str
    document_type: DocumentType
    filename: str
    absolute_path: Path
    relative_path: PurePosixPath
    file_size_bytes: int
    last_modified_at: datetime
    mime_type: str = "application/octet-stream"
    suffix: str = ""
