from dataclasses import dataclass
from pathlib import Path, PurePosixPath


@dataclass(frozen=True)
class StoredDocument:
    """Outcome of a successful upload."""

    filename: str
    relative_path: PurePosixPath
    absolute_path: Path
    file_size_bytes: int
