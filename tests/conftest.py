import os
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

import pytest

from app.naming.base import BaseNamingStrategy
from app.naming.versioned import VersionedNamingStrategy
from app.scanner.scanner import DocumentScanner
from app.storage.paths import DocumentRoot
from app.storage.taxonomy import DocumentType, EntityKind

PlaceFile = Callable[..., Path]


@pytest.fixture()
def document_root(tmp_path: Path) -> DocumentRoot:
    """An initialized document tree under a temporary directory."""
    root = DocumentRoot(tmp_path / "uploads")
    root.initialize_storage()
    return root


@pytest.fixture()
def naming() -> BaseNamingStrategy:
    return VersionedNamingStrategy()


@pytest.fixture()
def scanner(document_root: DocumentRoot, naming: BaseNamingStrategy) -> DocumentScanner:
    return DocumentScanner(document_root, naming)


@pytest.fixture()
def place_file(document_root: DocumentRoot) -> PlaceFile:
    """Drop a file straight into a category folder, optionally with a fixed mtime."""

    def _place(
        entity_kind: EntityKind,
        document_type: DocumentType,
        name: str,
        content: bytes = b"%PDF-1.4 test",
        modified_at: datetime | None = None,
    ) -> Path:
        path = document_root.category_path_for(entity_kind, document_type) / name
        path.write_bytes(content)
        if modified_at is not None:
            timestamp = modified_at.replace(tzinfo=timezone.utc).timestamp()
            os.utime(path, (timestamp, timestamp))
        return path

    return _place
