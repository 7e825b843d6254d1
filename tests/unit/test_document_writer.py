from collections.abc import Callable
from pathlib import Path, PurePosixPath
from unittest.mock import patch

import pytest

from app.naming.overwrite import OverwriteNamingStrategy
from app.naming.versioned import VersionedNamingStrategy
from app.scanner.scanner import DocumentScanner
from app.storage.exceptions import (
    DocumentNotFoundError,
    InvalidEntityIdError,
    UnknownEntityKindOrTypeError,
)
from app.storage.paths import DocumentRoot
from app.storage.taxonomy import DocumentType, EntityKind
from app.upload.exceptions import (
    DocumentWriteError,
    UnsupportedExtensionError,
    UploadConflictError,
)
from app.upload.locks import KeyedLockRegistry, hold_lock_file
from app.upload.writer import DocumentWriter

PlaceFile = Callable[..., Path]


def _folder_names(folder: Path) -> list[str]:
    return sorted(p.name for p in folder.iterdir() if not p.name.endswith(".lock"))


class TestStore:
    def test_writes_bytes_under_taxonomy_folder(self, document_root: DocumentRoot) -> None:
        writer = DocumentWriter(document_root, OverwriteNamingStrategy())

        stored = writer.store("driver", "d1", "Licenses", b"license-bytes", "license.JPG")

        assert stored.filename == "d1_Licenses_current.jpg"
        assert stored.relative_path == PurePosixPath(
            "Driver-Documents/Licenses/d1_Licenses_current.jpg"
        )
        assert stored.absolute_path.read_bytes() == b"license-bytes"
        assert stored.file_size_bytes == len(b"license-bytes")

    def test_leaves_no_temporary_files(self, document_root: DocumentRoot) -> None:
        writer = DocumentWriter(document_root, VersionedNamingStrategy())

        stored = writer.store(EntityKind.TRUCK, "t1", DocumentType.OR_CR_FILES, b"x", "or.pdf")

        assert _folder_names(stored.absolute_path.parent) == [stored.filename]

    def test_overwrite_policy_replaces_previous_upload(self, document_root: DocumentRoot) -> None:
        writer = DocumentWriter(document_root, OverwriteNamingStrategy())

        writer.store(EntityKind.TRUCK, "t1", DocumentType.OR_CR_FILES, b"old", "scan.png")
        stored = writer.store(EntityKind.TRUCK, "t1", DocumentType.OR_CR_FILES, b"new", "scan.pdf")

        assert _folder_names(stored.absolute_path.parent) == ["t1_OR-CR-Files_current.pdf"]
        assert stored.absolute_path.read_bytes() == b"new"

    def test_versioned_policy_keeps_history(self, document_root: DocumentRoot) -> None:
        writer = DocumentWriter(document_root, VersionedNamingStrategy())

        first = writer.store(EntityKind.CLIENT, "c1", DocumentType.BUSINESS_PERMITS, b"1", "p.pdf")
        second = writer.store(EntityKind.CLIENT, "c1", DocumentType.BUSINESS_PERMITS, b"2", "p.pdf")

        assert first.filename != second.filename
        assert _folder_names(first.absolute_path.parent) == sorted([first.filename, second.filename])

    def test_creates_missing_folder(self, tmp_path: Path) -> None:
        root = DocumentRoot(tmp_path / "fresh")
        writer = DocumentWriter(root, OverwriteNamingStrategy())

        stored = writer.store(EntityKind.HELPER, "h1", DocumentType.ID_PHOTOS, b"x", "id.png")

        assert stored.absolute_path.exists()


class TestStoreValidation:
    def test_rejects_type_outside_kind(self, document_root: DocumentRoot) -> None:
        writer = DocumentWriter(document_root, OverwriteNamingStrategy())

        with pytest.raises(UnknownEntityKindOrTypeError):
            writer.store(EntityKind.TRUCK, "t1", DocumentType.LICENSES, b"x", "l.pdf")

    def test_rejects_invalid_entity_id(self, document_root: DocumentRoot) -> None:
        writer = DocumentWriter(document_root, OverwriteNamingStrategy())

        with pytest.raises(InvalidEntityIdError):
            writer.store(EntityKind.TRUCK, "../t1", DocumentType.OR_CR_FILES, b"x", "or.pdf")

    def test_rejects_disallowed_extension(self, document_root: DocumentRoot) -> None:
        writer = DocumentWriter(
            document_root, OverwriteNamingStrategy(), allowed_extensions=["pdf", ".PNG"]
        )

        with pytest.raises(UnsupportedExtensionError, match="exe"):
            writer.store(EntityKind.TRUCK, "t1", DocumentType.OR_CR_FILES, b"x", "virus.exe")

    def test_allowed_extensions_are_case_insensitive(self, document_root: DocumentRoot) -> None:
        writer = DocumentWriter(
            document_root, OverwriteNamingStrategy(), allowed_extensions=["pdf", ".PNG"]
        )

        stored = writer.store(EntityKind.TRUCK, "t1", DocumentType.OR_CR_FILES, b"x", "or.png")

        assert stored.filename.endswith(".png")


class TestStoreFailures:
    def test_conflict_when_lock_is_held(self, document_root: DocumentRoot) -> None:
        locks = KeyedLockRegistry()
        writer = DocumentWriter(
            document_root, OverwriteNamingStrategy(), locks=locks, lock_timeout_seconds=0.01
        )
        key = (EntityKind.DRIVER, "d1", DocumentType.LICENSES)

        with locks.hold(key, timeout_seconds=1):
            with pytest.raises(UploadConflictError):
                writer.store(EntityKind.DRIVER, "d1", DocumentType.LICENSES, b"x", "l.jpg")

    def test_failed_rename_removes_temporary_file(self, document_root: DocumentRoot) -> None:
        writer = DocumentWriter(document_root, OverwriteNamingStrategy())
        folder = document_root.category_path_for(EntityKind.DRIVER, DocumentType.LICENSES)

        with patch("app.upload.writer.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(DocumentWriteError, match="disk full"):
                writer.store(EntityKind.DRIVER, "d1", DocumentType.LICENSES, b"x", "l.jpg")

        assert _folder_names(folder) == []

    def test_failed_write_keeps_previous_file(self, document_root: DocumentRoot) -> None:
        writer = DocumentWriter(document_root, OverwriteNamingStrategy())
        stored = writer.store(EntityKind.DRIVER, "d1", DocumentType.LICENSES, b"old", "l.jpg")

        with patch("app.upload.writer.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(DocumentWriteError):
                writer.store(EntityKind.DRIVER, "d1", DocumentType.LICENSES, b"new", "l.jpg")

        assert stored.absolute_path.read_bytes() == b"old"

    def test_lock_file_is_hidden_from_scans(
        self, document_root: DocumentRoot, scanner: DocumentScanner
    ) -> None:
        writer = DocumentWriter(document_root, OverwriteNamingStrategy())
        stored = writer.store(EntityKind.TRUCK, "t1", DocumentType.OR_CR_FILES, b"x", "or.pdf")

        assert (stored.absolute_path.parent / ".t1_OR-CR-Files.lock").exists()
        documents = scanner.scan(EntityKind.TRUCK, {"t1"})["t1"]
        assert documents[DocumentType.OR_CR_FILES].filename == stored.filename

    def test_conflict_when_lock_file_is_held(self, document_root: DocumentRoot) -> None:
        writer = DocumentWriter(document_root, OverwriteNamingStrategy(), lock_timeout_seconds=0.05)
        folder = document_root.category_path_for(EntityKind.TRUCK, DocumentType.OR_CR_FILES)

        with hold_lock_file(folder / ".t1_OR-CR-Files.lock", timeout_seconds=1):
            with pytest.raises(UploadConflictError):
                writer.store(EntityKind.TRUCK, "t1", DocumentType.OR_CR_FILES, b"x", "or.pdf")


class TestDelete:
    def test_removes_every_version(self, document_root: DocumentRoot) -> None:
        writer = DocumentWriter(document_root, VersionedNamingStrategy())
        first = writer.store(EntityKind.DRIVER, "d1", DocumentType.LICENSES, b"1", "l.jpg")
        second = writer.store(EntityKind.DRIVER, "d1", DocumentType.LICENSES, b"2", "l.pdf")

        removed = writer.delete("driver", "d1", "Licenses")

        assert sorted(removed) == sorted([first.absolute_path, second.absolute_path])
        assert _folder_names(first.absolute_path.parent) == []

    def test_keeps_other_entities_and_stray_files(
        self, document_root: DocumentRoot, place_file: PlaceFile
    ) -> None:
        writer = DocumentWriter(document_root, VersionedNamingStrategy())
        writer.store(EntityKind.DRIVER, "d1", DocumentType.LICENSES, b"1", "l.jpg")
        other = writer.store(EntityKind.DRIVER, "d10", DocumentType.LICENSES, b"2", "l.jpg")
        place_file(EntityKind.DRIVER, DocumentType.LICENSES, "IMG_001.jpg")

        writer.delete(EntityKind.DRIVER, "d1", DocumentType.LICENSES)

        assert _folder_names(other.absolute_path.parent) == sorted(
            ["IMG_001.jpg", other.filename]
        )

    def test_raises_when_nothing_stored(self, document_root: DocumentRoot) -> None:
        writer = DocumentWriter(document_root, OverwriteNamingStrategy())

        with pytest.raises(DocumentNotFoundError, match="Medical-Certificates"):
            writer.delete(EntityKind.DRIVER, "d1", DocumentType.MEDICAL_CERTIFICATES)

    def test_rejects_type_outside_kind(self, document_root: DocumentRoot) -> None:
        writer = DocumentWriter(document_root, OverwriteNamingStrategy())

        with pytest.raises(UnknownEntityKindOrTypeError):
            writer.delete(EntityKind.CLIENT, "c1", DocumentType.LICENSES)

    def test_conflict_when_lock_is_held(self, document_root: DocumentRoot) -> None:
        locks = KeyedLockRegistry()
        writer = DocumentWriter(
            document_root, OverwriteNamingStrategy(), locks=locks, lock_timeout_seconds=0.01
        )
        writer.store(EntityKind.DRIVER, "d1", DocumentType.LICENSES, b"x", "l.jpg")

        with locks.hold((EntityKind.DRIVER, "d1", DocumentType.LICENSES), timeout_seconds=1):
            with pytest.raises(UploadConflictError):
                writer.delete(EntityKind.DRIVER, "d1", DocumentType.LICENSES)
