import os
import tempfile
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from pathlib import Path

from app.logging.logger import Log
from app.naming.base import BaseNamingStrategy, extension_of, validate_entity_id
from app.naming.models import ParsedFilename
from app.storage.exceptions import DocumentNotFoundError
from app.storage.paths import DocumentRoot
from app.storage.taxonomy import DocumentType, EntityKind, require_document_type
from app.upload.exceptions import DocumentWriteError, UnsupportedExtensionError
from app.upload.locks import KeyedLockRegistry, hold_lock_file
from app.upload.models import StoredDocument


class DocumentWriter:
    """Writes uploaded bytes into the taxonomy under a collision-free name.

    Writes go to a hidden temporary file in the destination folder and are
    renamed into place, so a concurrent scan sees the old file or the complete
    new one. Writers for the same (kind, entity, document type) are serialized
    by an in-process lock and by a hidden lock file in the category folder,
    which also covers other processes sharing the document root.
    """

    def __init__(
        self,
        document_root: DocumentRoot,
        naming: BaseNamingStrategy,
        locks: KeyedLockRegistry | None = None,
        lock_timeout_seconds: float = 30,
        allowed_extensions: Iterable[str] | None = None,
    ) -> None:
        self._document_root = document_root
        self._naming = naming
        self._locks = locks if locks is not None else KeyedLockRegistry()
        self._lock_timeout_seconds = lock_timeout_seconds
        self._allowed_extensions = (
            {ext.lower().lstrip(".") for ext in allowed_extensions}
            if allowed_extensions is not None
            else None
        )

    def store(
        self,
        entity_kind: EntityKind | str,
        entity_id: str,
        document_type: DocumentType | str,
        file_bytes: bytes,
        original_filename: str,
    ) -> StoredDocument:
        """Persist one upload and return where it landed.

        Raises:
            UnknownEntityKindOrTypeError: if the kind/type pair is not in the taxonomy.
            InvalidEntityIdError: if the entity id cannot be embedded in a filename.
            UnsupportedExtensionError: if the extension is not allowed.
            UploadConflictError: if the write lock cannot be acquired in time.
            DocumentWriteError: if the filesystem write fails.
        """
        kind, doc_type = require_document_type(entity_kind, document_type)
        entity = validate_entity_id(entity_id)
        extension = extension_of(original_filename)
        if self._allowed_extensions is not None and extension not in self._allowed_extensions:
            raise UnsupportedExtensionError(
                f"Extension '{extension}' is not allowed. "
                f"Choose from: {sorted(self._allowed_extensions)}"
            )

        folder = self._document_root.category_path_for(kind, doc_type)
        with self._hold_pair(kind, entity, doc_type, folder):
            filename = self._naming.generate_filename(entity, doc_type, extension)
            target = folder / filename
            self._write_atomically(folder, target, file_bytes)
            self._naming.after_store(folder, filename)

        Log.info(
            f"Stored {doc_type.value} for {kind.value} {entity}",
            filename=filename,
            bytes=len(file_bytes),
        )
        return StoredDocument(
            filename=filename,
            relative_path=self._document_root.relative_path(target),
            absolute_path=target,
            file_size_bytes=len(file_bytes),
        )

    def delete(
        self,
        entity_kind: EntityKind | str,
        entity_id: str,
        document_type: DocumentType | str,
    ) -> list[Path]:
        """Remove every stored version of one document type for an entity.

        Returns the removed paths.

        Raises:
            UnknownEntityKindOrTypeError: if the kind/type pair is not in the taxonomy.
            InvalidEntityIdError: if the entity id cannot be embedded in a filename.
            UploadConflictError: if the write lock cannot be acquired in time.
            DocumentNotFoundError: if the entity has no file of that type.
            DocumentWriteError: if a file cannot be removed.
        """
        kind, doc_type = require_document_type(entity_kind, document_type)
        entity = validate_entity_id(entity_id)

        folder = self._document_root.category_path_for(kind, doc_type)
        with self._hold_pair(kind, entity, doc_type, folder):
            removed: list[Path] = []
            for path in self._stored_versions(folder, entity, doc_type):
                try:
                    path.unlink()
                except FileNotFoundError:
                    continue
                except OSError as exc:
                    raise DocumentWriteError(f"Failed to remove {path}: {exc}") from exc
                removed.append(path)

        if not removed:
            raise DocumentNotFoundError(
                f"No {doc_type.value} document stored for {kind.value} {entity}"
            )
        Log.info(
            f"Deleted {doc_type.value} for {kind.value} {entity}",
            files=len(removed),
        )
        return removed

    @contextmanager
    def _hold_pair(
        self,
        kind: EntityKind,
        entity: str,
        doc_type: DocumentType,
        folder: Path,
    ) -> Generator[None, None, None]:
        with self._locks.hold((kind, entity, doc_type), self._lock_timeout_seconds):
            try:
                folder.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise DocumentWriteError(f"Failed to create {folder}: {exc}") from exc
            lock_path = folder / f".{entity}_{doc_type.value}.lock"
            with hold_lock_file(lock_path, self._lock_timeout_seconds):
                yield

    def _stored_versions(self, folder: Path, entity: str, doc_type: DocumentType) -> list[Path]:
        versions: list[Path] = []
        for path in sorted(folder.iterdir()):
            if path.name.startswith("."):
                continue
            parsed = self._naming.parse_filename(path.name)
            if not isinstance(parsed, ParsedFilename):
                continue
            if parsed.entity_id == entity and parsed.document_type is doc_type:
                versions.append(path)
        return versions

    @staticmethod
    def _write_atomically(folder: Path, target: Path, file_bytes: bytes) -> None:
        tmp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                dir=folder, prefix=f".{target.name}.", suffix=".tmp", delete=False
            ) as handle:
                tmp_path = Path(handle.name)
                handle.write(file_bytes)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, target)
        except OSError as exc:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            raise DocumentWriteError(f"Failed to write {target}: {exc}") from exc
