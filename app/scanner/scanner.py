import mimetypes
import os
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath

from app.logging.logger import Log
from app.naming.base import BaseNamingStrategy
from app.naming.models import ParsedFilename, ParseFailure
from app.scanner.models import DocumentRecord
from app.storage.exceptions import PathOutsideRootError
from app.storage.paths import DocumentRoot
from app.storage.taxonomy import DocumentType, EntityKind, parse_entity_kind, rules_for

DocumentMap = dict[DocumentType, DocumentRecord]


def guess_mime_type(filename: str) -> str:
    mime_type, _ = mimetypes.guess_type(filename)
    return mime_type or "application/octet-stream"


def _newer(candidate: DocumentRecord, current: DocumentRecord) -> bool:
    # Filename breaks mtime ties so the winner does not depend on listing order.
    return (candidate.last_modified_at, candidate.filename) > (
        current.last_modified_at,
        current.filename,
    )


class DocumentScanner:
    """Walks the category folders of one entity kind and maps files to entities.

    Read-only and stateless between calls. Cost is linear in the number of
    files under the kind's category folder; there is no index.
    """

    def __init__(self, document_root: DocumentRoot, naming: BaseNamingStrategy) -> None:
        self._document_root = document_root
        self._naming = naming

    def scan(
        self,
        entity_kind: EntityKind | str,
        entity_ids: set[str] | frozenset[str] | None = None,
    ) -> dict[str, DocumentMap]:
        """Return {entity_id: {document_type: DocumentRecord}}.

        With entity_ids given, every id appears in the result (possibly with an
        empty map) and files of other entities are ignored. With None, every
        entity that has at least one matching file is reported.
        """
        kind = parse_entity_kind(entity_kind)
        in_scope = {str(entity_id) for entity_id in entity_ids} if entity_ids is not None else None
        result: dict[str, DocumentMap] = {entity_id: {} for entity_id in in_scope or ()}
        files_seen = 0

        for rule in rules_for(kind):
            folder = self._document_root.category_path_for(kind, rule.document_type)
            for path in self._list_files(folder):
                files_seen += 1
                record = self._build_record(path, rule.document_type)
                if record is None:
                    continue
                if in_scope is not None and record.entity_id not in in_scope:
                    continue
                documents = result.setdefault(record.entity_id, {})
                current = documents.get(record.document_type)
                if current is None or _newer(record, current):
                    documents[record.document_type] = record

        Log.info(
            f"Scanned {files_seen} files for {kind.value}: "
            f"{sum(len(docs) for docs in result.values())} documents "
            f"across {len(result)} entities"
        )
        return result

    def describe(self, relative_path: PurePosixPath | str) -> DocumentRecord | None:
        """Build a record for one persisted reference; None if missing or unparsable.

        Raises:
            PathOutsideRootError: if the reference escapes the document root.
        """
        path = self._document_root.absolute_path(relative_path)
        parsed = self._naming.parse_filename(path.name)
        if isinstance(parsed, ParseFailure):
            Log.warning("Referenced file has no parsable name", path=relative_path)
            return None
        return self._stat_record(path, parsed)

    def _list_files(self, folder: Path) -> list[Path]:
        try:
            with os.scandir(folder) as entries:
                names = [entry.name for entry in entries if not entry.is_dir()]
        except FileNotFoundError:
            Log.warning("Category folder missing, skipping", folder=folder)
            return []
        except OSError as exc:
            Log.warning(f"Cannot list category folder: {exc}", folder=folder)
            return []
        return [folder / name for name in sorted(names)]

    def _build_record(self, path: Path, expected_type: DocumentType) -> DocumentRecord | None:
        if path.name.startswith("."):
            Log.debug("Skipping hidden or in-flight file", path=path)
            return None
        parsed = self._naming.parse_filename(path.name)
        if isinstance(parsed, ParseFailure):
            Log.warning(f"Skipping unparsable file: {parsed.reason}", path=path)
            return None
        if parsed.document_type is not expected_type:
            Log.warning(
                f"Skipping misfiled {parsed.document_type.value} document",
                path=path,
                expected=expected_type.value,
            )
            return None
        return self._stat_record(path, parsed)

    def _stat_record(self, path: Path, parsed: ParsedFilename) -> DocumentRecord | None:
        try:
            stat = path.stat()
            if not os.access(path, os.R_OK):
                raise PermissionError(f"not readable: {path}")
            relative = self._document_root.relative_path(path)
        except FileNotFoundError:
            Log.warning("File disappeared during scan", path=path)
            return None
        except (OSError, PathOutsideRootError) as exc:
            Log.warning(f"Skipping unreadable file: {exc}", path=path)
            return None
        return DocumentRecord(
            entity_id=parsed.entity_id,
            document_type=parsed.document_type,
            filename=path.name,
            absolute_path=path,
            relative_path=relative,
            file_size_bytes=stat.st_size,
            last_modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            mime_type=guess_mime_type(path.name),
            suffix=parsed.suffix,
        )
