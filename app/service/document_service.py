from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any

from app.compliance.evaluator import ComplianceEvaluator
from app.config.settings import Settings
from app.logging.logger import Log
from app.naming.factory import NamingStrategyFactory
from app.scanner.models import DocumentRecord
from app.scanner.scanner import DocumentScanner
from app.snapshot.assembler import SnapshotAssembler
from app.snapshot.models import EntityDocumentSnapshot, EntityRef, has_documents
from app.snapshot.serializer import ResponseSerializer
from app.storage.exceptions import DocumentNotFoundError
from app.storage.paths import DocumentRoot
from app.storage.taxonomy import (
    DocumentType,
    EntityKind,
    parse_entity_kind,
    require_document_type,
)
from app.upload.models import StoredDocument
from app.upload.writer import DocumentWriter


class DocumentComplianceService:
    """Entry point for the HTTP layer: document listings, lookups and uploads.

    Read path: scan -> evaluate -> assemble -> serialize.
    Write path: name -> locked atomic write.
    """

    def __init__(
        self,
        document_root: DocumentRoot,
        scanner: DocumentScanner,
        assembler: SnapshotAssembler,
        serializer: ResponseSerializer,
        writer: DocumentWriter,
    ) -> None:
        self._document_root = document_root
        self._scanner = scanner
        self._assembler = assembler
        self._serializer = serializer
        self._writer = writer

    def list_with_documents(
        self,
        entity_kind: EntityKind | str,
        entities: Sequence[EntityRef] | None = None,
        only_with_documents: bool = True,
    ) -> dict[str, Any]:
        """List entities of a kind with their documents and compliance.

        Without ``entities`` every entity found on disk is listed.
        """
        kind = parse_entity_kind(entity_kind)
        snapshots = self._snapshots(kind, entities, only_with_documents)
        Log.info(f"Listing {len(snapshots)} {kind.value.lower()}s")
        return self._serializer.list_response(kind, snapshots, only_with_documents)

    def list_all_with_documents(
        self,
        entities_by_kind: Mapping[EntityKind | str, Sequence[EntityRef]] | None = None,
        only_with_documents: bool = True,
    ) -> dict[str, Any]:
        """One listing per entity kind plus a total and the scan time.

        Kinds missing from ``entities_by_kind`` (or all kinds, when it is
        omitted) are listed from disk.
        """
        supplied = {
            parse_entity_kind(kind): refs for kind, refs in (entities_by_kind or {}).items()
        }
        scanned_at = datetime.now(timezone.utc)
        snapshots_by_kind = {
            kind: self._snapshots(kind, supplied.get(kind), only_with_documents)
            for kind in EntityKind
        }
        total = sum(len(snapshots) for snapshots in snapshots_by_kind.values())
        Log.info(f"Listing {total} entities across {len(snapshots_by_kind)} kinds")
        return self._serializer.all_kinds_response(
            snapshots_by_kind, scanned_at, only_with_documents
        )

    def _snapshots(
        self,
        kind: EntityKind,
        entities: Sequence[EntityRef] | None,
        only_with_documents: bool,
    ) -> list[EntityDocumentSnapshot]:
        return self._assembler.assemble(
            kind,
            entities,
            include=has_documents if only_with_documents else None,
        )

    def get_entity_snapshot(
        self,
        entity_kind: EntityKind | str,
        entity_id: str,
        label: str = "",
    ) -> EntityDocumentSnapshot:
        kind = parse_entity_kind(entity_kind)
        [snapshot] = self._assembler.assemble(kind, [EntityRef(id=str(entity_id), label=label)])
        return snapshot

    def get_entity_documents(
        self,
        entity_kind: EntityKind | str,
        entity_id: str,
        label: str = "",
    ) -> dict[str, Any]:
        """Documents and compliance for a single entity."""
        snapshot = self.get_entity_snapshot(entity_kind, entity_id, label)
        return self._serializer.single_response(entity_kind, snapshot)

    def store_document(
        self,
        entity_kind: EntityKind | str,
        entity_id: str,
        document_type: DocumentType | str,
        file_bytes: bytes,
        original_filename: str,
    ) -> StoredDocument:
        return self._writer.store(
            entity_kind, entity_id, document_type, file_bytes, original_filename
        )

    def delete_document(
        self,
        entity_kind: EntityKind | str,
        entity_id: str,
        document_type: DocumentType | str,
    ) -> list[PurePosixPath]:
        """Remove every stored version of a document type; returns their relative paths.

        Raises:
            DocumentNotFoundError: if nothing is stored for the entity and type.
        """
        removed = self._writer.delete(entity_kind, entity_id, document_type)
        return [self._document_root.relative_path(path) for path in removed]

    def verify_documents(
        self,
        entity_kind: EntityKind | str,
        references: Mapping[DocumentType | str, PurePosixPath | str],
    ) -> dict[DocumentType, DocumentRecord]:
        """Keep only persisted references that still exist and decode to their type.

        Raises:
            UnknownEntityKindOrTypeError: if a key is not a type of the kind.
            PathOutsideRootError: if a reference escapes the document root.
        """
        verified: dict[DocumentType, DocumentRecord] = {}
        for key, relative_path in references.items():
            _kind, doc_type = require_document_type(entity_kind, key)
            record = self._scanner.describe(relative_path)
            if record is None:
                Log.warning(f"{doc_type.value} reference no longer on disk", path=relative_path)
                continue
            if record.document_type is not doc_type:
                Log.warning(
                    f"Reference for {doc_type.value} points at a {record.document_type.value} file",
                    path=relative_path,
                )
                continue
            verified[doc_type] = record
        return verified

    def locate_document(self, relative_path: PurePosixPath | str) -> DocumentRecord:
        """Resolve a persisted reference for serving.

        Raises:
            PathOutsideRootError: if the reference escapes the document root.
            DocumentNotFoundError: if the file is missing or not a stored document.
        """
        record = self._scanner.describe(relative_path)
        if record is None:
            raise DocumentNotFoundError(f"Document '{relative_path}' not found")
        return record


def build_service(settings: Settings) -> DocumentComplianceService:
    """Build the service from settings and create the document tree."""
    document_root = DocumentRoot(settings.document_root)
    document_root.initialize_storage()
    naming = NamingStrategyFactory.create(settings)
    scanner = DocumentScanner(document_root, naming)
    assembler = SnapshotAssembler(scanner, ComplianceEvaluator())
    writer = DocumentWriter(
        document_root,
        naming,
        lock_timeout_seconds=settings.upload_lock_timeout_seconds,
        allowed_extensions=settings.allowed_extensions,
    )
    return DocumentComplianceService(
        document_root=document_root,
        scanner=scanner,
        assembler=assembler,
        serializer=ResponseSerializer(),
        writer=writer,
    )
