from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, ClassVar

from app.compliance.models import ComplianceResult
from app.scanner.models import DocumentRecord
from app.snapshot.models import EntityDocumentSnapshot
from app.storage.taxonomy import EntityKind, parse_entity_kind


class ResponseSerializer:
    """Renders snapshots into the JSON shape consumed by the HTTP layer."""

    LABEL_KEYS: ClassVar[dict[EntityKind, str]] = {
        EntityKind.TRUCK: "truckPlate",
        EntityKind.DRIVER: "driverName",
        EntityKind.HELPER: "helperName",
        EntityKind.CLIENT: "clientName",
    }

    def list_response(
        self,
        entity_kind: EntityKind | str,
        snapshots: Sequence[EntityDocumentSnapshot],
        only_with_documents: bool = True,
    ) -> dict[str, Any]:
        """{message, <kind>Count, <kind>s: [...]}, e.g. {message, truckCount, trucks}."""
        kind = parse_entity_kind(entity_kind)
        singular = kind.value.lower()
        return {
            "message": self._found_message(
                len(snapshots), f"{singular}s", only_with_documents
            ),
            f"{singular}Count": len(snapshots),
            f"{singular}s": [self.entity_payload(kind, snapshot) for snapshot in snapshots],
        }

    def all_kinds_response(
        self,
        snapshots_by_kind: Mapping[EntityKind, Sequence[EntityDocumentSnapshot]],
        scanned_at: datetime,
        only_with_documents: bool = True,
    ) -> dict[str, Any]:
        """Listing across kinds: {message, summary: {trucks: {count, data}, ...},
        totalEntities, scanTimestamp}.
        """
        summary: dict[str, Any] = {}
        for kind, snapshots in snapshots_by_kind.items():
            summary[f"{kind.value.lower()}s"] = {
                "count": len(snapshots),
                "data": [self.entity_payload(kind, snapshot) for snapshot in snapshots],
            }
        total = sum(section["count"] for section in summary.values())
        return {
            "message": self._found_message(total, "entities", only_with_documents),
            "summary": summary,
            "totalEntities": total,
            "scanTimestamp": scanned_at.isoformat(),
        }

    def single_response(
        self,
        entity_kind: EntityKind | str,
        snapshot: EntityDocumentSnapshot,
    ) -> dict[str, Any]:
        kind = parse_entity_kind(entity_kind)
        return {
            "message": (
                f"Found {snapshot.compliance_result.document_count} documents "
                f"for {kind.value.lower()} {snapshot.entity_label}"
            ),
            **self.entity_payload(kind, snapshot),
        }

    def entity_payload(
        self,
        entity_kind: EntityKind | str,
        snapshot: EntityDocumentSnapshot,
    ) -> dict[str, Any]:
        kind = parse_entity_kind(entity_kind)
        return {
            "id": snapshot.entity_id,
            self.LABEL_KEYS[kind]: snapshot.entity_label,
            "documents": {
                doc_type.value: self._document_payload(record)
                for doc_type, record in snapshot.documents.items()
            },
            "documentCompliance": self._compliance_payload(snapshot.compliance_result),
        }

    @staticmethod
    def _document_payload(record: DocumentRecord) -> dict[str, Any]:
        return {
            "filename": record.filename,
            "fileSize": record.file_size_bytes,
            "lastModified": record.last_modified_at.isoformat(),
            "relativePath": record.relative_path.as_posix(),
            "mimeType": record.mime_type,
        }

    @staticmethod
    def _compliance_payload(result: ComplianceResult) -> dict[str, Any]:
        return {
            "documentCount": result.document_count,
            "requiredDocumentCount": result.required_present_count,
            "requiredDocumentTotal": result.required_total_count,
            "optionalDocumentCount": result.optional_present_count,
            "optionalDocumentTotal": result.optional_total_count,
            "overallStatus": result.overall_status.value,
        }

    @staticmethod
    def _found_message(count: int, noun: str, only_with_documents: bool) -> str:
        if only_with_documents:
            return f"Found {count} {noun} with documents"
        return f"Found {count} {noun}"
