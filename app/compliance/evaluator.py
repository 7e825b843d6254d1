from collections.abc import Iterable, Mapping

from app.compliance.models import ComplianceResult, ComplianceStatus
from app.storage.exceptions import UnknownEntityKindOrTypeError
from app.storage.taxonomy import (
    DocumentType,
    EntityKind,
    parse_document_type,
    parse_entity_kind,
    rules_for,
)


class ComplianceEvaluator:
    """Derives a ComplianceResult from the document types present for an entity.

    Required types decide the status; optional types are only counted.
    """

    def evaluate(
        self,
        entity_kind: EntityKind | str,
        documents: Mapping[DocumentType | str, object] | Iterable[DocumentType | str],
    ) -> ComplianceResult:
        """Evaluate one entity.

        ``documents`` is keyed by document type (values are not inspected), or a
        plain iterable of present types.

        Raises:
            UnknownEntityKindOrTypeError: if the kind is unknown or a key is not
                a document type of that kind.
        """
        kind = parse_entity_kind(entity_kind)
        rules = rules_for(kind)
        present = self._present_types(kind, documents)

        required = [rule.document_type for rule in rules if rule.required]
        optional = [rule.document_type for rule in rules if not rule.required]
        required_present = sum(1 for doc_type in required if doc_type in present)
        optional_present = sum(1 for doc_type in optional if doc_type in present)

        return ComplianceResult(
            document_count=required_present + optional_present,
            required_present_count=required_present,
            required_total_count=len(required),
            optional_present_count=optional_present,
            optional_total_count=len(optional),
            overall_status=self._status(required_present, len(required), optional_present),
        )

    @staticmethod
    def _status(required_present: int, required_total: int, optional_present: int) -> ComplianceStatus:
        if required_total > 0 and required_present == required_total:
            return ComplianceStatus.COMPLIANT
        if required_present > 0:
            return ComplianceStatus.PARTIALLY_COMPLIANT
        if required_total == 0 and optional_present > 0:
            return ComplianceStatus.PARTIALLY_COMPLIANT
        return ComplianceStatus.NON_COMPLIANT

    @staticmethod
    def _present_types(
        kind: EntityKind,
        documents: Mapping[DocumentType | str, object] | Iterable[DocumentType | str],
    ) -> set[DocumentType]:
        allowed = {rule.document_type for rule in rules_for(kind)}
        present: set[DocumentType] = set()
        for key in documents:
            doc_type = parse_document_type(key)
            if doc_type not in allowed:
                raise UnknownEntityKindOrTypeError(
                    f"Document type '{doc_type.value}' is not defined for {kind.value}"
                )
            present.add(doc_type)
        return present
