from dataclasses import dataclass, field

from app.compliance.models import ComplianceResult
from app.scanner.models import DocumentRecord
from app.storage.taxonomy import DocumentType


@dataclass(frozen=True)
class EntityRef:
    """Identity of one entity as supplied by the business database."""

    id: str
    label: str = ""


@dataclass
class EntityDocumentSnapshot:
    """Documents and compliance verdict for one entity, built fresh per query."""

    entity_id: str
    entity_label: str
    compliance_result: ComplianceResult
    documents: dict[DocumentType, DocumentRecord] = field(default_factory=dict)


def has_documents(snapshot: EntityDocumentSnapshot) -> bool:
    return bool(snapshot.documents)
