"""Fixed document taxonomy: entity kinds, their document types and compliance rules.

The taxonomy is static; adding a document type means a code change and a
redeploy. Enum values double as the on-disk folder names.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from app.storage.exceptions import UnknownEntityKindOrTypeError


class EntityKind(str, Enum):
    TRUCK = "Truck"
    DRIVER = "Driver"
    HELPER = "Helper"
    CLIENT = "Client"

    @property
    def category_folder(self) -> str:
        return f"{self.value}-Documents"


class DocumentType(str, Enum):
    OR_CR_FILES = "OR-CR-Files"
    INSURANCE_PAPERS = "Insurance-Papers"
    ID_PHOTOS = "ID-Photos"
    LICENSES = "Licenses"
    MEDICAL_CERTIFICATES = "Medical-Certificates"
    NBI_CLEARANCES = "NBI-Clearances"
    BUSINESS_PERMITS = "Business-Permits"

    @property
    def subdirectory(self) -> str:
        return self.value


@dataclass(frozen=True)
class ComplianceRule:
    """Whether a document type is required for an entity kind."""

    document_type: DocumentType
    required: bool


TAXONOMY: MappingProxyType[EntityKind, tuple[ComplianceRule, ...]] = MappingProxyType(
    {
        EntityKind.TRUCK: (
            ComplianceRule(DocumentType.OR_CR_FILES, required=True),
            ComplianceRule(DocumentType.INSURANCE_PAPERS, required=True),
        ),
        EntityKind.DRIVER: (
            ComplianceRule(DocumentType.ID_PHOTOS, required=True),
            ComplianceRule(DocumentType.LICENSES, required=True),
            ComplianceRule(DocumentType.MEDICAL_CERTIFICATES, required=True),
            ComplianceRule(DocumentType.NBI_CLEARANCES, required=False),
        ),
        EntityKind.HELPER: (
            ComplianceRule(DocumentType.ID_PHOTOS, required=True),
            ComplianceRule(DocumentType.LICENSES, required=False),
            ComplianceRule(DocumentType.MEDICAL_CERTIFICATES, required=False),
            ComplianceRule(DocumentType.NBI_CLEARANCES, required=True),
        ),
        EntityKind.CLIENT: (
            ComplianceRule(DocumentType.BUSINESS_PERMITS, required=True),
        ),
    }
)


def rules_for(entity_kind: EntityKind | str) -> tuple[ComplianceRule, ...]:
    """Return the ordered compliance rules for an entity kind."""
    return TAXONOMY[parse_entity_kind(entity_kind)]


def document_types_for(entity_kind: EntityKind | str) -> tuple[DocumentType, ...]:
    return tuple(rule.document_type for rule in rules_for(entity_kind))


def parse_entity_kind(value: EntityKind | str) -> EntityKind:
    """Coerce a kind name into an EntityKind.

    Accepts the enum itself, its value in any case ("truck", "Truck"), the
    plural form ("trucks") and the category folder name ("Truck-Documents").

    Raises:
        UnknownEntityKindOrTypeError: if the value names no known kind.
    """
    if isinstance(value, EntityKind):
        return value
    normalized = str(value).strip().lower()
    for kind in EntityKind:
        candidates = {
            kind.value.lower(),
            f"{kind.value.lower()}s",
            kind.category_folder.lower(),
        }
        if normalized in candidates:
            return kind
    raise UnknownEntityKindOrTypeError(
        f"Unknown entity kind '{value}'. Choose from: {[k.value for k in EntityKind]}"
    )


def parse_document_type(value: DocumentType | str) -> DocumentType:
    """Coerce a document type name into a DocumentType (exact folder name)."""
    if isinstance(value, DocumentType):
        return value
    try:
        return DocumentType(str(value))
    except ValueError:
        raise UnknownEntityKindOrTypeError(
            f"Unknown document type '{value}'. "
            f"Choose from: {[t.value for t in DocumentType]}"
        ) from None


def require_document_type(
    entity_kind: EntityKind | str, document_type: DocumentType | str
) -> tuple[EntityKind, DocumentType]:
    """Validate that a document type belongs to an entity kind.

    Raises:
        UnknownEntityKindOrTypeError: for an unknown kind, an unknown type,
            or a type that exists but is not part of the kind's taxonomy.
    """
    kind = parse_entity_kind(entity_kind)
    doc_type = parse_document_type(document_type)
    if doc_type not in document_types_for(kind):
        raise UnknownEntityKindOrTypeError(
            f"Document type '{doc_type.value}' is not defined for {kind.value}. "
            f"Choose from: {[t.value for t in document_types_for(kind)]}"
        )
    return kind, doc_type
