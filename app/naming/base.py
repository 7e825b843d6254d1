import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar

from app.naming.models import ParsedFilename, ParseFailure
from app.storage.exceptions import InvalidEntityIdError
from app.storage.taxonomy import DocumentType, parse_document_type

ENTITY_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")

# Document type and suffix never contain "_", so they are always the last two
# underscore-separated segments and the entity id may itself contain "_".
STORED_FILENAME_PATTERN = re.compile(
    r"^(?P<entity_id>[A-Za-z0-9][A-Za-z0-9_-]*)"
    r"_(?P<document_type>[A-Za-z0-9-]+)"
    r"_(?P<suffix>[A-Za-z0-9-]+)"
    r"\.(?P<extension>[a-z0-9]+)$"
)

DEFAULT_EXTENSION = "bin"


def validate_entity_id(entity_id: str) -> str:
    """Return the entity id unchanged if it can be embedded in a filename.

    Raises:
        InvalidEntityIdError: if the id is empty or contains characters
            outside [A-Za-z0-9_-], or starts with '_' or '-'.
    """
    value = str(entity_id)
    if not ENTITY_ID_PATTERN.match(value):
        raise InvalidEntityIdError(
            f"Entity id '{entity_id}' must match {ENTITY_ID_PATTERN.pattern}"
        )
    return value


def normalize_extension(extension: str) -> str:
    """Lower-case an extension and keep only [a-z0-9]; 'bin' when nothing is left."""
    cleaned = re.sub(r"[^a-z0-9]", "", extension.lower().lstrip("."))
    return cleaned or DEFAULT_EXTENSION


def extension_of(original_filename: str) -> str:
    """Normalized extension of a user-supplied filename ('license.JPG' -> 'jpg')."""
    return normalize_extension(Path(original_filename).suffix)


def parse_filename(name: str) -> ParsedFilename | ParseFailure:
    """Decode {entityId}_{documentType}_{suffix}.{ext}.

    Never raises; anything outside the grammar comes back as ParseFailure.
    """
    match = STORED_FILENAME_PATTERN.match(name)
    if match is None:
        return ParseFailure(name, "does not match {entityId}_{documentType}_{suffix}.{ext}")
    try:
        document_type = DocumentType(match["document_type"])
    except ValueError:
        return ParseFailure(name, f"unknown document type '{match['document_type']}'")
    return ParsedFilename(
        entity_id=match["entity_id"],
        document_type=document_type,
        suffix=match["suffix"],
        extension=match["extension"],
    )


class BaseNamingStrategy(ABC):
    """Contract for stored-filename policies.

    Every policy embeds the entity id and document type in the name, so two
    entities uploading the same original file never share a stored name.
    """

    policy: ClassVar[str]

    def generate_filename(
        self,
        entity_id: str,
        document_type: DocumentType | str,
        original_extension: str,
    ) -> str:
        """Build the stored filename for one upload.

        Raises:
            InvalidEntityIdError: if the entity id cannot be embedded.
            UnknownEntityKindOrTypeError: if the document type is unknown.
        """
        entity = validate_entity_id(entity_id)
        doc_type = parse_document_type(document_type)
        extension = normalize_extension(original_extension)
        return f"{entity}_{doc_type.value}_{self._suffix()}.{extension}"

    def parse_filename(self, name: str) -> ParsedFilename | ParseFailure:
        return parse_filename(name)

    def after_store(self, directory: Path, stored_filename: str) -> list[Path]:
        """Hook run under the write lock once a file is in place.

        Returns the paths removed as a consequence; none by default.
        """
        return []

    @abstractmethod
    def _suffix(self) -> str:
        """Suffix segment; must match [A-Za-z0-9-]+."""
