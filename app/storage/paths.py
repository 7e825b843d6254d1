from pathlib import Path, PurePosixPath

from app.logging.logger import Log
from app.storage.exceptions import ConfigurationFaultError, PathOutsideRootError
from app.storage.taxonomy import (
    TAXONOMY,
    DocumentType,
    EntityKind,
    require_document_type,
)


class DocumentRoot:
    """Resolves paths inside the document tree and creates the tree on demand.

    Layout: {root}/{Kind}-Documents/{DocumentType}/{stored filename}
    """

    DEFAULT_ROOT = Path("uploads")

    def __init__(self, root: Path | str | None = None) -> None:
        raw = Path(root) if root is not None else self.DEFAULT_ROOT
        self._root = raw.expanduser().resolve()

    @property
    def root(self) -> Path:
        return self._root

    def initialize_storage(self) -> Path:
        """Create the root and every category/subcategory directory.

        Idempotent and safe to run from several processes at once: a directory
        that already exists counts as success.

        Raises:
            ConfigurationFaultError: if any directory cannot be created.
        """
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            for kind, rules in TAXONOMY.items():
                for rule in rules:
                    self._category_path(kind, rule.document_type).mkdir(
                        parents=True, exist_ok=True
                    )
        except OSError as exc:
            raise ConfigurationFaultError(
                f"Cannot initialize document root {self._root}: {exc}"
            ) from exc
        Log.debug("Document storage initialized", root=self._root)
        return self._root

    def resolve_root(self) -> Path:
        """Return the root path, creating the tree first if needed."""
        return self.initialize_storage()

    def category_path_for(
        self, entity_kind: EntityKind | str, document_type: DocumentType | str
    ) -> Path:
        """Absolute folder for one document type of one entity kind.

        Raises:
            UnknownEntityKindOrTypeError: if the pair is not in the taxonomy.
        """
        kind, doc_type = require_document_type(entity_kind, document_type)
        return self._category_path(kind, doc_type)

    def relative_path(self, absolute: Path | str) -> PurePosixPath:
        """Strip the root prefix so persisted references stay portable.

        Raises:
            PathOutsideRootError: if the path is not under the root.
        """
        candidate = Path(absolute).resolve()
        try:
            relative = candidate.relative_to(self._root)
        except ValueError:
            raise PathOutsideRootError(
                f"{candidate} is outside document root {self._root}"
            ) from None
        return PurePosixPath(relative.as_posix())

    def absolute_path(self, relative: PurePosixPath | Path | str) -> Path:
        """Inverse of relative_path; rejects absolute inputs and '..' escapes.

        Raises:
            PathOutsideRootError: if the result would leave the root.
        """
        relative_text = str(relative).replace("\\", "/")
        if PurePosixPath(relative_text).is_absolute() or Path(relative_text).is_absolute():
            raise PathOutsideRootError(f"Expected a relative path, got '{relative}'")
        candidate = (self._root / relative_text).resolve()
        if candidate != self._root and self._root not in candidate.parents:
            raise PathOutsideRootError(
                f"'{relative}' resolves outside document root {self._root}"
            )
        return candidate

    def _category_path(self, kind: EntityKind, document_type: DocumentType) -> Path:
        return self._root / kind.category_folder / document_type.subdirectory
