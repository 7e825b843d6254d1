from pathlib import Path

from app.logging.logger import Log
from app.naming.base import BaseNamingStrategy
from app.naming.models import ParsedFilename


class OverwriteNamingStrategy(BaseNamingStrategy):
    """One file per entity and document type; a re-upload replaces it."""

    policy = "overwrite"
    SUFFIX = "current"

    def _suffix(self) -> str:
        return self.SUFFIX

    def after_store(self, directory: Path, stored_filename: str) -> list[Path]:
        """Remove other files for the same pair, e.g. an older upload with another extension.

        Called by the writer while it holds the pair lock.
        """
        stored = self.parse_filename(stored_filename)
        if not isinstance(stored, ParsedFilename):
            return []
        removed: list[Path] = []
        for path in directory.iterdir():
            if path.name == stored_filename or path.name.startswith("."):
                continue
            parsed = self.parse_filename(path.name)
            if not isinstance(parsed, ParsedFilename):
                continue
            if (parsed.entity_id, parsed.document_type) != (
                stored.entity_id,
                stored.document_type,
            ):
                continue
            path.unlink(missing_ok=True)
            removed.append(path)
            Log.info("Removed superseded document", path=path)
        return removed
