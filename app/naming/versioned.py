import uuid
from datetime import datetime, timezone

from app.naming.base import BaseNamingStrategy


class VersionedNamingStrategy(BaseNamingStrategy):
    """Keep every upload: the suffix is a UTC timestamp plus a random token.

    The scanner picks the most recently modified file per entity and type,
    older versions stay on disk as history.
    """

    policy = "versioned"

    def _suffix(self) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        return f"{timestamp}-{uuid.uuid4().hex[:8]}"
