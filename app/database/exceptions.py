class EntityNotFoundError(Exception):
    """Raised when an entity id is not present in the entity directory."""
