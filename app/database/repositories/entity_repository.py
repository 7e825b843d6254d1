from typing import ClassVar

from psycopg import sql
from psycopg.rows import dict_row

from app.database.connection import get_connection
from app.database.exceptions import EntityNotFoundError
from app.snapshot.models import EntityRef
from app.storage.taxonomy import EntityKind, parse_entity_kind


class EntityRepository:
    """Read-only access to entity ids and display labels, one table per kind."""

    TABLES: ClassVar[dict[EntityKind, tuple[str, str]]] = {
        EntityKind.TRUCK: ("trucks", "truck_plate"),
        EntityKind.DRIVER: ("drivers", "driver_name"),
        EntityKind.HELPER: ("helpers", "helper_name"),
        EntityKind.CLIENT: ("clients", "client_name"),
    }

    def list_entities(self, entity_kind: EntityKind | str) -> list[EntityRef]:
        """Return all entities of a kind ordered by label."""
        table, label_column = self.TABLES[parse_entity_kind(entity_kind)]
        query = sql.SQL("SELECT id, {label} AS label FROM {table} ORDER BY {label}, id").format(
            label=sql.Identifier(label_column),
            table=sql.Identifier(table),
        )
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query)
                rows = cur.fetchall()

        return [self._to_ref(row) for row in rows]

    def find_by_id(self, entity_kind: EntityKind | str, entity_id: str) -> EntityRef:
        """Find one entity by primary key.

        Raises:
            EntityNotFoundError: if no entity with this id exists.
        """
        kind = parse_entity_kind(entity_kind)
        table, label_column = self.TABLES[kind]
        query = sql.SQL("SELECT id, {label} AS label FROM {table} WHERE id = %s").format(
            label=sql.Identifier(label_column),
            table=sql.Identifier(table),
        )
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, (str(entity_id),))
                row = cur.fetchone()

        if row is None:
            raise EntityNotFoundError(f"{kind.value} {entity_id} not found")
        return self._to_ref(row)

    @staticmethod
    def _to_ref(row: dict) -> EntityRef:
        return EntityRef(id=str(row["id"]), label=row["label"] or "")
