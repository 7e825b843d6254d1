from collections.abc import Callable, Sequence

from app.compliance.evaluator import ComplianceEvaluator
from app.scanner.scanner import DocumentScanner
from app.snapshot.models import EntityDocumentSnapshot, EntityRef
from app.storage.taxonomy import EntityKind, parse_entity_kind

SnapshotFilter = Callable[[EntityDocumentSnapshot], bool]


class SnapshotAssembler:
    """Joins scanner output with compliance verdicts, one snapshot per entity."""

    def __init__(self, scanner: DocumentScanner, evaluator: ComplianceEvaluator) -> None:
        self._scanner = scanner
        self._evaluator = evaluator

    def assemble(
        self,
        entity_kind: EntityKind | str,
        entities: Sequence[EntityRef] | None = None,
        include: SnapshotFilter | None = None,
    ) -> list[EntityDocumentSnapshot]:
        """Build snapshots in the order of ``entities``.

        ``entities=None`` reports every entity found on disk, labelled by id
        and sorted by id. ``include`` lets the caller drop snapshots, e.g.
        ``has_documents``.
        """
        kind = parse_entity_kind(entity_kind)
        if entities is None:
            scanned = self._scanner.scan(kind)
            entities = [EntityRef(id=entity_id, label=entity_id) for entity_id in sorted(scanned)]
        else:
            scanned = self._scanner.scan(kind, {entity.id for entity in entities})

        snapshots: list[EntityDocumentSnapshot] = []
        for entity in entities:
            documents = dict(scanned.get(entity.id, {}))
            snapshot = EntityDocumentSnapshot(
                entity_id=entity.id,
                entity_label=entity.label or entity.id,
                documents=documents,
                compliance_result=self._evaluator.evaluate(kind, documents),
            )
            if include is None or include(snapshot):
                snapshots.append(snapshot)
        return snapshots
