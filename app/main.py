import argparse
import json

from app.config.settings import Settings
from app.database.connection import close_pool, init_pool
from app.database.repositories.entity_repository import EntityRepository
from app.logging.logger import Log
from app.service.document_service import build_service
from app.storage.taxonomy import EntityKind

ALL_KINDS = "all"


def main(argv: list[str] | None = None) -> None:
    """Entry point: initialize storage -> load entities -> print the document listing."""
    parser = argparse.ArgumentParser(description="List entities with their documents.")
    parser.add_argument(
        "entity_kind",
        choices=[kind.value.lower() for kind in EntityKind] + [ALL_KINDS],
        help=f"entity kind to list, or '{ALL_KINDS}' for every kind",
    )
    parser.add_argument(
        "--from-disk",
        action="store_true",
        help="list entities found on disk instead of reading the entity database",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="include entities without any document",
    )
    args = parser.parse_args(argv)

    settings = Settings()
    Log.configure(settings.log_level)
    service = build_service(settings)
    kinds = list(EntityKind) if args.entity_kind == ALL_KINDS else [args.entity_kind]

    entities_by_kind = None
    if not args.from_disk:
        init_pool(settings)
        try:
            repository = EntityRepository()
            entities_by_kind = {kind: repository.list_entities(kind) for kind in kinds}
        finally:
            close_pool()

    if args.entity_kind == ALL_KINDS:
        response = service.list_all_with_documents(
            entities_by_kind, only_with_documents=not args.all
        )
    else:
        response = service.list_with_documents(
            args.entity_kind,
            entities_by_kind[args.entity_kind] if entities_by_kind else None,
            only_with_documents=not args.all,
        )

    print(json.dumps(response, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
