from __future__ import annotations

# Seeder for the property ledger category tree.
#
# Usage (example):
#   uv run python -m property_ledger.ingest.seed_categories \
#     --database-url sqlite:///ledger.db \
#     --file packages/property_ledger/ingest/seeds/pl_categories.v1.json
#
# The JSON is a list of root categories:
#   [{"name": "Rent", "type": "income", "tax_bucket": null, "children": [...]}]
# Children inherit their parent's type unless they set one. Categories are
# matched on (name, parent) so re-running only adds what is missing; existing
# rows keep their ids because ledger rows and rules point at them.
import argparse
import json
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from ledger_db.client import session_scope
from ledger_db.models.ledger import PlCategory
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..logging_setup import get_logger
from ..signs import CATEGORY_TYPES

logger = get_logger(__name__)

DEFAULT_SEED_FILE = Path(__file__).parent / "seeds" / "pl_categories.v1.json"


def _load_json(path: Path) -> list[dict[str, Any]]:
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("Seed JSON must be a list of root categories")
    return data


def _find(session: Session, name: str, parent_id: int | None) -> PlCategory | None:
    stmt = select(PlCategory).where(PlCategory.name == name)
    if parent_id is None:
        stmt = stmt.where(PlCategory.parent_id.is_(None))
    else:
        stmt = stmt.where(PlCategory.parent_id == parent_id)
    return session.scalars(stmt).first()


def seed_categories(session: Session, data: Sequence[Mapping[str, Any]]) -> int:
    """Insert missing categories from ``data``; returns how many were created."""

    created = 0

    def visit(node: Mapping[str, Any], parent: PlCategory | None) -> None:
        nonlocal created
        name = str(node.get("name") or "").strip()
        if not name:
            raise ValueError("category entry without a name")
        kind = node.get("type") or (parent.type if parent is not None else None)
        if kind not in CATEGORY_TYPES:
            raise ValueError(f"category {name!r} has invalid type {kind!r}")

        parent_id = parent.id if parent is not None else None
        row = _find(session, name, parent_id)
        if row is None:
            row = PlCategory(
                name=name,
                type=kind,
                parent_id=parent_id,
                tax_bucket=node.get("tax_bucket") or None,
            )
            session.add(row)
            session.flush()
            created += 1
        for child in node.get("children", []) or []:
            visit(child, row)

    for root in data:
        visit(root, None)
    logger.info("Seeded %d new categor%s", created, "y" if created == 1 else "ies")
    return created


def reseed_categories(*, database_url: str | None, file: Path) -> int:
    data = _load_json(file)
    with session_scope(database_url=database_url) as session:
        return seed_categories(session, data)


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        description="Seed the property ledger category tree",
    )
    ap.add_argument(
        "--database-url",
        required=False,
        default=None,
        help=("SQLAlchemy database URL; falls back to $DATABASE_URL when not set"),
    )
    ap.add_argument(
        "--file",
        type=Path,
        required=False,
        default=DEFAULT_SEED_FILE,
    )
    args = ap.parse_args(argv)

    db_url: str | None = args.database_url or None
    reseed_categories(database_url=db_url, file=args.file)
    return 0


if __name__ == "__main__":  # pragma: no cover - manual utility
    raise SystemExit(main())
