from __future__ import annotations

from pathlib import Path

from ledger_db import Base
from ledger_db.client import get_engine
from sqlalchemy import inspect

from tests.helpers.db import bootstrap_migrated_db


def test_head_schema_matches_the_orm_models(tmp_path: Path) -> None:
    url = bootstrap_migrated_db(tmp_path / "migrated.db")
    insp = inspect(get_engine(database_url=url))

    for table in Base.metadata.sorted_tables:
        assert insp.has_table(table.name), table.name
        expected = {c.name for c in table.columns}
        got = {c["name"] for c in insp.get_columns(table.name)}
        missing = expected - got
        extra = got - expected
        assert not missing and not extra, (
            f"{table.name} schema drift: missing={missing or '∅'}, extra={extra or '∅'}"
        )

    uniques = insp.get_unique_constraints("pl_recurring_postings")
    assert any(set(u["column_names"]) == {"recurring_rule_id", "month"} for u in uniques)


def test_core_revision_leaves_recurring_tables_out(tmp_path: Path) -> None:
    url = bootstrap_migrated_db(tmp_path / "core.db", revision="0001_pl_core")
    insp = inspect(get_engine(database_url=url))

    assert insp.has_table("pl_transactions")
    assert insp.has_table("pl_annual_category_amounts")
    assert not insp.has_table("pl_recurring_rules")
    assert not insp.has_table("pl_recurring_postings")
