"""Tests for SQLite transaction handling in the database layer."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import uuid4

import sqlalchemy as sa
from sqlalchemy import event

from welfare_core.core.database import READ_ONLY, Database, sqlite_begin_statement
from welfare_core.core.tables import quota_ledger

from tests.fixtures.test_data import BANGKOK


def record_statements(db: Database) -> list[str]:
    statements: list[str] = []

    def _before_execute(conn: Any, cursor: Any, statement: str, *args: Any) -> None:
        statements.append(statement)

    event.listen(db.engine.sync_engine, "before_cursor_execute", _before_execute)
    return statements


def ledger_row() -> dict[str, Any]:
    return {
        "claimant_id": uuid4(),
        "sub_program_id": uuid4(),
        "fiscal_year": 2025,
        "used_amount_year": Decimal("100.00"),
        "used_claims_year": 1,
        "updated_at": datetime(2024, 9, 1, tzinfo=BANGKOK),
    }


class TestSqliteBegin:
    def test_writers_begin_immediate(self) -> None:
        assert sqlite_begin_statement({}) == "BEGIN IMMEDIATE"

    def test_readers_begin_deferred(self) -> None:
        assert sqlite_begin_statement({READ_ONLY: True}) == "BEGIN"

    async def test_each_context_issues_its_own_begin(self, db: Database) -> None:
        statements = record_statements(db)

        async with db.connection() as conn:
            await conn.execute(sa.text("SELECT 1"))
        async with db.transaction() as conn:
            await conn.execute(sa.text("SELECT 1"))

        begins = [s for s in statements if s.startswith("BEGIN")]
        assert begins == ["BEGIN", "BEGIN IMMEDIATE"]

    async def test_reader_is_not_blocked_by_open_writer(self, db: Database) -> None:
        async with db.transaction() as conn:
            await conn.execute(quota_ledger.insert().values(**ledger_row()))

        async with db.transaction() as writer:
            await writer.execute(quota_ledger.insert().values(**ledger_row()))

            async with db.connection() as reader:
                count = (
                    await reader.execute(sa.select(sa.func.count()).select_from(quota_ledger))
                ).scalar_one()

        # The reader sees only what was committed before it started.
        assert count == 1
