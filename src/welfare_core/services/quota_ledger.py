"""Quota ledger: how much each claimant has consumed per sub-program.

Usage is stored per (claimant, sub-program, fiscal year). Reads of a key
with no entry return zeros; writes upsert. Lifetime figures are the sum of
the yearly rows of the same (claimant, sub-program) pair.

The ledger only ever moves when a claim completes. ``record_usage`` is
keyed by claim id through the postings table, so posting the same claim a
second time leaves the counters untouched, and increments are atomic
upserts so two claims completing on the same key never lose an update.
"""

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

import sqlalchemy as sa
from beartype import beartype
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncConnection

from ..core.database import Database
from ..core.errors import ClaimError
from ..core.logging_utils import get_logger
from ..core.result_types import Ok, Result
from ..core.tables import quota_ledger, quota_ledger_postings
from ..models.quota import UsageSnapshot
from .transaction_helpers import with_connection

logger = get_logger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")


def _insert_for(conn: AsyncConnection) -> Callable[..., Any]:
    """Dialect-specific INSERT that supports ON CONFLICT."""
    if conn.dialect.name == "postgresql":
        return postgresql.insert
    if conn.dialect.name == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Unsupported dialect: {conn.dialect.name}")


def _money(value: object) -> Decimal:
    return Decimal(str(value)).quantize(CENT)


@beartype
async def read_usage(
    conn: AsyncConnection,
    claimant_id: UUID,
    sub_program_id: UUID,
    fiscal_year: int,
) -> UsageSnapshot:
    """Usage for one key, as seen by ``conn``'s transaction."""
    is_year = quota_ledger.c.fiscal_year == fiscal_year
    query = sa.select(
        sa.func.coalesce(
            sa.func.sum(sa.case((is_year, quota_ledger.c.used_amount_year), else_=0)), 0
        ).label("used_amount_year"),
        sa.func.coalesce(sa.func.sum(quota_ledger.c.used_amount_year), 0).label(
            "used_amount_lifetime"
        ),
        sa.func.coalesce(
            sa.func.sum(sa.case((is_year, quota_ledger.c.used_claims_year), else_=0)), 0
        ).label("used_claims_year"),
        sa.func.coalesce(sa.func.sum(quota_ledger.c.used_claims_year), 0).label(
            "used_claims_lifetime"
        ),
    ).where(
        quota_ledger.c.claimant_id == claimant_id,
        quota_ledger.c.sub_program_id == sub_program_id,
    )
    row = (await conn.execute(query)).mappings().one()
    return UsageSnapshot(
        claimant_id=claimant_id,
        sub_program_id=sub_program_id,
        fiscal_year=fiscal_year,
        used_amount_year=_money(row["used_amount_year"]),
        used_amount_lifetime=_money(row["used_amount_lifetime"]),
        used_claims_year=int(row["used_claims_year"]),
        used_claims_lifetime=int(row["used_claims_lifetime"]),
    )


@beartype
async def read_usage_for_year(
    conn: AsyncConnection, claimant_id: UUID, fiscal_year: int
) -> dict[UUID, UsageSnapshot]:
    """Usage of every sub-program a claimant has touched, keyed by sub-program."""
    is_year = quota_ledger.c.fiscal_year == fiscal_year
    query = (
        sa.select(
            quota_ledger.c.sub_program_id,
            sa.func.sum(
                sa.case((is_year, quota_ledger.c.used_amount_year), else_=0)
            ).label("used_amount_year"),
            sa.func.sum(quota_ledger.c.used_amount_year).label("used_amount_lifetime"),
            sa.func.sum(
                sa.case((is_year, quota_ledger.c.used_claims_year), else_=0)
            ).label("used_claims_year"),
            sa.func.sum(quota_ledger.c.used_claims_year).label("used_claims_lifetime"),
        )
        .where(quota_ledger.c.claimant_id == claimant_id)
        .group_by(quota_ledger.c.sub_program_id)
    )
    usage: dict[UUID, UsageSnapshot] = {}
    for row in (await conn.execute(query)).mappings():
        usage[row["sub_program_id"]] = UsageSnapshot(
            claimant_id=claimant_id,
            sub_program_id=row["sub_program_id"],
            fiscal_year=fiscal_year,
            used_amount_year=_money(row["used_amount_year"]),
            used_amount_lifetime=_money(row["used_amount_lifetime"]),
            used_claims_year=int(row["used_claims_year"]),
            used_claims_lifetime=int(row["used_claims_lifetime"]),
        )
    return usage


def pair_lock(claimant_id: UUID, sub_program_id: UUID) -> sa.Select:
    """Transaction-scoped advisory lock on one (claimant, sub-program) pair."""
    key = sa.func.hashtextextended(f"{claimant_id}:{sub_program_id}", 0)
    return sa.select(sa.func.pg_advisory_xact_lock(key))


@beartype
async def lock_entry(
    conn: AsyncConnection,
    claimant_id: UUID,
    sub_program_id: UUID,
    fiscal_year: int,
    at: datetime,
) -> None:
    """Serialize writers of one (claimant, sub-program) pair.

    On PostgreSQL the pair is locked with an advisory lock held until the
    transaction ends. Row locks alone would miss a concurrent writer whose
    yearly row for another fiscal year is not yet committed. The yearly row
    is then created if missing and the pair's rows are locked in fiscal-year
    order. SQLite has no row locks; its writers are already serialized by
    ``BEGIN IMMEDIATE``.
    """
    postgres = conn.dialect.name == "postgresql"
    if postgres:
        await conn.execute(pair_lock(claimant_id, sub_program_id))

    insert = _insert_for(conn)
    await conn.execute(
        insert(quota_ledger)
        .values(
            claimant_id=claimant_id,
            sub_program_id=sub_program_id,
            fiscal_year=fiscal_year,
            used_amount_year=ZERO,
            used_claims_year=0,
            updated_at=at,
        )
        .on_conflict_do_nothing(
            index_elements=["claimant_id", "sub_program_id", "fiscal_year"]
        )
    )
    if postgres:
        await conn.execute(
            sa.select(quota_ledger.c.fiscal_year)
            .where(
                quota_ledger.c.claimant_id == claimant_id,
                quota_ledger.c.sub_program_id == sub_program_id,
            )
            .order_by(quota_ledger.c.fiscal_year)
            .with_for_update()
        )


@beartype
async def record_usage(
    conn: AsyncConnection,
    claim_id: UUID,
    claimant_id: UUID,
    sub_program_id: UUID,
    fiscal_year: int,
    amount: Decimal,
    at: datetime,
) -> bool:
    """Charge a completed claim to the ledger, at most once per claim.

    Must run in the same transaction as the claim's COMPLETED transition.
    Returns ``False`` when the claim had already been posted.
    """
    insert = _insert_for(conn)
    posted = await conn.execute(
        insert(quota_ledger_postings)
        .values(
            claim_id=claim_id,
            claimant_id=claimant_id,
            sub_program_id=sub_program_id,
            fiscal_year=fiscal_year,
            amount=amount,
            posted_at=at,
        )
        .on_conflict_do_nothing(index_elements=["claim_id"])
        .returning(quota_ledger_postings.c.claim_id)
    )
    if posted.first() is None:
        logger.warning("Claim %s already posted to the quota ledger; skipped", claim_id)
        return False

    upsert = insert(quota_ledger).values(
        claimant_id=claimant_id,
        sub_program_id=sub_program_id,
        fiscal_year=fiscal_year,
        used_amount_year=amount,
        used_claims_year=1,
        updated_at=at,
    )
    await conn.execute(
        upsert.on_conflict_do_update(
            index_elements=["claimant_id", "sub_program_id", "fiscal_year"],
            set_={
                "used_amount_year": quota_ledger.c.used_amount_year
                + upsert.excluded.used_amount_year,
                "used_claims_year": quota_ledger.c.used_claims_year + 1,
                "updated_at": upsert.excluded.updated_at,
            },
        )
    )
    logger.info(
        "Posted claim %s: %s to claimant %s sub-program %s FY %d",
        claim_id,
        amount,
        claimant_id,
        sub_program_id,
        fiscal_year,
    )
    return True


class QuotaLedger:
    """Read side of the ledger for callers outside a unit of work."""

    def __init__(self, db: Database) -> None:
        if not db or not hasattr(db, "connection"):
            raise ValueError("Database connection required and must be active")
        self._db = db

    @beartype
    async def get_usage(
        self, claimant_id: UUID, sub_program_id: UUID, fiscal_year: int
    ) -> Result[UsageSnapshot, ClaimError]:
        """Usage for one key; zeros when nothing has been consumed yet."""

        async def _operation(conn: AsyncConnection) -> Result[UsageSnapshot, ClaimError]:
            return Ok(await read_usage(conn, claimant_id, sub_program_id, fiscal_year))

        return await with_connection(self._db, _operation)

    @beartype
    async def get_usage_for_year(
        self, claimant_id: UUID, fiscal_year: int
    ) -> Result[dict[UUID, UsageSnapshot], ClaimError]:
        async def _operation(
            conn: AsyncConnection,
        ) -> Result[dict[UUID, UsageSnapshot], ClaimError]:
            return Ok(await read_usage_for_year(conn, claimant_id, fiscal_year))

        return await with_connection(self._db, _operation)
