"""Welfare program catalog service.

Programs and sub-programs are configured by admins. Once any claim
references a sub-program it can no longer be removed, only deactivated,
because the claim is a financial record that must keep its rule.
"""

from enum import Enum
from typing import Any
from uuid import UUID, uuid4

import sqlalchemy as sa
from beartype import beartype
from redis.exceptions import RedisError
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncConnection

from ..core.cache import Cache
from ..core.config import get_settings
from ..core.database import Database
from ..core.errors import ClaimError, NotFound, ValidationError
from ..core.fiscal_year import Clock, system_clock
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..core.tables import (
    claims,
    welfare_programs,
    welfare_required_documents,
    welfare_sub_programs,
)
from ..models.welfare import (
    DeletionOutcome,
    RequiredDocument,
    WelfareProgram,
    WelfareProgramCreate,
    WelfareSubProgram,
    WelfareSubProgramCreate,
    WelfareSubProgramUpdate,
)
from .cache_keys import CacheKeys
from .performance_monitor import performance_monitor
from .transaction_helpers import with_connection, with_transaction

logger = get_logger(__name__)

_SUB_PROGRAM_COLUMNS = (
    welfare_sub_programs,
    welfare_programs.c.is_active.label("program_active"),
)


def row_to_sub_program(row: RowMapping) -> WelfareSubProgram:
    return WelfareSubProgram(
        id=row["id"],
        program_id=row["program_id"],
        code=row["code"],
        name=row["name"],
        description=row["description"],
        unit_type=row["unit_type"],
        amount=row["amount"],
        max_per_request=row["max_per_request"],
        max_per_year=row["max_per_year"],
        max_lifetime=row["max_lifetime"],
        max_claims_per_year=row["max_claims_per_year"],
        max_claims_lifetime=row["max_claims_lifetime"],
        is_active=row["is_active"],
        sort_order=row["sort_order"],
        program_active=row["program_active"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


@beartype
async def read_sub_program(
    conn: AsyncConnection, sub_program_id: UUID
) -> WelfareSubProgram | None:
    """Uncached read of a sub-program with its parent's active flag."""
    query = (
        sa.select(*_SUB_PROGRAM_COLUMNS)
        .join(welfare_programs, welfare_programs.c.id == welfare_sub_programs.c.program_id)
        .where(welfare_sub_programs.c.id == sub_program_id)
    )
    row = (await conn.execute(query)).mappings().first()
    return row_to_sub_program(row) if row else None


def _column_values(values: dict[str, Any]) -> dict[str, Any]:
    return {
        key: value.value if isinstance(value, Enum) else value
        for key, value in values.items()
    }


async def _has_claims(conn: AsyncConnection, *sub_program_ids: UUID) -> bool:
    if not sub_program_ids:
        return False
    query = (
        sa.select(claims.c.id)
        .where(claims.c.sub_program_id.in_(sub_program_ids))
        .limit(1)
    )
    return (await conn.execute(query)).first() is not None


class CatalogService:
    """Service for welfare program configuration."""

    def __init__(self, db: Database, cache: Cache, clock: Clock = system_clock) -> None:
        """Initialize catalog service with dependency validation."""
        if not db or not hasattr(db, "transaction"):
            raise ValueError("Database connection required and must be active")
        if not cache or not hasattr(cache, "get"):
            raise ValueError("Cache connection required and must be available")

        self._db = db
        self._cache = cache
        self._clock = clock
        self._cache_ttl = get_settings().catalog_cache_ttl_seconds

    @beartype
    @performance_monitor("create_program")
    async def create_program(
        self, data: WelfareProgramCreate
    ) -> Result[WelfareProgram, ClaimError]:
        """Create a program with its required document descriptors."""
        now = self._clock()
        program_id = uuid4()

        async def _operation(conn: AsyncConnection) -> Result[WelfareProgram, ClaimError]:
            existing = await conn.execute(
                sa.select(welfare_programs.c.id).where(welfare_programs.c.code == data.code)
            )
            if existing.first() is not None:
                return Err(ValidationError(f"Program code {data.code} already exists", "code"))

            await conn.execute(
                welfare_programs.insert().values(
                    id=program_id,
                    code=data.code,
                    name=data.name,
                    description=data.description,
                    is_active=True,
                    sort_order=data.sort_order,
                    created_at=now,
                    updated_at=now,
                )
            )
            for index, document in enumerate(data.required_documents):
                await conn.execute(
                    welfare_required_documents.insert().values(
                        program_id=program_id,
                        name=document.name,
                        is_required=document.is_required,
                        sort_order=index,
                    )
                )

            return Ok(
                WelfareProgram(
                    id=program_id,
                    code=data.code,
                    name=data.name,
                    description=data.description,
                    is_active=True,
                    sort_order=data.sort_order,
                    required_documents=data.required_documents,
                    created_at=now,
                    updated_at=now,
                )
            )

        result = await with_transaction(self._db, _operation)
        if isinstance(result, Ok):
            logger.info("Created welfare program %s (%s)", data.code, program_id)
        return result

    @beartype
    @performance_monitor("create_sub_program")
    async def create_sub_program(
        self, data: WelfareSubProgramCreate
    ) -> Result[WelfareSubProgram, ClaimError]:
        now = self._clock()
        sub_program_id = uuid4()

        async def _operation(conn: AsyncConnection) -> Result[WelfareSubProgram, ClaimError]:
            parent = (
                await conn.execute(
                    sa.select(welfare_programs.c.id).where(
                        welfare_programs.c.id == data.program_id
                    )
                )
            ).first()
            if parent is None:
                return Err(NotFound("WelfareProgram", str(data.program_id)))

            duplicate = (
                await conn.execute(
                    sa.select(welfare_sub_programs.c.id).where(
                        welfare_sub_programs.c.program_id == data.program_id,
                        welfare_sub_programs.c.code == data.code,
                    )
                )
            ).first()
            if duplicate is not None:
                return Err(
                    ValidationError(
                        f"Sub-program code {data.code} already exists in this program",
                        "code",
                    )
                )

            await conn.execute(
                welfare_sub_programs.insert().values(
                    id=sub_program_id,
                    is_active=True,
                    created_at=now,
                    updated_at=now,
                    **_column_values(data.model_dump(mode="python")),
                )
            )
            created = await read_sub_program(conn, sub_program_id)
            if created is None:
                return Err(NotFound("WelfareSubProgram", str(sub_program_id)))
            return Ok(created)

        result = await with_transaction(self._db, _operation)
        if isinstance(result, Ok):
            logger.info(
                "Created sub-program %s under program %s", data.code, data.program_id
            )
        return result

    @beartype
    @performance_monitor("update_sub_program")
    async def update_sub_program(
        self, sub_program_id: UUID, changes: WelfareSubProgramUpdate
    ) -> Result[WelfareSubProgram, ClaimError]:
        """Apply the fields explicitly set on ``changes``."""
        values = _column_values(changes.model_dump(mode="python", exclude_unset=True))

        async def _operation(conn: AsyncConnection) -> Result[WelfareSubProgram, ClaimError]:
            if values:
                updated = await conn.execute(
                    welfare_sub_programs.update()
                    .where(welfare_sub_programs.c.id == sub_program_id)
                    .values(updated_at=self._clock(), **values)
                )
                if updated.rowcount == 0:
                    return Err(NotFound("WelfareSubProgram", str(sub_program_id)))

            sub_program = await read_sub_program(conn, sub_program_id)
            if sub_program is None:
                return Err(NotFound("WelfareSubProgram", str(sub_program_id)))
            return Ok(sub_program)

        result = await with_transaction(self._db, _operation)
        if isinstance(result, Ok) and values:
            logger.info("Updated sub-program %s: %s", sub_program_id, sorted(values))
            await self._invalidate(sub_program_id)
        return result

    @beartype
    async def deactivate_sub_program(
        self, sub_program_id: UUID
    ) -> Result[WelfareSubProgram, ClaimError]:
        return await self.update_sub_program(
            sub_program_id, WelfareSubProgramUpdate(is_active=False)
        )

    @beartype
    @performance_monitor("delete_sub_program")
    async def delete_sub_program(
        self, sub_program_id: UUID
    ) -> Result[DeletionOutcome, ClaimError]:
        """Hard delete when unused, otherwise deactivate."""

        async def _operation(conn: AsyncConnection) -> Result[DeletionOutcome, ClaimError]:
            exists = (
                await conn.execute(
                    sa.select(welfare_sub_programs.c.id).where(
                        welfare_sub_programs.c.id == sub_program_id
                    )
                )
            ).first()
            if exists is None:
                return Err(NotFound("WelfareSubProgram", str(sub_program_id)))

            if await _has_claims(conn, sub_program_id):
                await conn.execute(
                    welfare_sub_programs.update()
                    .where(welfare_sub_programs.c.id == sub_program_id)
                    .values(is_active=False, updated_at=self._clock())
                )
                return Ok(DeletionOutcome(id=sub_program_id, deleted=False, deactivated=True))

            await conn.execute(
                welfare_sub_programs.delete().where(welfare_sub_programs.c.id == sub_program_id)
            )
            return Ok(DeletionOutcome(id=sub_program_id, deleted=True, deactivated=False))

        result = await with_transaction(self._db, _operation)
        if isinstance(result, Ok):
            outcome = result.unwrap()
            logger.info(
                "Sub-program %s %s",
                sub_program_id,
                "deleted" if outcome.deleted else "deactivated (claims exist)",
            )
            await self._invalidate(sub_program_id)
        return result

    @beartype
    @performance_monitor("delete_program")
    async def delete_program(self, program_id: UUID) -> Result[DeletionOutcome, ClaimError]:
        """Hard delete a program and its sub-programs when no claim uses them."""
        sub_program_ids: list[UUID] = []

        async def _operation(conn: AsyncConnection) -> Result[DeletionOutcome, ClaimError]:
            exists = (
                await conn.execute(
                    sa.select(welfare_programs.c.id).where(welfare_programs.c.id == program_id)
                )
            ).first()
            if exists is None:
                return Err(NotFound("WelfareProgram", str(program_id)))

            rows = await conn.execute(
                sa.select(welfare_sub_programs.c.id).where(
                    welfare_sub_programs.c.program_id == program_id
                )
            )
            sub_program_ids.extend(row.id for row in rows)

            if await _has_claims(conn, *sub_program_ids):
                await conn.execute(
                    welfare_programs.update()
                    .where(welfare_programs.c.id == program_id)
                    .values(is_active=False, updated_at=self._clock())
                )
                return Ok(DeletionOutcome(id=program_id, deleted=False, deactivated=True))

            await conn.execute(
                welfare_sub_programs.delete().where(
                    welfare_sub_programs.c.program_id == program_id
                )
            )
            await conn.execute(
                welfare_required_documents.delete().where(
                    welfare_required_documents.c.program_id == program_id
                )
            )
            await conn.execute(
                welfare_programs.delete().where(welfare_programs.c.id == program_id)
            )
            return Ok(DeletionOutcome(id=program_id, deleted=True, deactivated=False))

        result = await with_transaction(self._db, _operation)
        if isinstance(result, Ok):
            await self._invalidate(*sub_program_ids)
        return result

    @beartype
    @performance_monitor("get_sub_program")
    async def get_sub_program(
        self, sub_program_id: UUID
    ) -> Result[WelfareSubProgram, ClaimError]:
        """Get a sub-program, cache first."""
        cache_key = CacheKeys.sub_program(sub_program_id)
        cached = await self._cache_get(cache_key)
        if cached:
            return Ok(WelfareSubProgram.model_validate(cached))

        async def _operation(conn: AsyncConnection) -> Result[WelfareSubProgram, ClaimError]:
            sub_program = await read_sub_program(conn, sub_program_id)
            if sub_program is None:
                return Err(NotFound("WelfareSubProgram", str(sub_program_id)))
            return Ok(sub_program)

        result = await with_connection(self._db, _operation)
        if isinstance(result, Ok):
            await self._cache_set(cache_key, result.unwrap().model_dump(mode="json"))
        return result

    @beartype
    @performance_monitor("list_programs")
    async def list_programs(
        self, active_only: bool = True
    ) -> Result[list[WelfareProgram], ClaimError]:
        """List programs by sort order with sub-programs and documents."""

        async def _operation(conn: AsyncConnection) -> Result[list[WelfareProgram], ClaimError]:
            program_query = sa.select(welfare_programs).order_by(
                welfare_programs.c.sort_order, welfare_programs.c.name
            )
            sub_program_query = (
                sa.select(*_SUB_PROGRAM_COLUMNS)
                .join(
                    welfare_programs,
                    welfare_programs.c.id == welfare_sub_programs.c.program_id,
                )
                .order_by(welfare_sub_programs.c.sort_order, welfare_sub_programs.c.name)
            )
            if active_only:
                program_query = program_query.where(welfare_programs.c.is_active.is_(True))
                sub_program_query = sub_program_query.where(
                    welfare_sub_programs.c.is_active.is_(True)
                )

            documents: dict[UUID, list[RequiredDocument]] = {}
            document_rows = await conn.execute(
                sa.select(welfare_required_documents).order_by(
                    welfare_required_documents.c.sort_order,
                    welfare_required_documents.c.id,
                )
            )
            for row in document_rows.mappings():
                documents.setdefault(row["program_id"], []).append(
                    RequiredDocument(name=row["name"], is_required=row["is_required"])
                )

            sub_programs: dict[UUID, list[WelfareSubProgram]] = {}
            for row in (await conn.execute(sub_program_query)).mappings():
                sub_program = row_to_sub_program(row)
                sub_programs.setdefault(sub_program.program_id, []).append(sub_program)

            programs = [
                WelfareProgram(
                    id=row["id"],
                    code=row["code"],
                    name=row["name"],
                    description=row["description"],
                    is_active=row["is_active"],
                    sort_order=row["sort_order"],
                    required_documents=documents.get(row["id"], []),
                    sub_programs=sub_programs.get(row["id"], []),
                    created_at=row["created_at"],
                    updated_at=row["updated_at"],
                )
                for row in (await conn.execute(program_query)).mappings()
            ]
            return Ok(programs)

        return await with_connection(self._db, _operation)

    async def _cache_get(self, key: str) -> Any | None:
        try:
            return await self._cache.get(key)
        except (RedisError, OSError, RuntimeError):
            logger.warning("Cache read failed for %s", key, exc_info=True)
            return None

    async def _cache_set(self, key: str, value: Any) -> None:
        try:
            await self._cache.set(key, value, self._cache_ttl)
        except (RedisError, OSError, RuntimeError):
            logger.warning("Cache write failed for %s", key, exc_info=True)

    async def _invalidate(self, *sub_program_ids: UUID) -> None:
        for key in map(CacheKeys.sub_program, sub_program_ids):
            try:
                await self._cache.delete(key)
            except (RedisError, OSError, RuntimeError):
                logger.warning("Cache invalidation failed for %s", key, exc_info=True)


__all__ = ["CatalogService", "read_sub_program", "row_to_sub_program"]
