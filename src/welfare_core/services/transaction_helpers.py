"""Transaction helper patterns for safe database operations.

Operations run inside one unit of work and report business failures as
``Err``. An ``Err`` rolls the unit back just like an exception does, so a
half-applied transition can never be committed.
"""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from beartype import beartype
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from ..core.database import Database
from ..core.errors import ClaimError, StorageError
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Result

T = TypeVar("T")

logger = get_logger(__name__)


class _RollbackRequested(Exception):
    """Carries an ``Err`` out of the transaction block to force a rollback."""

    def __init__(self, result: Err[Any]) -> None:
        super().__init__("rollback requested")
        self.result = result


@beartype
async def with_transaction(
    db: Database,
    operation: Callable[[AsyncConnection], Awaitable[Result[T, ClaimError]]],
) -> Result[T, ClaimError]:
    """Execute ``operation`` within a transaction with automatic rollback.

    The transaction commits only when ``operation`` returns ``Ok``. An ``Err``
    result or any exception rolls everything back; storage exceptions are
    converted to ``StorageError`` while programming errors propagate.

    Example:
        ```python
        async def _operation(conn):
            moved = await apply_transition(conn, claim_id, ...)
            if isinstance(moved, Err):
                return moved
            await record_usage(conn, ...)
            return Ok(claim_id)

        return await with_transaction(db, _operation)
        ```
    """
    try:
        async with db.transaction() as conn:
            result = await operation(conn)
            if isinstance(result, Err):
                raise _RollbackRequested(result)
            return result
    except _RollbackRequested as rollback:
        return rollback.result
    except SQLAlchemyError as e:
        logger.error("Transaction rolled back: %s", e, exc_info=True)
        return Err(StorageError(f"Transaction failed: {e.__class__.__name__}"))


@beartype
async def with_connection(
    db: Database,
    operation: Callable[[AsyncConnection], Awaitable[Result[T, ClaimError]]],
) -> Result[T, ClaimError]:
    """Execute a read-only ``operation`` with storage errors mapped to ``Err``."""
    try:
        async with db.connection() as conn:
            return await operation(conn)
    except SQLAlchemyError as e:
        logger.error("Read failed: %s", e, exc_info=True)
        return Err(StorageError(f"Read failed: {e.__class__.__name__}"))
