"""Claim status transitions.

The allowed moves are declared once in ``TRANSITIONS``. A transition is
applied as a compare-and-swap: the UPDATE only matches while the claim is
still in one of the allowed source statuses, so of two concurrent requests
on the same claim exactly one succeeds and the other observes the new
status and fails with ``InvalidStateTransition``.
"""

from types import MappingProxyType
from typing import Any, Final
from uuid import UUID

import sqlalchemy as sa
from beartype import beartype
from sqlalchemy.ext.asyncio import AsyncConnection

from ..core.errors import InvalidStateTransition, NotFound
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..core.tables import claims
from ..models.claim import ClaimStatus

logger = get_logger(__name__)

TRANSITIONS: Final = MappingProxyType(
    {
        ClaimStatus.PENDING: frozenset(
            {ClaimStatus.IN_REVIEW, ClaimStatus.ADMIN_APPROVED, ClaimStatus.REJECTED}
        ),
        ClaimStatus.IN_REVIEW: frozenset(
            {ClaimStatus.ADMIN_APPROVED, ClaimStatus.REJECTED}
        ),
        ClaimStatus.ADMIN_APPROVED: frozenset(
            {ClaimStatus.COMPLETED, ClaimStatus.REJECTED}
        ),
        ClaimStatus.COMPLETED: frozenset(),
        ClaimStatus.REJECTED: frozenset(),
    }
)


@beartype
def is_valid_transition(current: ClaimStatus, target: ClaimStatus) -> bool:
    return target in TRANSITIONS[current]


@beartype
def allowed_sources(target: ClaimStatus) -> frozenset[ClaimStatus]:
    """Statuses from which ``target`` can be reached."""
    return frozenset(
        source for source, targets in TRANSITIONS.items() if target in targets
    )


@beartype
async def read_status(conn: AsyncConnection, claim_id: UUID) -> ClaimStatus | None:
    row = (
        await conn.execute(sa.select(claims.c.status).where(claims.c.id == claim_id))
    ).first()
    return ClaimStatus(row.status) if row else None


@beartype
async def apply_transition(
    conn: AsyncConnection,
    claim_id: UUID,
    target: ClaimStatus,
    sources: frozenset[ClaimStatus] | None = None,
    **values: Any,
) -> Result[ClaimStatus, NotFound | InvalidStateTransition]:
    """Move a claim to ``target`` if it is still in one of ``sources``.

    ``sources`` defaults to every status the table allows ``target`` from;
    callers may narrow it. ``values`` are written in the same UPDATE.
    Returns the status the claim left.
    """
    if sources is None:
        sources = allowed_sources(target)

    # The WHERE clause of the UPDATE is the guard; this read only feeds the log.
    current = await read_status(conn, claim_id)
    if current is None:
        return Err(NotFound("Claim", str(claim_id)))

    updated = await conn.execute(
        claims.update()
        .where(
            claims.c.id == claim_id,
            claims.c.status.in_([status.value for status in sources]),
        )
        .values(status=target.value, **values)
        .returning(claims.c.id)
    )
    if updated.first() is None:
        observed = await read_status(conn, claim_id)
        if observed is None:
            return Err(NotFound("Claim", str(claim_id)))
        logger.info(
            "Refused transition of claim %s from %s to %s",
            claim_id,
            observed.value,
            target.value,
        )
        return Err(InvalidStateTransition(observed.value, target.value))

    logger.info("Claim %s moved %s -> %s", claim_id, current.value, target.value)
    return Ok(current)
