"""Compliance audit trail for claim events.

Events are written after the claim's unit of work has committed, in a
separate transaction. A failing audit sink is logged and the event is
written to the application log instead; it never fails the operation.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from beartype import beartype
from pydantic import Field
from sqlalchemy.exc import SQLAlchemyError

from ..core.database import Database
from ..core.logging_utils import get_logger
from ..core.tables import audit_logs
from ..models.base import BaseModelConfig

logger = get_logger(__name__)

CLAIM_ENTITY_TYPE = "WelfareClaim"


class AuditAction(str, Enum):
    CLAIM_SUBMITTED = "CLAIM_SUBMITTED"
    CLAIM_ADMIN_APPROVED = "CLAIM_ADMIN_APPROVED"
    CLAIM_MANAGER_APPROVED = "CLAIM_MANAGER_APPROVED"
    CLAIM_REJECTED = "CLAIM_REJECTED"
    CLAIM_COMMENTED = "CLAIM_COMMENTED"
    CLAIM_WITHDRAWN = "CLAIM_WITHDRAWN"


@beartype
class AuditEvent(BaseModelConfig):
    action: AuditAction = Field(...)
    entity_type: str = Field(default=CLAIM_ENTITY_TYPE)
    entity_id: str = Field(..., min_length=1)
    actor_id: UUID | None = Field(default=None)
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(...)


@runtime_checkable
class AuditSink(Protocol):
    async def record(self, event: AuditEvent) -> None: ...


class DatabaseAuditSink:
    """Persists audit events to the ``audit_logs`` table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    @beartype
    async def record(self, event: AuditEvent) -> None:
        async with self._db.transaction() as conn:
            await conn.execute(
                audit_logs.insert().values(
                    action=event.action.value,
                    entity_type=event.entity_type,
                    entity_id=event.entity_id,
                    actor_id=event.actor_id,
                    details=event.details or None,
                    created_at=event.created_at,
                )
            )


class AuditTrail:
    """Fire-and-forget front of an audit sink."""

    def __init__(self, sink: AuditSink) -> None:
        self._sink = sink

    @beartype
    async def record(
        self,
        action: AuditAction,
        entity_id: UUID | str,
        actor_id: UUID | None,
        at: datetime,
        **details: Any,
    ) -> bool:
        """Record one claim event; returns ``False`` if the sink failed."""
        event = AuditEvent(
            action=action,
            entity_id=str(entity_id),
            actor_id=actor_id,
            details={k: str(v) for k, v in details.items() if v is not None},
            created_at=at,
        )
        try:
            await self._sink.record(event)
            return True
        except (SQLAlchemyError, OSError, RuntimeError):
            logger.warning(
                "Audit sink failed; %s %s %s by %s recorded to log only",
                event.action.value,
                event.entity_type,
                event.entity_id,
                event.actor_id,
                exc_info=True,
            )
            return False
