"""Claimant notifications.

Delivery is owned by an external sink. The emitter builds the message for
each claim event and hands it over fire-and-forget: a failing sink is logged
and never fails the operation that triggered it.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Protocol, runtime_checkable
from uuid import UUID

from beartype import beartype
from pydantic import Field

from ..core.logging_utils import get_logger
from ..models.base import BaseModelConfig
from ..models.claim import Claim

logger = get_logger(__name__)

COMMENT_PREVIEW_LENGTH = 100


class NotificationType(str, Enum):
    CLAIM_ADMIN_APPROVED = "CLAIM_ADMIN_APPROVED"
    CLAIM_COMPLETED = "CLAIM_COMPLETED"
    CLAIM_REJECTED = "CLAIM_REJECTED"
    CLAIM_COMMENT = "CLAIM_COMMENT"


@beartype
class Notification(BaseModelConfig):
    """Message addressed to a claimant about one of their claims."""

    claimant_id: UUID = Field(...)
    type: NotificationType = Field(...)
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    related_claim_id: UUID = Field(...)
    created_at: datetime = Field(...)


@runtime_checkable
class NotificationSink(Protocol):
    """Anything that can deliver a notification."""

    async def send(self, notification: Notification) -> None: ...


class LoggingNotificationSink:
    """Default sink: writes notifications to the application log."""

    @beartype
    async def send(self, notification: Notification) -> None:
        logger.info(
            "Notification %s to %s for claim %s: %s",
            notification.type.value,
            notification.claimant_id,
            notification.related_claim_id,
            notification.title,
        )


def _money(value: Decimal) -> str:
    return f"{value:,.2f}"


def _label(claim: Claim) -> str:
    return claim.sub_program_name or claim.claim_number


class NotificationEmitter:
    """Builds claim notifications and forwards them to a sink."""

    def __init__(self, sink: NotificationSink) -> None:
        self._sink = sink

    @beartype
    async def emit(self, notification: Notification) -> bool:
        """Deliver one notification; report failure through the log only."""
        try:
            await self._sink.send(notification)
            return True
        except Exception:
            logger.warning(
                "Notification %s for claim %s could not be delivered",
                notification.type.value,
                notification.related_claim_id,
                exc_info=True,
            )
            return False

    @beartype
    async def claim_admin_approved(self, claim: Claim, at: datetime) -> bool:
        return await self.emit(
            Notification(
                claimant_id=claim.claimant_id,
                type=NotificationType.CLAIM_ADMIN_APPROVED,
                title="Claim approved by admin",
                message=(
                    f"Your {_label(claim)} claim for {_money(claim.requested_amount)} "
                    "was approved by an admin and is awaiting manager approval"
                ),
                related_claim_id=claim.id,
                created_at=at,
            )
        )

    @beartype
    async def claim_completed(self, claim: Claim, at: datetime) -> bool:
        amount = claim.approved_amount
        if amount is None:
            amount = claim.requested_amount
        return await self.emit(
            Notification(
                claimant_id=claim.claimant_id,
                type=NotificationType.CLAIM_COMPLETED,
                title="Claim approved",
                message=f"Your {_label(claim)} claim for {_money(amount)} has been approved",
                related_claim_id=claim.id,
                created_at=at,
            )
        )

    @beartype
    async def claim_rejected(self, claim: Claim, at: datetime) -> bool:
        return await self.emit(
            Notification(
                claimant_id=claim.claimant_id,
                type=NotificationType.CLAIM_REJECTED,
                title="Claim rejected",
                message=(
                    f"Your {_label(claim)} claim for {_money(claim.requested_amount)} "
                    f"was rejected: {claim.rejection_reason}"
                ),
                related_claim_id=claim.id,
                created_at=at,
            )
        )

    @beartype
    async def claim_comment(self, claim: Claim, body: str, at: datetime) -> bool:
        preview = body[:COMMENT_PREVIEW_LENGTH]
        if len(body) > COMMENT_PREVIEW_LENGTH:
            preview += "..."
        return await self.emit(
            Notification(
                claimant_id=claim.claimant_id,
                type=NotificationType.CLAIM_COMMENT,
                title="New comment on your claim",
                message=f"A reviewer commented: {preview}",
                related_claim_id=claim.id,
                created_at=at,
            )
        )
