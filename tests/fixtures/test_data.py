"""Test doubles and data factories shared by the test suite."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID, uuid4
from zoneinfo import ZoneInfo

from welfare_core.models.actor import Actor, ActorKind, ReviewerRole
from welfare_core.models.claim import Claim, ClaimDocument, ClaimSubmission
from welfare_core.models.quota import UsageSnapshot
from welfare_core.models.welfare import UnitType, WelfareSubProgram
from welfare_core.services.audit_trail import AuditEvent
from welfare_core.services.claim_service import ClaimService
from welfare_core.services.notifications import Notification

BANGKOK = ZoneInfo("Asia/Bangkok")


class FrozenClock:
    """Injectable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingNotificationSink:
    def __init__(self) -> None:
        self.sent: list[Notification] = []

    async def send(self, notification: Notification) -> None:
        self.sent.append(notification)


class FailingNotificationSink:
    async def send(self, notification: Notification) -> None:
        raise ConnectionError("notification gateway unreachable")


class RecordingAuditSink:
    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    async def record(self, event: AuditEvent) -> None:
        self.events.append(event)


class FailingAuditSink:
    async def record(self, event: AuditEvent) -> None:
        raise OSError("audit store unreachable")


@dataclass(frozen=True)
class SeededCatalog:
    marriage_program_id: UUID
    marriage_id: UUID
    medical_program_id: UUID
    inpatient_id: UUID
    dental_id: UUID


def claimant(actor_id: UUID | None = None) -> Actor:
    return Actor(actor_id=actor_id or uuid4(), kind=ActorKind.CLAIMANT)


def reviewer(role: ReviewerRole, actor_id: UUID | None = None) -> Actor:
    return Actor(actor_id=actor_id or uuid4(), kind=ActorKind.REVIEWER, role=role)


def make_sub_program(
    unit_type: UnitType = UnitType.LUMP_SUM,
    amount: str = "3000.00",
    **limits: Decimal | int | None,
) -> WelfareSubProgram:
    """Sub-program built in memory for the pure validator functions."""
    now = datetime(2024, 8, 1, tzinfo=BANGKOK)
    return WelfareSubProgram(
        id=uuid4(),
        program_id=uuid4(),
        code="TEST",
        name="Test sub-program",
        unit_type=unit_type,
        amount=Decimal(amount),
        created_at=now,
        updated_at=now,
        **limits,
    )


def receipt(name: str = "receipt.pdf") -> ClaimDocument:
    return ClaimDocument(
        file_name=name,
        file_url=f"https://files.example.com/{name}",
        file_type="application/pdf",
        file_size=2048,
    )


async def submit(
    service: ClaimService, claimant_id: UUID, sub_program_id: UUID, **kwargs: object
) -> Claim:
    result = await service.submit_claim(
        claimant_id, ClaimSubmission(sub_program_id=sub_program_id, **kwargs)
    )
    return result.unwrap()


async def usage_of(
    service: ClaimService, claimant_id: UUID, sub_program_id: UUID, fiscal_year: int = 2025
) -> UsageSnapshot:
    return (await service.ledger.get_usage(claimant_id, sub_program_id, fiscal_year)).unwrap()
