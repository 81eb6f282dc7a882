"""Test configuration and fixtures.

Services run against a file-backed SQLite database per test so concurrent
units of work really contend for the database lock, and against a
fakeredis cache. Notification and audit sinks record what they receive.
"""

from collections.abc import AsyncGenerator, Generator
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from fakeredis import FakeAsyncRedis

from welfare_core.core.cache import Cache
from welfare_core.core.config import clear_settings_cache
from welfare_core.core.database import Database
from welfare_core.models.welfare import (
    RequiredDocument,
    UnitType,
    WelfareProgramCreate,
    WelfareSubProgramCreate,
)
from welfare_core.services.audit_trail import AuditTrail
from welfare_core.services.catalog_service import CatalogService
from welfare_core.services.claim_service import ClaimService
from welfare_core.services.comment_service import CommentService
from welfare_core.services.notifications import NotificationEmitter
from welfare_core.services.quota_ledger import QuotaLedger
from welfare_core.services.quota_service import QuotaService

from tests.fixtures.test_data import (
    BANGKOK,
    FrozenClock,
    RecordingAuditSink,
    RecordingNotificationSink,
    SeededCatalog,
)


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset settings between tests."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def clock() -> FrozenClock:
    # Mid-August 2024 in Bangkok: fiscal year 2025.
    return FrozenClock(datetime(2024, 8, 15, 10, 0, tzinfo=BANGKOK))


@pytest_asyncio.fixture
async def db(tmp_path: Path) -> AsyncGenerator[Database, None]:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'welfare.db'}")
    await database.connect()
    await database.create_schema()
    yield database
    await database.disconnect()


@pytest_asyncio.fixture
async def cache() -> AsyncGenerator[Cache, None]:
    client = FakeAsyncRedis(decode_responses=True)
    yield Cache(client)
    await client.flushall()
    await client.aclose()


@pytest.fixture
def notifications() -> RecordingNotificationSink:
    return RecordingNotificationSink()


@pytest.fixture
def audit_events() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def catalog(db: Database, cache: Cache, clock: FrozenClock) -> CatalogService:
    return CatalogService(db, cache, clock)


@pytest.fixture
def claim_service(
    db: Database,
    catalog: CatalogService,
    notifications: RecordingNotificationSink,
    audit_events: RecordingAuditSink,
    clock: FrozenClock,
) -> ClaimService:
    return ClaimService(
        db, catalog, NotificationEmitter(notifications), AuditTrail(audit_events), clock
    )


@pytest.fixture
def comment_service(
    db: Database,
    notifications: RecordingNotificationSink,
    audit_events: RecordingAuditSink,
    clock: FrozenClock,
) -> CommentService:
    return CommentService(
        db, NotificationEmitter(notifications), AuditTrail(audit_events), clock
    )


@pytest.fixture
def quota_service(
    db: Database, catalog: CatalogService, clock: FrozenClock
) -> QuotaService:
    return QuotaService(catalog, QuotaLedger(db), clock)


@pytest_asyncio.fixture
async def seeded(catalog: CatalogService) -> SeededCatalog:
    """Marriage (one 3,000 lump sum a year) and Medical (500 a night)."""
    marriage_program = (
        await catalog.create_program(
            WelfareProgramCreate(
                code="MARRIAGE",
                name="Marriage",
                sort_order=1,
                required_documents=[RequiredDocument(name="Marriage certificate")],
            )
        )
    ).unwrap()
    marriage = (
        await catalog.create_sub_program(
            WelfareSubProgramCreate(
                program_id=marriage_program.id,
                code="MARRIAGE_GIFT",
                name="Marriage gift",
                unit_type=UnitType.LUMP_SUM,
                amount=Decimal("3000.00"),
                max_per_year=Decimal("3000.00"),
                max_claims_per_year=1,
            )
        )
    ).unwrap()

    medical_program = (
        await catalog.create_program(
            WelfareProgramCreate(code="MEDICAL", name="Medical", sort_order=2)
        )
    ).unwrap()
    inpatient = (
        await catalog.create_sub_program(
            WelfareSubProgramCreate(
                program_id=medical_program.id,
                code="INPATIENT",
                name="Inpatient room",
                unit_type=UnitType.PER_NIGHT,
                amount=Decimal("500.00"),
                max_per_year=Decimal("5000.00"),
                sort_order=1,
            )
        )
    ).unwrap()
    dental = (
        await catalog.create_sub_program(
            WelfareSubProgramCreate(
                program_id=medical_program.id,
                code="DENTAL",
                name="Dental care",
                unit_type=UnitType.LUMP_SUM,
                amount=Decimal("600.00"),
                max_per_request=Decimal("1000.00"),
                max_lifetime=Decimal("1200.00"),
                max_claims_lifetime=5,
                sort_order=2,
            )
        )
    ).unwrap()
    return SeededCatalog(
        marriage_program_id=marriage_program.id,
        marriage_id=marriage.id,
        medical_program_id=medical_program.id,
        inpatient_id=inpatient.id,
        dental_id=dental.id,
    )


@pytest.fixture
def claimant_id() -> UUID:
    return uuid4()


@pytest.fixture
def admin_id() -> UUID:
    return uuid4()


@pytest.fixture
def manager_id() -> UUID:
    return uuid4()
