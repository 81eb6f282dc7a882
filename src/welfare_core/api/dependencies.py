# WelfareCore - Employee Welfare Claims Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""FastAPI dependencies for identity, storage, collaborators and services.

Each collaborator (database, cache, clock, notification sink, audit sink)
is its own dependency so tests can replace it through
``app.dependency_overrides``.
"""

from beartype import beartype
from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..core import cache as core_cache
from ..core.cache import Cache
from ..core.database import Database, get_database
from ..core.fiscal_year import Clock, system_clock
from ..core.security import get_security
from ..models.actor import Actor
from ..services.audit_trail import AuditSink, AuditTrail, DatabaseAuditSink
from ..services.catalog_service import CatalogService
from ..services.claim_service import ClaimService
from ..services.comment_service import CommentService
from ..services.notifications import (
    LoggingNotificationSink,
    NotificationEmitter,
    NotificationSink,
)
from ..services.quota_ledger import QuotaLedger
from ..services.quota_service import QuotaService

# Security scheme
security = HTTPBearer()


@beartype
def get_db() -> Database:
    """Provide the process-wide database."""
    return get_database()


@beartype
def get_cache() -> Cache:
    """Provide the process-wide cache for dependency injection."""
    return core_cache.get_cache()


@beartype
def get_clock() -> Clock:
    return system_clock


@beartype
def get_notification_sink() -> NotificationSink:
    return LoggingNotificationSink()


@beartype
def get_audit_sink(db: Database = Depends(get_db)) -> AuditSink:
    return DatabaseAuditSink(db)


@beartype
async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Security(security),
) -> Actor:
    """Resolve the caller from the bearer token.

    Raises:
        HTTPException: 401 if the token is invalid, expired or incomplete
    """
    actor = get_security().actor_from_token(credentials.credentials)
    if actor is None:
        # This is a dependency, not an endpoint; FastAPI expects an exception.
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor


@beartype
def get_catalog_service(
    db: Database = Depends(get_db),
    cache: Cache = Depends(get_cache),
    clock: Clock = Depends(get_clock),
) -> CatalogService:
    return CatalogService(db, cache, clock)


@beartype
def get_claim_service(
    db: Database = Depends(get_db),
    catalog: CatalogService = Depends(get_catalog_service),
    sink: NotificationSink = Depends(get_notification_sink),
    audit_sink: AuditSink = Depends(get_audit_sink),
    clock: Clock = Depends(get_clock),
) -> ClaimService:
    return ClaimService(
        db, catalog, NotificationEmitter(sink), AuditTrail(audit_sink), clock
    )


@beartype
def get_comment_service(
    db: Database = Depends(get_db),
    sink: NotificationSink = Depends(get_notification_sink),
    audit_sink: AuditSink = Depends(get_audit_sink),
    clock: Clock = Depends(get_clock),
) -> CommentService:
    return CommentService(db, NotificationEmitter(sink), AuditTrail(audit_sink), clock)


@beartype
def get_quota_service(
    db: Database = Depends(get_db),
    catalog: CatalogService = Depends(get_catalog_service),
    clock: Clock = Depends(get_clock),
) -> QuotaService:
    return QuotaService(catalog, QuotaLedger(db), clock)


@beartype
class PaginationParams:
    """Common pagination parameters for list endpoints."""

    def __init__(
        self,
        skip: int = 0,
        limit: int = 50,
    ) -> None:
        """Initialize pagination parameters.

        Raises:
            HTTPException: If parameters are invalid
        """
        if skip < 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Skip parameter cannot be negative",
            )

        if limit < 1:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Limit must be at least 1",
            )

        if limit > 200:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Limit cannot exceed 200",
            )

        self.skip = skip
        self.limit = limit
