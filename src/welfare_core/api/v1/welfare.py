"""Welfare catalog endpoints.

Reading the catalog needs any authenticated caller; changing it needs the
MANAGE_CATALOG capability.
"""

from uuid import UUID

from beartype import beartype
from fastapi import APIRouter, Depends, Query, Response, status

from ...core.result_types import Err
from ...models.actor import Actor
from ...models.welfare import (
    DeletionOutcome,
    WelfareProgram,
    WelfareProgramCreate,
    WelfareSubProgram,
    WelfareSubProgramCreate,
    WelfareSubProgramUpdate,
)
from ...services.authorization import ClaimAction, authorize, can_perform
from ...services.catalog_service import CatalogService
from ..dependencies import get_catalog_service, get_current_actor
from ..response_patterns import ErrorResponse, handle_result

router = APIRouter()


@router.get("/")
@beartype
async def list_programs(
    response: Response,
    include_inactive: bool = Query(default=False),
    actor: Actor = Depends(get_current_actor),
    service: CatalogService = Depends(get_catalog_service),
) -> list[WelfareProgram] | ErrorResponse:
    """List programs with their sub-programs.

    Inactive entries are only listed for catalog managers.
    """
    active_only = not (include_inactive and can_perform(actor, ClaimAction.MANAGE_CATALOG))
    result = await service.list_programs(active_only=active_only)
    return handle_result(result, response)


@router.post("/", status_code=status.HTTP_201_CREATED)
@beartype
async def create_program(
    data: WelfareProgramCreate,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: CatalogService = Depends(get_catalog_service),
) -> WelfareProgram | ErrorResponse:
    allowed = authorize(actor, ClaimAction.MANAGE_CATALOG)
    if isinstance(allowed, Err):
        return handle_result(allowed, response)
    result = await service.create_program(data)
    return handle_result(result, response, status.HTTP_201_CREATED)


@router.delete("/{program_id}")
@beartype
async def delete_program(
    program_id: UUID,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: CatalogService = Depends(get_catalog_service),
) -> DeletionOutcome | ErrorResponse:
    """Delete a program, or deactivate it when claims reference it."""
    allowed = authorize(actor, ClaimAction.MANAGE_CATALOG)
    if isinstance(allowed, Err):
        return handle_result(allowed, response)
    result = await service.delete_program(program_id)
    return handle_result(result, response)


@router.get("/sub-programs/{sub_program_id}")
@beartype
async def get_sub_program(
    sub_program_id: UUID,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: CatalogService = Depends(get_catalog_service),
) -> WelfareSubProgram | ErrorResponse:
    result = await service.get_sub_program(sub_program_id)
    return handle_result(result, response)


@router.post("/sub-programs", status_code=status.HTTP_201_CREATED)
@beartype
async def create_sub_program(
    data: WelfareSubProgramCreate,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: CatalogService = Depends(get_catalog_service),
) -> WelfareSubProgram | ErrorResponse:
    allowed = authorize(actor, ClaimAction.MANAGE_CATALOG)
    if isinstance(allowed, Err):
        return handle_result(allowed, response)
    result = await service.create_sub_program(data)
    return handle_result(result, response, status.HTTP_201_CREATED)


@router.patch("/sub-programs/{sub_program_id}")
@beartype
async def update_sub_program(
    sub_program_id: UUID,
    changes: WelfareSubProgramUpdate,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: CatalogService = Depends(get_catalog_service),
) -> WelfareSubProgram | ErrorResponse:
    """Update only the fields present in the body.

    Limits may be cleared with an explicit null, which makes them unlimited.
    """
    allowed = authorize(actor, ClaimAction.MANAGE_CATALOG)
    if isinstance(allowed, Err):
        return handle_result(allowed, response)
    result = await service.update_sub_program(sub_program_id, changes)
    return handle_result(result, response)


@router.post("/sub-programs/{sub_program_id}/deactivate")
@beartype
async def deactivate_sub_program(
    sub_program_id: UUID,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: CatalogService = Depends(get_catalog_service),
) -> WelfareSubProgram | ErrorResponse:
    allowed = authorize(actor, ClaimAction.MANAGE_CATALOG)
    if isinstance(allowed, Err):
        return handle_result(allowed, response)
    result = await service.deactivate_sub_program(sub_program_id)
    return handle_result(result, response)


@router.delete("/sub-programs/{sub_program_id}")
@beartype
async def delete_sub_program(
    sub_program_id: UUID,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: CatalogService = Depends(get_catalog_service),
) -> DeletionOutcome | ErrorResponse:
    allowed = authorize(actor, ClaimAction.MANAGE_CATALOG)
    if isinstance(allowed, Err):
        return handle_result(allowed, response)
    result = await service.delete_sub_program(sub_program_id)
    return handle_result(result, response)
