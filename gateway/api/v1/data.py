"""Data-plane endpoints over the ticket dataset."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from gateway.common.database import get_db
from gateway.common.responses import success_response, paginated_response
from gateway.domain.query_builder import ListParams
from gateway.domain.schemas import DataUpdateRequest
from gateway.usecase.data_usecase import DataUsecase, MetadataCache
from .dependencies import Builder, CurrentPrincipal, get_metadata_cache

router = APIRouter()

# Keeps OFFSET inside a 64-bit integer for every driver
MAX_PAGE = 1_000_000
MAX_PAGE_SIZE_PARAM = 10_000


@router.get("/data", response_model=dict)
async def list_data(
    principal: CurrentPrincipal,
    builder: Builder,
    page: int | None = Query(
        default=None, le=MAX_PAGE, description="1-based page; omit or <= 0 for every row up to the cap"
    ),
    page_size: int | None = Query(default=None, le=MAX_PAGE_SIZE_PARAM),
    sort_by: str | None = Query(default=None),
    sort_order: str | None = Query(default=None),
    search: str | None = Query(default=None),
    status: str | None = Query(default=None),
    mode: str | None = Query(default=None),
    priority: str | None = Query(default=None),
    session: AsyncSession = Depends(get_db),
):
    """List rows visible to the calling token.

    Unknown sort keys and directions fall back to
    ``incident_start_datetime desc``.
    """
    params = ListParams(
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        sort_dir=sort_order,
        search=search,
        filters={"status": status, "mode": mode, "priority": priority},
    )
    usecase = DataUsecase(session, builder)
    result = await usecase.list_rows(principal.scope, params)
    return paginated_response(
        result["items"], total=result["total"], page=result["page"], page_size=result["page_size"]
    )


@router.get("/data/metadata", response_model=dict)
async def get_metadata(
    principal: CurrentPrincipal,
    builder: Builder,
    cache: Annotated[MetadataCache, Depends(get_metadata_cache)],
    session: AsyncSession = Depends(get_db),
):
    """Distinct status, mode and priority values for filter pickers."""
    metadata = await cache.get_or_refresh(session, builder)
    return success_response(metadata.model_dump())


@router.get("/data/{terminal_id}", response_model=dict)
async def get_data(
    terminal_id: str,
    principal: CurrentPrincipal,
    builder: Builder,
    session: AsyncSession = Depends(get_db),
):
    """Get one row; rows outside the token scope are reported as not found."""
    usecase = DataUsecase(session, builder)
    row = await usecase.get_row(principal.scope, terminal_id)
    return success_response(row.model_dump())


@router.put("/data/{terminal_id}", response_model=dict)
async def update_data(
    terminal_id: str,
    update_request: DataUpdateRequest,
    principal: CurrentPrincipal,
    builder: Builder,
    cache: Annotated[MetadataCache, Depends(get_metadata_cache)],
    session: AsyncSession = Depends(get_db),
):
    """Update one row inside the token scope.

    Returns 403 when a scoped token targets a row outside its scope and 404
    when an unscoped token targets a missing row.
    """
    usecase = DataUsecase(session, builder)
    row = await usecase.update_row(
        principal.scope, terminal_id, update_request.model_dump(exclude_unset=True)
    )
    cache.invalidate()
    return success_response(row.model_dump())
