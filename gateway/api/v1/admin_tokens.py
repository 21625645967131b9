"""API token management endpoints for administrators."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from gateway.common.database import get_db
from gateway.common.responses import success_response
from gateway.domain.schemas import TokenCreateRequest, TokenUpdateRequest, TokenRevokeRequest
from gateway.usecase.token_usecase import TokenUsecase
from .dependencies import AdminWriter, CurrentAdmin

router = APIRouter()


@router.get("/admin/tokens", response_model=dict)
async def list_tokens(
    actor: CurrentAdmin,
    session: AsyncSession = Depends(get_db),
):
    """List all tokens (secrets masked)."""
    usecase = TokenUsecase(session)
    tokens = await usecase.list_tokens()
    return success_response(tokens.model_dump())


@router.post("/admin/tokens", response_model=dict, status_code=201)
async def create_token(
    token_request: TokenCreateRequest,
    actor: AdminWriter,
    session: AsyncSession = Depends(get_db),
):
    """Create a new API token.

    Args:
        token_request: Token creation request
        actor: Acting admin (admin or super_admin)
        session: Database session

    Returns:
        Success response with token info (includes full token, shown only once)
    """
    usecase = TokenUsecase(session)
    token = await usecase.create_token(actor, token_request)
    return success_response(token.model_dump())


@router.get("/admin/tokens/{token_id}", response_model=dict)
async def get_token(
    token_id: UUID,
    actor: CurrentAdmin,
    session: AsyncSession = Depends(get_db),
):
    """Get token details."""
    usecase = TokenUsecase(session)
    token = await usecase.get_token(token_id)
    return success_response(token.model_dump())


@router.put("/admin/tokens/{token_id}", response_model=dict)
async def update_token(
    token_id: UUID,
    token_request: TokenUpdateRequest,
    actor: AdminWriter,
    session: AsyncSession = Depends(get_db),
):
    """Update token fields; only fields present in the body are changed."""
    usecase = TokenUsecase(session)
    token = await usecase.update_token(actor, token_id, token_request)
    return success_response(token.model_dump())


@router.patch("/admin/tokens/{token_id}/disable", response_model=dict)
async def disable_token(
    token_id: UUID,
    actor: AdminWriter,
    session: AsyncSession = Depends(get_db),
):
    """Disable a token. It can be enabled again later."""
    usecase = TokenUsecase(session)
    token = await usecase.set_token_active(actor, token_id, is_active=False)
    return success_response(token.model_dump())


@router.patch("/admin/tokens/{token_id}/enable", response_model=dict)
async def enable_token(
    token_id: UUID,
    actor: AdminWriter,
    session: AsyncSession = Depends(get_db),
):
    """Enable a disabled token. Revoked tokens stay revoked (409)."""
    usecase = TokenUsecase(session)
    token = await usecase.set_token_active(actor, token_id, is_active=True)
    return success_response(token.model_dump())


@router.post("/admin/tokens/{token_id}/revoke", response_model=dict)
async def revoke_token(
    token_id: UUID,
    actor: AdminWriter,
    revoke_request: TokenRevokeRequest | None = None,
    session: AsyncSession = Depends(get_db),
):
    """Revoke a token. The row is kept for audit; use DELETE to remove it."""
    usecase = TokenUsecase(session)
    reason = revoke_request.reason if revoke_request else None
    token = await usecase.revoke_token(actor, token_id, reason)
    return success_response(token.model_dump())


@router.delete("/admin/tokens/{token_id}", response_model=dict)
async def delete_token(
    token_id: UUID,
    actor: AdminWriter,
    session: AsyncSession = Depends(get_db),
):
    """Permanently delete a token."""
    usecase = TokenUsecase(session)
    await usecase.delete_token(actor, token_id)
    return success_response({"id": str(token_id), "deleted": True})


@router.get("/admin/tokens/{token_id}/logs", response_model=dict)
async def get_token_logs(
    token_id: UUID,
    actor: CurrentAdmin,
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    session: AsyncSession = Depends(get_db),
):
    """Get usage logs for a token.

    Args:
        token_id: Token UUID
        actor: Acting admin
        limit: Maximum number of logs to return (1-1000)
        offset: Number of logs to skip
        session: Database session

    Returns:
        Success response with usage logs
    """
    usecase = TokenUsecase(session)
    logs = await usecase.get_token_logs(token_id, limit=limit, offset=offset)
    return success_response(logs)


@router.get("/admin/audit-logs", response_model=dict)
async def list_audit_logs(
    actor: CurrentAdmin,
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    resource_id: str | None = Query(default=None),
    action: str | None = Query(default=None),
    session: AsyncSession = Depends(get_db),
):
    """List admin audit entries, newest first."""
    usecase = TokenUsecase(session)
    logs = await usecase.list_audit_logs(limit=limit, offset=offset, resource_id=resource_id, action=action)
    return success_response(logs)
