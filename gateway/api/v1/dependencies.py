"""Dependencies for API endpoints (authentication, scoping, quotas)."""
from dataclasses import dataclass
from typing import Annotated

from fastapi import Cookie, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from gateway.common.database import get_db
from gateway.common.exceptions import (
    ForbiddenException,
    InvalidSessionException,
    MissingCredentialException,
    QuotaExceededException,
)
from gateway.domain.auth_service import AdminRole, WRITE_ROLES
from gateway.domain.query_builder import QueryBuilder
from gateway.domain.quota import RateCeilings
from gateway.domain.scope import Scope, resolve_scope
from gateway.models.admin import AdminUser
from gateway.models.token import Token
from gateway.usecase.auth_usecase import AuthUsecase
from gateway.usecase.base import AdminContext
from gateway.usecase.data_usecase import MetadataCache
from gateway.usecase.quota_usecase import QuotaUsecase

SESSION_COOKIE = "session_token"


@dataclass
class ApiPrincipal:
    """Authenticated data-plane caller."""

    token: Token
    scope: Scope


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


async def get_api_principal(
    request: Request,
    x_api_token: Annotated[str | None, Header()] = None,
    session: AsyncSession = Depends(get_db),
) -> ApiPrincipal:
    """Authenticate the X-API-Token header, resolve its scope and consume quota.

    Fills request.state.usage_info for the usage middleware; token_id stays
    None when authentication fails.

    Raises:
        MissingCredentialException: If the header is absent
        UnauthorizedException: If the token is unknown or not valid for this caller
        QuotaExceededException: If a quota window is exhausted
    """
    usage_info = {"token_id": None, "scope_kind": None}
    request.state.usage_info = usage_info

    if not x_api_token:
        raise MissingCredentialException()

    token = await AuthUsecase(session).authenticate(x_api_token, client_ip(request))
    scope = resolve_scope(token)
    usage_info["token_id"] = token.id
    usage_info["scope_kind"] = scope.kind.value

    decision = await QuotaUsecase(session).check_and_consume(token.id, RateCeilings.from_token(token))
    if not decision.allowed:
        raise QuotaExceededException(decision.window.value, decision.retry_after)

    return ApiPrincipal(token=token, scope=scope)


def get_query_builder(request: Request) -> QueryBuilder:
    return request.app.state.query_builder


def get_metadata_cache(request: Request) -> MetadataCache:
    return request.app.state.metadata_cache


def get_session_token(
    x_session_token: Annotated[str | None, Header()] = None,
    session_token: Annotated[str | None, Cookie()] = None,
) -> str:
    """Admin session token; the header wins over the cookie."""
    token = x_session_token or session_token
    if not token:
        raise InvalidSessionException("Missing session token")
    return token


async def get_current_admin(
    session_token: Annotated[str, Depends(get_session_token)],
    session: AsyncSession = Depends(get_db),
) -> AdminUser:
    return await AuthUsecase(session).validate_admin_session(session_token)


async def get_admin_context(
    request: Request,
    admin: Annotated[AdminUser, Depends(get_current_admin)],
) -> AdminContext:
    return AdminContext(
        admin_id=admin.id,
        role=admin.role,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


def require_role(*roles: AdminRole):
    """Dependency to check the admin role.

    Args:
        roles: Roles allowed to call the endpoint

    Returns:
        Dependency function
    """
    allowed = {role.value for role in roles}

    async def check_role(
        actor: Annotated[AdminContext, Depends(get_admin_context)],
    ) -> AdminContext:
        if actor.role not in allowed:
            raise ForbiddenException("Insufficient role for this operation")
        return actor

    return check_role


# Type aliases for convenience
CurrentPrincipal = Annotated[ApiPrincipal, Depends(get_api_principal)]
CurrentAdmin = Annotated[AdminContext, Depends(get_admin_context)]
AdminWriter = Annotated[AdminContext, Depends(require_role(*WRITE_ROLES))]
Builder = Annotated[QueryBuilder, Depends(get_query_builder)]
