"""Admin session endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from gateway.common.config import settings
from gateway.common.database import get_db
from gateway.common.responses import success_response
from gateway.common.rate_limit import limiter, ADMIN_LOGIN_LIMIT
from gateway.domain.schemas import AdminLoginRequest, AdminResponse
from gateway.models.admin import AdminUser
from gateway.usecase.auth_usecase import AuthUsecase
from .dependencies import SESSION_COOKIE, client_ip, get_current_admin, get_session_token

router = APIRouter()


@router.post("/admin/auth/login", response_model=dict)
@limiter.limit(ADMIN_LOGIN_LIMIT)
async def login(
    request: Request,
    response: Response,
    login_request: AdminLoginRequest,
    session: AsyncSession = Depends(get_db),
):
    """Login and open an admin session.

    The session token is returned in the body and set as an HttpOnly cookie.

    Args:
        request: FastAPI Request object (for rate limiting)
        response: Response used to set the session cookie
        login_request: Admin login request
        session: Database session

    Returns:
        Success response with the session token, its expiry and the admin
    """
    usecase = AuthUsecase(session)
    result = await usecase.login(
        login_request,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    response.set_cookie(
        key=SESSION_COOKIE,
        value=result.session_token,
        max_age=settings.session_ttl_hours * 3600,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
    return success_response(result.model_dump())


@router.post("/admin/auth/logout", response_model=dict)
async def logout(
    response: Response,
    session_token: Annotated[str, Depends(get_session_token)],
    session: AsyncSession = Depends(get_db),
):
    """Delete the current session and clear the cookie."""
    usecase = AuthUsecase(session)
    await usecase.logout(session_token)
    response.delete_cookie(SESSION_COOKIE)
    return success_response({"logged_out": True})


@router.get("/admin/auth/me", response_model=dict)
async def me(admin: Annotated[AdminUser, Depends(get_current_admin)]):
    """Return the admin behind the current session."""
    return success_response(AdminResponse.model_validate(admin).model_dump())
