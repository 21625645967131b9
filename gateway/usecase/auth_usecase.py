"""Authentication usecase: API tokens for the data plane, sessions for the admin plane."""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from gateway.common.clock import Clock, utc_now
from gateway.common.config import settings
from gateway.common.exceptions import (
    UnauthorizedException,
    UnknownCredentialException,
    CredentialExpiredException,
    CredentialRevokedException,
    CredentialDisabledException,
    IPNotAllowedException,
    InvalidSessionException,
)
from gateway.domain.auth_service import (
    verify_password,
    generate_session_token,
    session_expiry,
    is_session_expired,
)
from gateway.domain.schemas import AdminLoginRequest, AdminResponse, LoginResponse
from gateway.domain.token_service import TokenState, evaluate_token, hash_token
from gateway.models.admin import AdminUser
from gateway.models.token import Token
from gateway.repository.admin_repository import AdminRepository
from gateway.repository.session_repository import SessionRepository
from gateway.repository.token_repository import TokenRepository
from .base import store_guard

logger = logging.getLogger(__name__)

_STATE_ERRORS = {
    TokenState.EXPIRED: CredentialExpiredException,
    TokenState.REVOKED: CredentialRevokedException,
    TokenState.DISABLED: CredentialDisabledException,
    TokenState.IP_NOT_ALLOWED: IPNotAllowedException,
}


class AuthUsecase:
    """Usecase for authentication operations."""

    def __init__(self, session: AsyncSession, clock: Clock = utc_now):
        self.session = session
        self.clock = clock
        self.token_repo = TokenRepository(session)
        self.admin_repo = AdminRepository(session)
        self.session_repo = SessionRepository(session)

    async def authenticate(self, credential: str, caller_ip: str | None) -> Token:
        """Validate an API token.

        Has no side effects; the caller records usage so a failed attempt is
        logged exactly once.

        Args:
            credential: Raw token from the request header
            caller_ip: Client IP address

        Returns:
            Token object

        Raises:
            UnknownCredentialException: If no token has this secret
            CredentialExpiredException: If the token expiry has passed
            CredentialRevokedException: If the token was revoked
            CredentialDisabledException: If the token is disabled
            IPNotAllowedException: If the caller IP is not allowlisted
            StoreUnavailableException: If the credential store is unreachable
        """
        token_hash = hash_token(credential)

        with store_guard("authenticate token"):
            async with self.session.begin():
                token = await self.token_repo.get_by_hash(token_hash)

        if not token:
            raise UnknownCredentialException()

        state = evaluate_token(token, caller_ip, self.clock())
        if state is not TokenState.VALID:
            raise _STATE_ERRORS[state]()

        return token

    async def login(
        self,
        request: AdminLoginRequest,
        ip_address: str | None,
        user_agent: str | None,
    ) -> LoginResponse:
        """Verify admin credentials and open a session.

        Args:
            request: Admin login request
            ip_address: Client IP address
            user_agent: Client user agent

        Returns:
            LoginResponse with the session token and its expiry

        Raises:
            UnauthorizedException: If credentials are invalid or the account is inactive
        """
        with store_guard("load admin"):
            async with self.session.begin():
                admin = await self.admin_repo.get_by_username(request.username)

        # Verify credentials (no DB operations)
        if not admin or not verify_password(request.password, admin.password_hash):
            logger.warning("Failed admin login for username=%s from %s", request.username, ip_address)
            raise UnauthorizedException("Invalid username or password")

        if not admin.is_active:
            logger.warning("Login attempt for inactive admin %s", admin.username)
            raise UnauthorizedException("Account is disabled")

        now = self.clock()
        session_token = generate_session_token()
        expires_at = session_expiry(now, settings.session_ttl_hours)

        with store_guard("create session"):
            async with self.session.begin():
                await self.session_repo.create(
                    session_token=session_token,
                    admin_id=admin.id,
                    expires_at=expires_at,
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
                await self.admin_repo.update_last_login(admin, now, ip_address)

        logger.info("Admin %s logged in from %s", admin.username, ip_address)
        return LoginResponse(
            session_token=session_token,
            expires_at=expires_at,
            admin=AdminResponse.model_validate(admin),
        )

    async def validate_admin_session(self, session_token: str) -> AdminUser:
        """Resolve a session token to its admin, touching last_accessed_at.

        Raises:
            InvalidSessionException: If the session is unknown, expired or its admin inactive
        """
        now = self.clock()
        with store_guard("validate session"):
            async with self.session.begin():
                admin_session = await self.session_repo.get_by_token(session_token)
                if not admin_session or is_session_expired(admin_session.expires_at, now):
                    raise InvalidSessionException()

                admin = admin_session.admin
                if not admin or not admin.is_active:
                    raise InvalidSessionException()

                await self.session_repo.touch(admin_session.id, now)

        return admin

    async def logout(self, session_token: str) -> bool:
        """Delete the session row. Returns False if it did not exist."""
        with store_guard("delete session"):
            async with self.session.begin():
                return await self.session_repo.delete(session_token)
