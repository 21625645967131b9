"""Custom exceptions for the application.

The class name without the ``Exception`` suffix is the error kind reported
to callers, e.g. ``CredentialExpiredException`` is rendered as
``"CredentialExpired"``.
"""


class AppException(Exception):
    """Base application exception."""
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

    @property
    def error_kind(self) -> str:
        return self.__class__.__name__.replace("Exception", "")


class BadRequestException(AppException):
    """Raised when a request is well formed but can not be applied."""
    def __init__(self, message: str = "Bad Request"):
        super().__init__(message, status_code=400)


class NoFieldsProvidedException(BadRequestException):
    """Raised when an update carries no updatable field."""
    def __init__(self, message: str = "No fields to update"):
        super().__init__(message)


class UnauthorizedException(AppException):
    """Raised when authentication fails."""
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, status_code=401)


class MissingCredentialException(UnauthorizedException):
    """Raised when no API token header was sent."""
    def __init__(self, message: str = "Missing API token"):
        super().__init__(message)


class UnknownCredentialException(UnauthorizedException):
    """Raised when the presented API token does not exist."""
    def __init__(self):
        super().__init__("Invalid token")


class CredentialExpiredException(UnauthorizedException):
    """Raised when the token expiry is in the past."""
    def __init__(self):
        super().__init__("Token has expired")


class CredentialRevokedException(UnauthorizedException):
    """Raised when the token has been revoked."""
    def __init__(self):
        super().__init__("Token has been revoked")


class CredentialDisabledException(UnauthorizedException):
    """Raised when the token has been disabled by an administrator."""
    def __init__(self):
        super().__init__("Token is disabled")


class IPNotAllowedException(UnauthorizedException):
    """Raised when the caller IP is not on the token allowlist."""
    def __init__(self):
        super().__init__("IP address not whitelisted")


class InvalidSessionException(UnauthorizedException):
    """Raised when an admin session token is missing, unknown or expired."""
    def __init__(self, message: str = "Invalid or expired session"):
        super().__init__(message)


class ForbiddenException(AppException):
    """Raised when the caller lacks the required role."""
    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, status_code=403)


class ScopeViolationException(ForbiddenException):
    """Raised when a scoped mutation matched no row inside the caller's scope."""
    def __init__(self, message: str = "Record is outside the token scope"):
        super().__init__(message)


class NotFoundException(AppException):
    """Raised when resource is not found."""
    def __init__(self, message: str = "Not Found"):
        super().__init__(message, status_code=404)


class ConflictException(AppException):
    """Raised when a state transition is not allowed."""
    def __init__(self, message: str = "Conflict"):
        super().__init__(message, status_code=409)


class ValidationException(AppException):
    """Raised when validation fails."""
    def __init__(self, message: str = "Validation Error"):
        super().__init__(message, status_code=422)


class RateLimitException(AppException):
    """Raised when rate limit is exceeded."""
    def __init__(self, message: str = "Too Many Requests", retry_after: int = 60):
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class QuotaExceededException(RateLimitException):
    """Raised when a token exhausted one of its quota windows."""
    def __init__(self, window: str, retry_after: int):
        super().__init__(f"Rate limit exceeded (per {window})", retry_after=retry_after)
        self.window = window


class ServiceUnavailableException(AppException):
    """Raised when service is temporarily unavailable."""
    def __init__(self, message: str = "Service temporarily unavailable"):
        super().__init__(message, status_code=503)


class StoreUnavailableException(ServiceUnavailableException):
    """Raised when the credential store can not be reached."""
    def __init__(self, message: str = "Credential store unavailable"):
        super().__init__(message)


class InternalServerException(AppException):
    """Raised when an internal server error occurs."""
    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, status_code=500)
