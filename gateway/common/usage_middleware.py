"""Middleware recording one usage log entry per data-plane request."""
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from gateway.common.id_utils import generate_request_id
from gateway.usecase.usage_usecase import UsageEntry

REQUEST_ID_HEADER = "X-Request-ID"


class UsageLogMiddleware(BaseHTTPMiddleware):
    """Time the request, assign a correlation id and record usage.

    The entry is handed to the app's UsageRecorder after the response is
    produced, so the final status code is known and the write does not
    delay the response. Token id and scope kind come from
    ``request.state.usage_info`` (set by get_api_principal); the error text
    from ``request.state.usage_error`` (set by the exception handler).
    """

    def __init__(self, app, path_prefix: str):
        super().__init__(app)
        self.path_prefix = path_prefix

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            request.state.usage_error = getattr(request.state, "usage_error", None) or str(e)
            self._record(request, request_id, 500, started)
            raise

        response.headers[REQUEST_ID_HEADER] = request_id
        self._record(request, request_id, response.status_code, started)
        return response

    def _record(self, request: Request, request_id: str, status_code: int, started: float) -> None:
        if request.url.path.startswith(self.path_prefix):
            usage_info = getattr(request.state, "usage_info", None) or {}
            request.app.state.usage_recorder.record_usage(UsageEntry(
                method=request.method,
                endpoint=request.url.path,
                full_url=str(request.url),
                status_code=status_code,
                response_time_ms=int((time.perf_counter() - started) * 1000),
                token_id=usage_info.get("token_id"),
                scope_kind=usage_info.get("scope_kind"),
                ip_address=request.client.host if request.client else None,
                user_agent=request.headers.get("user-agent"),
                referer=request.headers.get("referer"),
                request_id=request_id,
                error_message=getattr(request.state, "usage_error", None),
            ))
