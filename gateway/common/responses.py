"""Standard API response envelopes."""
import math
from typing import Any


def success_response(data: Any) -> dict[str, Any]:
    """Create a success response."""
    return {"success": True, "data": data}


def paginated_response(
    items: list[Any],
    total: int,
    page: int | None,
    page_size: int,
) -> dict[str, Any]:
    """Create a success response for a list endpoint.

    ``page`` is None when the caller asked for every row; ``page_size`` is
    then the cap that was applied.
    """
    return success_response({
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": math.ceil(total / page_size) if page and page_size else None,
    })


def error_response(
    error: str,
    message: str | None = None,
    data: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Create an error response."""
    response = {"success": False, "error": error}
    if message:
        response["message"] = message
    if data:
        response["data"] = data
    return response
