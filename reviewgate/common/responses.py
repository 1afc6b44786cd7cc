"""Response envelope shared by every route and exception handler."""
from typing import Any


def success_response(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data}


def message_response(message: str) -> dict[str, Any]:
    """Success envelope that carries only a human-readable message."""
    return {"success": True, "message": message}


def error_response(error: str, message: str | None = None, retry_after: int | None = None) -> dict[str, Any]:
    """Create an error envelope.

    ``retry_after`` is set for retryable failures (rate limits, store
    unavailable) and mirrored in the ``Retry-After`` header by the caller.
    """
    response: dict[str, Any] = {"success": False, "error": error}
    if message:
        response["message"] = message
    if retry_after is not None:
        response["data"] = {"retry_after": retry_after}
    return response


def retry_headers(retry_after: int | None) -> dict[str, str] | None:
    if retry_after is None:
        return None
    return {"Retry-After": str(retry_after)}
