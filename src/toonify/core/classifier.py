"""Error classification: map HTTP and transport failures to error categories."""

from __future__ import annotations

from typing import Any

from fastapi import status

from toonify.core.results import ErrorCategory, Failure, RejectionKind

TIMEOUT_STATUSES: frozenset[int] = frozenset({status.HTTP_408_REQUEST_TIMEOUT, status.HTTP_504_GATEWAY_TIMEOUT})

_GENERIC_MESSAGES: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "The request was rejected as invalid.",
    status.HTTP_401_UNAUTHORIZED: "The image service rejected the credentials.",
    status.HTTP_403_FORBIDDEN: "The image service refused the request.",
    status.HTTP_404_NOT_FOUND: "The image service endpoint was not found.",
    status.HTTP_405_METHOD_NOT_ALLOWED: "Method not allowed.",
    status.HTTP_408_REQUEST_TIMEOUT: "The request timed out. Please try again.",
    status.HTTP_413_REQUEST_ENTITY_TOO_LARGE: "The image is too large. Please use a smaller image.",
    status.HTTP_429_TOO_MANY_REQUESTS: "Too many requests. Please wait a moment and try again.",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "The server failed to generate the image.",
    status.HTTP_502_BAD_GATEWAY: "The image service is unavailable.",
    status.HTTP_503_SERVICE_UNAVAILABLE: "The image service is temporarily unavailable.",
    status.HTTP_504_GATEWAY_TIMEOUT: "The request timed out. Please try again.",
}

# HTTP status used by the proxy for each failure category.
_CATEGORY_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.UNSUPPORTED_TYPE: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.INVALID_IMAGE: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.MISCONFIGURED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCategory.UPSTREAM_REJECTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCategory.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
    ErrorCategory.CONNECTION_EXHAUSTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCategory.NO_IMAGE_PRODUCED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCategory.UNKNOWN: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def generic_message(status_code: int) -> str:
    """Fallback user message for a status code with no parseable body."""
    return _GENERIC_MESSAGES.get(status_code, f"Request failed with status {status_code}")


def extract_error_message(body: Any) -> str | None:
    """Pull a human-readable message out of an error body.

    Understands ``{"error": "..."}``, ``{"error": {"message": "..."}}`` and
    ``{"detail": "..."}``.
    """
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        error = error.get("message")
    if isinstance(error, str) and error.strip():
        return error.strip()
    detail = body.get("detail")
    if isinstance(detail, str) and detail.strip():
        return detail.strip()
    return None


def _with_detail(headline: str, detail: str | None) -> str:
    if not detail or detail.startswith(headline):
        return detail or headline
    return f"{headline} ({detail})"


def _declared_category(body: Any) -> ErrorCategory | None:
    if not isinstance(body, dict):
        return None
    try:
        return ErrorCategory(body.get("category"))
    except ValueError:
        return None


def classify_status(status_code: int, body: Any = None) -> Failure:
    """Classify a non-success HTTP response.

    ``body`` is the decoded JSON body, or ``None`` when it was not JSON. A
    ``category`` field set by our own proxy takes precedence over the status.
    """
    message = extract_error_message(body)
    declared = _declared_category(body)
    if declared is not None and declared is not ErrorCategory.UPSTREAM_REJECTED:
        return Failure(
            category=declared,
            message=message or generic_message(status_code),
            status_code=status_code,
        )

    if status_code in TIMEOUT_STATUSES:
        return Failure(
            category=ErrorCategory.TIMEOUT,
            message=message or generic_message(status_code),
            status_code=status_code,
        )
    if status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE:
        return Failure(
            category=ErrorCategory.UPSTREAM_REJECTED,
            message=_with_detail(generic_message(status_code), message),
            kind=RejectionKind.PAYLOAD_TOO_LARGE,
            status_code=status_code,
        )
    if status_code == status.HTTP_429_TOO_MANY_REQUESTS:
        return Failure(
            category=ErrorCategory.UPSTREAM_REJECTED,
            message=_with_detail(generic_message(status_code), message),
            kind=RejectionKind.RATE_LIMITED,
            status_code=status_code,
        )
    if status_code >= status.HTTP_400_BAD_REQUEST:
        return Failure(
            category=ErrorCategory.UPSTREAM_REJECTED,
            message=message or generic_message(status_code),
            status_code=status_code,
        )
    return Failure(
        category=ErrorCategory.UNKNOWN,
        message=message or f"Unexpected response status {status_code}",
        status_code=status_code,
    )


def status_for(failure: Failure) -> int:
    """HTTP status the proxy answers with for ``failure``.

    Upstream rejections keep the upstream status so callers see e.g. 401/429
    verbatim.
    """
    if failure.category is ErrorCategory.UPSTREAM_REJECTED and failure.status_code is not None:
        return failure.status_code
    return _CATEGORY_STATUS[failure.category]
