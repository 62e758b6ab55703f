"""Transformation proxy: credential check, payload decoding, upstream call.

The proxy holds the upstream credential so that it never reaches the client.
Every outcome, including upstream errors, goes through the normalizer and
classifier so callers always receive the same result shape.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx
from fastapi import status

from toonify.core.classifier import classify_status, status_for
from toonify.core.encoding import PayloadDecodeError, decode_payload
from toonify.core.normalizer import normalize_upstream
from toonify.core.results import ErrorCategory, Failure, RejectionKind, Success, TransformResult
from toonify.core.validation import validate_media_type

if TYPE_CHECKING:
    from toonify.api.schemas import TransformRequestBody
    from toonify.config import Settings
    from toonify.core.encoding import DecodedPayload
    from toonify.proxy.upstream import UpstreamClient

logger = logging.getLogger(__name__)

REACHABLE_MESSAGE = "Proxy is reachable"


@dataclass(frozen=True)
class ProxyOutcome:
    """HTTP status plus the result; ``result`` is ``None`` for a connectivity check."""

    status_code: int
    result: TransformResult | None

    def to_content(self) -> dict[str, Any]:
        if self.result is None:
            return {"success": True, "message": REACHABLE_MESSAGE}
        if isinstance(self.result, Success):
            return {"success": True, "imageUrl": self.result.image_url}
        return {"success": False, "error": self.result.message, "category": str(self.result.category)}


def _outcome(result: TransformResult) -> ProxyOutcome:
    if isinstance(result, Success):
        return ProxyOutcome(status_code=status.HTTP_200_OK, result=result)
    return ProxyOutcome(status_code=status_for(result), result=result)


class TransformationProxy:
    """Turns a client request into one upstream edit call."""

    def __init__(self, settings: Settings, upstream: UpstreamClient) -> None:
        self._settings = settings
        self._upstream = upstream

    def check_credential(self) -> Failure | None:
        state = self._settings.credential_state
        if state == "missing":
            return Failure(
                category=ErrorCategory.MISCONFIGURED,
                message="Upstream API key not configured. Please check the server environment.",
            )
        if state == "placeholder":
            return Failure(
                category=ErrorCategory.MISCONFIGURED,
                message="Upstream API key is still a placeholder value. Please check the server environment.",
            )
        return None

    async def handle(self, request: TransformRequestBody, timeout: float) -> ProxyOutcome:
        """Process one request against the upstream with the given timeout."""
        if request.test:
            logger.info("Answered connectivity check")
            return ProxyOutcome(status_code=status.HTTP_200_OK, result=None)

        misconfigured = self.check_credential()
        if misconfigured is not None:
            logger.error("Rejecting request: %s", misconfigured.message)
            return _outcome(misconfigured)

        if not request.image:
            return _outcome(Failure(category=ErrorCategory.INVALID_IMAGE, message="No image data provided"))

        if len(request.image) > self._settings.max_payload_bytes:
            return _outcome(
                Failure(
                    category=ErrorCategory.UPSTREAM_REJECTED,
                    message="The image is too large. Please use a smaller image.",
                    kind=RejectionKind.PAYLOAD_TOO_LARGE,
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                )
            )

        try:
            payload = decode_payload(request.image)
        except PayloadDecodeError as exc:
            return _outcome(Failure(category=ErrorCategory.INVALID_IMAGE, message=str(exc)))

        unsupported = validate_media_type(payload.media_type)
        if unsupported is not None:
            return _outcome(unsupported)

        return _outcome(await self._call_upstream(payload, timeout))

    async def _call_upstream(self, payload: DecodedPayload, timeout: float) -> TransformResult:
        api_key = self._settings.upstream_api_key or ""
        try:
            response = await self._upstream.edit_image(payload, api_key, timeout)
        except httpx.TimeoutException:
            logger.warning("Upstream timed out after %.0fs", timeout)
            return Failure(
                category=ErrorCategory.TIMEOUT,
                message="The image service took too long to respond. Please try again.",
            )
        except httpx.HTTPError as exc:
            logger.exception("Upstream request failed")
            return Failure(
                category=ErrorCategory.UNKNOWN,
                message=f"Failed to generate image: {exc}",
            )

        if response.status_code >= status.HTTP_400_BAD_REQUEST:
            failure = classify_status(response.status_code, response.body)
            logger.error("Upstream rejected request (%d): %s", response.status_code, failure.message)
            return failure
        return normalize_upstream(response.body)
