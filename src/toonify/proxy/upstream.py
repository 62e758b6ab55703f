"""HTTP client for the upstream image-generation service."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from toonify.style import STYLE_DIRECTIVE

if TYPE_CHECKING:
    from toonify.config import Settings
    from toonify.core.encoding import DecodedPayload

logger = logging.getLogger(__name__)

_EXTENSIONS: dict[str, str] = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
}


@dataclass(frozen=True)
class UpstreamResponse:
    """Status and decoded JSON body (``None`` if the body was not JSON)."""

    status_code: int
    body: Any


class UpstreamClient:
    """Builds and sends the multipart edit request.

    The underlying ``httpx.AsyncClient`` is shared across requests for
    connection pooling and is owned by the application lifespan.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http_client

    def build_form(self, payload: DecodedPayload) -> tuple[dict[str, str], dict[str, tuple[str, bytes, str]]]:
        """Return the (fields, files) pair for the multipart request."""
        extension = _EXTENSIONS.get(payload.media_type, "png")
        fields = {
            "model": self._settings.upstream_model,
            "prompt": STYLE_DIRECTIVE,
            "size": self._settings.output_size,
            "quality": self._settings.output_quality,
        }
        files = {"image": (f"image.{extension}", payload.data, payload.media_type)}
        return fields, files

    async def edit_image(self, payload: DecodedPayload, api_key: str, timeout: float) -> UpstreamResponse:
        """Send the image to the upstream edit endpoint.

        Raises:
            httpx.TimeoutException: If the upstream does not answer within ``timeout``.
            httpx.TransportError: On any other transport failure.
        """
        fields, files = self.build_form(payload)
        logger.info(
            "Sending %d byte %s image to upstream (model=%s, size=%s, quality=%s)",
            len(payload.data),
            payload.media_type,
            fields["model"],
            fields["size"],
            fields["quality"],
        )
        response = await self._http.post(
            self._settings.upstream_url,
            data=fields,
            files=files,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
        )
        try:
            body = response.json()
        except ValueError:
            body = None
        logger.info("Upstream answered %d", response.status_code)
        return UpstreamResponse(status_code=response.status_code, body=body)
