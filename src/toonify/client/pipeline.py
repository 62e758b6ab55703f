"""Client pipeline: validate -> preprocess -> encode -> dispatch."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from toonify.client.dispatch import DispatchOrchestrator, Sleep, TransformRequest
from toonify.core.encoding import encode_payload
from toonify.core.preprocessing import PillowPreprocessor, SourceImage
from toonify.core.results import Failure, TransformResult
from toonify.core.validation import validate_media_type
from toonify.style import STYLE_DIRECTIVE

if TYPE_CHECKING:
    import httpx

    from toonify.config import ClientSettings
    from toonify.core.preprocessing import ImagePreprocessor

logger = logging.getLogger(__name__)


class TransformPipeline:
    """Turns one submitted image into one terminal result.

    Stateless between submissions. Preprocessing runs in a worker thread so
    the event loop stays responsive.
    """

    def __init__(self, preprocessor: ImagePreprocessor, orchestrator: DispatchOrchestrator) -> None:
        self._preprocessor = preprocessor
        self._orchestrator = orchestrator

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> TransformPipeline:
        preprocessor = PillowPreprocessor(
            max_edge=settings.max_edge,
            jpeg_quality=settings.jpeg_quality,
            max_image_pixels=settings.max_image_pixels,
        )
        orchestrator = DispatchOrchestrator.from_settings(settings, http_client=http_client, sleep=sleep)
        return cls(preprocessor, orchestrator)

    async def submit(self, data: bytes, media_type: str) -> TransformResult:
        """Validate, prepare, and send an image; always returns a terminal result."""
        unsupported = validate_media_type(media_type)
        if unsupported is not None:
            logger.info("Rejected upload: %s", unsupported.message)
            return unsupported

        source = SourceImage(data=data, media_type=media_type)
        prepared = await asyncio.to_thread(self._preprocessor.prepare, source)
        if isinstance(prepared, Failure):
            return prepared

        payload = encode_payload(prepared.data, prepared.media_type)
        request = TransformRequest(payload=payload, style_directive=STYLE_DIRECTIVE)
        logger.info(
            "Dispatching %dx%d %s image (%d chars encoded)",
            prepared.width,
            prepared.height,
            prepared.media_type,
            len(payload.data_url),
        )
        result = await self._orchestrator.dispatch(request)
        if isinstance(result, Failure):
            logger.warning("Transformation failed (%s): %s", result.category, result.message)
        return result
