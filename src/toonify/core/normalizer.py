"""Response normalization.

The upstream service can return the generated image in several shapes:

* ``{"data": [{"url": "https://..."}]}``
* ``{"data": [{"b64_json": "..."}]}``
* ``{"output": [{"type": "message", ...}, {"type": "image_generation_call", "result": "..."}]}``

Each shape is a small decoder tried in a fixed priority order; the first one
that yields an image reference wins. Callers only ever see ``Success`` or
``Failure``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from toonify.core.classifier import classify_status, extract_error_message
from toonify.core.results import ErrorCategory, Failure, Success, TransformResult

logger = logging.getLogger(__name__)

GENERATED_MEDIA_TYPE = "image/png"
IMAGE_OUTPUT_TYPE = "image_generation_call"

ShapeDecoder = Callable[[dict[str, Any]], str | None]


def _first_data_item(body: dict[str, Any]) -> dict[str, Any] | None:
    data = body.get("data")
    if isinstance(data, list) and data and isinstance(data[0], dict):
        return data[0]
    return None


def _as_data_url(encoded: str) -> str:
    return f"data:{GENERATED_MEDIA_TYPE};base64,{encoded}"


def _decode_url(body: dict[str, Any]) -> str | None:
    item = _first_data_item(body)
    url = item.get("url") if item else None
    return url if isinstance(url, str) and url else None


def _decode_inline(body: dict[str, Any]) -> str | None:
    item = _first_data_item(body)
    encoded = item.get("b64_json") if item else None
    return _as_data_url(encoded) if isinstance(encoded, str) and encoded else None


def _decode_output_items(body: dict[str, Any]) -> str | None:
    output = body.get("output")
    if not isinstance(output, list):
        return None
    for item in output:
        if not isinstance(item, dict) or item.get("type") != IMAGE_OUTPUT_TYPE:
            continue
        result = item.get("result")
        if isinstance(result, str) and result:
            return _as_data_url(result)
    return None


# Priority order matters: a URL is preferred over inline data.
SHAPE_DECODERS: tuple[tuple[str, ShapeDecoder], ...] = (
    ("url", _decode_url),
    ("b64_json", _decode_inline),
    ("output_items", _decode_output_items),
)


def observed_shape_tags(body: Any) -> list[str]:
    """Describe the shapes present in ``body`` for diagnostics."""
    if not isinstance(body, dict):
        return [type(body).__name__]
    tags: list[str] = []
    data = body.get("data")
    if isinstance(data, list):
        if not data:
            tags.append("data:empty")
        for index, item in enumerate(data):
            if isinstance(item, dict):
                tags.extend(f"data[{index}].{key}" for key in sorted(item))
            else:
                tags.append(f"data[{index}]:{type(item).__name__}")
    output = body.get("output")
    if isinstance(output, list):
        if not output:
            tags.append("output:empty")
        for item in output:
            item_type = item.get("type") if isinstance(item, dict) else None
            tags.append(f"output:{item_type or 'untyped'}")
    if not tags:
        tags.extend(sorted(body))
    return tags


def normalize_upstream(body: Any) -> TransformResult:
    """Extract the generated image from a successful upstream response body."""
    if isinstance(body, dict):
        for name, decoder in SHAPE_DECODERS:
            image_url = decoder(body)
            if image_url is not None:
                logger.debug("Upstream image found via %s shape", name)
                return Success(image_url=image_url)

    tags = observed_shape_tags(body)
    logger.warning("Upstream response contained no image; observed: %s", tags)
    observed = ", ".join(tags) if tags else "nothing"
    return Failure(
        category=ErrorCategory.NO_IMAGE_PRODUCED,
        message=f"No image was returned by the image service (observed: {observed})",
    )


def normalize_proxy_response(status_code: int, body: Any) -> TransformResult:
    """Map a proxy response (``{success, imageUrl}`` / ``{success, error}``) to a result."""
    if status_code >= 300:
        return classify_status(status_code, body)

    if not isinstance(body, dict):
        return Failure(
            category=ErrorCategory.UNKNOWN,
            message="The server returned an unreadable response",
            status_code=status_code,
        )
    image_url = body.get("imageUrl")
    if body.get("success") is True and isinstance(image_url, str) and image_url:
        return Success(image_url=image_url)
    if body.get("success") is False:
        try:
            category = ErrorCategory(body.get("category"))
        except ValueError:
            category = ErrorCategory.UNKNOWN
        return Failure(
            category=category,
            message=extract_error_message(body) or "Failed to generate image",
            status_code=status_code,
        )
    return Failure(
        category=ErrorCategory.NO_IMAGE_PRODUCED,
        message="No image URL returned",
        status_code=status_code,
    )
