"""Transport encoding: image bytes <-> ``data:<type>;base64,<payload>`` strings."""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass

DEFAULT_MEDIA_TYPE = "image/png"

_DATA_URL_RE = re.compile(r"^data:(?P<media_type>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^;,]+)*?);base64,(?P<data>.*)$", re.DOTALL)


class PayloadDecodeError(ValueError):
    """Raised when a transport payload cannot be turned back into bytes."""


@dataclass(frozen=True)
class TransportPayload:
    """Textual form of an image for a JSON request body."""

    data_url: str
    media_type: str


@dataclass(frozen=True)
class DecodedPayload:
    data: bytes
    media_type: str


def encode_payload(data: bytes, media_type: str) -> TransportPayload:
    """Encode bytes as a base64 data URL tagged with ``media_type``."""
    encoded = base64.b64encode(data).decode("ascii")
    return TransportPayload(data_url=f"data:{media_type};base64,{encoded}", media_type=media_type)


def decode_payload(text: str) -> DecodedPayload:
    """Recover the bytes and media type from a transport payload.

    A bare base64 string without a ``data:`` header is accepted and assumed to
    be ``image/png``.

    Raises:
        PayloadDecodeError: If the header is malformed or the data is not valid base64.
    """
    stripped = text.strip()
    if stripped.startswith("data:"):
        match = _DATA_URL_RE.match(stripped)
        if match is None:
            raise PayloadDecodeError("Image payload is not a base64 data URL")
        media_type = (match.group("media_type") or DEFAULT_MEDIA_TYPE).lower()
        encoded = match.group("data")
    else:
        media_type = DEFAULT_MEDIA_TYPE
        encoded = stripped

    if not encoded:
        raise PayloadDecodeError("Image payload is empty")
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise PayloadDecodeError("Image payload is not valid base64") from exc
    return DecodedPayload(data=data, media_type=media_type)
