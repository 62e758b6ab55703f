"""Image preprocessing: decode, bound pixel dimensions, and re-encode.

Every image goes through the same path regardless of its input format or
byte size: decode to an RGB array, scale so the larger edge is at most
``max_edge``, and re-encode as JPEG at a fixed quality.
"""

from __future__ import annotations

import io
import logging
import struct
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from toonify.core.results import ErrorCategory, Failure

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)

MAX_EDGE: int = 1024
CANONICAL_MEDIA_TYPE: str = "image/jpeg"
CANONICAL_FORMAT: str = "JPEG"
JPEG_QUALITY: int = 90

_BACKGROUND = (255, 255, 255, 255)


@dataclass(frozen=True)
class SourceImage:
    """Raw user-supplied image as submitted."""

    data: bytes
    media_type: str

    @property
    def byte_size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class PreparedImage:
    """Preprocessor output in the canonical format."""

    data: bytes
    media_type: str
    width: int
    height: int
    original_size: tuple[int, int]


class InvalidImageError(ValueError):
    """Raised when image bytes cannot be decoded."""


class ImagePreprocessor(Protocol):
    """Protocol for image preprocessing."""

    def prepare(self, source: SourceImage) -> PreparedImage | Failure:
        """Normalize an image for transport, or explain why it cannot be."""
        ...


def scaled_dimensions(width: int, height: int, max_edge: int) -> tuple[int, int]:
    """Scale (width, height) so the larger edge equals ``max_edge``.

    Dimensions already within bounds are returned unchanged. The aspect ratio
    is preserved up to rounding of the shorter edge, which never drops below 1.
    """
    larger = max(width, height)
    if larger <= max_edge:
        return width, height
    scale = max_edge / larger
    if width >= height:
        return max_edge, max(1, round(height * scale))
    return max(1, round(width * scale)), max_edge


class PillowPreprocessor:
    """Decodes with Pillow, resizes, and re-encodes to JPEG."""

    def __init__(
        self,
        max_edge: int = MAX_EDGE,
        jpeg_quality: int = JPEG_QUALITY,
        max_image_pixels: int | None = None,
    ) -> None:
        self._max_edge = max_edge
        self._jpeg_quality = jpeg_quality
        self._max_image_pixels = max_image_pixels

    def decode_image(self, image_bytes: bytes) -> NDArray[np.uint8]:
        """Decode raw image bytes into an RGB uint8 numpy array.

        EXIF orientation is applied and transparency is flattened onto white.
        For animated GIFs only the first frame is used.

        Raises:
            InvalidImageError: If the image cannot be decoded or exceeds the pixel limit.
        """
        try:
            with Image.open(io.BytesIO(image_bytes)) as img:
                width, height = img.size
                if self._max_image_pixels is not None and width * height > self._max_image_pixels:
                    raise InvalidImageError(f"Image is too large to process ({width}x{height} pixels)")
                img.load()
                oriented = ImageOps.exif_transpose(img)
                rgba = oriented.convert("RGBA")
        except InvalidImageError:
            raise
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
            SyntaxError,
            ValueError,
            struct.error,
        ) as exc:
            raise InvalidImageError("Could not read the image. The file may be corrupt.") from exc

        background = Image.new("RGBA", rgba.size, _BACKGROUND)
        flattened = Image.alpha_composite(background, rgba).convert("RGB")
        return np.asarray(flattened, dtype=np.uint8)

    def resize(self, image: NDArray[np.uint8]) -> NDArray[np.uint8]:
        """Scale an HxWx3 array so its larger edge is at most ``max_edge``."""
        height, width = image.shape[:2]
        target = scaled_dimensions(width, height, self._max_edge)
        if target == (width, height):
            return image
        resized = Image.fromarray(image).resize(target, Image.Resampling.LANCZOS)
        return np.asarray(resized, dtype=np.uint8)

    def encode(self, image: NDArray[np.uint8]) -> bytes:
        """Encode an HxWx3 array in the canonical format."""
        output = io.BytesIO()
        Image.fromarray(image).save(output, format=CANONICAL_FORMAT, quality=self._jpeg_quality, optimize=True)
        return output.getvalue()

    def prepare(self, source: SourceImage) -> PreparedImage | Failure:
        try:
            pixels = self.decode_image(source.data)
        except InvalidImageError as exc:
            logger.warning("Rejected %s image (%d bytes): %s", source.media_type, source.byte_size, exc)
            return Failure(category=ErrorCategory.INVALID_IMAGE, message=str(exc))

        original_height, original_width = pixels.shape[:2]
        resized = self.resize(pixels)
        height, width = resized.shape[:2]
        data = self.encode(resized)

        logger.info(
            "Preprocessed image %dx%d (%d bytes, %s) -> %dx%d (%d bytes, %s)",
            original_width,
            original_height,
            source.byte_size,
            source.media_type,
            width,
            height,
            len(data),
            CANONICAL_MEDIA_TYPE,
        )
        return PreparedImage(
            data=data,
            media_type=CANONICAL_MEDIA_TYPE,
            width=width,
            height=height,
            original_size=(original_width, original_height),
        )
