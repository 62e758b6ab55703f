"""Input validation: reject unsupported media types before any network work."""

from __future__ import annotations

from toonify.core.results import ErrorCategory, Failure

SUPPORTED_MEDIA_TYPES: frozenset[str] = frozenset({"image/png", "image/jpeg", "image/jpg", "image/gif"})


def normalize_media_type(media_type: str) -> str:
    """Lower-case a media type and strip any parameters (``; charset=...``)."""
    return media_type.split(";", 1)[0].strip().lower()


def validate_media_type(media_type: str | None) -> Failure | None:
    """Return a failure for unsupported types, ``None`` when the type is accepted."""
    declared = media_type or ""
    if normalize_media_type(declared) in SUPPORTED_MEDIA_TYPES:
        return None
    shown = declared or "unknown"
    return Failure(
        category=ErrorCategory.UNSUPPORTED_TYPE,
        message=f"Unsupported file type: {shown}. Please use PNG, JPEG, or GIF.",
    )
