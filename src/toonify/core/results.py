"""Result contract shared by the client pipeline and the proxy."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Literal


class ErrorCategory(StrEnum):
    UNSUPPORTED_TYPE = "UnsupportedType"
    INVALID_IMAGE = "InvalidImage"
    MISCONFIGURED = "Misconfigured"
    UPSTREAM_REJECTED = "UpstreamRejected"
    TIMEOUT = "Timeout"
    CONNECTION_EXHAUSTED = "ConnectionExhausted"
    NO_IMAGE_PRODUCED = "NoImageProduced"
    UNKNOWN = "Unknown"


class RejectionKind(StrEnum):
    """Subtypes of ``UpstreamRejected`` with a dedicated user message."""

    PAYLOAD_TOO_LARGE = "payload_too_large"
    RATE_LIMITED = "rate_limited"


@dataclass(frozen=True)
class Success:
    """A produced image: a remote URL or an embedded ``data:`` URL."""

    image_url: str

    @property
    def ok(self) -> Literal[True]:
        return True


@dataclass(frozen=True)
class Failure:
    """A terminal failure with a short, user-facing message."""

    category: ErrorCategory
    message: str
    kind: RejectionKind | None = None
    status_code: int | None = None

    @property
    def ok(self) -> Literal[False]:
        return False


TransformResult = Success | Failure


@dataclass(frozen=True)
class DispatchAttempt:
    """Diagnostic record of one network try. Logged, never returned."""

    route: str
    attempt: int
    elapsed: float
    outcome: str
