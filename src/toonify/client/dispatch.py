"""Dispatch orchestration: per-attempt timeout, retry with backoff, fallback route.

State machine for one submission::

    IDLE -> PRIMARY -> DONE
                    -> FALLBACK -> DONE          (timeout on the first attempt only)
                    -> RETRYING -> PRIMARY       (transport failure, retries left)

Any HTTP response, success or error, is a definitive answer from the server
and ends the dispatch. Only failures where the server never answered are
retried.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, cast

import httpx

from toonify.core.normalizer import normalize_proxy_response
from toonify.core.results import DispatchAttempt, ErrorCategory, Failure, TransformResult

if TYPE_CHECKING:
    from toonify.config import ClientSettings
    from toonify.core.encoding import TransportPayload

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class DispatchState(StrEnum):
    IDLE = "idle"
    PRIMARY = "primary"
    FALLBACK = "fallback"
    RETRYING = "retrying"
    DONE = "done"


class AttemptOutcome(StrEnum):
    RESPONSE = "response"
    TIMEOUT = "timeout"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class TransformRequest:
    """One logical submission: the encoded image and the style it targets."""

    payload: TransportPayload
    style_directive: str

    def to_json(self) -> dict[str, Any]:
        # The proxy applies its own copy of the style directive.
        return {"image": self.payload.data_url}


@dataclass(frozen=True)
class _AttemptReport:
    outcome: AttemptOutcome
    result: TransformResult | None = None
    error: str | None = None


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff: ``max(minimum, min(base * 2**attempt, cap))``."""

    max_retries: int = 3
    base: float = 1.0
    minimum: float = 0.5
    cap: float = 8.0

    def delay(self, attempt: int) -> float:
        return max(self.minimum, min(self.base * 2**attempt, self.cap))


class DispatchOrchestrator:
    """Sends a transform request to the proxy and produces a terminal result."""

    def __init__(
        self,
        primary_url: str,
        *,
        fallback_url: str | None = None,
        attempt_timeout: float = 120.0,
        retry: RetryPolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._primary_url = primary_url
        self._fallback_url = fallback_url
        self._attempt_timeout = attempt_timeout
        self._retry = retry or RetryPolicy()
        self._http = http_client
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> DispatchOrchestrator:
        return cls(
            settings.primary_url,
            fallback_url=settings.fallback_url,
            attempt_timeout=settings.attempt_timeout,
            retry=RetryPolicy(
                max_retries=settings.max_retries,
                base=settings.backoff_base,
                minimum=settings.backoff_min,
                cap=settings.backoff_cap,
            ),
            http_client=http_client,
            sleep=sleep,
        )

    async def dispatch(self, request: TransformRequest) -> TransformResult:
        """Run the state machine to a terminal ``Success`` or ``Failure``."""
        if self._http is not None:
            return await self._run(self._http, request)
        async with httpx.AsyncClient() as client:
            return await self._run(client, request)

    async def _run(self, client: httpx.AsyncClient, request: TransformRequest) -> TransformResult:
        body = request.to_json()
        state = DispatchState.IDLE
        attempt = 0
        last_error: str | None = None

        while True:
            if state is DispatchState.IDLE:
                state = DispatchState.PRIMARY

            elif state is DispatchState.PRIMARY:
                report = await self._attempt(client, "primary", self._primary_url, body, attempt)
                if report.result is not None:
                    return report.result
                if report.outcome is AttemptOutcome.TIMEOUT:
                    if attempt == 0 and self._fallback_url:
                        logger.warning("Primary route timed out; rerouting to long-running route")
                        state = DispatchState.FALLBACK
                        continue
                    return self._timeout_failure()
                last_error = report.error
                if attempt >= self._retry.max_retries:
                    return self._exhausted_failure(attempt + 1, last_error)
                state = DispatchState.RETRYING

            elif state is DispatchState.RETRYING:
                delay = self._retry.delay(attempt)
                logger.info("Retrying in %.2fs (retry %d of %d)", delay, attempt + 1, self._retry.max_retries)
                await self._sleep(delay)
                attempt += 1
                state = DispatchState.PRIMARY

            elif state is DispatchState.FALLBACK:
                fallback_url = cast(str, self._fallback_url)
                report = await self._attempt(client, "fallback", fallback_url, body, attempt + 1)
                if report.result is not None:
                    return report.result
                if report.outcome is AttemptOutcome.TIMEOUT:
                    return self._timeout_failure()
                return self._exhausted_failure(attempt + 2, report.error)

            else:
                raise RuntimeError(f"Unexpected dispatch state: {state}")

    async def _attempt(
        self,
        client: httpx.AsyncClient,
        route: str,
        url: str,
        body: dict[str, Any],
        attempt: int,
    ) -> _AttemptReport:
        started = time.monotonic()
        try:
            async with asyncio.timeout(self._attempt_timeout):
                response = await client.post(url, json=body, timeout=self._attempt_timeout)
        except (TimeoutError, httpx.TimeoutException):
            report = _AttemptReport(outcome=AttemptOutcome.TIMEOUT, error="timed out")
        except httpx.TransportError as exc:
            report = _AttemptReport(outcome=AttemptOutcome.TRANSPORT_ERROR, error=str(exc) or type(exc).__name__)
        except httpx.RequestError as exc:
            # The server answered, so this is final.
            logger.warning("Unreadable response from %s: %s", url, exc)
            report = _AttemptReport(
                outcome=AttemptOutcome.RESPONSE,
                result=Failure(category=ErrorCategory.UNKNOWN, message="The server returned an unreadable response"),
                error=f"unreadable response: {type(exc).__name__}",
            )
        else:
            try:
                payload = response.json()
            except ValueError:
                payload = None
            report = _AttemptReport(
                outcome=AttemptOutcome.RESPONSE,
                result=normalize_proxy_response(response.status_code, payload),
                error=None if response.is_success else f"HTTP {response.status_code}",
            )

        record = DispatchAttempt(
            route=route,
            attempt=attempt,
            elapsed=time.monotonic() - started,
            outcome=report.error or str(report.outcome),
        )
        logger.info(
            "Dispatch attempt %d via %s: %s after %.2fs",
            record.attempt,
            record.route,
            record.outcome,
            record.elapsed,
        )
        return report

    def _timeout_failure(self) -> Failure:
        return Failure(
            category=ErrorCategory.TIMEOUT,
            message=f"The request timed out after {self._attempt_timeout:.0f} seconds. Please try again.",
        )

    @staticmethod
    def _exhausted_failure(attempts: int, last_error: str | None) -> Failure:
        logger.error("Giving up after %d attempts: %s", attempts, last_error)
        return Failure(
            category=ErrorCategory.CONNECTION_EXHAUSTED,
            message="Could not reach the server. Please check your connection and try again.",
        )
