"""API route definitions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from toonify.api.schemas import HealthResponse, TransformRequestBody, TransformResponse

if TYPE_CHECKING:
    from toonify.config import Settings
    from toonify.proxy.service import TransformationProxy

router = APIRouter(prefix="/api/v1")

_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    code: {"model": TransformResponse}
    for code in (
        status.HTTP_400_BAD_REQUEST,
        status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        status.HTTP_429_TOO_MANY_REQUESTS,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        status.HTTP_504_GATEWAY_TIMEOUT,
    )
}


def _get_settings(request: Request) -> Settings:
    settings: Settings = request.app.state.settings
    return settings


def _get_proxy(request: Request) -> TransformationProxy:
    proxy: TransformationProxy = request.app.state.proxy
    return proxy


@router.post(
    "/generate-image",
    response_model=TransformResponse,
    response_model_exclude_none=True,
    responses=_ERROR_RESPONSES,
    summary="Transform an image into the cartoon style",
)
async def generate_image(body: TransformRequestBody, request: Request) -> JSONResponse:
    """Forward an image to the upstream service within the standard time budget."""
    settings = _get_settings(request)
    outcome = await _get_proxy(request).handle(body, timeout=settings.upstream_timeout)
    return JSONResponse(status_code=outcome.status_code, content=outcome.to_content())


@router.post(
    "/generate-image/long-running",
    response_model=TransformResponse,
    response_model_exclude_none=True,
    responses=_ERROR_RESPONSES,
    summary="Transform an image, tolerating slow upstream generation",
)
async def generate_image_long_running(body: TransformRequestBody, request: Request) -> JSONResponse:
    """Same as ``/generate-image`` with the extended upstream timeout.

    Clients fall back to this route when the standard route times out.
    """
    settings = _get_settings(request)
    outcome = await _get_proxy(request).handle(body, timeout=settings.long_running_timeout)
    return JSONResponse(status_code=outcome.status_code, content=outcome.to_content())


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health(request: Request) -> HealthResponse:
    """Return service health status."""
    settings = _get_settings(request)
    return HealthResponse(status="ok", configured=settings.credential_state == "ok")
