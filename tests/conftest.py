"""Shared fixtures: synthetic images and a recording upstream stub."""

from __future__ import annotations

import asyncio
import io
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from PIL import Image


class UpstreamStub:
    """Stand-in for the upstream image service, used as an httpx.MockTransport handler."""

    def __init__(self) -> None:
        self.status_code = 200
        self.body: Any = {"data": [{"url": "https://images.example.com/cartoon.png"}]}
        self.exc: Exception | None = None
        self.delay = 0.0
        self.calls: list[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(self.status_code, json=self.body)


def encode_image(width: int, height: int, fmt: str = "PNG", mode: str = "RGB") -> bytes:
    color: tuple[int, ...] = (200, 40, 40, 128) if mode == "RGBA" else (200, 40, 40)
    if mode == "P":
        img = Image.new("RGB", (width, height), (200, 40, 40)).convert("P")
    else:
        img = Image.new(mode, (width, height), color)
    output = io.BytesIO()
    img.save(output, format=fmt)
    return output.getvalue()


@pytest.fixture()
def upstream() -> UpstreamStub:
    return UpstreamStub()


@pytest.fixture()
def make_image() -> Callable[..., bytes]:
    """Factory for in-memory test images: make_image(width, height, fmt="PNG", mode="RGB")."""
    return encode_image
