"""Shared test fixtures: fixed clock, renderer and surface, dashboard test app."""

from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import httpx
import pytest

from tailmon.services.renderer import LatestRenderSurface, Renderer


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def renderer() -> Renderer:
    return Renderer()


@pytest.fixture
def surface(renderer: Renderer) -> LatestRenderSurface:
    return LatestRenderSurface(renderer.render_empty())


@pytest.fixture
def app(surface: LatestRenderSurface):
    """Dashboard app serving ``surface`` with no poller attached."""
    from tailmon.api.app import create_app

    return create_app(surface=surface, refresh_interval_ms=3000)


@pytest.fixture
async def client(app) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Async HTTP client for the dashboard app."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
