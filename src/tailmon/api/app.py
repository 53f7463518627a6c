from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from tailmon import __version__
from tailmon.api.middleware import RequestLoggingMiddleware
from tailmon.api.routes import health, metrics
from tailmon.config import settings
from tailmon.dashboard.router import get_static_files_app, router as dashboard_router
from tailmon.services.poller import Poller
from tailmon.services.renderer import LatestRenderSurface, Renderer

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("dashboard_starting")
    poller: Poller | None = app.state.poller
    if poller is not None:
        await poller.start()
    yield
    if poller is not None:
        await poller.stop()
        aclose = getattr(poller.client, "aclose", None)
        if aclose is not None:
            await aclose()
    logger.info("dashboard_shut_down")


def create_app(
    poller: Poller | None = None,
    surface: LatestRenderSurface | None = None,
    refresh_interval_ms: int | None = None,
) -> FastAPI:
    """Build the dashboard app.

    The page is served from ``surface``; when a poller is given, its surface is
    used and the poller runs for the lifetime of the app.
    """
    if surface is None:
        if poller is not None and isinstance(poller.surface, LatestRenderSurface):
            surface = poller.surface
        else:
            surface = LatestRenderSurface(Renderer().render_empty())
    if refresh_interval_ms is None:
        refresh_interval_ms = (
            int(poller.interval_seconds * 1000) if poller is not None else settings.refresh_interval_ms
        )

    app = FastAPI(
        title="Tailmon",
        version=__version__,
        description="Fleet health dashboard",
        lifespan=lifespan,
    )
    app.state.poller = poller
    app.state.surface = surface
    app.state.refresh_interval_ms = refresh_interval_ms

    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health.router)
    app.include_router(metrics.router)
    app.include_router(dashboard_router)
    app.mount("/dashboard/static", get_static_files_app(), name="dashboard-static")

    @app.get("/", include_in_schema=False)
    async def root_redirect():
        return RedirectResponse(url="/dashboard")

    return app
