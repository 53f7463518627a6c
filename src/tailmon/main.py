import asyncio
import logging

import structlog
import uvicorn

from tailmon.config import Settings, settings

logger = structlog.get_logger()


def configure_logging(cfg: Settings = settings) -> None:
    log_level = getattr(logging, cfg.log_level.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer()
            if cfg.log_format == "console"
            else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )


def build_poller(cfg: Settings = settings):
    from tailmon.services.classifier import Thresholds
    from tailmon.services.metrics_client import MetricsClient
    from tailmon.services.poller import Poller
    from tailmon.services.renderer import LatestRenderSurface, Renderer

    renderer = Renderer(thresholds=Thresholds.from_settings(cfg))
    client = MetricsClient(
        base_url=cfg.server_url,
        path=cfg.metrics_path,
        timeout=cfg.fetch_timeout_seconds,
    )
    surface = LatestRenderSurface(renderer.render_empty())
    return Poller(client, renderer, surface, interval_seconds=cfg.refresh_interval_seconds)


async def main(cfg: Settings = settings) -> None:
    logger.info(
        "tailmon_starting",
        dashboard_port=cfg.dashboard_port,
        server_url=cfg.server_url,
        refresh_interval_ms=cfg.refresh_interval_ms,
    )

    from tailmon.api.app import create_app

    app = create_app(poller=build_poller(cfg))

    # uvicorn handles SIGINT/SIGTERM; the app lifespan stops the poller
    uvicorn_config = uvicorn.Config(
        app,
        host=cfg.dashboard_host,
        port=cfg.dashboard_port,
        log_level=cfg.log_level.lower(),
    )
    await uvicorn.Server(uvicorn_config).serve()

    logger.info("shutdown_complete")


if __name__ == "__main__":
    configure_logging()
    asyncio.run(main())
