"""Tests for the dashboard app: pages, partials, health, metrics, middleware, lifespan."""

from datetime import timedelta

import httpx
import pytest
from prometheus_client import REGISTRY

from tailmon.api.app import create_app
from tailmon.schemas.device import DeviceMetric, Snapshot
from tailmon.services.poller import Poller
from tailmon.services.renderer import LatestRenderSurface, Renderer

from fakes import FakeSource, wait_until


def _snapshot(now, device_id: str = "srv1") -> Snapshot:
    device = DeviceMetric(
        device_id=device_id,
        os_info="Debian 12",
        cpu_usage=20.0,
        ram_used_mb=512,
        ram_total_mb=4096,
        last_seen=now - timedelta(seconds=10),
    )
    return Snapshot(devices=(device,))


def _client_for(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


class TestDashboardPages:
    async def test_root_redirects_to_dashboard(self, client: httpx.AsyncClient):
        resp = await client.get("/")
        assert resp.status_code == 307
        assert resp.headers["location"] == "/dashboard"

    async def test_index_embeds_current_render(self, client: httpx.AsyncClient):
        resp = await client.get("/dashboard")
        assert resp.status_code == 200
        assert "text/html" in resp.headers["content-type"]
        assert 'id="dashboard-container"' in resp.text
        assert 'data-refresh-ms="3000"' in resp.text
        assert "No devices connected" in resp.text
        assert "/dashboard/partials/devices" in resp.text

    async def test_partial_serves_latest_markup(
        self, client: httpx.AsyncClient, surface: LatestRenderSurface
    ):
        surface.replace('<div class="device-card">box</div>', sequence=7, device_count=1)

        resp = await client.get("/dashboard/partials/devices")
        assert resp.status_code == 200
        assert resp.text == '<div class="device-card">box</div>'
        assert resp.headers["x-render-sequence"] == "7"

    async def test_static_assets(self, client: httpx.AsyncClient):
        css = await client.get("/dashboard/static/styles.css")
        js = await client.get("/dashboard/static/dashboard.js")
        assert css.status_code == 200
        assert ".status-critical" in css.text
        assert js.status_code == 200


class TestHealth:
    async def test_health_without_poller(self, client: httpx.AsyncClient):
        resp = await client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["dependencies"]["metrics_server"]["status"] == "disabled"

    async def test_health_ok_after_successful_cycle(self, renderer: Renderer, surface, now):
        poller = Poller(FakeSource(_snapshot(now)), renderer, surface, clock=lambda: now)
        await poller.run_cycle()

        async with _client_for(create_app(poller=poller)) as c:
            resp = await c.get("/health")

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["devices"] == 1
        assert data["dependencies"]["metrics_server"]["applied_sequence"] == 1

    async def test_health_degraded_when_metrics_server_down(self, renderer: Renderer, surface, now):
        poller = Poller(
            FakeSource(Snapshot.failed("transport error: ConnectError")),
            renderer,
            surface,
            clock=lambda: now,
        )
        await poller.run_cycle()

        async with _client_for(create_app(poller=poller)) as c:
            resp = await c.get("/health")

        assert resp.status_code == 503
        data = resp.json()
        assert data["status"] == "degraded"
        assert data["dependencies"]["metrics_server"]["error"] == "transport error: ConnectError"

    async def test_health_degraded_when_cycle_raises(self, renderer: Renderer, surface, now):
        poller = Poller(FakeSource(RuntimeError("boom")), renderer, surface, interval_seconds=60.0, clock=lambda: now)
        await poller.start()
        await wait_until(lambda: poller.last_cycle_error is not None)
        await poller.stop()

        async with _client_for(create_app(poller=poller)) as c:
            resp = await c.get("/health")

        assert resp.status_code == 503
        data = resp.json()
        assert data["status"] == "degraded"
        assert data["dependencies"]["metrics_server"]["status"] == "error"
        assert data["dependencies"]["metrics_server"]["error"] == "poll cycle error: RuntimeError"

    async def test_health_pending_before_first_cycle(self, renderer: Renderer, surface):
        poller = Poller(FakeSource(), renderer, surface)

        async with _client_for(create_app(poller=poller)) as c:
            resp = await c.get("/health")

        assert resp.status_code == 200
        assert resp.json()["dependencies"]["metrics_server"]["status"] == "pending"


class TestMetricsEndpoint:
    async def test_metrics_returns_prometheus_format(self, client: httpx.AsyncClient):
        resp = await client.get("/metrics")
        assert resp.status_code == 200
        assert "text/plain" in resp.headers["content-type"]
        assert "tailmon_" in resp.text

    async def test_openmetrics_when_requested(self, client: httpx.AsyncClient):
        resp = await client.get(
            "/metrics", headers={"accept": "application/openmetrics-text; version=1.0.0"}
        )
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/openmetrics-text")
        assert resp.text.endswith("# EOF\n")


class TestRequestLoggingMiddleware:
    async def test_request_id_header_present(self, client: httpx.AsyncClient):
        resp = await client.get("/dashboard")
        assert "x-request-id" in resp.headers
        assert len(resp.headers["x-request-id"]) == 8

    async def test_request_counter_incremented(self, client: httpx.AsyncClient):
        await client.get("/dashboard")

        from tailmon.observability.metrics import HTTP_REQUESTS_TOTAL

        metric_value = HTTP_REQUESTS_TOTAL.labels(method="GET", path="/dashboard", status_code="200")
        assert metric_value._value.get() >= 1

    async def test_unknown_paths_share_one_label(self, client: httpx.AsyncClient):
        from tailmon.observability.metrics import HTTP_REQUESTS_TOTAL

        unmatched = {"method": "GET", "path": "unmatched", "status_code": "404"}
        before = REGISTRY.get_sample_value("tailmon_http_requests_total", unmatched) or 0.0

        for i in range(50):
            resp = await client.get(f"/random-{i}")
            assert resp.status_code == 404

        assert REGISTRY.get_sample_value("tailmon_http_requests_total", unmatched) == before + 50
        labels = {s.labels["path"] for s in HTTP_REQUESTS_TOTAL.collect()[0].samples}
        assert not any(p.startswith("/random-") for p in labels)

    async def test_static_files_labelled_by_mount(self, client: httpx.AsyncClient):
        from tailmon.observability.metrics import HTTP_REQUESTS_TOTAL

        await client.get("/dashboard/static/styles.css")

        labels = {s.labels["path"] for s in HTTP_REQUESTS_TOTAL.collect()[0].samples}
        assert "/dashboard/static" in labels
        assert "/dashboard/static/styles.css" not in labels


class TestLifespan:
    async def test_lifespan_runs_poller(self, renderer: Renderer, now):
        source = FakeSource(_snapshot(now, "lifespan-box"))
        surface = LatestRenderSurface(renderer.render_empty())
        poller = Poller(source, renderer, surface, interval_seconds=60.0, clock=lambda: now)
        app = create_app(poller=poller)

        async with app.router.lifespan_context(app):
            await wait_until(lambda: poller.applied_sequence == 1)
            assert poller.running
            assert "lifespan-box" in app.state.surface.markup

        assert not poller.running
        assert source.calls == 1

    def test_poller_surface_is_served(self, renderer: Renderer):
        surface = LatestRenderSurface("<p>initial</p>")
        poller = Poller(FakeSource(), renderer, surface, interval_seconds=5.0)
        app = create_app(poller=poller)
        assert app.state.surface is surface
        assert app.state.refresh_interval_ms == 5000

    @pytest.mark.parametrize("interval_ms", [1000, 3000])
    def test_refresh_interval_override(self, interval_ms):
        app = create_app(refresh_interval_ms=interval_ms)
        assert app.state.refresh_interval_ms == interval_ms
