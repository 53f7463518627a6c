import time

import httpx
import structlog
from pydantic import ValidationError

from tailmon.observability.metrics import (
    FETCH_DURATION,
    FETCH_FAILURES_TOTAL,
    RECORDS_REJECTED_TOTAL,
)
from tailmon.schemas.device import DeviceMetric, Snapshot

logger = structlog.get_logger()


def parse_snapshot(payload: object) -> Snapshot:
    """Validate a decoded response body into a Snapshot.

    Records that fail validation, or repeat a device_id already seen in this
    payload, are dropped individually; the rest keep their response order.
    """
    if not isinstance(payload, list):
        logger.warning("metrics_payload_not_a_list", payload_type=type(payload).__name__)
        FETCH_FAILURES_TOTAL.labels(reason="malformed").inc()
        return Snapshot.failed("malformed response: expected a JSON array")

    devices: list[DeviceMetric] = []
    seen: set[str] = set()
    for index, record in enumerate(payload):
        try:
            device = DeviceMetric.model_validate(record)
        except ValidationError as exc:
            RECORDS_REJECTED_TOTAL.inc()
            logger.warning(
                "device_record_rejected",
                index=index,
                fields=[".".join(str(part) for part in err["loc"]) for err in exc.errors()],
            )
            continue
        if device.device_id in seen:
            RECORDS_REJECTED_TOTAL.inc()
            logger.warning("device_record_rejected", index=index, reason="duplicate_device_id")
            continue
        seen.add(device.device_id)
        devices.append(device)

    return Snapshot(devices=tuple(devices))


class MetricsClient:
    def __init__(
        self,
        base_url: str = "http://127.0.0.1:3000",
        path: str = "/api/all_metrics",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.path = path
        self.client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def fetch_snapshot(self) -> Snapshot:
        """Fetch the current device set. Never raises: any failure yields an empty Snapshot."""
        start = time.perf_counter()
        try:
            resp = await self.client.get(self.path)
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPStatusError as exc:
            FETCH_FAILURES_TOTAL.labels(reason="http_status").inc()
            logger.warning(
                "metrics_fetch_failed",
                reason="http_status",
                status_code=exc.response.status_code,
                url=str(exc.request.url),
            )
            return Snapshot.failed(f"HTTP error! status: {exc.response.status_code}")
        except httpx.HTTPError as exc:
            FETCH_FAILURES_TOTAL.labels(reason="transport").inc()
            logger.warning(
                "metrics_fetch_failed",
                reason="transport",
                error=str(exc) or type(exc).__name__,
                url=f"{self.base_url}{self.path}",
            )
            return Snapshot.failed(f"transport error: {type(exc).__name__}")
        except ValueError as exc:
            FETCH_FAILURES_TOTAL.labels(reason="malformed").inc()
            logger.warning("metrics_fetch_failed", reason="malformed", error=str(exc))
            return Snapshot.failed("malformed response: invalid JSON")
        finally:
            FETCH_DURATION.observe(time.perf_counter() - start)

        snapshot = parse_snapshot(payload)
        logger.debug("snapshot_fetched", devices=len(snapshot))
        return snapshot

    async def aclose(self) -> None:
        await self.client.aclose()
