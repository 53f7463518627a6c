import asyncio
from collections import Counter
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Protocol

import structlog

from tailmon.observability.metrics import DEVICES_BY_STATUS, POLL_CYCLES_TOTAL, STALE_SNAPSHOTS_TOTAL
from tailmon.schemas.device import Snapshot
from tailmon.services.classifier import HealthStatus
from tailmon.services.renderer import DisplaySurface, Renderer, build_cards

logger = structlog.get_logger()


class SnapshotSource(Protocol):
    async def fetch_snapshot(self) -> Snapshot: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Poller:
    """Runs fetch -> render -> replace immediately, then every ``interval_seconds``.

    Cycles are started on a fixed schedule whether or not the previous fetch
    has returned, so several may be in flight. Each carries a sequence number
    and only a result newer than the last applied one reaches the surface.
    """

    def __init__(
        self,
        client: SnapshotSource,
        renderer: Renderer,
        surface: DisplaySurface,
        interval_seconds: float = 3.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.client = client
        self.renderer = renderer
        self.surface = surface
        self.interval_seconds = interval_seconds
        self.clock = clock

        self.applied_sequence = 0
        self.last_fetch_error: str | None = None
        self.last_cycle_error: str | None = None
        self.last_applied_at: datetime | None = None
        self._sequence = 0
        self._loop_task: asyncio.Task | None = None
        self._in_flight: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._loop_task = asyncio.create_task(self._run(), name="tailmon-poller")
        logger.info("poller_started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        tasks = list(self._in_flight)
        if self._loop_task is not None:
            tasks.append(self._loop_task)
            self._loop_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._in_flight.clear()
        logger.info("poller_stopped", applied_sequence=self.applied_sequence)

    async def _run(self) -> None:
        while True:
            self._spawn_cycle()
            await asyncio.sleep(self.interval_seconds)

    def _spawn_cycle(self) -> None:
        self._sequence += 1
        task = asyncio.create_task(self._guarded_cycle(self._sequence))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _guarded_cycle(self, sequence: int) -> None:
        try:
            await self.run_cycle(sequence)
        except Exception as exc:
            POLL_CYCLES_TOTAL.labels(outcome="error").inc()
            # Only failures newer than the applied render count
            if sequence > self.applied_sequence:
                self.last_cycle_error = f"poll cycle error: {type(exc).__name__}"
            logger.exception("poll_cycle_error", sequence=sequence)

    async def run_cycle(self, sequence: int | None = None) -> bool:
        """Run one cycle. Returns False when a newer cycle had already been applied."""
        if sequence is None:
            self._sequence += 1
            sequence = self._sequence

        snapshot = await self.client.fetch_snapshot()

        if sequence <= self.applied_sequence:
            STALE_SNAPSHOTS_TOTAL.inc()
            POLL_CYCLES_TOTAL.labels(outcome="stale").inc()
            logger.info(
                "stale_snapshot_discarded",
                sequence=sequence,
                applied_sequence=self.applied_sequence,
            )
            return False

        cards = build_cards(snapshot, self.clock(), self.renderer.thresholds)
        markup = self.renderer.render_cards(cards)
        self.surface.replace(markup, sequence=sequence, device_count=len(cards))

        self.applied_sequence = sequence
        self.last_fetch_error = snapshot.fetch_error
        self.last_cycle_error = None
        self.last_applied_at = self.clock()

        counts = Counter(card.status for card in cards)
        for status in HealthStatus:
            DEVICES_BY_STATUS.labels(status=status.value).set(counts.get(status, 0))
        POLL_CYCLES_TOTAL.labels(outcome="applied" if snapshot.ok else "fetch_failed").inc()
        logger.debug("poll_cycle_applied", sequence=sequence, devices=len(cards))
        return True
