"""Markup generation for the device card grid.

Rendering happens in two steps: ``build_cards`` derives a ``DeviceCard`` per
device (status tier, escaped text, formatted numbers, relative time) and
``Renderer.render`` feeds those cards through the ``partials/devices.html``
template. The result always replaces the whole display surface.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from tailmon.schemas.device import Snapshot
from tailmon.services.classifier import DEFAULT_THRESHOLDS, HealthStatus, Thresholds, classify, ram_ratio
from tailmon.services.sanitizer import sanitize
from tailmon.services.time_format import time_ago

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "dashboard" / "templates"


@dataclass(frozen=True)
class DeviceCard:
    device_id: Markup
    os_info: Markup
    status: HealthStatus
    cpu_usage: str
    ram_usage: str
    ram_used_mb: int
    ram_total_mb: int
    last_seen: str


def build_cards(
    snapshot: Snapshot,
    now: datetime | None = None,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> list[DeviceCard]:
    if now is None:
        now = datetime.now(timezone.utc)
    return [
        DeviceCard(
            device_id=sanitize(device.device_id),
            os_info=sanitize(device.os_info),
            status=classify(device, thresholds),
            cpu_usage=f"{device.cpu_usage:.1f}",
            ram_usage=f"{ram_ratio(device) * 100:.1f}",
            ram_used_mb=device.ram_used_mb,
            ram_total_mb=device.ram_total_mb,
            last_seen=time_ago(device.last_seen, now),
        )
        for device in snapshot.devices
    ]


class DisplaySurface(Protocol):
    def replace(self, markup: str, *, sequence: int, device_count: int) -> None: ...


class LatestRenderSurface:
    """Holds the most recent full render for the dashboard to serve."""

    def __init__(self, initial_markup: str = "") -> None:
        self.markup = initial_markup
        self.sequence = 0
        self.device_count = 0
        self.updated_at: datetime | None = None

    def replace(self, markup: str, *, sequence: int, device_count: int) -> None:
        self.markup = markup
        self.sequence = sequence
        self.device_count = device_count
        self.updated_at = datetime.now(timezone.utc)


def create_environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


class Renderer:
    def __init__(
        self,
        thresholds: Thresholds = DEFAULT_THRESHOLDS,
        env: Environment | None = None,
    ) -> None:
        self.thresholds = thresholds
        self.env = env or create_environment()
        self._template = self.env.get_template("partials/devices.html")

    def render_cards(self, cards: list[DeviceCard]) -> str:
        return self._template.render(cards=cards)

    def render(self, snapshot: Snapshot, now: datetime | None = None) -> str:
        return self.render_cards(build_cards(snapshot, now, self.thresholds))

    def render_empty(self) -> str:
        return self.render_cards([])
