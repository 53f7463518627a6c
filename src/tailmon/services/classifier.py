"""Device health classification from CPU and RAM thresholds."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tailmon.config import Settings
    from tailmon.schemas.device import DeviceMetric


class HealthStatus(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def css_class(self) -> str:
        return "" if self is HealthStatus.NORMAL else f"status-{self.value}"


@dataclass(frozen=True)
class Thresholds:
    cpu_warning: float = 60.0
    cpu_critical: float = 80.0
    ram_warning: float = 0.7
    ram_critical: float = 0.9

    @classmethod
    def from_settings(cls, settings: Settings) -> Thresholds:
        return cls(
            cpu_warning=settings.cpu_warning_percent,
            cpu_critical=settings.cpu_critical_percent,
            ram_warning=settings.ram_warning_ratio,
            ram_critical=settings.ram_critical_ratio,
        )


DEFAULT_THRESHOLDS = Thresholds()


def ram_ratio(device: DeviceMetric) -> float:
    """Used/total RAM. A device reporting no total RAM counts as 0.0."""
    if device.ram_total_mb <= 0:
        return 0.0
    return device.ram_used_mb / device.ram_total_mb


def classify(device: DeviceMetric, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> HealthStatus:
    ratio = ram_ratio(device)
    if device.cpu_usage > thresholds.cpu_critical or ratio > thresholds.ram_critical:
        return HealthStatus.CRITICAL
    if device.cpu_usage > thresholds.cpu_warning or ratio > thresholds.ram_warning:
        return HealthStatus.WARNING
    return HealthStatus.NORMAL
