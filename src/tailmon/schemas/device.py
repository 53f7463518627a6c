from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator


class DeviceMetric(BaseModel):
    """One device's metrics as delivered by the metrics server."""

    model_config = {"frozen": True, "allow_inf_nan": False}

    device_id: str = Field(min_length=1)
    os_info: str
    cpu_usage: float
    ram_used_mb: int = Field(strict=True)
    ram_total_mb: int = Field(strict=True)
    last_seen: datetime

    @field_validator("cpu_usage", "ram_used_mb", "ram_total_mb", mode="before")
    @classmethod
    def _reject_non_numbers(cls, value: object) -> object:
        # JSON true/false and quoted numbers are wrong types, not numbers
        if isinstance(value, (bool, str)):
            raise ValueError("must be a JSON number")
        return value

    @field_validator("last_seen")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


@dataclass(frozen=True)
class Snapshot:
    """The complete, ordered device set returned by one fetch."""

    devices: tuple[DeviceMetric, ...] = ()
    fetch_error: str | None = None

    @classmethod
    def failed(cls, reason: str) -> Snapshot:
        return cls(devices=(), fetch_error=reason)

    @property
    def ok(self) -> bool:
        return self.fetch_error is None

    def __len__(self) -> int:
        return len(self.devices)
