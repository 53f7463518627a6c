import math
from datetime import datetime, timezone


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count > 1 else ''} ago"


def time_ago(dt: datetime, now: datetime | None = None) -> str:
    if now is None:
        now = datetime.now(timezone.utc)
    dt_aware = dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt
    now_aware = now.replace(tzinfo=timezone.utc) if now.tzinfo is None else now

    # Timestamps ahead of our clock (agent clock skew) read as "just now"
    delta = max(math.floor((now_aware - dt_aware).total_seconds()), 0)
    if delta < 60:
        return f"{delta} seconds ago"
    if delta < 3600:
        return _plural(delta // 60, "minute")
    if delta < 86400:
        return _plural(delta // 3600, "hour")
    return _plural(delta // 86400, "day")
