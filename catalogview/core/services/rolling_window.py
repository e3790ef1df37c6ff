"""Bounded hourly and daily rolling windows for endpoint time series."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence  # noqa: TC003
from dataclasses import dataclass, field
from statistics import fmean
from typing import Any

HOUR_MS = 3_600_000
DAY_MS = 24 * HOUR_MS

HOURLY_CAPACITY = 72
DAILY_CAPACITY = 30

Point = dict[str, Any]


def hour_start(timestamp: int) -> int:
    return timestamp - timestamp % HOUR_MS


def day_start(timestamp: int) -> int:
    """UTC day start, in epoch milliseconds, for ``timestamp``."""
    return timestamp - timestamp % DAY_MS


@dataclass(frozen=True, slots=True)
class WindowSpec:
    """A named series and the fields its daily means are computed over."""

    series: str
    fields: tuple[str, ...]


UPTIME = WindowSpec(series="uptime", fields=("uptime",))
STATS = WindowSpec(series="stats", fields=("p50_latency", "p50_throughput", "request_count"))


@dataclass(slots=True)
class RollingWindow:
    hourly: list[Point] = field(default_factory=list)
    daily: list[Point] = field(default_factory=list)

    def to_dict(self) -> dict[str, list[Point]]:
        return {"hourly": self.hourly, "daily": self.daily}


def _merge(existing: Iterable[Mapping[str, Any]], incoming: Iterable[Mapping[str, Any]], cap: int) -> list[Point]:
    merged: dict[int, Point] = {}
    for point in existing:
        merged[point["timestamp"]] = dict(point)
    for point in incoming:
        merged[point["timestamp"]] = dict(point)
    return [merged[ts] for ts in sorted(merged)][-cap:]


def fold_hourly(
    existing: Sequence[Mapping[str, Any]],
    incoming: Sequence[Mapping[str, Any]],
    cap: int = HOURLY_CAPACITY,
) -> list[Point]:
    """Union by timestamp (incoming wins), ascending, keeping the newest ``cap`` points."""

    return _merge(existing, incoming, cap)


def fold_daily(
    existing_daily: Sequence[Mapping[str, Any]],
    hourly: Sequence[Mapping[str, Any]],
    required_fields: Sequence[str],
    cap: int = DAILY_CAPACITY,
) -> list[Point]:
    """Recompute every day covered by ``hourly`` and carry older days forward.

    A day's point holds the mean of each required field over samples carrying
    all of them. A covered day with no such sample keeps a timestamp-only
    point so a known gap stays distinct from an unobserved day.
    """

    buckets: dict[int, list[Mapping[str, Any]]] = {}
    for point in hourly:
        buckets.setdefault(day_start(point["timestamp"]), []).append(point)

    computed: list[Point] = []
    for day, points in buckets.items():
        qualifying = [p for p in points if all(p.get(name) is not None for name in required_fields)]
        day_point: Point = {"timestamp": day}
        if qualifying:
            for name in required_fields:
                day_point[name] = fmean(p[name] for p in qualifying)
        computed.append(day_point)

    return _merge(existing_daily, computed, cap)


def fold_window(
    window: RollingWindow,
    incoming: Sequence[Mapping[str, Any]],
    spec: WindowSpec,
    *,
    hourly_cap: int = HOURLY_CAPACITY,
    daily_cap: int = DAILY_CAPACITY,
) -> RollingWindow:
    hourly = fold_hourly(window.hourly, incoming, hourly_cap)
    daily = fold_daily(window.daily, hourly, spec.fields, daily_cap)
    return RollingWindow(hourly=hourly, daily=daily)


def uptime_average(window: RollingWindow) -> float | None:
    """Mean of non-null hourly uptimes, or ``None`` when there are none."""
    values = [p["uptime"] for p in window.hourly if p.get("uptime") is not None]
    if not values:
        return None
    return fmean(values)


__all__ = [
    "DAILY_CAPACITY",
    "DAY_MS",
    "HOURLY_CAPACITY",
    "HOUR_MS",
    "STATS",
    "UPTIME",
    "Point",
    "RollingWindow",
    "WindowSpec",
    "day_start",
    "fold_daily",
    "fold_hourly",
    "fold_window",
    "hour_start",
    "uptime_average",
]
