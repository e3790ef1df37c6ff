from __future__ import annotations

from catalogview.core.services.rolling_window import (
    DAY_MS,
    HOUR_MS,
    STATS,
    UPTIME,
    RollingWindow,
    day_start,
    fold_daily,
    fold_hourly,
    fold_window,
    hour_start,
    uptime_average,
)


def test_hourly_window_drops_oldest_past_capacity() -> None:
    existing = [{"timestamp": ts, "uptime": 100.0} for ts in range(1, 73)]

    folded = fold_hourly(existing, [{"timestamp": 73, "uptime": 90.0}], cap=72)

    assert len(folded) == 72
    assert [p["timestamp"] for p in folded] == list(range(2, 74))


def test_incoming_point_replaces_same_timestamp() -> None:
    folded = fold_hourly([{"timestamp": 10, "uptime": 50.0}], [{"timestamp": 10, "uptime": 75.0}])

    assert folded == [{"timestamp": 10, "uptime": 75.0}]


def test_fold_is_idempotent() -> None:
    incoming = [{"timestamp": i * HOUR_MS, "uptime": 90.0 + i} for i in range(30)]

    once = fold_window(RollingWindow(), incoming, UPTIME)
    twice = fold_window(once, incoming, UPTIME)

    assert once.to_dict() == twice.to_dict()


def test_window_lengths_never_exceed_caps() -> None:
    window = RollingWindow()
    for batch in range(10):
        incoming = [{"timestamp": (batch * 20 + i) * HOUR_MS, "uptime": 99.0} for i in range(20)]
        window = fold_window(window, incoming, UPTIME, hourly_cap=24, daily_cap=3)
        assert len(window.hourly) <= 24
        assert len(window.daily) <= 3


def test_daily_mean_over_qualifying_samples() -> None:
    hourly = [
        {"timestamp": 0, "uptime": 100.0},
        {"timestamp": HOUR_MS, "uptime": 90.0},
        {"timestamp": 2 * HOUR_MS, "uptime": None},
        {"timestamp": DAY_MS, "uptime": None},
    ]

    daily = fold_daily([], hourly, UPTIME.fields)

    assert daily == [{"timestamp": 0, "uptime": 95.0}, {"timestamp": DAY_MS}]


def test_daily_days_outside_hourly_horizon_are_carried_forward() -> None:
    existing_daily = [{"timestamp": 0, "uptime": 42.0}]
    hourly = [{"timestamp": DAY_MS + HOUR_MS, "uptime": 80.0}]

    daily = fold_daily(existing_daily, hourly, UPTIME.fields)

    assert daily == [{"timestamp": 0, "uptime": 42.0}, {"timestamp": DAY_MS, "uptime": 80.0}]


def test_stats_daily_requires_every_field() -> None:
    hourly = [
        {"timestamp": 0, "p50_latency": 100.0, "p50_throughput": 10.0, "request_count": 5},
        {"timestamp": HOUR_MS, "p50_latency": 300.0, "p50_throughput": 30.0},
    ]

    daily = fold_daily([], hourly, STATS.fields)

    assert daily == [{"timestamp": 0, "p50_latency": 100.0, "p50_throughput": 10.0, "request_count": 5.0}]


def test_alignment_helpers() -> None:
    assert hour_start(HOUR_MS + 5) == HOUR_MS
    assert day_start(DAY_MS + 3 * HOUR_MS) == DAY_MS


def test_uptime_average_skips_nulls() -> None:
    window = RollingWindow(hourly=[{"timestamp": 0, "uptime": 100.0}, {"timestamp": 1, "uptime": None}, {"timestamp": 2, "uptime": 50.0}])

    assert uptime_average(window) == 75.0
    assert uptime_average(RollingWindow()) is None
