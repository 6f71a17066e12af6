"""Tests for the expired-room reaper."""
from __future__ import annotations

import asyncio

import pytest

from rendezvous.services.reaper import Reaper
from rendezvous.services.rooms import RoomDirectory


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


async def _wait_for(predicate, attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_sweep_respects_retention_window():
    clock = FakeClock()
    directory = RoomDirectory(clock=clock)
    directory.create_or_get("empty", "a", "alice")
    directory.leave("empty", "a")
    directory.create_or_get("occupied", "b", "bob")
    reaper = Reaper(directory, asyncio.Lock(), max_age_seconds=60, interval_seconds=3600, clock=clock)

    clock.now = 60
    assert await reaper.sweep() == []

    clock.now = 10_000
    assert await reaper.sweep() == ["empty"]
    assert "occupied" in directory


@pytest.mark.asyncio
async def test_reaper_runs_on_interval_until_stopped():
    clock = FakeClock()
    directory = RoomDirectory(clock=clock)
    directory.create_or_get("stale", "a", "alice")
    directory.leave("stale", "a")
    clock.now = 1_000

    reaper = Reaper(directory, asyncio.Lock(), max_age_seconds=10, interval_seconds=0.01, clock=clock)
    reaper.start()
    assert reaper.running

    await _wait_for(lambda: "stale" not in directory)
    await reaper.stop()

    assert "stale" not in directory
    assert not reaper.running


@pytest.mark.asyncio
async def test_reaper_keeps_running_after_a_failed_sweep(monkeypatch, caplog):
    clock = FakeClock(now=1_000)
    directory = RoomDirectory(clock=clock)
    calls: list[float] = []
    original = directory.sweep_expired

    def flaky_sweep(max_age: float, now: float | None = None) -> list[str]:
        calls.append(max_age)
        if len(calls) == 1:
            raise RuntimeError("sweep exploded")
        return original(max_age, now)

    monkeypatch.setattr(directory, "sweep_expired", flaky_sweep)

    reaper = Reaper(directory, asyncio.Lock(), max_age_seconds=10, interval_seconds=0.01, clock=clock)
    reaper.start()
    await _wait_for(lambda: len(calls) >= 2)
    await reaper.stop()

    assert len(calls) >= 2
    assert "Room sweep failed" in caplog.text
