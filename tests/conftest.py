"""Shared fakes and fixtures for the relay tests."""

import asyncio
from typing import Optional

import pytest

from relay.errors import SinkRejected, SinkResult, SinkUnreachable
from relay.models import PlaybackSample


def make_sample(
    position: float = 10,
    observed_at: float = 1000.0,
    title: str = "Song A",
    artist: str = "Artist X",
    playing: bool = True,
    duration: float = 200,
) -> PlaybackSample:
    return PlaybackSample(
        is_playing=playing,
        title=title,
        artist=artist,
        position_seconds=position,
        duration_seconds=duration,
        observed_at=observed_at,
    )


def _as_result(item) -> SinkResult:
    if isinstance(item, SinkResult):
        return item
    if isinstance(item, BaseException):
        raise item
    if item:
        return SinkResult.success()
    return SinkResult.failure(SinkUnreachable("fake sink down"))


class FakeSource:
    """Replays a script of samples; the last entry repeats once the script runs out."""

    def __init__(self, *items):
        self.items = list(items) or [None]
        self.calls = 0

    async def sample(self) -> Optional[PlaybackSample]:
        self.calls += 1
        item = self.items.pop(0) if len(self.items) > 1 else self.items[0]
        if isinstance(item, BaseException):
            raise item
        return item


class FakeSink:
    def __init__(self, probes=(True,), publishes=(True,), clears=(True,)):
        self.probes = list(probes)
        self.publishes = list(publishes)
        self.clears = list(clears)
        self.probe_calls = 0
        self.published = []
        self.clear_calls = 0
        self.closed = False
        self.publish_gate: Optional[asyncio.Event] = None
        self.clear_gate: Optional[asyncio.Event] = None
        self.in_flight = 0
        self.max_in_flight = 0

    @staticmethod
    def _next(script):
        return script.pop(0) if len(script) > 1 else script[0]

    async def probe(self) -> SinkResult:
        self.probe_calls += 1
        return _as_result(self._next(self.probes))

    async def publish(self, sample: PlaybackSample) -> SinkResult:
        self.published.append(sample)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.publish_gate is not None:
                await self.publish_gate.wait()
            return _as_result(self._next(self.publishes))
        finally:
            self.in_flight -= 1

    async def clear(self) -> SinkResult:
        self.clear_calls += 1
        if self.clear_gate is not None:
            await self.clear_gate.wait()
        return _as_result(self._next(self.clears))

    def close(self) -> None:
        self.closed = True


REJECTED = SinkResult.failure(SinkRejected("Discord RPC not connected"))


@pytest.fixture
def sample():
    return make_sample()


@pytest.fixture
def sink():
    return FakeSink()
