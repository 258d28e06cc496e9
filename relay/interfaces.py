# relay/interfaces.py
import asyncio
from typing import Callable, Optional, Protocol, runtime_checkable

from .errors import SinkResult
from .models import PlaybackSample


@runtime_checkable
class SampleSource(Protocol):
    async def sample(self) -> Optional[PlaybackSample]:
        """Return the current playback, None for "no data", or raise SourceUnavailable."""
        ...


@runtime_checkable
class PresenceSink(Protocol):
    async def probe(self) -> SinkResult: ...

    async def publish(self, sample: PlaybackSample) -> SinkResult: ...

    async def clear(self) -> SinkResult: ...


class ThreadedSource:
    """Runs a blocking reader (osascript, HTTP, ...) off the event loop."""

    def __init__(self, read: Callable[[], Optional[PlaybackSample]]):
        self._read = read

    async def sample(self) -> Optional[PlaybackSample]:
        return await asyncio.to_thread(self._read)
