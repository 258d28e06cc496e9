#relay/discord_rpc.py
import asyncio
import time
from typing import Callable, Optional

from pypresence import AioPresence
from pypresence.types import ActivityType

from .config import APP_CLIENT_ID
from .debug import debug_log, status
from .errors import SinkRejected, SinkResult, SinkUnreachable
from .models import PlaybackSample

# Asset keys uploaded to the Discord application
LARGE_IMAGE = "applemusic"
LARGE_TEXT = "Apple Music"

CONNECT_TIMEOUT = 2.0


def build_activity(sample: PlaybackSample, now: Optional[float] = None) -> dict:
    now = time.time() if now is None else now

    payload = {
        "details": sample.title[:128],
        "state": sample.artist[:128],
        "large_image": LARGE_IMAGE,
        "large_text": LARGE_TEXT,
        "small_image": "play" if sample.is_playing else "pause",
        "small_text": "Playing" if sample.is_playing else "Paused",
        "activity_type": ActivityType.LISTENING,
    }

    # Progress bar only while playing
    if sample.is_playing and sample.duration_seconds > 0:
        start = int(now - sample.position_seconds)
        payload["start"] = start
        payload["end"] = start + int(sample.duration_seconds)

    return payload


def _display_name(rpc) -> str:
    user = getattr(rpc, "user", None) or {}
    name = user.get("username", "Unknown")
    disc = user.get("discriminator", "")
    return f"{name}#{disc}" if disc and disc != "0" else name


class DiscordPresenceSink:
    """Presence sink backed by the local Discord client's IPC pipe."""

    def __init__(
        self,
        client_id: str = APP_CLIENT_ID,
        connect_timeout: float = CONNECT_TIMEOUT,
        clock: Callable[[], float] = time.time,
        presence_factory=AioPresence,
    ):
        self.client_id = client_id
        self.connect_timeout = connect_timeout
        self._clock = clock
        self._presence_factory = presence_factory
        self._rpc = None

    @property
    def connected(self) -> bool:
        return self._rpc is not None

    async def probe(self) -> SinkResult:
        if self._rpc is not None:
            return SinkResult.success()

        rpc = self._presence_factory(self.client_id)
        try:
            await asyncio.wait_for(rpc.connect(), timeout=self.connect_timeout)
        except Exception as e:
            self._close_quietly(rpc)
            return SinkResult.failure(SinkUnreachable(f"Discord not reachable: {str(e) or type(e).__name__}"))

        self._rpc = rpc
        try:
            status("RPC", f"Connected as {_display_name(rpc)}")
        except Exception:
            status("RPC", "Connected")
        return SinkResult.success()

    async def publish(self, sample: PlaybackSample) -> SinkResult:
        if self._rpc is None:
            return SinkResult.failure(SinkRejected("Discord RPC not connected"))

        payload = build_activity(sample, self._clock())
        try:
            await self._rpc.update(**payload)
        except Exception as e:
            self._drop()
            return SinkResult.failure(SinkUnreachable(f"activity update failed: {str(e) or type(e).__name__}"))

        debug_log(f"Activity set: {payload}")
        return SinkResult.success()

    async def clear(self) -> SinkResult:
        if self._rpc is None:
            return SinkResult.failure(SinkRejected("Discord RPC not connected"))

        try:
            await self._rpc.clear()
        except Exception as e:
            self._drop()
            return SinkResult.failure(SinkUnreachable(f"activity clear failed: {str(e) or type(e).__name__}"))
        return SinkResult.success()

    def close(self) -> None:
        self._drop()

    def _drop(self) -> None:
        rpc, self._rpc = self._rpc, None
        if rpc is not None:
            self._close_quietly(rpc)

    @staticmethod
    def _close_quietly(rpc) -> None:
        try:
            rpc.close()
        except Exception as e:
            debug_log(f"Discord close failed: {type(e).__name__}: {e}")
