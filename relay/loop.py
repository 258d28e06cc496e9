# relay/loop.py
import asyncio
import enum
from typing import Optional

from .availability import AvailabilityTracker
from .config import RelayConfig
from .debug import debug_log, status
from .errors import RelayStartupError, SinkResult, SinkUnreachable, SourceUnavailable
from .interfaces import PresenceSink, SampleSource
from .models import RelayState


class TickResult(enum.Enum):
    BUSY = "busy"
    PROBED = "probed"
    NO_SAMPLE = "no_sample"
    NOT_PLAYING = "not_playing"
    CLEARED = "cleared"
    UNCHANGED = "unchanged"
    PUBLISHED = "published"
    FAILED = "failed"


class RelayLoop:
    """
    Samples the web player every poll period and pushes changes to the sink.

    Ticks never overlap: when the timer fires while a tick is still awaiting a
    collaborator, that timer fire is dropped rather than queued.
    """

    def __init__(
        self,
        source: SampleSource,
        sink: PresenceSink,
        config: Optional[RelayConfig] = None,
        tracker: Optional[AvailabilityTracker] = None,
    ):
        self.source = source
        self.sink = sink
        self.config = config or RelayConfig()
        self.tracker = tracker or AvailabilityTracker(sink)
        self.state = RelayState()

        self.dropped_ticks = 0
        self._in_flight = False
        self._timer: Optional[asyncio.Task] = None
        self._current: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    # ==================================================
    # TICK
    # ==================================================

    async def tick(self) -> TickResult:
        if self._in_flight:
            self.dropped_ticks += 1
            debug_log("Tick dropped: previous tick still in flight")
            return TickResult.BUSY

        self._in_flight = True
        try:
            return await self._tick()
        except Exception as e:
            debug_log(f"Tick failed: {type(e).__name__}: {e}")
            return TickResult.FAILED
        finally:
            self.state.sink_healthy = self.tracker.is_healthy()
            self._in_flight = False

    async def _tick(self) -> TickResult:
        # 1) Sink down: spend this tick on a probe only
        if not self.tracker.is_healthy():
            result = await self.tracker.probe()
            if result.ok:
                # A fresh connection gets the full failure budget again
                self.state.consecutive_failures = 0
            return TickResult.PROBED

        # 2) Sample
        try:
            sample = await self.source.sample()
        except SourceUnavailable as e:
            debug_log(f"No sample: {e}")
            return TickResult.NO_SAMPLE
        except Exception as e:
            debug_log(f"Sample source failed: {type(e).__name__}: {e}")
            return TickResult.NO_SAMPLE

        if sample is None:
            return TickResult.NO_SAMPLE

        # 3) Nothing audible
        if not sample.is_playing:
            return await self._handle_not_playing()

        # 4) Same song, same start offset
        if sample.is_equivalent(self.state.last_dispatched, self.config.dedup_tolerance_seconds):
            return TickResult.UNCHANGED

        # 5) Dispatch
        result = await self._call_sink("publish", sample)
        if result.ok:
            self.state.last_dispatched = sample
            self.state.consecutive_failures = 0
            status("Relay", f"Updated: {sample.title} — {sample.artist}")
            return TickResult.PUBLISHED

        self._record_failure(result)
        return TickResult.FAILED

    async def _handle_not_playing(self) -> TickResult:
        last = self.state.last_dispatched
        if not self.config.clear_on_pause or last is None or not last.is_playing:
            return TickResult.NOT_PLAYING

        result = await self._call_sink("clear")
        if result.ok:
            self.state.last_dispatched = None
            self.state.consecutive_failures = 0
            status("Relay", "Cleared (nothing playing)")
            return TickResult.CLEARED

        self._record_failure(result)
        return TickResult.FAILED

    async def _call_sink(self, method: str, *args) -> SinkResult:
        try:
            return await getattr(self.sink, method)(*args)
        except Exception as e:
            return SinkResult.failure(SinkUnreachable(f"{method} raised {type(e).__name__}: {e}"))

    def _record_failure(self, result: SinkResult) -> None:
        self.state.consecutive_failures += 1
        debug_log(
            f"Dispatch failed ({self.state.consecutive_failures}/{self.config.failure_threshold}): "
            f"{result.describe()}"
        )
        if self.state.consecutive_failures >= self.config.failure_threshold:
            self.tracker.mark_unhealthy(result.error)

    # ==================================================
    # SCHEDULER
    # ==================================================

    def start(self) -> asyncio.Task:
        if self.running:
            return self._timer
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise RelayStartupError("relay loop needs a running asyncio event loop") from e

        self._timer = loop.create_task(self._schedule())
        debug_log(f"Relay timer started (period={self.config.poll_seconds}s)")
        return self._timer

    async def run(self) -> None:
        await self.start()

    async def _schedule(self) -> None:
        while True:
            if self._in_flight:
                self.dropped_ticks += 1
                debug_log("Timer fired during an in-flight tick, dropped")
            else:
                self._current = asyncio.create_task(self.tick())
            await asyncio.sleep(self.config.poll_seconds)

    async def stop(self) -> None:
        for task in (self._timer, self._current):
            if task is not None and not task.done():
                task.cancel()
        for task in (self._timer, self._current):
            if task is not None:
                await asyncio.gather(task, return_exceptions=True)
        self._timer = None
        self._current = None
        self._in_flight = False

        if self.config.clear_on_pause and self.state.last_dispatched is not None:
            await self._shutdown_clear()

        close = getattr(self.sink, "close", None)
        if close is not None:
            try:
                close()
            except Exception as e:
                debug_log(f"Sink close failed: {type(e).__name__}: {e}")

    async def _shutdown_clear(self) -> None:
        try:
            result = await asyncio.wait_for(
                self._call_sink("clear"), timeout=self.config.shutdown_clear_timeout
            )
        except asyncio.TimeoutError:
            debug_log("Shutdown clear timed out")
            return
        if result.ok:
            self.state.last_dispatched = None
            status("Relay", "Presence cleared on shutdown")
        else:
            debug_log(f"Shutdown clear failed: {result.describe()}")
