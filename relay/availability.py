# relay/availability.py
from typing import Optional

from .debug import debug_log, status
from .errors import SinkError, SinkResult, SinkUnreachable
from .interfaces import PresenceSink


class AvailabilityTracker:
    """
    Healthy / Unhealthy view of the presence sink.

    Starts Unhealthy. Only probe() can bring it back to Healthy; a failed probe
    or mark_unhealthy() drops it. There is no internal timer: the relay loop
    calls probe() at most once per tick.
    """

    def __init__(self, sink: PresenceSink):
        self._sink = sink
        self._healthy = False
        self.failed_probes = 0
        self.last_error: Optional[SinkError] = None

    def is_healthy(self) -> bool:
        return self._healthy

    async def probe(self) -> SinkResult:
        try:
            result = await self._sink.probe()
        except Exception as e:
            result = SinkResult.failure(SinkUnreachable(f"probe raised {type(e).__name__}: {e}"))

        if result.ok:
            self.failed_probes = 0
            self.last_error = None
            self._set_healthy(True, "probe succeeded")
        else:
            self.failed_probes += 1
            self.last_error = result.error
            debug_log(f"Probe #{self.failed_probes} failed: {result.describe()}")
            self._set_healthy(False, result.describe())
        return result

    def mark_unhealthy(self, error: Optional[SinkError] = None) -> None:
        if error is not None:
            self.last_error = error
        reason = f"{type(error).__name__}: {error}" if error else "dispatch failed"
        self._set_healthy(False, reason)

    def _set_healthy(self, healthy: bool, reason: str) -> None:
        if healthy == self._healthy:
            return
        self._healthy = healthy
        if healthy:
            status("Relay", "Presence sink reachable ✅")
        else:
            status("Relay", f"Presence sink unavailable ({reason}), probing every tick")
