# relay/http_sink.py
import asyncio
from typing import Optional

import requests

from .config import BRIDGE_URL, REQUEST_TIMEOUT
from .debug import debug_log
from .errors import SinkRejected, SinkResult, SinkUnreachable
from .models import PlaybackSample

USER_AGENT = "WebMusicPresence/1.0"


def update_body(sample: PlaybackSample) -> dict:
    # Bridge servers in the wild read either "artist" or "artistName".
    return {
        "isPlaying": sample.is_playing,
        "title": sample.title,
        "artist": sample.artist,
        "artistName": sample.artist,
        "currentTime": int(sample.position_seconds),
        "duration": int(sample.duration_seconds),
    }


def _error_text(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return (response.text or "").strip()[:200] or f"HTTP {response.status_code}"
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return f"HTTP {response.status_code}"


class HttpBridgeSink:
    """
    Presence sink that forwards to a local bridge server.

    The bridge owns the Discord connection and exposes:
        GET  /ping   - health check
        POST /update - set presence from a full sample
        POST /clear  - clear presence
    """

    def __init__(
        self,
        base_url: str = BRIDGE_URL,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http = session or requests.Session()
        self._http.headers.setdefault("User-Agent", USER_AGENT)

    async def probe(self) -> SinkResult:
        return await asyncio.to_thread(self._request, "GET", "/ping", None, False)

    async def publish(self, sample: PlaybackSample) -> SinkResult:
        return await asyncio.to_thread(self._request, "POST", "/update", update_body(sample), True)

    async def clear(self) -> SinkResult:
        return await asyncio.to_thread(self._request, "POST", "/clear", {}, True)

    def close(self) -> None:
        self._http.close()

    def _request(self, method: str, path: str, body: Optional[dict], reached_is_rejection: bool) -> SinkResult:
        url = f"{self.base_url}{path}"
        try:
            r = self._http.request(method, url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            return SinkResult.failure(SinkUnreachable(f"{method} {path}: {e}"))

        if not r.ok:
            message = f"{method} {path} -> {r.status_code}: {_error_text(r)}"
            # A reachable bridge that refuses an update (e.g. 503 while Discord
            # is down) is a logical failure; a failing /ping is not a health pass.
            if reached_is_rejection:
                return SinkResult.failure(SinkRejected(message))
            return SinkResult.failure(SinkUnreachable(message))

        if reached_is_rejection:
            try:
                data = r.json()
            except ValueError:
                data = None
            if isinstance(data, dict) and data.get("success") is False:
                return SinkResult.failure(SinkRejected(f"{method} {path}: {_error_text(r)}"))

        debug_log(f"{method} {path} -> {r.status_code}")
        return SinkResult.success()
