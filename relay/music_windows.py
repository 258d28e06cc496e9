# relay/music_windows.py
import time
from typing import Optional

from .debug import debug_log
from .models import PlaybackSample

try:
    from winsdk.windows.media.control import (
        GlobalSystemMediaTransportControlsSessionManager as MediaManager,
        GlobalSystemMediaTransportControlsSessionPlaybackStatus as PlaybackStatus,
    )
except Exception:  # winsdk not installed or not on Windows
    MediaManager = None
    PlaybackStatus = None

# Browsers publish the page's navigator.mediaSession through these app ids.
BROWSER_APP_IDS = ("chrome", "msedge", "firefox", "brave", "opera", "arc")

_last_session_log = 0.0


def _timespan_seconds(value) -> float:
    if value is None:
        return 0.0
    try:
        return float(value.total_seconds())
    except Exception:
        pass
    try:
        # Some WinRT bindings expose a "duration" in 100ns ticks.
        return float(value.duration) / 10_000_000.0
    except Exception:
        return 0.0


def _app_id(session) -> str:
    try:
        return (session.source_app_user_model_id or "").lower()
    except Exception:
        return ""


def _is_browser_session(session) -> bool:
    app_id = _app_id(session)
    return any(name in app_id for name in BROWSER_APP_IDS)


def _status(session):
    try:
        return session.get_playback_info().playback_status
    except Exception:
        return None


def _pick_session(manager):
    try:
        current = manager.get_current_session()
    except Exception:
        current = None
    if current and _is_browser_session(current) and _status(current) == PlaybackStatus.PLAYING:
        return current

    try:
        sessions = list(manager.get_sessions())
    except Exception:
        sessions = []

    browsers = [s for s in sessions if _is_browser_session(s)]
    for candidate in browsers:
        if _status(candidate) == PlaybackStatus.PLAYING:
            return candidate

    if browsers:
        return browsers[0]

    global _last_session_log
    now = time.time()
    if sessions and now - _last_session_log > 5:
        _last_session_log = now
        names = [f"app_id='{_app_id(s)}' status='{_status(s)}'" for s in sessions]
        debug_log("No browser media session. Sessions: " + " | ".join(names))
    return None


class WindowsMediaSessionSource:
    """Reads the web player through the browser's system media session."""

    async def sample(self) -> Optional[PlaybackSample]:
        if MediaManager is None:
            return None

        manager = await MediaManager.request_async()
        session = _pick_session(manager)
        if session is None:
            return None

        status = _status(session)
        if status is None or status == PlaybackStatus.STOPPED:
            return None

        info = await session.try_get_media_properties_async()

        try:
            timeline = session.get_timeline_properties()
            duration = _timespan_seconds(timeline.end_time)
            position = _timespan_seconds(timeline.position)
        except Exception:
            duration = 0.0
            position = 0.0

        return PlaybackSample.from_page(
            is_playing=status == PlaybackStatus.PLAYING,
            title=getattr(info, "title", "") or "",
            artist=getattr(info, "artist", "") or "",
            position=position,
            duration=duration,
        )
