# relay/web_player.py
import json
import time
from typing import Optional

from .errors import SourceUnavailable
from .models import PlaybackSample

WEB_PLAYER_HOST = "music.apple.com"

# Evaluated inside the web player tab. Media Session metadata first, then the
# LCD fragments of the player bar; timing comes from the first audible element.
PAGE_PROBE_JS = r"""
(() => {
  let title = null, artist = null, isPlaying = false, currentTime = 0, duration = 0;
  const meta = navigator.mediaSession && navigator.mediaSession.metadata;
  if (meta) {
    title = meta.title || null;
    artist = meta.artist || null;
  }
  if (!title || !artist) {
    const fragments = document.querySelectorAll('.lcd-meta-line__fragment');
    if (fragments.length >= 2) {
      title = fragments[0].textContent.trim();
      artist = fragments[1].textContent.trim();
    } else if (fragments.length === 1) {
      title = fragments[0].textContent.trim();
    }
  }
  const media = [...document.querySelectorAll('audio, video')]
    .find((m) => !m.paused && m.readyState > 2);
  if (media) {
    isPlaying = true;
    currentTime = media.currentTime || 0;
    duration = media.duration || 0;
  }
  return JSON.stringify({ isPlaying, title, artist, currentTime, duration });
})()
"""


def parse_page_payload(raw: Optional[str], observed_at: Optional[float] = None) -> PlaybackSample:
    raw = (raw or "").strip()
    if not raw or raw == "missing value":
        raise SourceUnavailable("web player returned nothing")

    try:
        data = json.loads(raw)
    except ValueError as e:
        raise SourceUnavailable(f"web player returned invalid JSON: {e}") from None

    if not isinstance(data, dict):
        raise SourceUnavailable(f"web player returned {type(data).__name__}, expected an object")

    return PlaybackSample.from_page(
        is_playing=data.get("isPlaying"),
        title=data.get("title"),
        artist=data.get("artist"),
        position=data.get("currentTime"),
        duration=data.get("duration"),
        observed_at=time.time() if observed_at is None else observed_at,
    )
