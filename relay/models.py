# relay/models.py
import math
import time
from dataclasses import dataclass
from typing import Optional

UNKNOWN_SONG = "Unknown Song"
UNKNOWN_ARTIST = "Unknown Artist"


def _whole_seconds(value) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return float(math.floor(value))


@dataclass(frozen=True)
class PlaybackSample:
    is_playing: bool
    title: str
    artist: str
    position_seconds: float
    duration_seconds: float
    observed_at: float

    def __post_init__(self):
        if not self.title or not self.artist:
            raise ValueError("title and artist must not be empty")
        if self.duration_seconds > 0 and self.position_seconds > self.duration_seconds:
            raise ValueError(
                f"position {self.position_seconds}s is past duration {self.duration_seconds}s"
            )

    @classmethod
    def from_page(
        cls,
        is_playing,
        title,
        artist,
        position,
        duration,
        observed_at: Optional[float] = None,
    ) -> "PlaybackSample":
        """
        Build a sample from loosely typed page values.

        Blank text becomes the "Unknown ..." sentinels, times are floored to
        whole seconds, and the position is clamped to a known duration.
        """
        title = (title or "").strip() or UNKNOWN_SONG
        artist = (artist or "").strip() or UNKNOWN_ARTIST
        position = _whole_seconds(position)
        duration = _whole_seconds(duration)
        if duration > 0:
            position = min(position, duration)

        return cls(
            is_playing=bool(is_playing),
            title=title,
            artist=artist,
            position_seconds=position,
            duration_seconds=duration,
            observed_at=time.time() if observed_at is None else float(observed_at),
        )

    @property
    def start_offset(self) -> float:
        # Wall-clock moment the track would have started, given the position.
        return self.observed_at - self.position_seconds

    def is_equivalent(self, other: Optional["PlaybackSample"], tolerance: float = 2.0) -> bool:
        if other is None:
            return False
        if (self.title, self.artist, self.is_playing) != (other.title, other.artist, other.is_playing):
            return False
        return abs(self.start_offset - other.start_offset) < tolerance


@dataclass
class RelayState:
    last_dispatched: Optional[PlaybackSample] = None
    sink_healthy: bool = False
    consecutive_failures: int = 0
