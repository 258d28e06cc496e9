# relay/config.py
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigError

# Discord application used for the presence card
APP_CLIENT_ID = "1373525022819225601"

POLL_SECONDS = 5.0
DEDUP_TOLERANCE_SECONDS = 2.0
FAILURE_THRESHOLD = 1
SHUTDOWN_CLEAR_TIMEOUT = 1.0
BRIDGE_URL = "http://127.0.0.1:3000"
REQUEST_TIMEOUT = 2.0

SINKS = ("discord", "http")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class RelayConfig:
    poll_seconds: float = POLL_SECONDS
    dedup_tolerance_seconds: float = DEDUP_TOLERANCE_SECONDS
    failure_threshold: int = FAILURE_THRESHOLD
    clear_on_pause: bool = False
    shutdown_clear_timeout: float = SHUTDOWN_CLEAR_TIMEOUT
    sink: str = "discord"
    client_id: str = APP_CLIENT_ID
    bridge_url: str = BRIDGE_URL
    request_timeout: float = REQUEST_TIMEOUT

    def __post_init__(self):
        if self.poll_seconds <= 0:
            raise ConfigError("poll_seconds must be positive")
        if self.dedup_tolerance_seconds < 0:
            raise ConfigError("dedup_tolerance_seconds must not be negative")
        if self.failure_threshold < 1:
            raise ConfigError("failure_threshold must be at least 1")
        if self.shutdown_clear_timeout <= 0:
            raise ConfigError("shutdown_clear_timeout must be positive")
        if not 0 < self.request_timeout <= 2.0:
            raise ConfigError("request_timeout must be within (0, 2] seconds")
        if self.sink not in SINKS:
            raise ConfigError(f"sink must be one of {', '.join(SINKS)}, got '{self.sink}'")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "RelayConfig":
        env = os.environ if env is None else env

        def raw(name: str) -> Optional[str]:
            value = env.get(name)
            if value is None or not value.strip():
                return None
            return value.strip()

        def number(name: str, default: float, kind=float):
            value = raw(name)
            if value is None:
                return default
            try:
                return kind(value)
            except ValueError:
                raise ConfigError(f"{name}: expected a number, got '{value}'") from None

        def flag(name: str, default: bool) -> bool:
            value = raw(name)
            if value is None:
                return default
            if value.lower() in _TRUE:
                return True
            if value.lower() in _FALSE:
                return False
            raise ConfigError(f"{name}: expected a boolean, got '{value}'")

        return cls(
            poll_seconds=number("WMP_POLL_SECONDS", POLL_SECONDS),
            dedup_tolerance_seconds=number("WMP_DEDUP_TOLERANCE", DEDUP_TOLERANCE_SECONDS),
            failure_threshold=number("WMP_FAILURE_THRESHOLD", FAILURE_THRESHOLD, int),
            clear_on_pause=flag("WMP_CLEAR_ON_PAUSE", False),
            shutdown_clear_timeout=number("WMP_SHUTDOWN_CLEAR_TIMEOUT", SHUTDOWN_CLEAR_TIMEOUT),
            sink=(raw("WMP_SINK") or "discord").lower(),
            client_id=raw("WMP_CLIENT_ID") or APP_CLIENT_ID,
            bridge_url=(raw("WMP_BRIDGE_URL") or BRIDGE_URL).rstrip("/"),
            request_timeout=number("WMP_REQUEST_TIMEOUT", REQUEST_TIMEOUT),
        )
