# relay/errors.py
from dataclasses import dataclass
from typing import Optional


class RelayError(Exception):
    pass


class SourceUnavailable(RelayError):
    """The web player produced no usable data this tick."""


class SinkError(RelayError):
    pass


class SinkUnreachable(SinkError):
    """The presence backend could not be reached at all."""


class SinkRejected(SinkError):
    """The backend answered but refused the request (e.g. Discord not connected yet)."""


class RelayStartupError(RelayError):
    pass


class ConfigError(RelayError):
    pass


@dataclass(frozen=True)
class SinkResult:
    ok: bool
    error: Optional[SinkError] = None

    @classmethod
    def success(cls) -> "SinkResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: SinkError) -> "SinkResult":
        return cls(ok=False, error=error)

    def describe(self) -> str:
        if self.ok:
            return "ok"
        if self.error is None:
            return "failed"
        return f"{type(self.error).__name__}: {self.error}"
