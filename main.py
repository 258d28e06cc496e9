#main.py
import asyncio
import sys

from relay.config import RelayConfig
from relay.debug import status
from relay.errors import ConfigError
from relay.loop import RelayLoop


def build_source():
    if sys.platform == "win32":
        try:
            from relay.music_windows import MediaManager, WindowsMediaSessionSource
        except Exception:
            return None
        return WindowsMediaSessionSource() if MediaManager is not None else None
    if sys.platform == "darwin":
        from relay.music_macos import MacWebPlayerSource
        return MacWebPlayerSource()
    return None


def build_sink(config: RelayConfig):
    if config.sink == "http":
        from relay.http_sink import HttpBridgeSink
        return HttpBridgeSink(config.bridge_url, timeout=config.request_timeout)

    from relay.discord_rpc import DiscordPresenceSink
    return DiscordPresenceSink(config.client_id, connect_timeout=config.request_timeout)


async def run(config: RelayConfig, source, sink) -> None:
    relay = RelayLoop(source, sink, config)
    status("Music", f"Watching the web player every {config.poll_seconds:g}s… (Ctrl+C to stop)")
    try:
        await relay.run()
    finally:
        await relay.stop()


def main():
    try:
        config = RelayConfig.from_env()
    except ConfigError as e:
        status("Config", str(e))
        return 2

    source = build_source()
    if source is None:
        status("Music", "Unsupported OS or missing Windows dependency (winsdk).")
        return 1

    sink = build_sink(config)
    try:
        asyncio.run(run(config, source, sink))
    except KeyboardInterrupt:
        status("Music", "Stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
