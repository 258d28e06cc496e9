import asyncio

from pypresence.types import ActivityType

from conftest import make_sample
from relay.discord_rpc import DiscordPresenceSink, build_activity
from relay.errors import SinkRejected, SinkUnreachable


class FakePresence:
    instances = []

    def __init__(self, client_id, connect_error=None, update_error=None):
        self.client_id = client_id
        self.connect_error = connect_error
        self.update_error = update_error
        self.user = {"username": "listener", "discriminator": "0"}
        self.updates = []
        self.cleared = 0
        self.closed = False
        FakePresence.instances.append(self)

    async def connect(self):
        if self.connect_error:
            raise self.connect_error

    async def update(self, **payload):
        if self.update_error:
            raise self.update_error
        self.updates.append(payload)

    async def clear(self):
        self.cleared += 1

    def close(self):
        self.closed = True


def factory(**errors):
    FakePresence.instances = []
    return lambda client_id: FakePresence(client_id, **errors)


def test_activity_while_playing():
    payload = build_activity(make_sample(position=10, duration=200), now=1000)

    assert payload["details"] == "Song A"
    assert payload["state"] == "Artist X"
    assert payload["large_image"] == "applemusic"
    assert payload["small_image"] == "play"
    assert payload["small_text"] == "Playing"
    assert payload["activity_type"] == ActivityType.LISTENING
    assert payload["start"] == 990
    assert payload["end"] == 1190


def test_activity_without_duration_has_no_timestamps():
    payload = build_activity(make_sample(position=10, duration=0), now=1000)

    assert "start" not in payload
    assert "end" not in payload


def test_paused_activity_has_no_progress_bar():
    payload = build_activity(make_sample(playing=False), now=1000)

    assert payload["small_image"] == "pause"
    assert payload["small_text"] == "Paused"
    assert "start" not in payload


def test_long_text_is_cut_to_discord_limit():
    payload = build_activity(make_sample(title="x" * 300, artist="y" * 129), now=0)

    assert len(payload["details"]) == 128
    assert len(payload["state"]) == 128


def test_publish_before_connect_is_rejected():
    sink = DiscordPresenceSink("123", presence_factory=factory())

    result = asyncio.run(sink.publish(make_sample()))

    assert not result.ok
    assert isinstance(result.error, SinkRejected)


def test_probe_connects_once():
    sink = DiscordPresenceSink("123", presence_factory=factory())

    async def scenario():
        return [await sink.probe(), await sink.probe()]

    results = asyncio.run(scenario())

    assert all(r.ok for r in results)
    assert sink.connected
    assert len(FakePresence.instances) == 1
    assert FakePresence.instances[0].client_id == "123"


def test_probe_without_discord_is_unreachable():
    sink = DiscordPresenceSink("123", presence_factory=factory(connect_error=ConnectionRefusedError("no ipc")))

    result = asyncio.run(sink.probe())

    assert not result.ok
    assert isinstance(result.error, SinkUnreachable)
    assert not sink.connected
    assert FakePresence.instances[0].closed


def test_publish_sends_full_activity():
    sink = DiscordPresenceSink("123", clock=lambda: 1000, presence_factory=factory())

    async def scenario():
        await sink.probe()
        return await sink.publish(make_sample(position=10, duration=200))

    result = asyncio.run(scenario())

    assert result.ok
    (payload,) = FakePresence.instances[0].updates
    assert payload["start"] == 990
    assert payload["end"] == 1190


def test_broken_pipe_drops_connection():
    sink = DiscordPresenceSink("123", presence_factory=factory(update_error=BrokenPipeError("closed")))

    async def scenario():
        await sink.probe()
        first = await sink.publish(make_sample())
        second = await sink.publish(make_sample())
        return first, second

    first, second = asyncio.run(scenario())

    assert isinstance(first.error, SinkUnreachable)
    assert isinstance(second.error, SinkRejected)
    assert not sink.connected


def test_clear_and_close():
    sink = DiscordPresenceSink("123", presence_factory=factory())

    async def scenario():
        await sink.probe()
        return await sink.clear()

    assert asyncio.run(scenario()).ok
    presence = FakePresence.instances[0]
    assert presence.cleared == 1

    sink.close()

    assert presence.closed
    assert not sink.connected


def test_garbled_reply_forces_reconnect():
    sink = DiscordPresenceSink("123", presence_factory=factory(update_error=ValueError("Expecting value")))

    async def scenario():
        await sink.probe()
        failed = await sink.publish(make_sample())
        reprobe = await sink.probe()
        return failed, reprobe

    failed, reprobe = asyncio.run(scenario())

    assert isinstance(failed.error, SinkUnreachable)
    assert "Expecting value" in str(failed.error)
    assert reprobe.ok
    assert len(FakePresence.instances) == 2
    assert FakePresence.instances[0].closed


def test_unexpected_connect_error_is_unreachable():
    sink = DiscordPresenceSink("123", presence_factory=factory(connect_error=KeyError("data")))

    result = asyncio.run(sink.probe())

    assert isinstance(result.error, SinkUnreachable)
    assert not sink.connected
