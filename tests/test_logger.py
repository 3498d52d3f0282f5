"""
Structured logger tests: field chunking, sink routing and failure suppression.
"""

import errno
import logging
import socket
from types import SimpleNamespace

import aiohttp
import discord
import pytest

from constants import BLANK_FIELD_NAME
from core.logger import BotLogger, ChannelSink, WebhookSink, chunk_field


def _connect_failure(os_error):
    key = SimpleNamespace(host="discord.com", port=443, ssl=True)
    return aiohttp.ClientConnectorError(key, os_error)


# what discord.py and aiohttp actually raise when the peer drops or stalls
TRANSPORT_RESETS = [
    ConnectionResetError(),
    TimeoutError(),
    aiohttp.ClientOSError(errno.ECONNRESET, "Connection reset by peer"),
    aiohttp.ClientOSError(errno.ETIMEDOUT, "Connection timed out"),
    _connect_failure(ConnectionResetError(errno.ECONNRESET, "Connection reset by peer")),
]


class RecordingSink:
    def __init__(self):
        self.delivered: list[tuple[discord.Embed, str]] = []

    async def deliver(self, embed, level):
        self.delivered.append((embed, level))


class ExplodingSink:
    async def deliver(self, embed, level):
        raise RuntimeError("sink down")


class FakeChannel:
    def __init__(self, exc=None):
        self.exc = exc
        self.sent = []

    async def send(self, *, embed):
        if self.exc:
            raise self.exc
        self.sent.append(embed)


class FakeClient:
    def __init__(self, channels):
        self.channels = channels

    def get_channel(self, channel_id):
        return self.channels.get(channel_id)


class FakeWebhook:
    def __init__(self, exc=None):
        self.exc = exc
        self.sent = []

    async def send(self, *, embed):
        if self.exc:
            raise self.exc
        self.sent.append(embed)


class TestChunkField:
    def test_long_value_splits_into_labelled_chunks(self):
        chunks = chunk_field("Payload", "x" * 2500)

        assert [len(v) for _, v in chunks] == [1024, 1024, 452]
        assert [n for n, _ in chunks] == ["Payload", BLANK_FIELD_NAME, BLANK_FIELD_NAME]
        assert "".join(v for _, v in chunks) == "x" * 2500

    def test_short_value_is_untouched(self):
        assert chunk_field("User", "Notch") == [("User", "Notch")]

    def test_exact_limit_is_one_chunk(self):
        assert len(chunk_field("k", "y" * 1024)) == 1

    def test_structured_value_rendered_as_json(self):
        (name, value), = chunk_field("Data", {"id": 1})
        assert value.startswith("```json\n")
        assert '"id": 1' in value


class TestBotLogger:
    @pytest.mark.asyncio
    async def test_log_error_without_sinks_is_quiet(self, caplog):
        logger = BotLogger()
        try:
            raise ValueError("bad thing")
        except ValueError as e:
            await logger.log_error(e, "Test", {"k": "v"})
        assert "bad thing" in caplog.text

    @pytest.mark.asyncio
    async def test_log_error_renders_fields_and_stack(self):
        sink = RecordingSink()
        logger = BotLogger([sink])
        try:
            raise RuntimeError("kaput")
        except RuntimeError as e:
            await logger.log_error(e, "MojangAPI", {"username": "Notch", "blob": "z" * 2000})

        (embed, level), = sink.delivered
        assert level == "error"
        assert embed.title == "❌ Error - MojangAPI"
        assert "RuntimeError" in embed.description
        names = [f.name for f in embed.fields]
        assert names[:3] == ["username", "blob", BLANK_FIELD_NAME]
        assert names[-1] == "Stack Trace"
        assert all(len(f.value) <= 1024 for f in embed.fields)

    @pytest.mark.asyncio
    async def test_failing_sink_never_raises(self, caplog):
        good = RecordingSink()
        logger = BotLogger([ExplodingSink(), good])

        await logger.log_error(RuntimeError("x"), "Test")
        await logger.log_info("hello")

        assert len(good.delivered) == 2
        assert "sink down" in caplog.text

    @pytest.mark.asyncio
    async def test_debug_is_gated(self):
        sink = RecordingSink()
        await BotLogger([sink]).log_debug("quiet")
        assert sink.delivered == []

        await BotLogger([sink], debug=True).log_debug("loud")
        assert sink.delivered[0][1] == "debug"

    @pytest.mark.asyncio
    async def test_wrappers_tag_context(self):
        sink = RecordingSink()
        logger = BotLogger([sink])
        ctx = SimpleNamespace(author=SimpleNamespace(id=1), guild=SimpleNamespace(id=2),
                              channel=SimpleNamespace(id=3))

        await logger.log_command_error(RuntimeError("x"), "mcprofile", ctx)
        await logger.log_database_error(RuntimeError("y"), "insert", {"table": "t"})
        await logger.log_ticket("opened", SimpleNamespace(id=9), {"Ticket": "#1"})

        titles = [e.title for e, _ in sink.delivered]
        assert titles == ["❌ Error - Command: mcprofile", "❌ Error - Database", "ℹ️ Info - Ticket System"]
        fields = {f.name: f.value for f in sink.delivered[0][0].fields}
        assert fields["userId"] == "```json\n1\n```"
        assert {f.name for f in sink.delivered[1][0].fields} >= {"operation", "table"}

    @pytest.mark.asyncio
    async def test_security_level_and_severity_field(self):
        sink = RecordingSink()
        await BotLogger([sink]).log_security("Raid", "many joins", severity="high")
        embed, level = sink.delivered[0]
        assert level == "security"
        assert embed.title.startswith("🟠")
        assert embed.fields[-1].value == "HIGH"

    def test_from_settings_composes_sinks(self):
        settings = SimpleNamespace(LOG_CHANNEL_ID=5, ERROR_WEBHOOK_URL="https://discord.com/api/webhooks/1/abc",
                                   DEBUG=True)
        logger = BotLogger.from_settings(settings)
        assert [type(s) for s in logger.sinks] == [ChannelSink, WebhookSink]
        assert logger.debug is True

        settings.ERROR_WEBHOOK_URL = None
        assert [type(s) for s in BotLogger.from_settings(settings).sinks] == [ChannelSink]


class TestChannelSink:
    @pytest.mark.asyncio
    async def test_sends_every_level(self):
        channel = FakeChannel()
        sink = ChannelSink(FakeClient({10: channel}), channel_id=10)
        await sink.deliver(discord.Embed(title="a"), "info")
        await sink.deliver(discord.Embed(title="b"), "error")
        assert [e.title for e in channel.sent] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_channel_id_read_from_env_at_dispatch(self, monkeypatch):
        monkeypatch.delenv("LOG_CHANNEL_ID", raising=False)
        channel = FakeChannel()
        sink = ChannelSink(FakeClient({77: channel}))
        await sink.deliver(discord.Embed(title="before"), "info")
        monkeypatch.setenv("LOG_CHANNEL_ID", "77")
        await sink.deliver(discord.Embed(title="after"), "info")
        assert [e.title for e in channel.sent] == ["after"]

    @pytest.mark.asyncio
    async def test_no_client_is_noop(self):
        await ChannelSink(None, channel_id=1).deliver(discord.Embed(), "error")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("exc", TRANSPORT_RESETS)
    async def test_transient_errors_are_silent(self, caplog, exc):
        sink = ChannelSink(FakeClient({1: FakeChannel(exc)}), channel_id=1)
        with caplog.at_level(logging.ERROR, logger="capebot.logger"):
            await sink.deliver(discord.Embed(), "info")
        assert caplog.records == []

    @pytest.mark.asyncio
    async def test_other_errors_go_to_console(self, caplog):
        sink = ChannelSink(FakeClient({1: FakeChannel(RuntimeError("forbidden"))}), channel_id=1)
        await sink.deliver(discord.Embed(), "info")
        assert "Channel error: forbidden" in caplog.text


class TestWebhookSink:
    @pytest.mark.asyncio
    async def test_only_error_and_security(self):
        hook = FakeWebhook()
        sink = WebhookSink("https://discord.com/api/webhooks/1/abc", webhook=hook)
        for level in ("info", "success", "warn", "debug", "error", "security"):
            await sink.deliver(discord.Embed(title=level), level)
        assert [e.title for e in hook.sent] == ["error", "security"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("exc", TRANSPORT_RESETS + [
        socket.gaierror(-2, "Name or service not known"),
        _connect_failure(socket.gaierror(-2, "Name or service not known")),
    ])
    async def test_transient_errors_are_silent(self, caplog, exc):
        sink = WebhookSink("https://discord.com/api/webhooks/1/abc", webhook=FakeWebhook(exc))
        with caplog.at_level(logging.ERROR, logger="capebot.logger"):
            await sink.deliver(discord.Embed(), "error")
        assert caplog.records == []

    @pytest.mark.asyncio
    async def test_other_errors_go_to_console(self, caplog):
        sink = WebhookSink("https://discord.com/api/webhooks/1/abc", webhook=FakeWebhook(RuntimeError("401")))
        await sink.deliver(discord.Embed(), "security")
        assert "Webhook error: 401" in caplog.text
