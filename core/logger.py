# core/logger.py
"""
Bot-side event logger.

Every log_* call writes to the console through the stdlib ``logging`` module and
then renders a Discord embed that is handed to each configured remote sink:

- ChannelSink posts to a log channel for every level.
- WebhookSink posts to an error webhook, but only for ``error`` and ``security``.

The logger is a leaf: nothing in here is allowed to raise back into the caller.
"""
import asyncio, errno, json, logging, os, socket, traceback
from typing import Any, Iterable, Mapping

import aiohttp
import discord

from constants import (
    BLANK_FIELD_NAME, EMBED_FIELD_LIMIT, LEVEL_URGENCY, LOG_COLORS,
    SEVERITY_EMOJI, URGENCY_COLORS,
)

log = logging.getLogger("capebot.logger")

EMBED_MAX_FIELDS = 25
STACK_LIMIT = 1000

# connection-reset / timeout; the webhook additionally ignores DNS lookups failing
_TRANSIENT_ERRORS = (ConnectionResetError, TimeoutError, asyncio.TimeoutError)
_TRANSIENT_ERRNOS = frozenset({errno.ECONNRESET, errno.ETIMEDOUT})


def _is_transient(err: BaseException) -> bool:
    # aiohttp surfaces resets as ClientOSError(errno=ECONNRESET), or wraps them in ClientConnectorError
    if isinstance(err, _TRANSIENT_ERRORS) or getattr(err, "errno", None) in _TRANSIENT_ERRNOS:
        return True
    if isinstance(err, aiohttp.ClientConnectorError):
        inner = err.os_error
        return isinstance(inner, _TRANSIENT_ERRORS) or getattr(inner, "errno", None) in _TRANSIENT_ERRNOS
    return False


def _is_dns_failure(err: BaseException) -> bool:
    if isinstance(err, socket.gaierror):
        return True
    return isinstance(err, aiohttp.ClientConnectorError) and isinstance(err.os_error, socket.gaierror)


def render_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return "```json\n" + json.dumps(value, indent=2, default=str, ensure_ascii=False) + "\n```"


def chunk_field(name: str, value: Any, limit: int = EMBED_FIELD_LIMIT) -> list[tuple[str, str]]:
    """Split one field into (name, chunk) pairs no longer than ``limit``.

    Only the first chunk keeps ``name``; the rest get a zero-width label so the
    pieces read in order without repeating the heading.
    """
    text = render_value(value) or "N/A"
    if len(text) <= limit:
        return [(name, text)]
    return [
        (name if i == 0 else BLANK_FIELD_NAME, text[start:start + limit])
        for i, start in enumerate(range(0, len(text), limit))
    ]


# ---------- sinks ----------

class ChannelSink:
    """Sends every event to a text channel of the connected client."""

    def __init__(self, client: discord.Client | None = None, channel_id: int | None = None):
        self.client = client
        self.channel_id = channel_id

    def _resolve_channel_id(self) -> int | None:
        if self.channel_id:
            return self.channel_id
        raw = os.getenv("LOG_CHANNEL_ID", "").strip()
        return int(raw) if raw.isdigit() else None

    async def deliver(self, embed: discord.Embed, level: str) -> None:
        if self.client is None:
            return
        channel_id = self._resolve_channel_id()
        if not channel_id:
            return
        try:
            channel = self.client.get_channel(channel_id)
            if channel is not None and hasattr(channel, "send"):
                await channel.send(embed=embed)
        except Exception as e:
            if _is_transient(e):
                return
            log.error("[Logger] Channel error: %s", e)


class WebhookSink:
    """Sends error and security events to a Discord webhook."""

    levels = frozenset({"error", "security"})

    def __init__(self, url: str, session: aiohttp.ClientSession | None = None,
                 webhook: discord.Webhook | None = None):
        self.url = url
        self.session = session
        self._webhook = webhook

    def _get_webhook(self) -> discord.Webhook:
        if self._webhook is None:
            self._webhook = discord.Webhook.from_url(self.url, session=self.session)
        return self._webhook

    async def deliver(self, embed: discord.Embed, level: str) -> None:
        if level not in self.levels:
            return
        try:
            await self._get_webhook().send(embed=embed)
        except Exception as e:
            if _is_transient(e) or _is_dns_failure(e):
                return
            log.error("[Logger] Webhook error: %s", e)


# ---------- logger ----------

class BotLogger:
    def __init__(self, sinks: Iterable = (), debug: bool = False):
        self.sinks = list(sinks)
        self.debug = debug

    @classmethod
    def from_settings(cls, settings, session: aiohttp.ClientSession | None = None) -> "BotLogger":
        sinks: list = [ChannelSink(channel_id=settings.LOG_CHANNEL_ID)]
        if settings.ERROR_WEBHOOK_URL:
            sinks.append(WebhookSink(settings.ERROR_WEBHOOK_URL, session=session))
        return cls(sinks, debug=settings.DEBUG)

    def set_client(self, client: discord.Client) -> None:
        for sink in self.sinks:
            if isinstance(sink, ChannelSink):
                sink.client = client

    # ---------- rendering ----------
    def build_embed(self, level: str, title: str, description: str = "",
                    urgency: str | None = None) -> discord.Embed:
        color = LOG_COLORS.get(level)
        if color is None:
            color = URGENCY_COLORS.get(urgency or LEVEL_URGENCY.get(level, "low"), URGENCY_COLORS["low"])
        embed = discord.Embed(title=title, color=color, timestamp=discord.utils.utcnow())
        if description:
            embed.description = description
        return embed

    def add_fields(self, embed: discord.Embed, fields: Mapping[str, Any] | None) -> None:
        for key, value in (fields or {}).items():
            if value is None:
                continue
            for name, chunk in chunk_field(str(key), value):
                if len(embed.fields) >= EMBED_MAX_FIELDS:
                    return
                embed.add_field(name=name, value=chunk, inline=False)

    async def dispatch(self, embed: discord.Embed, level: str = "info") -> None:
        for sink in self.sinks:
            try:
                await sink.deliver(embed, level)
            except Exception:
                log.exception("[Logger] Sink %s failed", type(sink).__name__)

    async def _emit(self, level: str, title: str, fields: Mapping[str, Any] | None,
                    urgency: str | None = None, description: str = "") -> None:
        if not self.sinks:
            return
        try:
            embed = self.build_embed(level, title, description, urgency)
            self.add_fields(embed, fields)
            await self.dispatch(embed, level)
        except Exception:
            log.exception("[Logger] Failed to render %s event", level)

    # ---------- public API ----------
    async def log_error(self, error: BaseException | str | None, context: str = "",
                        fields: Mapping[str, Any] | None = None, urgency: str = "critical") -> None:
        name = type(error).__name__ if isinstance(error, BaseException) else "Error"
        message = str(error) if error is not None else ""
        message = message or "Unknown error"

        if isinstance(error, BaseException) and error.__traceback__ is not None:
            log.error("[ERROR] [%s] %s: %s", context, name, message, exc_info=error)
        else:
            log.error("[ERROR] [%s] %s: %s", context, name, message)
        if fields and self.debug:
            log.debug("Additional info: %s", fields)

        if not self.sinks:
            return
        try:
            title = f"❌ Error{' - ' + context if context else ''}"
            embed = self.build_embed("error", title, f"**{name}**\n```\n{message[:3900]}\n```", urgency)
            self.add_fields(embed, fields)
            if isinstance(error, BaseException) and error.__traceback__ is not None:
                stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
                self.add_fields(embed, {"Stack Trace": f"```\n{stack[-STACK_LIMIT:]}\n```"})
            await self.dispatch(embed, "error")
        except Exception:
            log.exception("[Logger] Failed to deliver error event")

    async def log_info(self, subject: str, fields: Mapping[str, Any] | None = None,
                       context: str = "", urgency: str = "low") -> None:
        log.info("[INFO] %s %s", subject, fields or "")
        await self._emit("info", f"ℹ️ Info{' - ' + context if context else ''}",
                         {"Subject": subject, **(fields or {})}, urgency)

    async def log_success(self, subject: str, fields: Mapping[str, Any] | None = None,
                          context: str = "", urgency: str = "low") -> None:
        log.info("[SUCCESS] %s %s", subject, fields or "")
        await self._emit("success", f"✅ Success{' - ' + context if context else ''}",
                         {"Subject": subject, **(fields or {})}, urgency)

    async def log_warn(self, subject: str, fields: Mapping[str, Any] | None = None,
                       context: str = "", urgency: str = "medium") -> None:
        log.warning("[WARN] %s %s", subject, fields or "")
        await self._emit("warn", f"⚠️ Warning{' - ' + context if context else ''}",
                         {"Subject": subject, **(fields or {})}, urgency)

    async def log_debug(self, subject: str, fields: Mapping[str, Any] | None = None,
                        context: str = "") -> None:
        if not self.debug:
            return
        log.debug("[DEBUG] %s %s", subject, fields or "")
        await self._emit("debug", f"🐞 Debug{' - ' + context if context else ''}",
                         {"Subject": subject, **(fields or {})})

    async def log_security(self, event_type: str, subject: str,
                           fields: Mapping[str, Any] | None = None, severity: str = "medium") -> None:
        severity = severity if severity in SEVERITY_EMOJI else "medium"
        log.warning("[SECURITY] [%s] %s: %s %s", severity.upper(), event_type, subject, fields or "")
        await self._emit(
            "security",
            f"{SEVERITY_EMOJI[severity]} Security Event - {event_type}",
            {"Subject": subject, **(fields or {}), "Severity": severity.upper()},
            urgency=severity,
        )

    async def log_moderation(self, action: str, moderator, target,
                             fields: Mapping[str, Any] | None = None) -> None:
        log.info("[MODERATION] %s by %s on %s", action, moderator, target)
        await self._emit("moderation", f"⚖️ Moderation - {action}", {
            "Moderator": f"{moderator} ({getattr(moderator, 'id', 'N/A')})",
            "Target": f"{target} ({getattr(target, 'id', 'N/A')})",
            **(fields or {}),
        })

    # context-tagging adapters
    async def log_database_error(self, error: BaseException, operation: str,
                                 data: Mapping[str, Any] | None = None) -> None:
        await self.log_error(error, "Database", {"operation": operation, **(data or {})})

    async def log_command_error(self, error: BaseException, command_name: str, ctx=None) -> None:
        await self.log_error(error, f"Command: {command_name}", {
            "userId": getattr(getattr(ctx, "author", None), "id", None),
            "guildId": getattr(getattr(ctx, "guild", None), "id", None),
            "channelId": getattr(getattr(ctx, "channel", None), "id", None),
        })

    async def log_command(self, ctx, extra: Mapping[str, Any] | None = None) -> None:
        command_type = "Slash Command" if getattr(ctx, "interaction", None) else "Prefix Command"
        channel, guild = getattr(ctx, "channel", None), getattr(ctx, "guild", None)
        await self.log_info("Command Executed", {
            "User": f"{ctx.author} ({ctx.author.id})",
            "Command": getattr(ctx.command, "qualified_name", None) or "N/A",
            "Type": command_type,
            "Channel": f"{getattr(channel, 'name', channel)} ({channel.id})" if channel else "N/A",
            "Guild": f"{guild.name} ({guild.id})" if guild else "N/A",
            **(extra or {}),
        }, command_type)

    async def log_ticket(self, action: str, user, ticket_info: Mapping[str, Any] | None = None) -> None:
        await self.log_info(f"Ticket {action}", {
            "User": f"{user} ({getattr(user, 'id', 'N/A')})",
            **(ticket_info or {}),
        }, "Ticket System")
