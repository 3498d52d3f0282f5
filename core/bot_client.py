# core/bot_client.py
import logging
import aiohttp, discord
from discord.ext import commands
from config import settings
from core.cache import ProfileCache
from core.logger import BotLogger
from services.mojang import MojangClient
log = logging.getLogger("capebot.bot")

USER_AGENT = "capebot (+https://discord.com) aiohttp"

class CapeBot(commands.Bot):
    def __init__(self, cache: ProfileCache | None = None, **kwargs):
        intents = kwargs.get("intents", discord.Intents.default())
        intents.message_content = True

        kwargs["intents"] = intents

        # ✅ strip_after_prefix lets "! mcprofile" work
        kwargs.setdefault("command_prefix", commands.when_mentioned_or(settings.DEFAULT_PREFIX))
        kwargs.setdefault("strip_after_prefix", True)
        kwargs.setdefault("case_insensitive", True)

        super().__init__(**kwargs)

        # one cache per process, handed to whoever needs it
        self.cache = cache or ProfileCache(
            maxsize=settings.CACHE_MAX_ENTRIES, ttl=settings.CACHE_TTL_SECONDS
        )
        self.http_session: aiohttp.ClientSession | None = None
        self.logger = BotLogger.from_settings(settings)
        self.mojang: MojangClient | None = None

        log.info("Intents set: message_content=%s", self.intents.message_content)

    async def setup_hook(self):
        self.http_session = aiohttp.ClientSession(headers={"User-Agent": USER_AGENT})
        self.logger = BotLogger.from_settings(settings, session=self.http_session)
        self.logger.set_client(self)
        self.mojang = MojangClient(self.http_session, self.cache, logger=self.logger)

        for ext in ("cogs.mcprofile", "cogs.errors"):
            try:
                await self.load_extension(ext)
            except Exception as e:
                log.exception("Failed to load extension %s", ext)
                await self.logger.log_error(e, "Startup", {"extension": ext})

    async def on_ready(self):
        log.info("Logged in as %s (%s)", self.user, getattr(self.user, "id", "?"))
        await self.logger.log_success("Bot online", {"User": str(self.user), "Guilds": len(self.guilds)}, "Startup")

    async def close(self):
        await super().close()
        if self.http_session and not self.http_session.closed:
            await self.http_session.close()
