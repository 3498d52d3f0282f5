# bot.py
import sys
import asyncio
import logging
import random

from discord.errors import HTTPException

from config import settings
from core.bot_client import CapeBot
from core.cache import ProfileCache
from http_server.server import start_http_server, stop_http_server

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    stream=sys.stdout,
)
log = logging.getLogger("capebot.startup")

# Tunables
BACKOFF_START = 5          # seconds
BACKOFF_MAX   = 600        # 10 minutes cap
NON429_DELAY  = 30         # delay for non-429 HTTPException or generic errors


def _new_bot(cache: ProfileCache) -> CapeBot:
    """Factory to ensure a fresh Bot per login attempt; the cache outlives it."""
    return CapeBot(cache=cache)


async def login_with_backoff(token: str, cache: ProfileCache):
    """
    Keep trying to log in with exponential backoff + jitter on 429s.
    A NEW bot is created each iteration and wrapped with 'async with bot:'
    so its aiohttp sessions always close.
    """
    backoff = BACKOFF_START

    while True:
        bot = _new_bot(cache)

        try:
            async with bot:
                await bot.start(token)
            # clean shutdown, no retry
            return

        except HTTPException as e:
            if getattr(e, "status", None) == 429:
                wait = None

                resp = getattr(e, "response", None)
                if resp is not None:
                    h = getattr(resp, "headers", {}) or {}
                    # Prefer Discord’s precise reset header; fall back to Retry-After
                    raw = h.get("X-RateLimit-Reset-After") or h.get("Retry-After")
                    try:
                        wait = float(raw) if raw is not None else None
                    except ValueError:
                        wait = None

                if wait is None:
                    jitter = random.uniform(0, backoff)
                    wait = min(backoff + jitter, BACKOFF_MAX)
                    backoff = min(backoff * 2, BACKOFF_MAX)

                log.warning("Discord login 429. Sleeping %.2fs before retry.", wait)
                await asyncio.sleep(wait)
                continue

            log.exception("Discord HTTPException during login; retrying in %ss.", NON429_DELAY)
            await asyncio.sleep(NON429_DELAY)

        except Exception:
            log.exception("Unexpected error during login; retrying in %ss.", NON429_DELAY)
            await asyncio.sleep(NON429_DELAY)


async def run():
    settings.require_prod()
    cache = ProfileCache(maxsize=settings.CACHE_MAX_ENTRIES, ttl=settings.CACHE_TTL_SECONDS)

    # HTTP first so health checks pass even if Discord is blocked.
    runner = await start_http_server(port=settings.PORT, cache=cache)
    log.info("HTTP server listening on 0.0.0.0:%s (health: / or /healthz)", settings.PORT)

    try:
        await login_with_backoff(settings.DISCORD_BOT_TOKEN, cache)
    finally:
        try:
            await stop_http_server(runner)
        except Exception:
            log.exception("Error while stopping HTTP server")


if __name__ == "__main__":
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass
