# services/mojang.py
import asyncio, base64, binascii, json, logging, math, re
from dataclasses import dataclass
from typing import Optional

import aiohttp

from constants import (
    CAPE_LABELS, MOJANG_NAMES_URL, MOJANG_SESSION_URL, MOJANG_USERNAME_URL,
    OPTIFINE_CAPE_URL, PAGE_SIZE, PRIMARY_TIMEOUT, OPTIFINE_TIMEOUT, SKIN_MODEL_LABELS,
)
from core.cache import ProfileCache
from core.errors import InvalidUsername, UpstreamError, UpstreamTimeout, UpstreamUnavailable
from services.cosmetics import classify_cape

log = logging.getLogger("capebot.mojang")

USERNAME_RE = re.compile(r"^[A-Za-z0-9_]{1,16}$")
UUID_RE = re.compile(r"^[0-9a-fA-F]{32}$")  # undashed UUID


def undashed_uuid(u: str) -> str:
    return u.replace("-", "").lower()

def dashed_uuid(u: str) -> str:
    u = undashed_uuid(u)
    return f"{u[0:8]}-{u[8:12]}-{u[12:16]}-{u[16:20]}-{u[20:32]}"

def is_uuid(s: str) -> bool:
    return bool(UUID_RE.match(s.replace("-", "")))

def decode_textures(textures_b64: str) -> dict:
    """Decode the base64 ``textures`` property of a session profile into a dict."""
    return json.loads(base64.b64decode(textures_b64).decode("utf-8"))


@dataclass(frozen=True)
class ProfileData:
    capes: tuple[str, ...] = ()
    cosmetics: tuple[str, ...] = ()
    total_pages: int = 0

    @classmethod
    def empty(cls) -> "ProfileData":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.capes and not self.cosmetics


@dataclass(frozen=True)
class NameRecord:
    name: str
    changed_to_at: Optional[int] = None   # epoch millis; None for the original name


@dataclass(frozen=True)
class PlayerProfile:
    uuid: str
    username: str
    name_history: tuple[NameRecord, ...] = ()
    capes: tuple[str, ...] = ()
    cosmetics: tuple[str, ...] = ()
    total_pages: int = 0


class MojangClient:
    """Cached access to the Mojang identity, session and name-history APIs."""

    def __init__(self, session: aiohttp.ClientSession, cache: ProfileCache, logger=None):
        self.session = session
        self.cache = cache
        self.logger = logger

    # ---------- transport ----------
    async def _get_json(self, url: str, *, timeout: float, none_statuses: tuple[int, ...] = ()):
        try:
            async with self.session.get(url, timeout=aiohttp.ClientTimeout(total=timeout)) as r:
                if r.status in none_statuses:
                    return None
                if r.status != 200:
                    raise UpstreamUnavailable(f"HTTP {r.status} from {url}",
                                              status=r.status, error_type=f"http_{r.status}")
                return await r.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise UpstreamTimeout(f"Timed out after {timeout:g}s: {url}", error_type="timeout") from e
        except aiohttp.ClientError as e:
            raise UpstreamUnavailable(f"Request failed: {e}", error_type=type(e).__name__) from e
        except ValueError as e:
            raise UpstreamUnavailable(f"Malformed response from {url}", error_type="decode") from e

    # ---------- username -> uuid ----------
    async def resolve_username(self, username: str) -> Optional[dict]:
        """Return ``{"id": <uuid>, "name": <name>}`` for a username, or None if no such account."""
        if not isinstance(username, str) or not USERNAME_RE.match(username.strip()):
            raise InvalidUsername(username)
        username = username.strip()

        return await self.cache.get_or_fetch(
            f"mojang-{username.lower()}", lambda: self._lookup_username(username)
        )

    async def _lookup_username(self, username: str) -> Optional[dict]:
        # runs once per in-flight key, so a failure is reported once however many callers wait on it
        url = MOJANG_USERNAME_URL.format(username=username)
        try:
            return await self._get_json(url, timeout=PRIMARY_TIMEOUT, none_statuses=(204, 404))
        except UpstreamError as e:
            if self.logger:
                await self.logger.log_error(e, "MojangAPI", {
                    "username": username,
                    "errorType": e.error_type,
                    "message": str(e),
                })
            raise

    # ---------- uuid -> capes / cosmetics ----------
    async def get_profile(self, uuid: str, username: str | None = None) -> ProfileData:
        try:
            key = undashed_uuid(uuid)
            return await self.cache.get_or_fetch(
                f"profile-{key}", lambda: self._fetch_profile(key, username)
            )
        except UpstreamError as e:
            log.warning("Error fetching profile %s: %s", uuid, e)
        except Exception:
            log.exception("Error fetching profile %s", uuid)
        return ProfileData.empty()

    async def _fetch_profile(self, uuid: str, username: str | None) -> ProfileData:
        prof = await self._get_json(MOJANG_SESSION_URL.format(uuid=uuid), timeout=PRIMARY_TIMEOUT)
        if not prof:
            raise UpstreamUnavailable(f"No session profile for {uuid}", error_type="empty")

        props = prof.get("properties", [])
        textures_b64 = next((p["value"] for p in props if p.get("name") == "textures"), None)
        if textures_b64 is None:
            raise ValueError(f"Session profile for {uuid} has no textures")
        try:
            textures = decode_textures(textures_b64).get("textures", {})
        except (binascii.Error, UnicodeDecodeError) as e:
            raise ValueError(f"Undecodable textures for {uuid}") from e

        capes: list[str] = []
        cosmetics: list[str] = []

        cape_url = (textures.get("CAPE") or {}).get("url")
        if cape_url:
            capes.append(classify_cape(cape_url))

        if await self._has_optifine_cape(username or prof.get("name")):
            capes.append(CAPE_LABELS["optifine"])

        skin = textures.get("SKIN") or {}
        slim = (skin.get("metadata") or {}).get("model") == "slim"
        cosmetics.append(SKIN_MODEL_LABELS["slim" if slim else "classic"])

        return ProfileData(
            capes=tuple(capes),
            cosmetics=tuple(cosmetics),
            total_pages=math.ceil((len(capes) + len(cosmetics)) / PAGE_SIZE),
        )

    async def _has_optifine_cape(self, username: str | None) -> bool:
        if not username:
            return False
        url = OPTIFINE_CAPE_URL.format(username=username)
        try:
            async with self.session.head(url, timeout=aiohttp.ClientTimeout(total=OPTIFINE_TIMEOUT)) as r:
                return r.status == 200
        except Exception:
            # best effort only
            return False

    # ---------- uuid -> name history ----------
    async def get_name_history(self, uuid: str) -> Optional[list[NameRecord]]:
        """Name changes for an account, most recent first. None if the lookup fails."""
        try:
            url = MOJANG_NAMES_URL.format(uuid=undashed_uuid(uuid))
            data = await self._get_json(url, timeout=PRIMARY_TIMEOUT)
            records = [NameRecord(name=e["name"], changed_to_at=e.get("changedToAt")) for e in data]
        except Exception as e:
            log.warning("Error fetching name history for %s: %s", uuid, e)
            return None
        records.reverse()
        return records

    # ---------- everything at once ----------
    async def get_player(self, username: str) -> Optional[PlayerProfile]:
        """Resolve a username and gather its cosmetics and name history."""
        account = await self.resolve_username(username)
        if not account:
            return None
        uuid = undashed_uuid(account["id"])
        name = account.get("name") or username
        profile = await self.get_profile(uuid, name)
        history = await self.get_name_history(uuid) or []
        return PlayerProfile(
            uuid=uuid,
            username=name,
            name_history=tuple(history),
            capes=profile.capes,
            cosmetics=profile.cosmetics,
            total_pages=profile.total_pages,
        )
