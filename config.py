# config.py
import os
from dataclasses import dataclass

# Optional: load .env files when running locally
# try:
#     from dotenv import load_dotenv
#     load_dotenv()
# except Exception:
#     pass

_TRUTHY = {"1", "true", "yes", "on"}

def _parse_bool(val: str | None) -> bool:
    return (val or "").strip().lower() in _TRUTHY

def _parse_int(val: str | None) -> int | None:
    if not val:
        return None
    val = val.strip()
    return int(val) if val.isdigit() else None

@dataclass(frozen=True)
class Settings:
    # Environment
    ENV: str                 # "dev" or "prod"
    IS_DEV: bool

    # Discord
    DISCORD_BOT_TOKEN: str
    DEFAULT_PREFIX: str

    # Log delivery
    ERROR_WEBHOOK_URL: str | None
    LOG_CHANNEL_ID: int | None
    DEBUG: bool
    LOG_LEVEL: str

    # Profile cache
    CACHE_MAX_ENTRIES: int
    CACHE_TTL_SECONDS: float

    # HTTP health server
    PORT: int

    def require_prod(self) -> None:
        """In production, ensure critical settings exist."""
        if not self.IS_DEV:
            missing = [k for k in ("DISCORD_BOT_TOKEN",) if not getattr(self, k)]
            if missing:
                raise RuntimeError(f"Missing required settings in production: {', '.join(missing)}")

def _build() -> Settings:
    env = os.getenv("ENV", "prod").lower()
    is_dev = env == "dev"

    return Settings(
        ENV=env,
        IS_DEV=is_dev,

        DISCORD_BOT_TOKEN=os.getenv("DISCORD_BOT_TOKEN", ""),
        DEFAULT_PREFIX=os.getenv("COMMAND_PREFIX", "!"),

        ERROR_WEBHOOK_URL=os.getenv("ERROR_WEBHOOK_URL") or None,
        LOG_CHANNEL_ID=_parse_int(os.getenv("LOG_CHANNEL_ID")),
        DEBUG=_parse_bool(os.getenv("DEBUG")) or is_dev,
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),

        CACHE_MAX_ENTRIES=int(os.getenv("CACHE_MAX_ENTRIES", "500")),
        CACHE_TTL_SECONDS=float(os.getenv("CACHE_TTL_SECONDS", "300")),

        PORT=int(os.getenv("PORT", "10000" if is_dev else "8080")),
    )

settings = _build()
