import discord

# ---------- Embed colors ----------
COLOR_PRESETS = {
    "DEFAULT": discord.Color(0x006400),   # dark green
    "HISTORY": discord.Color(0x2ECC71),
}

LOG_COLORS = {
    "info": 0x3498DB,
    "success": 0x2ECC71,
    "warn": 0xF1C40F,
    "error": 0xE74C3C,
    "debug": 0x8E44AD,
    "security": 0xE67E22,
    "moderation": 0x9B59B6,
}

URGENCY_COLORS = {
    "low": 0x3498DB,
    "medium": 0xF1C40F,
    "high": 0xE67E22,
    "critical": 0xE74C3C,
}

LEVEL_URGENCY = {
    "info": "low",
    "success": "low",
    "warn": "medium",
    "error": "critical",
    "debug": "low",
    "security": "high",
    "moderation": "medium",
}

SEVERITY_EMOJI = {"low": "🔵", "medium": "🟡", "high": "🟠", "critical": "🔴"}

# ---------- Discord limits ----------
EMBED_FIELD_LIMIT = 1024
BLANK_FIELD_NAME = "​"

# ---------- Cosmetics ----------
PAGE_SIZE = 5

CAPE_LABELS = {
    "migrator": "🌟 Mojang Migration Cape",
    "scrolls": "📜 Scrolls Cape",
    "translator": "🌍 Mojang Translator Cape",
    "cobalt": "💠 Cobalt Cape",
    "mojang": "⭐ Mojang Employee Cape",
    "minecon": "🎪 MineCon Cape",
    "official": "🌟 Official Mojang Cape",
    "optifine": "🎭 OptiFine Cape",
    "unknown": "🧥 Unknown Cape",
}

SKIN_MODEL_LABELS = {
    "slim": "👕 Slim model (Alex)",
    "classic": "👕 Classic model (Steve)",
}

# ---------- External endpoints ----------
MOJANG_USERNAME_URL = "https://api.mojang.com/users/profiles/minecraft/{username}"
MOJANG_SESSION_URL = "https://sessionserver.mojang.com/session/minecraft/profile/{uuid}"
MOJANG_NAMES_URL = "https://api.mojang.com/user/profiles/{uuid}/names"
OPTIFINE_CAPE_URL = "http://s.optifine.net/capes/{username}.png"

PRIMARY_TIMEOUT = 10.0   # seconds
OPTIFINE_TIMEOUT = 5.0

MC_HEADS_PROFILE = "https://mc-heads.net/minecraft/profile/{username}"
MC_HEADS_HEAD = "https://mc-heads.net/head/{uuid}/left"
MC_HEADS_BODY = "https://mc-heads.net/body/{uuid}/left"
MC_HEADS_CAPE = "https://mc-heads.net/cape/{uuid}"
NAMEMC_PROFILE = "https://namemc.com/profile/{uuid}"
NAMEMC_SKINS = "https://namemc.com/profile/{uuid}/skin"
