# services/cosmetics.py
import re
from dataclasses import dataclass, field
from typing import Callable, Sequence

import discord

from constants import (
    CAPE_LABELS, COLOR_PRESETS, MC_HEADS_BODY, MC_HEADS_CAPE, MC_HEADS_HEAD,
    MC_HEADS_PROFILE, NAMEMC_PROFILE, NAMEMC_SKINS, PAGE_SIZE,
)

_MINECON_YEAR = re.compile(r"201[0-9]")


# ---------- cape classification ----------

def _official(marker: str) -> Callable[[str], bool]:
    return lambda url: "minecraft.net" in url and marker in url

def _minecon_label(url: str) -> str:
    m = _MINECON_YEAR.search(url)
    return f"{CAPE_LABELS['minecon']} {m.group(0)}" if m else CAPE_LABELS["minecon"]

# First match wins; specific minecraft.net markers precede the generic official rule.
CAPE_RULES: list[tuple[Callable[[str], bool], str | Callable[[str], str]]] = [
    (_official("migrator"),   CAPE_LABELS["migrator"]),
    (_official("scrolls"),    CAPE_LABELS["scrolls"]),
    (_official("translator"), CAPE_LABELS["translator"]),
    (_official("cobalt"),     CAPE_LABELS["cobalt"]),
    (_official("mojang"),     CAPE_LABELS["mojang"]),
    (_official("minecon"),    _minecon_label),
    (lambda url: "minecraft.net" in url, CAPE_LABELS["official"]),
    (lambda url: "optifine" in url,      CAPE_LABELS["optifine"]),
]

def classify_cape(url: str) -> str:
    """Human-readable label for a cape texture URL."""
    url = url or ""
    for matches, label in CAPE_RULES:
        if matches(url):
            return label(url) if callable(label) else label
    return CAPE_LABELS["unknown"]


# ---------- display model ----------

@dataclass
class DisplaySection:
    name: str
    entries: list[str] = field(default_factory=list)
    inline: bool = True
    link: str | None = None   # rendered on its own line after the entries

    @property
    def value(self) -> str:
        lines = list(self.entries)
        if self.link:
            lines.append(self.link)
        return "\n".join(lines) or "N/A"


@dataclass
class DisplayModel:
    title: str
    color: discord.Color
    image_url: str | None = None
    thumbnail_url: str | None = None
    description: str | None = None
    sections: list[DisplaySection] = field(default_factory=list)
    page: int = 0
    total_pages: int = 0
    footer: str | None = None

    def section(self, name: str) -> DisplaySection | None:
        return next((s for s in self.sections if s.name == name), None)


PORTRAIT_SECTION = "🎭 Full character view"
CAPES_SECTION = "🧥 Active capes"
COSMETICS_SECTION = "🎨 Skin model"
LINKS_SECTION = "🔍 Useful links"


def page_window(items: Sequence[str], page: int, size: int = PAGE_SIZE) -> list[str]:
    if page < 0:
        return []
    start = page * size
    return list(items[start:start + size])


def build_display(username: str, uuid: str, capes: Sequence[str], cosmetics: Sequence[str],
                  page: int = 0, total_pages: int | None = None) -> DisplayModel:
    """Render one page of a player's cosmetics. Capes and cosmetics are paged independently."""
    capes_page = page_window(capes, page)
    cosmetics_page = page_window(cosmetics, page)
    if total_pages is None:
        total_pages = -(-(len(capes) + len(cosmetics)) // PAGE_SIZE)

    model = DisplayModel(
        title=f"🎮 Minecraft profile of {username}",
        color=COLOR_PRESETS["DEFAULT"],
        image_url=MC_HEADS_PROFILE.format(username=username),
        thumbnail_url=MC_HEADS_HEAD.format(uuid=uuid),
        page=page,
        total_pages=total_pages,
        footer=f"Page {page + 1}/{max(total_pages, 1)}",
    )
    model.sections.append(DisplaySection(
        PORTRAIT_SECTION,
        link=f"[View HD render]({MC_HEADS_BODY.format(uuid=uuid)})",
    ))
    if capes_page:
        model.sections.append(DisplaySection(
            CAPES_SECTION, capes_page,
            link=f"[View capes on NameMC]({NAMEMC_PROFILE.format(uuid=uuid)})",
        ))
    if cosmetics_page:
        model.sections.append(DisplaySection(COSMETICS_SECTION, cosmetics_page))
    model.sections.append(DisplaySection(
        LINKS_SECTION,
        inline=False,
        link=(f"[NameMC]({NAMEMC_PROFILE.format(uuid=uuid)}) | "
              f"[Skin History]({NAMEMC_SKINS.format(uuid=uuid)}) | "
              f"[Cape Viewer]({MC_HEADS_CAPE.format(uuid=uuid)})"),
    ))
    return model


def build_name_history_display(uuid: str, records: Sequence) -> DisplayModel:
    lines = []
    for i, rec in enumerate(records, start=1):
        when = f" - <t:{rec.changed_to_at // 1000}:R>" if rec.changed_to_at else " (Original)"
        lines.append(f"{i}. `{rec.name}`{when}")
    return DisplayModel(
        title="📜 Username History",
        color=COLOR_PRESETS["HISTORY"],
        description="\n".join(lines)[:4096] or "No name changes recorded.",
        footer=f"UUID: {uuid}",
    )


def to_embed(model: DisplayModel) -> discord.Embed:
    em = discord.Embed(
        title=model.title,
        description=model.description,
        color=model.color,
        timestamp=discord.utils.utcnow(),
    )
    if model.image_url:
        em.set_image(url=model.image_url)
    if model.thumbnail_url:
        em.set_thumbnail(url=model.thumbnail_url)
    for s in model.sections:
        em.add_field(name=s.name, value=s.value[:1024], inline=s.inline)
    if model.footer:
        em.set_footer(text=model.footer)
    return em
