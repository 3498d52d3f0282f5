# cogs/mcprofile.py
import logging
from typing import Optional

import discord
from discord import ui
from discord.ext import commands

from core.errors import InvalidUsername, UpstreamError, UpstreamTimeout
from services.cosmetics import build_display, build_name_history_display, to_embed
from services.mojang import MojangClient, PlayerProfile, dashed_uuid

log = logging.getLogger("capebot.mcprofile")


class CosmeticsPager(ui.View):
    def __init__(self, ctx: commands.Context, mojang: MojangClient, player: PlayerProfile):
        super().__init__(timeout=180)
        self.ctx = ctx
        self.mojang = mojang
        self.player = player
        self.page = 0
        self.message: Optional[discord.Message] = None
        self._sync_buttons()

    @property
    def max_page(self) -> int:
        return max(self.player.total_pages - 1, 0)

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        # Only the command invoker can use the controls
        return interaction.user and interaction.user.id == self.ctx.author.id

    async def on_timeout(self):
        for child in self.children:
            child.disabled = True
        if self.message:
            try:
                await self.message.edit(view=self)
            except discord.HTTPException:
                pass

    def build_embed(self) -> discord.Embed:
        p = self.player
        return to_embed(build_display(p.username, p.uuid, p.capes, p.cosmetics, self.page, p.total_pages))

    def _sync_buttons(self):
        self.prev_btn.disabled = self.page <= 0
        self.next_btn.disabled = self.page >= self.max_page

    async def refresh(self, interaction: discord.Interaction):
        self.page = min(max(self.page, 0), self.max_page)
        self._sync_buttons()
        try:
            await interaction.response.edit_message(embed=self.build_embed(), view=self)
        except discord.InteractionResponded:
            await interaction.edit_original_response(embed=self.build_embed(), view=self)

    # --- Buttons ---
    @ui.button(emoji="◀️", style=discord.ButtonStyle.secondary)
    async def prev_btn(self, interaction: discord.Interaction, _):
        self.page -= 1
        await self.refresh(interaction)

    @ui.button(emoji="▶️", style=discord.ButtonStyle.secondary)
    async def next_btn(self, interaction: discord.Interaction, _):
        self.page += 1
        await self.refresh(interaction)

    @ui.button(label="Name history", emoji="📜", style=discord.ButtonStyle.primary)
    async def history_btn(self, interaction: discord.Interaction, _):
        history = self.player.name_history or await self.mojang.get_name_history(self.player.uuid)
        if not history:
            await interaction.response.send_message("❌ Username history not found.", ephemeral=True)
            return
        em = to_embed(build_name_history_display(dashed_uuid(self.player.uuid), history))
        await interaction.response.send_message(embed=em, ephemeral=True)


class MCProfile(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def mojang(self) -> MojangClient:
        return self.bot.mojang

    async def _reply_failure(self, ctx: commands.Context, handle: str, err: Exception):
        log.info("Lookup for %r failed: %s", handle, err)
        if isinstance(err, InvalidUsername):
            await ctx.reply(f"❌ **{discord.utils.escape_markdown(handle)}** isn't a valid Minecraft username.")
        elif isinstance(err, UpstreamTimeout):
            await ctx.reply("⏳ Mojang took too long to answer. Try again in a moment.")
        elif isinstance(err, UpstreamError) and err.status == 429:
            await ctx.reply("⚠️ Too many requests to Mojang right now. Try again later.")
        else:
            await ctx.reply("⚠️ Something went wrong talking to Mojang.")

    @commands.command(
        name="mcprofile",
        aliases=["mcinfo", "capes"],
        help="Show a Minecraft Java player's capes and skin model. Usage: !mcprofile <username>"
    )
    @commands.cooldown(1, 3, commands.BucketType.user)
    async def mcprofile(self, ctx: commands.Context, handle: str):
        async with ctx.typing():
            try:
                player = await self.mojang.get_player(handle)
            except (InvalidUsername, UpstreamError) as e:
                await self._reply_failure(ctx, handle, e)
                return

        if player is None:
            await ctx.reply(f"❌ I couldn't find a Java account named **{discord.utils.escape_markdown(handle)}**.")
            return

        view = CosmeticsPager(ctx, self.mojang, player)
        view.message = await ctx.send(embed=view.build_embed(), view=view)
        await self.bot.logger.log_command(ctx, {"Player": f"{player.username} ({player.uuid})"})

    @commands.command(name="namehistory", aliases=["names"],
                      help="Show a player's previous usernames. Usage: !namehistory <username>")
    @commands.cooldown(1, 3, commands.BucketType.user)
    async def namehistory(self, ctx: commands.Context, handle: str):
        try:
            account = await self.mojang.resolve_username(handle)
        except (InvalidUsername, UpstreamError) as e:
            await self._reply_failure(ctx, handle, e)
            return
        if not account:
            await ctx.reply(f"❌ I couldn't find a Java account named **{discord.utils.escape_markdown(handle)}**.")
            return

        history = await self.mojang.get_name_history(account["id"])
        if not history:
            await ctx.reply("❌ Username history not found.")
            return
        await ctx.send(embed=to_embed(build_name_history_display(dashed_uuid(account["id"]), history)))


async def setup(bot: commands.Bot):
    await bot.add_cog(MCProfile(bot))
