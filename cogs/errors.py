# cogs/errors.py
import logging
from discord.ext import commands

log = logging.getLogger("capebot.errors")

class ErrorSpy(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @commands.Cog.listener()
    async def on_command_error(self, ctx: commands.Context, error: commands.CommandError):
        # If the command or cog has its own handler, let that handle it (prevents duplicates)
        if hasattr(ctx.command, "on_error"):
            return
        if ctx.cog and ctx.cog._get_overridden_method(getattr(ctx.cog, "cog_command_error", None)):
            return

        err = getattr(error, "original", error)

        # --- Quietly ignore unknown commands for users ---
        if isinstance(err, commands.CommandNotFound):
            log.warning(
                "CommandNotFound: %s | prefix=%r invoked_with=%r | author=%s(%s) | guild=%s",
                ctx.message.content,
                getattr(ctx, "prefix", None),
                getattr(ctx, "invoked_with", None),
                ctx.author, ctx.author.id,
                (ctx.guild and f"{ctx.guild.name}({ctx.guild.id})"),
            )
            return

        # --- Common friendly messages ---
        if isinstance(err, commands.MissingRequiredArgument):
            await ctx.send(f"❌ Missing `{err.param.name}`. Usage: `{ctx.prefix}{ctx.command} <{err.param.name}>`")
            return
        if isinstance(err, commands.CommandOnCooldown):
            await ctx.send(f"This command is on cooldown. Try again in {int(err.retry_after)}s.")
            return

        # --- Fallback: log + one generic user message ---
        await self.bot.logger.log_command_error(err, str(ctx.command), ctx)
        try:
            await ctx.send(":boom: Something went wrong running that command.")
        except Exception:
            pass

async def setup(bot: commands.Bot):
    await bot.add_cog(ErrorSpy(bot))
