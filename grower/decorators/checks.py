import discord
from redbot.core import commands


def is_cog_ready():
    """
    A commands.check decorator that fails if the cog's catalog and saved game have not yet been loaded.
    This prevents commands from running against the placeholder state during startup.
    """

    async def predicate(ctx: commands.Context):
        if not getattr(ctx.cog, '_initialized', False):
            embed = discord.Embed(
                title="⏳ Grow Room Warming Up",
                description="The grow room is still loading your save. Please try again in a moment.",
                color=discord.Color.orange()
            )
            await ctx.send(embed=embed, delete_after=10)
            return False
        return True

    return commands.check(predicate)
