async def setup(bot):
    from .grower import Grower

    await bot.add_cog(Grower(bot))
