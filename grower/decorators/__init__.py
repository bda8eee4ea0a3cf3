from .checks import is_cog_ready

__all__ = ["is_cog_ready"]
