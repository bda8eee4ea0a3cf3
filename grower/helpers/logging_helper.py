from datetime import datetime, timezone
from typing import Optional, List, Tuple

import discord

from ..errors import InvariantViolation

DISCORD_MESSAGE_LIMIT = 2000
CHUNK_SIZE = 1900


class LoggingHelper:
    """Handles all logging operations, including Discord channel and console output."""

    def __init__(self, bot=None, log_channel_id: Optional[int] = None, strict: bool = False):
        self.bot = bot
        self.log_channel_id = log_channel_id
        self.strict = strict
        self._init_log_queue: List[Tuple[str, str]] = []

    @staticmethod
    def _timestamp() -> str:
        return datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')

    def _log_channel(self) -> Optional[discord.TextChannel]:
        channel = self.bot.get_channel(self.log_channel_id)
        if isinstance(channel, discord.TextChannel):
            return channel
        print(f"[GROWER|LOG_ERROR] Channel {self.log_channel_id} is missing or not a text channel.")
        return None

    @staticmethod
    def _payloads(message: str, level: str, header: str) -> List[str]:
        """Splits a log line into Discord-sized messages. Oversized lines get a notice followed by numbered parts."""

        if len(header) + len(message) <= DISCORD_MESSAGE_LIMIT:
            return [header + message]

        parts = [message[i:i + CHUNK_SIZE] for i in range(0, len(message), CHUNK_SIZE)]
        payloads = [f"{header}Long entry ({len(message)} chars), sent in {len(parts)} parts."]
        payloads.extend(f"```{level} part {n}/{len(parts)}```\n{part}" for n, part in enumerate(parts, start=1))
        return payloads

    async def log_to_discord(self, message: str, level: str = "INFO", embed: Optional[discord.Embed] = None):
        """Posts a log line to the configured channel. Lines logged before the bot is ready are queued."""

        if self.bot is None or self.log_channel_id is None:
            return

        level = level.upper()
        if not self.bot.is_ready():
            self._init_log_queue.append((message, level))
            return

        channel = self._log_channel()
        if channel is None:
            return

        first, *rest = self._payloads(message, level, f"`[{self._timestamp()}] [{level}]` ")
        quiet = discord.AllowedMentions.none()
        try:
            await channel.send(content=first, embed=embed, allowed_mentions=quiet)
            for payload in rest:
                await channel.send(content=payload, allowed_mentions=quiet)
        except discord.Forbidden:
            print(f"[GROWER|LOG_ERROR] Missing permission to post in channel {self.log_channel_id}.")
        except discord.HTTPException as e:
            print(f"[GROWER|LOG_ERROR] Posting to channel {self.log_channel_id} failed: {e}")

    def log(self, message: str, level: str = "INFO"):
        """
        Synchronous logger usable from the engine helpers. Prints to console immediately and
        forwards to Discord once the bot loop is running; queues the message otherwise.
        """

        print(f"[GROWER|{level.upper()}|{self._timestamp()}] {message}")

        if self.bot is None:
            return

        if hasattr(self.bot, 'loop') and self.bot.loop.is_running():
            self.bot.loop.create_task(self.log_to_discord(message, level=level))
        else:
            self._init_log_queue.append((message, level))

    def report_invariant(self, message: str):
        """
        Records a caller error. Raises in strict mode so tests catch it;
        in a live session the calling operation degrades to a no-op.
        """

        self.log(f"Invariant violation: {message}", "ERROR")
        if self.strict:
            raise InvariantViolation(message)

    async def flush_init_log_queue(self):
        """Sends any queued logs generated before the bot was ready."""

        if self._init_log_queue:
            self.log(f"Flushing {len(self._init_log_queue)} queued startup logs...", "DEBUG")
            queued = list(self._init_log_queue)
            self._init_log_queue.clear()
            for msg, level in queued:
                await self.log_to_discord(msg, level)
