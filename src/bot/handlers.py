"""Chat message handling: commands, replies and chunked output."""

from __future__ import annotations

import contextlib
import logging
import time
from typing import TYPE_CHECKING, Any

from src.bot.chunking import split_message
from src.bot.discord.gates import clean_content

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from src.bot.events import GatewayEvent
    from src.llm.responder import ResponseGenerator
    from src.memory.manager import MemoryManager

    Reply = Callable[[str], Awaitable[Any]]

logger = logging.getLogger(__name__)

CLEAR_COMMANDS = frozenset({"!clear", "clear memory"})
STATUS_COMMANDS = frozenset({"!status", "status"})

STATUS_SUMMARY_CHARS = 200

ERROR_REPLY = "Sorry, I encountered an error. Please try again!"
EMPTY_REPLY = "I got an empty response. Try again?"


def format_uptime(seconds: float) -> str:
    """Format a duration as ``"1d 2h 3m 4s"``, omitting zero parts."""
    total = int(seconds)
    days, rem = divmod(total, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs:
        parts.append(f"{secs}s")
    return " ".join(parts) or "0s"


class ChatHandler:
    """Routes an accepted inbound message to a command or a model reply.

    Gateway-agnostic: the caller supplies ``reply`` (send one message) and
    optionally ``typing`` (show a typing indicator).

    Args:
        memory: Memory manager, used by the clear and status commands.
        generator: Produces model replies.
        bot_name: Name shown in the status message.
        char_limit: Maximum characters per outbound message.
        guild_count: Returns how many servers the bot is in.
    """

    def __init__(
        self,
        memory: MemoryManager,
        generator: ResponseGenerator,
        *,
        bot_name: str,
        char_limit: int = 2000,
        guild_count: Callable[[], int] | None = None,
    ) -> None:
        self._memory = memory
        self._generator = generator
        self._bot_name = bot_name
        self._char_limit = char_limit
        self._guild_count = guild_count or (lambda: 0)
        self._started = time.monotonic()

    async def handle(
        self,
        event: GatewayEvent,
        reply: Reply,
        typing: Callable[[], Awaitable[Any]] | None = None,
    ) -> None:
        """Handle one message that already passed the channel gate."""
        content = clean_content(event.content)
        command = content.lower()

        if command in CLEAR_COMMANDS:
            await self.handle_clear(event, reply)
            return
        if command in STATUS_COMMANDS:
            await reply(self.build_status(event.channel_id))
            return

        logger.info(
            "Message in #%s from %s: %s", event.channel_name, event.author_name, content[:80]
        )

        if typing is not None:
            with contextlib.suppress(Exception):
                await typing()

        try:
            response = await self._generator.generate(
                event.channel_id,
                content,
                event.author_name,
                event.channel_name,
            )
            chunks = split_message(response.strip(), self._char_limit) or [EMPTY_REPLY]
            for chunk in chunks:
                await reply(chunk)
        except Exception:
            logger.exception("Error handling message in #%s", event.channel_name)
            with contextlib.suppress(Exception):
                await reply(ERROR_REPLY)

    async def handle_clear(self, event: GatewayEvent, reply: Reply) -> None:
        """Forget this channel's history."""
        await self._memory.clear(event.channel_id)
        logger.info("Cleared memory for #%s", event.channel_name)
        await reply("Memory cleared for this channel!")

    def build_status(self, channel_id: str) -> str:
        """Status text: uptime, server count and this channel's memory."""
        lines = [
            f"**{self._bot_name} Status**",
            f"• Uptime: {format_uptime(time.monotonic() - self._started)}",
            f"• Servers: {self._guild_count()}",
        ]
        snapshot = self._memory.get_snapshot(channel_id)
        if snapshot is None:
            lines.append("• This channel: No conversation history yet")
        else:
            lines.append(f"• This channel: {snapshot.message_count} messages in memory")
            if snapshot.summary:
                lines.append(f"• Summary: {snapshot.summary[:STATUS_SUMMARY_CHARS]}...")
        return "\n".join(lines)
