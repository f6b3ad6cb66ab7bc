"""ResponseGenerator: turns a channel message into a model reply.

Reads channel memory, resolves system instructions, prompts the model,
records the exchange and periodically refreshes the running summary.
Nothing here raises to the caller: model failures become a fixed apology
and store or summary failures are logged and skipped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from src.llm.prompt import (
    DEFAULT_SYSTEM_INSTRUCTIONS,
    build_response_prompt,
    build_summary_prompt,
    format_context,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from src.memory.manager import MemoryManager
    from src.memory.store import BotStore

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE = "I'm having trouble processing that request. Please try again!"
BOT_AUTHOR = "Bot"


class ResponseGenerator:
    """Generates replies and maintains the running summary.

    Args:
        memory: Manager owning the channel memories.
        generate_content: Async callable ``(prompt) -> text`` backed by the
            language model.
        store: Durable store to read system instructions from, if any.
        default_instructions: Used when the store has no instructions or
            cannot be reached.
        context_size: Messages included verbatim in each prompt.
        summary_interval: Summarize when the message count is a multiple
            of this.
        char_limit: Reply length the model is asked to stay under.
    """

    def __init__(
        self,
        memory: MemoryManager,
        generate_content: Callable[[str], Awaitable[str]],
        store: BotStore | None = None,
        *,
        default_instructions: str = DEFAULT_SYSTEM_INSTRUCTIONS,
        context_size: int = 10,
        summary_interval: int = 5,
        char_limit: int = 2000,
    ) -> None:
        self._memory = memory
        self._generate_content = generate_content
        self._store = store
        self._default_instructions = default_instructions or DEFAULT_SYSTEM_INSTRUCTIONS
        self._context_size = context_size
        self._summary_interval = summary_interval
        self._char_limit = char_limit
        self._background: set[asyncio.Task[bool]] = set()

    async def resolve_system_instructions(self) -> str:
        """Instructions from the store's config row, else the default text."""
        if self._store is None:
            return self._default_instructions
        try:
            config = await self._store.get_config()
        except Exception:
            logger.warning("Could not load system instructions; using default", exc_info=True)
            return self._default_instructions
        if config and config.system_instructions:
            return config.system_instructions
        return self._default_instructions

    async def generate(
        self,
        channel_id: str,
        user_message: str,
        user_name: str,
        channel_name: str = "unknown",
    ) -> str:
        """Reply to *user_message* in *channel_id*.

        On success both sides of the exchange are appended to memory and
        persisted before returning.  On model failure memory is left as it
        was and ``FALLBACK_RESPONSE`` is returned.
        """
        memory = await self._memory.get_or_create(channel_id)
        system_instructions = await self.resolve_system_instructions()

        context = format_context(memory.messages, self._context_size)
        prompt = build_response_prompt(
            system_instructions,
            context,
            user_name,
            user_message,
            char_limit=self._char_limit,
        )

        try:
            text = await self._generate_content(prompt)
        except Exception:
            logger.exception("AI generation error in channel %s", channel_id)
            return FALLBACK_RESPONSE

        persists = [
            await self._memory.append(channel_id, "user", user_message, user_name, channel_name),
            await self._memory.append(channel_id, "assistant", text, BOT_AUTHOR, channel_name),
        ]

        count = len((await self._memory.get_or_create(channel_id)).messages)
        if self._summary_interval and count and count % self._summary_interval == 0:
            self._schedule_summary(channel_id)

        pending = [task for task in persists if task is not None]
        if pending:
            await asyncio.gather(*pending)

        return text

    # -- Summarization ---------------------------------------------------------

    def _schedule_summary(self, channel_id: str) -> None:
        task = asyncio.create_task(self.summarize(channel_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def summarize(self, channel_id: str) -> bool:
        """Replace the channel's running summary. Returns True on success.

        The summary is not persisted here; the next append carries it.
        """
        memory = await self._memory.get_or_create(channel_id)
        if len(memory.messages) < self._summary_interval:
            return False

        transcript = format_context(memory.messages, self._context_size)
        try:
            summary = await self._generate_content(build_summary_prompt(transcript))
        except Exception:
            logger.exception("Summary generation error in channel %s", channel_id)
            return False

        memory.summary = summary.strip()
        logger.debug("Updated summary for channel %s", channel_id)
        return True

    async def drain(self) -> None:
        """Wait for any summaries still running."""
        if self._background:
            await asyncio.gather(*list(self._background))
