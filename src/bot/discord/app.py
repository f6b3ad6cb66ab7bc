"""Discord client factory and runtime wiring."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import discord

from src.bot.discord.gates import should_respond
from src.bot.events import GatewayEvent
from src.bot.handlers import ChatHandler
from src.config import settings
from src.llm.client import generate_content
from src.llm.prompt import DEFAULT_SYSTEM_INSTRUCTIONS
from src.llm.responder import ResponseGenerator
from src.memory.cache import ChannelCache
from src.memory.manager import MemoryManager
from src.memory.store import create_store

logger = logging.getLogger(__name__)


@dataclass
class BotRuntime:
    """Long-lived collaborators created once at startup."""

    memory: MemoryManager
    generator: ResponseGenerator
    allowed_channel_ids: set[str]


def build_runtime() -> BotRuntime:
    """Create the store, cache, memory manager and response generator."""
    store = create_store()
    cache = ChannelCache(capacity=settings.max_cached_channels)
    memory = MemoryManager(cache, store, window_size=settings.memory_window_size)
    generator = ResponseGenerator(
        memory,
        generate_content,
        store,
        default_instructions=settings.system_instructions or DEFAULT_SYSTEM_INSTRUCTIONS,
        context_size=settings.context_window_size,
        summary_interval=settings.summary_interval,
        char_limit=settings.message_char_limit,
    )
    return BotRuntime(
        memory=memory,
        generator=generator,
        allowed_channel_ids=settings.get_allowed_channel_ids(),
    )


def to_event(message: discord.Message, bot_user: discord.abc.User | None) -> GatewayEvent:
    """Convert a discord.py message into a GatewayEvent."""
    channel = message.channel
    is_dm = message.guild is None
    return GatewayEvent(
        channel_id=str(channel.id),
        content=message.content,
        author_name=message.author.name,
        channel_name=getattr(channel, "name", None) or "dm",
        is_bot_author=message.author.bot,
        is_direct_message=is_dm,
        is_mentioned=bot_user is not None and bot_user in message.mentions,
    )


def create_client(runtime: BotRuntime) -> discord.Client:
    """Build the Discord client with its event handlers registered."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.guild_messages = True
    intents.message_content = True
    intents.dm_messages = True

    client = discord.Client(intents=intents)
    handler = ChatHandler(
        runtime.memory,
        runtime.generator,
        bot_name=settings.bot_name,
        char_limit=settings.message_char_limit,
        guild_count=lambda: len(client.guilds),
    )

    @client.event
    async def on_ready() -> None:
        logger.info("%s is online as %s", settings.bot_name, client.user)
        logger.info("Serving %d servers", len(client.guilds))
        if runtime.allowed_channel_ids:
            logger.info("Allowed channels: %s", ", ".join(sorted(runtime.allowed_channel_ids)))
        else:
            logger.info("No channel allowlist; responding to mentions and DMs only")
        await client.change_presence(
            activity=discord.Activity(type=discord.ActivityType.watching, name="for @mentions")
        )

    @client.event
    async def on_message(message: discord.Message) -> None:
        event = to_event(message, client.user)
        if not should_respond(event, runtime.allowed_channel_ids):
            return
        await handler.handle(event, reply=message.reply, typing=message.channel.typing)

    @client.event
    async def on_error(event_method: str, *args, **kwargs) -> None:
        logger.exception("Discord client error in %s", event_method)

    return client
