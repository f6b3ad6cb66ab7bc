"""Copilot bot entry point."""

import asyncio
import contextlib
import logging

from src.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


async def _serve() -> None:
    from src.bot.discord.app import build_runtime, create_client

    runtime = build_runtime()
    client = create_client(runtime)
    try:
        async with client:
            await client.start(settings.discord_bot_token)
    finally:
        await runtime.generator.drain()
        outcomes = await runtime.memory.flush()
        if outcomes:
            logger.info("Flushed %d pending conversation writes", len(outcomes))


def main() -> None:
    """Start the bot on Discord."""
    if not settings.discord_bot_token:
        logger.error("DISCORD_BOT_TOKEN is not set; add it to .env")
        raise SystemExit(1)
    if not settings.anthropic_api_key:
        logger.error("ANTHROPIC_API_KEY is not set; add it to .env")
        raise SystemExit(1)

    logger.info("Starting %s with model %s...", settings.bot_name, settings.chat_model)
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(_serve())


if __name__ == "__main__":
    main()
