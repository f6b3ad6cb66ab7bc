"""Channel allowlist gate and mention cleanup for inbound messages."""

import re

from src.bot.events import GatewayEvent


_MENTION_RE = re.compile(r"<@!?\d+>")

EMPTY_MESSAGE_PROMPT = "Hello! How can you help me?"


def should_respond(event: GatewayEvent, allowed_channel_ids: set[str]) -> bool:
    """Decide whether the bot answers this message.

    Bots are ignored.  Mentions and DMs are always answered; other messages
    only in allowlisted channels, and never when the allowlist is empty.
    """
    if event.is_bot_author:
        return False
    if event.is_mentioned or event.is_direct_message:
        return True
    return event.channel_id in allowed_channel_ids


def clean_content(text: str) -> str:
    """Strip user mentions; fall back to a greeting if nothing is left."""
    cleaned = _MENTION_RE.sub("", text).strip()
    return cleaned or EMPTY_MESSAGE_PROMPT
