"""GatewayEvent: an inbound chat message, independent of the gateway library."""

from dataclasses import dataclass


@dataclass(frozen=True)
class GatewayEvent:
    """An inbound message as seen by the bot.

    Attributes:
        channel_id: Channel (or DM thread) the message arrived in.
        content: Raw message text, mentions included.
        author_name: Display name of the sender.
        channel_name: Human-readable channel name (``"dm"`` for DMs).
        is_bot_author: True when another bot sent the message.
        is_direct_message: True for DMs (no guild).
        is_mentioned: True when the bot was @mentioned.
    """

    channel_id: str
    content: str
    author_name: str
    channel_name: str = "unknown"
    is_bot_author: bool = False
    is_direct_message: bool = False
    is_mentioned: bool = False
