"""Data models for channel memory and durable conversation storage."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


def utc_now() -> str:
    """Current time as an ISO 8601 UTC string."""
    return datetime.now(UTC).isoformat()


# -- In-process memory -------------------------------------------------------


@dataclass(frozen=True)
class Message:
    """A single conversation message. Immutable once appended."""

    role: str  # "user" or "assistant"
    content: str
    author: str = ""
    timestamp: str = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, str]:
        return {
            "role": self.role,
            "content": self.content,
            "author": self.author,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        """Build a message from a stored dict, tolerating missing keys."""
        return cls(
            role=str(data.get("role", "user")),
            content=str(data.get("content", "")),
            author=str(data.get("author") or ""),
            timestamp=str(data.get("timestamp") or utc_now()),
        )

    def render(self) -> str:
        """Render as a ``"{author or role}: {content}"`` transcript line."""
        return f"{self.author or self.role}: {self.content}"


@dataclass
class ChannelMemory:
    """Rolling conversation state for one channel."""

    messages: list[Message] = field(default_factory=list)
    summary: str = ""
    last_updated: str = field(default_factory=utc_now)

    def touch(self) -> None:
        self.last_updated = utc_now()


@dataclass(frozen=True)
class MemorySnapshot:
    """Point-in-time view of a cached channel, for status/introspection."""

    channel_id: str
    message_count: int
    summary: str
    last_updated: str


@dataclass(frozen=True)
class PersistOutcome:
    """Result of one durable write attempt.

    Attributes:
        channel_id: Channel the write was for.
        ok: True when the upsert succeeded.
        error: The swallowed exception when ``ok`` is False.
    """

    channel_id: str
    ok: bool
    error: BaseException | None = None


# -- Durable store records ---------------------------------------------------


class BotConfig(BaseModel):
    """Singleton bot configuration row edited from the admin console.

    Only ``system_instructions`` is read by the response pipeline; the rest
    is surfaced to the console and the gateway.
    """

    id: str = "default"
    system_instructions: str = ""
    allowed_channels: list[str] = Field(default_factory=list)
    bot_name: str = "Figmenta Copilot"
    personality: str = "helpful, friendly, professional"
    response_style: str = "friendly"
    max_context_messages: int = 10
    updated_at: str = ""


class ConversationRecord(BaseModel):
    """Durable replica of one channel's conversation."""

    channel_id: str
    channel_name: str = "unknown"
    running_summary: str = ""
    summary: str = ""
    messages: list[dict[str, Any]] = Field(default_factory=list)
    message_count: int = 0
    last_message_at: str = ""
    updated_at: str = ""


class KnowledgeDoc(BaseModel):
    """Metadata for an uploaded knowledge document (admin CRUD only)."""

    id: str
    name: str
    size: int = 0
    chunks: int = 0
    uploaded_at: str = ""
