"""Tests for memory data models."""

from dataclasses import FrozenInstanceError

import pytest

from src.memory.models import BotConfig, ChannelMemory, Message


def test_message_is_immutable() -> None:
    msg = Message("user", "hello", "alice")
    with pytest.raises(FrozenInstanceError):
        msg.content = "changed"  # type: ignore[misc]


def test_message_dict_round_trip() -> None:
    msg = Message("assistant", "hi", "Bot", "2026-01-01T00:00:00+00:00")
    assert Message.from_dict(msg.to_dict()) == msg


def test_message_from_partial_dict() -> None:
    msg = Message.from_dict({"role": "user", "content": "hey", "author": None})
    assert msg.author == ""
    assert msg.timestamp


def test_message_render_uses_author_then_role() -> None:
    assert Message("user", "hey", "alice").render() == "alice: hey"
    assert Message("assistant", "hey").render() == "assistant: hey"


def test_channel_memory_defaults() -> None:
    memory = ChannelMemory()
    assert memory.messages == []
    assert memory.summary == ""
    assert memory.last_updated


def test_bot_config_defaults() -> None:
    config = BotConfig()
    assert config.system_instructions == ""
    assert config.allowed_channels == []
    assert config.max_context_messages == 10
