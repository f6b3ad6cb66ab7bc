"""Tests for ResponseGenerator: prompting, memory updates and summaries."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.llm.prompt import DEFAULT_SYSTEM_INSTRUCTIONS
from src.llm.responder import BOT_AUTHOR, FALLBACK_RESPONSE, ResponseGenerator
from src.memory.cache import ChannelCache
from src.memory.manager import MemoryManager
from src.memory.models import BotConfig

SUMMARY_TEXT = "Alice and the bot discussed the launch plan."


class FakeModel:
    """Records prompts and answers replies and summaries differently."""

    def __init__(self, reply: str = "Sure thing!") -> None:
        self.reply = reply
        self.prompts: list[str] = []
        self.fail_replies = False
        self.fail_summaries = False

    @property
    def summary_prompts(self) -> list[str]:
        return [p for p in self.prompts if p.startswith("Summarize")]

    @property
    def reply_prompts(self) -> list[str]:
        return [p for p in self.prompts if not p.startswith("Summarize")]

    async def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if prompt.startswith("Summarize"):
            if self.fail_summaries:
                raise RuntimeError("summary failed")
            return f"  {SUMMARY_TEXT}\n"
        if self.fail_replies:
            raise RuntimeError("model unavailable")
        return self.reply


@pytest.fixture
def model() -> FakeModel:
    return FakeModel()


@pytest.fixture
def generator(memory: MemoryManager, model: FakeModel) -> ResponseGenerator:
    return ResponseGenerator(memory, model)


async def _prefill(memory: MemoryManager, channel_id: str, count: int) -> None:
    for i in range(count):
        role = "user" if i % 2 == 0 else "assistant"
        await memory.append(channel_id, role, f"msg {i}", "alice" if role == "user" else BOT_AUTHOR)


# -- generate ------------------------------------------------------------------


async def test_generate_returns_reply_and_records_exchange(
    generator: ResponseGenerator, memory: MemoryManager, model: FakeModel
) -> None:
    result = await generator.generate("c1", "What's the plan?", "alice", "general")

    assert result == "Sure thing!"
    channel = await memory.get_or_create("c1")
    assert [(m.role, m.author, m.content) for m in channel.messages] == [
        ("user", "alice", "What's the plan?"),
        ("assistant", BOT_AUTHOR, "Sure thing!"),
    ]


async def test_first_prompt_has_no_context(generator: ResponseGenerator, model: FakeModel) -> None:
    await generator.generate("c1", "hello", "alice")

    prompt = model.prompts[0]
    assert prompt.startswith(DEFAULT_SYSTEM_INSTRUCTIONS)
    assert "CONVERSATION CONTEXT:\nNo previous context." in prompt
    assert "CURRENT MESSAGE FROM alice:\nhello" in prompt
    assert "under 2000 characters" in prompt


async def test_prompt_context_is_last_ten_messages(
    generator: ResponseGenerator, memory: MemoryManager, model: FakeModel
) -> None:
    await _prefill(memory, "c1", 12)

    await generator.generate("c1", "next", "alice")

    context = model.reply_prompts[0].split("CONVERSATION CONTEXT:\n")[1].split("\n\n")[0]
    lines = context.split("\n")
    assert len(lines) == 10
    assert lines[0] == "alice: msg 2"
    assert lines[-1] == f"{BOT_AUTHOR}: msg 11"


async def test_model_failure_returns_fallback_and_keeps_memory(
    generator: ResponseGenerator, memory: MemoryManager, model: FakeModel
) -> None:
    await _prefill(memory, "c1", 3)
    model.fail_replies = True

    result = await generator.generate("c1", "hello", "alice")

    assert result == FALLBACK_RESPONSE
    channel = await memory.get_or_create("c1")
    assert len(channel.messages) == 3


async def test_store_absent_mode(model: FakeModel) -> None:
    memory = MemoryManager(ChannelCache(), None)
    generator = ResponseGenerator(memory, model, None)

    channel = await memory.get_or_create("new-channel")
    assert channel.messages == []
    assert channel.summary == ""

    result = await generator.generate("new-channel", "hi", "alice")
    assert result == "Sure thing!"
    assert model.prompts[0].startswith(DEFAULT_SYSTEM_INSTRUCTIONS)


async def test_persists_complete_before_return(mock_store: AsyncMock, model: FakeModel) -> None:
    memory = MemoryManager(ChannelCache(), mock_store)
    generator = ResponseGenerator(memory, model, mock_store)

    await generator.generate("c1", "hello", "alice", "general")

    assert mock_store.upsert_conversation.await_count == 2
    last = mock_store.upsert_conversation.await_args_list[-1].args[0]
    assert last.message_count == 2
    assert last.channel_name == "general"


async def test_slow_write_does_not_delay_other_channels(
    mock_store: AsyncMock, model: FakeModel
) -> None:
    release = asyncio.Event()

    async def upsert(record) -> None:
        if record.channel_id == "slow":
            await release.wait()

    mock_store.upsert_conversation.side_effect = upsert
    memory = MemoryManager(ChannelCache(), mock_store)
    generator = ResponseGenerator(memory, model, mock_store)

    slow = asyncio.create_task(generator.generate("slow", "hello", "alice"))
    await asyncio.sleep(0)

    reply = await asyncio.wait_for(generator.generate("fast", "hello", "bob"), timeout=2)
    assert reply == "Sure thing!"
    assert not slow.done()

    release.set()
    assert await slow == "Sure thing!"


# -- system instructions -------------------------------------------------------


async def test_instructions_from_store(mock_store: AsyncMock, model: FakeModel) -> None:
    mock_store.get_config.return_value = BotConfig(system_instructions="Talk like a pirate.")
    generator = ResponseGenerator(MemoryManager(ChannelCache()), model, mock_store)

    assert await generator.resolve_system_instructions() == "Talk like a pirate."


async def test_instructions_fall_back_when_store_empty(
    mock_store: AsyncMock, model: FakeModel
) -> None:
    mock_store.get_config.return_value = BotConfig(system_instructions="")
    generator = ResponseGenerator(MemoryManager(ChannelCache()), model, mock_store)

    assert await generator.resolve_system_instructions() == DEFAULT_SYSTEM_INSTRUCTIONS


async def test_instructions_fall_back_on_store_error(
    mock_store: AsyncMock, model: FakeModel
) -> None:
    mock_store.get_config.side_effect = RuntimeError("store down")
    generator = ResponseGenerator(
        MemoryManager(ChannelCache()), model, mock_store, default_instructions="Override."
    )

    assert await generator.resolve_system_instructions() == "Override."


# -- summarization -------------------------------------------------------------


async def test_summary_triggered_when_count_hits_multiple_of_five(
    generator: ResponseGenerator, memory: MemoryManager, model: FakeModel
) -> None:
    await _prefill(memory, "c1", 8)

    await generator.generate("c1", "hello", "alice")
    await generator.drain()

    assert len(model.summary_prompts) == 1
    channel = await memory.get_or_create("c1")
    assert channel.summary == SUMMARY_TEXT


async def test_summary_once_per_boundary_over_turns(
    generator: ResponseGenerator, model: FakeModel
) -> None:
    for turn in range(4):
        await generator.generate("c1", f"turn {turn}", "alice")
        await generator.drain()
    assert model.summary_prompts == []

    await generator.generate("c1", "turn 4", "alice")
    await generator.drain()
    assert len(model.summary_prompts) == 1


async def test_summary_checked_after_assistant_append(
    generator: ResponseGenerator, memory: MemoryManager, model: FakeModel
) -> None:
    # 4 -> 6 messages crosses 5 but never lands on it
    await _prefill(memory, "c1", 4)
    await generator.generate("c1", "hello", "alice")
    await generator.drain()
    assert model.summary_prompts == []

    # 3 -> 5 lands on it
    await _prefill(memory, "c2", 3)
    await generator.generate("c2", "hello", "alice")
    await generator.drain()
    assert len(model.summary_prompts) == 1


async def test_summary_prompt_uses_last_ten_messages(
    generator: ResponseGenerator, memory: MemoryManager, model: FakeModel
) -> None:
    await _prefill(memory, "c1", 18)

    await generator.generate("c1", "hello", "alice")
    await generator.drain()

    transcript = model.summary_prompts[0].split("\n\n")[1]
    lines = transcript.split("\n")
    assert len(lines) == 10
    assert lines[-1] == f"{BOT_AUTHOR}: Sure thing!"


async def test_summary_failure_keeps_previous_summary(
    generator: ResponseGenerator, memory: MemoryManager, model: FakeModel
) -> None:
    await _prefill(memory, "c1", 8)
    channel = await memory.get_or_create("c1")
    channel.summary = "Earlier summary."
    model.fail_summaries = True

    result = await generator.generate("c1", "hello", "alice")
    await generator.drain()

    assert result == "Sure thing!"
    assert channel.summary == "Earlier summary."


async def test_summarize_skips_short_history(
    generator: ResponseGenerator, memory: MemoryManager, model: FakeModel
) -> None:
    await _prefill(memory, "c1", 4)

    assert await generator.summarize("c1") is False
    assert model.prompts == []


async def test_summary_not_persisted_until_next_append(
    mock_store: AsyncMock, model: FakeModel
) -> None:
    memory = MemoryManager(ChannelCache(), mock_store)
    generator = ResponseGenerator(memory, model, mock_store)
    await _prefill(memory, "c1", 8)
    await memory.flush()

    await generator.generate("c1", "hello", "alice")
    await generator.drain()
    writes = mock_store.upsert_conversation.await_count
    assert mock_store.upsert_conversation.await_args.args[0].summary == ""

    await memory.append("c1", "user", "follow-up", "alice")
    await memory.flush()
    assert mock_store.upsert_conversation.await_count == writes + 1
    assert mock_store.upsert_conversation.await_args.args[0].summary == SUMMARY_TEXT
