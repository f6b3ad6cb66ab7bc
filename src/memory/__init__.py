"""Conversation memory: models, channel cache, durable store and manager."""

from src.memory.cache import ChannelCache
from src.memory.manager import MemoryManager
from src.memory.models import ChannelMemory, MemorySnapshot, Message, PersistOutcome
from src.memory.store import BotStore, create_store

__all__ = [
    "BotStore",
    "ChannelCache",
    "ChannelMemory",
    "MemoryManager",
    "MemorySnapshot",
    "Message",
    "PersistOutcome",
    "create_store",
]
