#!/usr/bin/env python3
"""Inspect and manage the copilot's stored conversations and config.

Usage examples:
    # Conversations, most recently active first
    uv run python scripts/conversations.py list

    # Forget one channel / every channel
    uv run python scripts/conversations.py clear 123456789012345678
    uv run python scripts/conversations.py clear-all --yes

    # Show or replace the system instructions
    uv run python scripts/conversations.py config
    uv run python scripts/conversations.py set-instructions @instructions.md

    # Knowledge document metadata
    uv run python scripts/conversations.py docs
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.config import settings
from src.memory.models import BotConfig
from src.memory.store import BotStore


def _store() -> BotStore:
    if not settings.store_configured():
        print("ERROR: set TURSO_DATABASE_URL or DATABASE_PATH in .env", file=sys.stderr)
        sys.exit(1)
    return BotStore()


async def cmd_list(store: BotStore, args: argparse.Namespace) -> None:
    records = await store.list_conversations()
    if not records:
        print("No conversations stored.")
        return
    total = sum(r.message_count for r in records)
    print(f"{len(records)} channels, {total} messages\n")
    for r in records:
        print(
            f"#{r.channel_name} ({r.channel_id}): {r.message_count} messages, "
            f"last {r.last_message_at}"
        )
        if r.running_summary and not args.brief:
            for line in r.running_summary.splitlines():
                print(f"    {line}")


async def cmd_clear(store: BotStore, args: argparse.Namespace) -> None:
    deleted = await store.delete_conversation(args.channel_id)
    print("Deleted." if deleted else f"No conversation for channel {args.channel_id}.")


async def cmd_clear_all(store: BotStore, args: argparse.Namespace) -> None:
    if not args.yes:
        print("Refusing to delete every conversation without --yes", file=sys.stderr)
        sys.exit(1)
    count = await store.delete_all_conversations()
    print(f"Deleted {count} conversations.")


async def cmd_config(store: BotStore, args: argparse.Namespace) -> None:
    config = await store.get_config()
    if config is None:
        print("No config saved; the bot uses its built-in instructions.")
        return
    for key, value in config.model_dump().items():
        if key == "system_instructions":
            continue
        print(f"{key}: {value}")
    print("\nsystem_instructions:\n")
    print(config.system_instructions or "(empty; built-in default in use)")


async def cmd_set_instructions(store: BotStore, args: argparse.Namespace) -> None:
    text = args.text
    if text.startswith("@"):
        text = Path(text[1:]).read_text(encoding="utf-8")
    config = await store.get_config() or BotConfig()
    saved = await store.save_config(config.model_copy(update={"system_instructions": text}))
    print(f"Saved instructions ({len(saved.system_instructions)} chars) at {saved.updated_at}.")


async def cmd_docs(store: BotStore, args: argparse.Namespace) -> None:
    docs = await store.list_knowledge_docs()
    if not docs:
        print("No knowledge documents.")
        return
    for doc in docs:
        print(f"{doc.id}  {doc.name}  {doc.size} bytes  {doc.chunks} chunks  {doc.uploaded_at}")


COMMANDS = {
    "list": cmd_list,
    "clear": cmd_clear,
    "clear-all": cmd_clear_all,
    "config": cmd_config,
    "set-instructions": cmd_set_instructions,
    "docs": cmd_docs,
}


def main() -> None:
    parser = argparse.ArgumentParser(description="Manage stored copilot conversations")
    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="List conversations, newest first")
    p_list.add_argument("--brief", action="store_true", help="Omit summaries")

    p_clear = sub.add_parser("clear", help="Delete one channel's conversation")
    p_clear.add_argument("channel_id")

    p_all = sub.add_parser("clear-all", help="Delete every conversation")
    p_all.add_argument("--yes", action="store_true", help="Confirm deletion")

    sub.add_parser("config", help="Show the bot config")

    p_set = sub.add_parser("set-instructions", help="Replace the system instructions")
    p_set.add_argument("text", help="Instruction text, or @path to read from a file")

    sub.add_parser("docs", help="List knowledge documents")

    args = parser.parse_args()
    asyncio.run(COMMANDS[args.command](_store(), args))


if __name__ == "__main__":
    main()
