"""Prompt assembly for replies and running summaries."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from src.memory.models import Message

DEFAULT_SYSTEM_INSTRUCTIONS = """You are a helpful AI assistant for the Figmenta team.

Your role is to:
- Answer questions about projects and tasks
- Help with brainstorming and ideation
- Provide technical guidance when asked
- Be friendly and professional in all interactions

Guidelines:
- Keep responses concise unless asked for more detail
- Use markdown formatting when appropriate
- If you don't know something, say so honestly
- Reference previous conversation context when relevant"""

NO_CONTEXT = "No previous context."


def format_context(messages: Sequence[Message], limit: int) -> str:
    """Render the last *limit* messages, oldest first, one per line."""
    if limit <= 0:
        return ""
    return "\n".join(m.render() for m in messages[-limit:])


def build_response_prompt(
    system_instructions: str,
    context: str,
    user_name: str,
    user_message: str,
    char_limit: int = 2000,
) -> str:
    """Compose the single prompt sent to the model for a reply."""
    return (
        f"{system_instructions}\n\n"
        f"CONVERSATION CONTEXT:\n"
        f"{context or NO_CONTEXT}\n\n"
        f"CURRENT MESSAGE FROM {user_name}:\n"
        f"{user_message}\n\n"
        f"Respond naturally and helpfully. "
        f"Keep your response under {char_limit} characters for Discord."
    )


def build_summary_prompt(transcript: str) -> str:
    """Ask for a 2-3 sentence summary of a transcript."""
    return (
        "Summarize this conversation in 2-3 sentences, "
        "focusing on key topics and decisions:\n\n"
        f"{transcript}\n\n"
        "Summary:"
    )
