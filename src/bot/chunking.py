"""Split long replies into chunks that fit the gateway's message limit."""

from __future__ import annotations


def _natural_break(text: str, sep: str, max_length: int) -> int:
    """Index of the last *sep* at or before *max_length*, or -1.

    Breaks in the first half of the window are rejected so chunks stay
    reasonably full.
    """
    index = text.rfind(sep, 0, max_length + 1)
    if index == -1 or index < max_length / 2:
        return -1
    return index


def split_message(text: str, max_length: int = 2000) -> list[str]:
    """Split *text* into chunks of at most *max_length* characters.

    Prefers a newline, then a space, then a hard cut at *max_length*.
    Whitespace around each split point is dropped; the final piece is kept
    as-is.  Empty input yields no chunks.
    """
    if max_length < 1:
        msg = f"max_length must be positive, got {max_length}"
        raise ValueError(msg)

    chunks: list[str] = []
    remaining = text
    while remaining:
        if len(remaining) <= max_length:
            chunks.append(remaining)
            break

        split_at = _natural_break(remaining, "\n", max_length)
        if split_at == -1:
            split_at = _natural_break(remaining, " ", max_length)
        if split_at == -1:
            split_at = max_length

        chunks.append(remaining[:split_at])
        remaining = remaining[split_at:].strip()

    return chunks
