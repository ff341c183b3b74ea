"""Corpus projection and greedy chunk packing."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import json
import re
from typing import Any

from gemini_guard.constants import (
    CHUNK_CONTENT_CHARS,
    CHUNK_EXCERPT_CHARS,
    MAX_CHECK_CHUNK_CHARS,
)
from gemini_guard.core.types import CorpusChunk

_WHITESPACE = re.compile(r"\s+")
_PROJECTED_FIELDS = ("id", "title", "slug", "region", "community")


def truncate_text(value: Any, max_chars: int) -> str:
    """Collapse whitespace and cut to ``max_chars``, appending ``...`` if cut."""
    text = _WHITESPACE.sub(" ", str(value or "")).strip()
    if len(text) <= max_chars:
        return text
    return f"{text[:max_chars].strip()}..."


def project_item(item: Mapping[str, Any]) -> dict[str, Any]:
    """Compact view of a corpus item sent to the comparison model."""
    entry: dict[str, Any] = {field: item.get(field) for field in _PROJECTED_FIELDS}
    entry["excerpt"] = truncate_text(item.get("excerpt"), CHUNK_EXCERPT_CHARS)
    entry["content"] = truncate_text(item.get("content"), CHUNK_CONTENT_CHARS)
    return entry


def serialized_size(entry: Mapping[str, Any]) -> int:
    text = json.dumps(entry, ensure_ascii=False, separators=(",", ":"), default=str)
    return len(text)


def build_chunks(
    items: Iterable[Mapping[str, Any]],
    max_chunk_chars: int = MAX_CHECK_CHUNK_CHARS,
) -> list[CorpusChunk]:
    """Pack projected items into chunks of at most ``max_chunk_chars``.

    Order is preserved and every item lands in exactly one chunk. A new chunk
    starts when the next item would push the current one over budget; an item
    that is larger than the budget on its own gets a chunk to itself.
    """
    if max_chunk_chars <= 0:
        raise ValueError("max_chunk_chars must be positive")

    chunks: list[CorpusChunk] = []
    current: list[dict[str, Any]] = []
    current_size = 0

    for item in items:
        entry = project_item(item)
        size = serialized_size(entry)
        if current and current_size + size > max_chunk_chars:
            chunks.append(CorpusChunk(len(chunks), tuple(current), current_size))
            current = []
            current_size = 0
        current.append(entry)
        current_size += size

    if current:
        chunks.append(CorpusChunk(len(chunks), tuple(current), current_size))
    return chunks
