"""Markdown normalization and word-window chunking for note text.

``normalize`` never raises on odd input: an empty note comes back as an empty
``ProcessedContent`` with a zero word count, and deciding whether that is
acceptable is left to the caller.
"""

from __future__ import annotations

import math
import re
from typing import Optional

from notecards.core.logging import get_logger
from notecards.modules.flashcards.models.content import (
    Chunk,
    ContentMetadata,
    NoteContent,
    ProcessedContent,
    ProcessingOptions,
)

logger = get_logger(__name__)

BULLET = "• "

_FRONT_MATTER = re.compile(r"\A---[ \t]*\n.*?\n---[ \t]*(?:\n|\Z)", re.DOTALL)
_HEADING = re.compile(r"^#{1,6}\s+(.+)$", re.MULTILINE)
_IMAGE = re.compile(r"!\[([^\]]*)\]\([^)]+\)")
_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_FENCED_CODE = re.compile(r"```[\w+-]*\n(.*?)\n?```", re.DOTALL)
_INLINE_CODE = re.compile(r"`([^`\n]+)`")
_BOLD = re.compile(r"\*\*([^*\n]+)\*\*")
_BOLD_UNDERSCORE = re.compile(r"(?<!\w)__([^_\n]+)__(?!\w)")
_ITALIC = re.compile(r"\*([^*\n]+)\*")
_ITALIC_UNDERSCORE = re.compile(r"(?<!\w)_([^_\n]+)_(?!\w)")
_STRIKE = re.compile(r"~~([^~\n]+)~~")
_BULLET_ITEM = re.compile(r"^[ \t]*[-*+][ \t]+", re.MULTILINE)
_NUMBERED_ITEM = re.compile(r"^[ \t]*\d+\.[ \t]+", re.MULTILINE)
_BLOCKQUOTE = re.compile(r"^[ \t]*>[ \t]?", re.MULTILINE)
_EXCESS_NEWLINES = re.compile(r"\n{3,}")
_HORIZONTAL_SPACE = re.compile(r"[ \t]+")

_HAS_IMAGE = re.compile(r"!\[.*?\]\(.*?\)")
_HAS_LINK = re.compile(r"\[.*?\]\(.*?\)")
_HAS_CODE = re.compile(r"```[\s\S]*?```|`[^`]+`")

_BOLD_TERM = re.compile(r"\*\*([^*]+)\*\*")


def count_words(text: str) -> int:
    return len(text.split())


def estimate_tokens(text: str) -> int:
    """Rough estimate: one token per four characters."""
    return math.ceil(len(text) / 4)


def strip_front_matter(text: str) -> str:
    return _FRONT_MATTER.sub("", text, count=1)


def clean_markdown(text: str) -> str:
    """Reduce markdown to plain study text."""
    cleaned = strip_front_matter(text)
    cleaned = _HEADING.sub(r"\1", cleaned)
    cleaned = _IMAGE.sub(r"\1", cleaned)
    cleaned = _LINK.sub(r"\1", cleaned)
    cleaned = _FENCED_CODE.sub(r"\1", cleaned)
    cleaned = _INLINE_CODE.sub(r"\1", cleaned)
    # list markers go first so "* item" lines are not read as italics
    cleaned = _BULLET_ITEM.sub(BULLET, cleaned)
    cleaned = _NUMBERED_ITEM.sub(BULLET, cleaned)
    cleaned = _BOLD.sub(r"\1", cleaned)
    cleaned = _BOLD_UNDERSCORE.sub(r"\1", cleaned)
    cleaned = _ITALIC.sub(r"\1", cleaned)
    cleaned = _ITALIC_UNDERSCORE.sub(r"\1", cleaned)
    cleaned = _STRIKE.sub(r"\1", cleaned)
    cleaned = _BLOCKQUOTE.sub("", cleaned)
    cleaned = _EXCESS_NEWLINES.sub("\n\n", cleaned)
    cleaned = _HORIZONTAL_SPACE.sub(" ", cleaned)
    return cleaned.strip()


def light_clean_markdown(text: str) -> str:
    """Keep formatting; only drop front-matter and excess blank lines."""
    cleaned = strip_front_matter(text)
    cleaned = _EXCESS_NEWLINES.sub("\n\n", cleaned)
    return cleaned.strip()


def chunk_words(text: str, chunk_size: int, overlap_size: int) -> list[Chunk]:
    """Split ``text`` into windows of ``chunk_size`` words.

    Each window after the first starts ``chunk_size - overlap_size`` words
    after the previous one, so neighbours share ``overlap_size`` words and the
    windows together cover every word. An overlap that would stop the window
    from advancing is clamped to ``chunk_size - 1``.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
    if overlap_size < 0:
        overlap_size = 0
    if overlap_size >= chunk_size:
        logger.warning(
            "Chunk overlap %d is not smaller than chunk size %d; clamping to %d",
            overlap_size,
            chunk_size,
            chunk_size - 1,
        )
        overlap_size = chunk_size - 1

    words = text.split()
    if len(words) <= chunk_size:
        return [Chunk(index=0, start=0, end=len(words), text=text)]

    chunks: list[Chunk] = []
    step = chunk_size - overlap_size
    start = 0
    while True:
        end = min(start + chunk_size, len(words))
        chunks.append(
            Chunk(
                index=len(chunks),
                start=start,
                end=end,
                text=" ".join(words[start:end]),
            )
        )
        if end >= len(words):
            break
        start += step
    return chunks


def extract_metadata(text: str, title: str) -> ContentMetadata:
    return ContentMetadata(
        title=title or "Untitled",
        word_count=count_words(text),
        has_images=bool(_HAS_IMAGE.search(text)),
        has_links=bool(_HAS_LINK.search(text)),
        has_code_blocks=bool(_HAS_CODE.search(text)),
    )


def extract_key_topics(text: str) -> list[str]:
    """Headings and bold terms, first occurrence wins."""
    topics: list[str] = []
    for found in _HEADING.findall(text) + _BOLD_TERM.findall(text):
        topic = found.strip()
        if topic and topic not in topics:
            topics.append(topic)
    return topics


def normalize(
    text: str,
    title: Optional[str] = None,
    options: Optional[ProcessingOptions] = None,
) -> ProcessedContent:
    """Clean note text for prompting and attach metadata (and chunks if long)."""
    opts = options or ProcessingOptions()
    text = text or ""

    metadata = extract_metadata(text, title or "")
    cleaned = (
        light_clean_markdown(text)
        if opts.preserve_formatting
        else clean_markdown(text)
    )

    estimated = estimate_tokens(cleaned)
    metadata.estimated_tokens = estimated
    if estimated > opts.max_tokens:
        chunks = chunk_words(cleaned, opts.chunk_size, opts.overlap_size)
        metadata.chunks = chunks
        logger.info(
            "Content of ~%d tokens exceeds %d; split into %d chunk(s)",
            estimated,
            opts.max_tokens,
            len(chunks),
        )
        if chunks:
            cleaned = chunks[0].text

    return ProcessedContent(
        cleaned_content=cleaned,
        original_content=text,
        metadata=metadata,
    )


def normalize_note(
    note: NoteContent, options: Optional[ProcessingOptions] = None
) -> ProcessedContent:
    return normalize(note.text, note.title, options)
