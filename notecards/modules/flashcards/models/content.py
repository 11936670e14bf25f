"""Models produced by the content normalizer."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class NoteContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    title: str = "Untitled"


class Chunk(BaseModel):
    """A word window over the cleaned text; ``end`` is exclusive."""

    model_config = ConfigDict(frozen=True)

    index: int
    start: int
    end: int
    text: str


class ContentMetadata(BaseModel):
    title: str = "Untitled"
    word_count: int = 0
    has_images: bool = False
    has_links: bool = False
    has_code_blocks: bool = False
    estimated_tokens: int = 0
    chunks: Optional[list[Chunk]] = None


class ProcessingOptions(BaseModel):
    max_tokens: int = 4000
    preserve_formatting: bool = False
    chunk_size: int = Field(default=3000, ge=1)
    overlap_size: int = Field(default=200, ge=0)


class ProcessedContent(BaseModel):
    cleaned_content: str
    original_content: str
    metadata: ContentMetadata
