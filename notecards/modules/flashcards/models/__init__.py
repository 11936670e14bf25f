from .cards import (
    BackendResponse,
    CardType,
    EncodedDeck,
    GenerationOptions,
    GenerationResult,
    RawCardRecord,
    UsageMetadata,
    ValidatedCard,
)
from .content import (
    Chunk,
    ContentMetadata,
    NoteContent,
    ProcessedContent,
    ProcessingOptions,
)
from .templates import PromptContext, PromptTemplate, TemplateVariable

__all__ = [
    "BackendResponse",
    "CardType",
    "EncodedDeck",
    "GenerationOptions",
    "GenerationResult",
    "RawCardRecord",
    "UsageMetadata",
    "ValidatedCard",
    "Chunk",
    "ContentMetadata",
    "NoteContent",
    "ProcessedContent",
    "ProcessingOptions",
    "PromptContext",
    "PromptTemplate",
    "TemplateVariable",
]
