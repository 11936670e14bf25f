from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from notecards.modules.flashcards.models import (
    CardType,
    EncodedDeck,
    GenerationOptions,
    GenerationResult,
    ProcessingOptions,
    PromptContext,
    PromptTemplate,
    RawCardRecord,
    UsageMetadata,
    ValidatedCard,
)


class NormalizeRequest(BaseModel):
    text: str = Field(..., description="Raw note text (markdown)")
    title: Optional[str] = None
    options: Optional[ProcessingOptions] = None


class PromptRequest(BaseModel):
    template_id: str = Field(..., description="Registered template id")
    context: PromptContext


class PromptResponse(BaseModel):
    template_id: str
    prompt: str


class InterpretRequest(BaseModel):
    raw_text: str = Field(..., description="Model output to interpret")
    options: GenerationOptions = Field(default_factory=GenerationOptions)


class EncodeRequest(BaseModel):
    cards: list[RawCardRecord]
    options: GenerationOptions = Field(default_factory=GenerationOptions)


class GenerateRequest(BaseModel):
    text: str = Field(..., description="Note text to turn into flashcards")
    title: Optional[str] = None
    options: GenerationOptions = Field(default_factory=GenerationOptions)


class DetectRequest(BaseModel):
    markup: str


class DetectResponse(BaseModel):
    type: Optional[CardType] = None
    detected: bool


class TemplateList(BaseModel):
    templates: list[PromptTemplate] = Field(default_factory=list)


class GenerationResponse(BaseModel):
    """Wire form of a ``GenerationResult``; the provider error becomes its kind."""

    success: bool
    deck: Optional[EncodedDeck] = None
    cards: list[ValidatedCard] = Field(default_factory=list)
    usage: Optional[UsageMetadata] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: GenerationResult) -> "GenerationResponse":
        return cls(
            success=result.success,
            deck=result.deck,
            cards=result.cards,
            usage=result.usage,
            error=result.error,
            error_kind=result.provider_error.kind.value if result.provider_error else None,
            warnings=result.warnings,
        )
