from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from notecards.modules.flashcards.models.cards import CardType


class TemplateVariable(BaseModel):
    name: str
    description: str
    example: str


class PromptTemplate(BaseModel):
    id: str
    name: str
    description: str = ""
    template: str
    variables: list[str] = Field(default_factory=list)
    card_types: list[CardType] = Field(default_factory=list)


class PromptContext(BaseModel):
    """Everything a template can reference; built once per request."""

    title: str
    content: str
    word_count: int = 0
    max_cards: Optional[int] = None
    card_types: list[CardType] = Field(default_factory=lambda: [CardType.ONE_WAY])
    tags: list[str] = Field(default_factory=list)
    metadata: Optional[dict[str, Any]] = None
