"""Pydantic models for card records, generation options and results.

Raw records are untrusted model output: ``type`` stays a plain string until the
validator checks it. Validated cards are frozen once built.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from notecards.core.errors import ProviderError


class CardType(str, Enum):
    ONE_WAY = "oneway"
    BIDIRECTIONAL = "bidirectional"
    MULTI_LINE = "multiline"
    MULTI_LINE_BIDIRECTIONAL = "multiline-bidirectional"
    CLOZE = "cloze"

    @property
    def label(self) -> str:
        return CARD_TYPE_LABELS[self]

    @classmethod
    def parse(cls, value: object) -> Optional["CardType"]:
        """Return the matching member, or None for anything unrecognized."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


CARD_TYPE_LABELS = {
    CardType.ONE_WAY: "one-way",
    CardType.BIDIRECTIONAL: "bidirectional",
    CardType.MULTI_LINE: "multi-line",
    CardType.MULTI_LINE_BIDIRECTIONAL: "multi-line bidirectional",
    CardType.CLOZE: "cloze deletion",
}


class GenerationOptions(BaseModel):
    """What the caller asks for; checked by ``validate_options`` before use."""

    max_cards: Optional[int] = None
    # Kept as strings so unknown values can be reported instead of failing parsing
    card_types: list[str] = Field(
        default_factory=lambda: [CardType.ONE_WAY.value, CardType.BIDIRECTIONAL.value]
    )
    custom_prompt: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    template_id: Optional[str] = None

    @property
    def allowed_types(self) -> list[CardType]:
        out: list[CardType] = []
        for raw in self.card_types:
            ct = CardType.parse(raw)
            if ct is not None and ct not in out:
                out.append(ct)
        return out


class RawCardRecord(BaseModel):
    front: str = ""
    back: str = ""
    type: str = CardType.ONE_WAY.value
    tags: list[str] = Field(default_factory=list)


class ValidatedCard(BaseModel):
    model_config = ConfigDict(frozen=True)

    front: str
    back: str
    type: CardType
    tags: tuple[str, ...] = ()


class EncodedDeck(BaseModel):
    """Card markup plus the tags the host applies at file level."""

    markup: str
    tags: list[str] = Field(default_factory=list)


class BackendResponse(BaseModel):
    """Raw text and usage returned by one model backend call."""

    text: str
    tokens_used: Optional[int] = None
    model: Optional[str] = None


class UsageMetadata(BaseModel):
    tokens_used: Optional[int] = None
    model: Optional[str] = None
    cards_generated: int = 0
    cards_rejected: int = 0


class GenerationResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    success: bool
    deck: Optional[EncodedDeck] = None
    cards: list[ValidatedCard] = Field(default_factory=list)
    usage: Optional[UsageMetadata] = None
    error: Optional[str] = None
    warnings: list[str] = Field(default_factory=list)
    provider_error: Optional[ProviderError] = Field(default=None, exclude=True)

    @property
    def markup(self) -> str:
        return self.deck.markup if self.deck else ""
