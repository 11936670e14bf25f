"""Spaced-repetition markup for validated cards.

| type                      | markup            |
|---------------------------|-------------------|
| one-way                   | ``front::back``   |
| bidirectional             | ``front:::back``  |
| multi-line                | ``front?\\nback``  |
| multi-line bidirectional  | ``front???\\nback``|
| cloze                     | ``front`` only    |

The separators overlap as substrings, so ``detect_type`` walks
``DETECTION_ORDER`` and the first hit wins. Its cloze check only needs one
non-empty ``==span==`` somewhere in the text; it does not check that every
``==`` is paired.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from notecards.modules.flashcards.models.cards import (
    CardType,
    EncodedDeck,
    ValidatedCard,
)
from notecards.modules.flashcards.validator import has_cloze_span

CARD_SEPARATOR = "\n\n"

SEPARATORS: dict[CardType, str] = {
    CardType.ONE_WAY: "::",
    CardType.BIDIRECTIONAL: ":::",
    CardType.MULTI_LINE: "?",
    CardType.MULTI_LINE_BIDIRECTIONAL: "???",
    CardType.CLOZE: "==",
}

_TEMPLATES: dict[CardType, str] = {
    CardType.ONE_WAY: "{front}::{back}",
    CardType.BIDIRECTIONAL: "{front}:::{back}",
    CardType.MULTI_LINE: "{front}?\n{back}",
    CardType.MULTI_LINE_BIDIRECTIONAL: "{front}???\n{back}",
    CardType.CLOZE: "{front}",
}

DETECTION_ORDER: tuple[CardType, ...] = (
    CardType.MULTI_LINE_BIDIRECTIONAL,
    CardType.BIDIRECTIONAL,
    CardType.ONE_WAY,
    CardType.MULTI_LINE,
    CardType.CLOZE,
)

_SPACE_RUN = re.compile(r"[^\S\n]+")
_LINE_EDGES = re.compile(r" ?\n ?")
_BLANK_LINES = re.compile(r"\n{2,}")


def clean_text(text: str) -> str:
    """Collapse whitespace but keep single line breaks; idempotent."""
    cleaned = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    cleaned = _SPACE_RUN.sub(" ", cleaned)
    cleaned = _LINE_EDGES.sub("\n", cleaned)
    cleaned = _BLANK_LINES.sub("\n", cleaned)
    return cleaned.strip()


def get_separator(card_type: CardType) -> str:
    return SEPARATORS[CardType(card_type)]


def encode_card(card: ValidatedCard) -> str:
    return _TEMPLATES[card.type].format(
        front=clean_text(card.front), back=clean_text(card.back)
    )


def encode_cards(cards: Iterable[ValidatedCard]) -> str:
    return CARD_SEPARATOR.join(encode_card(c) for c in cards)


def encode_deck(cards: list[ValidatedCard], tags: Optional[list[str]] = None) -> EncodedDeck:
    return EncodedDeck(markup=encode_cards(cards), tags=list(tags or []))


def _matches(card_type: CardType, markup: str) -> bool:
    if card_type is CardType.CLOZE:
        return SEPARATORS[card_type] in markup and has_cloze_span(markup)
    return SEPARATORS[card_type] in markup


def detect_type(markup: str) -> Optional[CardType]:
    """Card type encoded in ``markup``, or None when nothing matches."""
    for card_type in DETECTION_ORDER:
        if _matches(card_type, markup):
            return card_type
    return None


def split_cards(markup: str) -> list[str]:
    """Break deck markup back into per-card blocks."""
    return [block.strip() for block in re.split(r"\n\s*\n", markup or "") if block.strip()]
