"""Turn free-form model output into raw card records.

The structured read returns a ``StructuredRead`` result instead of raising;
when it fails the line scanner takes over. Nothing in here raises on bad model
output, and an empty list is a legitimate answer.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field, StrictStr, ValidationError

from notecards.core.errors import ParseError
from notecards.core.logging import get_logger
from notecards.modules.flashcards.models.cards import (
    CardType,
    GenerationOptions,
    RawCardRecord,
)

logger = get_logger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_LIST_MARK = r"(?:[-*•][ \t]*)?"
_QUESTION = re.compile(r"^" + _LIST_MARK + r"(?:q|question|front)[ \t]*:", re.IGNORECASE)
_ANSWER = re.compile(r"^" + _LIST_MARK + r"(?:a|answer|back)[ \t]*:", re.IGNORECASE)


class ResponseCard(BaseModel):
    front: StrictStr
    back: StrictStr
    type: StrictStr
    tags: Optional[list[Any]] = None


class ResponsePayload(BaseModel):
    """Expected model response: ``{"cards": [{front, back, type, tags?}]}``."""

    cards: list[ResponseCard]


class StructuredRead(BaseModel):
    ok: bool
    cards: list[ResponseCard] = Field(default_factory=list)
    reason: Optional[str] = None


def merge_tags(*groups: Optional[Iterable[Any]]) -> list[str]:
    """Union of tag groups, each tag ``#``-prefixed once, first seen order."""
    merged: list[str] = []
    for group in groups:
        for tag in group or []:
            if not isinstance(tag, str):
                continue
            bare = tag.strip().lstrip("#")
            if not bare:
                continue
            tagged = f"#{bare}"
            if tagged not in merged:
                merged.append(tagged)
    return merged


def coerce_type_name(value: str) -> str:
    """Known type names pass through; anything else becomes one-way."""
    ct = CardType.parse(value)
    return (ct or CardType.ONE_WAY).value


def _decode(raw_text: str) -> ResponsePayload:
    match = _JSON_OBJECT.search(raw_text or "")
    if match is None:
        raise ParseError("No JSON found in response")
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ParseError(f"Response JSON is malformed: {e.msg}") from e
    try:
        return ResponsePayload.model_validate(parsed)
    except ValidationError as e:
        raise ParseError(
            f"Invalid flashcard response format ({e.error_count()} error(s))"
        ) from e


def read_structured(raw_text: str) -> StructuredRead:
    """Schema-checked read of the JSON part of ``raw_text``."""
    try:
        payload = _decode(raw_text)
    except ParseError as e:
        return StructuredRead(ok=False, reason=e.message)
    return StructuredRead(ok=True, cards=payload.cards)


def scan_lines(raw_text: str, options: GenerationOptions) -> list[RawCardRecord]:
    """Fallback reader for ``Q:``/``A:`` or ``Front:``/``Back:`` style output."""
    default_type = (options.allowed_types or [CardType.ONE_WAY])[0].value
    records: list[RawCardRecord] = []
    front: Optional[str] = None
    back: Optional[str] = None

    def _emit() -> None:
        if front and back:
            records.append(
                RawCardRecord(
                    front=front,
                    back=back,
                    type=default_type,
                    tags=merge_tags(options.tags),
                )
            )

    for line in (raw_text or "").splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if _QUESTION.match(stripped):
            _emit()
            front = _QUESTION.sub("", stripped, count=1).strip()
            back = None
        elif _ANSWER.match(stripped):
            back = _ANSWER.sub("", stripped, count=1).strip()
        elif front and not back:
            back = stripped
    _emit()
    return records


def interpret_response(
    raw_text: str, options: GenerationOptions
) -> list[RawCardRecord]:
    read = read_structured(raw_text)
    if not read.ok:
        logger.debug("Structured read failed (%s); scanning lines", read.reason)
        records = scan_lines(raw_text, options)
        logger.info("Line scanner recovered %d card(s)", len(records))
        return records

    return [
        RawCardRecord(
            front=card.front.strip(),
            back=card.back.strip(),
            type=coerce_type_name(card.type),
            tags=merge_tags(card.tags, options.tags),
        )
        for card in read.cards
    ]
