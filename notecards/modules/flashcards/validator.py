"""Validation of request inputs and of the cards a model produced.

Per-card problems are collected and the card is skipped; a batch only fails
when nothing survives. Content and option checks raise before any model call.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from notecards.core.errors import CardValidationError, ContentError, OptionsError
from notecards.core.logging import get_logger
from notecards.modules.flashcards.models.cards import (
    CardType,
    GenerationOptions,
    RawCardRecord,
    ValidatedCard,
)
from notecards.modules.flashcards.normalizer import clean_markdown, count_words

logger = get_logger(__name__)

CLOZE_SPAN = re.compile(r"==[^=]+==")
_FENCED_BLOCK = re.compile(r"```[\s\S]*?```")
_HAS_ALNUM = re.compile(r"[^\W_]")

DEFAULT_MIN_WORDS = 5
DEFAULT_MAX_CARDS_LIMIT = 100
DEFAULT_MAX_PROMPT_CHARS = 2000

# Content quality thresholds; crossing one is a warning, not an error
SHORT_CONTENT_WORDS = 20
LONG_CONTENT_WORDS = 5000
MEANINGFUL_RATIO = 0.3
EDUCATIONAL_KEYWORDS = (
    "definition", "concept", "theory", "principle", "law", "rule",
    "example", "formula", "equation", "process", "method", "technique",
    "cause", "effect", "reason", "because", "therefore", "thus",
    "important", "key", "main", "primary", "secondary", "major",
    "characteristic", "feature", "property", "attribute", "function",
    "purpose", "goal", "objective", "result", "outcome", "conclusion",
)


def has_cloze_span(text: str) -> bool:
    return bool(CLOZE_SPAN.search(text or ""))


def tag_errors(tag: str) -> list[str]:
    errors: list[str] = []
    if not tag.startswith("#"):
        errors.append(f'Tag "{tag}" must start with #')
    elif tag.startswith("##"):
        errors.append(f'Tag "{tag}" must start with a single #')
    if any(ch.isspace() for ch in tag):
        errors.append(f'Tag "{tag}" cannot contain spaces')
    return errors


def validate_card(record: RawCardRecord) -> list[str]:
    """Problems with a single record; an empty list means it is usable."""
    errors: list[str] = []
    if not record.front.strip():
        errors.append("Front content is required and cannot be empty")
    if not record.back.strip():
        errors.append("Back content is required and cannot be empty")

    card_type = CardType.parse(record.type)
    if card_type is None:
        errors.append(f"Invalid card type: {record.type}")
    elif card_type is CardType.CLOZE and not has_cloze_span(record.front):
        errors.append("Cloze cards must contain text wrapped in == markers")

    for tag in record.tags:
        errors.extend(tag_errors(tag))
    return errors


def coerce_type(
    record: RawCardRecord, allowed: list[CardType]
) -> Optional[CardType]:
    """Fit a valid record's type into ``allowed``; None means drop it."""
    current = CardType.parse(record.type)
    if current in allowed:
        return current
    target = allowed[0]
    if target is CardType.CLOZE and not has_cloze_span(record.front):
        return None
    return target


@dataclass
class ValidationReport:
    cards: list[ValidatedCard] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def validate_cards(
    records: list[RawCardRecord], options: GenerationOptions
) -> ValidationReport:
    """Validate, coerce and cap a batch of raw records.

    Raises:
        CardValidationError: when no record survives.
    """
    allowed = options.allowed_types or [CardType.ONE_WAY]
    report = ValidationReport()

    if not records:
        raise CardValidationError(
            "No valid flashcards could be generated. The model did not return any cards."
        )

    for i, record in enumerate(records, start=1):
        problems = validate_card(record)
        if problems:
            report.errors.append(f"Card {i}: {', '.join(problems)}")
            continue

        card_type = coerce_type(record, allowed)
        if card_type is None:
            report.errors.append(
                f"Card {i}: cannot convert {record.type} card to "
                f"{allowed[0].value} without == markers"
            )
            continue

        report.cards.append(
            ValidatedCard(
                front=record.front.strip(),
                back=record.back.strip(),
                type=card_type,
                tags=tuple(record.tags),
            )
        )

    if not report.cards:
        raise CardValidationError(
            f"No valid flashcards could be generated. Errors: {'; '.join(report.errors)}",
            report.errors,
        )

    if options.max_cards and len(report.cards) > options.max_cards:
        logger.debug(
            "Truncating %d cards to max_cards=%d", len(report.cards), options.max_cards
        )
        report.cards = report.cards[: options.max_cards]

    if report.errors:
        logger.warning("Skipped %d invalid card(s)", len(report.errors))
    return report


@dataclass
class ContentReport:
    word_count: int
    meaningful_words: int
    warnings: list[str] = field(default_factory=list)


def meaningful_word_count(text: str) -> int:
    """Words left after markdown is stripped and code blocks are dropped."""
    stripped = clean_markdown(_FENCED_BLOCK.sub("", text))
    return sum(1 for word in stripped.split() if _HAS_ALNUM.search(word))


def has_educational_indicators(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in EDUCATIONAL_KEYWORDS)


def validate_content(text: str, min_words: int = DEFAULT_MIN_WORDS) -> ContentReport:
    """Reject empty or too-short note text; report quality warnings otherwise.

    Raises:
        ContentError: when the note is empty or below ``min_words``.
    """
    if not text or not text.strip():
        raise ContentError(
            "Content cannot be empty. Please provide some text to generate flashcards from."
        )
    words = count_words(text)
    if words < min_words:
        raise ContentError(
            f"Content is too short for meaningful flashcard generation "
            f"({words} word(s), minimum {min_words})."
        )

    report = ContentReport(word_count=words, meaningful_words=meaningful_word_count(text))
    if words < SHORT_CONTENT_WORDS:
        report.warnings.append("Content is quite short - you may get limited flashcards")
    if words > LONG_CONTENT_WORDS:
        report.warnings.append("Content is very long - generation may take longer")
    if report.meaningful_words < words * MEANINGFUL_RATIO:
        report.warnings.append("Content appears to be mostly formatting with limited text")
    if not has_educational_indicators(clean_markdown(text)):
        report.warnings.append("Content may not be well-suited for flashcard generation")
    return report


def validate_tags(tags: list[str]) -> list[str]:
    errors: list[str] = []
    for tag in tags:
        if not isinstance(tag, str) or not tag.strip():
            errors.append("Tags cannot be empty")
            continue
        if tag == "#":
            errors.append("Tag cannot be just a # symbol")
            continue
        errors.extend(tag_errors(tag))
    return errors


def validate_options(
    options: GenerationOptions,
    *,
    max_cards_limit: int = DEFAULT_MAX_CARDS_LIMIT,
    max_prompt_chars: int = DEFAULT_MAX_PROMPT_CHARS,
) -> None:
    """Reject the whole option set if any part of it is unusable.

    Raises:
        OptionsError: listing every problem found.
    """
    errors: list[str] = []

    if not options.card_types:
        errors.append("At least one card type must be selected")
    else:
        invalid = [t for t in options.card_types if CardType.parse(t) is None]
        if invalid:
            errors.append(f"Invalid card types: {', '.join(map(str, invalid))}")

    if options.max_cards is not None:
        if options.max_cards < 1:
            errors.append("Maximum cards must be at least 1")
        elif options.max_cards > max_cards_limit:
            errors.append(f"Maximum cards cannot exceed {max_cards_limit}")

    errors.extend(validate_tags(options.tags))

    if options.custom_prompt is not None and len(options.custom_prompt) > max_prompt_chars:
        errors.append(
            f"Custom prompt is too long ({len(options.custom_prompt)} > {max_prompt_chars} characters)"
        )

    if errors:
        raise OptionsError(f"Invalid generation options: {'; '.join(errors)}", errors)
