"""Flashcards service class and module-level pipeline entry points.

``FlashcardsGenerator`` runs one request end to end: checks, normalize,
compose the prompt, one awaited backend call, interpret, validate, encode. It
never raises; every outcome is a ``GenerationResult``.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Optional

from notecards.core.config import PipelineSettings, settings
from notecards.core.errors import (
    CardValidationError,
    ContentError,
    OptionsError,
    ProviderError,
    describe_error,
)
from notecards.core.logging import get_logger, request_logger
from notecards.modules.flashcards.backends import ModelBackend
from notecards.modules.flashcards.encoder import encode_deck
from notecards.modules.flashcards.interpreter import interpret_response, merge_tags
from notecards.modules.flashcards.models.cards import (
    BackendResponse,
    GenerationOptions,
    GenerationResult,
    RawCardRecord,
    UsageMetadata,
)
from notecards.modules.flashcards.models.content import (
    NoteContent,
    ProcessedContent,
    ProcessingOptions,
)
from notecards.modules.flashcards.models.templates import PromptContext
from notecards.modules.flashcards.normalizer import normalize, normalize_note
from notecards.modules.flashcards.prompts import PromptComposer
from notecards.modules.flashcards.validator import (
    validate_cards,
    validate_content,
    validate_options,
)

logger = get_logger(__name__)


def processing_options_from(pipeline: PipelineSettings) -> ProcessingOptions:
    return ProcessingOptions(
        max_tokens=pipeline.max_tokens,
        chunk_size=pipeline.chunk_size,
        overlap_size=pipeline.overlap_size,
    )


def validate_and_encode(
    records: list[RawCardRecord],
    options: GenerationOptions,
    *,
    usage: Optional[BackendResponse] = None,
) -> GenerationResult:
    """Validate raw records and encode the survivors into deck markup."""
    try:
        report = validate_cards(records, options)
    except CardValidationError as e:
        return GenerationResult(success=False, error=e.message, warnings=e.errors)

    deck = encode_deck(report.cards, merge_tags(options.tags))
    return GenerationResult(
        success=True,
        deck=deck,
        cards=report.cards,
        usage=UsageMetadata(
            tokens_used=usage.tokens_used if usage else None,
            model=usage.model if usage else None,
            cards_generated=len(report.cards),
            cards_rejected=len(report.errors),
        ),
        warnings=report.errors,
    )


class FlashcardsGenerator:
    """Runs the note-to-deck pipeline against one model backend."""

    def __init__(
        self,
        backend: ModelBackend,
        *,
        composer: Optional[PromptComposer] = None,
        pipeline: Optional[PipelineSettings] = None,
    ) -> None:
        self.backend = backend
        self.composer = composer or PromptComposer()
        self.pipeline = pipeline or settings.pipeline

    def check_request(self, text: str, options: GenerationOptions) -> list[str]:
        """Raises ContentError or OptionsError; no model call is made.

        Returns the content quality warnings for a note that passed.
        """
        report = validate_content(text, self.pipeline.min_words)
        validate_options(
            options,
            max_cards_limit=self.pipeline.max_cards_limit,
            max_prompt_chars=self.pipeline.max_prompt_chars,
        )
        return report.warnings

    def prepare(
        self,
        text: str,
        options: GenerationOptions,
        *,
        title: Optional[str] = None,
    ) -> tuple[ProcessedContent, str, str]:
        """Normalize the note and compose its prompt: ``(processed, template_id, prompt)``."""
        note = NoteContent(text=text, title=title or "Untitled")
        processed = normalize_note(note, processing_options_from(self.pipeline))
        template_id, prompt = self.composer.compose(processed, options)
        return processed, template_id, prompt

    async def generate(
        self,
        text: str,
        options: GenerationOptions,
        *,
        title: Optional[str] = None,
    ) -> GenerationResult:
        request_id = uuid.uuid4().hex[:8]
        log = request_logger(logger, request_id)

        try:
            notices = self.check_request(text, options)
        except (ContentError, OptionsError) as e:
            log.info("Request rejected before model call: %s", e.message)
            return GenerationResult(success=False, error=e.message, warnings=e.errors)
        for notice in notices:
            log.info("Content warning: %s", notice)

        try:
            processed, template_id, prompt = self.prepare(text, options, title=title)
            log.info(
                "Generating with %s (template=%s, words=%d, chunks=%d)",
                self.backend.name,
                template_id,
                processed.metadata.word_count,
                len(processed.metadata.chunks or []),
            )
            response = await self.backend.generate_flashcards(prompt, options)
            records = interpret_response(response.text, options)
            result = validate_and_encode(records, options, usage=response)
        except ProviderError as e:
            log.warning("Backend %s failed: %s", self.backend.name, e.message)
            return GenerationResult(
                success=False,
                error=describe_error(e),
                warnings=notices,
                provider_error=e,
            )
        except Exception as e:  # noqa: BLE001
            log.exception("Flashcard generation failed")
            return GenerationResult(success=False, error=describe_error(e), warnings=notices)

        if result.success:
            log.info(
                "Generated %d card(s), skipped %d",
                len(result.cards),
                result.usage.cards_rejected,
            )
        else:
            log.info("No usable cards: %s", result.error)
        if notices:
            result = result.model_copy(update={"warnings": notices + result.warnings})
        return result

    def generate_sync(
        self,
        text: str,
        options: GenerationOptions,
        *,
        title: Optional[str] = None,
    ) -> GenerationResult:
        """Synchronous wrapper if an event loop is unavailable."""
        return asyncio.run(self.generate(text, options, title=title))


def render_prompt(
    template_id: str,
    context: PromptContext,
    composer: Optional[PromptComposer] = None,
) -> str:
    return (composer or PromptComposer()).render(template_id, context)


async def generate(
    text: str,
    options: GenerationOptions,
    backend: ModelBackend,
    *,
    title: Optional[str] = None,
) -> GenerationResult:
    return await FlashcardsGenerator(backend).generate(text, options, title=title)


__all__ = [
    "FlashcardsGenerator",
    "generate",
    "interpret_response",
    "normalize",
    "render_prompt",
    "validate_and_encode",
]
