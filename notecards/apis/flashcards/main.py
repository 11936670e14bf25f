from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, status

from notecards.core.config import settings
from notecards.core.errors import OptionsError, TemplateError
from notecards.modules.flashcards.backends import build_backend_from_settings
from notecards.modules.flashcards.encoder import detect_type
from notecards.modules.flashcards.interpreter import interpret_response
from notecards.modules.flashcards.main import FlashcardsGenerator, validate_and_encode
from notecards.modules.flashcards.models import (
    GenerationOptions,
    NoteContent,
    ProcessedContent,
    RawCardRecord,
)
from notecards.modules.flashcards.normalizer import normalize_note
from notecards.modules.flashcards.prompts import PromptComposer
from notecards.modules.flashcards.validator import validate_options
from .schemas import (
    DetectRequest,
    DetectResponse,
    EncodeRequest,
    GenerateRequest,
    GenerationResponse,
    InterpretRequest,
    NormalizeRequest,
    PromptRequest,
    PromptResponse,
    TemplateList,
)


router = APIRouter()

PREFIX = f"/{settings.app.version}/flashcards"


@lru_cache(maxsize=1)
def get_composer() -> PromptComposer:
    return PromptComposer()


def get_generator(
    composer: PromptComposer = Depends(get_composer),
) -> FlashcardsGenerator:
    return FlashcardsGenerator(build_backend_from_settings(), composer=composer)


def _check_options(options: GenerationOptions) -> None:
    try:
        validate_options(
            options,
            max_cards_limit=settings.pipeline.max_cards_limit,
            max_prompt_chars=settings.pipeline.max_prompt_chars,
        )
    except OptionsError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": e.message, "errors": e.errors},
        ) from e


@router.post(f"{PREFIX}/normalize", response_model=ProcessedContent, tags=["flashcards"])
async def normalize_content(req: NormalizeRequest) -> ProcessedContent:
    note = NoteContent(text=req.text, title=req.title or "Untitled")
    return normalize_note(note, req.options)


@router.get(f"{PREFIX}/templates", response_model=TemplateList, tags=["flashcards"])
async def list_templates(
    composer: PromptComposer = Depends(get_composer),
) -> TemplateList:
    return TemplateList(templates=composer.all())


@router.post(f"{PREFIX}/prompt", response_model=PromptResponse, tags=["flashcards"])
async def render_prompt(
    req: PromptRequest,
    composer: PromptComposer = Depends(get_composer),
) -> PromptResponse:
    try:
        prompt = composer.render(req.template_id, req.context)
    except TemplateError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e
    return PromptResponse(template_id=req.template_id, prompt=prompt)


@router.post(f"{PREFIX}/interpret", response_model=list[RawCardRecord], tags=["flashcards"])
async def interpret(req: InterpretRequest) -> list[RawCardRecord]:
    _check_options(req.options)
    return interpret_response(req.raw_text, req.options)


@router.post(f"{PREFIX}/encode", response_model=GenerationResponse, tags=["flashcards"])
async def encode(req: EncodeRequest) -> GenerationResponse:
    _check_options(req.options)
    return GenerationResponse.from_result(validate_and_encode(req.cards, req.options))


@router.post(f"{PREFIX}/detect", response_model=DetectResponse, tags=["flashcards"])
async def detect(req: DetectRequest) -> DetectResponse:
    card_type = detect_type(req.markup)
    return DetectResponse(type=card_type, detected=card_type is not None)


@router.post(f"{PREFIX}/generate", response_model=GenerationResponse, tags=["flashcards"])
async def generate(
    req: GenerateRequest,
    generator: FlashcardsGenerator = Depends(get_generator),
) -> GenerationResponse:
    result = await generator.generate(req.text, req.options, title=req.title)
    return GenerationResponse.from_result(result)
