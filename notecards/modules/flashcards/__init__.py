"""Flashcards module exports."""

from .models import CardType, GenerationOptions, GenerationResult, RawCardRecord, ValidatedCard
from .normalizer import normalize
from .prompts import PromptComposer
from .interpreter import interpret_response
from .encoder import detect_type, encode_cards
from .main import FlashcardsGenerator, generate, render_prompt, validate_and_encode

__all__ = [
    "CardType",
    "GenerationOptions",
    "GenerationResult",
    "RawCardRecord",
    "ValidatedCard",
    "normalize",
    "PromptComposer",
    "interpret_response",
    "detect_type",
    "encode_cards",
    "FlashcardsGenerator",
    "generate",
    "render_prompt",
    "validate_and_encode",
]
