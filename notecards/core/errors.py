"""Error types raised by the flashcard pipeline.

Content, option and template errors are raised before any model call.
``ParseError`` never leaves the response interpreter; it is the failure value
of a structured read. ``ProviderError`` comes from a model backend and is
handed to the caller unchanged.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class NotecardsError(Exception):
    """Base class for every error the pipeline raises on purpose."""

    def __init__(self, message: str, errors: Optional[list[str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors: list[str] = list(errors or [])


class ContentError(NotecardsError):
    pass


class OptionsError(NotecardsError):
    pass


class TemplateError(NotecardsError):
    pass


class ParseError(NotecardsError):
    pass


class CardValidationError(NotecardsError):
    pass


class ProviderErrorKind(str, Enum):
    AUTHENTICATION = "authentication"
    NETWORK = "network"
    INVALID_RESPONSE = "invalid_response"
    UNKNOWN = "unknown"


class ProviderError(NotecardsError):
    """Failure reported by a model backend."""

    def __init__(
        self,
        kind: ProviderErrorKind,
        message: str,
        *,
        provider: Optional[str] = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.kind = ProviderErrorKind(kind)
        self.provider = provider
        self.details = details

    def __repr__(self) -> str:
        return f"ProviderError(kind={self.kind.value!r}, message={self.message!r})"


_PROVIDER_HINTS = {
    ProviderErrorKind.AUTHENTICATION: "Authentication failed. Please check your API key configuration.",
    ProviderErrorKind.NETWORK: "Network error occurred. Please check your internet connection and try again.",
    ProviderErrorKind.INVALID_RESPONSE: "The model returned an invalid response. Please try again or adjust your prompt.",
}


def describe_error(exc: BaseException) -> str:
    """User-facing message for an exception caught at the pipeline boundary."""
    if isinstance(exc, ProviderError):
        hint = _PROVIDER_HINTS.get(exc.kind)
        if hint is None:
            return f"Model error: {exc.message}"
        return f"{hint} ({exc.message})" if exc.message else hint
    if isinstance(exc, NotecardsError):
        return exc.message
    text = str(exc)
    if text:
        return text
    return "An unexpected error occurred while generating flashcards."
