"""Model backends: the one place the pipeline talks to a model.

Every vendor goes through pydantic-ai; a backend is picked by its ``kind`` tag
("google", "openai", "anthropic", "openrouter"). Imports for the vendor SDKs
are kept lazy to avoid import-time errors when credentials are missing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field
from pydantic_ai import Agent
from pydantic_ai.exceptions import ModelHTTPError, UnexpectedModelBehavior, UserError

from notecards.core.config import Settings, settings as default_settings
from notecards.core.errors import ProviderError, ProviderErrorKind
from notecards.core.logging import get_logger
from notecards.modules.flashcards.models.cards import (
    BackendResponse,
    GenerationOptions,
)

logger = get_logger(__name__)

BACKEND_KINDS = ("google", "openai", "anthropic", "openrouter")

DEFAULT_CONFIGS: dict[str, dict[str, str]] = {
    "google": {"model": "gemini-2.0-flash"},
    "openai": {"endpoint": "https://api.openai.com/v1", "model": "gpt-4o-mini"},
    "anthropic": {"model": "claude-3-5-haiku-latest"},
    "openrouter": {"endpoint": "https://openrouter.ai/api/v1", "model": "x-ai/grok-code-fast-1"},
}

SYSTEM_PROMPT = (
    "You are an expert educator who crafts focused, accurate study flashcards. "
    "Respond with a single JSON object and nothing else: "
    '{"cards": [{"front": "...", "back": "...", "type": "...", "tags": ["#tag"]}]}. '
    "Rules: "
    '- type is one of "oneway", "bidirectional", "multiline", '
    '"multiline-bidirectional", "cloze". '
    "- oneway: a simple question and answer. "
    "- bidirectional: a term and definition that can be asked both ways. "
    "- multiline: a question or answer that needs several lines. "
    "- cloze: the front is a sentence with the hidden part wrapped in ==double equals==. "
    "- Only use the card types and tags the instructions ask for; do not invent tags. "
    "- Plain text only; do not include code fences or commentary."
)


class BackendConfig(BaseModel):
    kind: Optional[str] = None
    api_key: Optional[str] = None
    endpoint: Optional[str] = None
    model: Optional[str] = None
    custom_headers: dict[str, str] = Field(default_factory=dict)
    temperature: float = 0.7
    max_tokens: int = 2000


class ModelBackend(ABC):
    """Interface every model backend implements."""

    name: str = "backend"

    @abstractmethod
    async def authenticate(self) -> bool: ...

    @abstractmethod
    async def generate_flashcards(
        self, prompt: str, options: GenerationOptions
    ) -> BackendResponse: ...

    @abstractmethod
    def validate_config(self) -> bool: ...

    def public_config(self) -> dict[str, Any]:
        return {}


def _provider_error(exc: Exception, provider: str) -> ProviderError:
    if isinstance(exc, ProviderError):
        return exc
    if isinstance(exc, ModelHTTPError):
        if exc.status_code in (401, 403):
            return ProviderError(
                ProviderErrorKind.AUTHENTICATION,
                f"Authentication failed for {provider}. Please check your API key.",
                provider=provider,
                details=exc.body,
            )
        if exc.status_code >= 500 or exc.status_code == 429:
            return ProviderError(
                ProviderErrorKind.NETWORK,
                f"Server error from {provider} (HTTP {exc.status_code}). Please try again later.",
                provider=provider,
                details=exc.body,
            )
        return ProviderError(
            ProviderErrorKind.UNKNOWN,
            f"{provider} rejected the request (HTTP {exc.status_code}).",
            provider=provider,
            details=exc.body,
        )
    if isinstance(exc, httpx.TransportError):
        return ProviderError(
            ProviderErrorKind.NETWORK,
            f"Network error connecting to {provider}. Please check your connection.",
            provider=provider,
            details=str(exc),
        )
    if isinstance(exc, UnexpectedModelBehavior):
        return ProviderError(
            ProviderErrorKind.INVALID_RESPONSE,
            f"Invalid response from {provider}: {exc.message}",
            provider=provider,
        )
    if isinstance(exc, UserError):
        return ProviderError(
            ProviderErrorKind.AUTHENTICATION,
            f"{provider} is not configured: {exc.message}",
            provider=provider,
        )
    return ProviderError(
        ProviderErrorKind.UNKNOWN,
        f"Error in generate_flashcards: {str(exc) or type(exc).__name__}",
        provider=provider,
        details=repr(exc),
    )


class PydanticAIBackend(ModelBackend):
    """Backend for any vendor pydantic-ai supports.

    ``model`` may be passed in directly (for example a pydantic-ai
    ``FunctionModel``); otherwise it is built from ``config`` on first use.
    """

    def __init__(self, config: BackendConfig, *, model: Any = None) -> None:
        self.config = config
        self.kind = (config.kind or "google").lower()
        self.name = self.kind
        self._model = model

    def validate_config(self) -> bool:
        if self._model is not None:
            return True
        if self.kind not in BACKEND_KINDS:
            return False
        if not (self.config.api_key or "").strip():
            return False
        if not (self.config.model or "").strip():
            return False
        return True

    def public_config(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "endpoint": self.config.endpoint,
            "model": self.config.model,
            "custom_headers": dict(self.config.custom_headers),
        }

    def _http_client(self) -> Optional[httpx.AsyncClient]:
        if not self.config.custom_headers:
            return None
        return httpx.AsyncClient(headers=self.config.custom_headers)

    def _build_model(self):
        """Build the vendor model (lazy import)."""
        model_name = self.config.model or DEFAULT_CONFIGS[self.kind]["model"]
        if self.kind == "google":
            from pydantic_ai.models.google import GoogleModel
            from pydantic_ai.providers.google import GoogleProvider

            provider = GoogleProvider(api_key=self.config.api_key)
            return GoogleModel(model_name, provider=provider)
        if self.kind == "anthropic":
            from pydantic_ai.models.anthropic import AnthropicModel
            from pydantic_ai.providers.anthropic import AnthropicProvider

            provider = AnthropicProvider(
                api_key=self.config.api_key, http_client=self._http_client()
            )
            return AnthropicModel(model_name, provider=provider)
        if self.kind in ("openai", "openrouter"):
            from pydantic_ai.models.openai import OpenAIChatModel
            from pydantic_ai.providers.openai import OpenAIProvider

            provider = OpenAIProvider(
                api_key=self.config.api_key,
                base_url=self.config.endpoint or DEFAULT_CONFIGS[self.kind]["endpoint"],
                http_client=self._http_client(),
            )
            return OpenAIChatModel(model_name, provider=provider)
        raise ProviderError(
            ProviderErrorKind.UNKNOWN,
            f"Unknown provider type: {self.kind}",
            provider=self.kind,
        )

    @property
    def model(self):
        if self._model is None:
            self._model = self._build_model()
        return self._model

    def _agent(self) -> Agent[None, str]:
        return Agent[None, str](
            self.model,
            output_type=str,
            system_prompt=SYSTEM_PROMPT,
            model_settings={
                "temperature": self.config.temperature,
                "max_tokens": self.config.max_tokens,
            },
        )

    async def authenticate(self) -> bool:
        try:
            agent = Agent[None, str](self.model, output_type=str)
            await agent.run("Reply with OK.", model_settings={"max_tokens": 5})
        except Exception as e:  # noqa: BLE001
            logger.warning("Authentication check failed for %s: %s", self.name, e)
            return False
        return True

    async def generate_flashcards(
        self, prompt: str, options: GenerationOptions
    ) -> BackendResponse:
        try:
            res = await self._agent().run(prompt)
        except Exception as e:  # noqa: BLE001
            raise _provider_error(e, self.name) from e
        usage = res.usage()
        return BackendResponse(
            text=res.output,
            tokens_used=usage.total_tokens or None,
            model=self.config.model or getattr(self.model, "model_name", None),
        )


def infer_kind(name: str, config: BackendConfig) -> str:
    """Backend kind from explicit tag, name, endpoint or model, in that order."""
    if config.kind:
        return config.kind.lower()
    name_lower = name.lower()
    if "openrouter" in name_lower:
        return "openrouter"
    if "openai" in name_lower or "gpt" in name_lower:
        return "openai"
    if "anthropic" in name_lower or "claude" in name_lower:
        return "anthropic"
    if "gemini" in name_lower or "google" in name_lower:
        return "google"

    endpoint = (config.endpoint or "").lower()
    if "openrouter.ai" in endpoint:
        return "openrouter"
    if "openai.com" in endpoint:
        return "openai"
    if "anthropic.com" in endpoint:
        return "anthropic"
    if "googleapis.com" in endpoint or "gemini" in endpoint:
        return "google"

    model = (config.model or "").lower()
    if "gpt" in model or "turbo" in model:
        return "openai"
    if "claude" in model:
        return "anthropic"
    if "gemini" in model:
        return "google"
    return name_lower


class BackendRegistry:
    """Named backends with one active at a time."""

    def __init__(self) -> None:
        self._backends: dict[str, ModelBackend] = {}
        self._active: Optional[str] = None

    def register(self, name: str, config: BackendConfig) -> ModelBackend:
        kind = infer_kind(name, config)
        if kind not in BACKEND_KINDS:
            raise ValueError(f"Unknown provider type: {kind} for provider: {name}")
        backend = PydanticAIBackend(config.model_copy(update={"kind": kind}))
        self._backends[name] = backend
        return backend

    def add(self, name: str, backend: ModelBackend) -> None:
        self._backends[name] = backend

    def unregister(self, name: str) -> None:
        self._backends.pop(name, None)
        if self._active == name:
            self._active = None

    def set_active(self, name: str) -> None:
        if name not in self._backends:
            raise KeyError(f"Provider {name} is not registered")
        self._active = name

    def active(self) -> Optional[ModelBackend]:
        if self._active is None:
            return None
        return self._backends.get(self._active)

    def get(self, name: str) -> Optional[ModelBackend]:
        return self._backends.get(name)

    def names(self) -> list[str]:
        return list(self._backends)

    def status(self) -> list[dict[str, Any]]:
        return [
            {
                "name": name,
                "configured": backend.validate_config(),
                "active": name == self._active,
            }
            for name, backend in self._backends.items()
        ]

    @staticmethod
    def default_config(kind: str) -> BackendConfig:
        defaults = DEFAULT_CONFIGS.get(kind.lower(), {})
        return BackendConfig(kind=kind.lower(), **defaults)


def build_backend_from_settings(s: Optional[Settings] = None) -> ModelBackend:
    s = s or default_settings
    kind = (s.model_provider or "google").lower()
    keys = {
        "google": (s.gemini_api_key, s.google_model),
        "openai": (s.openai_api_key, s.openai_model),
        "anthropic": (s.anthropic_api_key, s.anthropic_model),
        "openrouter": (s.openrouter_api_key, s.openrouter_model),
    }
    if kind not in keys:
        raise ValueError(f"Unknown MODEL_PROVIDER: {kind}")
    api_key, model_name = keys[kind]
    config = BackendConfig(
        kind=kind,
        api_key=api_key,
        model=model_name,
        endpoint=DEFAULT_CONFIGS[kind].get("endpoint"),
        temperature=s.model_temperature,
        max_tokens=s.model_max_tokens,
    )
    return PydanticAIBackend(config)
