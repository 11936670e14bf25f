from typing import Optional
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    name: str = Field(default="notecards", alias="APP_NAME")
    version: str = Field(default="v1", alias="API_VERSION")
    port: int = Field(default=9000, alias="APP_PORT")
    mode: str = Field(default="prod", alias="MODE")

    @computed_field
    def is_production(self) -> bool:
        return self.mode != "dev"


class PipelineSettings(BaseSettings):
    """Limits and defaults used by the flashcard pipeline."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    max_tokens: int = Field(default=4000, alias="NOTECARDS_MAX_TOKENS")
    chunk_size: int = Field(default=3000, alias="NOTECARDS_CHUNK_SIZE")
    overlap_size: int = Field(default=200, alias="NOTECARDS_OVERLAP_SIZE")
    min_words: int = Field(default=5, alias="NOTECARDS_MIN_WORDS")
    max_cards_limit: int = Field(default=100, alias="NOTECARDS_MAX_CARDS_LIMIT")
    max_prompt_chars: int = Field(default=2000, alias="NOTECARDS_MAX_PROMPT_CHARS")
    default_tags: list[str] = Field(
        default_factory=lambda: ["#flashcards"], alias="NOTECARDS_DEFAULT_TAGS"
    )
    file_name_pattern: str = Field(
        default="{filename}-fcards.md", alias="NOTECARDS_FILE_NAME_PATTERN"
    )


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=lambda: AppSettings())
    pipeline: PipelineSettings = Field(default_factory=lambda: PipelineSettings())

    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    anthropic_api_key: Optional[str] = Field(default=None, alias="ANTHROPIC_API_KEY")
    openrouter_api_key: Optional[str] = Field(default=None, alias="OPENROUTER_API_KEY")

    # Model provider selection: "google", "openai", "anthropic" or "openrouter"
    model_provider: str = Field(default="google", alias="MODEL_PROVIDER")
    google_model: str = Field(default="gemini-2.0-flash", alias="GOOGLE_MODEL")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    anthropic_model: str = Field(
        default="claude-3-5-haiku-latest", alias="ANTHROPIC_MODEL"
    )
    openrouter_model: str = Field(
        default="x-ai/grok-code-fast-1", alias="OPENROUTER_MODEL"
    )
    model_temperature: float = Field(default=0.7, alias="MODEL_TEMPERATURE")
    model_max_tokens: int = Field(default=2000, alias="MODEL_MAX_TOKENS")


settings = Settings()
