from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# AI settings the env diagnostic reports by name
AI_ENV_FIELDS = (
    "ai_provider",
    "gemini_api_key",
    "gemini_base_url",
    "gemini_models",
    "openai_api_key",
    "openai_base_url",
    "openai_models",
    "ai_timeout_seconds",
)


class Settings(BaseSettings):
    """Service settings loaded from the environment (and `.env` when present)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Provider selection
    ai_provider: Literal["gemini", "openai"] = "gemini"

    # Gemini
    gemini_api_key: Optional[str] = None
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    # Most capable/fastest first
    gemini_models: List[str] = Field(
        default=["gemini-2.5-flash", "gemini-2.5-flash-lite", "gemini-2.5-pro"]
    )

    # OpenAI-compatible providers
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    openai_models: List[str] = Field(default=["gpt-4o-mini", "gpt-3.5-turbo"])

    # Generation
    ai_timeout_seconds: float = Field(default=25.0, gt=0, le=300)
    ai_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    ai_max_output_tokens: int = Field(default=1500, ge=1, le=65536)
    ai_top_p: float = Field(default=0.9, gt=0.0, le=1.0)
    ai_top_k: int = Field(default=40, ge=1, le=1000)

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def api_key(self) -> Optional[str]:
        key = self.gemini_api_key if self.ai_provider == "gemini" else self.openai_api_key
        # Blank values count as missing
        return key.strip() if key and key.strip() else None

    @property
    def api_key_env_var(self) -> str:
        return "GEMINI_API_KEY" if self.ai_provider == "gemini" else "OPENAI_API_KEY"

    def configured_env_vars(self) -> List[str]:
        """Names (never values) of AI settings supplied by the environment or `.env`."""
        return [
            name.upper()
            for name in AI_ENV_FIELDS
            if name in self.model_fields_set and getattr(self, name) not in (None, "", [])
        ]

    @property
    def candidate_models(self) -> List[str]:
        if self.ai_provider == "gemini":
            return list(self.gemini_models)
        return list(self.openai_models)


@lru_cache
def get_settings() -> Settings:
    return Settings()
