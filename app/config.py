"""
Centralized configuration management using pydantic-settings.
This module provides a single source of truth for all application configuration.
"""

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.utils.logger import setup_logger

load_dotenv(override=True)


logger = setup_logger("core_config")


class Settings(BaseSettings):
    """
    Application settings managed by pydantic-settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        env_prefix="",
        populate_by_name=True,
    )

    # ===== OpenAI Configuration =====
    openai_api_key: str | None = Field(
        default=None,
        alias="OPENAI_API_KEY",
        description="OpenAI API key for accessing OpenAI services",
    )

    openai_base_url: str | None = Field(
        default=None,
        alias="OPENAI_BASE_URL",
        description="OpenAI API base URL, defaults to https://api.openai.com/v1",
    )

    default_openai_model: str = Field(
        default="gpt-4-turbo",
        alias="DEFAULT_OPENAI_MODEL",
        description="Default OpenAI model to use",
    )

    # ===== Ollama Configuration =====
    ollama_base_url: str = Field(
        default="http://localhost:11434",
        alias="OLLAMA_BASE_URL",
        description="Ollama API base URL",
    )

    default_ollama_model: str = Field(
        default="llama3:instruct",
        alias="DEFAULT_OLLAMA_MODEL",
        description="Default Ollama model to use",
    )

    # ===== LLM Provider Configuration =====
    default_llm_provider: str = Field(
        default="openai",
        alias="DEFAULT_LLM_PROVIDER",
        description="Default LLM provider to use (openai, ollama)",
    )

    llm_timeout_generate: float = Field(
        default=120.0,
        alias="LLM_TIMEOUT_GENERATE",
        description="Timeout in seconds for a single event generation call",
    )

    # ===== Event Generation Token Budget =====
    llm_event_generation_max_tokens: int = Field(
        default=3000,
        alias="LLM_EVENT_GENERATION_MAX_TOKENS",
        description="Upper bound on max_tokens for one event generation call",
    )

    llm_tokens_per_event: int = Field(
        default=100,
        alias="LLM_TOKENS_PER_EVENT",
        description="Estimated completion tokens needed per generated event",
    )

    llm_token_overhead: int = Field(
        default=500,
        alias="LLM_TOKEN_OVERHEAD",
        description="Completion tokens reserved for the JSON envelope",
    )

    # ===== Event Generation Configuration =====
    event_batch_size: int = Field(
        default=20,
        alias="EVENT_BATCH_SIZE",
        description="Maximum events requested from the LLM in one call; larger requests run as concurrent batches",
    )

    default_max_events: int = Field(
        default=20,
        alias="DEFAULT_MAX_EVENTS",
        description="Number of events requested when the caller does not say",
    )

    max_events_limit: int = Field(
        default=100,
        alias="MAX_EVENTS_LIMIT",
        description="Largest number of events a single request may ask for",
    )

    events_array_key: str = Field(
        default="events",
        alias="EVENTS_ARRAY_KEY",
        description="Key of the event array in the JSON object returned by the LLM",
    )

    numbered_fallback_threshold: float = Field(
        default=0.5,
        alias="NUMBERED_FALLBACK_THRESHOLD",
        description="Minimum share of events with a year for the set to be presented as a dated timeline",
    )

    default_number_label: str = Field(
        default="Day",
        alias="DEFAULT_NUMBER_LABEL",
        description="Label used for numbered (dateless) events",
    )

    # ===== Server Configuration =====
    server_host: str = Field(
        default="0.0.0.0", alias="SERVER_HOST", description="Server host address"
    )

    server_port: int = Field(
        default=8080, alias="SERVER_PORT", description="Server port number"
    )

    server_workers: int = Field(
        default=1, alias="SERVER_WORKERS", description="Number of uvicorn workers"
    )

    # ===== CORS Configuration =====
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",  # Next.js dev server
            "http://127.0.0.1:3000",
        ],
        alias="CORS_ALLOW_ORIGINS",
        description="CORS allowed origins",
    )

    cors_allow_credentials: bool = Field(
        default=True,
        alias="CORS_ALLOW_CREDENTIALS",
        description="Whether to allow credentials in CORS requests",
    )

    cors_allow_methods: list[str] = Field(
        default_factory=lambda: ["*"],
        alias="CORS_ALLOW_METHODS",
        description="CORS allowed methods",
    )

    cors_allow_headers: list[str] = Field(
        default_factory=lambda: ["*"],
        alias="CORS_ALLOW_HEADERS",
        description="CORS allowed headers",
    )

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Validate settings and log warnings for missing or odd configuration."""

        if self.default_llm_provider == "openai" and not self.openai_api_key:
            logger.warning("OPENAI_API_KEY environment variable not set.")

        if not 0.0 <= self.numbered_fallback_threshold <= 1.0:
            logger.warning(
                f"NUMBERED_FALLBACK_THRESHOLD={self.numbered_fallback_threshold} is outside [0, 1]; clamping."
            )
            self.numbered_fallback_threshold = min(
                1.0, max(0.0, self.numbered_fallback_threshold)
            )

        if self.event_batch_size < 1:
            logger.warning(
                f"EVENT_BATCH_SIZE={self.event_batch_size} is invalid; using 1."
            )
            self.event_batch_size = 1

        logger.debug(
            f"Event generation: provider={self.default_llm_provider}, batch size={self.event_batch_size}, "
            f"max tokens={self.llm_event_generation_max_tokens}"
        )

        return self


# Global settings instance
settings = Settings()
