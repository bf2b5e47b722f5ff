# config.py
from __future__ import annotations
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, AliasChoices, model_validator

PLACEHOLDER_KEYS = ("", "your-openrouter-api-key-here", "sk-or-v1-YOUR_KEY_HERE")


class Settings(BaseSettings):
    # Read .env; ignore extra env vars to avoid crashes
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_nested_delimiter="__",
        env_prefix="",  # no automatic prefix
    )

    # --- Runtime env / debugging ---
    APP_ENV: Literal["development", "staging", "production"] = Field(
        default="development",
        validation_alias=AliasChoices("APP_ENV", "app_env"),
    )
    DEBUG: bool = Field(
        default=False,
        validation_alias=AliasChoices("DEBUG", "debug"),
    )

    # --- Logging ---
    LOG_LEVEL: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "log_level"),
    )

    # --- OpenRouter completion provider ---
    OPENROUTER_API_KEY: str = Field(
        default="",
        validation_alias=AliasChoices("OPENROUTER_API_KEY", "openrouter_api_key"),
    )
    OPENROUTER_BASE_URL: str = Field(
        default="https://openrouter.ai/api/v1",
        validation_alias=AliasChoices("OPENROUTER_BASE_URL", "openrouter_base_url"),
    )
    # Sent as HTTP-Referer / X-Title, both required by the provider
    OPENROUTER_SITE_URL: str = Field(
        default="http://localhost:3333",
        validation_alias=AliasChoices("OPENROUTER_SITE_URL", "openrouter_site_url"),
    )
    OPENROUTER_SITE_NAME: str = Field(
        default="TravelMate AI",
        validation_alias=AliasChoices("OPENROUTER_SITE_NAME", "openrouter_site_name"),
    )
    OPENROUTER_MODEL: str = Field(
        default="google/gemini-2.0-flash-001",
        validation_alias=AliasChoices("OPENROUTER_MODEL", "openrouter_model"),
    )

    # --- Completion call behaviour ---
    COMPLETION_TIMEOUT_S: float = Field(
        default=30.0,
        gt=0,
        validation_alias=AliasChoices("COMPLETION_TIMEOUT_S", "completion_timeout_s"),
    )
    COMPLETION_MAX_RETRIES: int = Field(
        default=3,
        ge=1,
        validation_alias=AliasChoices("COMPLETION_MAX_RETRIES", "completion_max_retries"),
    )
    COMPLETION_RETRY_BASE_S: float = Field(
        default=1.0,
        ge=0,
        validation_alias=AliasChoices("COMPLETION_RETRY_BASE_S", "completion_retry_base_s"),
    )

    # --- Itinerary generation ---
    ITINERARY_TEMPERATURE: float = Field(
        default=0.7,
        ge=0,
        le=2,
        validation_alias=AliasChoices("ITINERARY_TEMPERATURE", "itinerary_temperature"),
    )
    MAX_TRIP_DAYS: int = Field(
        default=30,
        ge=1,
        validation_alias=AliasChoices("MAX_TRIP_DAYS", "max_trip_days"),
    )

    @model_validator(mode="after")
    def _validate_production_settings(self) -> "Settings":
        """Validate critical settings for production deployment."""
        if self.APP_ENV == "production":
            if self.OPENROUTER_API_KEY in PLACEHOLDER_KEYS:
                raise ValueError(
                    "OPENROUTER_API_KEY must be set to a valid key in production. "
                    "Get your key from https://openrouter.ai/keys"
                )
            if self.OPENROUTER_SITE_URL.startswith(("http://localhost", "http://127.0.0.1")):
                import logging
                logging.getLogger("config").warning(
                    f"Production environment uses a localhost referer: {self.OPENROUTER_SITE_URL}. "
                    "Set OPENROUTER_SITE_URL to the public site address."
                )
        return self

    @property
    def is_dev(self) -> bool:
        return self.APP_ENV == "development"

    @property
    def log_level(self) -> str:
        return "DEBUG" if self.DEBUG else self.LOG_LEVEL.upper()

settings = Settings()
