"""
Centralized application configuration.

Uses pydantic BaseSettings for automatic env-var loading and validation.
Import the singleton ``settings`` instance throughout the app.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import List, Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

# Relative paths resolve from the backend directory
_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))


class Settings(BaseSettings):
    """Application settings — validated from environment variables."""

    # ── Environment ────────────────────────────────────────
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False

    # ── CORS ──────────────────────────────────────────────
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors(cls, v):
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v

    # ── LLM ───────────────────────────────────────────────
    LLM_PROVIDER: str = "GOOGLE"  # GOOGLE (Gemini) or OLLAMA (local)
    GOOGLE_MODEL: str = "gemini-2.5-flash"
    GOOGLE_API_KEY: str = ""
    OLLAMA_MODEL: str = "llama3"
    LLM_TIMEOUT: int = 120

    # ── LLM Generation Control ───────────────────────────
    LLM_TEMPERATURE_STRUCTURED: float = 0.1
    LLM_TEMPERATURE_CREATIVE: float = 0.7
    LLM_TOP_P_STRUCTURED: float = 0.9
    LLM_MAX_TOKENS: int = 8192

    # ── Retry / Backoff ───────────────────────────────────
    LLM_MAX_RETRIES: int = 3
    LLM_BACKOFF_BASE_MS: int = 1000

    # ── Quiz ──────────────────────────────────────────────
    QUIZ_QUESTION_COUNT: int = 20

    # ── History persistence ───────────────────────────────
    HISTORY_FILE: str = "./data/quiz_history.json"

    @field_validator("LLM_PROVIDER", mode="after")
    @classmethod
    def _uppercase_provider(cls, v: str) -> str:
        v = v.upper()
        valid = {"GOOGLE", "OLLAMA"}
        if v not in valid:
            raise ValueError(f"LLM_PROVIDER must be one of {valid}, got {v!r}")
        return v

    @field_validator("LLM_MAX_RETRIES", "QUIZ_QUESTION_COUNT", mode="after")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @model_validator(mode="after")
    def _resolve_paths_and_cross_validate(self):
        """Resolve relative paths to absolute & require the provider key."""
        if self.HISTORY_FILE and not os.path.isabs(self.HISTORY_FILE):
            object.__setattr__(self, "HISTORY_FILE", os.path.join(_PROJECT_ROOT, self.HISTORY_FILE))

        if self.LLM_PROVIDER == "GOOGLE" and not self.GOOGLE_API_KEY:
            raise ValueError(
                "GOOGLE_API_KEY must be set when LLM_PROVIDER is GOOGLE. "
                "Create a key at https://aistudio.google.com/apikey and add it to .env"
            )
        if self.LLM_PROVIDER == "OLLAMA" and self.GOOGLE_API_KEY:
            logging.getLogger("config").info("GOOGLE_API_KEY is set but LLM_PROVIDER is OLLAMA; key unused")

        return self

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()


settings = get_settings()
