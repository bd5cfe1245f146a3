"""Configuration module for the Crossfire backend.

Loads and validates environment variables required for the application.
"""

import os
import sys

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


# Backend identifiers understood by agents.llm
BACKEND_OPENAI = "openai"
BACKEND_ANTHROPIC = "anthropic"
BACKEND_GEMINI = "gemini"

DEFAULT_MODELS = {
    BACKEND_OPENAI: "gpt-4-turbo",
    BACKEND_ANTHROPIC: "claude-sonnet-4-20250514",
    BACKEND_GEMINI: "gemini-2.0-flash",
}


class ConfigError(Exception):
    """Raised when a required configuration value is missing."""
    pass


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self, validate: bool = True):
        """Initialize configuration and validate required values.

        Args:
            validate: If False, allows missing env vars during testing.
                     Automatically set to False when pytest is detected.
        """
        # Auto-detect pytest environment
        if not validate or "pytest" in sys.modules:
            validate = False

        # LLM backend keys (at least one is required)
        self.openai_api_key = os.getenv("OPENAI_API_KEY", "")
        self.anthropic_api_key = os.getenv("ANTHROPIC_API_KEY", "")
        self.google_api_key = os.getenv("GOOGLE_API_KEY", "")
        if validate and not self.backend_keys():
            raise ConfigError(
                "No LLM backend configured. Set at least one of "
                "OPENAI_API_KEY, ANTHROPIC_API_KEY or GOOGLE_API_KEY "
                "in your .env file or environment."
            )

        # Verification tool keys (optional, tools degrade without them)
        self.tavily_api_key = os.getenv("TAVILY_API_KEY", "")
        self.fact_check_api_key = os.getenv("GOOGLE_FACT_CHECK_API_KEY", "")
        self.whois_api_key = os.getenv("WHOIS_API_KEY", "")

        # Models per backend
        self.models = {
            BACKEND_OPENAI: os.getenv("OPENAI_MODEL", DEFAULT_MODELS[BACKEND_OPENAI]),
            BACKEND_ANTHROPIC: os.getenv("ANTHROPIC_MODEL", DEFAULT_MODELS[BACKEND_ANTHROPIC]),
            BACKEND_GEMINI: os.getenv("GEMINI_MODEL", DEFAULT_MODELS[BACKEND_GEMINI]),
        }

        # Backend chains per role, tried in order
        self.believer_chain = self._get_list("BELIEVER_CHAIN", "openai,anthropic,gemini")
        self.skeptic_chain = self._get_list("SKEPTIC_CHAIN", "anthropic,openai,gemini")
        self.judge_chain = self._get_list("JUDGE_CHAIN", "gemini,openai,anthropic")

        # Fallback executor settings
        self.max_retries_per_backend = int(os.getenv("MAX_RETRIES_PER_BACKEND", "3"))
        self.backoff_schedule = tuple(
            float(v) for v in self._get_list("BACKOFF_SCHEDULE", "1,2,4,8")
        )
        self.backend_timeout_seconds = float(os.getenv("BACKEND_TIMEOUT_SECONDS", "120"))

        # Tool settings
        self.tool_cache_ttl_seconds = int(os.getenv("TOOL_CACHE_TTL_SECONDS", "300"))
        self.tool_timeout_seconds = float(os.getenv("TOOL_TIMEOUT_SECONDS", "10"))

        # Streaming
        self.stream_token_delay_ms = int(os.getenv("STREAM_TOKEN_DELAY_MS", "5"))

        # Application settings
        self.environment = os.getenv("ENVIRONMENT", "development")
        self.log_level = os.getenv("LOG_LEVEL", "INFO")

        # CORS extra origins (comma-separated)
        self.cors_allowed_origins = os.getenv("CORS_ALLOWED_ORIGINS", "")

    def backend_keys(self) -> dict[str, str]:
        """Return the API keys of every backend that is configured."""
        keys = {
            BACKEND_OPENAI: self.openai_api_key,
            BACKEND_ANTHROPIC: self.anthropic_api_key,
            BACKEND_GEMINI: self.google_api_key,
        }
        return {name: key for name, key in keys.items() if key}

    def _get_list(self, key: str, default: str) -> list[str]:
        """Read a comma-separated environment variable.

        Args:
            key: The environment variable name.
            default: Comma-separated default value.

        Returns:
            List of stripped, non-empty items.
        """
        raw = os.getenv(key, default)
        return [item.strip() for item in raw.split(",") if item.strip()]


# Global config instance
config = Config()
