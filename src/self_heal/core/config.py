import logging
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""
    pass


class MissingCredentialError(ConfigurationError):
    """Raised when the code-generation service credential is not set."""
    pass


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Code-generation service
    GH_MODELS_TOKEN: Optional[str] = None
    CODEGEN_ENDPOINT: str = Field(
        default="https://models.github.ai/inference/chat/completions",
        description="Chat-completions endpoint of the code-generation service",
    )
    CODEGEN_MODEL: str = "gpt-4o"
    LIVE_CODEGEN_MODEL: str = "gpt-4o-mini"
    CODEGEN_TEMPERATURE: float = 0.0
    LIVE_CODEGEN_TEMPERATURE: float = 0.2
    CODEGEN_MAX_TOKENS: int = Field(default=2000, description="Completion token cap per request")
    CODEGEN_TIMEOUT: int = Field(default=120, description="HTTP timeout for one service call (seconds)")

    # Run metadata
    GITHUB_RUN_ID: str = "LOCAL"
    GITHUB_REF_NAME: str = "LOCAL"

    # Live-document probing
    BASE_URL: str = "http://localhost"

    # Paths
    PROJECT_ROOT: str = "."
    ARTIFACTS_DIR: str = "artifacts"
    CUCUMBER_REPORT_PATH: str = "artifacts/cucumber-report.json"
    LIVE_CONTEXT_PATH: str = "healing-context.json"
    SELF_HEALING_CONFIG_PATH: str = "config/self_healing.yaml"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    @field_validator("CODEGEN_TEMPERATURE", "LIVE_CODEGEN_TEMPERATURE")
    @classmethod
    def validate_temperature(cls, v):
        """Sampling temperature must lie in [0, 2]."""
        if v < 0 or v > 2:
            raise ValueError(f"temperature must be between 0 and 2, got {v}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate that LOG_LEVEL names a stdlib logging level."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"LOG_LEVEL must be a logging level name, got '{v}'")
        return level

    def require_token(self) -> str:
        """Return the service credential or fail before anything is touched."""
        if not self.GH_MODELS_TOKEN:
            raise MissingCredentialError(
                "GH_MODELS_TOKEN is not set. Add it to the environment or the repository secrets."
            )
        return self.GH_MODELS_TOKEN


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build the settings once per process."""
    return Settings()
