"""
Configuration management for the watsonx agent examples using Pydantic Settings.

Settings are loaded from environment variables and a local .env file with
validation and type safety. The watsonx credentials follow the variable names
used by the hosted service (WATSONX_API_KEY, WATSONX_PROJECT_ID,
WATSONX_BASE_URL).
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from watsonx_agents.errors import ConfigurationError


class WatsonxConfig(BaseSettings):
    """Configuration for the hosted watsonx model backend."""

    model_config = SettingsConfigDict(
        env_prefix="WATSONX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_key: Optional[SecretStr] = Field(
        default=None,
        description="IBM Cloud API key used to access watsonx",
    )
    project_id: Optional[str] = Field(
        default=None,
        description="watsonx.ai project the generation requests are billed to",
    )
    base_url: str = Field(
        default="https://us-south.ml.cloud.ibm.com",
        description="Regional watsonx.ai endpoint",
    )
    model_id: str = Field(
        default="meta-llama/llama-3-70b-instruct",
        description="Foundation model identifier",
    )
    decoding_method: Literal["greedy", "sample"] = Field(
        default="greedy",
        description="Decoding strategy for text generation",
    )
    max_new_tokens: int = Field(
        default=500,
        ge=1,
        le=32000,
        description="Maximum number of tokens to generate",
    )
    timeout: int = Field(
        default=60,
        ge=1,
        le=600,
        description="Request timeout in seconds",
    )
    retry_attempts: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Number of times a retryable generation failure is retried",
    )
    retry_delay: float = Field(
        default=1.0,
        ge=0.0,
        description="Initial delay between retries in seconds (exponential backoff)",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate the endpoint is an http(s) URL and strip the trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Base URL must start with 'http://' or 'https://'")
        return v.rstrip("/")

    def require_credentials(self) -> None:
        """
        Ensure the credentials needed to call watsonx are configured.

        Raises:
            ConfigurationError: If the API key or the project id is missing.
        """
        missing = []
        if self.api_key is None or not self.api_key.get_secret_value():
            missing.append("WATSONX_API_KEY")
        if not self.project_id:
            missing.append("WATSONX_PROJECT_ID")
        if missing:
            raise ConfigurationError(
                f"Missing watsonx credentials: {', '.join(missing)}",
                context={"missing": missing},
            )


class ExecutionConfig(BaseSettings):
    """Limits applied to the tool-using agent loop."""

    model_config = SettingsConfigDict(
        env_prefix="AGENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    max_iterations: int = Field(
        default=8,
        ge=1,
        le=100,
        description="Maximum number of think-act-observe iterations",
    )
    max_retries_per_step: int = Field(
        default=3,
        ge=0,
        description="Maximum retries within a single iteration",
    )
    total_max_retries: int = Field(
        default=10,
        ge=0,
        description="Maximum retries over the whole run",
    )


class Settings(BaseSettings):
    """
    Main settings class for the example scripts.

    Aggregates the backend and execution sections and provides a unified
    interface for accessing application settings.

    Example:
        >>> settings = get_settings()
        >>> print(settings.watsonx.model_id)
        'meta-llama/llama-3-70b-instruct'
        >>> print(settings.execution.max_iterations)
        8
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    environment: str = Field(
        default="development",
        description="Environment: development, staging, or production",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level: TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional path of a rotating JSON log file",
    )
    llm_backend: Literal["watsonx", "litellm"] = Field(
        default="watsonx",
        description="Chat backend used by get_chat_llm()",
    )
    llm_model: str = Field(
        default="ollama/llama3.1",
        description="LiteLLM model string used when llm_backend is 'litellm'",
    )

    watsonx: WatsonxConfig = Field(default_factory=WatsonxConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the supported levels."""
        valid_levels = ["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v_upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the expected values."""
        valid_envs = ["development", "staging", "production"]
        v_lower = v.lower()
        if v_lower not in valid_envs:
            raise ValueError(f"Environment must be one of: {', '.join(valid_envs)}")
        return v_lower

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get the cached singleton settings instance.

    Returns:
        Settings: The singleton settings instance.
    """
    return Settings()
