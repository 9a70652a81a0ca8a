"""
botsmith.core.config - Configuration Management
=================================================

Configuration can be loaded from multiple sources with the following
priority (highest first):

    1. Explicit constructor arguments (and values read from YAML)
    2. Environment variables (prefixed with BOTSMITH_)
    3. Default values defined in the models below

Architecture Context:
    The top-level BotsmithConfig is created once and handed to the Botsmith
    facade, which passes each section to the component that needs it:

        BotsmithConfig
            ├── LLMConfig       → LLM provider → RepairOracle
            ├── PlatformConfig  → ConversationalPlatform, BuildInvoker waits
            ├── StorageConfig   → ObjectStore
            └── RetryConfig     → ResourceMutator, BuildInvoker

Usage:
    config = BotsmithConfig()                     # env vars + defaults
    config = load_config("botsmith.yaml")         # YAML file
    config = BotsmithConfig(log_level="DEBUG")    # explicit overrides

Environment Variables:
    BOTSMITH_LOG_LEVEL=DEBUG
    BOTSMITH_LLM__PROVIDER=bedrock
    BOTSMITH_LLM__MODEL=anthropic.claude-3-5-sonnet-20240620-v1:0
    BOTSMITH_PLATFORM__PROVIDER=lex
    BOTSMITH_STORAGE__PROVIDER=s3
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from botsmith.core.exceptions import ConfigurationError


# =============================================================================
# LLM Configuration
# =============================================================================
# The LLM backs the repair oracle. Bedrock is the production provider;
# "mock" returns queued responses and never touches the network.
# =============================================================================
class LLMConfig(BaseModel):
    """Configuration for the Large Language Model provider.

    Supported Providers:
        - "bedrock": Anthropic models on Amazon Bedrock (boto3 bedrock-runtime)
        - "mock":    Mock provider for testing (returns configurable responses)

    Attributes:
        provider: Which LLM service to use.
        model: Model identifier within the provider (Bedrock model id).
        region: AWS region for Bedrock. None uses the boto3 default chain.
        temperature: Sampling temperature. Repairs want low randomness.
        max_tokens: Maximum number of tokens generated per request.
    """

    provider: str = Field(
        default="mock",
        description="LLM provider name: 'bedrock' or 'mock'",
    )
    model: str = Field(
        default="anthropic.claude-3-5-sonnet-20240620-v1:0",
        description="Model identifier within the provider",
    )
    region: Optional[str] = Field(
        default=None,
        description="AWS region for the Bedrock runtime client",
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="LLM temperature: 0.0=deterministic, 1.0=creative",
    )
    max_tokens: int = Field(
        default=4096,
        ge=1,
        le=200000,
        description="Maximum tokens per LLM response",
    )


# =============================================================================
# Platform Configuration
# =============================================================================
class PlatformConfig(BaseModel):
    """Configuration for the external conversational platform.

    Attributes:
        provider: "lex" for Amazon Lex V2, "memory" for the in-process fake.
        region: AWS region for the lexv2-models client.
        build_timeout_seconds: Hard limit for waiting on a locale build.
        export_timeout_seconds: Hard limit for waiting on an export.
        poll_interval_seconds: Delay between status polls.
        download_timeout_seconds: HTTP timeout for fetching the export zip.
    """

    provider: str = Field(
        default="memory",
        description="Platform provider name: 'lex' or 'memory'",
    )
    region: Optional[str] = Field(
        default=None,
        description="AWS region for Amazon Lex V2",
    )
    build_timeout_seconds: float = Field(default=60.0, gt=0)
    export_timeout_seconds: float = Field(default=60.0, gt=0)
    poll_interval_seconds: float = Field(default=1.0, ge=0)
    download_timeout_seconds: float = Field(default=60.0, gt=0)


# =============================================================================
# Storage Configuration
# =============================================================================
class StorageConfig(BaseModel):
    """Configuration for durable object storage.

    Attributes:
        provider: "s3" or "memory".
        region: AWS region for the S3 client.
    """

    provider: str = Field(
        default="memory",
        description="Object store provider name: 's3' or 'memory'",
    )
    region: Optional[str] = Field(default=None, description="AWS region for S3")


# =============================================================================
# Retry Budgets
# =============================================================================
# Both loops in the protocol are bounded by these counters. They are process
# local and never persisted.
# =============================================================================
class RetryConfig(BaseModel):
    """Retry budgets for the two repair loops.

    Attributes:
        max_mutation_attempts: Platform calls allowed per create/update
            before the mutation is abandoned.
        max_build_retries: Build re-attempts allowed after the first build.
            A retry counter above this value is fatal.
    """

    max_mutation_attempts: int = Field(default=5, ge=1, le=20)
    max_build_retries: int = Field(default=2, ge=0, le=10)


# =============================================================================
# Main Configuration
# =============================================================================
# Environment Variable Mapping:
#   BOTSMITH_LOG_LEVEL            → config.log_level
#   BOTSMITH_LLM__PROVIDER        → config.llm.provider
#   BOTSMITH_PLATFORM__REGION     → config.platform.region
#   BOTSMITH_RETRY__MAX_BUILD_RETRIES → config.retry.max_build_retries
# =============================================================================
class BotsmithConfig(BaseSettings):
    """Top-level configuration for botsmith.

    Attributes:
        environment: Deployment environment.
        log_level: Logging level applied by configure_logging().
        llm: LLM provider configuration.
        platform: Conversational platform configuration.
        storage: Object storage configuration.
        retry: Retry budgets.

    Example:
        >>> config = BotsmithConfig(
        ...     log_level="DEBUG",
        ...     llm=LLMConfig(provider="mock"),
        ... )
    """

    environment: Literal["dev", "staging", "prod"] = Field(
        default="dev",
        description="Deployment environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )

    llm: LLMConfig = Field(default_factory=LLMConfig)
    platform: PlatformConfig = Field(default_factory=PlatformConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)

    model_config = {
        "env_prefix": "BOTSMITH_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
    }


# =============================================================================
# Configuration Loader
# =============================================================================
def load_config(path: Optional[str] = None) -> BotsmithConfig:
    """Load botsmith configuration from a YAML file and environment variables.

    Args:
        path: Path to a YAML configuration file. If None, looks for
            'botsmith.yaml' in the current directory and falls back to
            defaults + environment variables when it is absent.

    Returns:
        A fully validated BotsmithConfig instance.

    Raises:
        FileNotFoundError: If an explicit path is provided but doesn't exist.
        ConfigurationError: If the file is not valid YAML or not a mapping.
    """
    if path is None:
        default_path = Path("botsmith.yaml")
        if default_path.exists():
            path = str(default_path)

    yaml_data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(config_path) as f:
            try:
                raw_data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    message=f"Invalid YAML in {path}: {e}",
                    error_code="INVALID_YAML",
                    details={"path": str(path)},
                ) from e

        if raw_data is not None and not isinstance(raw_data, dict):
            raise ConfigurationError(
                message=f"Configuration file {path} must contain a mapping",
                details={"path": str(path)},
            )
        yaml_data = raw_data or {}

    return BotsmithConfig(**yaml_data)
