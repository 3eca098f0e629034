"""
Environment-driven configuration.

Environment variables:
- THEMIS_LLM_PROVIDER: openai | anthropic | ollama | local (default: openai)
- THEMIS_LLM_MODEL: Model name (default depends on provider)
- THEMIS_LLM_API_KEY: API key; falls back to OPENAI_API_KEY / ANTHROPIC_API_KEY
- THEMIS_LLM_BASE_URL: Override the provider's base URL
- THEMIS_LLM_TEMPERATURE: Default sampling temperature (default: 0.7)
- THEMIS_LLM_MAX_TOKENS: Default completion token ceiling (default: 1500)
- THEMIS_LLM_TIMEOUT_SECONDS: Per-request timeout (default: 30)
- THEMIS_RATE_LIMIT_RPM / THEMIS_RATE_LIMIT_TPM: Rate limiter capacity
- THEMIS_DAILY_TOKEN_BUDGET / THEMIS_WORKSPACE_TOKEN_BUDGET /
  THEMIS_WORKSPACE_MONTHLY_TOKEN_BUDGET: Budget ceilings
- THEMIS_RETRY_MAX_ATTEMPTS / THEMIS_RETRY_DELAY_SECONDS /
  THEMIS_RETRY_BACKOFF_MULTIPLIER: Retry policy
- LOG_LEVEL / LOG_JSON: Logging

A .env file at the repository root is loaded on import; variables already set
in the process environment win.
"""
import os
from pathlib import Path
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError

from themis.core.budget import BudgetConfig
from themis.core.errors import ConfigurationError
from themis.core.logging import get_logger
from themis.core.rate_limit import RateLimiterConfig
from themis.core.retry import RetryPolicy
from themis.models.llm import LLMConfig, ProviderKind

logger = get_logger(__name__)

T = TypeVar("T")

env_path = Path(__file__).parent.parent.parent.parent / ".env"

if env_path.exists():
    load_dotenv(env_path)
    logger.info("env_loaded", env_path=str(env_path))

DEFAULT_MODELS = {
    ProviderKind.OPENAI: "gpt-4o-mini",
    ProviderKind.ANTHROPIC: "claude-3-5-sonnet-20241022",
    ProviderKind.OLLAMA: "llama3",
    ProviderKind.LOCAL: "local-model",
}

VENDOR_KEY_VARS = {
    ProviderKind.OPENAI: "OPENAI_API_KEY",
    ProviderKind.ANTHROPIC: "ANTHROPIC_API_KEY",
}


def _env(name: str, cast: Callable[[str], T], default: T) -> T:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid value for {name}: {raw!r}") from exc


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid value for {name}: {raw!r}") from exc


def load_llm_config() -> LLMConfig:
    """Build an LLMConfig from the environment."""
    provider_name = os.getenv("THEMIS_LLM_PROVIDER", "openai").strip().lower()
    try:
        provider = ProviderKind(provider_name)
    except ValueError as exc:
        raise ConfigurationError(f"Unsupported LLM provider: {provider_name}") from exc

    api_key = os.getenv("THEMIS_LLM_API_KEY")
    if not api_key and provider in VENDOR_KEY_VARS:
        api_key = os.getenv(VENDOR_KEY_VARS[provider])

    try:
        return LLMConfig(
            provider=provider,
            model=os.getenv("THEMIS_LLM_MODEL") or DEFAULT_MODELS[provider],
            api_key=api_key or None,
            base_url=os.getenv("THEMIS_LLM_BASE_URL") or None,
            temperature=_env("THEMIS_LLM_TEMPERATURE", float, 0.7),
            max_tokens=_env("THEMIS_LLM_MAX_TOKENS", int, 1500),
            timeout_seconds=_env("THEMIS_LLM_TIMEOUT_SECONDS", float, 30.0),
        )
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Invalid LLM configuration: {exc}") from exc


def load_rate_limit_config() -> RateLimiterConfig:
    return RateLimiterConfig(
        requests_per_minute=_env("THEMIS_RATE_LIMIT_RPM", float, 60.0),
        tokens_per_minute=_env("THEMIS_RATE_LIMIT_TPM", float, 90_000.0),
    )


def load_budget_config() -> BudgetConfig:
    return BudgetConfig(
        daily_token_budget=_env("THEMIS_DAILY_TOKEN_BUDGET", int, 1_000_000),
        workspace_token_budget=_env("THEMIS_WORKSPACE_TOKEN_BUDGET", int, 100_000),
        workspace_monthly_token_budget=_optional_int("THEMIS_WORKSPACE_MONTHLY_TOKEN_BUDGET"),
    )


def load_retry_policy() -> RetryPolicy:
    return RetryPolicy(
        max_attempts=_env("THEMIS_RETRY_MAX_ATTEMPTS", int, 3),
        delay_seconds=_env("THEMIS_RETRY_DELAY_SECONDS", float, 1.0),
        backoff_multiplier=_env("THEMIS_RETRY_BACKOFF_MULTIPLIER", float, 2.0),
    )


def load_logging_settings() -> dict:
    return {
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "json_output": os.getenv("LOG_JSON", "true").lower() == "true",
    }
