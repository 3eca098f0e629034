"""
Pydantic models for LLM requests, responses and usage records.

These are transient, request-scoped value objects. Durable storage of usage
records is the caller's responsibility.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProviderKind(str, Enum):
    """Closed set of supported LLM providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"
    LOCAL = "local"  # Any OpenAI-compatible self-hosted server


class FinishReason(str, Enum):
    STOP = "stop"
    LENGTH = "length"
    CONTENT_FILTER = "content_filter"
    ERROR = "error"


class LLMConfig(BaseModel):
    """Provider configuration. Immutable per provider instance."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    provider: ProviderKind
    model: str
    api_key: Optional[str] = Field(default=None, repr=False)
    base_url: Optional[str] = None
    temperature: float = Field(0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(1500, gt=0)
    timeout_seconds: float = Field(30.0, gt=0.0)


class LLMMessage(BaseModel):
    """One role-tagged chat message."""
    role: str = Field(..., pattern="^(system|user|assistant)$")
    content: str


class LLMRequest(BaseModel):
    """
    Generic completion request.

    Unset sampling parameters fall back to the provider's LLMConfig defaults.
    Range checks happen in the provider adapters so that a bad request surfaces
    as RequestValidationError rather than a pydantic error.
    """
    messages: List[LLMMessage] = Field(default_factory=list)
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None
    stop: Optional[List[str]] = None


class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class LLMResponse(BaseModel):
    """Text response plus finish reason, usage and provider/model tags."""

    model_config = ConfigDict(protected_namespaces=())

    content: str
    finish_reason: FinishReason
    usage: TokenUsage = Field(default_factory=TokenUsage)
    model: str
    provider: str


class EmbeddingRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    text: str
    model: Optional[str] = None


class Embedding(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    vector: List[float]
    model: str
    dimensions: int


class UsageMetrics(BaseModel):
    """One record per LLM call, successful or not."""

    model_config = ConfigDict(protected_namespaces=())

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    provider: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    duration_ms: float = 0.0
    success: bool = True
    error: Optional[str] = None
