"""
Error taxonomy for the decision-support core.

Propagation rules:
- ProviderError with retryable=True is retried by LLMService before surfacing
- every other error surfaces immediately to the caller
- GateEvaluationError never escapes GateEvaluator.evaluate; it becomes a failed GateResult
"""
import re
from typing import Optional

# Message signatures that mark a provider failure as transient.
RETRYABLE_PATTERNS = [
    re.compile(r"rate limit", re.IGNORECASE),
    re.compile(r"timeout|timed out", re.IGNORECASE),
    re.compile(r"network|connection", re.IGNORECASE),
    re.compile(r"overloaded", re.IGNORECASE),
    re.compile(r"\b429\b"),
    re.compile(r"\b50[0234]\b"),
]


def is_retryable_message(message: str) -> bool:
    """Return True if an error message matches a known transient-failure signature."""
    return any(pattern.search(message) for pattern in RETRYABLE_PATTERNS)


class ThemisError(Exception):
    """Base exception for all decision-support core errors."""
    pass


class ConfigurationError(ThemisError):
    """Raised when configuration is invalid or missing (unknown provider, missing key)."""
    pass


class ProviderError(ThemisError):
    """Raised when a vendor call fails."""

    def __init__(
        self,
        provider: str,
        message: str,
        retryable: Optional[bool] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(f"[{provider}] {message}")
        self.provider = provider
        self.message = message
        self.status_code = status_code
        if retryable is None:
            retryable = is_retryable_message(message)
        self.retryable = retryable


class UnsupportedCapabilityError(ProviderError):
    """Raised when a provider is asked for a capability it does not offer (e.g. embeddings)."""

    def __init__(self, provider: str, capability: str):
        super().__init__(
            provider,
            f"Provider does not support capability: {capability}",
            retryable=False,
        )
        self.capability = capability


class ValidationError(ThemisError):
    """Base class for malformed requests and malformed LLM outputs."""
    pass


class RequestValidationError(ValidationError):
    """Raised when an LLM request is malformed (empty messages, bad temperature/tokens)."""
    pass


class SchemaValidationError(ValidationError):
    """Raised when LLM output fails schema validation."""

    def __init__(self, task: str, message: str, raw_output: Optional[str] = None):
        super().__init__(message)
        self.task = task
        self.raw_output = raw_output


class BudgetExceededError(ThemisError):
    """Raised when a call would exceed the global or workspace token budget."""

    def __init__(self, workspace_id: str, estimated_tokens: int, remaining: int):
        super().__init__(
            f"Token budget exceeded for workspace '{workspace_id}': "
            f"requested {estimated_tokens}, remaining {remaining}"
        )
        self.workspace_id = workspace_id
        self.estimated_tokens = estimated_tokens
        self.remaining = remaining


class GateEvaluationError(ThemisError):
    """Raised for malformed gate expressions or missing variables."""
    pass


class TemplateNotFoundError(ThemisError):
    """Raised when rendering a prompt template id that was never registered."""

    def __init__(self, template_id: str, version: Optional[str] = None):
        label = template_id if version is None else f"{template_id}@{version}"
        super().__init__(f"Template '{label}' not found")
        self.template_id = template_id
        self.version = version


class UnresolvedTemplateVariableError(ThemisError):
    """Raised when a placeholder is still present after rendering."""

    def __init__(self, variable: str, template_id: Optional[str] = None):
        super().__init__(f"Unresolved variable: {variable}")
        self.variable = variable
        self.template_id = template_id
