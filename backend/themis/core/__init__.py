"""
Core modules shared by the LLM layer and the scoring engine.
Contains logging, metrics, configuration, errors and resilience primitives
(retry, rate limiting, budget enforcement).
"""
from .errors import (
    BudgetExceededError,
    ConfigurationError,
    GateEvaluationError,
    ProviderError,
    RequestValidationError,
    SchemaValidationError,
    TemplateNotFoundError,
    ThemisError,
    UnresolvedTemplateVariableError,
    UnsupportedCapabilityError,
    ValidationError,
)

__all__ = [
    "BudgetExceededError",
    "ConfigurationError",
    "GateEvaluationError",
    "ProviderError",
    "RequestValidationError",
    "SchemaValidationError",
    "TemplateNotFoundError",
    "ThemisError",
    "UnresolvedTemplateVariableError",
    "UnsupportedCapabilityError",
    "ValidationError",
]
