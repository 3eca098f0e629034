"""
Token counting heuristics.

Rough estimates (~4 characters per token) used for rate limiting and budget
reservations before a call is made. Actual usage reported by the provider is
what gets recorded afterwards.
"""
import math
from typing import Dict, Iterable

from themis.models.llm import LLMMessage

CHARS_PER_TOKEN = 4
MESSAGE_OVERHEAD_TOKENS = 4  # role/start/end markers per message
PROMPT_OVERHEAD_TOKENS = 2
DEFAULT_MODEL_LIMIT = 4096

MODEL_LIMITS: Dict[str, int] = {
    "gpt-4o": 128000,
    "gpt-4o-mini": 128000,
    "gpt-4-turbo-preview": 128000,
    "gpt-4": 8192,
    "gpt-3.5-turbo": 16385,
    "claude-3-opus-20240229": 200000,
    "claude-3-sonnet-20240229": 200000,
    "claude-3-haiku-20240307": 200000,
    "claude-3-5-sonnet-20241022": 200000,
    "llama3": 8192,
    "mistral": 32768,
}


class TokenCounter:
    """Static helpers for estimating token counts."""

    @staticmethod
    def estimate(text: str) -> int:
        return math.ceil(len(text) / CHARS_PER_TOKEN)

    @staticmethod
    def estimate_messages(messages: Iterable[LLMMessage]) -> int:
        total = 0
        for message in messages:
            total += MESSAGE_OVERHEAD_TOKENS
            total += TokenCounter.estimate(message.content)
        return total + PROMPT_OVERHEAD_TOKENS

    @staticmethod
    def calculate_max_completion(prompt_tokens: int, model_limit: int, safety_buffer: int = 100) -> int:
        """Largest completion that still fits the model's context window."""
        return max(0, model_limit - prompt_tokens - safety_buffer)

    @staticmethod
    def get_model_limit(model: str) -> int:
        return MODEL_LIMITS.get(model, DEFAULT_MODEL_LIMIT)
