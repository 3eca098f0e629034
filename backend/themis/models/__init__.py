"""Pydantic value objects shared by the LLM layer and the scoring engine."""

from .llm import (
    Embedding,
    EmbeddingRequest,
    FinishReason,
    LLMConfig,
    LLMMessage,
    LLMRequest,
    LLMResponse,
    ProviderKind,
    TokenUsage,
    UsageMetrics,
)
from .scoring import (
    Criterion,
    CriterionKind,
    CriterionScore,
    CriterionSensitivity,
    CriterionSensitivityRanking,
    CriticalDecisionPoint,
    DuplicatePair,
    GateResult,
    InitiativeScore,
    RankingExplanation,
    RankingResult,
    RequirementGate,
    ReviewerScore,
    ScoreInput,
    SensitivityAnalysis,
    SimilarityResult,
    TieBreakCriterion,
    WhatIfResult,
)

__all__ = [
    "Embedding",
    "EmbeddingRequest",
    "FinishReason",
    "LLMConfig",
    "LLMMessage",
    "LLMRequest",
    "LLMResponse",
    "ProviderKind",
    "TokenUsage",
    "UsageMetrics",
    "Criterion",
    "CriterionKind",
    "CriterionScore",
    "CriterionSensitivity",
    "CriterionSensitivityRanking",
    "CriticalDecisionPoint",
    "DuplicatePair",
    "GateResult",
    "InitiativeScore",
    "RankingExplanation",
    "RankingResult",
    "RequirementGate",
    "ReviewerScore",
    "ScoreInput",
    "SensitivityAnalysis",
    "SimilarityResult",
    "TieBreakCriterion",
    "WhatIfResult",
]
