"""
Pydantic models for criteria, scores, gates, rankings and sensitivity analysis.

Criterion scores are produced elsewhere (reviewers, imports); this core only
normalizes, aggregates, ranks and explains them.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CriterionKind(str, Enum):
    HARD = "hard"  # pass/fail only, carries no weight
    SOFT = "soft"  # weighted scoring dimension


class Criterion(BaseModel):
    id: str
    name: str
    weight: float = Field(0.0, ge=0.0, le=1.0)
    kind: CriterionKind = CriterionKind.SOFT
    min_threshold: Optional[float] = None
    scale_min: float = 1.0
    scale_max: float = 5.0


class ScoreInput(BaseModel):
    """Raw value for one criterion of one initiative, as fed to Scorer.calculate_score."""
    criterion_id: str
    criterion_name: str = ""
    value: float
    weight: float
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    scale_min: float = 1.0
    scale_max: float = 5.0


class ReviewerScore(BaseModel):
    """One reviewer's raw value for one criterion."""
    reviewer_id: str
    criterion_id: str
    criterion_name: str = ""
    value: float
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)


class CriterionScore(BaseModel):
    criterion_id: str
    criterion_name: str = ""
    value: float
    normalized_value: float
    weight: float
    contribution: float


class InitiativeScore(BaseModel):
    initiative_id: str = ""
    overall_score: float
    criterion_scores: List[CriterionScore] = Field(default_factory=list)
    risk_adjusted: Optional[float] = None
    confidence: Optional[float] = None


class RequirementGate(BaseModel):
    requirement_id: str
    name: str
    expression: str
    is_hard: bool = True


class GateResult(BaseModel):
    requirement_id: str
    passed: bool
    reason: Optional[str] = None


class TieBreakCriterion(BaseModel):
    criterion_id: str
    order: str = Field("desc", pattern="^(asc|desc)$")


class RankingExplanation(BaseModel):
    criterion_contributions: Dict[str, float] = Field(default_factory=dict)
    top_factors: List[str] = Field(default_factory=list)


class RankingResult(BaseModel):
    initiative_id: str
    rank: int
    score: float
    explanation: RankingExplanation = Field(default_factory=RankingExplanation)


class WhatIfResult(BaseModel):
    initiative_id: str
    current_rank: int
    new_rank: int
    change: int  # current_rank - new_rank; positive means the initiative moved up


class CriterionSensitivity(BaseModel):
    criterion_id: str
    criterion_name: str = ""
    current_weight: float
    score_change: float
    rank_change_probability: float = Field(..., ge=0.0, le=1.0)


class SensitivityAnalysis(BaseModel):
    initiative_id: str
    base_score: float
    base_rank: int
    sensitivities: List[CriterionSensitivity] = Field(default_factory=list)


class CriterionSensitivityRanking(BaseModel):
    initiative_id: str
    sensitivity: float


class CriticalDecisionPoint(BaseModel):
    initiative_id: str
    criterion_id: str
    criterion_name: str = ""
    rank_change_probability: float


class SimilarityResult(BaseModel):
    id: str
    similarity: float
    metadata: Optional[Dict[str, Any]] = None


class DuplicatePair(BaseModel):
    id1: str
    id2: str
    similarity: float
