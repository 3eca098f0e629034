"""
Multi-criteria scoring.

Raw criterion values (e.g. 1-5) are normalized to [0, 1], multiplied by the
criterion weight to get a contribution, and summed into the overall score.
Multiple reviewers' values for the same criterion are aggregated first.
"""
import math
import statistics
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from themis.core.logging import get_logger
from themis.models.scoring import (
    Criterion,
    CriterionKind,
    CriterionScore,
    InitiativeScore,
    ReviewerScore,
    ScoreInput,
    TieBreakCriterion,
)

logger = get_logger(__name__)

WEIGHT_TOLERANCE = 0.001
EXPONENTIAL_POWER = 0.8
MAX_RISK_PENALTY = 0.5
TRIM_FRACTION = 0.1

NORMALIZATION_METHODS = ("linear", "exponential")
AGGREGATION_METHODS = ("mean", "median", "trimmed_mean")


@dataclass
class ScoringConfig:
    normalization_method: str = "linear"
    aggregation_method: str = "median"
    risk_adjustment: bool = False
    tie_break_order: List[str] = field(default_factory=lambda: ["impact", "time_to_value", "confidence"])

    def __post_init__(self) -> None:
        if self.normalization_method not in NORMALIZATION_METHODS:
            raise ValueError(f"Unknown normalization method: {self.normalization_method}")
        if self.aggregation_method not in AGGREGATION_METHODS:
            raise ValueError(f"Unknown aggregation method: {self.aggregation_method}")


class Scorer:
    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or ScoringConfig()

    def normalize(self, value: float, scale_min: float = 1.0, scale_max: float = 5.0) -> float:
        """
        Map a raw value onto [0, 1].

        Raises:
            ValueError: Degenerate scale or value outside [scale_min, scale_max]
        """
        if scale_max <= scale_min:
            raise ValueError(f"Invalid scale: [{scale_min}, {scale_max}]")
        if not scale_min <= value <= scale_max:
            raise ValueError(f"Value {value} outside scale [{scale_min}, {scale_max}]")

        normalized = (value - scale_min) / (scale_max - scale_min)
        if self.config.normalization_method == "exponential":
            return normalized ** EXPONENTIAL_POWER
        return normalized

    def calculate_score(
        self,
        scores: Sequence[ScoreInput],
        risk_index: Optional[float] = None,
        initiative_id: str = "",
    ) -> InitiativeScore:
        criterion_scores = []
        for s in scores:
            normalized = self.normalize(s.value, s.scale_min, s.scale_max)
            criterion_scores.append(
                CriterionScore(
                    criterion_id=s.criterion_id,
                    criterion_name=s.criterion_name,
                    value=s.value,
                    normalized_value=normalized,
                    weight=s.weight,
                    contribution=normalized * s.weight,
                )
            )

        overall = sum(cs.contribution for cs in criterion_scores)

        risk_adjusted = None
        if self.config.risk_adjustment and risk_index is not None:
            risk_adjusted = overall * (1 - min(risk_index, MAX_RISK_PENALTY))

        return InitiativeScore(
            initiative_id=initiative_id,
            overall_score=overall,
            criterion_scores=criterion_scores,
            risk_adjusted=risk_adjusted,
            confidence=self._weighted_confidence(scores),
        )

    def tie_break_criteria(self) -> List[TieBreakCriterion]:
        """Configured tie-break order as Ranker input (higher contribution wins)."""
        return [TieBreakCriterion(criterion_id=c, order="desc") for c in self.config.tie_break_order]

    @staticmethod
    def _weighted_confidence(scores: Sequence[ScoreInput]) -> Optional[float]:
        rated = [s for s in scores if s.confidence is not None]
        if not rated:
            return None
        total_weight = sum(s.weight for s in rated)
        if total_weight <= 0:
            return sum(s.confidence for s in rated) / len(rated)
        return sum(s.confidence * s.weight for s in rated) / total_weight

    def aggregate(self, values: Sequence[float]) -> float:
        """Collapse several values into one with the configured method (0.0 if empty)."""
        if not values:
            return 0.0
        if len(values) == 1:
            return float(values[0])

        method = self.config.aggregation_method
        if method == "median":
            return float(statistics.median(values))
        if method == "trimmed_mean":
            ordered = sorted(values)
            trim = math.floor(len(ordered) * TRIM_FRACTION)
            kept = ordered[trim:len(ordered) - trim]
            return sum(kept) / len(kept)
        return sum(values) / len(values)

    def aggregate_scores(
        self,
        reviewer_scores: Sequence[ReviewerScore],
        criteria_weights: Dict[str, float],
        initiative_id: str = "",
    ) -> InitiativeScore:
        """Aggregate per criterion across reviewers, then score the result."""
        grouped: "OrderedDict[str, List[ReviewerScore]]" = OrderedDict()
        for score in reviewer_scores:
            grouped.setdefault(score.criterion_id, []).append(score)

        inputs = []
        for criterion_id, entries in grouped.items():
            confidences = [e.confidence for e in entries if e.confidence is not None]
            inputs.append(
                ScoreInput(
                    criterion_id=criterion_id,
                    criterion_name=entries[0].criterion_name,
                    value=self.aggregate([e.value for e in entries]),
                    weight=criteria_weights.get(criterion_id, 0.0),
                    confidence=self.aggregate(confidences) if confidences else None,
                )
            )

        logger.debug(
            "reviewer_scores_aggregated",
            initiative_id=initiative_id,
            method=self.config.aggregation_method,
            reviewers=len({s.reviewer_id for s in reviewer_scores}),
            criteria=len(inputs),
        )
        return self.calculate_score(inputs, initiative_id=initiative_id)

    @staticmethod
    def validate_weights(weights: Sequence[float]) -> bool:
        """True if the weights sum to 1.0 within WEIGHT_TOLERANCE (inclusive)."""
        return math.isclose(sum(weights), 1.0, rel_tol=0.0, abs_tol=WEIGHT_TOLERANCE)

    @staticmethod
    def normalize_weights(weights: Dict[str, float]) -> Dict[str, float]:
        """
        Rescale weights to sum to 1.0.

        Raises:
            ValueError: The weights sum to zero or less
        """
        total = sum(weights.values())
        if total <= 0:
            raise ValueError("Cannot normalize weights with a non-positive sum")
        return {key: weight / total for key, weight in weights.items()}

    @classmethod
    def validate_criteria_weights(cls, criteria: Sequence[Criterion]) -> bool:
        """Validate the weights of soft criteria; hard criteria are pass/fail and ignored."""
        return cls.validate_weights([c.weight for c in criteria if c.kind == CriterionKind.SOFT])
