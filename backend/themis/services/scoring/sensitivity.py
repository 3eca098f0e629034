"""
Weight sensitivity analysis.

For each criterion of an initiative:
- score_change: the criterion's normalized value (d overall / d weight)
- rank_change_probability: share of four weight perturbations (-10%, -5%,
  +5%, +10%) that move the initiative's rank. The delta is taken from, or
  given to, the other criteria in proportion to their weights.

Criteria are reported by |score_change x current_weight|, largest first.
"""
from typing import Dict, List, Sequence

from themis.core.logging import get_logger
from themis.core.metrics import record_ranking_run
from themis.models.scoring import (
    CriterionSensitivity,
    CriterionSensitivityRanking,
    CriticalDecisionPoint,
    InitiativeScore,
    SensitivityAnalysis,
)
from themis.services.scoring.ranker import Ranker

logger = get_logger(__name__)

PERTURBATIONS = (-0.10, -0.05, 0.05, 0.10)
HIGH_IMPACT = 0.15
MEDIUM_IMPACT = 0.08


def perturbed_weights(score: InitiativeScore, criterion_id: str, delta: float) -> Dict[str, float]:
    """Weights after shifting criterion_id by delta (clamped to [0, 1]) and rebalancing the rest."""
    target = next(cs for cs in score.criterion_scores if cs.criterion_id == criterion_id)
    new_weight = max(0.0, min(1.0, target.weight + delta))
    applied = new_weight - target.weight

    others = [cs for cs in score.criterion_scores if cs.criterion_id != criterion_id]
    other_total = sum(cs.weight for cs in others)

    weights = {criterion_id: new_weight}
    for cs in others:
        adjusted = cs.weight - applied * cs.weight / other_total if other_total > 0 else cs.weight
        weights[cs.criterion_id] = max(0.0, adjusted)
    return weights


def _impact(sensitivity: CriterionSensitivity) -> float:
    return abs(sensitivity.score_change * sensitivity.current_weight)


class SensitivityAnalyzer:
    def __init__(self, ranker: Ranker):
        self.ranker = ranker

    def analyze(self, initiative_score: InitiativeScore, all_scores: Sequence[InitiativeScore]) -> SensitivityAnalysis:
        ranking = self.ranker.rank(all_scores)
        base_rank = next(
            (r.rank for r in ranking if r.initiative_id == initiative_score.initiative_id),
            0,
        )

        sensitivities = [
            CriterionSensitivity(
                criterion_id=cs.criterion_id,
                criterion_name=cs.criterion_name,
                current_weight=cs.weight,
                score_change=cs.normalized_value,
                rank_change_probability=self._rank_change_probability(
                    initiative_score, all_scores, cs.criterion_id, base_rank
                ),
            )
            for cs in initiative_score.criterion_scores
        ]
        sensitivities.sort(key=_impact, reverse=True)

        record_ranking_run("sensitivity")
        return SensitivityAnalysis(
            initiative_id=initiative_score.initiative_id,
            base_score=initiative_score.overall_score,
            base_rank=base_rank,
            sensitivities=sensitivities,
        )

    def _rank_change_probability(
        self,
        initiative: InitiativeScore,
        all_scores: Sequence[InitiativeScore],
        criterion_id: str,
        base_rank: int,
    ) -> float:
        changed = 0
        for delta in PERTURBATIONS:
            weights = perturbed_weights(initiative, criterion_id, delta)
            for result in self.ranker.what_if(all_scores, weights):
                if result.initiative_id == initiative.initiative_id:
                    if result.new_rank != base_rank:
                        changed += 1
                    break
        return changed / len(PERTURBATIONS)

    def analyze_all(self, scores: Sequence[InitiativeScore]) -> List[SensitivityAnalysis]:
        return [self.analyze(score, scores) for score in scores]

    @staticmethod
    def find_most_sensitive_to_criterion(
        analyses: Sequence[SensitivityAnalysis],
        criterion_id: str,
    ) -> List[CriterionSensitivityRanking]:
        rankings = []
        for analysis in analyses:
            match = next((s for s in analysis.sensitivities if s.criterion_id == criterion_id), None)
            rankings.append(
                CriterionSensitivityRanking(
                    initiative_id=analysis.initiative_id,
                    sensitivity=match.score_change if match else 0.0,
                )
            )
        rankings.sort(key=lambda r: abs(r.sensitivity), reverse=True)
        return rankings

    @staticmethod
    def find_critical_decision_points(
        analyses: Sequence[SensitivityAnalysis],
        threshold: float = 0.3,
    ) -> List[CriticalDecisionPoint]:
        """(initiative, criterion) pairs whose rank change probability is >= threshold."""
        points = [
            CriticalDecisionPoint(
                initiative_id=analysis.initiative_id,
                criterion_id=s.criterion_id,
                criterion_name=s.criterion_name,
                rank_change_probability=s.rank_change_probability,
            )
            for analysis in analyses
            for s in analysis.sensitivities
            if s.rank_change_probability >= threshold
        ]
        points.sort(key=lambda p: p.rank_change_probability, reverse=True)
        return points

    @staticmethod
    def explain_sensitivity(analysis: SensitivityAnalysis) -> str:
        lines = [
            f"Rank {analysis.base_rank} (score: {analysis.base_score:.3f})",
            "Most sensitive to:",
        ]
        for s in analysis.sensitivities[:3]:
            impact = _impact(s)
            if impact > HIGH_IMPACT:
                level = "high"
            elif impact > MEDIUM_IMPACT:
                level = "medium"
            else:
                level = "low"
            lines.append(
                f"- {s.criterion_name}: {level} impact "
                f"({s.score_change * 100:.1f}% score change per weight unit)"
            )
        return "\n".join(lines)
