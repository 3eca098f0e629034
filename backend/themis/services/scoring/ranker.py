"""
Ranking with tie-breaks and what-if analysis.

Ordering: overall score desc (scores within RANK_EPSILON are tied), then the
configured tie-break criteria in order, then confidence desc, then input
order. Ranks are 1..N with no gaps.
"""
from functools import cmp_to_key
from typing import Dict, List, Optional, Sequence

from themis.core.logging import get_logger
from themis.core.metrics import record_ranking_run
from themis.models.scoring import (
    CriterionScore,
    InitiativeScore,
    RankingExplanation,
    RankingResult,
    TieBreakCriterion,
    WhatIfResult,
)

logger = get_logger(__name__)

RANK_EPSILON = 0.001
TOP_FACTORS = 3


def _find_criterion(score: InitiativeScore, criterion_id: str) -> Optional[CriterionScore]:
    for cs in score.criterion_scores:
        if cs.criterion_id == criterion_id:
            return cs
    return None


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


class Ranker:
    def __init__(self, tie_break_criteria: Optional[List[TieBreakCriterion]] = None):
        self.tie_break_criteria = list(tie_break_criteria or [])

    def _compare(self, a: InitiativeScore, b: InitiativeScore) -> int:
        """Negative when a ranks ahead of b."""
        diff = b.overall_score - a.overall_score
        if abs(diff) > RANK_EPSILON:
            return _sign(diff)

        for tie_break in self.tie_break_criteria:
            a_cs = _find_criterion(a, tie_break.criterion_id)
            b_cs = _find_criterion(b, tie_break.criterion_id)
            if a_cs is None or b_cs is None:
                continue
            diff = b_cs.contribution - a_cs.contribution
            if abs(diff) > RANK_EPSILON:
                return _sign(diff) if tie_break.order == "desc" else -_sign(diff)

        if a.confidence is not None and b.confidence is not None:
            return _sign(b.confidence - a.confidence)
        return 0

    def rank(self, scores: Sequence[InitiativeScore]) -> List[RankingResult]:
        ordered = sorted(scores, key=cmp_to_key(self._compare))
        record_ranking_run("rank")
        logger.debug("initiatives_ranked", count=len(ordered))
        return [
            RankingResult(
                initiative_id=score.initiative_id,
                rank=position,
                score=score.overall_score,
                explanation=self.explain(score),
            )
            for position, score in enumerate(ordered, start=1)
        ]

    @staticmethod
    def explain(score: InitiativeScore) -> RankingExplanation:
        contributions = {cs.criterion_name: cs.contribution for cs in score.criterion_scores}
        top = sorted(score.criterion_scores, key=lambda cs: cs.contribution, reverse=True)
        return RankingExplanation(
            criterion_contributions=contributions,
            top_factors=[cs.criterion_name for cs in top[:TOP_FACTORS]],
        )

    @staticmethod
    def reweight(score: InitiativeScore, new_weights: Dict[str, float]) -> InitiativeScore:
        """Copy of score with contributions and overall recomputed under new_weights."""
        criterion_scores = []
        for cs in score.criterion_scores:
            weight = new_weights.get(cs.criterion_id, cs.weight)
            criterion_scores.append(
                cs.model_copy(update={"weight": weight, "contribution": cs.normalized_value * weight})
            )
        return score.model_copy(
            update={
                "criterion_scores": criterion_scores,
                "overall_score": sum(cs.contribution for cs in criterion_scores),
            }
        )

    def what_if(self, scores: Sequence[InitiativeScore], new_weights: Dict[str, float]) -> List[WhatIfResult]:
        """
        Rank changes if the criteria weights were new_weights.

        Criteria missing from new_weights keep their current weight. Results
        follow the current ranking order.
        """
        current = self.rank(scores)
        new_ranks = {
            r.initiative_id: r.rank
            for r in self.rank([self.reweight(s, new_weights) for s in scores])
        }
        record_ranking_run("what_if")
        return [
            WhatIfResult(
                initiative_id=r.initiative_id,
                current_rank=r.rank,
                new_rank=new_ranks.get(r.initiative_id, r.rank),
                change=r.rank - new_ranks.get(r.initiative_id, r.rank),
            )
            for r in current
        ]

    @staticmethod
    def filter_by_threshold(results: Sequence[RankingResult], min_score: float) -> List[RankingResult]:
        kept = [r for r in results if r.score >= min_score]
        return [r.model_copy(update={"rank": position}) for position, r in enumerate(kept, start=1)]

    @staticmethod
    def top(results: Sequence[RankingResult], n: int) -> List[RankingResult]:
        return [r.model_copy(update={"rank": position}) for position, r in enumerate(results[:n], start=1)]
