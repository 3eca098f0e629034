"""
Unit tests for Scorer:
- linear / exponential normalization and out-of-scale values
- weighted overall score, risk adjustment, confidence
- reviewer aggregation (mean, median, trimmed mean)
- weight validation and normalization
"""
import pytest

from themis.models.scoring import Criterion, CriterionKind, ReviewerScore, ScoreInput
from themis.services.scoring.scorer import Scorer, ScoringConfig


def _inputs(impact: float = 5, feasibility: float = 3):
    return [
        ScoreInput(criterion_id="impact", criterion_name="Impact", value=impact, weight=0.6),
        ScoreInput(criterion_id="feasibility", criterion_name="Feasibility", value=feasibility, weight=0.4),
    ]


def test_impact_feasibility_scenario():
    """Impact 5 (w .6) and Feasibility 3 (w .4) on a 1-5 scale score 0.8."""
    result = Scorer(ScoringConfig(normalization_method="linear")).calculate_score(_inputs(), initiative_id="i1")

    assert result.initiative_id == "i1"
    assert result.overall_score == pytest.approx(0.8)
    normalized = {cs.criterion_id: cs.normalized_value for cs in result.criterion_scores}
    assert normalized == {"impact": pytest.approx(1.0), "feasibility": pytest.approx(0.5)}
    assert result.criterion_scores[0].contribution == pytest.approx(0.6)
    assert result.risk_adjusted is None
    assert result.confidence is None


def test_overall_score_monotonic_in_each_value():
    scorer = Scorer()
    previous = -1.0
    for value in (1, 2, 3, 4, 5):
        score = scorer.calculate_score(_inputs(impact=value)).overall_score
        assert score >= previous
        previous = score


def test_exponential_normalization_emphasizes_high_scores():
    scorer = Scorer(ScoringConfig(normalization_method="exponential"))
    assert scorer.normalize(3) == pytest.approx(0.5 ** 0.8)
    assert scorer.normalize(5) == pytest.approx(1.0)
    assert scorer.normalize(1) == pytest.approx(0.0)


def test_custom_scale_bounds():
    scorer = Scorer()
    assert scorer.normalize(5, scale_min=0, scale_max=10) == pytest.approx(0.5)


def test_value_outside_scale_raises():
    with pytest.raises(ValueError):
        Scorer().calculate_score(_inputs(impact=6))


def test_unknown_methods_are_rejected():
    with pytest.raises(ValueError):
        ScoringConfig(normalization_method="log")
    with pytest.raises(ValueError):
        ScoringConfig(aggregation_method="mode")


def test_risk_adjustment_is_capped_at_half():
    scorer = Scorer(ScoringConfig(risk_adjustment=True))

    mild = scorer.calculate_score(_inputs(), risk_index=0.2)
    severe = scorer.calculate_score(_inputs(), risk_index=0.9)

    assert mild.risk_adjusted == pytest.approx(0.8 * 0.8)
    assert severe.risk_adjusted == pytest.approx(0.8 * 0.5)


def test_risk_adjustment_disabled_ignores_risk_index():
    result = Scorer().calculate_score(_inputs(), risk_index=0.4)
    assert result.risk_adjusted is None


def test_confidence_is_weight_proportional():
    inputs = [
        ScoreInput(criterion_id="a", value=5, weight=0.75, confidence=1.0),
        ScoreInput(criterion_id="b", value=5, weight=0.25, confidence=0.2),
    ]
    assert Scorer().calculate_score(inputs).confidence == pytest.approx(0.8)


def test_confidence_plain_mean_when_weights_are_zero():
    inputs = [
        ScoreInput(criterion_id="a", value=5, weight=0.0, confidence=0.4),
        ScoreInput(criterion_id="b", value=5, weight=0.0, confidence=0.8),
    ]
    assert Scorer().calculate_score(inputs).confidence == pytest.approx(0.6)


class TestAggregation:
    """Reviewer aggregation per criterion."""

    def test_mean(self):
        assert Scorer(ScoringConfig(aggregation_method="mean")).aggregate([1, 2, 6]) == pytest.approx(3.0)

    def test_median_even_count_uses_midpoint(self):
        assert Scorer(ScoringConfig(aggregation_method="median")).aggregate([4, 1, 3, 2]) == pytest.approx(2.5)

    def test_trimmed_mean_drops_ten_percent_each_end(self):
        scorer = Scorer(ScoringConfig(aggregation_method="trimmed_mean"))
        values = [1, 3, 3, 3, 3, 3, 3, 3, 3, 100]
        assert scorer.aggregate(values) == pytest.approx(3.0)

    def test_empty_and_single(self):
        scorer = Scorer()
        assert scorer.aggregate([]) == 0.0
        assert scorer.aggregate([4]) == 4.0

    def test_aggregate_scores_feeds_single_score_path(self):
        scorer = Scorer(ScoringConfig(aggregation_method="median"))
        reviewer_scores = [
            ReviewerScore(reviewer_id="r1", criterion_id="impact", criterion_name="Impact", value=5, confidence=0.9),
            ReviewerScore(reviewer_id="r2", criterion_id="impact", criterion_name="Impact", value=5, confidence=0.7),
            ReviewerScore(reviewer_id="r1", criterion_id="feasibility", criterion_name="Feasibility", value=2),
            ReviewerScore(reviewer_id="r2", criterion_id="feasibility", criterion_name="Feasibility", value=4),
        ]

        result = scorer.aggregate_scores(
            reviewer_scores,
            {"impact": 0.6, "feasibility": 0.4},
            initiative_id="i1",
        )

        assert result.initiative_id == "i1"
        assert result.overall_score == pytest.approx(0.8)
        assert result.confidence == pytest.approx(0.8)

    def test_aggregate_scores_missing_weight_defaults_to_zero(self):
        reviewer_scores = [ReviewerScore(reviewer_id="r1", criterion_id="x", value=5)]
        result = Scorer().aggregate_scores(reviewer_scores, {})
        assert result.overall_score == 0.0


class TestWeights:
    def test_validate_weights_within_tolerance(self):
        assert Scorer.validate_weights([0.6, 0.4])
        assert Scorer.validate_weights([0.5, 0.5005])
        assert not Scorer.validate_weights([0.5, 0.49])

    def test_normalize_weights_sums_to_one(self):
        normalized = Scorer.normalize_weights({"a": 2.0, "b": 6.0})
        assert normalized == {"a": pytest.approx(0.25), "b": pytest.approx(0.75)}
        assert Scorer.validate_weights(list(normalized.values()))

    def test_normalize_weights_rejects_zero_sum(self):
        with pytest.raises(ValueError):
            Scorer.normalize_weights({"a": 0.0, "b": 0.0})

    def test_validate_criteria_weights_ignores_hard_criteria(self):
        criteria = [
            Criterion(id="impact", name="Impact", weight=0.7),
            Criterion(id="cost", name="Cost", weight=0.3),
            Criterion(id="legal", name="Legal", weight=0.5, kind=CriterionKind.HARD),
        ]
        assert Scorer.validate_criteria_weights(criteria)


def test_tie_break_criteria_follow_config_order():
    scorer = Scorer(ScoringConfig(tie_break_order=["feasibility", "impact"]))
    criteria = scorer.tie_break_criteria()
    assert [(c.criterion_id, c.order) for c in criteria] == [("feasibility", "desc"), ("impact", "desc")]
