"""
Unit tests for SensitivityAnalyzer.

Fixture: A (impact 1.0, feasibility 0.0) scores 0.60 and B (impact 0.2,
feasibility 1.0) scores 0.52 under weights 0.6 / 0.4. Shifting 5-10% of
weight from impact to feasibility flips the order; the opposite shift does not.
"""
import pytest

from themis.models.scoring import CriterionScore, InitiativeScore
from themis.services.scoring.ranker import Ranker
from themis.services.scoring.sensitivity import SensitivityAnalyzer, perturbed_weights


def _score(initiative_id, impact, feasibility):
    criterion_scores = [
        CriterionScore(
            criterion_id="impact",
            criterion_name="Impact",
            value=1 + impact * 4,
            normalized_value=impact,
            weight=0.6,
            contribution=impact * 0.6,
        ),
        CriterionScore(
            criterion_id="feasibility",
            criterion_name="Feasibility",
            value=1 + feasibility * 4,
            normalized_value=feasibility,
            weight=0.4,
            contribution=feasibility * 0.4,
        ),
    ]
    return InitiativeScore(
        initiative_id=initiative_id,
        overall_score=sum(cs.contribution for cs in criterion_scores),
        criterion_scores=criterion_scores,
    )


@pytest.fixture
def scores():
    return [_score("A", 1.0, 0.0), _score("B", 0.2, 1.0)]


@pytest.fixture
def analyzer():
    return SensitivityAnalyzer(Ranker())


def test_perturbed_weights_rebalance_other_criteria(scores):
    weights = perturbed_weights(scores[0], "impact", -0.1)
    assert weights["impact"] == pytest.approx(0.5)
    assert weights["feasibility"] == pytest.approx(0.5)
    assert sum(weights.values()) == pytest.approx(1.0)


def test_perturbed_weights_clamp_to_unit_interval():
    lone = InitiativeScore(
        initiative_id="x",
        overall_score=0.95,
        criterion_scores=[
            CriterionScore(
                criterion_id="only",
                value=5,
                normalized_value=1.0,
                weight=0.95,
                contribution=0.95,
            )
        ],
    )
    assert perturbed_weights(lone, "only", 0.1) == {"only": 1.0}


def test_analyze_reports_probabilities_and_order(scores, analyzer):
    analysis = analyzer.analyze(scores[0], scores)

    assert analysis.initiative_id == "A"
    assert analysis.base_rank == 1
    assert analysis.base_score == pytest.approx(0.6)

    assert [s.criterion_id for s in analysis.sensitivities] == ["impact", "feasibility"]
    impact, feasibility = analysis.sensitivities
    assert impact.score_change == pytest.approx(1.0)
    assert impact.current_weight == pytest.approx(0.6)
    assert impact.rank_change_probability == pytest.approx(0.5)
    assert feasibility.rank_change_probability == pytest.approx(0.5)


def test_stable_ranking_has_zero_probability(analyzer):
    dominant = _score("dominant", 1.0, 1.0)
    weak = _score("weak", 0.0, 0.0)

    analysis = analyzer.analyze(dominant, [dominant, weak])

    assert all(s.rank_change_probability == 0.0 for s in analysis.sensitivities)


def test_analyze_all_and_critical_points(scores, analyzer):
    analyses = analyzer.analyze_all(scores)

    assert [a.initiative_id for a in analyses] == ["A", "B"]
    points = analyzer.find_critical_decision_points(analyses)
    assert len(points) == 4
    assert all(p.rank_change_probability >= 0.3 for p in points)
    assert analyzer.find_critical_decision_points(analyses, threshold=0.6) == []


def test_find_most_sensitive_to_criterion(scores, analyzer):
    analyses = analyzer.analyze_all(scores)

    ranking = analyzer.find_most_sensitive_to_criterion(analyses, "impact")

    assert [r.initiative_id for r in ranking] == ["A", "B"]
    assert ranking[0].sensitivity == pytest.approx(1.0)
    assert ranking[1].sensitivity == pytest.approx(0.2)
    assert all(r.sensitivity == 0.0 for r in analyzer.find_most_sensitive_to_criterion(analyses, "cost"))


def test_explain_sensitivity(scores, analyzer):
    text = analyzer.explain_sensitivity(analyzer.analyze(scores[0], scores))

    lines = text.splitlines()
    assert lines[0] == "Rank 1 (score: 0.600)"
    assert lines[1] == "Most sensitive to:"
    assert lines[2] == "- Impact: high impact (100.0% score change per weight unit)"
    assert lines[3] == "- Feasibility: low impact (0.0% score change per weight unit)"
