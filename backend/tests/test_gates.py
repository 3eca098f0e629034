"""
Unit tests for GateEvaluator and the gate expression language.
"""
import json

import pytest

from themis.core.errors import GateEvaluationError
from themis.models.scoring import GateResult, RequirementGate
from themis.services.scoring.expressions import ExpressionParser, evaluate_expression, tokenize
from themis.services.scoring.gates import GateEvaluator

CONTEXT = {
    "scores": {"compliance": False, "impact": 4, "cost": 2.5},
    "region": "EU",
    "tags": ["ai", "growth"],
    "approved": True,
}


def _gate(expression: str, is_hard: bool = True, name: str = "Compliance") -> RequirementGate:
    return RequirementGate(requirement_id=f"req-{name.lower()}", name=name, expression=expression, is_hard=is_hard)


def test_failed_hard_gate_excludes_initiative():
    """A hard gate 'scores.compliance == true' on a non-compliant initiative fails and blocks."""
    evaluator = GateEvaluator()
    gate = _gate("scores.compliance == true")

    result = evaluator.evaluate(gate, CONTEXT)

    assert result.passed is False
    assert result.reason == "Failed requirement: Compliance"
    assert evaluator.passes_hard_gates([result], [gate]) is False


def test_soft_gate_failure_does_not_block():
    evaluator = GateEvaluator()
    hard = _gate("scores.impact >= 3", name="Impact")
    soft = _gate("region == 'US'", is_hard=False, name="Region")

    results = evaluator.evaluate_all([hard, soft], CONTEXT)

    assert [r.passed for r in results] == [True, False]
    assert evaluator.passes_hard_gates(results, [hard, soft]) is True


def test_passing_gate_has_no_reason():
    result = GateEvaluator().evaluate(_gate("approved"), CONTEXT)
    assert result == GateResult(requirement_id="req-compliance", passed=True, reason=None)


def test_missing_variable_becomes_evaluation_error():
    result = GateEvaluator().evaluate(_gate("scores.unknown > 1"), CONTEXT)
    assert result.passed is False
    assert result.reason.startswith("Evaluation error:")
    assert "scores.unknown" in result.reason


def test_malformed_expression_becomes_evaluation_error():
    result = GateEvaluator().evaluate(_gate("scores.impact >= "), CONTEXT)
    assert result.passed is False
    assert result.reason.startswith("Evaluation error:")


def test_deeply_nested_expression_becomes_evaluation_error():
    expression = "(" * 3000 + "1" + ")" * 3000
    result = GateEvaluator().evaluate(_gate(expression), CONTEXT)
    assert result.passed is False
    assert result.reason.startswith("Evaluation error:")


def test_deeply_nested_json_rule_becomes_evaluation_error():
    rule = "true"
    for _ in range(3000):
        rule = '{"not": ' + rule + "}"
    result = GateEvaluator().evaluate(_gate(rule), CONTEXT)
    assert result.passed is False
    assert result.reason.startswith("Evaluation error:")


def test_list_index_path_needs_ascii_digits():
    context = {"items": [1, 2, 3]}
    assert evaluate_expression(json.dumps({"==": [{"var": "items.1"}, 2]}), context) is True

    result = GateEvaluator().evaluate(_gate(json.dumps({"var": "items.\u00b2"})), context)
    assert result.passed is False
    assert result.reason.startswith("Evaluation error: Unknown variable")


class TestTextExpressions:
    @pytest.mark.parametrize(
        "expression, expected",
        [
            ("scores.impact >= 3 and region == \"EU\"", True),
            ("scores.impact > 4 || region in ['EU', 'US']", True),
            ("not approved or scores.cost < 2", False),
            ("!(scores.impact < 3) && approved", True),
            ("'ai' in tags", True),
            ("'ml' in tags", False),
            ("scores.cost <= 2.5", True),
            ("scores.compliance != true", True),
            ("(scores.impact == 4)", True),
            ("null == null", True),
        ],
    )
    def test_evaluates(self, expression, expected):
        assert evaluate_expression(expression, CONTEXT) is expected

    def test_booleans_never_equal_numbers(self):
        assert evaluate_expression("flag == 1", {"flag": True}) is False

    def test_ordering_requires_comparable_types(self):
        with pytest.raises(GateEvaluationError):
            evaluate_expression("region > 3", CONTEXT)

    def test_code_is_not_executed(self):
        with pytest.raises(GateEvaluationError):
            evaluate_expression("__import__('os').system('true')", CONTEXT)

    def test_trailing_tokens_rejected(self):
        with pytest.raises(GateEvaluationError):
            ExpressionParser("approved approved", CONTEXT).evaluate()

    def test_tokenizer_recognises_keywords_and_paths(self):
        tokens = tokenize("scores.impact >= 3 and not x")
        assert tokens == [
            ("name", "scores.impact"),
            ("op", ">="),
            ("number", "3"),
            ("keyword", "and"),
            ("keyword", "not"),
            ("name", "x"),
        ]


class TestJsonLogic:
    def test_simple_gate_builder(self):
        expression = GateEvaluator.create_simple_gate("scores.impact", ">=", 3)
        assert json.loads(expression) == {">=": [{"var": "scores.impact"}, 3]}
        assert evaluate_expression(expression, CONTEXT) is True

    def test_and_or_builders(self):
        impact = {">=": [{"var": "scores.impact"}, 3]}
        compliant = {"==": [{"var": "scores.compliance"}, True]}

        assert evaluate_expression(GateEvaluator.create_and_gate([impact, compliant]), CONTEXT) is False
        assert evaluate_expression(GateEvaluator.create_or_gate([impact, compliant]), CONTEXT) is True

    def test_operands_are_evaluated_recursively(self):
        rule = {"not": {"in": [{"var": "region"}, ["US", "UK"]]}}
        assert evaluate_expression(json.dumps(rule), CONTEXT) is True

    def test_var_default(self):
        rule = {"==": [{"var": ["scores.missing", 0]}, 0]}
        assert evaluate_expression(json.dumps(rule), CONTEXT) is True

    def test_unknown_operator(self):
        with pytest.raises(GateEvaluationError):
            evaluate_expression(json.dumps({"xor": [True, False]}), CONTEXT)

    def test_json_boolean_literal(self):
        assert evaluate_expression("true", CONTEXT) is True
        assert evaluate_expression("false", CONTEXT) is False

    def test_simple_gate_builder_rejects_unknown_operator(self):
        with pytest.raises(ValueError):
            GateEvaluator.create_simple_gate("x", "~=", 1)
