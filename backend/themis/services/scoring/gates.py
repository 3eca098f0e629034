"""
Requirement gates.

A gate is a boolean expression over an initiative's context (scores,
attributes, flags). Hard gates exclude an initiative when they fail; soft
gates are reported but never block.
"""
import json
from typing import Any, Dict, List, Mapping, Sequence

from themis.core.logging import get_logger
from themis.core.metrics import record_gate_evaluation
from themis.models.scoring import GateResult, RequirementGate
from themis.services.scoring.expressions import evaluate_expression

logger = get_logger(__name__)

SIMPLE_GATE_OPERATORS = ("==", "!=", ">", ">=", "<", "<=")


class GateEvaluator:
    def evaluate(self, gate: RequirementGate, context: Mapping[str, Any]) -> GateResult:
        """
        Evaluate one gate. Never raises: malformed or runaway expressions and
        missing variables produce a failed result with an "Evaluation error" reason.
        """
        try:
            passed = evaluate_expression(gate.expression, context)
        except Exception as exc:
            record_gate_evaluation("error")
            logger.warning(
                "gate_evaluation_failed",
                requirement_id=gate.requirement_id,
                gate=gate.name,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return GateResult(
                requirement_id=gate.requirement_id,
                passed=False,
                reason=f"Evaluation error: {exc}",
            )

        record_gate_evaluation("passed" if passed else "failed")
        return GateResult(
            requirement_id=gate.requirement_id,
            passed=passed,
            reason=None if passed else f"Failed requirement: {gate.name}",
        )

    def evaluate_all(self, gates: Sequence[RequirementGate], context: Mapping[str, Any]) -> List[GateResult]:
        return [self.evaluate(gate, context) for gate in gates]

    @staticmethod
    def passes_hard_gates(results: Sequence[GateResult], gates: Sequence[RequirementGate]) -> bool:
        """True if every result belonging to a hard gate passed."""
        hard_ids = {g.requirement_id for g in gates if g.is_hard}
        return all(r.passed for r in results if r.requirement_id in hard_ids)

    # ------------------------------------------------------------------
    # Builders (JSON logic)
    # ------------------------------------------------------------------

    @staticmethod
    def create_simple_gate(field: str, operator: str, value: Any) -> str:
        """e.g. create_simple_gate("scores.impact", ">=", 3)"""
        if operator not in SIMPLE_GATE_OPERATORS:
            raise ValueError(f"Unsupported gate operator: {operator}")
        return json.dumps({operator: [{"var": field}, value]})

    @staticmethod
    def create_and_gate(conditions: List[Dict[str, Any]]) -> str:
        return json.dumps({"and": conditions})

    @staticmethod
    def create_or_gate(conditions: List[Dict[str, Any]]) -> str:
        return json.dumps({"or": conditions})
