"""
Feasibility analysis (0-100 sub-scores, risk level, blockers, estimates).

Sampled at temperature 0.3.
"""
import json

from themis.core.logging import get_logger
from themis.models.llm import LLMMessage, LLMRequest
from themis.services.generation.parsing import decode_or_raise
from themis.services.generation.schema import FeasibilityReport, FeasibilityRequest
from themis.services.llm.llm_service import LLMService
from themis.services.llm.prompt_registry import PromptRegistry

logger = get_logger(__name__)

FEASIBILITY_TEMPERATURE = 0.3
FEASIBILITY_MAX_TOKENS = 1000


class FeasibilityService:
    def __init__(self, llm_service: LLMService, prompt_registry: PromptRegistry):
        self.llm_service = llm_service
        self.prompt_registry = prompt_registry

    async def check_feasibility(self, request: FeasibilityRequest) -> FeasibilityReport:
        scores = ""
        if request.scores:
            scores = "Current Scores: " + json.dumps(request.scores, indent=2, sort_keys=True)

        prompt = self.prompt_registry.render(
            "feasibility_check",
            {"title": request.name, "description": request.description, "scores": scores},
        )
        response = await self.llm_service.complete(
            LLMRequest(
                messages=[
                    LLMMessage(
                        role="system",
                        content=self.prompt_registry.get_system_prompt("feasibility_check") or "",
                    ),
                    LLMMessage(role="user", content=prompt),
                ],
                temperature=FEASIBILITY_TEMPERATURE,
                max_tokens=FEASIBILITY_MAX_TOKENS,
            ),
            workspace_id=request.workspace_id,
        )
        report = decode_or_raise("feasibility_check", response.content, FeasibilityReport, request.workspace_id)
        logger.info(
            "feasibility_checked",
            initiative=request.name,
            overall_score=report.overall_score,
            risk_level=report.risk_level,
            workspace_id=request.workspace_id,
        )
        return report
