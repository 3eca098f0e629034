"""
Initiative generation.

Turns a project intent plus evaluation criteria into candidate initiatives.
The request's diversity is used directly as the sampling temperature.
"""
from typing import List, Optional

from themis.core.logging import get_logger
from themis.models.llm import LLMMessage, LLMRequest
from themis.services.generation.parsing import decode_or_raise
from themis.services.generation.schema import (
    CapturedIntent,
    GeneratedInitiative,
    InitiativeGenerationRequest,
)
from themis.services.llm.llm_service import LLMService
from themis.services.llm.prompt_registry import PromptRegistry

logger = get_logger(__name__)

GENERATION_MAX_TOKENS = 2000
INTENT_TEMPERATURE = 0.3
INTENT_MAX_TOKENS = 500


class InitiativeGenerator:
    def __init__(self, llm_service: LLMService, prompt_registry: PromptRegistry):
        self.llm_service = llm_service
        self.prompt_registry = prompt_registry

    def _messages(self, template_id: str, prompt: str) -> List[LLMMessage]:
        system_prompt = self.prompt_registry.get_system_prompt(template_id) or ""
        return [
            LLMMessage(role="system", content=system_prompt),
            LLMMessage(role="user", content=prompt),
        ]

    async def generate(self, request: InitiativeGenerationRequest) -> List[GeneratedInitiative]:
        """
        Generate request.count initiatives in a single LLM call.

        Raises:
            SchemaValidationError: The model's output is not a valid initiative list
        """
        criteria_text = "\n".join(f"- {c.name}: {c.description}" for c in request.criteria)
        prompt = self.prompt_registry.render(
            "initiative_generation",
            {
                "count": str(request.count),
                "goal": request.intent,
                "launch": request.intent,
                "criteria": criteria_text,
            },
        )

        response = await self.llm_service.complete(
            LLMRequest(
                messages=self._messages("initiative_generation", prompt),
                temperature=request.diversity,
                max_tokens=GENERATION_MAX_TOKENS,
            ),
            workspace_id=request.workspace_id,
        )

        initiatives = decode_or_raise(
            "initiative_generation",
            response.content,
            List[GeneratedInitiative],
            workspace_id=request.workspace_id,
        )
        logger.info(
            "initiatives_generated",
            requested=request.count,
            generated=len(initiatives),
            workspace_id=request.workspace_id,
        )
        return initiatives

    async def generate_batch(
        self,
        request: InitiativeGenerationRequest,
        batch_size: int = 10,
    ) -> List[GeneratedInitiative]:
        """Generate large counts sequentially in chunks of batch_size."""
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        results: List[GeneratedInitiative] = []
        remaining = request.count
        while remaining > 0:
            chunk = min(batch_size, remaining)
            results.extend(await self.generate(request.model_copy(update={"count": chunk})))
            remaining -= chunk
        return results

    @staticmethod
    def filter_by_quality(
        initiatives: List[GeneratedInitiative],
        min_impact: float = 3,
        min_confidence: float = 0.6,
    ) -> List[GeneratedInitiative]:
        return [
            i for i in initiatives
            if i.estimated_impact >= min_impact and i.confidence >= min_confidence
        ]

    @staticmethod
    def rank_initiatives(initiatives: List[GeneratedInitiative]) -> List[GeneratedInitiative]:
        """Sort by impact x confidence, highest first. Returns a new list."""
        return sorted(initiatives, key=lambda i: i.estimated_impact * i.confidence, reverse=True)

    async def capture_intent(self, user_input: str, workspace_id: Optional[str] = None) -> CapturedIntent:
        """Extract goal, launch target and objectives from free-form input."""
        prompt = self.prompt_registry.render("intent_capture", {"user_input": user_input})
        response = await self.llm_service.complete(
            LLMRequest(
                messages=self._messages("intent_capture", prompt),
                temperature=INTENT_TEMPERATURE,
                max_tokens=INTENT_MAX_TOKENS,
            ),
            workspace_id=workspace_id,
        )
        return decode_or_raise("intent_capture", response.content, CapturedIntent, workspace_id=workspace_id)
