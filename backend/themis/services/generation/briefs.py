"""
Concept brief generation.

- generate: five-section brief (summary, rationale, risks, metrics, image prompt)
- generate_full_brief: adds implementation plan and timeline
- regenerate_section: rewrite one section given the rest as context
- generate_image_prompt: standalone prompt for image models
"""
from typing import Dict, List, Optional

from themis.core.logging import get_logger
from themis.models.llm import LLMMessage, LLMRequest
from themis.services.generation.parsing import decode_or_raise
from themis.services.generation.schema import (
    BriefGenerationRequest,
    FullBrief,
    GeneratedBrief,
    WeightedCriterion,
)
from themis.services.llm.llm_service import LLMService
from themis.services.llm.prompt_registry import PromptRegistry

logger = get_logger(__name__)

BRIEF_TEMPERATURE = 0.7
BRIEF_MAX_TOKENS = 1500
FULL_BRIEF_MAX_TOKENS = 2000
SECTION_MAX_TOKENS = 500
IMAGE_PROMPT_TEMPERATURE = 0.8
IMAGE_PROMPT_MAX_TOKENS = 200

BRIEF_ANALYST_PROMPT = "You are a strategy analyst writing concise, actionable concept briefs."

SECTION_INSTRUCTIONS: Dict[str, str] = {
    "executive_summary": "Write a 2-3 sentence executive summary.",
    "rationale": "Explain the rationale and strategic fit in 3-4 paragraphs.",
    "risks": "Identify 3-5 key risks with mitigation strategies.",
    "metrics": "Define 3-5 measurable success metrics (KPIs).",
    "image_prompt": (
        "Write a vivid visual description for image generation "
        "(mood, style and key elements)."
    ),
}


def calculate_overall_score(scores: Dict[str, float], criteria: List[WeightedCriterion]) -> float:
    """Weighted average of raw criterion scores; 0.0 when the weights sum to 0."""
    total_score = 0.0
    total_weight = 0.0
    for criterion in criteria:
        total_score += scores.get(criterion.name, 0.0) * criterion.weight
        total_weight += criterion.weight
    return total_score / total_weight if total_weight > 0 else 0.0


def format_criterion_scores(request: BriefGenerationRequest) -> str:
    return "\n".join(
        f"- {c.name} (weight: {c.weight:.2f}): {request.scores.get(c.name, 0.0):.2f}/5.0"
        for c in request.criteria
    )


class BriefGenerator:
    def __init__(self, llm_service: LLMService, prompt_registry: PromptRegistry):
        self.llm_service = llm_service
        self.prompt_registry = prompt_registry

    def _templated_messages(self, template_id: str, request: BriefGenerationRequest) -> List[LLMMessage]:
        overall = calculate_overall_score(request.scores, request.criteria)
        prompt = self.prompt_registry.render(
            template_id,
            {
                "title": request.title,
                "description": request.description,
                "score": f"{overall:.3f}",
                "criterion_scores": format_criterion_scores(request),
            },
        )
        return [
            LLMMessage(role="system", content=self.prompt_registry.get_system_prompt(template_id) or ""),
            LLMMessage(role="user", content=prompt),
        ]

    async def generate(self, request: BriefGenerationRequest) -> GeneratedBrief:
        """
        Raises:
            SchemaValidationError: The model's output is not a valid brief
        """
        response = await self.llm_service.complete(
            LLMRequest(
                messages=self._templated_messages("brief_generation", request),
                temperature=BRIEF_TEMPERATURE,
                max_tokens=BRIEF_MAX_TOKENS,
            ),
            workspace_id=request.workspace_id,
        )
        brief = decode_or_raise("brief_generation", response.content, GeneratedBrief, request.workspace_id)
        logger.info("brief_generated", title=request.title, workspace_id=request.workspace_id)
        return brief

    async def generate_full_brief(self, request: BriefGenerationRequest) -> FullBrief:
        response = await self.llm_service.complete(
            LLMRequest(
                messages=self._templated_messages("full_brief_generation", request),
                temperature=BRIEF_TEMPERATURE,
                max_tokens=FULL_BRIEF_MAX_TOKENS,
            ),
            workspace_id=request.workspace_id,
        )
        brief = decode_or_raise("full_brief_generation", response.content, FullBrief, request.workspace_id)
        logger.info("full_brief_generated", title=request.title, workspace_id=request.workspace_id)
        return brief

    async def regenerate_section(
        self,
        request: BriefGenerationRequest,
        section: str,
        current_brief: Optional[Dict[str, str]] = None,
    ) -> str:
        """
        Rewrite one brief section, using the other sections as context.

        Args:
            section: One of SECTION_INSTRUCTIONS' keys
            current_brief: Existing sections keyed by field name

        Raises:
            ValueError: Unknown section
        """
        instruction = SECTION_INSTRUCTIONS.get(section)
        if instruction is None:
            raise ValueError(f"Unknown brief section: {section}")

        context = ""
        if current_brief:
            context = "\n\n".join(
                f"{key}: {value}" for key, value in current_brief.items() if key != section
            )

        prompt = (
            f"For this initiative:\nTitle: {request.title}\nDescription: {request.description}\n\n"
            f"{context}\n\n{instruction}\n\n"
            "Return only the requested section content, no additional formatting."
        )
        response = await self.llm_service.complete(
            LLMRequest(
                messages=[
                    LLMMessage(role="system", content=BRIEF_ANALYST_PROMPT),
                    LLMMessage(role="user", content=prompt),
                ],
                temperature=BRIEF_TEMPERATURE,
                max_tokens=SECTION_MAX_TOKENS,
            ),
            workspace_id=request.workspace_id,
        )
        return response.content.strip()

    async def generate_image_prompt(
        self,
        title: str,
        description: str,
        style: str = "modern, professional",
        workspace_id: Optional[str] = None,
    ) -> str:
        prompt = (
            f"Create an image generation prompt for this initiative:\n"
            f"Title: {title}\nDescription: {description}\nStyle: {style}\n\n"
            "The prompt should be detailed and specific, suitable for text-to-image models."
        )
        response = await self.llm_service.complete(
            LLMRequest(
                messages=[
                    LLMMessage(
                        role="system",
                        content="You write image generation prompts focused on visual elements, mood, style and composition.",
                    ),
                    LLMMessage(role="user", content=prompt),
                ],
                temperature=IMAGE_PROMPT_TEMPERATURE,
                max_tokens=IMAGE_PROMPT_MAX_TOKENS,
            ),
            workspace_id=workspace_id,
        )
        return response.content.strip()
