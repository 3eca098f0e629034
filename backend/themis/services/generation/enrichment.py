"""Initiative enrichment: expanded description, tags, risks and related concepts."""
import asyncio
from typing import List, Optional

from themis.core.logging import get_logger
from themis.models.llm import LLMMessage, LLMRequest
from themis.services.generation.parsing import decode_or_raise
from themis.services.generation.schema import EnrichedInitiative, EnrichmentRequest
from themis.services.llm.llm_service import LLMService
from themis.services.llm.prompt_registry import PromptRegistry

logger = get_logger(__name__)

ENRICHMENT_TEMPERATURE = 0.7
ENRICHMENT_MAX_TOKENS = 800
TAGS_TEMPERATURE = 0.6
TAGS_MAX_TOKENS = 150


class EnrichmentService:
    def __init__(self, llm_service: LLMService, prompt_registry: PromptRegistry):
        self.llm_service = llm_service
        self.prompt_registry = prompt_registry

    async def enrich(self, request: EnrichmentRequest) -> EnrichedInitiative:
        prompt = self.prompt_registry.render(
            "enrichment",
            {
                "title": request.initiative.title,
                "description": request.initiative.description,
                "goals": "\n".join(request.context.project_goals),
                "criteria": "\n".join(request.context.criteria),
            },
        )
        response = await self.llm_service.complete(
            LLMRequest(
                messages=[
                    LLMMessage(role="system", content=self.prompt_registry.get_system_prompt("enrichment") or ""),
                    LLMMessage(role="user", content=prompt),
                ],
                temperature=ENRICHMENT_TEMPERATURE,
                max_tokens=ENRICHMENT_MAX_TOKENS,
            ),
            workspace_id=request.workspace_id,
        )
        return decode_or_raise("enrichment", response.content, EnrichedInitiative, request.workspace_id)

    async def enrich_batch(self, requests: List[EnrichmentRequest]) -> List[EnrichedInitiative]:
        """Enrich concurrently; the first failure fails the batch."""
        return list(await asyncio.gather(*(self.enrich(r) for r in requests)))

    async def generate_tags(
        self,
        title: str,
        description: str,
        count: int = 7,
        workspace_id: Optional[str] = None,
    ) -> List[str]:
        """
        Up to count tags for an initiative.

        Raises:
            SchemaValidationError: The model did not return a JSON array of strings
        """
        prompt = (
            f"Generate {count} relevant tags for this initiative:\n"
            f"Title: {title}\nDescription: {description}\n\n"
            'Return only a JSON array of tags: ["tag1", "tag2", ...]'
        )
        response = await self.llm_service.complete(
            LLMRequest(
                messages=[
                    LLMMessage(
                        role="system",
                        content="You categorise and tag initiatives. Generate relevant, specific tags.",
                    ),
                    LLMMessage(role="user", content=prompt),
                ],
                temperature=TAGS_TEMPERATURE,
                max_tokens=TAGS_MAX_TOKENS,
            ),
            workspace_id=workspace_id,
        )
        tags = decode_or_raise("tag_generation", response.content, List[str], workspace_id)
        return tags[:count]
