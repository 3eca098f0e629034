"""
Tests for the generation services (initiatives, briefs, enrichment, feasibility)
and the tolerant JSON decoder they share.

A stub LLM service returns canned content and records each request.
"""
import json
from typing import List

import pytest

from themis.core.errors import SchemaValidationError
from themis.models.llm import FinishReason, LLMResponse, TokenUsage
from themis.services.generation import (
    BriefGenerator,
    EnrichmentService,
    FeasibilityService,
    InitiativeGenerator,
)
from themis.services.generation.briefs import calculate_overall_score
from themis.services.generation.parsing import ParseErr, ParseOk, decode_response
from themis.services.generation.schema import (
    BriefGenerationRequest,
    CriterionDescription,
    EnrichmentContext,
    EnrichmentRequest,
    FeasibilityRequest,
    GeneratedInitiative,
    InitiativeGenerationRequest,
    InitiativeSummary,
    WeightedCriterion,
)
from themis.services.llm.prompts import create_default_registry


class DummyLLMService:
    """Returns queued contents in order; the last one repeats."""

    def __init__(self, *contents):
        self.contents = list(contents)
        self.requests = []
        self.workspace_ids = []

    async def complete(self, request, workspace_id=None):
        self.requests.append(request)
        self.workspace_ids.append(workspace_id)
        content = self.contents.pop(0) if len(self.contents) > 1 else self.contents[0]
        return LLMResponse(
            content=content,
            finish_reason=FinishReason.STOP,
            usage=TokenUsage(),
            model="stub",
            provider="stub",
        )


def _fenced(payload):
    return f"Here you go:\n```json\n{json.dumps(payload)}\n```\nLet me know!"


def _initiative(title, impact=4, confidence=0.8):
    return {
        "title": title,
        "description": f"{title} description",
        "rationale": "Because",
        "estimatedImpact": impact,
        "tags": ["ai"],
        "confidence": confidence,
    }


@pytest.fixture
def registry():
    return create_default_registry()


class TestDecodeResponse:
    def test_fenced_block_is_preferred(self):
        result = decode_response(_fenced({"goal": "g", "launch": "l", "objectives": []}), dict)
        assert isinstance(result, ParseOk)
        assert result.value["goal"] == "g"

    def test_raw_json_without_fence(self):
        result = decode_response('  ["a", "b"]  ', list)
        assert result == ParseOk(["a", "b"])

    def test_invalid_json(self):
        result = decode_response("not json at all", dict)
        assert isinstance(result, ParseErr)
        assert result.reason.startswith("Invalid JSON")
        assert result.raw == "not json at all"

    def test_schema_mismatch_is_strict(self):
        payload = [_initiative("A", impact="4")]
        result = decode_response(json.dumps(payload), List[GeneratedInitiative])
        assert isinstance(result, ParseErr)
        assert result.reason.startswith("Schema mismatch")


class TestInitiativeGenerator:
    @pytest.mark.asyncio
    async def test_generate_parses_initiatives(self, registry):
        llm = DummyLLMService(_fenced([_initiative("Chatbot"), _initiative("Dashboard", impact=3)]))
        generator = InitiativeGenerator(llm, registry)

        initiatives = await generator.generate(
            InitiativeGenerationRequest(
                intent="Reduce support load",
                criteria=[CriterionDescription(name="Impact", description="Business value")],
                count=2,
                diversity=0.9,
                workspace_id="ws",
            )
        )

        assert [i.title for i in initiatives] == ["Chatbot", "Dashboard"]
        assert initiatives[0].estimated_impact == 4
        request = llm.requests[0]
        assert request.temperature == 0.9
        assert request.max_tokens == 2000
        assert request.messages[0].role == "system"
        assert "Propose 2 initiatives" in request.messages[1].content
        assert "- Impact: Business value" in request.messages[1].content
        assert llm.workspace_ids == ["ws"]

    @pytest.mark.asyncio
    async def test_invalid_output_raises_schema_error(self, registry):
        generator = InitiativeGenerator(DummyLLMService("I cannot help with that."), registry)

        with pytest.raises(SchemaValidationError) as exc_info:
            await generator.generate(InitiativeGenerationRequest(intent="x"))

        assert exc_info.value.task == "initiative_generation"
        assert exc_info.value.raw_output == "I cannot help with that."

    @pytest.mark.asyncio
    async def test_out_of_range_impact_rejected(self, registry):
        generator = InitiativeGenerator(DummyLLMService(_fenced([_initiative("A", impact=9)])), registry)
        with pytest.raises(SchemaValidationError):
            await generator.generate(InitiativeGenerationRequest(intent="x"))

    @pytest.mark.asyncio
    async def test_missing_tags_rejected(self, registry):
        initiative = _initiative("A")
        del initiative["tags"]
        generator = InitiativeGenerator(DummyLLMService(_fenced([initiative])), registry)
        with pytest.raises(SchemaValidationError):
            await generator.generate(InitiativeGenerationRequest(intent="x"))

    @pytest.mark.asyncio
    async def test_generate_batch_chunks_sequentially(self, registry):
        llm = DummyLLMService(_fenced([_initiative("A")]))
        generator = InitiativeGenerator(llm, registry)

        results = await generator.generate_batch(InitiativeGenerationRequest(intent="x", count=25), batch_size=10)

        assert len(llm.requests) == 3
        counts = ["Propose 10" in r.messages[1].content for r in llm.requests[:2]]
        assert counts == [True, True]
        assert "Propose 5 initiatives" in llm.requests[2].messages[1].content
        assert len(results) == 3

    @pytest.mark.asyncio
    async def test_generate_batch_rejects_bad_size(self, registry):
        generator = InitiativeGenerator(DummyLLMService("[]"), registry)
        with pytest.raises(ValueError):
            await generator.generate_batch(InitiativeGenerationRequest(intent="x"), batch_size=0)

    def test_filter_and_rank(self):
        initiatives = [
            GeneratedInitiative.model_validate(_initiative("low impact", impact=2, confidence=0.9)),
            GeneratedInitiative.model_validate(_initiative("unsure", impact=5, confidence=0.5)),
            GeneratedInitiative.model_validate(_initiative("solid", impact=4, confidence=0.9)),
            GeneratedInitiative.model_validate(_initiative("bold", impact=5, confidence=0.8)),
        ]

        kept = InitiativeGenerator.filter_by_quality(initiatives)
        ranked = InitiativeGenerator.rank_initiatives(initiatives)

        assert [i.title for i in kept] == ["solid", "bold"]
        assert [i.title for i in ranked] == ["bold", "solid", "unsure", "low impact"]
        assert initiatives[0].title == "low impact"

    @pytest.mark.asyncio
    async def test_capture_intent(self, registry):
        llm = DummyLLMService(_fenced({"goal": "Grow", "launch": "Q3", "objectives": ["a", "b"]}))
        intent = await InitiativeGenerator(llm, registry).capture_intent("We want to grow by Q3")

        assert intent.goal == "Grow"
        assert intent.objectives == ["a", "b"]
        assert llm.requests[0].temperature == 0.3
        assert "We want to grow by Q3" in llm.requests[0].messages[1].content


BRIEF = {
    "executiveSummary": "Summary",
    "rationale": "Why",
    "risks": "Risks",
    "metrics": "KPIs",
    "imagePrompt": "A robot",
}


def _brief_request():
    return BriefGenerationRequest(
        title="Chatbot",
        description="Support bot",
        criteria=[WeightedCriterion(name="Impact", weight=0.6), WeightedCriterion(name="Cost", weight=0.4)],
        scores={"Impact": 5, "Cost": 3},
    )


class TestBriefGenerator:
    def test_overall_score_is_weighted_average(self):
        request = _brief_request()
        assert calculate_overall_score(request.scores, request.criteria) == pytest.approx(4.2)
        assert calculate_overall_score({}, []) == 0.0

    @pytest.mark.asyncio
    async def test_generate(self, registry):
        llm = DummyLLMService(_fenced(BRIEF))
        brief = await BriefGenerator(llm, registry).generate(_brief_request())

        assert brief.executive_summary == "Summary"
        assert brief.image_prompt == "A robot"
        prompt = llm.requests[0].messages[1].content
        assert "Overall Score: 4.200/5.0" in prompt
        assert "- Impact (weight: 0.60): 5.00/5.0" in prompt

    @pytest.mark.asyncio
    async def test_generate_full_brief(self, registry):
        payload = {k: v for k, v in BRIEF.items() if k != "imagePrompt"}
        payload.update({"implementation": "Plan", "timeline": "6 weeks"})
        llm = DummyLLMService(_fenced(payload))

        brief = await BriefGenerator(llm, registry).generate_full_brief(_brief_request())

        assert brief.timeline == "6 weeks"
        assert llm.requests[0].max_tokens == 2000

    @pytest.mark.asyncio
    async def test_missing_section_raises(self, registry):
        llm = DummyLLMService(_fenced({"executiveSummary": "only this"}))
        with pytest.raises(SchemaValidationError):
            await BriefGenerator(llm, registry).generate(_brief_request())

    @pytest.mark.asyncio
    async def test_regenerate_section_uses_other_sections_as_context(self, registry):
        llm = DummyLLMService("  New risks text \n")
        generator = BriefGenerator(llm, registry)

        text = await generator.regenerate_section(
            _brief_request(),
            "risks",
            current_brief={"executive_summary": "Summary", "risks": "Old risks"},
        )

        assert text == "New risks text"
        prompt = llm.requests[0].messages[1].content
        assert "executive_summary: Summary" in prompt
        assert "Old risks" not in prompt
        assert llm.requests[0].max_tokens == 500

    @pytest.mark.asyncio
    async def test_regenerate_unknown_section(self, registry):
        with pytest.raises(ValueError):
            await BriefGenerator(DummyLLMService("x"), registry).regenerate_section(_brief_request(), "budget")

    @pytest.mark.asyncio
    async def test_generate_image_prompt(self, registry):
        llm = DummyLLMService(" A sleek robot at a help desk ")
        text = await BriefGenerator(llm, registry).generate_image_prompt("Chatbot", "Support bot", style="flat")

        assert text == "A sleek robot at a help desk"
        assert "Style: flat" in llm.requests[0].messages[1].content
        assert llm.requests[0].temperature == 0.8


class TestEnrichmentService:
    ENRICHED = {
        "enhancedDescription": "Longer text",
        "suggestedTags": ["support"],
        "potentialRisks": ["adoption"],
        "relatedConcepts": ["helpdesk"],
    }

    @pytest.mark.asyncio
    async def test_enrich(self, registry):
        llm = DummyLLMService(_fenced(self.ENRICHED))
        result = await EnrichmentService(llm, registry).enrich(
            EnrichmentRequest(
                initiative=InitiativeSummary(title="Chatbot", description="Support bot"),
                context=EnrichmentContext(project_goals=["Cut costs"], criteria=["Impact"]),
            )
        )

        assert result.enhanced_description == "Longer text"
        assert "Cut costs" in llm.requests[0].messages[1].content

    @pytest.mark.asyncio
    async def test_enrich_batch(self, registry):
        llm = DummyLLMService(_fenced(self.ENRICHED))
        requests = [
            EnrichmentRequest(initiative=InitiativeSummary(title=t, description="d"))
            for t in ("a", "b", "c")
        ]

        results = await EnrichmentService(llm, registry).enrich_batch(requests)

        assert len(results) == 3
        assert len(llm.requests) == 3

    @pytest.mark.asyncio
    async def test_generate_tags_truncates_to_count(self, registry):
        llm = DummyLLMService('["a", "b", "c", "d"]')
        tags = await EnrichmentService(llm, registry).generate_tags("Chatbot", "Support bot", count=2)
        assert tags == ["a", "b"]

    @pytest.mark.asyncio
    async def test_generate_tags_rejects_non_array(self, registry):
        llm = DummyLLMService("support, chatbot")
        with pytest.raises(SchemaValidationError):
            await EnrichmentService(llm, registry).generate_tags("Chatbot", "Support bot")


class TestFeasibilityService:
    REPORT = {
        "overallScore": 72,
        "technicalFeasibility": 80,
        "resourceAvailability": 60,
        "timeToMarket": 70,
        "riskLevel": "MEDIUM",
        "blockers": ["Data access"],
        "recommendations": ["Pilot first"],
        "estimatedDuration": "3 months",
        "estimatedCost": "$50k",
    }

    @pytest.mark.asyncio
    async def test_check_feasibility(self, registry):
        llm = DummyLLMService(_fenced(self.REPORT))
        report = await FeasibilityService(llm, registry).check_feasibility(
            FeasibilityRequest(name="Chatbot", description="Support bot", scores={"impact": 4.5})
        )

        assert report.overall_score == 72
        assert report.risk_level == "MEDIUM"
        request = llm.requests[0]
        assert request.temperature == 0.3
        assert "Current Scores:" in request.messages[1].content
        assert '"impact": 4.5' in request.messages[1].content

    @pytest.mark.asyncio
    async def test_scores_omitted_when_empty(self, registry):
        llm = DummyLLMService(_fenced(self.REPORT))
        await FeasibilityService(llm, registry).check_feasibility(
            FeasibilityRequest(name="Chatbot", description="Support bot")
        )
        assert "Current Scores" not in llm.requests[0].messages[1].content

    @pytest.mark.asyncio
    async def test_invalid_risk_level(self, registry):
        llm = DummyLLMService(_fenced(dict(self.REPORT, riskLevel="SEVERE")))
        with pytest.raises(SchemaValidationError):
            await FeasibilityService(llm, registry).check_feasibility(
                FeasibilityRequest(name="Chatbot", description="Support bot")
            )
