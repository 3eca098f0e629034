"""Default prompt templates for the generation services."""
from typing import List

from themis.services.llm.prompt_registry import PromptRegistry, PromptTemplate

DEFAULT_PROMPTS: List[PromptTemplate] = [
    PromptTemplate(
        id="intent_capture",
        name="Intent Capture",
        description="Turn free-form user input into structured objectives",
        version="1.0.0",
        template="""Extract structured objectives from the following input.

User Input: {{user_input}}

Identify:
1. Primary Goal: what the user wants to achieve
2. Launch Target: what they want to deliver or launch
3. Key Objectives: 3-5 specific objectives

Respond with JSON only:
{
  "goal": "...",
  "launch": "...",
  "objectives": ["...", "...", "..."]
}""",
        variables=["user_input"],
        system_prompt="You are a product strategist who helps teams state their objectives precisely.",
    ),
    PromptTemplate(
        id="initiative_generation",
        name="Initiative Generation",
        description="Propose initiatives aligned with goals and evaluation criteria",
        version="1.0.0",
        template="""Propose {{count}} initiatives aligned with the goal and criteria below.

Project Goal: {{goal}}
Launch Target: {{launch}}

Evaluation Criteria:
{{criteria}}

For each initiative give a concise actionable title, a 2-3 sentence
description, the rationale, an estimated impact from 1 to 5, relevant tags
and your confidence from 0 to 1.

Respond with a JSON array only:
[
  {
    "title": "...",
    "description": "...",
    "rationale": "...",
    "estimatedImpact": 4,
    "tags": ["tag1", "tag2"],
    "confidence": 0.85
  }
]""",
        variables=["count", "goal", "launch", "criteria"],
        system_prompt=(
            "You are a product strategist who generates high-impact initiatives. "
            "Favour practical, feasible ideas with clear strategic alignment."
        ),
    ),
    PromptTemplate(
        id="brief_generation",
        name="Concept Brief",
        description="Concept brief for a scored initiative",
        version="1.0.0",
        template="""Write a concept brief for this initiative.

Title: {{title}}
Description: {{description}}
Overall Score: {{score}}/5.0

Criterion Scores:
{{criterion_scores}}

Sections:
1. Executive Summary (2-3 sentences)
2. Rationale (why it matters, strategic fit)
3. Risks & Mitigation
4. Success Metrics (3-5 measurable KPIs)
5. Image Prompt (a vivid visual description)

Respond with JSON only:
{
  "executiveSummary": "...",
  "rationale": "...",
  "risks": "...",
  "metrics": "...",
  "imagePrompt": "..."
}""",
        variables=["title", "description", "score", "criterion_scores"],
        system_prompt=(
            "You are a strategy analyst writing concise, actionable concept briefs. "
            "Be specific, measurable and realistic."
        ),
    ),
    PromptTemplate(
        id="full_brief_generation",
        name="Full Concept Brief",
        description="Comprehensive brief including implementation plan and timeline",
        version="1.0.0",
        template="""Write a comprehensive concept brief for this initiative.

Initiative: {{title}}
Description: {{description}}
Weighted Score: {{score}}

Criterion Scores:
{{criterion_scores}}

Respond with JSON only, with these string fields:
- executiveSummary: 2-3 paragraph overview
- rationale: why the initiative matters strategically
- risks: challenges and mitigation strategies
- metrics: how success is measured (KPIs)
- implementation: step-by-step execution plan
- timeline: phases and milestones with timeframes""",
        variables=["title", "description", "score", "criterion_scores"],
        system_prompt="You are a strategy consultant writing concept briefs. Always respond with valid JSON.",
    ),
    PromptTemplate(
        id="enrichment",
        name="Initiative Enrichment",
        description="Add context, tags, risks and related concepts to an initiative",
        version="1.0.0",
        template="""Enrich this initiative with additional context.

Title: {{title}}
Description: {{description}}

Project Context:
Goals: {{goals}}
Criteria: {{criteria}}

Provide an enhanced description, 5-7 suggested tags, 3-5 potential risks
and related or complementary concepts.

Respond with JSON only:
{
  "enhancedDescription": "...",
  "suggestedTags": ["tag1", "tag2"],
  "potentialRisks": ["risk1", "risk2"],
  "relatedConcepts": ["concept1", "concept2"]
}""",
        variables=["title", "description", "goals", "criteria"],
        system_prompt="You are an analyst helping teams write more complete initiative descriptions.",
    ),
    PromptTemplate(
        id="feasibility_check",
        name="Feasibility Check",
        description="Structured feasibility analysis for an initiative",
        version="1.0.0",
        template="""Analyse the feasibility of this initiative.

Initiative: {{title}}
Description: {{description}}
{{scores}}

Respond with JSON only, with these fields:
- overallScore: number (0-100)
- technicalFeasibility: number (0-100)
- resourceAvailability: number (0-100)
- timeToMarket: number (0-100)
- riskLevel: "LOW" | "MEDIUM" | "HIGH"
- blockers: string[]
- recommendations: string[]
- estimatedDuration: string (e.g. "3-6 months")
- estimatedCost: string (e.g. "EUR 50K-100K")""",
        variables=["title", "description", "scores"],
        system_prompt="You are a business analyst specialised in feasibility studies. Always respond with valid JSON.",
    ),
]


def create_default_registry() -> PromptRegistry:
    registry = PromptRegistry()
    for template in DEFAULT_PROMPTS:
        registry.register(template)
    return registry
