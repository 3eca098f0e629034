"""
Pydantic models for generation requests and LLM outputs.

Output models are strict (no type coercion) and read the camelCase keys the
prompts ask for, e.g.:
{
  "title": "...",
  "estimatedImpact": 4,
  "confidence": 0.85
}
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LLMOutputModel(BaseModel):
    model_config = ConfigDict(
        strict=True,
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )


class GeneratedInitiative(LLMOutputModel):
    title: str
    description: str
    rationale: str
    estimated_impact: float = Field(..., ge=1.0, le=5.0)
    tags: List[str]
    confidence: float = Field(..., ge=0.0, le=1.0)


class CapturedIntent(LLMOutputModel):
    goal: str
    launch: str
    objectives: List[str]


class GeneratedBrief(LLMOutputModel):
    executive_summary: str
    rationale: str
    risks: str
    metrics: str
    image_prompt: str


class FullBrief(LLMOutputModel):
    executive_summary: str
    rationale: str
    risks: str
    metrics: str
    implementation: str
    timeline: str


class EnrichedInitiative(LLMOutputModel):
    enhanced_description: str
    suggested_tags: List[str]
    potential_risks: List[str]
    related_concepts: List[str]


class FeasibilityReport(LLMOutputModel):
    overall_score: float = Field(..., ge=0.0, le=100.0)
    technical_feasibility: float = Field(..., ge=0.0, le=100.0)
    resource_availability: float = Field(..., ge=0.0, le=100.0)
    time_to_market: float = Field(..., ge=0.0, le=100.0)
    risk_level: str = Field(..., pattern="^(LOW|MEDIUM|HIGH)$")
    blockers: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    estimated_duration: str
    estimated_cost: str


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CriterionDescription(BaseModel):
    name: str
    description: str = ""


class WeightedCriterion(BaseModel):
    name: str
    weight: float


class InitiativeGenerationRequest(BaseModel):
    intent: str
    criteria: List[CriterionDescription] = Field(default_factory=list)
    count: int = Field(10, gt=0)
    diversity: float = Field(0.8, ge=0.0, le=2.0)  # used as sampling temperature
    workspace_id: Optional[str] = None


class BriefGenerationRequest(BaseModel):
    title: str
    description: str
    criteria: List[WeightedCriterion] = Field(default_factory=list)
    scores: Dict[str, float] = Field(default_factory=dict)  # criterion name -> raw score
    workspace_id: Optional[str] = None


class InitiativeSummary(BaseModel):
    title: str
    description: str


class EnrichmentContext(BaseModel):
    project_goals: List[str] = Field(default_factory=list)
    criteria: List[str] = Field(default_factory=list)


class EnrichmentRequest(BaseModel):
    initiative: InitiativeSummary
    context: EnrichmentContext = Field(default_factory=EnrichmentContext)
    workspace_id: Optional[str] = None


class FeasibilityRequest(BaseModel):
    name: str
    description: str
    scores: Dict[str, float] = Field(default_factory=dict)
    workspace_id: Optional[str] = None
