"""
LLM-backed generation services: initiatives, briefs, enrichment, feasibility.
"""
from .briefs import BriefGenerator
from .enrichment import EnrichmentService
from .feasibility import FeasibilityService
from .initiatives import InitiativeGenerator

__all__ = [
    "BriefGenerator",
    "EnrichmentService",
    "FeasibilityService",
    "InitiativeGenerator",
]
