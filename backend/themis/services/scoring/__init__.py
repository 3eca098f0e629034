"""
Deterministic scoring engine: Scorer, GateEvaluator, Ranker, SensitivityAnalyzer.
"""
from .gates import GateEvaluator
from .ranker import Ranker
from .scorer import Scorer, ScoringConfig
from .sensitivity import SensitivityAnalyzer

__all__ = [
    "GateEvaluator",
    "Ranker",
    "Scorer",
    "ScoringConfig",
    "SensitivityAnalyzer",
]
