"""
Themis decision-support core.

LLM-backed initiative generation and a deterministic scoring engine
(scoring, gates, ranking, sensitivity analysis).
"""

__version__ = "0.1.0"
