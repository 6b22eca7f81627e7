"""Agents package for hypothesis generation."""
from tracepulse.agents.base import BaseAgent, GenerationError
from tracepulse.agents.hypothesis import (
    GenerationResult,
    HypothesisAdapter,
    HypothesisGenerator,
    LLMHypothesisGenerator,
    RuleBasedHypothesisGenerator,
)

__all__ = [
    "BaseAgent",
    "GenerationError",
    "GenerationResult",
    "HypothesisAdapter",
    "HypothesisGenerator",
    "LLMHypothesisGenerator",
    "RuleBasedHypothesisGenerator",
]
