"""Blast-radius analysis over the dependency graph."""

from tracepulse.services.impact.analyzer import UNKNOWN_SERVICE, ImpactAnalyzer

__all__ = ["UNKNOWN_SERVICE", "ImpactAnalyzer"]
