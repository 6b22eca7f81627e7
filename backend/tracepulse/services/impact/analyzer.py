"""Impact analysis: which services a failing service drags down with it."""
from typing import Any, Optional

from tracepulse.services.correlation.models import Event
from tracepulse.services.system_map.models import DependencyGraph, ImpactResult

UNKNOWN_SERVICE = "Unknown"


class ImpactAnalyzer:
    """
    Resolves the affected service of a triggering event and computes its
    blast radius against a graph snapshot. Pure and deterministic.
    """

    def resolve_service(self, event: Event) -> str:
        """Declared service, then `details["service"]`, then "Unknown"."""
        if event.service:
            return event.service

        detail_service: Any = event.details.get("service")
        if isinstance(detail_service, str) and detail_service:
            return detail_service

        return UNKNOWN_SERVICE

    def analyze(self, service: str, graph: Optional[DependencyGraph]) -> ImpactResult:
        """Impact of `service` on the graph; empty without a graph or when the graph never names it."""
        if graph is None:
            return ImpactResult(service=service)
        return graph.impact(service)
