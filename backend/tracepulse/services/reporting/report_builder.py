"""Builds the final analysis report for a correlation group."""
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from tracepulse.agents.schemas import AnalysisReport, Hypothesis
from tracepulse.services.system_map.models import ImpactResult


class ReportBuilder:
    """
    Ranks hypotheses and assembles an AnalysisReport.

    Ranking is a stable sort on confidence, so equally confident hypotheses
    keep the order the generator returned them in.
    """

    def rank(self, hypotheses: Iterable[Hypothesis]) -> List[Hypothesis]:
        return sorted(hypotheses, key=lambda h: h.confidence, reverse=True)

    def affected_services(self, primary: str, impact: Optional[ImpactResult]) -> List[str]:
        """Primary service first, then every transitive dependent, without duplicates."""
        services = [primary]
        if impact is not None:
            services.extend(impact.all_dependents)

        seen = set()
        ordered = []
        for name in services:
            if name not in seen:
                seen.add(name)
                ordered.append(name)
        return ordered

    def summarize(self, event_type: str, service: str, ranked: List[Hypothesis]) -> str:
        """One-sentence summary naming the top hypothesis."""
        top = ranked[0] if ranked else None
        title = top.title if top else "Unknown"
        confidence = top.confidence if top else 0

        return (
            f"Critical {event_type} event detected in {service or 'unknown service'}. "
            f"Most likely cause: {title} ({confidence:g}% confidence). "
            f"{len(ranked)} hypotheses generated for investigation."
        )

    def build(
        self,
        correlation_id: str,
        event_type: str,
        service: str,
        hypotheses: Iterable[Hypothesis],
        impact: Optional[ImpactResult] = None,
        used_fallback: bool = False,
        generated_at: Optional[datetime] = None,
    ) -> AnalysisReport:
        ranked = self.rank(hypotheses)
        return AnalysisReport(
            correlation_id=correlation_id,
            event_type=event_type,
            timestamp=generated_at or datetime.now(timezone.utc),
            hypotheses=ranked,
            affected_services=self.affected_services(service, impact),
            summary=self.summarize(event_type, service, ranked),
            used_fallback=used_fallback,
        )
