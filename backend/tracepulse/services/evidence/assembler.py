"""
Evidence assembly for hypothesis generation.

An EvidenceBundle captures everything the hypothesis generator is allowed to
see about one correlation group: the triggering event, its siblings in
arrival order, the blast radius and recent code changes. Rendering is
deterministic so identical inputs always produce identical generator
context.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from tracepulse.services.correlation.models import Event
from tracepulse.services.system_map.models import ImpactResult

NOT_AVAILABLE = "N/A"
UNKNOWN = "Unknown"
NONE_MARKER = "None"
NO_CHANGES_MARKER = "No recent changes detected"


@dataclass(frozen=True)
class RelatedEvent:
    """Summary line for one event of the correlation group."""
    timestamp: Optional[str]
    event_type: str
    service: Optional[str]
    level: str

    def render(self) -> str:
        return (
            f"- {self.timestamp or UNKNOWN}: {self.event_type} "
            f"in {self.service or UNKNOWN} ({self.level})"
        )


@dataclass(frozen=True)
class EvidenceBundle:
    """Structured evidence for one correlation group."""
    event_type: str
    service: str
    error_code: Optional[str]
    timestamp: Optional[str]
    environment: Optional[str]
    details: Dict[str, Any] = field(default_factory=dict)
    related_events: Tuple[RelatedEvent, ...] = ()
    dependencies: Tuple[str, ...] = ()
    direct_dependents: Tuple[str, ...] = ()
    all_dependents: Tuple[str, ...] = ()
    recent_changes: Tuple[str, ...] = ()

    def render(self) -> str:
        """Render the bundle as the text block handed to the generator."""
        related = "\n".join(e.render() for e in self.related_events) or NONE_MARKER
        changes = "\n---\n".join(self.recent_changes) if self.recent_changes else NO_CHANGES_MARKER

        return f"""## Critical Event Analysis

**Primary Event**: {self.event_type}
**Service**: {self.service}
**Error Code**: {self.error_code or NOT_AVAILABLE}
**Timestamp**: {self.timestamp or UNKNOWN}
**Environment**: {self.environment or UNKNOWN}

**Event Details**:
{json.dumps(self.details, indent=2, default=str)}

**Related Events in Transaction**:
{related}

**System Architecture Impact**:
- Direct Dependencies: {_join(self.dependencies)}
- Direct Dependents: {_join(self.direct_dependents)}
- Potential Cascade Impact: {_join(self.all_dependents)}

**Recent Code Changes**:
{changes}
"""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type,
            "service": self.service,
            "error_code": self.error_code,
            "timestamp": self.timestamp,
            "environment": self.environment,
            "details": self.details,
            "related_events": [
                {
                    "timestamp": e.timestamp,
                    "event_type": e.event_type,
                    "service": e.service,
                    "level": e.level,
                }
                for e in self.related_events
            ],
            "impact": {
                "dependencies": list(self.dependencies),
                "direct_dependents": list(self.direct_dependents),
                "all_dependents": list(self.all_dependents),
            },
            "recent_changes": list(self.recent_changes),
        }


def _join(names: Sequence[str]) -> str:
    return ", ".join(names) if names else NONE_MARKER


class EvidenceAssembler:
    """Builds the EvidenceBundle for a triggering event and its group."""

    def assemble(
        self,
        event: Event,
        group: Sequence[Event],
        impact: ImpactResult,
        recent_changes: Optional[List[str]] = None,
        environment: Optional[str] = None,
    ) -> EvidenceBundle:
        """
        Assemble evidence for one correlation group.

        Args:
            event: The triggering (first critical) event
            group: Every event of the correlation group, in arrival order
            impact: Blast radius of the affected service
            recent_changes: Human-readable change summaries, if any
            environment: Deployment environment label of the batch

        Returns:
            EvidenceBundle with the affected service taken from `impact`
        """
        return EvidenceBundle(
            event_type=event.event_type,
            service=impact.service,
            error_code=event.error_code,
            timestamp=event.timestamp,
            environment=environment,
            details=dict(event.details),
            related_events=tuple(
                RelatedEvent(
                    timestamp=e.timestamp,
                    event_type=e.event_type,
                    service=e.service,
                    level=e.level.value,
                )
                for e in group
            ),
            dependencies=impact.dependencies,
            direct_dependents=impact.direct_dependents,
            all_dependents=impact.all_dependents,
            recent_changes=tuple(c for c in (recent_changes or []) if c),
        )
