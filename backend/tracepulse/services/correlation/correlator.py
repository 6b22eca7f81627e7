"""Event correlation: grouping a batch by transaction and picking critical signal."""
import structlog
from typing import Dict, Iterable, List, Optional

from tracepulse.services.correlation.models import Event, EventLevel, EventPriority

logger = structlog.get_logger()

UNCORRELATED_KEY = "uncorrelated"

CRITICAL_LEVELS = frozenset({EventLevel.ERROR, EventLevel.CRITICAL})


def correlation_key(event: Event) -> str:
    """Group key for an event: its correlation id, or the uncorrelated bucket."""
    return event.correlation_id if event.correlation_id else UNCORRELATED_KEY


def is_critical(event: Event) -> bool:
    """An event is worth analyzing when it is high priority or an error."""
    return event.priority == EventPriority.HIGH or event.level in CRITICAL_LEVELS


class EventCorrelator:
    """
    Groups events by correlation id and filters groups to their critical subset.

    Grouping is a single pass over the batch; groups are returned in
    first-seen order and keep the arrival order of their events. Events
    without a correlation id share one "uncorrelated" group for this batch
    only.
    """

    def group(self, events: Iterable[Event], environment: Optional[str] = None) -> Dict[str, List[Event]]:
        groups: Dict[str, List[Event]] = {}
        count = 0
        for event in events:
            groups.setdefault(correlation_key(event), []).append(event)
            count += 1

        logger.info(
            "Events correlated",
            event_count=count,
            group_count=len(groups),
            environment=environment,
        )
        return groups

    def critical_subset(self, events: Iterable[Event]) -> List[Event]:
        """Events with high priority or error/critical level, in arrival order."""
        return [e for e in events if is_critical(e)]
