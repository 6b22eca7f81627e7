"""Celery task definitions."""
import structlog
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from tracepulse.dependencies import build_event_processor, get_system_map_store
from tracepulse.services.correlation import Event
from tracepulse.workers.celery_app import celery_app

logger = structlog.get_logger()


def _validate_events(raw_events: List[Dict[str, Any]]) -> List[Event]:
    """Validate wire events, dropping (and logging) the ones that do not parse."""
    events = []
    for index, raw in enumerate(raw_events):
        try:
            events.append(Event.model_validate(raw))
        except ValidationError as e:
            logger.warning("Dropping invalid event", index=index, error=str(e))
    return events


@celery_app.task(bind=True, max_retries=2, default_retry_delay=30)
def process_events(self, raw_events: List[Dict[str, Any]], environment: Optional[str] = None):
    """
    Correlate a batch of events and generate hypothesis reports.

    Args:
        raw_events: Events in webhook (camelCase) form
        environment: Deployment environment label of the batch

    Returns:
        JSON-serializable reports, one per correlation group with critical signal
    """
    events = _validate_events(raw_events)
    logger.info("Processing events", event_count=len(events), environment=environment)

    try:
        graph = get_system_map_store().get_graph()
        reports = build_event_processor().analyze(events, graph, environment)
    except Exception as e:
        logger.error("Event processing failed", event_count=len(events), error=str(e))
        raise self.retry(exc=e)

    for report in reports:
        top = report.top_hypothesis
        logger.info(
            "Report generated",
            correlation_id=report.correlation_id,
            event_type=report.event_type,
            summary=report.summary,
            top_hypothesis=top.title if top else None,
            confidence=top.confidence if top else None,
            affected_services=report.affected_services,
            used_fallback=report.used_fallback,
        )

    return [report.model_dump(mode="json") for report in reports]


@celery_app.task
def reload_system_map():
    """Reread the system map file and refresh the shared snapshot."""
    try:
        graph = get_system_map_store().reload()
        return {"services": len(graph), "version": graph.version}
    except Exception as e:
        logger.error("System map reload failed", error=str(e))
        return {"error": str(e)}
