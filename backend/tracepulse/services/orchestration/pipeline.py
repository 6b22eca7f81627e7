"""Event processing pipeline: correlate, analyze impact, hypothesize, report."""
import enum
import structlog
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Dict, Iterable, List, Optional

from tracepulse.agents.hypothesis import (
    HypothesisAdapter,
    RuleBasedHypothesisGenerator,
)
from tracepulse.agents.schemas import AnalysisReport
from tracepulse.services.changes import NullChangesClient, RecentChangesClient
from tracepulse.services.correlation import Event, EventCorrelator
from tracepulse.services.evidence import EvidenceAssembler
from tracepulse.services.impact import ImpactAnalyzer
from tracepulse.services.reporting import ReportBuilder
from tracepulse.services.system_map import DependencyGraph

logger = structlog.get_logger()


class GroupState(str, enum.Enum):
    """Lifecycle of one correlation group. States only move forward."""
    RECEIVED = "received"
    FILTERED = "filtered"
    SKIPPED = "skipped"
    IMPACT_COMPUTED = "impact_computed"
    EVIDENCE_ASSEMBLED = "evidence_assembled"
    HYPOTHESES_GENERATED = "hypotheses_generated"
    REPORT_BUILT = "report_built"


class EventProcessor:
    """
    Analyzes batches of events, one report per correlation group with
    critical signal.

    The processor:
    1. Groups the batch by correlation id
    2. Skips groups without a high-priority or error-level event
    3. Computes the blast radius of the triggering event's service
    4. Assembles evidence (siblings, impact, recent changes)
    5. Generates hypotheses, falling back to a fixed one on failure
    6. Ranks them into an AnalysisReport

    Groups are analyzed in parallel and independently; an error in one
    group never aborts the others. Collaborators are injected, the
    processor keeps no state between batches.
    """

    def __init__(
        self,
        hypothesis_adapter: Optional[HypothesisAdapter] = None,
        changes_client: Optional[RecentChangesClient] = None,
        correlator: Optional[EventCorrelator] = None,
        impact_analyzer: Optional[ImpactAnalyzer] = None,
        evidence_assembler: Optional[EvidenceAssembler] = None,
        report_builder: Optional[ReportBuilder] = None,
        max_workers: int = 4,
        deadline_seconds: Optional[float] = None,
    ):
        self.hypothesis_adapter = hypothesis_adapter or HypothesisAdapter(RuleBasedHypothesisGenerator())
        self.changes_client = changes_client or NullChangesClient()
        self.correlator = correlator or EventCorrelator()
        self.impact_analyzer = impact_analyzer or ImpactAnalyzer()
        self.evidence_assembler = evidence_assembler or EvidenceAssembler()
        self.report_builder = report_builder or ReportBuilder()
        self.max_workers = max_workers
        self.deadline_seconds = deadline_seconds

    def analyze(
        self,
        events: Iterable[Event],
        graph: Optional[DependencyGraph],
        environment: Optional[str] = None,
    ) -> List[AnalysisReport]:
        """
        Analyze a batch of events against one graph snapshot.

        Args:
            events: Events in arrival order
            graph: Dependency graph snapshot shared by every group
            environment: Deployment environment label of the batch

        Returns:
            Reports in group first-seen order. Skipped groups, and groups
            still running when the deadline expires, produce none.
        """
        groups = self.correlator.group(events, environment)
        logger.info("Event processing started", group_count=len(groups), environment=environment)
        if not groups:
            return []

        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="group-analysis")
        try:
            futures = {
                executor.submit(self.process_group, correlation_id, group_events, graph, environment): correlation_id
                for correlation_id, group_events in groups.items()
            }
            done, not_done = wait(futures, timeout=self.deadline_seconds)
        finally:
            # In-flight groups past the deadline are abandoned, not awaited
            executor.shutdown(wait=False, cancel_futures=True)

        for future in not_done:
            logger.warning(
                "Correlation group abandoned",
                correlation_id=futures[future],
                deadline_seconds=self.deadline_seconds,
            )

        results: Dict[str, AnalysisReport] = {}
        for future in done:
            correlation_id = futures[future]
            try:
                report = future.result()
            except Exception as e:
                logger.error("Correlation processing failed", correlation_id=correlation_id, error=str(e))
                continue
            if report is not None:
                results[correlation_id] = report

        reports = [results[cid] for cid in groups if cid in results]
        logger.info(
            "Event processing complete",
            group_count=len(groups),
            report_count=len(reports),
            abandoned_count=len(not_done),
        )
        return reports

    def process_group(
        self,
        correlation_id: str,
        events: List[Event],
        graph: Optional[DependencyGraph],
        environment: Optional[str] = None,
    ) -> Optional[AnalysisReport]:
        """
        Analyze one correlation group.

        Returns None when the group has no critical event. Unexpected
        errors after filtering still yield a degraded fallback report.
        """
        log = logger.bind(correlation_id=correlation_id)
        log.debug("Group state", state=GroupState.RECEIVED.value, event_count=len(events))

        critical = self.correlator.critical_subset(events)
        if not critical:
            log.info("No critical events", state=GroupState.SKIPPED.value, event_count=len(events))
            return None

        trigger = critical[0]
        log.info(
            "Analyzing critical events",
            state=GroupState.FILTERED.value,
            critical_count=len(critical),
            event_types=[e.event_type for e in critical],
        )

        service = self.impact_analyzer.resolve_service(trigger)
        try:
            return self._analyze_trigger(correlation_id, trigger, events, service, graph, environment)
        except Exception as e:
            log.error("Event analysis failed", service=service, error=str(e))
            return self.report_builder.build(
                correlation_id=correlation_id,
                event_type=trigger.event_type,
                service=service,
                hypotheses=self.hypothesis_adapter.fallback_hypotheses(),
                used_fallback=True,
            )

    def _analyze_trigger(
        self,
        correlation_id: str,
        trigger: Event,
        events: List[Event],
        service: str,
        graph: Optional[DependencyGraph],
        environment: Optional[str],
    ) -> AnalysisReport:
        log = logger.bind(correlation_id=correlation_id, service=service)

        impact = self.impact_analyzer.analyze(service, graph)
        log.debug(
            "Group state",
            state=GroupState.IMPACT_COMPUTED.value,
            dependencies=list(impact.dependencies),
            all_dependents=list(impact.all_dependents),
        )

        recent_changes = self._recent_changes(service)
        bundle = self.evidence_assembler.assemble(trigger, events, impact, recent_changes, environment)
        log.debug("Group state", state=GroupState.EVIDENCE_ASSEMBLED.value, change_count=len(recent_changes))

        generation = self.hypothesis_adapter.generate(bundle)
        log.info(
            "Group state",
            state=GroupState.HYPOTHESES_GENERATED.value,
            hypothesis_count=len(generation.hypotheses),
            used_fallback=generation.used_fallback,
        )

        report = self.report_builder.build(
            correlation_id=correlation_id,
            event_type=trigger.event_type,
            service=service,
            hypotheses=generation.hypotheses,
            impact=impact,
            used_fallback=generation.used_fallback,
        )
        log.info(
            "Report generated",
            state=GroupState.REPORT_BUILT.value,
            hypothesis_count=len(report.hypotheses),
            summary=report.summary,
        )
        return report

    def _recent_changes(self, service: str) -> List[str]:
        try:
            return list(self.changes_client.get_recent_changes(service) or [])
        except Exception as e:
            logger.warning("Recent changes lookup failed", service=service, error=str(e))
            return []
