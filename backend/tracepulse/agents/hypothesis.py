"""
Hypothesis generation for correlated failures.

A hypothesis generator is any object with `generate(context) -> payload`.
The LLM-backed and rule-based generators are interchangeable; the
HypothesisAdapter wraps either one with a timeout, lenient parsing and a
deterministic fallback so analysis always yields at least one hypothesis.
"""

import math
import time
import structlog
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from pydantic import ValidationError

from tracepulse.agents.base import BaseAgent, GenerationError
from tracepulse.agents.schemas import EvidenceItem, EvidenceType, Hypothesis
from tracepulse.config import settings
from tracepulse.services.evidence.assembler import EvidenceBundle

logger = structlog.get_logger()

DEFAULT_CONFIDENCE = 50.0
DEFAULT_TITLE = "Unknown Issue"

FALLBACK_TITLE = "Service Dependency Failure"
FALLBACK_DESCRIPTION = (
    "The failure appears to be related to a service dependency issue "
    "based on the error pattern."
)
FALLBACK_CONFIDENCE = 60
FALLBACK_EVIDENCE = {
    "type": "log",
    "source": "Event Analysis",
    "detail": "Critical error detected in service communication",
    "confidence": 70,
}
FALLBACK_ACTIONS = [
    "Check service health endpoints",
    "Review recent deployments",
    "Examine service logs for connection errors",
]


class HypothesisGenerator(Protocol):
    """Anything that turns an evidence context into candidate hypotheses."""

    def generate(self, context: str) -> Any:
        ...


class LLMHypothesisGenerator(BaseAgent):
    """Generates hypotheses with an OpenAI chat model in JSON mode."""

    name = "hypothesis"

    def get_system_prompt(self) -> str:
        return """You are an expert debugging assistant analyzing failures in distributed systems.

Provide specific, actionable hypotheses for the root cause of the failure described by the user.

You must respond with valid JSON matching this exact schema:
{
    "hypotheses": [
        {
            "title": "short name of the suspected root cause",
            "description": "detailed explanation of the failure mechanism",
            "confidence": 0 to 100,
            "evidence": [
                {
                    "type": "log|diff|system_map|correlation",
                    "source": "where the evidence comes from",
                    "detail": "what the evidence shows",
                    "confidence": 0 to 100
                }
            ],
            "suggestedActions": ["steps to verify or fix"],
            "relatedServices": ["names of affected services"]
        }
    ]
}

Only reference services that appear in the provided context."""

    def get_prompt(self, input_data: Dict[str, Any]) -> str:
        context = input_data.get("context", "")

        return f"""{context}
Based on this information, identify the most likely root causes for this failure.
Focus on:
1. Service dependencies and potential cascade failures
2. Recent code changes that might have introduced the issue
3. Patterns in the related events that suggest the failure point
4. Specific error codes or details that indicate the problem

Provide actionable hypotheses with confidence levels as JSON matching the required schema."""

    def generate(self, context: str) -> Any:
        return self.run({"context": context})


class RuleBasedHypothesisGenerator:
    """Deterministic generator that always proposes the dependency-failure hypothesis."""

    def generate(self, context: str) -> Any:
        return {
            "hypotheses": [
                {
                    "title": FALLBACK_TITLE,
                    "description": FALLBACK_DESCRIPTION,
                    "confidence": FALLBACK_CONFIDENCE,
                    "evidence": [dict(FALLBACK_EVIDENCE)],
                    "suggestedActions": list(FALLBACK_ACTIONS),
                    "relatedServices": [],
                }
            ]
        }


@dataclass
class GenerationResult:
    """Hypotheses produced for one evidence bundle."""
    hypotheses: List[Hypothesis] = field(default_factory=list)
    used_fallback: bool = False
    error: Optional[str] = None


def _new_id_prefix() -> str:
    return f"hyp-{int(time.time() * 1000)}"


def _coerce_confidence(value: Any, default: float = DEFAULT_CONFIDENCE) -> float:
    """Numeric confidence clamped to [0, 100]; missing or unusable values get `default`."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return max(0.0, min(100.0, number))


def _coerce_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    if not isinstance(value, (list, tuple)):
        return []
    return [str(v) for v in value if v is not None and str(v)]


def _coerce_evidence(value: Any) -> List[EvidenceItem]:
    if not isinstance(value, (list, tuple)):
        return []

    items = []
    for raw in value:
        if isinstance(raw, str):
            items.append(EvidenceItem(detail=raw))
            continue
        if not isinstance(raw, dict):
            continue

        try:
            evidence_type = EvidenceType(raw.get("type") or EvidenceType.LOG.value)
        except ValueError:
            evidence_type = EvidenceType.LOG

        items.append(EvidenceItem(
            type=evidence_type,
            source=str(raw.get("source") or "unknown"),
            detail=str(raw.get("detail") or ""),
            confidence=_coerce_confidence(raw.get("confidence")),
        ))
    return items


def _pick(raw: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


class HypothesisAdapter:
    """
    Runs a HypothesisGenerator for an evidence bundle and normalizes its output.

    - The generator call is bounded by `timeout_seconds`.
    - Missing optional fields are filled with defaults instead of rejecting
      the response.
    - Any failure (exception, timeout, malformed or empty output) yields the
      single fallback hypothesis.
    """

    def __init__(self, generator: HypothesisGenerator, timeout_seconds: Optional[float] = None):
        self.generator = generator
        self.timeout_seconds = timeout_seconds or settings.GENERATOR_TIMEOUT_SECONDS

    def generate(self, bundle: EvidenceBundle) -> GenerationResult:
        """Generate hypotheses for `bundle`, never raising."""
        try:
            raw = self._call_with_timeout(bundle.render())
            hypotheses = self.parse_hypotheses(raw)
        except FuturesTimeoutError:
            error = f"Hypothesis generation timed out after {self.timeout_seconds}s"
            logger.error("Hypothesis generation failed", service=bundle.service, error=error)
            return GenerationResult(self.fallback_hypotheses(), used_fallback=True, error=error)
        except Exception as e:
            logger.error("Hypothesis generation failed", service=bundle.service, error=str(e))
            return GenerationResult(self.fallback_hypotheses(), used_fallback=True, error=str(e))

        logger.info("Hypotheses generated", service=bundle.service, count=len(hypotheses))
        return GenerationResult(hypotheses)

    def _call_with_timeout(self, context: str) -> Any:
        # A hung generator thread is abandoned, not joined
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="hypothesis-generator")
        try:
            future = executor.submit(self.generator.generate, context)
            return future.result(timeout=self.timeout_seconds)
        finally:
            executor.shutdown(wait=False)

    def parse_hypotheses(self, raw: Any) -> List[Hypothesis]:
        """
        Parse generator output into Hypothesis records.

        Accepts `{"hypotheses": [...]}`, a bare list, or a single hypothesis
        object. Entries that are not objects are dropped.

        Raises:
            GenerationError: If the payload has no usable hypothesis
        """
        if isinstance(raw, dict):
            entries = raw.get("hypotheses")
            if entries is None and "title" in raw:
                entries = [raw]
        else:
            entries = raw

        if not isinstance(entries, (list, tuple)):
            raise GenerationError(f"Malformed generator output: {type(raw).__name__}")

        prefix = _new_id_prefix()
        hypotheses = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            try:
                hypotheses.append(self._parse_entry(entry, f"{prefix}-{len(hypotheses)}"))
            except ValidationError as e:
                logger.warning("Hypothesis entry dropped", error=str(e))

        if not hypotheses:
            raise GenerationError("Generator returned no usable hypotheses")
        return hypotheses

    def _parse_entry(self, raw: Dict[str, Any], hypothesis_id: str) -> Hypothesis:
        title = raw.get("title")
        description = raw.get("description")
        return Hypothesis(
            id=hypothesis_id,
            title=str(title) if title else DEFAULT_TITLE,
            description=str(description) if description else "",
            confidence=_coerce_confidence(raw.get("confidence")),
            evidence=_coerce_evidence(raw.get("evidence")),
            suggested_actions=_coerce_str_list(_pick(raw, "suggestedActions", "suggested_actions")),
            related_services=_coerce_str_list(_pick(raw, "relatedServices", "related_services")),
        )

    def fallback_hypotheses(self) -> List[Hypothesis]:
        """The deterministic hypothesis used whenever generation fails."""
        return [
            Hypothesis(
                id=f"{_new_id_prefix()}-0",
                title=FALLBACK_TITLE,
                description=FALLBACK_DESCRIPTION,
                confidence=FALLBACK_CONFIDENCE,
                evidence=[EvidenceItem(**FALLBACK_EVIDENCE)],
                suggested_actions=list(FALLBACK_ACTIONS),
                related_services=[],
            )
        ]
