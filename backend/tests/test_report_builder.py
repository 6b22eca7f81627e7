"""Tests for ranking hypotheses and building reports."""

from datetime import datetime, timezone

from tracepulse.agents.schemas import AnalysisReport, Hypothesis
from tracepulse.services.reporting import ReportBuilder
from tracepulse.services.system_map import ImpactResult


def hypothesis(hyp_id, confidence, title=None):
    return Hypothesis(id=hyp_id, title=title or hyp_id, confidence=confidence)


class TestReportBuilder:
    """Tests for ReportBuilder."""

    def setup_method(self):
        self.builder = ReportBuilder()

    def test_rank_descending_and_stable(self):
        """Higher confidence first; ties keep generator order."""
        ranked = self.builder.rank([
            hypothesis("a", 40),
            hypothesis("b", 90),
            hypothesis("c", 40),
            hypothesis("d", 90),
            hypothesis("e", 10),
        ])
        assert [h.id for h in ranked] == ["b", "d", "a", "c", "e"]

    def test_affected_services_primary_first_without_duplicates(self):
        """The primary service leads and nothing repeats."""
        impact = ImpactResult(
            service="Checkout",
            all_dependents=("Web", "Checkout", "Mobile", "Web"),
        )
        assert self.builder.affected_services("Checkout", impact) == ["Checkout", "Web", "Mobile"]

    def test_affected_services_without_impact(self):
        """Without impact only the primary service is affected."""
        assert self.builder.affected_services("Unknown", None) == ["Unknown"]

    def test_summary(self):
        """The summary names the event, service and top hypothesis."""
        ranked = [hypothesis("x", 82, "Payments timeout"), hypothesis("y", 30)]
        summary = self.builder.summarize("payment_failed", "Checkout", ranked)
        assert summary == (
            "Critical payment_failed event detected in Checkout. "
            "Most likely cause: Payments timeout (82% confidence). "
            "2 hypotheses generated for investigation."
        )

    def test_summary_without_hypotheses(self):
        """An empty list still produces a summary."""
        summary = self.builder.summarize("crash", "Api", [])
        assert "Most likely cause: Unknown (0% confidence)" in summary

    def test_build(self):
        """Reports carry ranked hypotheses and metadata."""
        generated_at = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)
        impact = ImpactResult(service="B", dependencies=("C",), direct_dependents=("A",), all_dependents=("A",))

        report = self.builder.build(
            correlation_id="txn-1",
            event_type="db_down",
            service="B",
            hypotheses=[hypothesis("low", 20), hypothesis("high", 75)],
            impact=impact,
            generated_at=generated_at,
        )

        assert isinstance(report, AnalysisReport)
        assert report.correlation_id == "txn-1"
        assert report.timestamp == generated_at
        assert [h.id for h in report.hypotheses] == ["high", "low"]
        assert report.top_hypothesis.id == "high"
        assert report.affected_services == ["B", "A"]
        assert report.used_fallback is False

    def test_build_serializes_to_json(self):
        """Reports dump to JSON-compatible data."""
        report = self.builder.build("txn", "crash", "Api", [hypothesis("h", 55.5)])
        data = report.model_dump(mode="json")
        assert data["hypotheses"][0]["confidence"] == 55.5
        assert isinstance(data["timestamp"], str)
