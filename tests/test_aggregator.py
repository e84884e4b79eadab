"""
Test cases for finding aggregation and scoring
"""

import pytest

from composeaudit.rules.aggregator import aggregate, calculate_score, generate_recommendations, summarize
from composeaudit.rules.models import Finding, Severity


def finding(rule, severity, scope=None, message=None):
    return Finding(rule=rule, severity=severity, scope=scope,
                   message=message or f"{rule} message", fix=f"fix {rule}")


class TestScoring:
    """Test score calculation"""

    def test_no_findings(self):
        """Test a clean run scores 100"""
        assert calculate_score([]) == 100

    def test_weights(self):
        """Test 25/15/10/5 weighting with free info findings"""
        findings = [
            finding("a", Severity.CRITICAL),
            finding("b", Severity.HIGH),
            finding("c", Severity.MEDIUM),
            finding("d", Severity.LOW),
            finding("e", Severity.INFO),
        ]
        assert calculate_score(findings) == 45

    def test_clamped_at_zero(self):
        """Test the score never goes negative"""
        assert calculate_score([finding("a", Severity.CRITICAL)] * 5) == 0


class TestSummary:
    """Test severity summaries"""

    def test_counts(self):
        """Test every finding is counted"""
        summary = summarize([
            finding("a", Severity.CRITICAL),
            finding("a", Severity.CRITICAL, scope="other"),
            finding("b", Severity.LOW),
            finding("c", Severity.INFO),
        ])
        assert summary.total == 4
        assert summary.critical == 2
        assert summary.high == 0
        assert summary.low == 1
        assert summary.info == 1
        assert summary.count(Severity.CRITICAL) == 2


class TestRecommendations:
    """Test recommendation deduplication and ordering"""

    def test_first_finding_per_rule_wins(self):
        """Test duplicates by rule id are collapsed"""
        recs = generate_recommendations([
            finding("dup", Severity.MEDIUM, message="first"),
            finding("dup", Severity.MEDIUM, message="second"),
        ])
        assert len(recs) == 1
        assert recs[0].message == "first"

    def test_severity_order_is_stable(self):
        """Test recommendations sort by severity, keeping input order within a level"""
        recs = generate_recommendations([
            finding("low-1", Severity.LOW),
            finding("crit", Severity.CRITICAL),
            finding("med-1", Severity.MEDIUM),
            finding("low-2", Severity.LOW),
            finding("med-2", Severity.MEDIUM),
        ])
        assert [r.rule for r in recs] == ["crit", "med-1", "med-2", "low-1", "low-2"]

    def test_empty(self):
        """Test no findings means no recommendations"""
        assert generate_recommendations([]) == []


class TestAggregate:
    """Test report assembly"""

    def test_groups_are_concatenated_in_order(self):
        """Test findings keep evaluator order"""
        report = aggregate([
            [finding("a", Severity.LOW)],
            [],
            [finding("b", Severity.HIGH), finding("c", Severity.MEDIUM)],
        ], evaluator_scores={"service": 95})
        assert [f.rule for f in report.findings] == ["a", "b", "c"]
        assert report.score == 70
        assert report.summary.total == 3
        assert report.evaluator_scores == {"service": 95}
        assert report.topology is None

    def test_empty_report(self):
        """Test an empty aggregation"""
        report = aggregate([])
        assert report.score == 100
        assert report.recommendations == []
        assert not report.has_blocking_findings()


if __name__ == "__main__":
    pytest.main([__file__])
