"""
Finding aggregation, scoring and recommendations
"""

from typing import Dict, Iterable, List, Optional

from ..graph.models import TopologyGraph
from ..report.models import Report
from .models import Finding, Recommendation, SeveritySummary


def calculate_score(findings: Iterable[Finding]) -> int:
    """100 minus the severity weight of every finding, clamped to [0, 100]"""
    penalty = sum(f.severity.weight for f in findings)
    return max(0, min(100, 100 - penalty))


def summarize(findings: Iterable[Finding]) -> SeveritySummary:
    counts = {"total": 0}
    for finding in findings:
        counts["total"] += 1
        counts[finding.severity.value] = counts.get(finding.severity.value, 0) + 1
    return SeveritySummary(**counts)


def generate_recommendations(findings: Iterable[Finding]) -> List[Recommendation]:
    """First finding per rule id, most severe first (stable within a severity)"""
    seen = {}
    for finding in findings:
        if finding.rule not in seen:
            seen[finding.rule] = Recommendation(
                rule=finding.rule,
                severity=finding.severity,
                message=finding.message,
                fix=finding.fix,
            )
    return sorted(seen.values(), key=lambda rec: rec.severity.rank)


def aggregate(finding_groups: Iterable[Iterable[Finding]],
              topology: Optional[TopologyGraph] = None,
              evaluator_scores: Optional[Dict[str, int]] = None) -> Report:
    """Merge evaluator outputs into one report"""
    findings = [finding for group in finding_groups for finding in group]
    return Report(
        findings=findings,
        score=calculate_score(findings),
        summary=summarize(findings),
        recommendations=generate_recommendations(findings),
        topology=topology,
        evaluator_scores=dict(evaluator_scores or {}),
    )
