"""
Aggregated audit report
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from ..rules.models import Finding, Recommendation, SeveritySummary, Severity
from ..graph.models import TopologyGraph


class Report(BaseModel):
    """Scored, deduplicated result of one audit run"""
    findings: List[Finding] = Field(default_factory=list, description="All findings in evaluator order")
    score: int = Field(default=100, description="Overall score (0-100)")
    summary: SeveritySummary = Field(default_factory=SeveritySummary, description="Counts per severity")
    recommendations: List[Recommendation] = Field(default_factory=list,
                                                  description="One entry per rule, most severe first")
    topology: Optional[TopologyGraph] = Field(None, description="Service topology for compose input")
    evaluator_scores: Dict[str, int] = Field(default_factory=dict,
                                             description="Evaluator-local scores, not comparable with score")

    def get_findings_by_severity(self, severity: Severity) -> List[Finding]:
        return [f for f in self.findings if f.severity == severity]

    def get_findings_by_rule(self, rule_id: str) -> List[Finding]:
        return [f for f in self.findings if f.rule == rule_id]

    def has_blocking_findings(self) -> bool:
        """True when any finding is high or critical"""
        return any(f.severity.at_least(Severity.HIGH) for f in self.findings)
