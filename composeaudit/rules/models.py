"""
Data models for rules, findings and recommendations
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from enum import Enum


class Severity(str, Enum):
    """Finding severity levels, most severe first"""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Ordering key: critical=0 ... info=4"""
        return SEVERITY_ORDER.index(self)

    @property
    def weight(self) -> int:
        """Score penalty for one finding of this severity"""
        return SEVERITY_WEIGHTS[self]

    def at_least(self, other: "Severity") -> bool:
        """True when this severity is as severe as or more severe than other"""
        return self.rank <= other.rank


SEVERITY_ORDER = [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW, Severity.INFO]

SEVERITY_WEIGHTS = {
    Severity.CRITICAL: 25,
    Severity.HIGH: 15,
    Severity.MEDIUM: 10,
    Severity.LOW: 5,
    Severity.INFO: 0,
}


class Finding(BaseModel):
    """One rule violation or recommendation"""
    model_config = ConfigDict(frozen=True)

    rule: str = Field(..., description="Rule identifier")
    severity: Severity = Field(..., description="Severity level")
    scope: Optional[str] = Field(None, description="Service the finding applies to")
    message: str = Field(..., description="Finding message")
    fix: str = Field(default="", description="Suggested remediation")
    line: Optional[int] = Field(None, description="Line number for file-based findings")
    source: Optional[str] = Field(None, description="Input kind: compose or dockerfile")

    def with_source(self, source: str) -> "Finding":
        return self.model_copy(update={"source": source})


class Recommendation(BaseModel):
    """Deduplicated remediation advice, one per rule id"""
    model_config = ConfigDict(frozen=True)

    rule: str = Field(..., description="Rule identifier")
    severity: Severity = Field(..., description="Severity of the first finding for the rule")
    message: str = Field(..., description="Message of the first finding for the rule")
    fix: str = Field(..., description="Suggested remediation")


class SeveritySummary(BaseModel):
    """Finding counts per severity"""
    total: int = Field(default=0, description="Total number of findings")
    critical: int = Field(default=0, description="Critical findings")
    high: int = Field(default=0, description="High findings")
    medium: int = Field(default=0, description="Medium findings")
    low: int = Field(default=0, description="Low findings")
    info: int = Field(default=0, description="Informational findings")

    def count(self, severity: Severity) -> int:
        return getattr(self, severity.value)


class RuleInfo(BaseModel):
    """Registry metadata for a rule, used for listings"""
    id: str = Field(..., description="Rule identifier")
    severity: Severity = Field(..., description="Default severity")
    evaluator: str = Field(..., description="Evaluator that owns the rule")
    description: str = Field(default="", description="What the rule checks")


class EvaluationResult(BaseModel):
    """Findings of one evaluator together with its own score"""
    findings: List[Finding] = Field(default_factory=list, description="Findings in evaluation order")
    score: int = Field(default=100, description="Evaluator-local score (0-100)")
