"""
Rule evaluators, scoring and the audit engine
"""

from .models import Finding, Recommendation, Severity, SeveritySummary, RuleInfo, EvaluationResult
from .service_rules import ServiceRuleEvaluator, SERVICE_RULES
from .secrets_rules import SecretsRuleEvaluator
from .dockerfile_rules import DockerfileRuleEvaluator
from .aggregator import aggregate, calculate_score, generate_recommendations
from .engine import RuleEngine

__all__ = [
    "RuleEngine",
    "Finding",
    "Recommendation",
    "Severity",
    "SeveritySummary",
    "RuleInfo",
    "EvaluationResult",
    "ServiceRuleEvaluator",
    "SERVICE_RULES",
    "SecretsRuleEvaluator",
    "DockerfileRuleEvaluator",
    "aggregate",
    "calculate_score",
    "generate_recommendations",
]
