"""
Per-service runtime hardening checks

Each check is a ServiceRule record; the evaluator walks the registry for every
service, so switching a rule off simply removes it from the walk.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..config import EngineProfile, DEFAULT_PROFILE
from ..parsing.models import Manifest, ServiceSpec
from .models import Finding, RuleInfo, Severity

logger = logging.getLogger(__name__)

ROOT_USERS = {"root", "0", "0:0"}


@dataclass(frozen=True)
class ServiceRule:
    """A per-service check: predicate plus finding text"""
    id: str
    severity: Severity
    predicate: Callable[[ServiceSpec, EngineProfile], bool]
    message: Callable[[ServiceSpec, EngineProfile], str]
    fix: str
    description: str = ""

    def check(self, service: ServiceSpec, profile: EngineProfile) -> Optional[Finding]:
        if not self.predicate(service, profile):
            return None
        return Finding(
            rule=self.id,
            severity=self.severity,
            scope=service.name,
            message=self.message(service, profile),
            fix=self.fix,
        )


def _dangerous_caps(service: ServiceSpec, profile: EngineProfile) -> List[str]:
    return sorted(service.cap_add & profile.dangerous_capabilities)


def _has_opt(service: ServiceSpec, fragment: str) -> bool:
    return any(fragment in opt for opt in service.security_opt)


SERVICE_RULES: List[ServiceRule] = [
    ServiceRule(
        id="no-privileged",
        severity=Severity.CRITICAL,
        predicate=lambda s, p: s.privileged,
        message=lambda s, p: f"Service '{s.name}' uses privileged mode. This grants full root access.",
        fix="Remove privileged: true. Use specific capabilities instead.",
        description="Containers must not run privileged",
    ),
    ServiceRule(
        id="require-cap-drop-all",
        severity=Severity.HIGH,
        predicate=lambda s, p: "ALL" not in s.cap_drop,
        message=lambda s, p: f"Service '{s.name}' should drop all capabilities and add only required ones.",
        fix="Add 'cap_drop: [ALL]' to the service.",
        description="cap_drop must contain ALL",
    ),
    ServiceRule(
        id="dangerous-capabilities",
        severity=Severity.HIGH,
        predicate=lambda s, p: bool(_dangerous_caps(s, p)),
        message=lambda s, p: f"Service '{s.name}' adds dangerous capabilities: {', '.join(_dangerous_caps(s, p))}",
        fix="Remove dangerous capabilities or document why they are required.",
        description="cap_add must not contain dangerous capabilities",
    ),
    ServiceRule(
        id="no-host-network",
        severity=Severity.HIGH,
        predicate=lambda s, p: s.network_mode == "host",
        message=lambda s, p: f"Service '{s.name}' uses host network mode. This bypasses network isolation.",
        fix="Use custom bridge networks instead of host network.",
        description="network_mode must not be host",
    ),
    ServiceRule(
        id="recommend-read-only",
        severity=Severity.MEDIUM,
        predicate=lambda s, p: not p.is_database(s) and not s.read_only,
        message=lambda s, p: f"Service '{s.name}' should use read-only root filesystem.",
        fix="Add 'read_only: true' and mount writable volumes for needed paths.",
        description="Stateless services should have a read-only root filesystem",
    ),
    ServiceRule(
        id="recommend-user",
        severity=Severity.MEDIUM,
        predicate=lambda s, p: not s.user,
        message=lambda s, p: f"Service '{s.name}' should specify a non-root user.",
        fix="Add 'user: \"1000:1000\"' or similar non-root user.",
        description="Services should set an explicit user",
    ),
    ServiceRule(
        id="no-root-user",
        severity=Severity.HIGH,
        predicate=lambda s, p: bool(s.user) and s.user.strip() in ROOT_USERS,
        message=lambda s, p: f"Service '{s.name}' runs as root user.",
        fix="Change to a non-root user.",
        description="Services must not run as root",
    ),
    ServiceRule(
        id="recommend-no-new-privileges",
        severity=Severity.MEDIUM,
        predicate=lambda s, p: not _has_opt(s, "no-new-privileges"),
        message=lambda s, p: f"Service '{s.name}' should prevent privilege escalation.",
        fix="Add 'security_opt: [no-new-privileges:true]'.",
        description="security_opt should include no-new-privileges",
    ),
    ServiceRule(
        id="recommend-seccomp",
        severity=Severity.LOW,
        predicate=lambda s, p: not _has_opt(s, "seccomp"),
        message=lambda s, p: f"Service '{s.name}' should use seccomp profile.",
        fix="Add 'security_opt: [seccomp:default]' or custom profile.",
        description="security_opt should set a seccomp profile",
    ),
    ServiceRule(
        id="recommend-resource-limits",
        severity=Severity.MEDIUM,
        predicate=lambda s, p: not s.has_resource_limits,
        message=lambda s, p: f"Service '{s.name}' should have resource limits.",
        fix="Add deploy.resources.limits or mem_limit to prevent resource exhaustion.",
        description="Services should declare resource limits",
    ),
]


class ServiceRuleEvaluator:
    """Runs the service rule registry over every service of a manifest"""

    name = "service"

    def __init__(self, profile: Optional[EngineProfile] = None,
                 rules: Optional[List[ServiceRule]] = None):
        self.profile = profile or DEFAULT_PROFILE
        self.rules = list(rules if rules is not None else SERVICE_RULES)

    def active_rules(self) -> List[ServiceRule]:
        """Registry entries not switched off by the profile"""
        return [rule for rule in self.rules if self.profile.is_rule_enabled(rule.id)]

    def evaluate_service(self, service: ServiceSpec) -> List[Finding]:
        findings = []
        for rule in self.active_rules():
            finding = rule.check(service, self.profile)
            if finding is not None:
                findings.append(finding)
        return findings

    def evaluate(self, manifest: Manifest) -> List[Finding]:
        """Findings per service in manifest order, rules in registry order"""
        findings = []
        for service in manifest.services.values():
            findings.extend(self.evaluate_service(service))
        logger.debug("Service rules produced %d findings for %d services",
                     len(findings), len(manifest.services))
        return findings

    def rule_info(self) -> List[RuleInfo]:
        return [RuleInfo(id=r.id, severity=r.severity, evaluator=self.name, description=r.description)
                for r in self.rules]
