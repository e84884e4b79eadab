"""
Network exposure checks and reachability topology for compose manifests
"""

import logging
from typing import Dict, List, Optional

from ..config import EngineProfile, DEFAULT_PROFILE
from ..parsing.models import Manifest, ServiceSpec
from ..rules.models import Finding, Severity, EvaluationResult, RuleInfo
from .models import TopologyGraph, NetworkAnalysis

logger = logging.getLogger(__name__)

CONFIG_PENALTY = 15
PORT_PENALTY = 20
ANALYSIS_PENALTY = 10

RULES = [
    RuleInfo(id="no-default-bridge", severity=Severity.MEDIUM, evaluator="network",
             description="Services should join custom networks"),
    RuleInfo(id="database-internal-only", severity=Severity.HIGH, evaluator="network",
             description="Databases should only join internal networks"),
    RuleInfo(id="recommend-network-segmentation", severity=Severity.LOW, evaluator="network",
             description="Split services across more than one network"),
    RuleInfo(id="database-port-exposed", severity=Severity.HIGH, evaluator="network",
             description="Database ports must not be published to the host"),
    RuleInfo(id="avoid-bind-all-interfaces", severity=Severity.MEDIUM, evaluator="network",
             description="Published ports should bind a specific interface"),
]


def container_ports(binding: str) -> List[int]:
    """Container-side ports of a '[ip:]host:container[/proto]' binding"""
    target = binding.rsplit(':', 1)[-1].split('/', 1)[0].strip()
    start, sep, end = target.partition('-')
    try:
        first = int(start)
        last = int(end) if sep else first
    except ValueError:
        return []
    return list(range(first, last + 1))


def _penalized(findings: List[Finding], penalty: int) -> int:
    return max(0, 100 - penalty * len(findings))


class NetworkTopologyAnalyzer:
    """Finds network misconfigurations and builds the service topology"""

    name = "network"

    def __init__(self, profile: Optional[EngineProfile] = None):
        self.profile = profile or DEFAULT_PROFILE

    def validate_network_config(self, manifest: Manifest) -> EvaluationResult:
        """Custom network usage, database isolation and segmentation"""
        findings: List[Finding] = []
        services = list(manifest.services.values())

        if services:
            uses_networks = any(s.networks for s in services)
            if not manifest.networks or not uses_networks:
                findings.append(Finding(
                    rule="no-default-bridge",
                    severity=Severity.MEDIUM,
                    message="No custom networks in use. Services will use the default bridge network.",
                    fix="Define custom networks for network segmentation.",
                ))

        for service in services:
            if not self.profile.is_database(service) or not service.networks:
                continue
            exposed = [net for net in service.networks if not manifest.get_network(net).internal]
            if exposed:
                findings.append(Finding(
                    rule="database-internal-only",
                    severity=Severity.HIGH,
                    scope=service.name,
                    message=f"Database '{service.name}' is on non-internal network(s): {', '.join(exposed)}",
                    fix='Attach the database only to networks with "internal: true".',
                ))

        memberships = self._memberships(manifest)
        crowded = [net for net, members in memberships.items() if len(members) > 2]
        if crowded and len(manifest.network_names()) == 1:
            findings.append(Finding(
                rule="recommend-network-segmentation",
                severity=Severity.LOW,
                message=f"All services share the single network '{crowded[0]}'.",
                fix="Separate frontend, backend and data tiers onto different networks.",
            ))

        findings = self._enabled(findings)
        return EvaluationResult(findings=findings, score=_penalized(findings, CONFIG_PENALTY))

    def detect_exposed_ports(self, manifest: Manifest) -> EvaluationResult:
        """Published database ports and bindings on every interface"""
        findings: List[Finding] = []

        for service in manifest.services.values():
            if self.profile.is_database(service):
                findings.extend(self._exposed_database_ports(service))

            for binding in service.ports:
                if binding.startswith("0.0.0.0:"):
                    findings.append(Finding(
                        rule="avoid-bind-all-interfaces",
                        severity=Severity.MEDIUM,
                        scope=service.name,
                        message=f"Service '{service.name}' binds {binding} on all interfaces.",
                        fix="Bind to 127.0.0.1 or a specific interface address.",
                    ))

        findings = self._enabled(findings)
        return EvaluationResult(findings=findings, score=_penalized(findings, PORT_PENALTY))

    def _exposed_database_ports(self, service: ServiceSpec) -> List[Finding]:
        findings = []
        reported = set()
        for binding in service.ports:
            for port in container_ports(binding):
                if port in self.profile.database_ports and port not in reported:
                    reported.add(port)
                    findings.append(Finding(
                        rule="database-port-exposed",
                        severity=Severity.HIGH,
                        scope=service.name,
                        message=f"Database '{service.name}' publishes port {port} to the host.",
                        fix="Remove the port mapping and reach the database over an internal network.",
                    ))
        return findings

    def _memberships(self, manifest: Manifest) -> Dict[str, List[str]]:
        """Network name to member services, both in manifest order"""
        memberships: Dict[str, List[str]] = {name: [] for name in manifest.network_names()}
        for service in manifest.services.values():
            for net in service.networks:
                if service.name not in memberships[net]:
                    memberships[net].append(service.name)
        return memberships

    def build_topology(self, manifest: Manifest) -> TopologyGraph:
        """Connect every pair of services that share a network"""
        nodes = manifest.service_names()
        networks = {name: set(manifest.services[name].networks) for name in nodes}

        edges = []
        can_reach: Dict[str, List[str]] = {name: [] for name in nodes}
        for i, first in enumerate(nodes):
            for second in nodes[i + 1:]:
                if networks[first] & networks[second]:
                    edges.append((first, second))
                    can_reach[first].append(second)
                    can_reach[second].append(first)

        return TopologyGraph(
            nodes=nodes,
            edges=edges,
            can_reach=can_reach,
            external_access_points=[name for name in nodes if manifest.services[name].ports],
            memberships=self._memberships(manifest),
        )

    def analyze(self, manifest: Manifest) -> NetworkAnalysis:
        """Both checks plus topology, scored 100 minus 10 per finding"""
        findings = self.validate_network_config(manifest).findings
        findings = findings + self.detect_exposed_ports(manifest).findings
        topology = self.build_topology(manifest)

        logger.debug("Network analysis: %d findings, %d nodes, %d edges",
                     len(findings), len(topology.nodes), len(topology.edges))
        return NetworkAnalysis(
            findings=findings,
            topology=topology,
            score=_penalized(findings, ANALYSIS_PENALTY),
        )

    def _enabled(self, findings: List[Finding]) -> List[Finding]:
        return [f for f in findings if self.profile.is_rule_enabled(f.rule)]

    def rule_info(self) -> List[RuleInfo]:
        return list(RULES)
