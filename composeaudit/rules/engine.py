"""
Rule engine wiring the parser, evaluators and aggregator together
"""

import logging
import time
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from ..config import EngineProfile, DEFAULT_PROFILE
from ..graph.analyzer import NetworkTopologyAnalyzer
from ..parsing.parser import ComposeParser
from ..report.models import Report
from ..scanning.models import PatternMatch, DirectoryScanResult
from ..scanning.scanner import PatternScanner
from .aggregator import aggregate, calculate_score
from .dockerfile_rules import DockerfileRuleEvaluator
from .models import Finding, RuleInfo, Severity
from .secrets_rules import SecretsRuleEvaluator
from .service_rules import ServiceRuleEvaluator

logger = logging.getLogger(__name__)

ReadFile = Callable[[str], str]


class RuleEngine:
    """Runs every evaluator against compose and Dockerfile input"""

    def __init__(self, profile: Optional[EngineProfile] = None):
        self.profile = profile or DEFAULT_PROFILE
        self.parser = ComposeParser()
        self.scanner = PatternScanner(
            patterns=self.profile.custom_patterns,
            builtin_patterns=self.profile.builtin_patterns,
            ignore_test_values=self.profile.ignore_test_values,
        )
        self.service_rules = ServiceRuleEvaluator(self.profile)
        self.secrets_rules = SecretsRuleEvaluator(self.profile, scanner=self.scanner)
        self.dockerfile_rules = DockerfileRuleEvaluator(self.profile, scanner=self.scanner)
        self.network = NetworkTopologyAnalyzer(self.profile)

    @classmethod
    def with_overrides(cls, overrides: Dict, profile: Optional[EngineProfile] = None) -> "RuleEngine":
        """Engine whose profile has extra rule switches ({"rules": {...}} or a bare mapping)"""
        rules = (overrides or {}).get("rules", overrides) or {}
        return cls((profile or DEFAULT_PROFILE).with_rules(rules))

    def validate(self, text: str) -> Report:
        """Audit compose text"""
        start_time = time.time()
        manifest = self.parser.parse(text)

        service = self.service_rules.evaluate(manifest)
        secrets = self.secrets_rules.evaluate_with_score(manifest)
        network = self.network.analyze(manifest)

        report = aggregate(
            [service, secrets.findings, network.findings],
            topology=network.topology,
            evaluator_scores={
                "service": calculate_score(service),
                "secrets": secrets.score,
                "network": network.score,
            },
        )
        logger.debug("Validated %d services in %.1f ms: %d findings, score %d",
                     len(manifest.services), (time.time() - start_time) * 1000,
                     len(report.findings), report.score)
        return report

    def validate_dockerfile(self, text: str) -> Report:
        """Audit Dockerfile text"""
        secrets = self.secrets_rules.evaluate_dockerfile_with_score(text)
        lint = self.dockerfile_rules.evaluate(text)

        return aggregate(
            [secrets.findings, lint],
            evaluator_scores={
                "secrets": secrets.score,
                "dockerfile": calculate_score(lint),
            },
        )

    def audit(self, compose: Optional[str] = None, dockerfile: Optional[str] = None) -> Report:
        """Audit compose and Dockerfile text together, tagging each finding's source"""
        groups: List[List[Finding]] = []
        topology = None
        scores: Dict[str, int] = {}

        if compose is not None:
            report = self.validate(compose)
            groups.append([f.with_source("compose") for f in report.findings])
            topology = report.topology
            scores.update({f"compose.{k}": v for k, v in report.evaluator_scores.items()})

        if dockerfile is not None:
            report = self.validate_dockerfile(dockerfile)
            groups.append([f.with_source("dockerfile") for f in report.findings])
            scores.update({f"dockerfile.{k}": v for k, v in report.evaluator_scores.items()})

        return aggregate(groups, topology=topology, evaluator_scores=scores)

    def validate_file(self, file_path: str, read_file: ReadFile) -> Report:
        return self.validate(read_file(file_path))

    def validate_dockerfile_file(self, file_path: str, read_file: ReadFile) -> Report:
        return self.validate_dockerfile(read_file(file_path))

    def scan_secrets(self, content: str) -> List[PatternMatch]:
        return self.scanner.scan(content)

    def scan_directory(self, root: str,
                       files: Optional[Mapping[str, str]] = None,
                       paths: Optional[Iterable[str]] = None,
                       read_file: Optional[ReadFile] = None,
                       ignore: Iterable[str] = (),
                       max_workers: Optional[int] = None) -> DirectoryScanResult:
        """Scan a batch of files; the profile's ignore globs always apply"""
        ignore = list(self.profile.ignore_paths) + list(ignore)
        return self.scanner.scan_directory(root, files=files, paths=paths, read_file=read_file,
                                           ignore=ignore, max_workers=max_workers)

    def list_rules(self) -> List[RuleInfo]:
        """Registry metadata for every evaluator, in evaluation order"""
        rules: List[RuleInfo] = []
        for evaluator in (self.service_rules, self.secrets_rules, self.network, self.dockerfile_rules):
            rules.extend(evaluator.rule_info())
        return rules

    def get_statistics(self) -> Dict:
        """Rule counts per severity and evaluator"""
        rules = self.list_rules()
        severity_counts = {s.value: len([r for r in rules if r.severity == s]) for s in Severity}
        evaluator_counts: Dict[str, int] = {}
        for rule in rules:
            evaluator_counts[rule.evaluator] = evaluator_counts.get(rule.evaluator, 0) + 1

        return {
            'profile': self.profile.name,
            'total_rules': len(rules),
            'enabled_rules': len([r for r in rules if self.profile.is_rule_enabled(r.id)]),
            'severity_counts': severity_counts,
            'evaluator_counts': evaluator_counts,
        }
