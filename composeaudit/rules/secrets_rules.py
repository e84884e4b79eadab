"""
Hardcoded credential checks for compose environments and Dockerfiles
"""

import fnmatch
import json
import logging
import re
import shlex
from typing import List, Optional, Tuple

from ..config import EngineProfile, DEFAULT_PROFILE
from ..parsing.dockerfile import parse_dockerfile
from ..parsing.models import Manifest, ServiceSpec, DockerInstruction
from ..scanning.scanner import PatternScanner
from .models import Finding, Severity, EvaluationResult, RuleInfo

logger = logging.getLogger(__name__)

# Variable names whose literal value is a credential
SECRET_KEY_RE = re.compile(
    r'(?:passw(?:or)?d|pwd|secret(?:[_-]?key)?|api[_-]?key|apikey|access[_-]?key|private[_-]?key|token|credentials?)$',
    re.IGNORECASE,
)

# Variable names that suggest Docker secrets would be a better fit
PASSWORD_LIKE_RE = re.compile(r'password|passwd|secret|key|token', re.IGNORECASE)

SENSITIVE_FILE_GLOBS = (
    ".env",
    ".env.*",
    "*.pem",
    "*.key",
    "*.p12",
    "*.pfx",
    "id_rsa",
    "id_dsa",
    "id_ecdsa",
    "id_ed25519",
    "credentials",
    "credentials.*",
    ".npmrc",
    ".pypirc",
    "kubeconfig",
)

SENSITIVE_PATH_PARTS = (
    ".ssh/",
    ".aws/",
    ".docker/config.json",
)

# Committed templates such as .env.example carry no real values
TEMPLATE_SUFFIXES = (
    ".example",
    ".sample",
    ".template",
    ".dist",
)

RULES = [
    RuleInfo(id="hardcoded-secret", severity=Severity.CRITICAL, evaluator="secrets",
             description="Literal credential in a service environment"),
    RuleInfo(id="prefer-docker-secrets", severity=Severity.MEDIUM, evaluator="secrets",
             description="Sensitive variables without Docker secrets"),
    RuleInfo(id="secret-in-dockerfile", severity=Severity.CRITICAL, evaluator="secrets",
             description="Literal credential in a Dockerfile ENV or ARG"),
    RuleInfo(id="secret-file-copied", severity=Severity.CRITICAL, evaluator="secrets",
             description="Sensitive file copied into an image"),
]


def is_literal(value: Optional[str]) -> bool:
    """True for a non-empty value that is not a variable reference"""
    if value is None:
        return False
    value = value.strip().strip('"\'')
    return bool(value) and not value.startswith('$') and '${' not in value


def is_sensitive_file(path: str) -> bool:
    normalized = path.replace('\\', '/').lower()
    if any(part in normalized for part in SENSITIVE_PATH_PARTS):
        return True
    basename = normalized.rstrip('/').rsplit('/', 1)[-1]
    if basename.endswith(TEMPLATE_SUFFIXES):
        return False
    return any(fnmatch.fnmatchcase(basename, glob) for glob in SENSITIVE_FILE_GLOBS)


class SecretsRuleEvaluator:
    """Finds hardcoded credentials in manifests and Dockerfiles"""

    name = "secrets"

    def __init__(self, profile: Optional[EngineProfile] = None,
                 scanner: Optional[PatternScanner] = None):
        self.profile = profile or DEFAULT_PROFILE
        self.scanner = scanner or PatternScanner(
            patterns=self.profile.custom_patterns,
            builtin_patterns=self.profile.builtin_patterns,
            ignore_test_values=self.profile.ignore_test_values,
        )

    # ------------------------------------------------------------- compose

    def evaluate(self, manifest: Manifest) -> List[Finding]:
        """Check every service's environment"""
        findings = []
        for service in manifest.services.values():
            findings.extend(self._check_environment(service))
            findings.extend(self._check_secret_usage(service, manifest))
        return self._enabled(findings)

    def _check_environment(self, service: ServiceSpec) -> List[Finding]:
        findings = []
        for entry, (key, value) in zip(service.environment, service.env_items()):
            if not is_literal(value):
                continue
            reason = self._secret_reason(key, value, entry)
            if reason is None:
                continue
            findings.append(Finding(
                rule="hardcoded-secret",
                severity=Severity.CRITICAL,
                scope=service.name,
                message=f"Service '{service.name}' has a hardcoded {reason} in environment variable '{key}'.",
                fix="Use Docker secrets or external secret management.",
            ))
        return findings

    def _check_secret_usage(self, service: ServiceSpec, manifest: Manifest) -> List[Finding]:
        if service.secrets or manifest.secrets:
            return []
        if not any(PASSWORD_LIKE_RE.search(key) for key, _ in service.env_items()):
            return []
        return [Finding(
            rule="prefer-docker-secrets",
            severity=Severity.MEDIUM,
            scope=service.name,
            message=f"Service '{service.name}' passes sensitive variables through the environment. "
                    "Consider using Docker secrets.",
            fix="Define secrets in docker-compose and mount them in services.",
        )]

    def _secret_reason(self, key: str, value: str, text: str) -> Optional[str]:
        """Why a KEY=VALUE text counts as a secret, or None"""
        literal = value.strip().strip('"\'')
        if SECRET_KEY_RE.search(key) and not self.scanner.is_false_positive(literal, line=text):
            return "secret"
        matches = self.scanner.scan(text)
        if matches:
            return matches[0].type.replace('_', ' ')
        return None

    # ---------------------------------------------------------- dockerfile

    def evaluate_dockerfile(self, text: str) -> List[Finding]:
        """Check ENV/ARG values and COPY/ADD sources of a Dockerfile"""
        dockerfile = parse_dockerfile(text)
        findings = []
        for inst in dockerfile.instructions:
            if inst.instruction in ("ENV", "ARG"):
                findings.extend(self._check_assignment(inst))
            elif inst.instruction in ("COPY", "ADD"):
                findings.extend(self._check_copy(inst))
        return self._enabled(findings)

    def _check_assignment(self, inst: DockerInstruction) -> List[Finding]:
        findings = []
        for key, value in _instruction_pairs(inst):
            if not is_literal(value):
                continue
            reason = self._secret_reason(key, value, f"{key}={value}")
            if reason is None:
                continue
            findings.append(Finding(
                rule="secret-in-dockerfile",
                severity=Severity.CRITICAL,
                message=f"Possible hardcoded {reason} in {inst.instruction} {key}. "
                        "Use build-time secrets or runtime injection.",
                fix="Remove the hardcoded value. Use Docker secrets or environment injection at runtime.",
                line=inst.line,
            ))
        return findings

    def _check_copy(self, inst: DockerInstruction) -> List[Finding]:
        findings = []
        for source in _copy_sources(inst.arguments):
            if is_sensitive_file(source):
                findings.append(Finding(
                    rule="secret-file-copied",
                    severity=Severity.CRITICAL,
                    message=f"Copying sensitive file into the image: {source}",
                    fix=f"Add {source} to .dockerignore and use Docker secrets or runtime mounting.",
                    line=inst.line,
                ))
        return findings

    # ------------------------------------------------------------- scoring

    def score(self, findings: List[Finding]) -> int:
        """100 minus 25 per distinct critical finding"""
        critical = {(f.rule, f.scope, f.line, f.message)
                    for f in findings if f.severity == Severity.CRITICAL}
        return max(0, 100 - 25 * len(critical))

    def evaluate_with_score(self, manifest: Manifest) -> EvaluationResult:
        findings = self.evaluate(manifest)
        return EvaluationResult(findings=findings, score=self.score(findings))

    def evaluate_dockerfile_with_score(self, text: str) -> EvaluationResult:
        findings = self.evaluate_dockerfile(text)
        return EvaluationResult(findings=findings, score=self.score(findings))

    def _enabled(self, findings: List[Finding]) -> List[Finding]:
        return [f for f in findings if self.profile.is_rule_enabled(f.rule)]

    def rule_info(self) -> List[RuleInfo]:
        return list(RULES)


def _split(arguments: str) -> List[str]:
    try:
        return shlex.split(arguments)
    except ValueError:
        # unbalanced quotes
        return arguments.split()


def _instruction_pairs(inst: DockerInstruction) -> List[Tuple[str, Optional[str]]]:
    """KEY/VALUE pairs of an ENV or ARG instruction"""
    tokens = _split(inst.arguments)
    if not tokens:
        return []

    if inst.instruction == "ENV" and '=' not in tokens[0]:
        # legacy form: ENV KEY value with spaces
        return [(tokens[0], ' '.join(tokens[1:]) or None)]

    pairs = []
    for token in tokens:
        key, sep, value = token.partition('=')
        pairs.append((key, value if sep else None))
    return pairs


def _copy_sources(arguments: str) -> List[str]:
    """Source paths of a COPY/ADD instruction (flags and destination removed)"""
    stripped = arguments.strip()
    if stripped.startswith('['):
        try:
            tokens = [str(t) for t in json.loads(stripped)]
        except ValueError:
            tokens = _split(stripped)
    else:
        tokens = [t for t in _split(stripped) if not t.startswith('--')]
    return tokens[:-1]
