"""
Dockerfile best-practice lint

Checks base image pinning, image size, ADD usage, secrets in RUN commands,
the runtime user, health checks and multi-stage builds.
"""

import logging
import re
from typing import List, Optional

from ..config import EngineProfile, DEFAULT_PROFILE
from ..parsing.dockerfile import parse_dockerfile
from ..parsing.models import Dockerfile, BuildStage
from ..scanning.scanner import PatternScanner
from .models import Finding, Severity, RuleInfo

logger = logging.getLogger(__name__)

MINIMAL_IMAGE_RE = re.compile(r'alpine|distroless|slim|scratch|busybox', re.IGNORECASE)
URL_RE = re.compile(r'https?://')
BUILD_COMMAND_RE = re.compile(r'\b(?:npm|yarn|build|compile|make|mvn|gradle|cargo)\b')
ASSIGNMENT_RE = re.compile(r'([A-Za-z_][\w.-]*)=("[^"]*"|\'[^\']*\'|\S+)')
SECRET_NAME_RE = re.compile(r'password|passwd|secret|api[_-]?key|token', re.IGNORECASE)

ROOT_USERS = {"root", "0"}

RULES = [
    RuleInfo(id="no-latest-tag", severity=Severity.MEDIUM, evaluator="dockerfile",
             description="Base images must be pinned to a version"),
    RuleInfo(id="prefer-minimal-base", severity=Severity.LOW, evaluator="dockerfile",
             description="Final stage should use a minimal base image"),
    RuleInfo(id="prefer-copy-over-add", severity=Severity.MEDIUM, evaluator="dockerfile",
             description="ADD should not fetch remote URLs"),
    RuleInfo(id="secret-in-run-command", severity=Severity.CRITICAL, evaluator="dockerfile",
             description="RUN commands must not embed credentials"),
    RuleInfo(id="dockerfile-root-user", severity=Severity.HIGH, evaluator="dockerfile",
             description="Image must switch to a non-root USER"),
    RuleInfo(id="recommend-healthcheck", severity=Severity.LOW, evaluator="dockerfile",
             description="Image should define a HEALTHCHECK"),
    RuleInfo(id="recommend-multi-stage", severity=Severity.MEDIUM, evaluator="dockerfile",
             description="Build steps should live in a separate stage"),
]


def image_tag(image: str) -> Optional[str]:
    """Tag of an image reference, ignoring registry ports and digests"""
    if '@' in image:
        return image.split('@', 1)[1]
    name = image.rsplit('/', 1)[-1]
    if ':' in name:
        return name.split(':', 1)[1]
    return None


class DockerfileRuleEvaluator:
    """Lints a Dockerfile against container build best practices"""

    name = "dockerfile"

    def __init__(self, profile: Optional[EngineProfile] = None,
                 scanner: Optional[PatternScanner] = None):
        self.profile = profile or DEFAULT_PROFILE
        self.scanner = scanner or PatternScanner(
            patterns=self.profile.custom_patterns,
            builtin_patterns=self.profile.builtin_patterns,
            ignore_test_values=self.profile.ignore_test_values,
        )

    def evaluate(self, text: str) -> List[Finding]:
        dockerfile = parse_dockerfile(text)
        if not dockerfile.instructions:
            return []

        findings: List[Finding] = []
        findings.extend(self._check_base_images(dockerfile))
        findings.extend(self._check_add(dockerfile))
        findings.extend(self._check_run_secrets(dockerfile))
        findings.extend(self._check_user(dockerfile))
        findings.extend(self._check_healthcheck(dockerfile))
        findings.extend(self._check_multi_stage(dockerfile))

        logger.debug("Dockerfile lint produced %d findings for %d instructions",
                     len(findings), len(dockerfile.instructions))
        return [f for f in findings if self.profile.is_rule_enabled(f.rule)]

    def _check_base_images(self, dockerfile: Dockerfile) -> List[Finding]:
        findings = []
        seen_stages = set()

        for index, stage in enumerate(dockerfile.stages):
            if not self._is_stage_reference(stage, seen_stages) and self._is_unpinned(stage.image):
                repository = stage.image[:-len(":latest")] \
                    if image_tag(stage.image) == "latest" else stage.image
                findings.append(Finding(
                    rule="no-latest-tag",
                    severity=Severity.MEDIUM,
                    message=f"Avoid using 'latest' tag for {stage.image}. Pin to a specific version.",
                    fix=f"Use a specific version tag (e.g., {repository}:20-alpine)",
                    line=stage.line,
                ))

            is_final = index == len(dockerfile.stages) - 1
            if is_final and not self._is_stage_reference(stage, seen_stages) \
                    and not MINIMAL_IMAGE_RE.search(stage.image):
                findings.append(Finding(
                    rule="prefer-minimal-base",
                    severity=Severity.LOW,
                    message="Consider using a minimal base image (alpine, distroless, slim).",
                    fix="Use an alpine variant (e.g., node:20-alpine) or distroless",
                    line=stage.line,
                ))

            if stage.name:
                seen_stages.add(stage.name.lower())
        return findings

    @staticmethod
    def _is_stage_reference(stage: BuildStage, seen_stages: set) -> bool:
        return stage.image.lower() in seen_stages

    @staticmethod
    def _is_unpinned(image: str) -> bool:
        if image.lower() == "scratch" or '$' in image:
            return False
        tag = image_tag(image)
        return tag is None or tag == "latest"

    def _check_add(self, dockerfile: Dockerfile) -> List[Finding]:
        return [
            Finding(
                rule="prefer-copy-over-add",
                severity=Severity.MEDIUM,
                message="Prefer COPY over ADD. ADD with URLs can be unpredictable.",
                fix="Use RUN curl/wget to download files, or COPY local files.",
                line=inst.line,
            )
            for inst in dockerfile.find("ADD")
            if URL_RE.search(inst.arguments)
        ]

    def _check_run_secrets(self, dockerfile: Dockerfile) -> List[Finding]:
        findings = []
        for inst in dockerfile.find("RUN"):
            if self._has_literal_secret(inst.arguments):
                findings.append(Finding(
                    rule="secret-in-run-command",
                    severity=Severity.CRITICAL,
                    message="Possible hardcoded secret in RUN command.",
                    fix="Use Docker build secrets (--mount=type=secret) instead.",
                    line=inst.line,
                ))
        return findings

    def _has_literal_secret(self, command: str) -> bool:
        for match in ASSIGNMENT_RE.finditer(command):
            key, value = match.group(1), match.group(2).strip('"\'')
            if value and '$' not in value and SECRET_NAME_RE.search(key):
                return True
        return bool(self.scanner.scan(command))

    def _check_user(self, dockerfile: Dockerfile) -> List[Finding]:
        users = dockerfile.find("USER")
        if users:
            user = users[-1].arguments.strip().split(':', 1)[0]
            if user not in ROOT_USERS:
                return []
            message = "Container runs as root. Switch to a non-root USER."
        else:
            message = "Container will run as root. Add a non-root USER directive."

        return [Finding(
            rule="dockerfile-root-user",
            severity=Severity.HIGH,
            message=message,
            fix="Add 'RUN adduser -D appuser' and 'USER appuser' before CMD/ENTRYPOINT.",
            line=dockerfile.instructions[-1].line,
        )]

    def _check_healthcheck(self, dockerfile: Dockerfile) -> List[Finding]:
        if dockerfile.find("HEALTHCHECK"):
            return []
        return [Finding(
            rule="recommend-healthcheck",
            severity=Severity.LOW,
            message="No HEALTHCHECK defined. Container orchestrators benefit from health checks.",
            fix="Add HEALTHCHECK --interval=30s CMD curl -f http://localhost:PORT/health || exit 1",
            line=dockerfile.instructions[-1].line,
        )]

    def _check_multi_stage(self, dockerfile: Dockerfile) -> List[Finding]:
        if dockerfile.is_multi_stage:
            return []
        if not any(BUILD_COMMAND_RE.search(inst.arguments) for inst in dockerfile.find("RUN")):
            return []
        return [Finding(
            rule="recommend-multi-stage",
            severity=Severity.MEDIUM,
            message="Build instructions detected but no multi-stage build. "
                    "Build dependencies may be in final image.",
            fix="Use multi-stage build: separate builder stage from production stage.",
            line=1,
        )]

    def rule_info(self) -> List[RuleInfo]:
        return list(RULES)
