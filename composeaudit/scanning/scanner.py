"""
Regex based secret scanner with false-positive suppression
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Mapping, Match, NamedTuple, Optional, Pattern, Tuple
from pydantic import ValidationError

from ..errors import PatternError
from .models import SecretPattern, PatternMatch, FileScanResult, DirectoryScanResult
from .patterns import (
    BUILTIN_PATTERNS,
    GLOBAL_FALSE_POSITIVES,
    VALUE_FALSE_POSITIVES,
    TEST_VALUE_MARKERS,
)

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 100

_GLOBAL_FP = [re.compile(p) for p in GLOBAL_FALSE_POSITIVES]
_VALUE_FP = [re.compile(p) for p in VALUE_FALSE_POSITIVES]
_TEST_VALUES = re.compile(TEST_VALUE_MARKERS)


class CompiledPattern(NamedTuple):
    spec: SecretPattern
    regex: Pattern
    excludes: List[Pattern]


class PatternScanner:
    """Scans text for hardcoded credentials"""

    def __init__(self, patterns: Optional[Iterable[SecretPattern]] = None,
                 builtin_patterns: bool = True,
                 ignore_test_values: bool = False):
        self.ignore_test_values = ignore_test_values
        self._patterns: List[CompiledPattern] = []

        if builtin_patterns:
            for spec in BUILTIN_PATTERNS:
                self.add_pattern(spec)
        for spec in patterns or []:
            self.add_pattern(spec)

    @property
    def patterns(self) -> List[SecretPattern]:
        return [compiled.spec for compiled in self._patterns]

    def add_pattern(self, spec: SecretPattern) -> None:
        """Compile and register a pattern; malformed expressions fail here"""
        if isinstance(spec, dict):
            try:
                spec = SecretPattern(**spec)
            except ValidationError as e:
                raise PatternError(str(spec.get("name", "<unnamed>")), str(e)) from e
        self._patterns.append(_compile(spec))

    def scan(self, content: str, ignore_test_values: Optional[bool] = None) -> List[PatternMatch]:
        """Find all unsuppressed pattern matches in content"""
        if ignore_test_values is None:
            ignore_test_values = self.ignore_test_values

        hits: List[Tuple[int, int, PatternMatch]] = []
        for order, compiled in enumerate(self._patterns):
            for match in compiled.regex.finditer(content):
                start = match.start()
                line_start = content.rfind('\n', 0, start) + 1
                line_end = content.find('\n', start)
                if line_end == -1:
                    line_end = len(content)
                line_text = content[line_start:line_end]

                if self._is_suppressed(compiled, line_text, match, ignore_test_values):
                    continue

                hits.append((start, order, PatternMatch(
                    type=compiled.spec.name,
                    line=content.count('\n', 0, start) + 1,
                    column=start - line_start + 1,
                    severity=compiled.spec.severity,
                    snippet=line_text.strip()[:SNIPPET_LENGTH],
                )))

        hits.sort(key=lambda hit: (hit[0], hit[1]))
        return [hit[2] for hit in hits]

    def is_false_positive(self, value: str, line: Optional[str] = None,
                          ignore_test_values: Optional[bool] = None) -> bool:
        """True when a literal value is a placeholder, or test data while those are ignored

        ``line`` is the surrounding text checked against the global filters;
        it defaults to the value itself.
        """
        if ignore_test_values is None:
            ignore_test_values = self.ignore_test_values
        context = value if line is None else line
        if any(fp.search(context) for fp in _GLOBAL_FP):
            return True
        if any(fp.search(value) for fp in _VALUE_FP):
            return True
        return bool(ignore_test_values and _TEST_VALUES.search(value))

    def _is_suppressed(self, compiled: CompiledPattern, line_text: str, match: Match,
                       ignore_test_values: bool) -> bool:
        if any(exclude.search(line_text) for exclude in compiled.excludes):
            return True
        return self.is_false_positive(_match_value(match), line_text, ignore_test_values)

    def scan_file(self, file_path: str, content: str) -> FileScanResult:
        """Scan one file's content and tag matches with its path"""
        findings = [m.model_copy(update={"file_path": file_path}) for m in self.scan(content)]
        return FileScanResult(file_path=file_path, findings=findings)

    def scan_directory(self, root: str,
                       files: Optional[Mapping[str, str]] = None,
                       paths: Optional[Iterable[str]] = None,
                       read_file: Optional[Callable[[str], str]] = None,
                       ignore: Iterable[str] = (),
                       max_workers: Optional[int] = None) -> DirectoryScanResult:
        """Scan a batch of files given as a content map or as paths plus a reader"""
        ignore_parts = [part for part in (_literal_part(g) for g in ignore) if part]

        if files is not None:
            candidates = list(files)
        elif paths is not None and read_file is not None:
            candidates = list(paths)
        else:
            raise ValueError("scan_directory needs either files or paths with read_file")

        selected = sorted(p for p in candidates if not _is_ignored(root, p, ignore_parts))
        logger.debug("Scanning %d of %d files under %s", len(selected), len(candidates), root)

        def scan_one(path: str) -> Optional[FileScanResult]:
            if files is not None:
                content = files[path]
            else:
                try:
                    content = read_file(path)
                except (OSError, UnicodeDecodeError) as e:
                    logger.warning("Skipping unreadable file %s: %s", path, e)
                    return None
            return self.scan_file(path, content)

        if max_workers and max_workers > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                results = list(pool.map(scan_one, selected))
        else:
            results = [scan_one(path) for path in selected]

        scanned = [r for r in results if r is not None]
        skipped = [path for path, r in zip(selected, results) if r is None]
        findings = [m for r in scanned for m in r.findings]

        return DirectoryScanResult(
            root=root,
            total_files=len(scanned),
            files_with_secrets=sum(1 for r in scanned if r.has_secrets),
            findings=findings,
            skipped=skipped,
        )


def _compile(spec: SecretPattern) -> CompiledPattern:
    flags = re.IGNORECASE if spec.ignore_case else 0
    try:
        regex = re.compile(spec.regex, flags)
        excludes = [re.compile(p, flags) for p in spec.exclude_patterns]
    except re.error as e:
        raise PatternError(spec.name, str(e)) from e
    return CompiledPattern(spec=spec, regex=regex, excludes=excludes)


def _match_value(match: Match) -> str:
    """The assigned literal of a match, or the whole match for token-shaped patterns"""
    value = match.groupdict().get("value")
    return match.group(0) if value is None else value


def _literal_part(glob: str) -> str:
    """Reduce an ignore glob to its literal text (node_modules/** -> node_modules/)"""
    glob = glob.replace('\\', '/')
    while glob.startswith('*'):
        glob = glob[3:] if glob.startswith('**/') else glob[1:]
    for index, char in enumerate(glob):
        if char in '*?[':
            return glob[:index]
    return glob


def _relative(root: str, path: str) -> str:
    root = root.replace('\\', '/').rstrip('/')
    path = path.replace('\\', '/')
    if root and path.startswith(root + '/'):
        return path[len(root) + 1:]
    return path[2:] if path.startswith("./") else path


def _is_ignored(root: str, path: str, ignore_parts: List[str]) -> bool:
    relative = _relative(root, path)
    return any(part in relative for part in ignore_parts)


_default_scanner = PatternScanner()


def scan(content: str, patterns: Optional[Iterable[SecretPattern]] = None,
         ignore_test_values: bool = False) -> List[PatternMatch]:
    """Scan content with the built-in patterns plus any extra ones"""
    if patterns:
        return PatternScanner(patterns=patterns).scan(content, ignore_test_values)
    return _default_scanner.scan(content, ignore_test_values)


def scan_directory(root: str, files: Mapping[str, str], ignore: Iterable[str] = ()) -> DirectoryScanResult:
    return _default_scanner.scan_directory(root, files=files, ignore=ignore)
