"""
Data models for secret patterns and scan results
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from ..rules.models import Severity


class SecretPattern(BaseModel):
    """Named, severity-tagged detection expression"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Pattern name, reported as the match type")
    regex: str = Field(..., description="Regular expression to search for")
    severity: Severity = Field(default=Severity.HIGH, description="Severity of a match")
    description: Optional[str] = Field(None, description="What the pattern detects")
    exclude_patterns: List[str] = Field(default_factory=list,
                                        description="Expressions that suppress a match when found on its line")
    ignore_case: bool = Field(default=False, description="Compile the regex case-insensitively")


class PatternMatch(BaseModel):
    """A single pattern hit"""
    model_config = ConfigDict(frozen=True)

    type: str = Field(..., description="Name of the pattern that matched")
    line: int = Field(..., description="Line number (1-based)")
    column: int = Field(..., description="Column number (1-based)")
    severity: Severity = Field(..., description="Severity of the pattern")
    snippet: str = Field(..., description="Trimmed source line, at most 100 characters")
    file_path: Optional[str] = Field(None, description="File the match was found in")


class FileScanResult(BaseModel):
    """Matches found in one file"""
    file_path: str = Field(..., description="Scanned file path")
    findings: List[PatternMatch] = Field(default_factory=list, description="Pattern matches")

    @property
    def has_secrets(self) -> bool:
        return bool(self.findings)


class DirectoryScanResult(BaseModel):
    """Matches found across a batch of files"""
    root: str = Field(..., description="Directory the batch is relative to")
    total_files: int = Field(default=0, description="Files scanned")
    files_with_secrets: int = Field(default=0, description="Files with at least one match")
    findings: List[PatternMatch] = Field(default_factory=list, description="Matches sorted by path")
    skipped: List[str] = Field(default_factory=list, description="Files that could not be read")

    def findings_by_file(self) -> dict:
        grouped = {}
        for match in self.findings:
            grouped.setdefault(match.file_path, []).append(match)
        return grouped
