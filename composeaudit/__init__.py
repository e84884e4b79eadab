"""
composeaudit - static security audit for docker-compose manifests and Dockerfiles
"""

from .rules.engine import RuleEngine
from .rules.models import Finding, Severity
from .report.models import Report
from .parsing.parser import parse
from .scanning.scanner import scan
from .config import EngineProfile, get_profile, load_profile
from .errors import ComposeAuditError, ParseError, PatternError, ConfigError

__version__ = "0.1.0"

__all__ = [
    "RuleEngine",
    "Finding",
    "Severity",
    "Report",
    "parse",
    "scan",
    "EngineProfile",
    "get_profile",
    "load_profile",
    "ComposeAuditError",
    "ParseError",
    "PatternError",
    "ConfigError",
]
