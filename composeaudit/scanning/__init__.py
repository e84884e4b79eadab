"""
Secret and credential pattern scanning
"""

from .scanner import PatternScanner, scan, scan_directory
from .models import SecretPattern, PatternMatch, FileScanResult, DirectoryScanResult
from .patterns import BUILTIN_PATTERNS

__all__ = [
    "PatternScanner",
    "scan",
    "scan_directory",
    "SecretPattern",
    "PatternMatch",
    "FileScanResult",
    "DirectoryScanResult",
    "BUILTIN_PATTERNS",
]
