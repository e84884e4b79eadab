"""
Audit reports and console output
"""

from .models import Report
from .console import ConsoleReporter

__all__ = ["Report", "ConsoleReporter"]
