"""
Compose manifest and Dockerfile parsing
"""

from .parser import ComposeParser, parse
from .dockerfile import parse_dockerfile
from .models import Manifest, ServiceSpec, NetworkSpec, ResourceLimits, Dockerfile, DockerInstruction

__all__ = [
    "ComposeParser",
    "parse",
    "parse_dockerfile",
    "Manifest",
    "ServiceSpec",
    "NetworkSpec",
    "ResourceLimits",
    "Dockerfile",
    "DockerInstruction",
]
