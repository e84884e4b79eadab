"""
Service network topology and exposure analysis
"""

from .analyzer import NetworkTopologyAnalyzer
from .models import TopologyGraph, NetworkAnalysis

__all__ = ["NetworkTopologyAnalyzer", "TopologyGraph", "NetworkAnalysis"]
