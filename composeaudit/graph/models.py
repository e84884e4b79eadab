"""
Data models for service network topology
"""

from collections import deque
from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, Field

from ..rules.models import Finding


class TopologyGraph(BaseModel):
    """Undirected service graph; services sharing a network are connected"""
    nodes: List[str] = Field(default_factory=list, description="Service names in manifest order")
    edges: List[Tuple[str, str]] = Field(default_factory=list, description="Undirected edges, each pair once")
    can_reach: Dict[str, List[str]] = Field(default_factory=dict, description="Direct neighbours per service")
    external_access_points: List[str] = Field(default_factory=list,
                                              description="Services publishing at least one port")
    memberships: Dict[str, List[str]] = Field(default_factory=dict, description="Network name to member services")

    def neighbors(self, service: str) -> List[str]:
        """Services sharing a network with the given one"""
        return list(self.can_reach.get(service, []))

    def _bfs(self, start: str, target: Optional[str] = None) -> Dict[str, Optional[str]]:
        """Breadth-first walk from start; maps each visited node to its parent"""
        parents: Dict[str, Optional[str]] = {start: None}
        queue = deque([start])

        while queue:
            current = queue.popleft()
            if current == target:
                break
            for neighbor in self.can_reach.get(current, []):
                if neighbor not in parents:
                    parents[neighbor] = current
                    queue.append(neighbor)

        return parents

    def is_reachable(self, source: str, target: str) -> bool:
        """Transitive reachability over shared networks"""
        if source not in self.can_reach or target not in self.can_reach:
            return False
        return target in self._bfs(source, target)

    def shortest_path(self, source: str, target: str) -> Optional[List[str]]:
        """Shortest hop path between two services, or None"""
        if not self.is_reachable(source, target):
            return None

        parents = self._bfs(source, target)
        path = [target]
        while parents[path[-1]] is not None:
            path.append(parents[path[-1]])
        return list(reversed(path))

    def reachable_from_external(self) -> List[str]:
        """Services reachable from any external access point, manifest order"""
        reached = set()
        for entry in self.external_access_points:
            reached.update(self._bfs(entry))
        return [node for node in self.nodes if node in reached]


class NetworkAnalysis(BaseModel):
    """Combined network findings, topology and score"""
    findings: List[Finding] = Field(default_factory=list, description="Configuration and port findings")
    topology: TopologyGraph = Field(default_factory=TopologyGraph, description="Service topology")
    score: int = Field(default=100, description="100 minus 10 per finding")
