"""
Data models for parsed compose manifests and Dockerfiles
"""

from typing import List, Dict, Optional, FrozenSet, Tuple
from pydantic import BaseModel, ConfigDict, Field


class ResourceLimits(BaseModel):
    """deploy.resources.limits block of a service"""
    model_config = ConfigDict(frozen=True)

    memory: Optional[str] = Field(None, description="Memory limit (e.g. 512M)")
    cpus: Optional[str] = Field(None, description="CPU limit (e.g. 0.5)")


class ServiceSpec(BaseModel):
    """Normalized configuration of a single service"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Service name")
    image: Optional[str] = Field(None, description="Image reference")
    privileged: bool = Field(default=False, description="Runs in privileged mode")
    cap_add: FrozenSet[str] = Field(default_factory=frozenset, description="Added capabilities")
    cap_drop: FrozenSet[str] = Field(default_factory=frozenset, description="Dropped capabilities")
    network_mode: Optional[str] = Field(None, description="network_mode value")
    read_only: bool = Field(default=False, description="Read-only root filesystem")
    user: Optional[str] = Field(None, description="User the container runs as")
    security_opt: FrozenSet[str] = Field(default_factory=frozenset, description="security_opt entries")
    environment: List[str] = Field(default_factory=list, description="Ordered KEY=VALUE entries")
    ports: List[str] = Field(default_factory=list, description="Published port bindings")
    expose: List[str] = Field(default_factory=list, description="Ports exposed to linked services only")
    resource_limits: Optional[ResourceLimits] = Field(None, description="deploy.resources.limits")
    mem_limit: Optional[str] = Field(None, description="mem_limit or memory value")
    secrets: List[str] = Field(default_factory=list, description="Referenced secret names")
    networks: List[str] = Field(default_factory=list, description="Joined network names")

    @property
    def has_resource_limits(self) -> bool:
        """True when either deploy limits or a legacy memory limit is set"""
        return self.resource_limits is not None or bool(self.mem_limit)

    def env_items(self) -> List[Tuple[str, Optional[str]]]:
        """Split environment entries into (key, value) pairs"""
        items = []
        for entry in self.environment:
            key, sep, value = entry.partition('=')
            items.append((key.strip(), value if sep else None))
        return items


class NetworkSpec(BaseModel):
    """Top-level network declaration"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Network name")
    internal: bool = Field(default=False, description="Not externally routable")
    driver: Optional[str] = Field(None, description="Network driver")


class Manifest(BaseModel):
    """Immutable result of parsing a compose file"""
    model_config = ConfigDict(frozen=True)

    version: Optional[str] = Field(None, description="Compose file version")
    services: Dict[str, ServiceSpec] = Field(default_factory=dict, description="Services in file order")
    networks: Dict[str, NetworkSpec] = Field(default_factory=dict, description="Declared networks")
    volumes: List[str] = Field(default_factory=list, description="Declared volume names")
    secrets: List[str] = Field(default_factory=list, description="Declared secret names")

    def service_names(self) -> List[str]:
        return list(self.services)

    def network_names(self) -> List[str]:
        """Declared and referenced network names, first-seen order"""
        names = list(self.networks)
        for service in self.services.values():
            for net in service.networks:
                if net not in names:
                    names.append(net)
        return names

    def get_network(self, name: str) -> NetworkSpec:
        """Look up a network; undeclared names are treated as plain bridges"""
        return self.networks.get(name) or NetworkSpec(name=name)


class DockerInstruction(BaseModel):
    """Single Dockerfile instruction"""
    model_config = ConfigDict(frozen=True)

    instruction: str = Field(..., description="Upper-case keyword (FROM, RUN, ...)")
    arguments: str = Field(..., description="Instruction arguments with continuations joined")
    line: int = Field(..., description="Line of the instruction start (1-based)")


class BuildStage(BaseModel):
    """FROM stage of a Dockerfile"""
    model_config = ConfigDict(frozen=True)

    image: str = Field(..., description="Base image reference")
    name: Optional[str] = Field(None, description="Stage alias (FROM ... AS name)")
    line: int = Field(..., description="Line of the FROM instruction")


class Dockerfile(BaseModel):
    """Parsed Dockerfile"""
    model_config = ConfigDict(frozen=True)

    instructions: List[DockerInstruction] = Field(default_factory=list, description="Instructions in order")
    stages: List[BuildStage] = Field(default_factory=list, description="Build stages")

    @property
    def is_multi_stage(self) -> bool:
        return len(self.stages) > 1

    def find(self, *keywords: str) -> List[DockerInstruction]:
        """Instructions whose keyword is one of the given ones"""
        wanted = {k.upper() for k in keywords}
        return [inst for inst in self.instructions if inst.instruction in wanted]
