"""
Compose manifest parser

Turns compose YAML text into an immutable Manifest. The parser is purely
structural: it normalizes shapes (map-or-list environment, short or long port
syntax, list or map networks) and never judges the configuration.
"""

import logging
from typing import Any, Callable, Dict, List, Optional
import yaml

from ..errors import ParseError
from .models import Manifest, ServiceSpec, NetworkSpec, ResourceLimits

logger = logging.getLogger(__name__)


class ComposeParser:
    """Parser for docker-compose style manifests"""

    def parse(self, text: str) -> Manifest:
        """Parse manifest text into a Manifest"""
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            mark = getattr(e, 'problem_mark', None)
            line = mark.line + 1 if mark is not None else None
            problem = getattr(e, 'problem', None) or str(e)
            raise ParseError(f"Invalid YAML: {problem}", line=line) from e

        if data is None:
            return Manifest()
        if not isinstance(data, dict):
            raise ParseError(f"Manifest must be a mapping, got {type(data).__name__}")

        services = {}
        for name, config in self._mapping(data.get('services'), 'services').items():
            name = str(name)
            services[name] = self._parse_service(name, config)

        networks = {}
        for name, config in self._mapping(data.get('networks'), 'networks').items():
            name = str(name)
            networks[name] = self._parse_network(name, config)

        version = data.get('version')
        manifest = Manifest(
            version=str(version) if version is not None else None,
            services=services,
            networks=networks,
            volumes=self._names(data.get('volumes'), 'volumes'),
            secrets=self._names(data.get('secrets'), 'secrets'),
        )
        logger.debug("Parsed manifest with %d services and %d networks",
                     len(services), len(networks))
        return manifest

    def parse_file(self, file_path: str, read_file: Callable[[str], str]) -> Manifest:
        """Parse a manifest read through a caller-supplied reader"""
        return self.parse(read_file(file_path))

    def _parse_service(self, name: str, config: Any) -> ServiceSpec:
        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ParseError(f"Service '{name}' must be a mapping")

        where = f"service '{name}'"
        user = config.get('user')
        mem_limit = config.get('mem_limit') or config.get('memory')

        return ServiceSpec(
            name=name,
            image=_scalar(config.get('image')),
            privileged=_as_bool(config.get('privileged')),
            cap_add=frozenset(_capability(c) for c in self._list(config.get('cap_add'), 'cap_add', where)),
            cap_drop=frozenset(_capability(c) for c in self._list(config.get('cap_drop'), 'cap_drop', where)),
            network_mode=_scalar(config.get('network_mode')),
            read_only=_as_bool(config.get('read_only')),
            user=_scalar(user),
            security_opt=frozenset(str(o) for o in self._list(config.get('security_opt'), 'security_opt', where)),
            environment=self._environment(config.get('environment'), where),
            ports=[self._port(p, where) for p in self._list(config.get('ports'), 'ports', where)],
            expose=[str(p) for p in self._list(config.get('expose'), 'expose', where)],
            resource_limits=self._resource_limits(config.get('deploy'), where),
            mem_limit=_scalar(mem_limit) if mem_limit else None,
            secrets=self._secret_refs(config.get('secrets'), where),
            networks=self._service_networks(config.get('networks'), where),
        )

    def _parse_network(self, name: str, config: Any) -> NetworkSpec:
        if config is None:
            return NetworkSpec(name=name)
        if not isinstance(config, dict):
            raise ParseError(f"Network '{name}' must be a mapping")
        return NetworkSpec(
            name=name,
            internal=_as_bool(config.get('internal')),
            driver=_scalar(config.get('driver')),
        )

    def _environment(self, env: Any, where: str) -> List[str]:
        """Canonicalize environment into an ordered KEY=VALUE list"""
        if env is None:
            return []
        if isinstance(env, dict):
            return [f"{key}={'' if value is None else _scalar(value)}" for key, value in env.items()]
        if isinstance(env, list):
            return [str(entry) for entry in env if entry is not None]
        raise ParseError(f"'environment' of {where} must be a mapping or a list")

    def _port(self, port: Any, where: str) -> str:
        """Normalize short or long port syntax to "[ip:]host:container[/proto]" """
        if isinstance(port, dict):
            target = port.get('target')
            if target is None:
                raise ParseError(f"Long-syntax port of {where} is missing 'target'")
            binding = str(target)
            published = port.get('published')
            if published is not None:
                binding = f"{published}:{binding}"
                if port.get('host_ip'):
                    binding = f"{port['host_ip']}:{binding}"
            if port.get('protocol'):
                binding = f"{binding}/{port['protocol']}"
            return binding
        if isinstance(port, (str, int)):
            return str(port)
        raise ParseError(f"Unsupported port entry in {where}: {port!r}")

    def _resource_limits(self, deploy: Any, where: str) -> Optional[ResourceLimits]:
        if deploy is None:
            return None
        if not isinstance(deploy, dict):
            raise ParseError(f"'deploy' of {where} must be a mapping")
        resources = deploy.get('resources') or {}
        if not isinstance(resources, dict):
            raise ParseError(f"'deploy.resources' of {where} must be a mapping")
        limits = resources.get('limits')
        if limits is None:
            return None
        if not isinstance(limits, dict):
            raise ParseError(f"'deploy.resources.limits' of {where} must be a mapping")
        return ResourceLimits(
            memory=_scalar(limits.get('memory')),
            cpus=_scalar(limits.get('cpus')),
        )

    def _secret_refs(self, secrets: Any, where: str) -> List[str]:
        refs = []
        for ref in self._list(secrets, 'secrets', where):
            if isinstance(ref, dict):
                if ref.get('source'):
                    refs.append(str(ref['source']))
            else:
                refs.append(str(ref))
        return refs

    def _service_networks(self, networks: Any, where: str) -> List[str]:
        if networks is None:
            return []
        if isinstance(networks, dict):
            return [str(name) for name in networks]
        if isinstance(networks, list):
            return [str(name) for name in networks]
        raise ParseError(f"'networks' of {where} must be a mapping or a list")

    def _list(self, value: Any, key: str, where: str) -> list:
        if value is None:
            return []
        if isinstance(value, list):
            return value
        if isinstance(value, str) and key in ('cap_add', 'cap_drop', 'security_opt', 'expose'):
            # single value written without list brackets
            return [value]
        raise ParseError(f"'{key}' of {where} must be a list")

    def _mapping(self, value: Any, key: str) -> Dict[Any, Any]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ParseError(f"Top-level '{key}' must be a mapping")
        return value

    def _names(self, value: Any, key: str) -> List[str]:
        if value is None:
            return []
        if isinstance(value, dict):
            return [str(name) for name in value]
        if isinstance(value, list):
            return [str(name) for name in value]
        raise ParseError(f"Top-level '{key}' must be a mapping")


def _scalar(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == 'true'
    return value is True


def _capability(cap: Any) -> str:
    token = str(cap).strip().upper()
    if token.startswith('CAP_'):
        token = token[4:]
    return token


_default_parser = ComposeParser()


def parse(text: str) -> Manifest:
    """Parse compose text into a Manifest, raising ParseError when malformed"""
    return _default_parser.parse(text)
