"""
Engine profiles: immutable control tables and rule switches

A profile is injected into every evaluator at construction time, so engines
built from different profiles (a strict CI gate next to a lenient local run)
can coexist in one process.
"""

import re
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Tuple, Union
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError
from .parsing.models import ServiceSpec
from .scanning.models import SecretPattern

DANGEROUS_CAPABILITIES = frozenset({
    "SYS_ADMIN",
    "NET_ADMIN",
    "SYS_PTRACE",
    "SYS_MODULE",
    "DAC_READ_SEARCH",
    "SYS_RAWIO",
    "SYS_BOOT",
    "SYS_TIME",
    "MKNOD",
})

DATABASE_IMAGES = (
    "postgres",
    "mysql",
    "mariadb",
    "mongo",
    "redis",
    "elasticsearch",
    "memcached",
)

DATABASE_NAME_PATTERN = r"db|database|postgres|mysql|mongo|redis"

DATABASE_PORTS = frozenset({5432, 3306, 27017, 6379, 9200, 9300})

RuleSetting = Union[str, bool]


class EngineProfile(BaseModel):
    """Configuration shared by all evaluators of one engine"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(default="default", description="Profile name")
    rules: Dict[str, RuleSetting] = Field(default_factory=dict,
                                          description="Per-rule switches; 'off' or false disables a rule")
    dangerous_capabilities: FrozenSet[str] = Field(default=DANGEROUS_CAPABILITIES,
                                                   description="Capabilities that must not be added")
    database_images: Tuple[str, ...] = Field(default=DATABASE_IMAGES,
                                             description="Image name fragments that mark a database")
    database_name_pattern: str = Field(default=DATABASE_NAME_PATTERN,
                                       description="Service-name regex that marks a database")
    database_ports: FrozenSet[int] = Field(default=DATABASE_PORTS,
                                           description="Well-known database ports")
    builtin_patterns: bool = Field(default=True, description="Use the built-in secret patterns")
    custom_patterns: List[SecretPattern] = Field(default_factory=list,
                                                 description="Additional secret patterns")
    ignore_test_values: bool = Field(default=False,
                                     description="Suppress secret matches that look like test data")
    ignore_paths: List[str] = Field(default_factory=list,
                                    description="Globs skipped by directory scans")

    def is_rule_enabled(self, rule_id: str) -> bool:
        setting = self.rules.get(rule_id)
        if setting is False:
            return False
        return not (isinstance(setting, str) and setting.lower() == "off")

    def is_database(self, service: ServiceSpec) -> bool:
        """Classify a service as a database by image or by name"""
        image = (service.image or "").lower()
        if any(fragment in image for fragment in self.database_images):
            return True
        return re.search(self.database_name_pattern, service.name, re.IGNORECASE) is not None

    def with_rules(self, overrides: Dict[str, RuleSetting]) -> "EngineProfile":
        """Copy of this profile with extra rule switches"""
        rules = dict(self.rules)
        rules.update(overrides)
        return self.model_copy(update={"rules": rules})


DEFAULT_PROFILE = EngineProfile()

STRICT_PROFILE = EngineProfile(
    name="strict",
    dangerous_capabilities=DANGEROUS_CAPABILITIES | {"SYS_NICE", "SYS_RESOURCE", "NET_RAW", "AUDIT_CONTROL"},
)

LENIENT_PROFILE = EngineProfile(
    name="lenient",
    rules={
        "recommend-seccomp": "off",
        "recommend-read-only": "off",
        "recommend-network-segmentation": "off",
    },
    ignore_test_values=True,
)

PROFILES = {
    "default": DEFAULT_PROFILE,
    "strict": STRICT_PROFILE,
    "lenient": LENIENT_PROFILE,
}


def get_profile(name: str) -> EngineProfile:
    try:
        return PROFILES[name]
    except KeyError:
        raise ConfigError(f"Unknown profile '{name}'. Use: {', '.join(PROFILES)}") from None


def profile_from_dict(data: Optional[dict]) -> EngineProfile:
    """Build a profile from a mapping, optionally extending a named profile"""
    data = dict(data or {})
    base = get_profile(str(data.pop("extends", "default")))

    overrides = data.pop("rules", None) or {}
    if not isinstance(overrides, dict):
        raise ConfigError("Profile 'rules' must be a mapping of rule id to setting")

    merged = base.model_dump()
    rules = dict(base.rules)
    rules.update(overrides)
    merged.update(data)
    merged["rules"] = rules

    try:
        return EngineProfile(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid profile: {e}") from e


def load_profile(file_path: str) -> EngineProfile:
    """Load a profile from a YAML file"""
    path = Path(file_path)
    if not path.exists():
        raise ConfigError(f"Profile not found: {file_path}")

    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {file_path}: {e}") from e

    if data is not None and not isinstance(data, dict):
        raise ConfigError(f"Profile {file_path} must be a mapping")

    data = data or {}
    data.setdefault("name", path.stem)
    return profile_from_dict(data)
