"""Runtime settings shared by every runtime and boot command assembly."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from capstan.nat import Rule


class RuntimeType(str, Enum):
    NATIVE = "native"
    NODEJS = "node"
    JAVA = "java"
    PYTHON = "python"


SUPPORTED_RUNTIMES = (
    RuntimeType.NATIVE,
    RuntimeType.NODEJS,
    RuntimeType.JAVA,
    RuntimeType.PYTHON,
)


@dataclass
class RunConfig:
    """Settings for running an instance."""

    instance_name: str = ""
    verbose: bool = False
    gce_upload_dir: str = ""
    cmd: str = ""
    persist: bool = False
    hypervisor: str = ""
    image_name: str = ""
    volumes: list[str] = field(default_factory=list)
    memory: str = ""
    cpus: int = 0
    networking: str = ""
    bridge: str = ""
    nat_rules: list[Rule] = field(default_factory=list)
    mac: str = ""


_COMMON_TEMPLATE = """
# OPTIONAL
# Environment variables.
# A map of environment variables to be set when unikernel is run.
# Example value:  env:
#                    PORT: 8000
#                    HOSTNAME: www.myserver.org
env:
   <key>: <value>

# OPTIONAL
# Configuration to contextualize.
base: "<package-name>:<config_set>"
"""


def _as_text(value: Any, key: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValueError(f"'{key}' must be a scalar value")


def _as_text_map(value: Any, key: str) -> dict[str, str]:
    if value is None or value == "":
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"'{key}' must be a mapping")
    return {_as_text(k, key): _as_text(v, key) for k, v in value.items()}


@dataclass
class CommonRuntime:
    """Fields common to all runtimes, set separately for each configuration set."""

    env: dict[str, str] = field(default_factory=dict)
    base: str = ""

    @classmethod
    def _common_fields(cls, data: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "env": _as_text_map(data.get("env"), "env"),
            "base": _as_text(data.get("base"), "base"),
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> CommonRuntime:
        """Build the runtime from one configuration set read out of YAML."""
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ValueError("configuration set must be a mapping")
        return cls(**cls._common_fields(data))

    def set_default_env(self, env: Mapping[str, str]) -> list[str]:
        """Set non-empty values for keys not yet present; return the keys set."""
        updated = []
        for key, value in env.items():
            if value == "":
                continue
            if key not in self.env:
                self.env[key] = value
                updated.append(key)
        return updated

    def get_yaml_template(self) -> str:
        return _COMMON_TEMPLATE

    def validate(self) -> None:
        """Raise ValueError if the environment or base is malformed."""
        for key, value in self.env.items():
            if " " in key or " " in value:
                raise ValueError(
                    f"spaces not allowed in env key/value: '{key}':'{value}'"
                )
        if self.base and ":" not in self.base:
            raise ValueError("'base' must be in format <pkg_name>:<config_set>")

    def build_boot_cmd(
        self, boot_cmd: str, cmd_confs: Mapping[str, Any], env: Mapping[str, str]
    ) -> str:
        """Equip a runtime-specific boot command with the common parts.

        Values already present in ``env`` take precedence over this runtime's own.
        """
        merged = dict(env)
        for key, value in self.env.items():
            merged.setdefault(key, value)
        if self.base:
            return self._inherit_boot_cmd(cmd_confs, merged)
        return prepend_envs_prefix(boot_cmd, merged, True)

    def _inherit_boot_cmd(
        self, cmd_confs: Mapping[str, Any], env: dict[str, str]
    ) -> str:
        pkg_name, config_set = parse_base(self.base)
        cmd_conf = cmd_confs.get(pkg_name)
        if cmd_conf is None:
            raise ValueError(
                f"Failed to inherit from '{pkg_name}': package not included "
                "or has no meta/run.yaml"
            )
        if config_set not in cmd_conf.config_sets:
            raise ValueError(
                f"Failed to inherit '{pkg_name}:{config_set}': config_set does not exist"
            )
        original = cmd_conf.config_sets[config_set]
        return original.get_boot_cmd(cmd_confs, env)


def prepend_envs_prefix(cmd: str, env: Mapping[str, str], soft: bool) -> str:
    """Prefix ``cmd`` with '--env=KEY=VALUE ' for every pair in ``env``.

    With ``soft`` the '?=' operator is used, which only sets unset variables.
    """
    operator = "?=" if soft else "="
    prefix = "".join(f"--env={k}{operator}{v} " for k, v in env.items())
    return prefix + cmd


def boot_cmd_for_script(boot_names: Iterable[str]) -> str:
    """Return the boot command running the named configuration sets in turn."""
    return "".join(f"runscript /run/{name.strip()};" for name in boot_names)


def parse_base(base: str) -> tuple[str, str]:
    """Split '<pkg_name>:<config_set>' into its two parts."""
    pkg_name, sep, config_set = base.partition(":")
    if not sep:
        raise ValueError("'base' must be in format <pkg_name>:<config_set>")
    return pkg_name, config_set


def is_compatible_base(base: str, patterns: Iterable[str]) -> bool:
    """Tell whether the package named by ``base`` behaves like the default base.

    An empty base is always compatible.
    """
    if not base:
        return True
    pkg_name, _ = parse_base(base)
    return any(re.search(pattern, pkg_name) for pattern in patterns)