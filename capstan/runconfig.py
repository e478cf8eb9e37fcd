"""Parsing of meta/run.yaml and persisting of the boot commands it describes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

import yaml

from capstan.runtime_base import RuntimeType
from capstan.runtimes import JavaRuntime, NativeRuntime, NodeJsRuntime, PythonRuntime

Runtime = Union[NativeRuntime, JavaRuntime, NodeJsRuntime, PythonRuntime]

_RUNTIMES: dict[RuntimeType, type] = {
    RuntimeType.NATIVE: NativeRuntime,
    RuntimeType.NODEJS: NodeJsRuntime,
    RuntimeType.JAVA: JavaRuntime,
    RuntimeType.PYTHON: PythonRuntime,
}


def _runtime_class(runtime_name: Any) -> type:
    name = "" if runtime_name is None else str(runtime_name)
    try:
        kind = RuntimeType(name)
    except ValueError:
        raise ValueError(f"Unknown runtime: '{name}'") from None
    return _RUNTIMES[kind]


def pick_runtime(runtime_name: Any) -> Runtime:
    """Return a blank runtime of the kind named by ``runtime_name``."""
    return _runtime_class(runtime_name)()


@dataclass
class CmdConfig:
    """What parsing one meta/run.yaml yields."""

    runtime_type: RuntimeType
    config_set_default: str = ""
    config_sets: dict[str, Runtime] = field(default_factory=dict)

    def select_config_set(self, name: str = "") -> Runtime:
        """Return the configuration set called ``name``.

        An empty name is accepted when there is exactly one configuration set.
        """
        available = "['" + "', '".join(self.config_sets) + "']"
        if not name:
            if len(self.config_sets) == 1:
                return next(iter(self.config_sets.values()))
            raise ValueError(
                "Could not select which configuration set to run:\n"
                "Neither --runconfig <name> is provided, nor config_set_default "
                "is set in meta/run.yaml\n"
                f"Available names: {available}"
            )
        runtime = self.config_sets.get(name)
        if runtime is None:
            raise ValueError(
                "Could not select which configuration set to run:\n"
                f"Configuration set name '{name}' not one of {available}"
            )
        return runtime


@dataclass
class AllCmdConfigs:
    """The run configurations of all required packages, in the order added."""

    cmd_configs: dict[str, CmdConfig | None] = field(default_factory=dict)
    order: list[str] = field(default_factory=list)

    def add(self, pkg_name: str, cmd_config: CmdConfig | None) -> None:
        self.cmd_configs[pkg_name] = cmd_config
        self.order.append(pkg_name)

    def persist(self, mpm_dir: str | Path) -> None:
        """Write a boot command file for every configuration set into <mpm_dir>/run."""
        target_dir = Path(mpm_dir) / "run"
        target_dir.mkdir(mode=0o775, parents=True, exist_ok=True)
        for pkg_name in self.order:
            cmd_conf = self.cmd_configs.get(pkg_name)
            if cmd_conf is None:
                continue
            for conf_name, conf in cmd_conf.config_sets.items():
                try:
                    conf.validate()
                except ValueError as err:
                    raise ValueError(
                        f"Validation failed for configuration set '{conf_name}': {err}"
                    ) from err
                boot_cmd = conf.get_boot_cmd(self.cmd_configs, {})
                cmd_file = target_dir / conf_name
                cmd_file.write_text(boot_cmd, encoding="utf-8")
                os.chmod(cmd_file, 0o700)


def _load_internal(data: bytes | str) -> dict[str, Any]:
    try:
        doc = yaml.safe_load(data)
    except yaml.YAMLError as err:
        raise ValueError(f"failed to parse meta/run.yaml: {err}") from err
    if doc is None:
        return {}
    if not isinstance(doc, Mapping):
        raise ValueError("failed to parse meta/run.yaml: document must be a mapping")
    config_sets = doc.get("config_set")
    if config_sets is None or config_sets == "":
        config_sets = {}
    if not isinstance(config_sets, Mapping):
        raise ValueError("failed to parse meta/run.yaml: 'config_set' must be a mapping")
    default = doc.get("config_set_default")
    return {
        "runtime": doc.get("runtime"),
        "config_set": config_sets,
        "config_set_default": "" if default is None else str(default),
    }


def package_run_manifest_general(cmd_config_file: str | Path) -> Runtime | None:
    """Return a blank runtime of the kind declared in a meta/run.yaml.

    Passing '.' means meta/run.yaml in the current directory. A missing file
    gives None, since packages need not have one.
    """
    if str(cmd_config_file) == ".":
        cmd_config_file = Path(".", "meta", "run.yaml")
    path = Path(cmd_config_file)
    if not path.exists():
        return None
    internal = _load_internal(path.read_bytes())
    runtime_name = internal["runtime"]
    print(f"Resolved runtime into: {'' if runtime_name is None else runtime_name}")
    return pick_runtime(runtime_name)


def parse_package_run_manifest_data(data: bytes | str) -> CmdConfig:
    """Parse the contents of a meta/run.yaml; at least one config_set is required."""
    internal = _load_internal(data)
    config_sets: dict[str, Runtime] = {}
    for name, subdata in internal["config_set"].items():
        runtime_cls = _runtime_class(internal["runtime"])
        try:
            config_sets[str(name)] = runtime_cls.from_mapping(subdata)
        except ValueError as err:
            raise ValueError(
                f"failed to parse data for configset '{name}': {err}"
            ) from err
    if not config_sets:
        raise ValueError(
            "failed to parse meta/run.yaml: at least one config_set must be provided"
        )
    return CmdConfig(
        runtime_type=RuntimeType(str(internal["runtime"])),
        config_set_default=internal["config_set_default"],
        config_sets=config_sets,
    )