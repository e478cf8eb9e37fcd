"""Capstanfile templates describing how to build a VM image."""

from __future__ import annotations

import os
import posixpath
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

RPM_BASE_URL = "http://kojipkgs.fedoraproject.org/packages/"


@dataclass
class RpmPackage:
    name: str = ""
    version: str = ""
    release: str = ""
    arch: str = ""

    def url(self) -> str:
        return (
            f"{RPM_BASE_URL}{self.name}/{self.version}/{self.release}/"
            f"{self.arch}/{self.filename()}"
        )

    def filename(self) -> str:
        return f"{self.name}-{self.version}-{self.release}.{self.arch}.rpm"

    def download(self) -> None:
        """Fetch the RPM into the current directory unless it is already there."""
        if not os.path.exists(self.filename()):
            print(f"Downloading {self.filename()}...")
            subprocess.run(["curl", "-O", self.url()], check=True, capture_output=True)


@dataclass
class Template:
    base: str = ""
    rpm_base: RpmPackage | None = None
    cmdline: str = ""
    build: str = ""
    files: dict[str, str] = field(default_factory=dict)
    rootfs: str = ""


def _text(doc: dict[str, Any], key: str) -> str:
    value = doc.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string")
    return value


def _mapping(value: Any, key: str) -> dict[str, Any]:
    if value is None or value == "":
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' must be a mapping")
    return value


def _base_name(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return posixpath.basename(stripped)


def parse_template(data: bytes | str) -> Template:
    """Parse a Capstanfile; 'cmdline' is required and 'rootfs' must exist if given."""
    doc = _mapping(yaml.load(data, Loader=yaml.BaseLoader), "template")
    rpm_doc = doc.get("rpm-base")
    rpm_base = None
    if rpm_doc not in (None, ""):
        rpm_map = _mapping(rpm_doc, "rpm-base")
        rpm_base = RpmPackage(
            name=_text(rpm_map, "name"),
            version=_text(rpm_map, "version"),
            release=_text(rpm_map, "release"),
            arch=_text(rpm_map, "arch"),
        )
    files = _mapping(doc.get("files"), "files")
    if not all(isinstance(v, str) for v in files.values()):
        raise ValueError("'files' must be a mapping of strings")
    template = Template(
        base=_text(doc, "base"),
        rpm_base=rpm_base,
        cmdline=_text(doc, "cmdline"),
        build=_text(doc, "build"),
        files=dict(files),
        rootfs=_text(doc, "rootfs"),
    )
    if not template.cmdline:
        raise ValueError('"cmdline" not found')
    if not template.rootfs:
        template.rootfs = "ROOTFS"
    elif not os.path.exists(template.rootfs):
        print(f"Capstanfile: rootfs: {template.rootfs} does not exist")
        raise FileNotFoundError(f"rootfs {template.rootfs} does not exist")
    return template


def read_template_file(filename: str | Path) -> Template:
    """Read a Capstanfile, replacing '&' in file sources with the target's base name."""
    template = parse_template(Path(filename).read_bytes())
    template.files = {
        target: source.replace("&", _base_name(target))
        for target, source in template.files.items()
    }
    return template


def is_template_file(filename: str | Path) -> bool:
    """Return True if ``filename`` holds a valid template."""
    try:
        read_template_file(filename)
    except (OSError, ValueError, yaml.YAMLError):
        return False
    return True