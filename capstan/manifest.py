"""Package manifests (meta/package.yaml) and image descriptions."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from capstan.yamltime import YamlTime, parse_yaml_time


@dataclass
class Image:
    name: str
    hypervisor: str


@dataclass
class Package:
    name: str
    title: str
    author: str = ""
    version: str = ""
    require: list[str] = field(default_factory=list)
    binary: dict[str, str] = field(default_factory=dict)
    created: YamlTime = field(default_factory=YamlTime)
    platform: str = ""

    def __str__(self) -> str:
        line = (
            f"{self.name:<50} {self.title:<50} {self.version:<15} "
            f"{str(self.created):<20} {self.platform:<15}"
        )
        return line.strip()


def _load_mapping(data: bytes | str) -> dict[str, Any]:
    doc = yaml.load(data, Loader=yaml.BaseLoader)
    if doc is None or doc == "":
        return {}
    if not isinstance(doc, dict):
        raise ValueError("package manifest must be a mapping")
    return doc


def _text(doc: dict[str, Any], key: str) -> str:
    value = doc.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string")
    return value


def _text_list(doc: dict[str, Any], key: str) -> list[str]:
    value = doc.get(key)
    if value is None or value == "":
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"'{key}' must be a list of strings")
    return list(value)


def _text_map(doc: dict[str, Any], key: str) -> dict[str, str]:
    value = doc.get(key)
    if value is None or value == "":
        return {}
    if not isinstance(value, dict) or not all(isinstance(v, str) for v in value.values()):
        raise ValueError(f"'{key}' must be a mapping of strings")
    return dict(value)


def parse_package(data: bytes | str) -> Package:
    """Parse a package manifest; name, title and author are required."""
    doc = _load_mapping(data)
    package = Package(
        name=_text(doc, "name"),
        title=_text(doc, "title"),
        author=_text(doc, "author"),
        version=_text(doc, "version"),
        require=_text_list(doc, "require"),
        binary=_text_map(doc, "binary"),
        created=parse_yaml_time(doc.get("created")),
        platform=_text(doc, "platform"),
    )
    if not package.name:
        raise ValueError("'name' must be provided for the package")
    if not package.title:
        raise ValueError("'title' must be provided for the package")
    if not package.author:
        raise ValueError("'author' must be provided for the package")
    return package


def parse_package_manifest(manifest_file: str | Path) -> Package:
    """Read and parse the manifest at ``manifest_file``."""
    if not os.path.exists(manifest_file):
        raise FileNotFoundError(f"Manifest file {manifest_file} does not exist")
    return parse_package(Path(manifest_file).read_bytes())


def parse_package_manifest_or_default(manifest_file: str | Path) -> Package:
    """Parse the manifest, or return a default package when the file is absent."""
    if not os.path.exists(manifest_file):
        print(f"Manifest file {manifest_file} does not exist. Assuming default manifest")
        return Package(
            name="App",
            title="App",
            author="Anonymous",
            created=YamlTime(datetime.now().astimezone()),
        )
    return parse_package_manifest(manifest_file)