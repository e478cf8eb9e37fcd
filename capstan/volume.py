"""Volumes attached to an instance with --volume."""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import yaml

_ASSIGN_HINT = (
    "Please use '=' for assignment of volume settings. "
    "Example: --volume /vol.img:format=raw"
)


@dataclass
class Volume:
    path: str = ""
    format: str = "raw"  # raw|qcow2|...
    aio_type: str = "native"  # native|threads
    cache: str = "none"  # none|unsafe|writethrough...

    def persist_metadata(self) -> None:
        """Write the volume settings next to the volume as '<path>.yaml'."""
        settings = {"format": self.format, "aio": self.aio_type, "cache": self.cache}
        data = {key: value for key, value in settings.items() if value}
        text = yaml.safe_dump(data, sort_keys=False, default_flow_style=False)
        Path(f"{self.path}.yaml").write_text(text, encoding="utf-8")


def parse_volume(volume_str: str) -> Volume:
    """Parse '{path}[:{key}={value}...]' into a Volume."""
    path, *settings = volume_str.split(":")
    volume = Volume(path=os.path.abspath(path))
    for part in settings:
        if "=" not in part:
            raise ValueError(_ASSIGN_HINT)
        key, value = part.split("=", 1)
        key = key.lower()
        if key == "format":
            volume.format = value
        elif key == "aio":
            volume.aio_type = value
        elif key == "cache":
            volume.cache = value
        else:
            raise ValueError(f"Unknown volume setting: '{key}'")
    return volume


def parse_volumes(volume_strings: Iterable[str] | None) -> list[Volume]:
    """Parse every --volume string, keeping their order."""
    if volume_strings is None:
        return []
    return [parse_volume(text) for text in volume_strings]