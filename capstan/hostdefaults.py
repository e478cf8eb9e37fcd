"""Defaults that depend on the host operating system."""

from __future__ import annotations

import platform

_DEFAULT_HYPERVISORS = {
    "darwin": "vbox",
    "windows": "vbox",
    "linux": "qemu",
    "freebsd": "qemu",
}


def default_hypervisor(system: str | None = None) -> str:
    """Return the hypervisor used by default on ``system`` (the host if None)."""
    name = (system if system is not None else platform.system()).lower()
    try:
        return _DEFAULT_HYPERVISORS[name]
    except KeyError:
        raise ValueError(f"no default hypervisor for platform '{name}'") from None