"""Running instances under QEMU."""

from __future__ import annotations

import os
import random
import re
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from capstan.nat import Rule
from capstan.volume import parse_volumes

_VERSION_RE = re.compile(r"QEMU.*emulator version (\d+)\.(\d+)(\.)?(\d?)?")
_MAC_RE = re.compile(r"[0-9A-Fa-f]{2}([:-])(?:[0-9A-Fa-f]{2}\1){4}[0-9A-Fa-f]{2}\Z")

_QEMU_PATHS = (
    "/usr/bin/qemu-system-x86_64",
    "/usr/libexec/qemu-kvm",
    "/usr/local/bin/qemu-system-x86_64",
)
_BRIDGE_HELPER_DIRS = ("/usr/libexec", "/usr/lib/qemu", "/usr/lib")


class QemuError(RuntimeError):
    """Raised when a QEMU tool fails."""


@dataclass(frozen=True)
class Version:
    major: int
    minor: int
    patch: int = 0


@dataclass
class VMConfig:
    name: str = ""
    verbose: bool = False
    cmd: str = ""
    disable_kvm: bool = False
    persist: bool = False
    instance_dir: str = ""
    monitor: str = ""
    config_file: str = ""
    aio_type: str = ""
    image: str = ""
    backing_file: bool = False
    volumes: list[str] = field(default_factory=list)
    memory: int = 0
    cpus: int = 0
    networking: str = ""
    bridge: str = ""
    nat_rules: list[Rule] = field(default_factory=list)
    mac: str = ""
    vnc_file: str = ""

    def validate_vm_arguments(self, version: Version) -> None:
        """Raise ValueError if the settings cannot be passed to QEMU."""
        if self.aio_type not in ("native", "threads"):
            raise ValueError(f"aio type must be [native|threads], got: {self.aio_type}")

    def vm_arguments(self, version: Version) -> list[str]:
        """Return the QEMU command-line arguments for this instance."""
        try:
            self.validate_vm_arguments(version)
        except ValueError as err:
            raise ValueError(f"argument validation failed: {err}") from err

        args = [
            "-vnc", "unix:" + self.vnc_file,
            "-m", str(self.memory),
            "-smp", str(self.cpus),
            "-device", "virtio-blk-pci,id=blk0,bootindex=0,drive=hd0",
            "-drive",
            f"file={self.image},if=none,id=hd0,aio={self.aio_type},cache={self._drive_cache()}",
        ]
        if version.major >= 1 and version.minor >= 3:
            args += ["-device", "virtio-rng-pci"]
        args += ["-chardev", "stdio,mux=on,id=stdio,signal=off"]
        args += ["-device", "isa-serial,chardev=stdio"]

        for boot_index, volume in enumerate(parse_volumes(self.volumes), start=1):
            drive_id = f"hd{boot_index}"
            device_id = f"blk{boot_index}"
            args += [
                "-drive",
                f"file={volume.path},if=none,id={drive_id},aio={volume.aio_type},"
                f"cache={volume.cache},format={volume.format}",
                "-device",
                f"virtio-blk-pci,id={device_id},bootindex={boot_index},drive={drive_id}",
            ]

        args += self.vm_networking()
        monitor = f"socket,id=charmonitor,path={self.monitor},server=on,wait=off"
        args += ["-chardev", monitor, "-mon", "chardev=charmonitor,id=monitor,mode=control"]
        if not self.disable_kvm and sys.platform.startswith("linux") and _check_kvm():
            args += ["-enable-kvm", "-cpu", "host,+x2apic"]
        if sys.platform == "darwin":
            if _check_haxm():
                args += ["-accel", "hax"]
            else:
                print(
                    "Running QEMU without acceleration: please install Intel HAXM "
                    "from https://github.com/intel/haxm/releases"
                )
        return args

    def vm_networking(self) -> list[str]:
        """Return the networking arguments for the configured mode."""
        if self.networking == "bridge":
            mac = self._vm_mac()
            helper = qemu_bridge_helper()
            return [
                "-netdev", f"bridge,id=hn0,br={self.bridge},helper={helper}",
                "-device", f"virtio-net-pci,netdev=hn0,id=nic1,mac={mac}",
            ]
        if self.networking == "nat":
            netdev = "user,id=un0,net=192.168.122.0/24,host=192.168.122.1"
            netdev += "".join(
                f",hostfwd=tcp::{rule.host_port}-:{rule.guest_port}" for rule in self.nat_rules
            )
            return ["-netdev", netdev, "-device", "virtio-net-pci,netdev=un0"]
        if self.networking == "tap":
            mac = self._vm_mac()
            return [
                "-netdev", f"tap,id=hn0,ifname={self.bridge},script=no,downscript=no",
                "-device", f"virtio-net-pci,netdev=hn0,id=nic1,mac={mac}",
            ]
        if self.networking == "vhost":
            mac = self._vm_mac()
            return [
                "-net", f"nic,model=virtio,macaddr={mac},netdev=nic-0",
                "-netdev", "tap,id=nic-0,vhost=on",
            ]
        raise ValueError(f"{self.networking}: networking not supported")

    def _vm_mac(self) -> str:
        if self.mac:
            return _parse_mac(self.mac)
        return generate_mac()

    def _drive_cache(self) -> str:
        return "none" if _direct_io_supported(self.image) else "unsafe"


def _parse_mac(text: str) -> str:
    if not _MAC_RE.match(text):
        raise ValueError(f"address {text}: invalid MAC address")
    return re.sub("-", ":", text).lower()


def generate_mac() -> str:
    """Return a random MAC address in the QEMU/KVM range."""
    tail = (random.randint(0, 255) for _ in range(3))
    return "52:54:00:" + ":".join(f"{octet:02x}" for octet in tail)


def _direct_io_supported(path: str) -> bool:
    flag = getattr(os, "O_DIRECT", None)
    if flag is None or not path:
        return False
    try:
        fd = os.open(path, os.O_RDONLY | flag)
    except OSError:
        return False
    os.close(fd)
    return True


def _check_kvm() -> bool:
    try:
        fd = os.open("/dev/kvm", os.O_RDWR)
    except OSError:
        return False
    os.close(fd)
    return True


def _check_haxm() -> bool:
    try:
        result = subprocess.run(
            ["kextstat", "-l", "-b", "com.intel.kext.intelhaxm"],
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return False
    return "com.intel.kext.intelhaxm" in result.stdout


def parse_version(text: str) -> Version:
    """Extract the QEMU version from the output of 'qemu -version'."""
    match = _VERSION_RE.search(text)
    if match is None:
        raise ValueError(f"unable to parse QEMU version from '{text}'")
    patch = match.group(4)
    return Version(
        major=int(match.group(1)),
        minor=int(match.group(2)),
        patch=int(patch) if patch else 0,
    )


def probe_version() -> Version:
    """Ask the installed QEMU for its version."""
    path = qemu_executable()
    result = subprocess.run([path, "-version"], capture_output=True, text=True, check=True)
    return parse_version(result.stdout)


def qemu_executable() -> str:
    """Return the path of the QEMU binary; CAPSTAN_QEMU_PATH is tried first."""
    paths = list(_QEMU_PATHS)
    override = os.environ.get("CAPSTAN_QEMU_PATH", "")
    if override:
        paths.insert(0, override)
    for path in paths:
        if os.path.exists(path):
            return path
    raise FileNotFoundError(
        "No QEMU installation found. Use the CAPSTAN_QEMU_PATH environment "
        "variable to specify its path."
    )


def qemu_bridge_helper() -> str:
    """Return the path of qemu-bridge-helper; CAPSTAN_QEMU_BRIDGE_HELPER is tried first."""
    override = os.environ.get("CAPSTAN_QEMU_BRIDGE_HELPER", "")
    if override and os.path.exists(override):
        return override
    for directory in _BRIDGE_HELPER_DIRS:
        helper = os.path.join(directory, "qemu-bridge-helper")
        if os.path.exists(helper):
            return helper
    raise FileNotFoundError(
        "No QEMU bridge helper (qemu-bridge-helper) found. Use "
        "CAPSTAN_QEMU_BRIDGE_HELPER to set the path to qemu-bridge-helper."
    )


def create_volume(path: str | Path, fmt: str, size_mb: int) -> None:
    """Create an empty volume of ``size_mb`` megabytes with qemu-img."""
    if os.path.exists(path):
        raise FileExistsError("Volume already exists")
    command = ["qemu-img", "create", "-f", fmt, str(path), f"{size_mb}M"]
    try:
        result = subprocess.run(command, capture_output=True, text=True)
    except OSError as err:
        raise QemuError(str(err)) from err
    if result.returncode != 0:
        raise QemuError(f"{result.stdout}{result.stderr}\nexit status {result.returncode}")


def store_config(config: VMConfig) -> None:
    """Write the instance configuration to its config file as YAML."""
    data = {
        "name": config.name,
        "verbose": config.verbose,
        "cmd": config.cmd,
        "disablekvm": config.disable_kvm,
        "persist": config.persist,
        "instancedir": config.instance_dir,
        "monitor": config.monitor,
        "configfile": config.config_file,
        "aiotype": config.aio_type,
        "image": config.image,
        "backingfile": config.backing_file,
        "volumes": list(config.volumes),
        "memory": config.memory,
        "cpus": config.cpus,
        "networking": config.networking,
        "bridge": config.bridge,
        "natrules": [
            {"hostport": rule.host_port, "guestport": rule.guest_port}
            for rule in config.nat_rules
        ],
        "mac": config.mac,
        "vncfile": config.vnc_file,
    }
    text = yaml.safe_dump(data, sort_keys=False, default_flow_style=False)
    Path(config.config_file).write_text(text, encoding="utf-8")


def load_config(path: str | Path) -> VMConfig:
    """Read an instance configuration written by store_config."""
    doc: Any = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(doc, dict):
        raise ValueError(f"{path}: configuration must be a mapping")

    def text(key: str) -> str:
        value = doc.get(key)
        return "" if value is None else str(value)

    return VMConfig(
        name=text("name"),
        verbose=bool(doc.get("verbose", False)),
        cmd=text("cmd"),
        disable_kvm=bool(doc.get("disablekvm", False)),
        persist=bool(doc.get("persist", False)),
        instance_dir=text("instancedir"),
        monitor=text("monitor"),
        config_file=text("configfile"),
        aio_type=text("aiotype"),
        image=text("image"),
        backing_file=bool(doc.get("backingfile", False)),
        volumes=[str(v) for v in doc.get("volumes") or []],
        memory=int(doc.get("memory") or 0),
        cpus=int(doc.get("cpus") or 0),
        networking=text("networking"),
        bridge=text("bridge"),
        nat_rules=[
            Rule(host_port=str(r.get("hostport", "")), guest_port=str(r.get("guestport", "")))
            for r in doc.get("natrules") or []
        ],
        mac=text("mac"),
        vnc_file=text("vncfile"),
    )