"""Running instances under HyperKit."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

LEGACY_VPNKIT_SOCK = "Library/Containers/com.docker.docker/Data/s50"
DEFAULT_VPNKIT_SOCK = "Library/Containers/com.docker.docker/Data/vpnkit.eth.sock"

DEFAULT_HYPERKITS = (
    "hyperkit",
    "com.docker.hyperkit",
    "/usr/local/bin/hyperkit",
    "/Applications/Docker.app/Contents/Resources/bin/hyperkit",
    "/Applications/Docker.app/Contents/MacOS/com.docker.hyperkit",
)


@dataclass
class VMConfig:
    name: str = ""
    dir: str = ""
    image: str = ""
    vmlinuz_path: str = ""
    cmd: str = ""
    memory: int = 0
    cpus: int = 0
    networking: str = ""
    bridge: str = ""
    instance_dir: str = ""
    config_file: str = ""
    mac: str = ""

    def vm_arguments(self) -> list[str]:
        """Return the HyperKit command-line arguments for this instance."""
        args = [
            "-A",  # ACPI
            "-x",  # x2APIC
            "-c", str(self.cpus),
            "-m", f"{self.memory}M",
            "-f", f"kexec,{self.vmlinuz_path},,{self.cmd}",
            "-l", "com1,stdio",
            "-s", "0:0,hostbridge",
            "-s", "31,lpc",
        ]
        slot = 1
        args += ["-s", f"{slot}:0,virtio-blk,{self.image}"]
        slot += 1

        if self.networking == "vpnkit":
            sock_path = vpn_socket_path("auto")
            args += ["-s", f"{slot}:0,virtio-vpnkit,path={sock_path}"]
            slot += 1
            vsock_dir = os.path.join(self.instance_dir, "vsockState")
            try:
                os.makedirs(vsock_dir, mode=0o775, exist_ok=True)
            except OSError as err:
                raise OSError(f"{vsock_dir}: failed to create vstate dir") from err
            args += ["-s", f"{slot},virtio-sock,guest_cid=3,path={vsock_dir}"]
            slot += 1
        elif self.networking == "vnet":
            args += ["-s", f"{slot}:0,virtio-net"]
            slot += 1
        return args


def _home() -> str:
    try:
        return str(Path.home())
    except RuntimeError:
        return os.environ.get("HOME", "")


def vpn_socket_path(vpnkitsock: str) -> str:
    """Resolve the VPNKit socket; 'auto' looks in the Docker data directory."""
    if vpnkitsock == "auto":
        vpnkitsock = os.path.join(_home(), DEFAULT_VPNKIT_SOCK)
        if not os.path.exists(vpnkitsock):
            vpnkitsock = os.path.join(_home(), LEGACY_VPNKIT_SOCK)
    if not vpnkitsock:
        return ""
    vpnkitsock = os.path.normpath(vpnkitsock)
    os.stat(vpnkitsock)
    return vpnkitsock


def hyperkit_executable() -> str:
    """Return the path of HyperKit; CAPSTAN_HYPERKIT_PATH is tried first."""
    paths = list(DEFAULT_HYPERKITS)
    override = os.environ.get("CAPSTAN_HYPERKIT_PATH", "")
    if override:
        paths.insert(0, override)
    for path in paths:
        if os.path.exists(path):
            return path
    raise FileNotFoundError(
        "No HYPERKIT installation found. Use the CAPSTAN_HYPERKIT_PATH "
        "environment variable to specify its path."
    )


def launch_vm(config: VMConfig, verbose: bool = False, *args: str) -> subprocess.Popen:
    """Start HyperKit for the instance and return the running process."""
    arguments = config.vm_arguments() + list(args)
    path = hyperkit_executable()
    if verbose:
        line = f"Invoking HYPERKIT at: {path} with arguments:"
        for arg in arguments:
            line += f"\n  {arg}" if arg.startswith("-") else f" {arg}"
        print(line)
    # The child inherits this process's standard input.
    return subprocess.Popen([path, *arguments])