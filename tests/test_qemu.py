import pytest

from capstan.nat import Rule
from capstan.qemu import (
    QemuError,
    Version,
    VMConfig,
    create_volume,
    generate_mac,
    load_config,
    parse_version,
    qemu_bridge_helper,
    qemu_executable,
    store_config,
)


def _windows(seq, size):
    return [seq[i : i + size] for i in range(len(seq) - size + 1)]


def _with_defaults(config):
    config = VMConfig(**{**config.__dict__, "disable_kvm": True})
    if not config.networking:
        config.networking = "nat"
    if not config.aio_type:
        config.aio_type = "threads"
    return config


@pytest.mark.parametrize(
    "text, expected",
    [
        ("QEMU emulator version 1.0 (qemu-kvm-1.0)", Version(1, 0, 0)),
        ("QEMU emulator version 1.6.2", Version(1, 6, 2)),
        ("QEMU PC emulator version 0.12.1 (qemu-kvm-0.12.1.2)", Version(0, 12, 1)),
    ],
)
def test_parse_version(text, expected):
    assert parse_version(text) == expected


def test_parse_version_invalid():
    with pytest.raises(ValueError, match="unable to parse QEMU version"):
        parse_version("something else")


@pytest.mark.parametrize(
    "config, expected",
    [
        (
            VMConfig(),
            [
                "-vnc", "unix:",
                "-m", "0",
                "-smp", "0",
                "-device", "virtio-blk-pci,id=blk0,bootindex=0,drive=hd0",
                "-drive", "file=,if=none,id=hd0,aio=threads,cache=unsafe",
                "-device", "virtio-rng-pci",
                "-chardev", "stdio,mux=on,id=stdio,signal=off",
                "-device", "isa-serial,chardev=stdio",
                "-netdev", "user,id=un0,net=192.168.122.0/24,host=192.168.122.1",
                "-device", "virtio-net-pci,netdev=un0",
                "-chardev", "socket,id=charmonitor,path=,server=on,wait=off",
                "-mon", "chardev=charmonitor,id=monitor,mode=control",
            ],
        ),
        (
            VMConfig(volumes=["/path/vol1.img"]),
            [
                "-drive", "file=/path/vol1.img,if=none,id=hd1,aio=native,cache=none,format=raw",
                "-device", "virtio-blk-pci,id=blk1,bootindex=1,drive=hd1",
            ],
        ),
        (
            VMConfig(volumes=["/path/vol1.img:format=qcow2:aio=threads:cache=writethrough"]),
            [
                "-drive",
                "file=/path/vol1.img,if=none,id=hd1,aio=threads,cache=writethrough,format=qcow2",
                "-device", "virtio-blk-pci,id=blk1,bootindex=1,drive=hd1",
            ],
        ),
        (
            VMConfig(volumes=["/path/vol1.img", "/path/vol2.img"]),
            [
                "-drive", "file=/path/vol1.img,if=none,id=hd1,aio=native,cache=none,format=raw",
                "-device", "virtio-blk-pci,id=blk1,bootindex=1,drive=hd1",
                "-drive", "file=/path/vol2.img,if=none,id=hd2,aio=native,cache=none,format=raw",
                "-device", "virtio-blk-pci,id=blk2,bootindex=2,drive=hd2",
            ],
        ),
        (
            VMConfig(volumes=["/path/vol1.img:format=qcow2", "/path/vol2.img"]),
            [
                "-drive", "file=/path/vol1.img,if=none,id=hd1,aio=native,cache=none,format=qcow2",
                "-device", "virtio-blk-pci,id=blk1,bootindex=1,drive=hd1",
                "-drive", "file=/path/vol2.img,if=none,id=hd2,aio=native,cache=none,format=raw",
                "-device", "virtio-blk-pci,id=blk2,bootindex=2,drive=hd2",
            ],
        ),
        (
            VMConfig(aio_type="native"),
            [
                "-device", "virtio-blk-pci,id=blk0,bootindex=0,drive=hd0",
                "-drive", "file=,if=none,id=hd0,aio=native,cache=unsafe",
            ],
        ),
    ],
)
def test_vm_arguments(config, expected):
    args = _with_defaults(config).vm_arguments(Version(2, 5, 0))
    assert expected in _windows(args, len(expected))


def test_vm_arguments_old_version_has_no_rng():
    args = _with_defaults(VMConfig()).vm_arguments(Version(1, 2, 0))
    assert "virtio-rng-pci" not in args


def test_vm_arguments_rejects_bad_aio():
    config = _with_defaults(VMConfig(aio_type="bogus"))
    with pytest.raises(ValueError, match="argument validation failed: aio type must be"):
        config.vm_arguments(Version(2, 5, 0))


def test_vm_arguments_rejects_bad_volume():
    config = _with_defaults(VMConfig(volumes=["/path/vol1.img:illegal=value"]))
    with pytest.raises(ValueError, match="Unknown volume setting: 'illegal'"):
        config.vm_arguments(Version(2, 5, 0))


def test_nat_port_forwarding():
    config = VMConfig(networking="nat", nat_rules=[Rule("8080", "80")])
    args = config.vm_networking()
    assert args[1].endswith(",hostfwd=tcp::8080-:80")


def test_tap_networking_uses_given_mac():
    config = VMConfig(networking="tap", bridge="tap0", mac="52:54:00:AA:BB:CC")
    assert config.vm_networking() == [
        "-netdev", "tap,id=hn0,ifname=tap0,script=no,downscript=no",
        "-device", "virtio-net-pci,netdev=hn0,id=nic1,mac=52:54:00:aa:bb:cc",
    ]


def test_bridge_networking(tmp_path, monkeypatch):
    helper = tmp_path / "qemu-bridge-helper"
    helper.write_text("")
    monkeypatch.setenv("CAPSTAN_QEMU_BRIDGE_HELPER", str(helper))
    config = VMConfig(networking="bridge", bridge="virbr0", mac="52:54:00:aa:bb:cc")
    assert config.vm_networking()[:2] == [
        "-netdev",
        f"bridge,id=hn0,br=virbr0,helper={helper}",
    ]


def test_invalid_mac_rejected():
    config = VMConfig(networking="vhost", mac="not-a-mac")
    with pytest.raises(ValueError, match="invalid MAC address"):
        config.vm_networking()


def test_unsupported_networking():
    with pytest.raises(ValueError, match="foo: networking not supported"):
        VMConfig(networking="foo").vm_networking()


def test_generate_mac_format():
    mac = generate_mac()
    parts = mac.split(":")
    assert parts[:3] == ["52", "54", "00"]
    assert len(parts) == 6
    assert all(len(part) == 2 and part == part.lower() for part in parts)
    assert all(0 <= int(part, 16) <= 255 for part in parts)


def test_qemu_executable_from_env(tmp_path, monkeypatch):
    binary = tmp_path / "qemu"
    binary.write_text("")
    monkeypatch.setenv("CAPSTAN_QEMU_PATH", str(binary))
    assert qemu_executable() == str(binary)


def test_bridge_helper_from_env(tmp_path, monkeypatch):
    helper = tmp_path / "helper"
    helper.write_text("")
    monkeypatch.setenv("CAPSTAN_QEMU_BRIDGE_HELPER", str(helper))
    assert qemu_bridge_helper() == str(helper)


def test_create_volume_existing(tmp_path):
    path = tmp_path / "vol.img"
    path.write_bytes(b"")
    with pytest.raises(FileExistsError, match="Volume already exists"):
        create_volume(path, "raw", 10)


def test_create_volume_missing_tool(tmp_path, monkeypatch):
    monkeypatch.setenv("PATH", str(tmp_path))
    with pytest.raises(QemuError):
        create_volume(tmp_path / "vol.img", "raw", 10)


def test_config_round_trip(tmp_path):
    config = VMConfig(
        name="inst",
        cmd="/hello",
        config_file=str(tmp_path / "osv.config"),
        aio_type="native",
        image="/images/disk.qcow2",
        volumes=["/v.img"],
        memory=1024,
        cpus=2,
        networking="nat",
        nat_rules=[Rule("8080", "80")],
        mac="52:54:00:aa:bb:cc",
    )
    store_config(config)
    assert load_config(config.config_file) == config