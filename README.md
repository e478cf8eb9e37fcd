# capstan

A library for packaging and running OSv unikernels. It reads the files that
describe an application package, works out the boot command a unikernel
should run, recognises disk image formats and builds the command lines used
to start a virtual machine under QEMU or HyperKit.

## What it covers

- **Package manifests** (`capstan.manifest`): `parse_package` and
  `parse_package_manifest` read `meta/package.yaml` into a `Package`
  (name, title and author are required); `parse_package_manifest_or_default`
  returns a default package when the file is missing. Creation times are
  `capstan.yamltime.YamlTime` values; `parse_yaml_time` accepts RFC 3339 and
  `YYYY-MM-DD HH:MM`, and anything else prints as `N/A`.
- **Capstanfile templates** (`capstan.template`): `parse_template`,
  `read_template_file` and `is_template_file`, plus `RpmPackage`, which
  builds an RPM's file name and download URL and fetches it with `curl`.
- **Ignore rules** (`capstan.capstanignore`): `capstanignore_init` loads a
  `.capstanignore` file and always ignores `/meta/*`, `/.git` and similar
  paths; `Capstanignore.is_ignored` tells whether a path is excluded.
- **Hash cache** (`capstan.hashcache`): `HashCache` maps file paths to hashes
  and is read with `parse_hash_cache` and written with `write_to_file`.
- **Run configurations** (`capstan.runconfig`): `parse_package_run_manifest_data`
  parses `meta/run.yaml` into a `CmdConfig` whose config sets are
  `NativeRuntime`, `JavaRuntime`, `NodeJsRuntime` or `PythonRuntime`
  objects (`capstan.runtimes`). `AllCmdConfigs.persist` validates every
  config set and writes one boot command file per set into `<dir>/run`.
  Shared helpers such as `prepend_envs_prefix` and `boot_cmd_for_script`
  live in `capstan.runtime_base`.
- **Image probing** (`capstan.imageformat`): `probe` tells QCOW2, VDI, VMDK,
  gzip (GCE) tarballs, `gs://` paths and raw images apart.
- **Volumes and port forwarding** (`capstan.volume`, `capstan.nat`):
  `parse_volumes` understands `path[:format=..][:aio=..][:cache=..]`, and
  `parse_rules` turns `host:guest` strings into `Rule` objects.
- **cpio headers** (`capstan.cpio`): `to_wire_format` builds a newc header
  and `write_padded` writes data padded to four bytes.
- **Hypervisors** (`capstan.qemu`, `capstan.hyperkit`): `VMConfig.vm_arguments`
  builds the full argument list; `capstan.qemu.parse_version` reads QEMU's
  version banner, `create_volume` makes a volume with `qemu-img`, and
  `capstan.hyperkit.launch_vm` starts HyperKit. `capstan.hostdefaults.default_hypervisor`
  names the default hypervisor for a host system.
- **OpenStack** (`capstan.openstack`): `select_best_flavor` picks the flavor
  with the smallest disk, then the smallest memory; `auth_options_from_args`
  collects credentials from `OS_*` arguments.

## Example

```python
from capstan.runconfig import parse_package_run_manifest_data

data = b"""
runtime: node
config_set:
  default:
    main: /server.js
"""

config = parse_package_run_manifest_data(data)
runtime = config.select_config_set("default")
runtime.validate()
```

```python
from capstan.qemu import parse_version

version = parse_version("QEMU emulator version 1.6.2")
print(version.major, version.minor, version.patch)  # 1 6 2
```

## What it does not do

There is no command-line tool; everything is used as a library. The package
does not manage instances once started (no stopping, deleting or listing),
does not start QEMU itself (it only builds the argument list), and has no
support for VirtualBox, VMware or Google Compute Engine instances. For
OpenStack it only chooses flavors and gathers credentials; it does not talk
to an OpenStack service.

## Requirements

Python 3.10 or later and PyYAML. Running virtual machines needs the matching
hypervisor installed; set `CAPSTAN_QEMU_PATH`, `CAPSTAN_QEMU_BRIDGE_HELPER`
or `CAPSTAN_HYPERKIT_PATH` when it lives outside the usual locations.