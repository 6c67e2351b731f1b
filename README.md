# limavm

A library of building blocks for provisioning Lima virtual machines and the
container runtimes inside them: running commands on the host, storing settings
and reading file information in the guest, building and writing Lima
configuration, looking up disk images, cached downloads with SHA validation,
Docker daemon configuration and parsing Lima instance listings.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Modules

| Module | Contents |
| --- | --- |
| `limavm.environment` | `Arch`, `normalize_arch`, `host_arch`, `default_vm_type`, `is_none_runtime`; the `HostActions`, `GuestActions` and `Container` protocols; a container runtime registry (`register_container`, `new_container`, `container_runtimes`) |
| `limavm.host` | `HostEnv` for running commands and accessing files on the host, `CommandError`, `format_command_error`, `is_installed` / `DependencyError` |
| `limavm.terminal` | `VerboseWriter` (tails the last lines of command output on a terminal), `sanitize_line`, `clear_line` |
| `limavm.downloader` | `Request`, `Sha`, `download`, `download_to_guest`, `cache_filename`, `fetch_sha_from_url`, `DownloadError` |
| `limavm.debutil` | `upgradable_command`, `install_command`, `update_runtime` for apt packages in the guest |
| `limavm.limaconfig` | Lima configuration dataclasses (`Config`, `File`, `Mount`, `PortForward`, `Network`, `Provision`, ...) with `to_dict` / `from_dict`, and `write_yaml` |
| `limavm.vmconfig` | `check_overlapping_mounts`, `ingress_disabled`, `resolve_mount_type`, `default_port_forwards` |
| `limavm.guestfs` | `GuestSettings` (JSON key/value settings in the guest), `FileInfo`, `parse_stat`, `stat` |
| `limavm.docker` | `ProxyVars`, `proxy_env_vars`, `host_gateway_ip`, `create_daemon_file`, `add_host_gateway`, `reload_and_restart_systemd_service` |
| `limavm.images` | `load_images`, `find_image`, `DiskImageFile` |
| `limavm.instance` | `InstanceInfo`, `parse_instances`, `runtime_label`, `replace_ssh_config` |
| `limavm.macos` | macOS version, Apple chip and Rosetta detection |
| `limavm.util` | `home_dir`, `random_available_port`, `host_ip_addresses`, `shell_split`, `clean_path`, `assert_qemu_img` |
| `limavm.osutil` | `EnvVar`, `Socket`, `executable` |
| `limavm.shautil` | `sha256`, `sha1` returning a `Digest` whose `str()` is the hex digest |

Guest-side functions take any object with the methods they use
(`run`, `run_quiet`, `run_output`, `read`, `write`, ...), as described by the
`GuestActions` protocol.

## Examples

Running commands on the host; failures raise `CommandError`:

```python
from limavm.host import HostEnv, CommandError

host = HostEnv().with_env("LIMA_HOME=/tmp/lima")
try:
    print(host.run_output("uname", "-m"))
except CommandError as err:
    print(err)
```

Normalising architecture names:

```python
from limavm.environment import Arch, normalize_arch

assert normalize_arch("arm64") is Arch.AARCH64
assert Arch.X8664.go_arch() == "amd64"
```

Checking mounts and k3s flags; overlapping or relative mounts raise `ValueError`:

```python
from limavm.vmconfig import check_overlapping_mounts, ingress_disabled, resolve_mount_type

check_overlapping_mounts(["/Users/me/one", "/Users/me/two"])
assert ingress_disabled(["--disable", "traefik"])
assert resolve_mount_type("sshfs", "vz") == "reverse-sshfs"
```

Writing a Lima configuration:

```python
from limavm.limaconfig import Config, Mount, write_yaml
from limavm.vmconfig import default_port_forwards

conf = Config(
    mounts=[Mount(location="~", writable=True)],
    port_forwards=default_port_forwards(),
)
write_yaml(conf, "/tmp/lima.yaml")
```

Downloading into a cache directory; the file is fetched with `curl` only when
it is not cached yet:

```python
from limavm.downloader import Request, Sha, download
from limavm.host import HostEnv

request = Request(url="https://example.com/image.qcow2",
                  sha=Sha(url="https://example.com/SHA512SUMS", size=512))
path = download(HostEnv(), request, cache_dir="/tmp/cache")
```

Reading instance details from `limactl list --json` output:

```python
from limavm.host import HostEnv
from limavm.instance import parse_instances

output = HostEnv().run_output("limactl", "list", "--json")
for info in parse_instances(output):
    print(info.name, info.running())
```

## What this package does not do

- It has no command-line program; it is a library only.
- It does not create, start, stop or delete Lima instances itself, and has no
  concrete guest implementation: guest-side functions work on any object you
  pass that provides the `GuestActions` methods.
- No container runtimes are registered out of the box; the registry in
  `limavm.environment` is empty until you call `register_container`.
- It does not run background network or file-watching daemons, and does not
  persist its own configuration files beyond what `write_yaml`,
  `GuestSettings` and `create_daemon_file` write.