"""Host capability probing for optional build tags.

Every probe is non-fatal: a missing tool, header, or library is a valid
outcome that simply leaves the corresponding capability disabled.
"""

from __future__ import annotations

import platform
import shlex
from dataclasses import dataclass, field
from pathlib import Path

from hackmake.config import BuildConfig
from hackmake.models import JournaldSupport, ProbeResults
from hackmake.process import CommandRunner, SubprocessRunner

BTRFS_VERSION_SOURCE = "#include <btrfs/version.h>\n"
LIBDM_DEFERRED_REMOVE_SOURCE = (
    "#include <libdevmapper.h>\nint main() { dm_task_deferred_remove(NULL); }\n"
)

# platform.machine() spellings mapped to GOARCH values.
MACHINE_TO_GOARCH: dict[str, str] = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "armv6l": "arm",
    "i386": "386",
    "i686": "386",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
}

PROBED_TOOLS = ("git", "go", "gcc", "pkg-config", "md5sum", "sha256sum")


def probe(tool: str, *, runner: CommandRunner | None = None) -> bool:
    """Return whether *tool* is available on the host."""
    return (runner or SubprocessRunner()).which(tool) is not None


@dataclass(slots=True)
class HostProber:
    runner: CommandRunner = field(default_factory=SubprocessRunner)
    include_root: Path = Path("/")

    def probe(self, tool: str) -> bool:
        return self.runner.which(tool) is not None

    def probe_all(self, config: BuildConfig) -> ProbeResults:
        host_os, host_arch, target_os, target_arch = self.go_platform()
        pkg_config = shlex.split(config.pkg_config) or ["pkg-config"]
        tools = {tool: self.probe(tool) for tool in (*PROBED_TOOLS, pkg_config[0])}
        return ProbeResults(
            host_os=host_os,
            host_arch=host_arch,
            target_os=target_os,
            target_arch=target_arch,
            journald=self.journald(pkg_config),
            btrfs_version_header=self.btrfs_version_header(),
            libdm_deferred_remove=self.libdm_deferred_remove(),
            go_test_cover=self.go_test_cover(),
            sqlite_in_usr_local=self.sqlite_in_usr_local(),
            tools=dict(sorted(tools.items())),
        )

    def journald(self, pkg_config: list[str]) -> JournaldSupport:
        if not self.probe(pkg_config[0]):
            return "none"
        if self.runner.run([*pkg_config, "--exists", "libsystemd >= 209"]).ok:
            return "modern"
        if self.runner.run([*pkg_config, "--exists", "libsystemd-journal"]).ok:
            return "compat"
        return "none"

    def btrfs_version_header(self) -> bool:
        # Without gcc we cannot tell, so keep the versioned btrfs code path.
        if not self.probe("gcc"):
            return True
        result = self.runner.run(
            ["gcc", "-E", "-", "-o", "/dev/null"],
            input=BTRFS_VERSION_SOURCE,
        )
        return result.ok

    def libdm_deferred_remove(self) -> bool:
        if not self.probe("gcc"):
            return True
        result = self.runner.run(
            ["gcc", "-xc", "-", "-o", "/dev/null", "-ldevmapper"],
            input=LIBDM_DEFERRED_REMOVE_SOURCE,
        )
        return result.ok

    def go_test_cover(self) -> bool:
        if not self.probe("go"):
            return False
        testflag = self.runner.run(["go", "help", "testflag"])
        if "-cover" not in testflag.stdout:
            return False
        return self.runner.run(["go", "tool", "-n", "cover"]).ok

    def sqlite_in_usr_local(self) -> bool:
        system_header = self.include_root / "usr" / "include" / "sqlite3.h"
        local_header = self.include_root / "usr" / "local" / "include" / "sqlite3.h"
        return not system_header.exists() and local_header.exists()

    def go_platform(self) -> tuple[str, str, str, str]:
        """Return ``(GOHOSTOS, GOHOSTARCH, GOOS, GOARCH)``."""
        if self.probe("go"):
            result = self.runner.run(["go", "env", "GOHOSTOS", "GOHOSTARCH", "GOOS", "GOARCH"])
            values = [line.strip() for line in result.stdout.splitlines()]
            if result.ok and len(values) == 4 and all(values):
                return values[0], values[1], values[2], values[3]
        host_os = platform.system().lower() or "linux"
        machine = platform.machine().lower()
        host_arch = MACHINE_TO_GOARCH.get(machine, machine or "amd64")
        return host_os, host_arch, host_os, host_arch


__all__ = ["HostProber", "MACHINE_TO_GOARCH", "probe"]
