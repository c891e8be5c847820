"""Core typed dataclasses for version metadata, probe results, and bundle runs."""

from __future__ import annotations

import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Literal

from hackmake.errors import BundleFailure

JournaldSupport = Literal["none", "modern", "compat"]
BundleStatus = Literal["succeeded", "failed", "skipped"]

DEFAULT_BUNDLES: tuple[str, ...] = (
    "binary-client",
    "binary-daemon",
    "dynbinary",
    "test-unit",
    "test-integration-cli",
    "test-docker-py",
    "cross",
    "tgz",
)


@dataclass(frozen=True, slots=True)
class VersionInfo:
    version: str
    commit: str
    dirty: bool = False
    build_time: str = ""
    dirty_files: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ProbeResults:
    host_os: str
    host_arch: str
    target_os: str
    target_arch: str
    journald: JournaldSupport = "none"
    btrfs_version_header: bool = True
    libdm_deferred_remove: bool = True
    go_test_cover: bool = False
    sqlite_in_usr_local: bool = False
    tools: Mapping[str, bool] = field(default_factory=dict)

    @property
    def cross_compiling(self) -> bool:
        return (self.target_os, self.target_arch) != (self.host_os, self.host_arch)


@dataclass(frozen=True, slots=True)
class BuildContext:
    """Immutable flag and metadata set handed to every bundle of a run."""

    version: str
    commit: str
    dirty: bool
    build_time: str
    build_tags: tuple[str, ...]
    orig_build_flags: tuple[str, ...]
    build_flags: tuple[str, ...]
    ldflags: tuple[str, ...]
    ldflags_static: tuple[str, ...]
    test_timeout: str
    host_os: str
    host_arch: str
    target_os: str
    target_arch: str
    have_go_test_cover: bool = False
    iamstatic: bool = True
    docker_pkg: str = "github.com/docker/docker"
    env: Mapping[str, str] = field(default_factory=dict)
    tools: Mapping[str, bool] = field(default_factory=dict)

    @property
    def tags_argument(self) -> str:
        """Value passed to ``go build -tags`` for static builds."""
        index = self.orig_build_flags.index("-tags")
        return self.orig_build_flags[index + 1]

    def linker_flags(self, *, static: bool) -> str:
        parts = list(self.ldflags)
        if static:
            parts.extend(self.ldflags_static)
        return " ".join(parts)

    def as_env(self) -> dict[str, str]:
        """Render the context as ambient configuration for sub-steps."""
        env = {
            "VERSION": self.version,
            "GITCOMMIT": self.commit,
            "BUILDTIME": self.build_time,
            "DOCKER_PKG": self.docker_pkg,
            "DOCKER_BUILDTAGS": " ".join(self.build_tags),
            "BUILDFLAGS": shlex.join(self.build_flags),
            "ORIG_BUILDFLAGS": shlex.join(self.orig_build_flags),
            "LDFLAGS": " ".join(self.ldflags),
            "LDFLAGS_STATIC_DOCKER": " ".join(self.ldflags_static),
            "TIMEOUT": self.test_timeout,
            "IAMSTATIC": "true" if self.iamstatic else "false",
            "HAVE_GO_TEST_COVER": "1" if self.have_go_test_cover else "",
        }
        env.update(self.env)
        return dict(sorted(env.items()))


@dataclass(frozen=True, slots=True)
class BundleOutcome:
    name: str
    dest: str
    status: BundleStatus
    artifacts: tuple[str, ...] = ()
    error: dict[str, object] | None = None


@dataclass(slots=True)
class DispatchResult:
    version_dir: str
    outcomes: list[BundleOutcome] = field(default_factory=list)
    failure: BundleFailure | None = None

    @property
    def exit_code(self) -> int:
        return 1 if self.failure is not None else 0

    @property
    def failed_bundle(self) -> str | None:
        return self.failure.bundle if self.failure is not None else None

    def names(self, status: BundleStatus | None = None) -> list[str]:
        return [o.name for o in self.outcomes if status is None or o.status == status]


__all__ = [
    "DEFAULT_BUNDLES",
    "BuildContext",
    "BundleOutcome",
    "BundleStatus",
    "DispatchResult",
    "JournaldSupport",
    "ProbeResults",
    "VersionInfo",
]
