"""Build tag and compiler/linker flag assembly."""

from __future__ import annotations

from hackmake.config import BuildConfig
from hackmake.errors import ConfigurationError
from hackmake.models import BuildContext, ProbeResults, VersionInfo

STATIC_BASE_TAGS: tuple[str, ...] = (
    "autogen",
    "netgo",
    "static_build",
    "sqlite_omit_load_extension",
)
DYNAMIC_DROPPED_TAGS: tuple[str, ...] = ("netgo", "static_build")
EXTLDFLAGS_STATIC = "-static"

DEFAULT_TIMEOUT = "5m"
TIMEOUT_BY_GOARCH: dict[str, str] = {
    "arm": "10m",
    "windows": "8m",
}


def build_tags(probe: ProbeResults, config: BuildConfig) -> tuple[str, ...]:
    tags = [*config.buildtags, "daemon"]
    if probe.journald == "modern":
        tags.append("journald")
    elif probe.journald == "compat":
        tags.extend(("journald", "journald_compat"))
    if not probe.btrfs_version_header:
        tags.append("btrfs_noversion")
    if not probe.libdm_deferred_remove:
        tags.append("libdm_no_deferred_remove")
    return tuple(dict.fromkeys(tags))


def assemble(probe: ProbeResults, version: VersionInfo, config: BuildConfig) -> BuildContext:
    """Combine probe output, version metadata, and overrides into a BuildContext."""
    if not version.version or not version.commit:
        raise ConfigurationError(
            "Version and commit must be resolved before bundles run.",
            context={"version": version.version, "commit": version.commit},
        )

    tags = build_tags(probe, config)
    orig_build_flags = (
        "-tags",
        " ".join((*STATIC_BASE_TAGS, *tags)),
        "-installsuffix",
        "netgo",
        "-i" if config.incremental_binary else "-a",
    )

    ldflags: list[str] = []
    if not config.debug:
        ldflags.append("-w")

    env: dict[str, str] = {}
    if probe.host_os == "freebsd":
        env["CC"] = "clang"
        ldflags.extend(("-extld", "clang"))
    if probe.sqlite_in_usr_local:
        env["CGO_CFLAGS"] = "-I/usr/local/include"
        env["CGO_LDFLAGS"] = "-L/usr/local/lib"

    return BuildContext(
        version=version.version,
        commit=version.commit,
        dirty=version.dirty,
        build_time=version.build_time,
        build_tags=tags,
        orig_build_flags=orig_build_flags,
        build_flags=(*config.buildflags, *orig_build_flags),
        ldflags=tuple(ldflags),
        ldflags_static=(f'-extldflags "{EXTLDFLAGS_STATIC}"',),
        test_timeout=resolve_timeout(config),
        host_os=probe.host_os,
        host_arch=probe.host_arch,
        target_os=probe.target_os,
        target_arch=probe.target_arch,
        have_go_test_cover=probe.go_test_cover,
        docker_pkg=config.docker_pkg,
        env=dict(sorted(env.items())),
        tools=dict(probe.tools),
    )


def resolve_timeout(config: BuildConfig) -> str:
    if config.timeout:
        return config.timeout
    return TIMEOUT_BY_GOARCH.get(config.engine_goarch or "", DEFAULT_TIMEOUT)


def dynamic_build_flags(flags: tuple[str, ...]) -> tuple[str, ...]:
    """Strip static-only tags from the ``-tags`` value of *flags*."""
    rewritten = list(flags)
    for index, flag in enumerate(rewritten[:-1]):
        if flag == "-tags":
            words = rewritten[index + 1].split()
            rewritten[index + 1] = " ".join(w for w in words if w not in DYNAMIC_DROPPED_TAGS)
    return tuple(rewritten)


__all__ = [
    "DEFAULT_TIMEOUT",
    "STATIC_BASE_TAGS",
    "assemble",
    "build_tags",
    "dynamic_build_flags",
    "resolve_timeout",
]
