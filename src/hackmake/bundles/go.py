"""Go binary bundles: static client/daemon builds and the dynamic variant."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from hackmake.artifacts import binary_extension, copy_binaries, hash_files
from hackmake.autogen import write_version_autogen
from hackmake.bundles.base import BundleRun, run_command
from hackmake.flags import dynamic_build_flags

CLIENT = ("docker", "./cmd/docker")
DAEMON = ("dockerd", "./cmd/dockerd")


def go_build(
    run: BundleRun,
    *,
    binary: str,
    source: str,
    dest: Path,
    target_os: str,
    flags: tuple[str, ...],
    static: bool,
    env: Mapping[str, str] | None = None,
) -> Path:
    """Compile *source* to ``dest/<binary>-<VERSION><ext>`` with a short symlink."""
    ext = binary_extension(target_os)
    full_name = f"{binary}-{run.context.version}{ext}"
    output = dest / full_name
    dest.mkdir(parents=True, exist_ok=True)
    run.log(f"Building: {output}", operation="go_build")
    command = (
        "go",
        "build",
        "-o",
        str(output),
        *flags,
        "-ldflags",
        run.context.linker_flags(static=static),
        source,
    )
    run_command(run, command, env=env)

    link = dest / f"{binary}{ext}"
    link.unlink(missing_ok=True)
    link.symlink_to(full_name)
    hash_files(output)
    run.artifacts.append(output)
    run.log(f"Created binary: {output}", operation="go_build")
    return output


@dataclass(slots=True)
class GoBinaryBundle:
    name: str
    binary: str
    source: str
    with_nested: bool = False

    def run(self, run: BundleRun) -> None:
        go_build(
            run,
            binary=self.binary,
            source=self.source,
            dest=run.dest,
            target_os=run.context.target_os,
            flags=run.context.build_flags,
            static=True,
        )
        if self.with_nested:
            for copied in copy_binaries(run.dest, run.context, with_hashes=True):
                run.artifacts.append(copied)
                run.log(f"Copied nested executable {copied.name}", operation="copy_binaries")


@dataclass(slots=True)
class DynBinaryBundle:
    """Dynamically linked client and daemon, built with ``IAmStatic=false``."""

    name: str = "dynbinary"

    def run(self, run: BundleRun) -> None:
        dynamic_context = dataclasses.replace(run.context, iamstatic=False)
        write_version_autogen(run.repo_root, dynamic_context)
        try:
            flags = dynamic_build_flags(run.context.build_flags)
            for binary, source in (CLIENT, DAEMON):
                go_build(
                    run,
                    binary=binary,
                    source=source,
                    dest=run.dest,
                    target_os=run.context.target_os,
                    flags=flags,
                    static=False,
                    env={"IAMSTATIC": "false"},
                )
        finally:
            write_version_autogen(run.repo_root, run.context)


__all__ = ["CLIENT", "DAEMON", "DynBinaryBundle", "GoBinaryBundle", "go_build"]
