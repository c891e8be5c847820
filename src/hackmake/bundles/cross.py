"""Cross-compilation and per-platform archive bundles."""

from __future__ import annotations

import tarfile
from dataclasses import dataclass
from pathlib import Path

from hackmake.artifacts import hash_files, is_sidecar
from hackmake.bundles.base import BundleRun
from hackmake.bundles.go import CLIENT, DAEMON, go_build
from hackmake.errors import BundleFailure

# Platforms for which the daemon is built alongside the client.
DAEMON_PLATFORMS: tuple[str, ...] = ("linux", "windows")


def parse_platform(bundle: str, platform: str) -> tuple[str, str]:
    goos, _, goarch = platform.partition("/")
    if not goos or not goarch or "/" in goarch:
        raise BundleFailure(
            "Invalid cross platform.",
            bundle=bundle,
            hint="Use os/arch entries in DOCKER_CROSSPLATFORMS, e.g. linux/arm.",
            context={"platform": platform},
        )
    return goos, goarch


@dataclass(slots=True)
class CrossBundle:
    name: str = "cross"

    def run(self, run: BundleRun) -> None:
        platforms = run.config.cross_platforms
        if not platforms:
            run.log("No DOCKER_CROSSPLATFORMS configured; nothing to cross-compile.")
            return
        for platform in platforms:
            goos, goarch = parse_platform(self.name, platform)
            platform_dest = run.dest / goos / goarch
            env = {"GOOS": goos, "GOARCH": goarch}
            run.log(f"Cross-compiling for {goos}/{goarch}", operation="cross", platform=platform)
            binaries = [CLIENT]
            if goos in DAEMON_PLATFORMS:
                binaries.append(DAEMON)
            for binary, source in binaries:
                go_build(
                    run,
                    binary=binary,
                    source=source,
                    dest=platform_dest,
                    target_os=goos,
                    flags=run.context.orig_build_flags,
                    static=True,
                    env=env,
                )


def _owner_reset(info: tarfile.TarInfo) -> tarfile.TarInfo:
    info.uid = info.gid = 0
    info.uname = info.gname = "root"
    info.mtime = 0
    return info


@dataclass(slots=True)
class TgzBundle:
    """Packs each cross-compiled platform into ``docker-<VERSION>.tgz``."""

    name: str = "tgz"
    source_bundle: str = "cross"

    def run(self, run: BundleRun) -> None:
        cross_dir = run.version_dir / self.source_bundle
        platform_dirs = sorted(d for d in cross_dir.glob("*/*") if d.is_dir())
        if not platform_dirs:
            raise BundleFailure(
                "No cross-compiled binaries to archive.",
                bundle=self.name,
                hint="Run the cross bundle (with DOCKER_CROSSPLATFORMS set) before tgz.",
                context={"path": str(cross_dir)},
            )
        for platform_dir in platform_dirs:
            relative = platform_dir.relative_to(cross_dir)
            archive = run.dest / relative / f"docker-{run.context.version}.tgz"
            archive.parent.mkdir(parents=True, exist_ok=True)
            self._pack(platform_dir, archive)
            hash_files(archive)
            run.artifacts.append(archive)
            run.log(f"Created tgz: {archive}", operation="tgz", platform=str(relative))

    def _pack(self, platform_dir: Path, archive: Path) -> None:
        members = [
            path
            for path in sorted(platform_dir.iterdir())
            if path.is_file() and not path.is_symlink() and not is_sidecar(path)
        ]
        with tarfile.open(archive, "w:gz") as tar:
            for member in members:
                tar.add(member, arcname=f"docker/{member.name}", filter=_owner_reset)


__all__ = ["CrossBundle", "DAEMON_PLATFORMS", "TgzBundle", "parse_platform"]
