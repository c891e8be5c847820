"""Artifact helpers: checksum sidecars, nested binaries, and installation."""

from __future__ import annotations

import hashlib
import shutil
from collections.abc import Callable
from pathlib import Path

from hackmake.errors import FilesystemError, ValidationError
from hackmake.models import BuildContext

HASH_ALGORITHMS: tuple[str, ...] = ("md5", "sha256")
SIDECAR_SUFFIXES: tuple[str, ...] = tuple(f".{algo}" for algo in HASH_ALGORITHMS)

NESTED_EXECUTABLES: tuple[str, ...] = (
    "containerd",
    "containerd-shim",
    "containerd-ctr",
    "runc",
    "init",
    "proxy",
)


def binary_extension(goos: str) -> str:
    return ".exe" if goos == "windows" else ""


def file_digest(path: Path, algorithm: str) -> str:
    digest = hashlib.new(algorithm)
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1 << 20), b""):
            digest.update(chunk)
    return digest.hexdigest()


def hash_files(*paths: Path) -> list[Path]:
    """Write ``md5sum``/``sha256sum`` compatible sidecars next to each path.

    Sidecars name the file by basename only, so they verify from inside the
    bundle directory.
    """
    written: list[Path] = []
    for path in paths:
        for algorithm in HASH_ALGORITHMS:
            sidecar = path.with_name(f"{path.name}.{algorithm}")
            sidecar.write_text(f"{file_digest(path, algorithm)}  {path.name}\n", encoding="utf-8")
            written.append(sidecar)
    return written


def is_sidecar(path: Path) -> bool:
    return path.suffix in SIDECAR_SUFFIXES


def copy_binaries(
    dest: Path,
    context: BuildContext,
    *,
    with_hashes: bool = False,
    which: Callable[[str], str | None] | None = None,
) -> list[Path]:
    """Copy nested ``docker-*`` executables into *dest* for native builds."""
    which = which or shutil.which
    if (context.target_os, context.target_arch) != (context.host_os, context.host_arch):
        return []
    if which("docker-runc") is None:
        return []
    copied: list[Path] = []
    for name in NESTED_EXECUTABLES:
        source = which(f"docker-{name}")
        if source is None:
            raise FilesystemError(
                "Nested executable is missing.",
                hint="Install the full set of docker-* helper binaries.",
                context={"executable": f"docker-{name}"},
            )
        target = dest / f"docker-{name}"
        shutil.copy2(source, target)
        copied.append(target)
        if with_hashes:
            hash_files(target)
    return copied


def install_binary(path: Path, *, prefix: str, target_os: str) -> Path:
    if target_os != "linux":
        raise ValidationError(
            "Install is only supported on linux.",
            context={"target_os": target_os, "file": str(path)},
        )
    target_dir = Path(prefix) / "bin"
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / path.name
    shutil.copy(path.resolve(), target)
    return target


__all__ = [
    "HASH_ALGORITHMS",
    "NESTED_EXECUTABLES",
    "binary_extension",
    "copy_binaries",
    "file_digest",
    "hash_files",
    "install_binary",
    "is_sidecar",
]
