"""GOPATH validation and the ``AUTO_GOPATH`` symlinked workspace."""

from __future__ import annotations

import shutil
from pathlib import Path, PurePosixPath

from hackmake.config import BuildConfig
from hackmake.errors import ConfigurationError, FilesystemError

AUTO_GOPATH_DIR = ".gopath"
SOLARIS_GOCODE_ROOT = "/usr/lib/gocode"
SOLARIS_DEFAULT_GO_VERSION = "1.7.1"


def ensure_gopath(repo_root: str | Path, config: BuildConfig, *, target_os: str) -> str:
    """Return the GOPATH to build with, creating ``.gopath`` when requested."""
    root = Path(repo_root)
    if config.auto_gopath:
        gopath = str(_create_auto_gopath(root, config.docker_pkg))
        if target_os == "solaris":
            # sys/unix lives outside the standard library on solaris.
            go_version = config.go_version or SOLARIS_DEFAULT_GO_VERSION
            gopath = f"{gopath}:{SOLARIS_GOCODE_ROOT}/{go_version}"
        return gopath
    if config.gopath:
        return config.gopath
    raise ConfigurationError(
        "Missing GOPATH.",
        hint="See https://golang.org/doc/code.html#GOPATH; alternatively, set AUTO_GOPATH=1.",
        context={"repo_root": str(root)},
    )


def _create_auto_gopath(root: Path, docker_pkg: str) -> Path:
    gopath = root / AUTO_GOPATH_DIR
    package = PurePosixPath(docker_pkg)
    link = gopath / "src" / Path(*package.parts)
    try:
        if gopath.exists() or gopath.is_symlink():
            shutil.rmtree(gopath)
        link.parent.mkdir(parents=True, exist_ok=True)
        # .gopath/src/<pkg> points back at the checkout root.
        depth = len(package.parts) + 1
        link.symlink_to(Path(*([".."] * depth)), target_is_directory=True)
    except OSError as exc:
        raise FilesystemError(
            "Unable to create AUTO_GOPATH workspace.",
            hint="Remove the .gopath directory manually and retry.",
            context={"path": str(gopath), "error": str(exc)},
        ) from exc
    return gopath.resolve()


__all__ = ["AUTO_GOPATH_DIR", "ensure_gopath"]
