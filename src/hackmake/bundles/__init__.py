"""Named bundle steps and their registry."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path, PurePosixPath

from hackmake.models import DEFAULT_BUNDLES

from .base import BundleRun, BundleStep, run_command
from .cross import CrossBundle, TgzBundle
from .go import CLIENT, DAEMON, DynBinaryBundle, GoBinaryBundle
from .install import InstallBinaryBundle
from .script import SCRIPT_DIR, ScriptBundle
from .suites import DockerPyBundle, GoTestBundle

BUILTIN_BUNDLES: Mapping[str, Callable[[], BundleStep]] = {
    "binary-client": lambda: GoBinaryBundle(name="binary-client", binary=CLIENT[0], source=CLIENT[1]),
    "binary-daemon": lambda: GoBinaryBundle(
        name="binary-daemon",
        binary=DAEMON[0],
        source=DAEMON[1],
        with_nested=True,
    ),
    "dynbinary": DynBinaryBundle,
    "test-unit": lambda: GoTestBundle(name="test-unit"),
    "test-integration-cli": lambda: GoTestBundle(
        name="test-integration-cli",
        packages=("./integration-cli",),
        extra_args=("-check.v",),
        coverage=False,
    ),
    "test-docker-py": DockerPyBundle,
    "cross": CrossBundle,
    "tgz": TgzBundle,
    "install-binary": InstallBinaryBundle,
}


def bundle_basename(name: str) -> str:
    """Bundles may be named by path (``hack/make/tgz``); the basename wins."""
    return PurePosixPath(name).name


def resolve_bundle(name: str, *, repo_root: Path) -> BundleStep:
    basename = bundle_basename(name)
    factory = BUILTIN_BUNDLES.get(basename)
    if factory is not None:
        return factory()
    return ScriptBundle(name=basename, script=repo_root / SCRIPT_DIR / basename)


__all__ = [
    "BUILTIN_BUNDLES",
    "DEFAULT_BUNDLES",
    "BundleRun",
    "BundleStep",
    "CrossBundle",
    "DockerPyBundle",
    "DynBinaryBundle",
    "GoBinaryBundle",
    "GoTestBundle",
    "InstallBinaryBundle",
    "ScriptBundle",
    "TgzBundle",
    "bundle_basename",
    "resolve_bundle",
    "run_command",
]
