"""Detection of builds running outside the official build container."""

from __future__ import annotations

import warnings
from pathlib import Path

from hackmake.config import BuildConfig

CONTAINER_GOPATH_ROOT = Path("/go/src")


class NotInContainerWarning(UserWarning):
    """Warning raised when the build does not appear to run in the dev container."""


def in_container(config: BuildConfig, *, cwd: Path, host_os: str) -> bool:
    if host_os == "windows":
        return config.from_dockerfile
    expected = CONTAINER_GOPATH_ROOT / config.docker_pkg
    return cwd == expected and bool(config.cross_platforms)


def warn_if_not_in_container(config: BuildConfig, *, cwd: Path, host_os: str) -> bool:
    if in_container(config, cwd=cwd, host_os=host_os):
        return True
    warnings.warn(
        (
            "I don't seem to be running in a Docker container. The result of this "
            "command might be an incorrect build, and will not be officially supported. "
            "Try this instead: make all"
        ),
        NotInContainerWarning,
        stacklevel=2,
    )
    return False


__all__ = ["NotInContainerWarning", "in_container", "warn_if_not_in_container"]
