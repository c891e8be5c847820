"""Environment override surface for a build invocation."""

from __future__ import annotations

import os
import shlex
from collections.abc import Mapping
from dataclasses import dataclass

from hackmake.errors import ValidationError

DEFAULT_DOCKER_PKG = "github.com/docker/docker"


@dataclass(frozen=True, slots=True)
class BuildConfig:
    """Overrides read from the environment; toggles are "set and non-empty"."""

    docker_pkg: str = DEFAULT_DOCKER_PKG
    gitcommit: str | None = None
    buildtags: tuple[str, ...] = ()
    debug: bool = False
    incremental_binary: bool = False
    keep_bundle: bool = False
    timeout: str | None = None
    engine_goarch: str | None = None
    buildflags: tuple[str, ...] = ()
    auto_gopath: bool = False
    gopath: str | None = None
    go_version: str | None = None
    pkg_config: str = "pkg-config"
    cross_platforms: tuple[str, ...] = ()
    install_prefix: str = "/usr/local"
    from_dockerfile: bool = False
    testdirs: tuple[str, ...] = ()
    testflags: tuple[str, ...] = ()
    docker_py_dir: str = "/docker-py"
    source_date_epoch: int | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> BuildConfig:
        env = os.environ if environ is None else environ
        return cls(
            docker_pkg=env.get("DOCKER_PKG") or DEFAULT_DOCKER_PKG,
            gitcommit=env.get("DOCKER_GITCOMMIT") or None,
            buildtags=tuple(env.get("DOCKER_BUILDTAGS", "").split()),
            debug=_toggle(env, "DOCKER_DEBUG"),
            incremental_binary=_toggle(env, "DOCKER_INCREMENTAL_BINARY"),
            keep_bundle=_toggle(env, "KEEPBUNDLE"),
            timeout=env.get("TIMEOUT") or None,
            engine_goarch=env.get("DOCKER_ENGINE_GOARCH") or None,
            buildflags=_words(env, "BUILDFLAGS"),
            auto_gopath=_toggle(env, "AUTO_GOPATH"),
            gopath=env.get("GOPATH") or None,
            go_version=env.get("GO_VERSION") or None,
            pkg_config=env.get("PKG_CONFIG") or "pkg-config",
            cross_platforms=tuple(env.get("DOCKER_CROSSPLATFORMS", "").split()),
            install_prefix=env.get("DOCKER_MAKE_INSTALL_PREFIX") or "/usr/local",
            from_dockerfile=_toggle(env, "FROM_DOCKERFILE"),
            testdirs=tuple(env.get("TESTDIRS", "").split()),
            testflags=_words(env, "TESTFLAGS"),
            docker_py_dir=env.get("DOCKER_PY_DIR") or "/docker-py",
            source_date_epoch=_epoch(env),
        )


def _toggle(env: Mapping[str, str], key: str) -> bool:
    return bool(env.get(key))


def _words(env: Mapping[str, str], key: str) -> tuple[str, ...]:
    raw = env.get(key, "")
    try:
        return tuple(shlex.split(raw))
    except ValueError as exc:
        raise ValidationError(
            f"Unable to split `{key}` into words.",
            hint="Check the quoting of the environment variable.",
            context={"variable": key, "value": raw},
        ) from exc


def _epoch(env: Mapping[str, str]) -> int | None:
    raw = env.get("SOURCE_DATE_EPOCH")
    if not raw:
        return None
    if not raw.isdigit():
        raise ValidationError(
            "SOURCE_DATE_EPOCH must be a non-negative integer.",
            context={"value": raw},
        )
    return int(raw)


__all__ = ["DEFAULT_DOCKER_PKG", "BuildConfig"]
