"""Version and commit resolution from the VERSION file and git metadata."""

from __future__ import annotations

import warnings
from datetime import UTC, datetime
from pathlib import Path

from hackmake.config import BuildConfig
from hackmake.errors import ConfigurationError
from hackmake.models import VersionInfo
from hackmake.process import CommandRunner, SubprocessRunner

VERSION_FILE = "VERSION"
UNSUPPORTED_SUFFIX = "-unsupported"


class DirtyTreeWarning(UserWarning):
    """Warning raised when building from a checkout with uncommitted changes."""


def read_version_file(repo_root: str | Path) -> str:
    version_path = Path(repo_root) / VERSION_FILE
    try:
        version = version_path.read_text(encoding="utf-8").strip()
    except FileNotFoundError as exc:
        raise ConfigurationError(
            "VERSION file does not exist.",
            hint="Run from the root of a source checkout that carries a VERSION file.",
            context={"path": str(version_path)},
        ) from exc
    if not version:
        raise ConfigurationError(
            "VERSION file is empty.",
            context={"path": str(version_path)},
        )
    return version


def resolve_version(
    repo_root: str | Path,
    config: BuildConfig,
    *,
    runner: CommandRunner | None = None,
    now: datetime | None = None,
) -> VersionInfo:
    """Resolve version, short commit, and dirty flag for *repo_root*."""
    root = Path(repo_root)
    runner = runner or SubprocessRunner()
    version = read_version_file(root)
    build_time = format_build_time(now=now, source_date_epoch=config.source_date_epoch)

    if _git_available(root, runner):
        commit = _git(runner, root, "rev-parse", "--short", "HEAD").strip()
        status = _git(runner, root, "status", "--porcelain", "--untracked-files=no")
        dirty_files = tuple(line for line in status.splitlines() if line.strip())
        if dirty_files:
            commit = f"{commit}{UNSUPPORTED_SUFFIX}"
            warnings.warn(
                (
                    f"GITCOMMIT = {commit}: the version you are building is listed as "
                    "unsupported because tracked files are uncommitted. Commit these "
                    "changes, or add them to .gitignore:\n" + "\n".join(dirty_files)
                ),
                DirtyTreeWarning,
                stacklevel=2,
            )
        return VersionInfo(
            version=version,
            commit=commit,
            dirty=bool(dirty_files),
            build_time=build_time,
            dirty_files=dirty_files,
        )

    if config.gitcommit:
        return VersionInfo(
            version=version,
            commit=config.gitcommit,
            dirty=config.gitcommit.endswith(UNSUPPORTED_SUFFIX),
            build_time=build_time,
        )

    raise ConfigurationError(
        ".git directory missing and DOCKER_GITCOMMIT not specified.",
        hint=(
            "Either build with the .git directory accessible, or specify the exact "
            "(--short) commit hash you are building using DOCKER_GITCOMMIT for future "
            "accountability in diagnosing build issues."
        ),
        context={"repo_root": str(root)},
    )


def format_build_time(
    *,
    now: datetime | None = None,
    source_date_epoch: int | None = None,
) -> str:
    """Format an RFC 3339 timestamp with nanosecond precision in UTC."""
    if source_date_epoch is not None:
        moment = datetime.fromtimestamp(source_date_epoch, UTC)
    else:
        moment = (now or datetime.now(UTC)).astimezone(UTC)
    nanos = moment.microsecond * 1000
    return f"{moment:%Y-%m-%dT%H:%M:%S}.{nanos:09d}+00:00"


def _git_available(root: Path, runner: CommandRunner) -> bool:
    if runner.which("git") is None or not (root / ".git").exists():
        return False
    return runner.run(["git", "rev-parse"], cwd=root).ok


def _git(runner: CommandRunner, root: Path, *argv: str) -> str:
    result = runner.run(["git", *argv], cwd=root)
    if not result.ok:
        raise ConfigurationError(
            "Git command failed.",
            hint="Inspect the checkout and git installation.",
            context={
                "argv": " ".join(result.argv),
                "stderr": result.stderr.strip(),
            },
        )
    return result.stdout


__all__ = [
    "DirtyTreeWarning",
    "UNSUPPORTED_SUFFIX",
    "VERSION_FILE",
    "format_build_time",
    "read_version_file",
    "resolve_version",
]
