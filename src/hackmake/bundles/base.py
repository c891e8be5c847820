"""Typed interfaces shared by bundle steps."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from hackmake.config import BuildConfig
from hackmake.errors import BundleFailure
from hackmake.models import BuildContext
from hackmake.observability import StructuredLogger
from hackmake.process import CommandResult, CommandRunner

STDERR_CONTEXT_LIMIT = 2000


@dataclass(slots=True)
class BundleRun:
    """Everything a step sees while it runs; the context is read-only."""

    name: str
    dest: Path
    version_dir: Path
    repo_root: Path
    context: BuildContext
    config: BuildConfig
    runner: CommandRunner
    logger: StructuredLogger
    artifacts: list[Path] = field(default_factory=list)

    def env(self, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        env = self.context.as_env()
        env["DEST"] = str(self.dest)
        env["ABS_DEST"] = str(self.dest.resolve())
        if extra:
            env.update(extra)
        return env

    def log(self, message: str, *, operation: str = "bundle", **extra: object) -> None:
        self.logger.log(
            operation=operation,
            bundle=self.name,
            phase="run",
            message=message,
            extra=dict(extra) if extra else None,
        )


class BundleStep(Protocol):
    name: str

    def run(self, run: BundleRun) -> None:
        """Produce the bundle's artifacts under ``run.dest``."""


def run_command(
    run: BundleRun,
    argv: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    cwd: Path | None = None,
    log_path: Path | None = None,
) -> CommandResult:
    """Run *argv* for *run*, raising BundleFailure on a non-zero exit."""
    run.log(f"+ {' '.join(argv)}", operation="command")
    result = run.runner.run(argv, cwd=cwd or run.repo_root, env=run.env(env))
    if log_path is not None:
        log_path.write_text(result.stdout + result.stderr, encoding="utf-8")
    if not result.ok:
        raise BundleFailure(
            f"Bundle `{run.name}` command failed.",
            bundle=run.name,
            hint="Check the command output for details.",
            context={
                "returncode": str(result.returncode),
                "command": " ".join(argv),
                "stderr": result.stderr[:STDERR_CONTEXT_LIMIT],
            },
        )
    return result


__all__ = ["BundleRun", "BundleStep", "run_command"]
