"""Command execution seam shared by probes, version resolution, and bundles."""

from __future__ import annotations

import os
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

# Exit status a POSIX shell reports for a command that cannot be found.
COMMAND_NOT_FOUND = 127


@dataclass(frozen=True, slots=True)
class CommandResult:
    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):
    def which(self, tool: str) -> str | None:
        """Return the resolved path of *tool*, or ``None`` when absent."""

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        input: str | None = None,
    ) -> CommandResult:
        """Run *argv* to completion; never raises on a non-zero exit."""


@dataclass(slots=True)
class SubprocessRunner:
    """Runs commands on the host with the caller's environment overlaid."""

    def which(self, tool: str) -> str | None:
        return shutil.which(tool)

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        input: str | None = None,
    ) -> CommandResult:
        merged_env = None
        if env:
            merged_env = {**os.environ, **env}
        try:
            completed = subprocess.run(
                list(argv),
                cwd=str(cwd) if cwd is not None else None,
                env=merged_env,
                input=input,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            return CommandResult(
                argv=tuple(argv),
                returncode=COMMAND_NOT_FOUND,
                stderr=f"{argv[0]}: command not found ({exc.strerror})",
            )
        return CommandResult(
            argv=tuple(argv),
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


__all__ = ["COMMAND_NOT_FOUND", "CommandResult", "CommandRunner", "SubprocessRunner"]
