"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from hackmake.config import BuildConfig
from hackmake.flags import assemble
from hackmake.models import BuildContext, ProbeResults, VersionInfo
from hackmake.observability import StructuredLogger
from hackmake.process import CommandResult


@dataclass(frozen=True, slots=True)
class FakeCall:
    argv: tuple[str, ...]
    cwd: Path | None
    env: dict[str, str]
    input: str | None


@dataclass(slots=True)
class FakeRunner:
    """Scripted CommandRunner; unmatched commands succeed with empty output."""

    tools: dict[str, str] = field(default_factory=dict)
    responses: dict[tuple[str, ...], CommandResult] = field(default_factory=dict)
    calls: list[FakeCall] = field(default_factory=list)
    materialize_go_outputs: bool = True

    def with_tools(self, *names: str) -> FakeRunner:
        for name in names:
            self.tools[name] = f"/usr/bin/{name}"
        return self

    def on(self, *prefix: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> FakeRunner:
        self.responses[prefix] = CommandResult(
            argv=prefix,
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
        )
        return self

    def which(self, tool: str) -> str | None:
        return self.tools.get(tool)

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        input: str | None = None,
    ) -> CommandResult:
        command = tuple(argv)
        self.calls.append(FakeCall(argv=command, cwd=cwd, env=dict(env or {}), input=input))
        for prefix in sorted(self.responses, key=len, reverse=True):
            if command[: len(prefix)] == prefix:
                canned = self.responses[prefix]
                if canned.ok:
                    self._materialize(command)
                return CommandResult(
                    argv=command,
                    returncode=canned.returncode,
                    stdout=canned.stdout,
                    stderr=canned.stderr,
                )
        self._materialize(command)
        return CommandResult(argv=command, returncode=0)

    def commands(self, *prefix: str) -> list[tuple[str, ...]]:
        return [call.argv for call in self.calls if call.argv[: len(prefix)] == prefix]

    def _materialize(self, command: tuple[str, ...]) -> None:
        if not self.materialize_go_outputs or command[:2] != ("go", "build"):
            return
        output = Path(command[command.index("-o") + 1])
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(f"binary built by: {' '.join(command)}\n", encoding="utf-8")


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def logger() -> StructuredLogger:
    return StructuredLogger()


@pytest.fixture
def linux_probe() -> ProbeResults:
    return ProbeResults(
        host_os="linux",
        host_arch="amd64",
        target_os="linux",
        target_arch="amd64",
    )


@pytest.fixture
def version_info() -> VersionInfo:
    return VersionInfo(
        version="17.03.0-dev",
        commit="abc1234",
        build_time="2017-02-01T10:11:12.000000000+00:00",
    )


@pytest.fixture
def context(linux_probe: ProbeResults, version_info: VersionInfo) -> BuildContext:
    return assemble(linux_probe, version_info, BuildConfig())


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    root.mkdir()
    (root / "VERSION").write_text("17.03.0-dev\n", encoding="utf-8")
    return root
