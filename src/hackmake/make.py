"""End-to-end build invocation: resolve, probe, assemble, and dispatch."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from hackmake.autogen import write_version_autogen
from hackmake.config import BuildConfig
from hackmake.container import warn_if_not_in_container
from hackmake.dispatch import BUNDLES_DIR, BundleDispatcher
from hackmake.flags import assemble
from hackmake.gopath import ensure_gopath
from hackmake.models import BuildContext, DispatchResult
from hackmake.observability import StructuredLogger
from hackmake.probe import HostProber
from hackmake.process import CommandRunner, SubprocessRunner
from hackmake.version import resolve_version


@dataclass(slots=True)
class MakeInvocation:
    repo_root: Path
    config: BuildConfig = field(default_factory=BuildConfig)
    runner: CommandRunner = field(default_factory=SubprocessRunner)
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    bundles_dir: Path = Path(BUNDLES_DIR)
    include_root: Path = Path("/")
    now: datetime | None = None

    def context(self) -> BuildContext:
        """Resolve version metadata and host capabilities into a BuildContext."""
        version = resolve_version(self.repo_root, self.config, runner=self.runner, now=self.now)
        probe = HostProber(runner=self.runner, include_root=self.include_root).probe_all(
            self.config,
        )
        warn_if_not_in_container(self.config, cwd=self.repo_root, host_os=probe.host_os)
        gopath = ensure_gopath(self.repo_root, self.config, target_os=probe.target_os)
        context = assemble(probe, version, self.config)
        context = dataclasses.replace(context, env={**context.env, "GOPATH": gopath})
        self.logger.log(
            operation="context",
            bundle=None,
            phase="prepare",
            message=f"Building {context.version} ({context.commit})",
            extra={
                "build_tags": list(context.build_tags),
                "target": f"{context.target_os}/{context.target_arch}",
            },
        )
        return context

    def run(self, bundles: Sequence[str]) -> DispatchResult:
        context = self.context()
        write_version_autogen(self.repo_root, context)
        dispatcher = BundleDispatcher(
            repo_root=self.repo_root,
            config=self.config,
            runner=self.runner,
            logger=self.logger,
            bundles_dir=self.bundles_dir,
        )
        return dispatcher.dispatch(bundles, context)


def make(
    bundles: Sequence[str] = (),
    *,
    repo_root: str | Path = ".",
    environ: Mapping[str, str] | None = None,
    runner: CommandRunner | None = None,
    logger: StructuredLogger | None = None,
) -> DispatchResult:
    invocation = MakeInvocation(
        repo_root=Path(repo_root).resolve(),
        config=BuildConfig.from_env(environ),
        runner=runner or SubprocessRunner(),
        logger=logger or StructuredLogger(),
    )
    return invocation.run(bundles)


__all__ = ["MakeInvocation", "make"]
