"""Sequential bundle dispatch into the versioned ``bundles/`` tree."""

from __future__ import annotations

import shutil
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from hackmake.bundles import DEFAULT_BUNDLES, BundleRun, BundleStep, bundle_basename, resolve_bundle
from hackmake.config import BuildConfig
from hackmake.errors import BundleFailure, FilesystemError, HackError
from hackmake.models import BuildContext, BundleOutcome, DispatchResult
from hackmake.observability import StructuredLogger, write_build_report
from hackmake.process import CommandRunner, SubprocessRunner

BUNDLES_DIR = "bundles"
LATEST_LINK = "latest"

StepResolver = Callable[[str], BundleStep]


@dataclass(slots=True)
class BundleDispatcher:
    repo_root: Path
    config: BuildConfig = field(default_factory=BuildConfig)
    runner: CommandRunner = field(default_factory=SubprocessRunner)
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    bundles_dir: Path = Path(BUNDLES_DIR)
    resolver: StepResolver | None = None
    write_report: bool = True

    def __post_init__(self) -> None:
        # DEST handed to steps is absolute; a relative bundles_dir is taken from the checkout.
        self.repo_root = Path(self.repo_root).resolve()
        self.bundles_dir = (self.repo_root / self.bundles_dir).resolve()

    def prepare(self, context: BuildContext) -> Path:
        """Create ``bundles/<VERSION>``, replacing a stale tree unless kept."""
        version_dir = self.bundles_dir / context.version
        try:
            self.bundles_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(
                "Unable to create bundles directory.",
                context={"path": str(self.bundles_dir), "error": str(exc)},
            ) from exc

        if version_dir.exists() and not self.config.keep_bundle:
            self.logger.log(
                operation="prepare",
                bundle=None,
                phase="prepare",
                message=f"{version_dir} already exists. Removing.",
            )
            self._replace(version_dir)
        elif version_dir.exists():
            self.logger.log(
                operation="prepare",
                bundle=None,
                phase="prepare",
                message=f"Keeping existing {version_dir} (KEEPBUNDLE).",
            )
        version_dir.mkdir(parents=True, exist_ok=True)

        # Windows and symlinks don't get along well.
        if context.host_os != "windows":
            self._link_latest(context.version)
        return version_dir

    def dispatch(self, names: Sequence[str], context: BuildContext) -> DispatchResult:
        """Run *names* (or the default list) in order, halting on the first failure."""
        version_dir = self.prepare(context)
        bundles = tuple(names) or DEFAULT_BUNDLES
        result = DispatchResult(version_dir=str(version_dir))

        for index, name in enumerate(bundles):
            basename = bundle_basename(name)
            dest = version_dir / basename
            try:
                dest.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise FilesystemError(
                    "Unable to create bundle output directory.",
                    context={"bundle": basename, "path": str(dest), "error": str(exc)},
                ) from exc
            run = BundleRun(
                name=basename,
                dest=dest,
                version_dir=version_dir,
                repo_root=self.repo_root,
                context=context,
                config=self.config,
                runner=self.runner,
                logger=self.logger,
            )
            self.logger.log(
                operation="bundle_start",
                bundle=basename,
                phase="start",
                message=f"---> Making bundle: {basename} (in {dest})",
            )
            failure = self._run_step(name, run)
            if failure is not None:
                result.failure = failure
                result.outcomes.append(
                    BundleOutcome(
                        name=basename,
                        dest=str(dest),
                        status="failed",
                        artifacts=_relative(run.artifacts, version_dir),
                        error=failure.to_dict(),
                    ),
                )
                self.logger.log(
                    operation="bundle_failed",
                    bundle=basename,
                    phase="complete",
                    level="error",
                    message=f"Bundle {basename} failed: {failure.args[0]}",
                    extra={"code": failure.code},
                )
                for skipped in bundles[index + 1 :]:
                    result.outcomes.append(
                        BundleOutcome(
                            name=bundle_basename(skipped),
                            dest=str(version_dir / bundle_basename(skipped)),
                            status="skipped",
                        ),
                    )
                break
            result.outcomes.append(
                BundleOutcome(
                    name=basename,
                    dest=str(dest),
                    status="succeeded",
                    artifacts=_relative(run.artifacts, version_dir),
                ),
            )
            self.logger.log(
                operation="bundle_complete",
                bundle=basename,
                phase="complete",
                message=f"Completed bundle {basename}.",
            )

        if self.write_report:
            write_build_report(version_dir, context=context, result=result, logger=self.logger)
        return result

    def _run_step(self, name: str, run: BundleRun) -> BundleFailure | None:
        try:
            self._step(name).run(run)
        except HackError as exc:
            return self._as_failure(run.name, exc)
        except OSError as exc:
            error = FilesystemError(
                "Bundle filesystem operation failed.",
                context={"path": str(exc.filename or run.dest), "error": str(exc)},
            )
            error.__cause__ = exc
            return self._as_failure(run.name, error)
        return None

    def _step(self, name: str) -> BundleStep:
        if self.resolver is not None:
            return self.resolver(name)
        return resolve_bundle(name, repo_root=self.repo_root)

    def _replace(self, version_dir: Path) -> None:
        stale = version_dir.with_name(f".{version_dir.name}.stale-{uuid.uuid4().hex}")
        try:
            version_dir.rename(stale)
        except OSError as exc:
            raise FilesystemError(
                "Existing bundles could not be moved aside.",
                hint="Bundles from different versions of the code must not be mixed.",
                context={"path": str(version_dir), "error": str(exc)},
            ) from exc
        try:
            shutil.rmtree(stale)
        except OSError as exc:
            raise FilesystemError(
                "Existing bundles could not be removed.",
                hint="Remove the stale directory manually and retry.",
                context={"path": str(stale), "error": str(exc)},
            ) from exc

    def _link_latest(self, version: str) -> None:
        latest = self.bundles_dir / LATEST_LINK
        try:
            latest.unlink(missing_ok=True)
            latest.symlink_to(version, target_is_directory=True)
        except OSError as exc:
            raise FilesystemError(
                "Unable to update the latest bundles link.",
                context={"path": str(latest), "error": str(exc)},
            ) from exc

    @staticmethod
    def _as_failure(bundle: str, exc: HackError) -> BundleFailure:
        if isinstance(exc, BundleFailure):
            return exc
        failure = BundleFailure(
            exc.args[0] if exc.args else type(exc).__name__,
            bundle=bundle,
            hint=exc.hint,
            context={"cause": exc.code, **dict(exc.context)},
        )
        failure.__cause__ = exc
        return failure


def dispatch(
    names: Sequence[str],
    context: BuildContext,
    *,
    repo_root: str | Path,
    config: BuildConfig | None = None,
    runner: CommandRunner | None = None,
    logger: StructuredLogger | None = None,
) -> DispatchResult:
    dispatcher = BundleDispatcher(
        repo_root=Path(repo_root),
        config=config or BuildConfig(),
        runner=runner or SubprocessRunner(),
        logger=logger or StructuredLogger(),
    )
    return dispatcher.dispatch(names, context)


def _relative(paths: list[Path], root: Path) -> tuple[str, ...]:
    relative: list[str] = []
    for path in paths:
        try:
            relative.append(str(path.relative_to(root)))
        except ValueError:
            relative.append(str(path))
    return tuple(relative)


__all__ = ["BUNDLES_DIR", "BundleDispatcher", "LATEST_LINK", "dispatch"]
