"""Test-suite bundles."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from hackmake.bundles.base import BundleRun, run_command
from hackmake.errors import BundleFailure

DEFAULT_TESTDIRS: tuple[str, ...] = ("./...",)


@dataclass(slots=True)
class GoTestBundle:
    """``go test`` over a package list, with coverage when the toolchain has it."""

    name: str
    packages: tuple[str, ...] = ()
    extra_args: tuple[str, ...] = ()
    coverage: bool = True

    def run(self, run: BundleRun) -> None:
        context = run.context
        packages = self.packages or run.config.testdirs or DEFAULT_TESTDIRS
        argv: list[str] = ["go", "test"]
        if self.coverage and context.have_go_test_cover:
            argv.extend(("-cover", "-coverprofile", str(run.dest / "coverprofile")))
        argv.extend(("-tags", context.tags_argument))
        argv.extend(("-ldflags", context.linker_flags(static=False)))
        argv.extend(("-timeout", context.test_timeout))
        argv.extend(run.config.testflags)
        argv.extend(packages)
        argv.extend(self.extra_args)

        log_path = run.dest / "test.log"
        run.log(f"Running tests: {' '.join(packages)}", operation="go_test")
        try:
            run_command(run, argv, log_path=log_path)
        finally:
            run.artifacts.append(log_path)


@dataclass(slots=True)
class DockerPyBundle:
    """Runs the docker-py integration suite from its checkout."""

    name: str = "test-docker-py"

    def run(self, run: BundleRun) -> None:
        checkout = Path(run.config.docker_py_dir)
        if not checkout.is_dir():
            raise BundleFailure(
                "docker-py checkout is missing.",
                bundle=self.name,
                hint="Set DOCKER_PY_DIR to a docker-py source checkout.",
                context={"path": str(checkout)},
            )
        log_path = run.dest / "test.log"
        try:
            run_command(
                run,
                ("python3", "-m", "pytest", "-q"),
                cwd=checkout,
                log_path=log_path,
            )
        finally:
            run.artifacts.append(log_path)


__all__ = ["DEFAULT_TESTDIRS", "DockerPyBundle", "GoTestBundle"]
