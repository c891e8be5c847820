import dataclasses
import json
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import cbor2
import pytest

from conftest import FakeRunner
from hackmake.bundles import BundleRun, BundleStep
from hackmake.config import BuildConfig
from hackmake.dispatch import LATEST_LINK, BundleDispatcher, dispatch
from hackmake.errors import BundleFailure, FilesystemError, ValidationError
from hackmake.models import DEFAULT_BUNDLES, BuildContext
from hackmake.observability import StructuredLogger


@dataclass(slots=True)
class RecordingStep:
    name: str
    invoked: list[str]
    fail_with: Exception | None = None

    def run(self, run: BundleRun) -> None:
        self.invoked.append(run.name)
        (run.dest / "artifact.txt").write_text(run.context.version, encoding="utf-8")
        run.artifacts.append(run.dest / "artifact.txt")
        if self.fail_with is not None:
            raise self.fail_with


@dataclass(slots=True)
class Registry:
    invoked: list[str] = field(default_factory=list)
    failures: dict[str, Exception] = field(default_factory=dict)

    def __call__(self, name: str) -> BundleStep:
        return RecordingStep(name=name, invoked=self.invoked, fail_with=self.failures.get(name))


def _dispatcher(
    repo: Path,
    registry: Registry | None = None,
    config: BuildConfig | None = None,
    logger: StructuredLogger | None = None,
) -> BundleDispatcher:
    return BundleDispatcher(
        repo_root=repo,
        config=config or BuildConfig(),
        runner=FakeRunner(),
        logger=logger or StructuredLogger(),
        resolver=registry,
    )


def test_empty_bundle_list_dispatches_default_sequence(repo: Path, context: BuildContext) -> None:
    explicit = Registry()
    implicit = Registry()

    _dispatcher(repo, explicit).dispatch(list(DEFAULT_BUNDLES), context)
    result = _dispatcher(repo, implicit).dispatch([], context)

    assert implicit.invoked == explicit.invoked == list(DEFAULT_BUNDLES)
    assert result.exit_code == 0
    assert result.names("succeeded") == list(DEFAULT_BUNDLES)


def test_bundles_write_into_versioned_destinations(repo: Path, context: BuildContext) -> None:
    result = _dispatcher(repo, Registry()).dispatch(["binary-client", "hack/make/tgz"], context)

    version_dir = repo / "bundles" / "17.03.0-dev"
    assert result.version_dir == str(version_dir)
    assert (version_dir / "binary-client" / "artifact.txt").exists()
    assert (version_dir / "tgz" / "artifact.txt").exists()
    assert result.outcomes[0].artifacts == ("binary-client/artifact.txt",)


def test_failing_bundle_halts_dispatch(repo: Path, context: BuildContext) -> None:
    registry = Registry(failures={"b": BundleFailure("exit status 2", bundle="b")})

    result = _dispatcher(repo, registry).dispatch(["a", "b", "c"], context)

    assert registry.invoked == ["a", "b"]
    assert result.exit_code != 0
    assert result.failed_bundle == "b"
    assert [(o.name, o.status) for o in result.outcomes] == [
        ("a", "succeeded"),
        ("b", "failed"),
        ("c", "skipped"),
    ]
    # Prior bundles are not rolled back.
    assert (repo / "bundles" / "17.03.0-dev" / "a" / "artifact.txt").exists()


def test_step_errors_are_reported_as_bundle_failures(repo: Path, context: BuildContext) -> None:
    registry = Registry(
        failures={
            "install-binary": ValidationError("Install is only supported on linux."),
        },
    )

    result = _dispatcher(repo, registry).dispatch(["install-binary"], context)

    assert isinstance(result.failure, BundleFailure)
    assert result.failure.bundle == "install-binary"
    assert result.failure.context["cause"] == "E_VALIDATION"
    assert isinstance(result.failure.__cause__, ValidationError)


def test_os_errors_in_steps_become_bundle_failures(repo: Path, context: BuildContext) -> None:
    registry = Registry(failures={"cross": PermissionError(13, "denied", "/bundles/x")})

    result = _dispatcher(repo, registry).dispatch(["cross", "tgz"], context)

    assert result.failed_bundle == "cross"
    assert result.failure is not None
    assert result.failure.context["cause"] == "E_FILESYSTEM"
    assert registry.invoked == ["cross"]


def test_existing_version_dir_is_replaced(repo: Path, context: BuildContext) -> None:
    stale = repo / "bundles" / "17.03.0-dev" / "old-bundle" / "artifact.txt"
    stale.parent.mkdir(parents=True)
    stale.write_text("stale", encoding="utf-8")

    _dispatcher(repo, Registry()).dispatch(["binary-client"], context)

    assert not stale.exists()
    assert sorted(p.name for p in (repo / "bundles").iterdir()) == ["17.03.0-dev", LATEST_LINK]


def test_existing_version_dir_is_kept_with_keepbundle(repo: Path, context: BuildContext) -> None:
    kept = repo / "bundles" / "17.03.0-dev" / "old-bundle" / "artifact.txt"
    kept.parent.mkdir(parents=True)
    kept.write_text("kept", encoding="utf-8")

    _dispatcher(repo, Registry(), BuildConfig(keep_bundle=True)).dispatch(["binary-client"], context)

    assert kept.read_text(encoding="utf-8") == "kept"


def test_unremovable_stale_dir_is_a_filesystem_error(
    repo: Path,
    context: BuildContext,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    (repo / "bundles" / "17.03.0-dev").mkdir(parents=True)
    registry = Registry()

    def refuse(self: Path, target: Path) -> Path:
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "rename", refuse)

    with pytest.raises(FilesystemError) as excinfo:
        _dispatcher(repo, registry).dispatch(["binary-client"], context)

    assert excinfo.value.code == "E_FILESYSTEM"
    assert registry.invoked == []


def test_latest_link_points_at_version(repo: Path, context: BuildContext) -> None:
    _dispatcher(repo, Registry()).dispatch(["a"], context)
    bumped = dataclasses.replace(context, version="17.04.0-dev")
    _dispatcher(repo, Registry()).dispatch(["a"], bumped)

    latest = repo / "bundles" / LATEST_LINK
    assert latest.is_symlink()
    assert latest.readlink() == Path("17.04.0-dev")


def test_no_latest_link_on_windows_hosts(repo: Path, context: BuildContext) -> None:
    windows = dataclasses.replace(context, host_os="windows")

    _dispatcher(repo, Registry()).dispatch(["a"], windows)

    assert not (repo / "bundles" / LATEST_LINK).exists()


def test_build_report_written_as_json_and_cbor(repo: Path, context: BuildContext) -> None:
    registry = Registry(failures={"b": BundleFailure("boom", bundle="b")})

    _dispatcher(repo, registry).dispatch(["a", "b"], context)

    version_dir = repo / "bundles" / "17.03.0-dev"
    report = _read_json(version_dir / "build-report.json")
    decoded = cbor2.loads((version_dir / "build-report.cbor").read_bytes())

    assert report == decoded
    assert report["version"] == "17.03.0-dev"
    assert report["commit"] == "abc1234"
    assert report["exit_code"] == 1
    assert report["failed_bundle"] == "b"
    assert [bundle["status"] for bundle in report["bundles"]] == ["succeeded", "failed"]
    assert report["bundles"][1]["error"]["code"] == "E_BUNDLE"


def test_logger_records_bundle_banners(repo: Path, context: BuildContext) -> None:
    logger = StructuredLogger()

    _dispatcher(repo, Registry(), logger=logger).dispatch(["binary-client"], context)

    messages = [record["message"] for record in logger.records_for_bundle("binary-client")]
    assert messages[0].startswith("---> Making bundle: binary-client (in ")
    assert messages[-1] == "Completed bundle binary-client."


def test_unknown_bundle_runs_hack_make_script(repo: Path, context: BuildContext) -> None:
    script = repo / "hack" / "make" / "validate-gofmt"
    script.parent.mkdir(parents=True)
    script.write_text("#!/usr/bin/env bash\necho ok\n", encoding="utf-8")
    runner = FakeRunner()

    result = dispatch(["validate-gofmt"], context, repo_root=repo, runner=runner)

    assert result.exit_code == 0
    call = runner.calls[0]
    assert call.argv == ("bash", str(script))
    assert call.env["DEST"] == str(repo / "bundles" / "17.03.0-dev" / "validate-gofmt")
    assert call.env["VERSION"] == "17.03.0-dev"


def test_unknown_bundle_without_script_fails(repo: Path, context: BuildContext) -> None:
    result = dispatch(["no-such-bundle"], context, repo_root=repo, runner=FakeRunner())

    assert result.exit_code == 1
    assert result.failure is not None
    assert "does not exist" in str(result.failure)


def _read_json(path: Path) -> dict[str, Any]:
    parsed = json.loads(path.read_text(encoding="utf-8"))
    assert isinstance(parsed, dict)
    return parsed


def test_relative_bundles_dir_is_anchored_at_repo_root(
    repo: Path,
    context: BuildContext,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    elsewhere = tmp_path / "elsewhere"
    elsewhere.mkdir()
    monkeypatch.chdir(elsewhere)
    script = repo / "hack" / "make" / "emit"
    script.parent.mkdir(parents=True)
    script.write_text("#!/usr/bin/env bash\n", encoding="utf-8")
    runner = FakeRunner()
    dispatcher = BundleDispatcher(repo_root=repo, runner=runner, bundles_dir=Path("out"))

    result = dispatcher.dispatch(["emit"], context)

    expected = repo / "out" / "17.03.0-dev" / "emit"
    assert result.exit_code == 0
    assert dispatcher.bundles_dir == repo / "out"
    assert runner.calls[0].env["DEST"] == str(expected)
    assert expected.is_dir()
    assert not (elsewhere / "out").exists()


@pytest.mark.skipif(shutil.which("bash") is None, reason="bash is not installed")
def test_script_bundle_writes_into_dest_from_another_cwd(
    repo: Path,
    context: BuildContext,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.chdir(tmp_path)
    script = repo / "hack" / "make" / "emit"
    script.parent.mkdir(parents=True)
    script.write_text('echo built > "$DEST/out.txt"\n', encoding="utf-8")

    dispatcher = BundleDispatcher(repo_root=repo, bundles_dir=Path("out"))
    result = dispatcher.dispatch(["emit"], context)

    assert result.exit_code == 0
    output = repo / "out" / "17.03.0-dev" / "emit" / "out.txt"
    assert output.read_text(encoding="utf-8") == "built\n"
