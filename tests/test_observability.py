import io
import json
from pathlib import Path

import cbor2

from hackmake.errors import BundleFailure
from hackmake.models import BuildContext, BundleOutcome, DispatchResult
from hackmake.observability import (
    REPORT_SCHEMA_VERSION,
    BuildReport,
    StructuredLogger,
    write_build_report,
)


def test_logger_echoes_messages_to_stream() -> None:
    stream = io.StringIO()
    logger = StructuredLogger(stream=stream)

    logger.log(operation="dispatch", bundle="cross", phase="start", message="---> Making bundle: cross")
    logger.log(operation="dispatch", bundle=None, phase=None, message="done", extra={"n": 1})

    assert stream.getvalue() == "---> Making bundle: cross\ndone\n"
    assert logger.records_for_bundle("cross") == [
        {
            "level": "info",
            "operation": "dispatch",
            "bundle": "cross",
            "phase": "start",
            "message": "---> Making bundle: cross",
        }
    ]
    assert logger.records[1]["extra"] == {"n": 1}


def test_logger_writes_json_lines(tmp_path: Path) -> None:
    logger = StructuredLogger()
    logger.log(operation="a", bundle="x", phase="run", message="one")
    logger.log(operation="b", bundle="y", phase="run", message="two", level="error")

    path = logger.to_json_lines(tmp_path / "logs" / "make.jsonl")

    lines = path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["message"] for line in lines] == ["one", "two"]
    assert json.loads(lines[1])["level"] == "error"


def test_report_records_outcomes_and_failure(context: BuildContext, tmp_path: Path) -> None:
    failure = BundleFailure("Bundle `cross` command failed.", bundle="cross")
    result = DispatchResult(
        version_dir=str(tmp_path),
        outcomes=[
            BundleOutcome(name="binary-client", dest="/b/binary-client", status="succeeded", artifacts=("docker",)),
            BundleOutcome(name="cross", dest="/b/cross", status="failed", error=failure.to_dict()),
        ],
        failure=failure,
    )
    logger = StructuredLogger()
    logger.log(operation="dispatch", bundle="cross", phase="failed", message="failed")

    json_path, cbor_path = write_build_report(tmp_path, context=context, result=result, logger=logger)

    payload = json.loads(json_path.read_text(encoding="utf-8"))
    assert payload["schema_version"] == REPORT_SCHEMA_VERSION
    assert payload["exit_code"] == 1
    assert payload["failed_bundle"] == "cross"
    assert [b["status"] for b in payload["bundles"]] == ["succeeded", "failed"]
    assert payload["bundles"][0]["artifacts"] == ["docker"]
    assert cbor2.loads(cbor_path.read_bytes()) == payload


def test_cbor_encoding_is_deterministic(context: BuildContext, tmp_path: Path) -> None:
    result = DispatchResult(version_dir=str(tmp_path))
    report = BuildReport(context=context, result=result)

    assert report.to_cbor() == BuildReport(context=context, result=result).to_cbor()
    assert cbor2.loads(report.to_cbor())["bundles"] == []
