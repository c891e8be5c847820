"""Structured logging and build report helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TextIO

import cbor2

from hackmake.models import BuildContext, DispatchResult

REPORT_SCHEMA_VERSION = 1


@dataclass(slots=True)
class StructuredLogger:
    records: list[dict[str, Any]] = field(default_factory=list)
    stream: TextIO | None = None

    def log(
        self,
        *,
        operation: str,
        bundle: str | None,
        phase: str | None,
        message: str,
        level: str = "info",
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "level": level,
            "operation": operation,
            "bundle": bundle,
            "phase": phase,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        self.records.append(record)
        if self.stream is not None:
            self.stream.write(message + "\n")
            self.stream.flush()

    def records_for_bundle(self, bundle: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("bundle") == bundle]

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(record, sort_keys=True) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path


@dataclass(frozen=True, slots=True)
class BuildReport:
    context: BuildContext
    result: DispatchResult
    logs: tuple[dict[str, Any], ...] = ()

    def to_json(self, path: str | Path | None = None) -> str:
        encoded = json.dumps(self._payload(), indent=2, sort_keys=True) + "\n"
        if path is not None:
            Path(path).write_text(encoded, encoding="utf-8")
        return encoded

    def to_cbor(self, path: str | Path | None = None) -> bytes:
        encoded = cbor2.dumps(self._payload(), canonical=True)
        if path is not None:
            Path(path).write_bytes(encoded)
        return encoded

    def _payload(self) -> dict[str, object]:
        context = self.context
        return {
            "schema_version": REPORT_SCHEMA_VERSION,
            "version": context.version,
            "commit": context.commit,
            "dirty": context.dirty,
            "build_time": context.build_time,
            "build_tags": list(context.build_tags),
            "build_flags": list(context.build_flags),
            "ldflags": list(context.ldflags),
            "platform": {
                "host": f"{context.host_os}/{context.host_arch}",
                "target": f"{context.target_os}/{context.target_arch}",
            },
            "tools": dict(context.tools),
            "exit_code": self.result.exit_code,
            "failed_bundle": self.result.failed_bundle,
            "bundles": [
                {
                    "name": outcome.name,
                    "dest": outcome.dest,
                    "status": outcome.status,
                    "artifacts": list(outcome.artifacts),
                    "error": outcome.error,
                }
                for outcome in self.result.outcomes
            ],
            "logs": list(self.logs),
        }


def write_build_report(
    version_dir: Path,
    *,
    context: BuildContext,
    result: DispatchResult,
    logger: StructuredLogger,
) -> tuple[Path, Path]:
    report = BuildReport(context=context, result=result, logs=tuple(logger.records))
    json_path = version_dir / "build-report.json"
    cbor_path = version_dir / "build-report.cbor"
    report.to_json(json_path)
    report.to_cbor(cbor_path)
    return json_path, cbor_path


__all__ = ["BuildReport", "REPORT_SCHEMA_VERSION", "StructuredLogger", "write_build_report"]
