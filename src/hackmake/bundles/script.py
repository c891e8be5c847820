"""Bundles backed by ``hack/make/<name>`` shell scripts."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from hackmake.bundles.base import BundleRun, run_command
from hackmake.errors import BundleFailure

SCRIPT_DIR = Path("hack") / "make"


@dataclass(slots=True)
class ScriptBundle:
    name: str
    script: Path

    def run(self, run: BundleRun) -> None:
        if not self.script.is_file():
            raise BundleFailure(
                "Bundle script does not exist.",
                bundle=self.name,
                hint=f"Add {SCRIPT_DIR / self.name} or pick a built-in bundle.",
                context={"script": str(self.script)},
            )
        run_command(run, ("bash", str(self.script)), log_path=run.dest / "bundle.log")


__all__ = ["SCRIPT_DIR", "ScriptBundle"]
