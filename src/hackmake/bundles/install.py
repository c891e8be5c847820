"""Installs previously built client and daemon binaries on the host."""

from __future__ import annotations

from dataclasses import dataclass

from hackmake.artifacts import binary_extension, install_binary
from hackmake.bundles.base import BundleRun
from hackmake.errors import BundleFailure, ValidationError

INSTALLED_BINARIES: tuple[tuple[str, str], ...] = (
    ("binary-client", "docker"),
    ("binary-daemon", "dockerd"),
)


@dataclass(slots=True)
class InstallBinaryBundle:
    name: str = "install-binary"

    def run(self, run: BundleRun) -> None:
        ext = binary_extension(run.context.target_os)
        for bundle, binary in INSTALLED_BINARIES:
            built = run.version_dir / bundle / f"{binary}-{run.context.version}{ext}"
            if not built.is_file():
                raise BundleFailure(
                    "Binary to install has not been built.",
                    bundle=self.name,
                    hint=f"Run the {bundle} bundle first.",
                    context={"path": str(built)},
                )
            link = built.with_name(f"{binary}{ext}")
            try:
                target = install_binary(
                    link if link.exists() else built,
                    prefix=run.config.install_prefix,
                    target_os=run.context.target_os,
                )
            except ValidationError as exc:
                raise BundleFailure(exc.args[0], bundle=self.name, context=exc.context) from exc
            run.artifacts.append(target)
            run.log(f"Installing {target.name} to {target.parent}", operation="install")


__all__ = ["INSTALLED_BINARIES", "InstallBinaryBundle"]
