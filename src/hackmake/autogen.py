"""Generated Go source carrying build-time version constants."""

from __future__ import annotations

import json
import textwrap
from pathlib import Path

from hackmake.models import BuildContext

AUTOGEN_RELPATH = Path("dockerversion") / "version_autogen.go"

VERSION_AUTOGEN_TEMPLATE = textwrap.dedent("""\
    // +build autogen

    // Package dockerversion is auto-generated at build-time
    package dockerversion

    // Default build-time variable for library-import.
    // This file is overridden on build with build-time informations.
    const (
    \tGitCommit string = {commit}
    \tVersion   string = {version}
    \tBuildTime string = {build_time}
    \tIAmStatic string = {iamstatic}
    )

    // AUTOGENERATED FILE; see hackmake.autogen
""")


def render_version_autogen(context: BuildContext) -> str:
    # JSON string literals are valid Go interpreted string literals.
    return VERSION_AUTOGEN_TEMPLATE.format(
        commit=json.dumps(context.commit),
        version=json.dumps(context.version),
        build_time=json.dumps(context.build_time),
        iamstatic=json.dumps("true" if context.iamstatic else "false"),
    )


def write_version_autogen(repo_root: str | Path, context: BuildContext) -> Path:
    target = Path(repo_root) / AUTOGEN_RELPATH
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(render_version_autogen(context), encoding="utf-8")
    return target


__all__ = ["AUTOGEN_RELPATH", "render_version_autogen", "write_version_autogen"]
