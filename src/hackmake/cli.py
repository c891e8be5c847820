"""Command-line entrypoint.

Usage:
    hackmake [make] [BUNDLE ...]
    hackmake version [--json]
    hackmake dockerfile [-o PATH]
"""

from __future__ import annotations

import argparse
import json
import sys
import warnings
from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

from hackmake.config import BuildConfig
from hackmake.devimage import DevImage, render_dockerfile, write_dockerfile
from hackmake.dispatch import BUNDLES_DIR
from hackmake.errors import HackError
from hackmake.make import MakeInvocation
from hackmake.models import DEFAULT_BUNDLES
from hackmake.observability import StructuredLogger
from hackmake.version import resolve_version

COMMANDS = ("make", "version", "dockerfile")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hackmake",
        description="Build bundles for a source checkout.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    make_p = sub.add_parser("make", help="Build the named bundles (default list when none)")
    make_p.add_argument(
        "bundles",
        nargs="*",
        metavar="BUNDLE",
        help=f"Bundles to build; defaults to: {' '.join(DEFAULT_BUNDLES)}",
    )
    make_p.add_argument("--repo-root", type=Path, default=Path("."), help="Source checkout root")
    make_p.add_argument("--bundles-dir", type=Path, default=None, help="Override bundles/ output")
    make_p.add_argument("--log-json", type=Path, default=None, help="Write JSON-lines log here")

    version_p = sub.add_parser("version", help="Print resolved version metadata")
    version_p.add_argument("--repo-root", type=Path, default=Path("."), help="Source checkout root")
    version_p.add_argument("--json", action="store_true", help="Emit JSON")

    dockerfile_p = sub.add_parser("dockerfile", help="Render the build-environment Dockerfile")
    dockerfile_p.add_argument("-o", "--output", type=Path, default=None, help="Write to PATH")
    dockerfile_p.add_argument("--base-image", default=None, help="Override the FROM image")
    return parser


def _normalize_argv(argv: Sequence[str]) -> list[str]:
    args = list(argv)
    if not args or (args[0] not in COMMANDS and args[0] not in ("-h", "--help")):
        return ["make", *args]
    return args


def cmd_make(args: argparse.Namespace, *, stdout: TextIO) -> int:
    logger = StructuredLogger(stream=stdout)
    invocation = MakeInvocation(
        repo_root=args.repo_root.resolve(),
        config=BuildConfig.from_env(),
        logger=logger,
        bundles_dir=Path(BUNDLES_DIR) if args.bundles_dir is None else args.bundles_dir.resolve(),
    )
    try:
        result = invocation.run(args.bundles)
    finally:
        if args.log_json is not None:
            logger.to_json_lines(args.log_json)
    if result.failure is not None:
        print(f"error: {result.failure}", file=sys.stderr)
    return result.exit_code


def cmd_version(args: argparse.Namespace, *, stdout: TextIO) -> int:
    info = resolve_version(args.repo_root.resolve(), BuildConfig.from_env())
    if args.json:
        payload = {
            "version": info.version,
            "commit": info.commit,
            "dirty": info.dirty,
            "build_time": info.build_time,
        }
        stdout.write(json.dumps(payload, indent=2, sort_keys=True) + "\n")
    else:
        stdout.write(f"{info.version} ({info.commit})\n")
    return 0


def cmd_dockerfile(args: argparse.Namespace, *, stdout: TextIO) -> int:
    image = DevImage(base_image=args.base_image) if args.base_image else DevImage()
    if args.output is None:
        stdout.write(render_dockerfile(image))
    else:
        write_dockerfile(args.output, image)
        stdout.write(f"Wrote {args.output}\n")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(_normalize_argv(sys.argv[1:] if argv is None else argv))
    stdout = sys.stdout
    handlers = {"make": cmd_make, "version": cmd_version, "dockerfile": cmd_dockerfile}
    with warnings.catch_warnings():
        warnings.simplefilter("default")
        try:
            return handlers[args.command](args, stdout=stdout)
        except HackError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1


if __name__ == "__main__":
    raise SystemExit(main())
