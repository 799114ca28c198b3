"""`ffibundle build`: run the whole pipeline and write the XCFramework."""

from __future__ import annotations

import argparse
import sys

from ffibundle_tooling.cli.parse_common import (
    CommandParser,
    add_selection_args,
    config_from_args,
    configure_logging,
)
from ffibundle_tooling.errors import PipelineError
from ffibundle_tooling.pipeline import run_pipeline


def build_parser() -> argparse.ArgumentParser:
    ap = CommandParser(
        prog="ffibundle build",
        description="Build every target, generate bindings once, lipo, and assemble the XCFramework",
    )
    add_selection_args(ap)
    ap.add_argument(
        "--skip-provision",
        action="store_true",
        help="Do not run rustup (toolchain and targets already installed)",
    )
    ap.add_argument("--jobs", "-j", type=int, default=1, help="Parallel target builds (default: 1)")
    ap.add_argument(
        "--zip",
        action="store_true",
        help="Also write <bundle>.zip and its sha256 checksum",
    )
    return ap


def run_build(argv: list[str]) -> int:
    """Parse argv and run the pipeline. Returns 0 or the failing stage's exit code."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    try:
        config = config_from_args(args)
        bundle = run_pipeline(
            config,
            skip_provision=args.skip_provision,
            jobs=args.jobs,
            archive=args.zip,
        )
    except PipelineError as e:
        print(f"❌ {e.render()}", file=sys.stderr)
        return e.exit_code
    print(f"🎉 {bundle.path} ({len(bundle.entries)} platform(s))")
    if bundle.checksum:
        print(f"   checksum: {bundle.checksum}")
    return 0


def run_build_argv(argv: list[str] | None = None) -> None:
    """Entry for `ffibundle build`; argv defaults to sys.argv[2:]."""
    if argv is None:
        argv = sys.argv[2:] if len(sys.argv) > 2 else []  # skip 'ffibundle build'
    sys.exit(run_build(argv))
