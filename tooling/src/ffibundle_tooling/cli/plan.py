"""`ffibundle plan` and `ffibundle targets`: show what a build would do without running any tool."""

from __future__ import annotations

import sys

from ffibundle_tooling.cli.parse_common import (
    CommandParser,
    add_selection_args,
    config_from_args,
    configure_logging,
)
from ffibundle_tooling.errors import PipelineError
from ffibundle_tooling.pipeline import Pipeline
from ffibundle_tooling.targets import DEFAULT_REFERENCE, DEFAULT_TARGETS, TARGET_CATALOG


def run_plan(argv: list[str]) -> int:
    ap = CommandParser(prog="ffibundle plan", description="Print the build plan")
    add_selection_args(ap)
    args = ap.parse_args(argv)
    configure_logging(args.verbose)
    try:
        config = config_from_args(args)
        pipeline = Pipeline(config)
    except PipelineError as e:
        print(f"❌ {e.render()}", file=sys.stderr)
        return e.exit_code

    matrix = pipeline.matrix
    print(f"Crate:     {config.manifest_path}")
    print(f"Library:   lib{config.lib_name}.a (profile {config.profile})")
    print(f"Reference: {matrix.reference.triple} -> {config.language} bindings in {config.bindings_dir}")
    print("Targets:")
    for t in matrix.targets:
        print(f"  {t.triple:<28} {t.platform:<16} {t.arch}")
    print(f"Bundle:    {config.bundle_path}")
    for entry in pipeline.plan():
        how = "lipo " + " + ".join(entry.triples) if entry.merged else entry.triples[0]
        print(f"  {entry.platform_id:<32} {how}")
    return 0


def run_targets() -> int:
    for triple, t in TARGET_CATALOG.items():
        marks = []
        if triple in DEFAULT_TARGETS:
            marks.append("default")
        if triple == DEFAULT_REFERENCE:
            marks.append("reference")
        suffix = f"  ({', '.join(marks)})" if marks else ""
        print(f"{triple:<28} {t.platform:<16} {t.arch}{suffix}")
    return 0


def run_plan_argv(argv: list[str] | None = None) -> None:
    if argv is None:
        argv = sys.argv[2:] if len(sys.argv) > 2 else []
    sys.exit(run_plan(argv))
