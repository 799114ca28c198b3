"""Shared CLI arguments (--config, --targets, --profile, ...) and config resolution for build/plan."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, NoReturn

from ffibundle_tooling.config import PipelineConfig, find_default_config, load_config
from ffibundle_tooling.targets import parse_target_list


def path_resolver(s: str) -> Path:
    """Resolve a path argument to absolute Path (e.g. --project-root, --output-dir)."""
    return Path(s).resolve()


class CommandParser(argparse.ArgumentParser):
    """ArgumentParser whose usage errors exit 1 (exit 2 is reserved for configuration errors)."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def add_selection_args(ap: argparse.ArgumentParser) -> None:
    """Flags shared by `ffibundle build` and `ffibundle plan`."""
    ap.add_argument(
        "--config",
        type=path_resolver,
        default=None,
        help="Config file (default: <project-root>/ffibundle.yaml if present)",
    )
    ap.add_argument(
        "--project-root",
        type=path_resolver,
        default=Path.cwd(),
        help="Base directory for relative paths and the default config (default: cwd)",
    )
    ap.add_argument(
        "--targets",
        type=parse_target_list,
        default=None,
        help="Comma-separated target triples (overrides the target matrix)",
    )
    ap.add_argument("--reference", default=None, help="Reference target for binding generation")
    ap.add_argument("--profile", default=None, help="cargo profile (default: release-smaller)")
    ap.add_argument(
        "--output-dir",
        type=path_resolver,
        default=None,
        help="Directory the .xcframework is written to",
    )
    ap.add_argument("--lib-name", default=None, help="cargo [lib] name (libNAME.a)")
    ap.add_argument("--verbose", "-v", action="store_true", help="Debug logging")


def overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "targets": args.targets,
        "reference_target": args.reference,
        "profile": args.profile,
        "output_dir": args.output_dir,
        "lib_name": args.lib_name,
    }


def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    """Load config file (explicit or default) and apply flag overrides. Raises ConfigurationError."""
    config_path = args.config or find_default_config(args.project_root)
    return load_config(config_path, overrides_from_args(args), base_dir=args.project_root)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
