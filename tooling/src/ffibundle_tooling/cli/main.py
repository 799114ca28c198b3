"""Main CLI entry point for ffibundle tooling."""

import sys

from ffibundle_tooling.cli import build as build_cli
from ffibundle_tooling.cli import plan as plan_cli


def _usage() -> None:
    print("Usage: ffibundle <command> [args...]", file=sys.stderr)
    print("Commands:", file=sys.stderr)
    print(
        "  build    - Build all targets, generate bindings, lipo, assemble the XCFramework",
        file=sys.stderr,
    )
    print("  plan     - Show target matrix, platform grouping and bundle entries", file=sys.stderr)
    print("  targets  - List known target triples", file=sys.stderr)


def main() -> None:
    """Main CLI entry point."""
    if len(sys.argv) < 2:
        _usage()
        sys.exit(1)

    command = sys.argv[1]

    if command == "build":
        build_cli.run_build_argv()
    elif command == "plan":
        plan_cli.run_plan_argv()
    elif command == "targets":
        sys.exit(plan_cli.run_targets())
    elif command in ("-h", "--help", "help"):
        _usage()
        sys.exit(0)
    else:
        print(f"Error: Unknown command: {command}", file=sys.stderr)
        _usage()
        sys.exit(1)


if __name__ == "__main__":
    main()
