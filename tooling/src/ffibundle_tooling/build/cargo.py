"""cargo invocation and output layout for per-target builds.

Everything is passed as a fully-qualified path (--manifest-path, --target-dir),
so builds never depend on the process working directory.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

from ffibundle_tooling.helpers import Runner, run_command

# cargo writes dev/test builds to target/<triple>/debug and release/bench to .../release.
_PROFILE_DIRS = {"dev": "debug", "test": "debug", "release": "release", "bench": "release"}


def profile_dir_name(profile: str) -> str:
    """Directory cargo uses for a profile's output (custom profiles use their own name)."""
    return _PROFILE_DIRS.get(profile, profile)


def target_output_dir(target_dir: Path, triple: str, profile: str) -> Path:
    """Target-scoped output directory: <target_dir>/<triple>/<profile dir>."""
    return target_dir / triple / profile_dir_name(profile)


class CargoToolchain:
    """cargo build for one target triple. Returns the completed process; callers check it."""

    def __init__(
        self,
        cargo: str = "cargo",
        toolchain: str = "",
        runner: Runner = run_command,
    ) -> None:
        self.cargo = cargo
        self.toolchain = toolchain
        self._run = runner

    def base_cmd(self) -> list[str]:
        """cargo, plus +toolchain when one is pinned."""
        return [self.cargo, f"+{self.toolchain}"] if self.toolchain else [self.cargo]

    def compile(
        self,
        manifest: Path,
        triple: str,
        profile: str,
        target_dir: Path,
        package: str = "",
    ) -> subprocess.CompletedProcess[str]:
        pkg = ["--package", package] if package else []
        cmd = [
            *self.base_cmd(),
            "build",
            "--manifest-path",
            str(manifest),
            *pkg,
            "--profile",
            profile,
            "--target",
            triple,
            "--target-dir",
            str(target_dir),
        ]
        return self._run(cmd)
