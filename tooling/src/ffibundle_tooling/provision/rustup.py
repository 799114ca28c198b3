"""rustup provisioning: toolchain, rust-src component and every cross-compilation target.

The user's default toolchain is never changed; cargo is invoked as ``cargo +<toolchain>``
instead (see build.cargo).
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Iterable, Sequence

from ffibundle_tooling.errors import ProvisioningError
from ffibundle_tooling.helpers import Runner, diagnostics, run_command
from ffibundle_tooling.targets import TargetMatrix

log = logging.getLogger(__name__)

REQUIRED_COMPONENTS = ("rust-src",)


class RustupProvisioner:
    """Thin wrapper over the rustup CLI. Methods return the completed process; callers check it."""

    def __init__(
        self,
        rustup: str = "rustup",
        toolchain: str = "stable",
        runner: Runner = run_command,
    ) -> None:
        self.rustup = rustup
        self.toolchain = toolchain
        self._run = runner

    def _toolchain_args(self) -> list[str]:
        return ["--toolchain", self.toolchain] if self.toolchain else []

    def install_toolchain(self) -> subprocess.CompletedProcess[str] | None:
        if not self.toolchain:
            return None
        return self._run([self.rustup, "toolchain", "install", self.toolchain, "--profile", "minimal"])

    def add_component(self, name: str) -> subprocess.CompletedProcess[str]:
        return self._run([self.rustup, "component", "add", name, *self._toolchain_args()])

    def add_targets(self, triples: Sequence[str]) -> subprocess.CompletedProcess[str]:
        return self._run([self.rustup, "target", "add", *self._toolchain_args(), *triples])


def missing_executables(names: Iterable[str]) -> list[str]:
    """Executables from names that shutil.which cannot resolve, in order, without duplicates."""
    out: list[str] = []
    for name in names:
        if name and name not in out and shutil.which(name) is None:
            out.append(name)
    return out


def _check(result: subprocess.CompletedProcess[str] | None, what: str) -> None:
    if result is None:
        return
    if result.returncode != 0:
        msg = f"{what} failed (exit {result.returncode})"
        raise ProvisioningError(msg, diagnostics=diagnostics(result))
    log.debug("%s ok", what)


def provision(
    matrix: TargetMatrix,
    provisioner: RustupProvisioner,
    required_executables: Sequence[str] = (),
) -> None:
    """Install toolchain, components and all matrix targets. Raises ProvisioningError; nothing is built on failure."""
    missing = missing_executables(required_executables)
    if missing:
        msg = f"Required tools not found on PATH: {', '.join(missing)}"
        raise ProvisioningError(msg)

    label = provisioner.toolchain or "default"
    print(f"🔧 Provisioning Rust toolchain ({label})...")
    _check(provisioner.install_toolchain(), f"rustup toolchain install {provisioner.toolchain}")
    for component in REQUIRED_COMPONENTS:
        _check(provisioner.add_component(component), f"rustup component add {component}")
    _check(
        provisioner.add_targets(matrix.triples),
        f"rustup target add {' '.join(matrix.triples)}",
    )
    print(f"  ✅ {len(matrix.targets)} target(s) installed")
