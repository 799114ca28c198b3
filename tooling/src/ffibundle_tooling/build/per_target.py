"""Per-target builds: one cargo build per target, static archive always, dylib for the reference target.

Builds are independent (each writes only under <target_dir>/<triple>/) and may
run in parallel; the first failure cancels builds that have not started and is
re-raised. Stale outputs are removed before each build so a build that writes
nothing fails instead of reusing the previous run's file.
"""

from __future__ import annotations

import enum
import logging
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path

from ffibundle_tooling.build.cargo import CargoToolchain, target_output_dir
from ffibundle_tooling.config import PipelineConfig
from ffibundle_tooling.errors import BuildError
from ffibundle_tooling.helpers import diagnostics, is_nonempty_file
from ffibundle_tooling.targets import Target, TargetMatrix

log = logging.getLogger(__name__)


class ArtifactKind(enum.Enum):
    STATIC_ARCHIVE = "static-archive"
    DYNAMIC_LIBRARY = "dynamic-library"


@dataclass(frozen=True)
class BuildArtifact:
    target: Target
    kind: ArtifactKind
    path: Path
    profile: str


@dataclass(frozen=True)
class BuildOutputs:
    """Static archive per target (matrix order) and the reference target's dylib."""

    archives: dict[str, BuildArtifact]
    reference_dylib: BuildArtifact

    def archive_for(self, target: Target) -> BuildArtifact:
        return self.archives[target.triple]


def artifact_path(config: PipelineConfig, target: Target, kind: ArtifactKind) -> Path:
    out_dir = target_output_dir(config.target_dir, target.triple, config.profile)
    if kind is ArtifactKind.STATIC_ARCHIVE:
        return out_dir / target.static_lib_name(config.lib_name)
    return out_dir / target.dylib_name(config.lib_name)


def build_target(
    target: Target,
    config: PipelineConfig,
    toolchain: CargoToolchain,
    *,
    dynamic: bool = False,
) -> list[BuildArtifact]:
    """Compile config's crate for target. Returns [static] or [static, dylib]. Raises BuildError."""
    kinds = [ArtifactKind.STATIC_ARCHIVE]
    if dynamic:
        kinds.append(ArtifactKind.DYNAMIC_LIBRARY)
    expected = [(kind, artifact_path(config, target, kind)) for kind in kinds]

    for _, path in expected:
        if path.exists():
            log.debug("Removing stale %s", path)
            path.unlink()

    print(f"🔨 Building {target.triple} ({config.profile})...")
    result = toolchain.compile(
        config.manifest_path,
        target.triple,
        config.profile,
        config.target_dir,
        package=config.package,
    )
    if result.returncode != 0:
        raise BuildError(
            target,
            f"cargo build failed (exit {result.returncode})",
            returncode=result.returncode,
            diagnostics=diagnostics(result),
        )

    artifacts: list[BuildArtifact] = []
    for kind, path in expected:
        if not is_nonempty_file(path):
            msg = f"cargo reported success but {kind.value} {path} is missing or empty"
            raise BuildError(target, msg, returncode=result.returncode, diagnostics=diagnostics(result))
        artifacts.append(BuildArtifact(target, kind, path, config.profile))
    print(f"  ✅ {target.triple}")
    return artifacts


def build_all(
    matrix: TargetMatrix,
    config: PipelineConfig,
    toolchain: CargoToolchain,
    jobs: int = 1,
) -> BuildOutputs:
    """Build every target in the matrix. Fail-fast: the first BuildError aborts the rest."""
    if jobs < 1:
        jobs = 1
    results: dict[str, list[BuildArtifact]] = {}

    if jobs == 1:
        for t in matrix.targets:
            results[t.triple] = build_target(t, config, toolchain, dynamic=t == matrix.reference)
    else:
        with ThreadPoolExecutor(max_workers=jobs) as pool:
            futures: dict[Future[list[BuildArtifact]], Target] = {
                pool.submit(build_target, t, config, toolchain, dynamic=t == matrix.reference): t
                for t in matrix.targets
            }
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            failed = [f for f in done if f.exception() is not None]
            if failed:
                for f in pending:
                    f.cancel()
                # Report the earliest failing target in matrix order.
                first = min(failed, key=lambda f: matrix.targets.index(futures[f]))
                raise first.exception()  # type: ignore[misc]
            for f, t in futures.items():
                results[t.triple] = f.result()

    archives = {
        t.triple: next(a for a in results[t.triple] if a.kind is ArtifactKind.STATIC_ARCHIVE)
        for t in matrix.targets
    }
    dylibs = [
        a for a in results[matrix.reference.triple] if a.kind is ArtifactKind.DYNAMIC_LIBRARY
    ]
    if not dylibs:
        raise BuildError(matrix.reference, "no dynamic library was built for the reference target")
    return BuildOutputs(archives, dylibs[0])
