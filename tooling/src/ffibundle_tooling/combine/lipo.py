"""Combine sibling-architecture static archives of one platform into a universal archive with lipo."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from ffibundle_tooling.build.cargo import profile_dir_name
from ffibundle_tooling.build.per_target import ArtifactKind, BuildArtifact, BuildOutputs
from ffibundle_tooling.config import PipelineConfig
from ffibundle_tooling.errors import MergeError
from ffibundle_tooling.helpers import Runner, diagnostics, is_nonempty_file, run_command
from ffibundle_tooling.targets import Target, TargetMatrix, group_by_platform, needs_merge

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergedArtifact:
    platform: str
    constituents: tuple[Target, ...]
    path: Path
    profile: str

    @property
    def architectures(self) -> frozenset[str]:
        return frozenset(t.arch for t in self.constituents)


class LipoTool:
    """lipo -create. Returns the completed process; callers check it."""

    def __init__(self, lipo: str = "lipo", runner: Runner = run_command) -> None:
        self.lipo = lipo
        self._run = runner

    def create(self, inputs: Sequence[Path], output: Path) -> subprocess.CompletedProcess[str]:
        return self._run([self.lipo, "-create", *(str(p) for p in inputs), "-output", str(output)])


def merged_output_path(config: PipelineConfig, platform: str) -> Path:
    """<target_dir>/lipo-<platform>/<profile dir>/lib<name>.a"""
    return (
        config.target_dir
        / f"lipo-{platform}"
        / profile_dir_name(config.profile)
        / f"lib{config.lib_name}.a"
    )


def _validate(artifacts: Sequence[BuildArtifact]) -> None:
    if len(artifacts) < 2:
        msg = f"Merging needs at least two archives, got {len(artifacts)}"
        raise MergeError(msg)
    not_static = [a.target.triple for a in artifacts if a.kind is not ArtifactKind.STATIC_ARCHIVE]
    if not_static:
        msg = f"Only static archives can be merged: {', '.join(not_static)}"
        raise MergeError(msg)
    missing = [str(a.path) for a in artifacts if not is_nonempty_file(a.path)]
    if missing:
        msg = f"Missing constituent archive(s): {', '.join(missing)}"
        raise MergeError(msg)
    platforms = {a.target.platform for a in artifacts}
    if len(platforms) > 1:
        msg = f"Archives span several platforms: {', '.join(sorted(platforms))}"
        raise MergeError(msg)
    profiles = {a.profile for a in artifacts}
    if len(profiles) > 1:
        msg = f"Archives built with different profiles: {', '.join(sorted(profiles))}"
        raise MergeError(msg)
    names = {a.path.name for a in artifacts}
    if len(names) > 1:
        msg = f"Archives are of different libraries: {', '.join(sorted(names))}"
        raise MergeError(msg)
    archs = [a.target.arch for a in artifacts]
    duplicates = sorted({x for x in archs if archs.count(x) > 1})
    if duplicates:
        msg = f"Architecture appears more than once: {', '.join(duplicates)}"
        raise MergeError(msg)


def merge_archives(
    artifacts: Sequence[BuildArtifact],
    output: Path,
    lipo: LipoTool,
) -> MergedArtifact:
    """Merge archives into output. Inputs are ordered by architecture, so input order never matters."""
    _validate(artifacts)
    ordered = sorted(artifacts, key=lambda a: a.target.arch)
    platform = ordered[0].target.platform

    output.parent.mkdir(parents=True, exist_ok=True)
    if output.exists():
        output.unlink()
    archs = ", ".join(a.target.arch for a in ordered)
    print(f"🔗 Merging {platform} ({archs})...")
    result = lipo.create([a.path for a in ordered], output)
    if result.returncode != 0:
        msg = f"lipo failed for {platform} (exit {result.returncode})"
        raise MergeError(msg, diagnostics=diagnostics(result))
    if not is_nonempty_file(output):
        msg = f"lipo reported success but {output} is missing or empty"
        raise MergeError(msg, diagnostics=diagnostics(result))
    print(f"  ✅ {output}")
    return MergedArtifact(platform, tuple(a.target for a in ordered), output, ordered[0].profile)


def combine_platforms(
    matrix: TargetMatrix,
    outputs: BuildOutputs,
    config: PipelineConfig,
    lipo: LipoTool,
) -> dict[str, MergedArtifact | BuildArtifact]:
    """Final library per platform: merged archive for multi-arch platforms, the bare archive otherwise."""
    libraries: dict[str, MergedArtifact | BuildArtifact] = {}
    for platform, targets in group_by_platform(matrix).items():
        if needs_merge(targets):
            archives = [outputs.archive_for(t) for t in targets]
            libraries[platform] = merge_archives(
                archives, merged_output_path(config, platform), lipo
            )
        else:
            log.debug("%s has one architecture; no merge", platform)
            libraries[platform] = outputs.archive_for(targets[0])
    return libraries
