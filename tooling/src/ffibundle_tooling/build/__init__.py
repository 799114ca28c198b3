"""Per-target cargo builds (static archive per target, dylib for the reference target)."""

from .cargo import CargoToolchain, profile_dir_name, target_output_dir
from .per_target import (
    ArtifactKind,
    BuildArtifact,
    BuildOutputs,
    artifact_path,
    build_all,
    build_target,
)

__all__ = [
    "ArtifactKind",
    "BuildArtifact",
    "BuildOutputs",
    "CargoToolchain",
    "artifact_path",
    "build_all",
    "build_target",
    "profile_dir_name",
    "target_output_dir",
]
