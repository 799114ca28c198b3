"""Universal (fat) static archives for platforms that ship several architectures in one slice."""

from .lipo import LipoTool, MergedArtifact, combine_platforms, merge_archives, merged_output_path

__all__ = [
    "LipoTool",
    "MergedArtifact",
    "combine_platforms",
    "merge_archives",
    "merged_output_path",
]
