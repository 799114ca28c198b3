"""Tests for ffibundle_tooling.combine (lipo merges per platform)."""

from dataclasses import replace
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from ffibundle_tooling.build import ArtifactKind, BuildArtifact, build_all
from ffibundle_tooling.combine import (
    LipoTool,
    MergedArtifact,
    combine_platforms,
    merge_archives,
    merged_output_path,
)
from ffibundle_tooling.errors import MergeError
from ffibundle_tooling.targets import get_target, resolve_target_matrix


def _archive(tmp_path: Path, triple: str, profile: str = "release-smaller", name: str = "libdeffi.a"):
    p = tmp_path / triple / profile / name
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(b"!<arch>\n" + triple.encode())
    return BuildArtifact(get_target(triple), ArtifactKind.STATIC_ARCHIVE, p, profile)


class TestLipoTool:
    def test_create_command(self, tmp_path: Path) -> None:
        run = MagicMock(return_value=MagicMock(returncode=0))
        LipoTool("lipo", runner=run).create([tmp_path / "a.a", tmp_path / "b.a"], tmp_path / "o.a")
        (cmd,) = run.call_args[0]
        assert cmd == [
            "lipo",
            "-create",
            str(tmp_path / "a.a"),
            str(tmp_path / "b.a"),
            "-output",
            str(tmp_path / "o.a"),
        ]


class TestMergeArchives:
    def test_merge_is_order_independent(self, tmp_path, tools, fake_runner) -> None:
        a = _archive(tmp_path, "x86_64-apple-darwin")
        b = _archive(tmp_path, "aarch64-apple-darwin")
        m1 = merge_archives([a, b], tmp_path / "m1" / "libdeffi.a", tools.lipo)
        m2 = merge_archives([b, a], tmp_path / "m2" / "libdeffi.a", tools.lipo)
        assert m1.architectures == m2.architectures == frozenset({"arm64", "x86_64"})
        assert m1.path.read_bytes() == m2.path.read_bytes()
        lipo_inputs = [c[2:4] for c in fake_runner.calls_for("lipo")]
        assert lipo_inputs[0] == lipo_inputs[1] == [str(b.path), str(a.path)]
        assert m1.platform == "macos"

    def test_needs_two_inputs(self, tmp_path, tools) -> None:
        with pytest.raises(MergeError, match="at least two"):
            merge_archives([_archive(tmp_path, "aarch64-apple-ios")], tmp_path / "o.a", tools.lipo)

    def test_missing_constituent(self, tmp_path, tools, fake_runner) -> None:
        a = _archive(tmp_path, "x86_64-apple-darwin")
        b = _archive(tmp_path, "aarch64-apple-darwin")
        b.path.unlink()
        with pytest.raises(MergeError, match="Missing constituent"):
            merge_archives([a, b], tmp_path / "o.a", tools.lipo)
        assert fake_runner.calls_for("lipo") == []

    def test_profiles_must_match(self, tmp_path, tools) -> None:
        a = _archive(tmp_path, "x86_64-apple-darwin", profile="release")
        b = _archive(tmp_path, "aarch64-apple-darwin", profile="release-smaller")
        with pytest.raises(MergeError, match="different profiles"):
            merge_archives([a, b], tmp_path / "o.a", tools.lipo)

    def test_platforms_must_match(self, tmp_path, tools) -> None:
        a = _archive(tmp_path, "x86_64-apple-darwin")
        b = _archive(tmp_path, "aarch64-apple-ios")
        with pytest.raises(MergeError, match="several platforms"):
            merge_archives([a, b], tmp_path / "o.a", tools.lipo)

    def test_library_must_match(self, tmp_path, tools) -> None:
        a = _archive(tmp_path, "x86_64-apple-darwin")
        b = _archive(tmp_path, "aarch64-apple-darwin", name="libother.a")
        with pytest.raises(MergeError, match="different libraries"):
            merge_archives([a, b], tmp_path / "o.a", tools.lipo)

    def test_duplicate_architecture(self, tmp_path, tools) -> None:
        a = _archive(tmp_path, "x86_64-apple-darwin")
        with pytest.raises(MergeError, match="more than once: x86_64"):
            merge_archives([a, replace(a)], tmp_path / "o.a", tools.lipo)

    def test_only_static_archives(self, tmp_path, tools) -> None:
        a = _archive(tmp_path, "x86_64-apple-darwin")
        b = replace(_archive(tmp_path, "aarch64-apple-darwin"), kind=ArtifactKind.DYNAMIC_LIBRARY)
        with pytest.raises(MergeError, match="Only static archives"):
            merge_archives([a, b], tmp_path / "o.a", tools.lipo)

    def test_lipo_failure(self, tmp_path, tools, fake_runner) -> None:
        fake_runner.failures["lipo"] = (1, "fatal error: have the same architectures")
        a = _archive(tmp_path, "x86_64-apple-darwin")
        b = _archive(tmp_path, "aarch64-apple-darwin")
        with pytest.raises(MergeError) as exc:
            merge_archives([a, b], tmp_path / "o.a", tools.lipo)
        assert "same architectures" in exc.value.diagnostics
        assert exc.value.exit_code == 6


class TestCombinePlatforms:
    def test_default_matrix_merges_two_platforms(self, config, tools, fake_runner) -> None:
        matrix = resolve_target_matrix(config.targets, config.reference_target)
        libs = combine_platforms(matrix, build_all(matrix, config, tools.cargo), config, tools.lipo)
        assert list(libs) == ["macos", "ios-simulator", "ios"]
        assert isinstance(libs["macos"], MergedArtifact)
        assert isinstance(libs["ios-simulator"], MergedArtifact)
        assert isinstance(libs["ios"], BuildArtifact)
        assert libs["macos"].path == merged_output_path(config, "macos")
        assert libs["macos"].path == config.target_dir / "lipo-macos" / "release-smaller" / "libdeffi.a"
        assert len(fake_runner.calls_for("lipo")) == 2

    def test_single_arch_platforms_need_no_merge(self, config, tools, fake_runner) -> None:
        matrix = resolve_target_matrix(
            ["aarch64-apple-ios", "aarch64-apple-darwin", "aarch64-apple-ios-sim"],
            "aarch64-apple-ios",
        )
        libs = combine_platforms(matrix, build_all(matrix, config, tools.cargo), config, tools.lipo)
        assert all(isinstance(lib, BuildArtifact) for lib in libs.values())
        assert fake_runner.calls_for("lipo") == []
