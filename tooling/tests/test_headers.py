"""Tests for ffibundle_tooling.headers."""

from pathlib import Path

import pytest

from ffibundle_tooling.errors import RelocationError
from ffibundle_tooling.gen import BindingOutput
from ffibundle_tooling.headers import MODULEMAP_NAME, normalize_modulemap, relocate_headers

MODULEMAP = """module DeffiFFI {
    header "Sources/Deffi/DeffiFFI.h"
    export *
}"""


def _binding(tmp_path: Path, *, header: bool = True, modulemap: bool = True) -> BindingOutput:
    gen = tmp_path / "gen"
    gen.mkdir()
    src = gen / "Deffi.swift"
    src.write_text("// swift\n")
    h = gen / "DeffiFFI.h"
    m = gen / "DeffiFFI.modulemap"
    if header:
        h.write_text("#pragma once\n")
    if modulemap:
        m.write_text(MODULEMAP)
    return BindingOutput("swift", gen, (src,), h, m)


class TestNormalizeModulemap:
    def test_header_reduced_to_basename_and_trailing_blank_line(self) -> None:
        out = normalize_modulemap(MODULEMAP)
        assert 'header "DeffiFFI.h"' in out
        assert "Sources/" not in out
        assert out.endswith("}\n\n")

    def test_umbrella_header_and_crlf(self) -> None:
        out = normalize_modulemap('module M {\r\n  umbrella header "a/b/M.h"\r\n}\r\n\r\n\r\n')
        assert 'umbrella header "M.h"' in out
        assert "\r" not in out
        assert out.endswith("}\n\n")

    def test_idempotent(self) -> None:
        once = normalize_modulemap(MODULEMAP)
        assert normalize_modulemap(once) == once


class TestRelocateHeaders:
    def test_moves_header_and_writes_module_modulemap(self, tmp_path: Path) -> None:
        binding = _binding(tmp_path)
        include = tmp_path / "target" / "include"
        hs = relocate_headers(binding, include)
        assert hs.include_dir == include
        assert hs.header == include / "DeffiFFI.h"
        assert hs.modulemap == include / MODULEMAP_NAME
        assert hs.header.read_text() == "#pragma once\n"
        assert 'header "DeffiFFI.h"' in hs.modulemap.read_text()
        assert not binding.header.exists()
        assert not binding.modulemap.exists()
        assert binding.sources[0].exists()

    def test_clears_stale_include_dir(self, tmp_path: Path) -> None:
        include = tmp_path / "include"
        include.mkdir()
        (include / "Old.h").write_text("old")
        relocate_headers(_binding(tmp_path), include)
        assert sorted(p.name for p in include.iterdir()) == ["DeffiFFI.h", MODULEMAP_NAME]

    def test_missing_header_raises(self, tmp_path: Path) -> None:
        include = tmp_path / "include"
        with pytest.raises(RelocationError, match="DeffiFFI.h"):
            relocate_headers(_binding(tmp_path, header=False), include)
        assert not include.exists()

    def test_language_without_header_raises(self, tmp_path: Path) -> None:
        binding = BindingOutput("kotlin", tmp_path, (tmp_path / "a.kt",), None, None)
        with pytest.raises(RelocationError) as exc:
            relocate_headers(binding, tmp_path / "include")
        assert exc.value.exit_code == 7
