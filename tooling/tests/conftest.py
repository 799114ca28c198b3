"""Pytest fixtures for ffibundle tooling tests.

FakeToolRunner stands in for subprocess: it records every command and writes the
files rustup/cargo/uniffi-bindgen/lipo/xcodebuild would write, so the pipeline
runs end to end without a Rust or Xcode toolchain.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from ffibundle_tooling.build.cargo import profile_dir_name
from ffibundle_tooling.config import PipelineConfig, load_config
from ffibundle_tooling.pipeline import PipelineTools

MACHO_MAGIC = b"\xcf\xfa\xed\xfe"


def _arg_after(cmd: list[str], flag: str) -> str:
    return cmd[cmd.index(flag) + 1]


class FakeToolRunner:
    def __init__(self, config: PipelineConfig) -> None:
        self.config = config
        self.calls: list[list[str]] = []
        # tool key ("rustup", "cargo-build", "cargo-build:<triple>", "uniffi", "lipo", "xcodebuild")
        # -> (returncode, stderr)
        self.failures: dict[str, tuple[int, str]] = {}
        # tool keys that exit 0 but write nothing
        self.silent: set[str] = set()

    @staticmethod
    def classify(cmd: list[str]) -> str:
        name = Path(cmd[0]).name
        if name == "rustup":
            return "rustup"
        if name == "lipo":
            return "lipo"
        if name == "xcodebuild":
            return "xcodebuild"
        if name == "uniffi-bindgen" or "uniffi-bindgen" in cmd:
            return "uniffi"
        if name == "cargo" and "build" in cmd:
            return "cargo-build"
        return name

    def calls_for(self, tool: str) -> list[list[str]]:
        return [c for c in self.calls if self.classify(c) == tool]

    def __call__(self, cmd, cwd=None, env=None) -> subprocess.CompletedProcess[str]:
        cmd = [str(c) for c in cmd]
        self.calls.append(cmd)
        tool = self.classify(cmd)
        keys = [tool]
        if tool == "cargo-build":
            keys.insert(0, f"cargo-build:{_arg_after(cmd, '--target')}")
        for key in keys:
            if key in self.failures:
                rc, err = self.failures[key]
                return subprocess.CompletedProcess(cmd, rc, "", err)
        if tool not in self.silent:
            handler = getattr(self, "_" + tool.replace("-", "_"), None)
            if handler is not None:
                handler(cmd)
        return subprocess.CompletedProcess(cmd, 0, "", "")

    def _cargo_build(self, cmd: list[str]) -> None:
        triple = _arg_after(cmd, "--target")
        out = Path(_arg_after(cmd, "--target-dir")) / triple / profile_dir_name(
            _arg_after(cmd, "--profile")
        )
        out.mkdir(parents=True, exist_ok=True)
        lib = self.config.lib_name
        (out / f"lib{lib}.a").write_bytes(b"!<arch>\n" + triple.encode())
        (out / f"lib{lib}.dylib").write_bytes(MACHO_MAGIC + triple.encode())

    def _uniffi(self, cmd: list[str]) -> None:
        out = Path(_arg_after(cmd, "--out-dir"))
        out.mkdir(parents=True, exist_ok=True)
        ffi = self.config.ffi_module_name
        (out / f"{self.config.module_name}.swift").write_text("// generated\n")
        (out / f"{ffi}.h").write_text("#pragma once\n")
        (out / f"{ffi}.modulemap").write_text(
            f'module {ffi} {{\n    header "{ffi}.h"\n    export *\n}}'
        )

    def _lipo(self, cmd: list[str]) -> None:
        inputs = cmd[cmd.index("-create") + 1 : cmd.index("-output")]
        output = Path(_arg_after(cmd, "-output"))
        output.write_bytes(b"".join(Path(p).read_bytes() for p in inputs))

    def _xcodebuild(self, cmd: list[str]) -> None:
        output = Path(_arg_after(cmd, "-output"))
        output.mkdir(parents=True)
        libraries = [cmd[i + 1] for i, a in enumerate(cmd) if a == "-library"]
        (output / "Info.plist").write_text("\n".join(libraries) + "\n")


@pytest.fixture
def config(tmp_path: Path) -> PipelineConfig:
    crate = tmp_path / "crate"
    crate.mkdir()
    (crate / "Cargo.toml").write_text('[package]\nname = "decentralized-ffi"\n')
    return load_config(
        None,
        {
            "crate_dir": str(crate),
            "package": "decentralized-ffi",
            "lib_name": "deffi",
            "module_name": "DecentralizedFFI",
            "bindings_dir": str(tmp_path / "swift" / "Sources" / "DecentralizedFFI"),
            "output_dir": str(tmp_path / "out"),
        },
        base_dir=tmp_path,
    )


@pytest.fixture
def fake_runner(config: PipelineConfig) -> FakeToolRunner:
    return FakeToolRunner(config)


@pytest.fixture
def tools(config: PipelineConfig, fake_runner: FakeToolRunner) -> PipelineTools:
    from ffibundle_tooling.build import CargoToolchain
    from ffibundle_tooling.bundle import XcodebuildTool
    from ffibundle_tooling.combine import LipoTool
    from ffibundle_tooling.gen import UniffiBindgen
    from ffibundle_tooling.provision import RustupProvisioner

    return PipelineTools(
        provisioner=RustupProvisioner(config.rustup, config.toolchain, runner=fake_runner),
        cargo=CargoToolchain(config.cargo, config.toolchain, runner=fake_runner),
        bindgen=UniffiBindgen(
            config.manifest_path,
            cargo=config.cargo,
            toolchain=config.toolchain,
            runner=fake_runner,
        ),
        lipo=LipoTool(config.lipo, runner=fake_runner),
        xcodebuild=XcodebuildTool(config.xcodebuild, runner=fake_runner),
    )
