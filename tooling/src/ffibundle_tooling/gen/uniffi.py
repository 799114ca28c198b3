"""uniffi-bindgen invocation: foreign-language bindings from the reference target's dylib."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from ffibundle_tooling.errors import GenerationError
from ffibundle_tooling.helpers import (
    Runner,
    diagnostics,
    is_nonempty_file,
    looks_like_shared_library,
    run_command,
)

if TYPE_CHECKING:
    from ffibundle_tooling.config import PipelineConfig

log = logging.getLogger(__name__)

# Languages uniffi-bindgen generates, and the suffix of the source file it writes.
SOURCE_SUFFIXES: dict[str, str] = {
    "swift": ".swift",
    "kotlin": ".kt",
    "python": ".py",
    "ruby": ".rb",
}

# Only Swift output carries a C header and a clang module map.
HEADER_LANGUAGES = frozenset({"swift"})


@dataclass(frozen=True)
class BindingOutput:
    language: str
    out_dir: Path
    sources: tuple[Path, ...]
    header: Path | None
    modulemap: Path | None


class UniffiBindgen:
    """uniffi-bindgen via a prebuilt binary when present, else ``cargo run --bin uniffi-bindgen``."""

    def __init__(
        self,
        manifest: Path,
        cargo: str = "cargo",
        toolchain: str = "",
        binary: Path | None = None,
        runner: Runner = run_command,
    ) -> None:
        self.manifest = manifest
        self.cargo = cargo
        self.toolchain = toolchain
        self.binary = binary
        self._run = runner

    def command_prefix(self) -> list[str]:
        if self.binary is not None and self.binary.exists():
            return [str(self.binary)]
        tc = [f"+{self.toolchain}"] if self.toolchain else []
        return [
            self.cargo,
            *tc,
            "run",
            "--manifest-path",
            str(self.manifest),
            "--bin",
            "uniffi-bindgen",
            "--",
        ]

    def generate(
        self,
        library: Path,
        language: str,
        out_dir: Path,
    ) -> subprocess.CompletedProcess[str]:
        cmd = [
            *self.command_prefix(),
            "generate",
            "--library",
            str(library),
            "--language",
            language,
            "--out-dir",
            str(out_dir),
            "--no-format",
        ]
        return self._run(cmd)


def expected_outputs(
    language: str, module_name: str, ffi_module_name: str, out_dir: Path
) -> tuple[Path, Path | None, Path | None]:
    """(source, header, modulemap) paths the generator writes for language."""
    source = out_dir / f"{module_name}{SOURCE_SUFFIXES[language]}"
    if language in HEADER_LANGUAGES:
        return source, out_dir / f"{ffi_module_name}.h", out_dir / f"{ffi_module_name}.modulemap"
    return source, None, None


def generate_bindings(
    dylib: Path,
    config: PipelineConfig,
    bindgen: UniffiBindgen,
) -> BindingOutput:
    """Run the generator once against dylib. Raises GenerationError.

    Previously generated files are removed first so the result never mixes runs.
    """
    if not dylib.is_file():
        msg = f"Reference library not found: {dylib}"
        raise GenerationError(msg)
    if not is_nonempty_file(dylib) or not looks_like_shared_library(dylib):
        msg = f"Reference library is empty or not a shared library: {dylib}"
        raise GenerationError(msg)

    language = config.language
    out_dir = config.bindings_dir
    source, header, modulemap = expected_outputs(
        language, config.module_name, config.ffi_module_name, out_dir
    )
    for stale in (source, header, modulemap):
        if stale is not None and stale.exists():
            log.debug("Removing previously generated %s", stale)
            stale.unlink()
    out_dir.mkdir(parents=True, exist_ok=True)

    print(f"🧬 Generating {language} bindings from {dylib.name}...")
    result = bindgen.generate(dylib, language, out_dir)
    if result.returncode != 0:
        msg = f"uniffi-bindgen failed (exit {result.returncode})"
        raise GenerationError(msg, diagnostics=diagnostics(result))

    # Only the files this run was expected to write count; out_dir may hold hand-written sources.
    if not is_nonempty_file(source):
        msg = f"uniffi-bindgen produced no {language} sources in {out_dir} (expected {source.name})"
        raise GenerationError(msg, diagnostics=diagnostics(result))
    missing = [p.name for p in (header, modulemap) if p is not None and not p.is_file()]
    if missing:
        msg = f"uniffi-bindgen did not write {', '.join(missing)} in {out_dir}"
        raise GenerationError(msg, diagnostics=diagnostics(result))
    print(f"  ✅ {source.name} in {out_dir}")
    return BindingOutput(language, out_dir, (source,), header, modulemap)
