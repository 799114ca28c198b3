"""Pipeline configuration: defaults, ffibundle.yaml loading, CLI overrides.

Config YAML format (every key optional except lib_name):
- crate_dir: Rust crate holding Cargo.toml (default: config file directory)
- package / lib_name: cargo package and [lib] name (libNAME.a / libNAME.dylib)
- profile: cargo profile (default: release-smaller)
- targets / reference_target: target matrix and the binding-generation reference
- toolchain: rustup toolchain (default: stable); empty string uses whatever cargo resolves
- language / module_name / ffi_module_name / bindings_dir: uniffi-bindgen output (language must be
  one that yields a C header, i.e. swift)
- target_dir / include_dir / output_dir / bundle_name: where artifacts land
- bindgen_binary: prebuilt uniffi-bindgen (else cargo run --bin uniffi-bindgen)
- cargo / rustup / lipo / xcodebuild: executable names or paths

Relative paths resolve against the config file's directory, or cwd without a file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from ffibundle_tooling.errors import ConfigurationError
from ffibundle_tooling.gen.uniffi import HEADER_LANGUAGES, SOURCE_SUFFIXES
from ffibundle_tooling.helpers import to_pascal_case
from ffibundle_tooling.targets import DEFAULT_REFERENCE, DEFAULT_TARGETS, parse_target_list

log = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "ffibundle.yaml"

DEFAULT_LAYOUT: dict[str, Any] = {
    "crate_dir": ".",
    "package": "",
    "lib_name": "",
    "profile": "release-smaller",
    "target_dir": "",
    "targets": list(DEFAULT_TARGETS),
    "reference_target": DEFAULT_REFERENCE,
    "toolchain": "stable",
    "language": "swift",
    "module_name": "",
    "ffi_module_name": "",
    "bindings_dir": "",
    "include_dir": "",
    "output_dir": ".",
    "bundle_name": "",
    "bindgen_binary": "",
    "cargo": "cargo",
    "rustup": "rustup",
    "lipo": "lipo",
    "xcodebuild": "xcodebuild",
}


@dataclass(frozen=True)
class PipelineConfig:
    crate_dir: Path
    package: str
    lib_name: str
    profile: str
    target_dir: Path
    targets: tuple[str, ...]
    reference_target: str
    toolchain: str
    language: str
    module_name: str
    ffi_module_name: str
    bindings_dir: Path
    include_dir: Path
    output_dir: Path
    bundle_name: str
    bindgen_binary: Path | None = None
    cargo: str = "cargo"
    rustup: str = "rustup"
    lipo: str = "lipo"
    xcodebuild: str = "xcodebuild"

    @property
    def manifest_path(self) -> Path:
        return self.crate_dir / "Cargo.toml"

    @property
    def bundle_path(self) -> Path:
        return self.output_dir / f"{self.bundle_name}.xcframework"


def resolve_layout(layout: dict[str, Any] | None) -> dict[str, Any]:
    """Return layout dict with defaults filled. Unknown keys are dropped."""
    out = dict(DEFAULT_LAYOUT)
    if not layout:
        return out
    for k, v in layout.items():
        if k not in out:
            log.debug("Ignoring unknown config key %r", k)
            continue
        if v is not None:
            out[k] = v
    return out


def read_config_file(config_path: Path) -> dict[str, Any]:
    """Load ffibundle.yaml. Raises ConfigurationError if unreadable or not a mapping."""
    try:
        with config_path.open() as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        msg = f"Cannot read config {config_path}: {e}"
        raise ConfigurationError(msg) from e
    except yaml.YAMLError as e:
        msg = f"Invalid YAML in {config_path}"
        raise ConfigurationError(msg, diagnostics=str(e)) from e
    if not isinstance(data, dict):
        msg = f"Config {config_path} must be a mapping, got {type(data).__name__}"
        raise ConfigurationError(msg)
    return data


def _resolve_path(base: Path, value: Any) -> Path:
    p = Path(str(value)).expanduser()
    return p if p.is_absolute() else (base / p).resolve()


def _as_targets(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return tuple(parse_target_list(value))
    if isinstance(value, (list, tuple)):
        return tuple(str(v).strip() for v in value if str(v).strip())
    msg = f"targets must be a list or comma-separated string, got {type(value).__name__}"
    raise ConfigurationError(msg)


def load_config(
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
    base_dir: Path | None = None,
) -> PipelineConfig:
    """Build a PipelineConfig from defaults, the optional YAML file, then overrides (None values skipped).

    Paths in the file resolve against its directory; paths in overrides against
    base_dir (default: cwd).
    """
    file_data: dict[str, Any] = read_config_file(config_path) if config_path else {}
    file_base = config_path.resolve().parent if config_path else None
    cli_base = (base_dir or Path.cwd()).resolve()

    data = resolve_layout(file_data)
    path_bases: dict[str, Path] = {k: file_base or cli_base for k in data}
    for k, v in (overrides or {}).items():
        if v is None or k not in data:
            continue
        data[k] = v
        path_bases[k] = cli_base

    lib_name = str(data["lib_name"]).strip()
    if not lib_name:
        raise ConfigurationError("lib_name is required (the cargo [lib] name, e.g. deffi)")
    profile = str(data["profile"]).strip()
    if not profile:
        raise ConfigurationError("profile must not be empty")
    language = str(data["language"]).strip().lower()
    if language not in SOURCE_SUFFIXES:
        supported = ", ".join(sorted(SOURCE_SUFFIXES))
        msg = f"Unsupported binding language {language!r} (supported: {supported})"
        raise ConfigurationError(msg)
    if language not in HEADER_LANGUAGES:
        bundled = ", ".join(sorted(HEADER_LANGUAGES))
        msg = (
            f"{language} bindings carry no C header/module map, so they cannot be bundled "
            f"(bundle languages: {bundled})"
        )
        raise ConfigurationError(msg)

    crate_dir = _resolve_path(path_bases["crate_dir"], data["crate_dir"])
    target_dir = (
        _resolve_path(path_bases["target_dir"], data["target_dir"])
        if data["target_dir"]
        else crate_dir / "target"
    )
    module_name = str(data["module_name"]).strip() or to_pascal_case(lib_name)
    ffi_module_name = str(data["ffi_module_name"]).strip() or f"{module_name}FFI"
    bindings_dir = (
        _resolve_path(path_bases["bindings_dir"], data["bindings_dir"])
        if data["bindings_dir"]
        else (file_base or cli_base) / "Sources" / module_name
    )
    include_dir = (
        _resolve_path(path_bases["include_dir"], data["include_dir"])
        if data["include_dir"]
        else target_dir / "include"
    )
    if include_dir == bindings_dir:
        msg = f"include_dir must differ from bindings_dir ({include_dir})"
        raise ConfigurationError(msg)
    bindgen_binary = (
        _resolve_path(path_bases["bindgen_binary"], data["bindgen_binary"])
        if data["bindgen_binary"]
        else None
    )

    return PipelineConfig(
        crate_dir=crate_dir,
        package=str(data["package"]).strip(),
        lib_name=lib_name,
        profile=profile,
        target_dir=target_dir,
        targets=_as_targets(data["targets"]),
        reference_target=str(data["reference_target"] or "").strip(),
        toolchain=str(data["toolchain"] or "").strip(),
        language=language,
        module_name=module_name,
        ffi_module_name=ffi_module_name,
        bindings_dir=bindings_dir,
        include_dir=include_dir,
        output_dir=_resolve_path(path_bases["output_dir"], data["output_dir"]),
        bundle_name=str(data["bundle_name"]).strip() or lib_name,
        bindgen_binary=bindgen_binary,
        cargo=str(data["cargo"]),
        rustup=str(data["rustup"]),
        lipo=str(data["lipo"]),
        xcodebuild=str(data["xcodebuild"]),
    )


def find_default_config(project_root: Path) -> Path | None:
    """project_root/ffibundle.yaml if it exists."""
    p = project_root / DEFAULT_CONFIG_NAME
    return p if p.is_file() else None
