"""Pipeline driver: matrix -> provision -> build (fan-out) -> bindgen (once) -> lipo -> headers -> bundle.

Every stage receives the PipelineConfig and its tool explicitly; nothing relies
on the working directory. The first stage error propagates unchanged and no
later stage runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ffibundle_tooling.build import BuildArtifact, BuildOutputs, CargoToolchain, build_all
from ffibundle_tooling.bundle import Bundle, BundleEntry, XcodebuildTool, assemble
from ffibundle_tooling.combine import LipoTool, MergedArtifact, combine_platforms
from ffibundle_tooling.config import PipelineConfig
from ffibundle_tooling.errors import GenerationError
from ffibundle_tooling.gen import BindingOutput, UniffiBindgen, generate_bindings
from ffibundle_tooling.headers import HeaderSet, relocate_headers
from ffibundle_tooling.provision import RustupProvisioner, provision
from ffibundle_tooling.targets import (
    TargetMatrix,
    group_by_platform,
    needs_merge,
    platform_identifier,
    resolve_target_matrix,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineTools:
    provisioner: RustupProvisioner
    cargo: CargoToolchain
    bindgen: UniffiBindgen
    lipo: LipoTool
    xcodebuild: XcodebuildTool


def default_tools(config: PipelineConfig) -> PipelineTools:
    """Real tool wrappers for config (subprocess-backed)."""
    return PipelineTools(
        provisioner=RustupProvisioner(config.rustup, config.toolchain),
        cargo=CargoToolchain(config.cargo, config.toolchain),
        bindgen=UniffiBindgen(
            config.manifest_path,
            cargo=config.cargo,
            toolchain=config.toolchain,
            binary=config.bindgen_binary,
        ),
        lipo=LipoTool(config.lipo),
        xcodebuild=XcodebuildTool(config.xcodebuild),
    )


@dataclass(frozen=True)
class PlannedEntry:
    platform: str
    platform_id: str
    triples: tuple[str, ...]
    merged: bool


def plan_entries(matrix: TargetMatrix) -> list[PlannedEntry]:
    """One bundle entry per distributable platform, in matrix order."""
    return [
        PlannedEntry(
            platform,
            platform_identifier(targets),
            tuple(t.triple for t in targets),
            needs_merge(targets),
        )
        for platform, targets in group_by_platform(matrix).items()
    ]


class Pipeline:
    """One run of the bundle pipeline. Not reusable: bindings may be generated only once per instance."""

    def __init__(self, config: PipelineConfig, tools: PipelineTools | None = None) -> None:
        self.config = config
        self.tools = tools or default_tools(config)
        self.matrix = resolve_target_matrix(config.targets, config.reference_target)
        self._bindings: BindingOutput | None = None

    def plan(self) -> list[PlannedEntry]:
        """Bundle entries this run would produce; runs no tool."""
        return plan_entries(self.matrix)

    def required_executables(self) -> list[str]:
        names = [self.config.rustup, self.config.cargo, self.config.xcodebuild]
        if any(e.merged for e in self.plan()):
            names.append(self.config.lipo)
        return names

    def provision(self) -> None:
        provision(self.matrix, self.tools.provisioner, self.required_executables())

    def build(self, jobs: int = 1) -> BuildOutputs:
        return build_all(self.matrix, self.config, self.tools.cargo, jobs=jobs)

    def generate(self, outputs: BuildOutputs) -> BindingOutput:
        if self._bindings is not None:
            raise GenerationError("Bindings were already generated in this run")
        self._bindings = generate_bindings(
            outputs.reference_dylib.path, self.config, self.tools.bindgen
        )
        return self._bindings

    def combine(self, outputs: BuildOutputs) -> dict[str, MergedArtifact | BuildArtifact]:
        return combine_platforms(self.matrix, outputs, self.config, self.tools.lipo)

    def relocate(self, bindings: BindingOutput) -> HeaderSet:
        return relocate_headers(bindings, self.config.include_dir)

    def assemble(
        self,
        libraries: dict[str, MergedArtifact | BuildArtifact],
        headers: HeaderSet,
        *,
        archive: bool = False,
    ) -> Bundle:
        groups = group_by_platform(self.matrix)
        entries = [
            BundleEntry(platform_identifier(groups[platform]), lib.path, headers.include_dir)
            for platform, lib in libraries.items()
        ]
        return assemble(entries, self.config.bundle_path, self.tools.xcodebuild, archive=archive)

    def run(self, *, skip_provision: bool = False, jobs: int = 1, archive: bool = False) -> Bundle:
        log.info(
            "Pipeline: %d target(s), reference %s, profile %s",
            len(self.matrix.targets),
            self.matrix.reference.triple,
            self.config.profile,
        )
        if skip_provision:
            print("⏭️  Skipping toolchain provisioning")
        else:
            self.provision()
        outputs = self.build(jobs=jobs)
        bindings = self.generate(outputs)
        libraries = self.combine(outputs)
        headers = self.relocate(bindings)
        return self.assemble(libraries, headers, archive=archive)


def run_pipeline(
    config: PipelineConfig,
    tools: PipelineTools | None = None,
    *,
    skip_provision: bool = False,
    jobs: int = 1,
    archive: bool = False,
) -> Bundle:
    """Run every stage once. Raises the first stage's PipelineError."""
    return Pipeline(config, tools).run(skip_provision=skip_provision, jobs=jobs, archive=archive)
