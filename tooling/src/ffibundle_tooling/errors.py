"""Pipeline error taxonomy. One class per stage; each maps to a distinct CLI exit code.

Stages raise these and never recover; the CLI prints the stage, message and
captured tool diagnostics, then exits with ``exit_code``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ffibundle_tooling.targets import Target


class PipelineError(Exception):
    """Base class for every stage failure."""

    stage = "pipeline"
    exit_code = 1

    def __init__(self, message: str, *, diagnostics: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.diagnostics = diagnostics

    def render(self) -> str:
        """Stage-prefixed message followed by the tool diagnostics, if any."""
        text = f"[{self.stage}] {self.message}"
        if self.diagnostics.strip():
            text += "\n" + self.diagnostics.rstrip()
        return text


class ConfigurationError(PipelineError):
    """Config file unreadable or holding invalid values."""

    stage = "config"
    exit_code = 2


class TargetMatrixError(ConfigurationError):
    """Empty matrix, unknown triple, or missing reference target."""


class ProvisioningError(PipelineError):
    """Toolchain or cross-compilation target could not be installed."""

    stage = "provision"
    exit_code = 3


class BuildError(PipelineError):
    """cargo failed (or wrote nothing) for one target."""

    stage = "build"
    exit_code = 4

    def __init__(
        self,
        target: Target,
        message: str,
        *,
        returncode: int | None = None,
        diagnostics: str = "",
    ) -> None:
        super().__init__(f"{target.triple}: {message}", diagnostics=diagnostics)
        self.target = target
        self.returncode = returncode


class GenerationError(PipelineError):
    """Binding generator failed, or its input dylib is missing or malformed."""

    stage = "generate"
    exit_code = 5


class MergeError(PipelineError):
    """Static archives cannot be combined (missing, mismatched profile/arch) or lipo failed."""

    stage = "merge"
    exit_code = 6


class RelocationError(PipelineError):
    """Generated header or module map absent after generation."""

    stage = "relocate"
    exit_code = 7


class AssemblyError(PipelineError):
    """Bundle inputs inconsistent or xcodebuild failed."""

    stage = "assemble"
    exit_code = 8
