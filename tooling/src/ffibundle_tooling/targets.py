"""Target matrix: known Apple targets, default matrix, reference target, platform grouping."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from ffibundle_tooling.errors import TargetMatrixError


@dataclass(frozen=True)
class Target:
    triple: str
    os: str
    arch: str
    platform: str
    variant: str = ""  # "", "simulator" or "maccatalyst"

    @property
    def is_apple(self) -> bool:
        return "-apple-" in self.triple

    def static_lib_name(self, lib_name: str) -> str:
        return f"lib{lib_name}.a"

    def dylib_name(self, lib_name: str) -> str:
        suffix = ".dylib" if self.is_apple else ".so"
        return f"lib{lib_name}{suffix}"


@dataclass(frozen=True)
class TargetMatrix:
    targets: tuple[Target, ...]
    reference: Target

    @property
    def triples(self) -> list[str]:
        return [t.triple for t in self.targets]


TARGET_CATALOG: dict[str, Target] = {
    t.triple: t
    for t in (
        Target("x86_64-apple-darwin", "macos", "x86_64", "macos"),
        Target("aarch64-apple-darwin", "macos", "arm64", "macos"),
        Target("aarch64-apple-ios", "ios", "arm64", "ios"),
        Target("x86_64-apple-ios", "ios", "x86_64", "ios-simulator", "simulator"),
        Target("aarch64-apple-ios-sim", "ios", "arm64", "ios-simulator", "simulator"),
        Target("x86_64-apple-ios-macabi", "ios", "x86_64", "ios-maccatalyst", "maccatalyst"),
        Target("aarch64-apple-ios-macabi", "ios", "arm64", "ios-maccatalyst", "maccatalyst"),
    )
}

DEFAULT_TARGETS: tuple[str, ...] = (
    "x86_64-apple-darwin",
    "aarch64-apple-darwin",
    "x86_64-apple-ios",
    "aarch64-apple-ios",
    "aarch64-apple-ios-sim",
)

# The dylib uniffi-bindgen reads; the generated interface is the same on every target.
DEFAULT_REFERENCE = "aarch64-apple-ios"


def get_target(triple: str) -> Target:
    """Catalog lookup. Raises TargetMatrixError for an unknown triple."""
    try:
        return TARGET_CATALOG[triple]
    except KeyError:
        known = ", ".join(sorted(TARGET_CATALOG))
        msg = f"Unknown target {triple!r}. Known targets: {known}"
        raise TargetMatrixError(msg) from None


def parse_target_list(value: str) -> list[str]:
    """Split a comma-separated --targets value; blanks are dropped."""
    return [part.strip() for part in value.split(",") if part.strip()]


def resolve_target_matrix(
    triples: Iterable[str] | None = None,
    reference: str | None = DEFAULT_REFERENCE,
) -> TargetMatrix:
    """Ordered, de-duplicated matrix with exactly one reference target.

    triples=None selects DEFAULT_TARGETS. Raises TargetMatrixError when the
    set is empty, a triple is unknown, or the reference is absent from it.
    """
    ordered = list(DEFAULT_TARGETS if triples is None else triples)
    seen: set[str] = set()
    targets: list[Target] = []
    for triple in ordered:
        if triple in seen:
            continue
        seen.add(triple)
        targets.append(get_target(triple))
    if not targets:
        raise TargetMatrixError("Target matrix is empty")
    if not reference:
        raise TargetMatrixError("No reference target designated for binding generation")
    if reference not in seen:
        listed = ", ".join(t.triple for t in targets)
        msg = f"Reference target {reference!r} is not in the target matrix ({listed})"
        raise TargetMatrixError(msg)
    return TargetMatrix(tuple(targets), TARGET_CATALOG[reference])


def group_by_platform(matrix: TargetMatrix) -> dict[str, tuple[Target, ...]]:
    """Distributable platform -> its targets, both in first-appearance order."""
    groups: dict[str, list[Target]] = {}
    for t in matrix.targets:
        groups.setdefault(t.platform, []).append(t)
    return {platform: tuple(ts) for platform, ts in groups.items()}


def needs_merge(targets: Sequence[Target]) -> bool:
    """A platform with more than one architecture needs a single universal slice."""
    return len(targets) > 1


def platform_identifier(targets: Sequence[Target]) -> str:
    """XCFramework-style library identifier, e.g. ios-arm64_x86_64-simulator.

    Architectures are sorted, so the identifier does not depend on target order.
    """
    if not targets:
        raise TargetMatrixError("platform_identifier needs at least one target")
    first = targets[0]
    archs = "_".join(sorted({t.arch for t in targets}))
    ident = f"{first.os}-{archs}"
    if first.variant:
        ident += f"-{first.variant}"
    return ident
