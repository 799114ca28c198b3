"""Assemble the XCFramework: one library + header set per platform, replacing any previous bundle.

The new bundle is written to a staging directory beside the output and only
moved into place once xcodebuild has succeeded, so a failed or interrupted run
never leaves a half-written bundle and never removes the previous good one.
The swap runs under an exclusive lock on <bundle>.lock.
"""

from __future__ import annotations

import fcntl
import logging
import os
import subprocess
import zipfile
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from ffibundle_tooling.errors import AssemblyError
from ffibundle_tooling.helpers import Runner, diagnostics, remove_path, run_command, sha256_file

log = logging.getLogger(__name__)

# Fixed timestamp so identical inputs give a byte-identical zip (and checksum).
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


@dataclass(frozen=True)
class BundleEntry:
    platform_id: str
    library: Path
    headers: Path


@dataclass(frozen=True)
class Bundle:
    path: Path
    entries: tuple[BundleEntry, ...]
    archive: Path | None = None
    checksum: str | None = None


class XcodebuildTool:
    """xcodebuild -create-xcframework. Returns the completed process; callers check it."""

    def __init__(self, xcodebuild: str = "xcodebuild", runner: Runner = run_command) -> None:
        self.xcodebuild = xcodebuild
        self._run = runner

    def create_xcframework(
        self, entries: Sequence[BundleEntry], output: Path
    ) -> subprocess.CompletedProcess[str]:
        cmd = [self.xcodebuild, "-create-xcframework"]
        for e in entries:
            cmd += ["-library", str(e.library), "-headers", str(e.headers)]
        cmd += ["-output", str(output)]
        return self._run(cmd)


def validate_entries(entries: Sequence[BundleEntry]) -> None:
    """Raise AssemblyError unless every platform has exactly one present library and header dir."""
    if not entries:
        raise AssemblyError("No platforms to bundle")
    seen: set[str] = set()
    problems: list[str] = []
    for e in entries:
        if not e.platform_id:
            problems.append(f"entry for {e.library} has no platform identifier")
        elif e.platform_id in seen:
            problems.append(f"platform {e.platform_id} listed more than once")
        seen.add(e.platform_id)
        if not e.library.is_file():
            problems.append(f"{e.platform_id}: library not found: {e.library}")
        if not e.headers.is_dir():
            problems.append(f"{e.platform_id}: header directory not found: {e.headers}")
    if problems:
        raise AssemblyError("Invalid bundle inputs", diagnostics="\n".join(problems))


@contextmanager
def bundle_lock(output: Path) -> Iterator[None]:
    """Exclusive lock serialising bundle replacement across concurrent runs."""
    lock_path = output.with_name(output.name + ".lock")
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with lock_path.open("w") as f:
        fcntl.lockf(f, fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.lockf(f, fcntl.LOCK_UN)


def staging_dir(output: Path) -> Path:
    return output.with_name(f".{output.name}.staging")


def assemble(
    entries: Sequence[BundleEntry],
    output: Path,
    tool: XcodebuildTool,
    *,
    archive: bool = False,
) -> Bundle:
    """Validate, build into staging, then replace output. Raises AssemblyError; output untouched on failure."""
    validate_entries(entries)

    with bundle_lock(output):
        staging = staging_dir(output)
        remove_path(staging)
        staging.mkdir(parents=True)
        staged = staging / output.name
        try:
            ids = ", ".join(e.platform_id for e in entries)
            print(f"📦 Assembling {output.name} ({ids})...")
            result = tool.create_xcframework(entries, staged)
            if result.returncode != 0:
                msg = f"xcodebuild -create-xcframework failed (exit {result.returncode})"
                raise AssemblyError(msg, diagnostics=diagnostics(result))
            if not staged.is_dir():
                msg = f"xcodebuild reported success but wrote no bundle at {staged}"
                raise AssemblyError(msg, diagnostics=diagnostics(result))

            if output.exists():
                log.debug("Removing previous bundle %s", output)
                remove_path(output)
            staged.rename(output)
        finally:
            remove_path(staging)

        # An archive beside the bundle always describes the bundle now in place.
        for stale in archive_paths(output):
            if stale.exists():
                log.debug("Removing previous archive %s", stale)
                remove_path(stale)

        zip_path: Path | None = None
        checksum: str | None = None
        if archive:
            zip_path, checksum = write_archive(output)
    print(f"✅ Bundle written: {output}")
    return Bundle(output, tuple(entries), zip_path, checksum)


def archive_paths(bundle_path: Path) -> tuple[Path, Path]:
    """(<bundle>.zip, <bundle>.zip.sha256)"""
    zip_path = bundle_path.with_name(bundle_path.name + ".zip")
    return zip_path, zip_path.with_name(zip_path.name + ".sha256")


def write_archive(bundle_path: Path) -> tuple[Path, str]:
    """Reproducible <bundle>.zip plus <bundle>.zip.sha256 (the Swift PM binaryTarget checksum)."""
    zip_path, sha_path = archive_paths(bundle_path)
    partial = zip_path.with_name(zip_path.name + ".partial")
    files = sorted(p for p in bundle_path.rglob("*") if p.is_file())
    with zipfile.ZipFile(partial, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for p in files:
            arcname = p.relative_to(bundle_path.parent).as_posix()
            info = zipfile.ZipInfo(arcname, date_time=_ZIP_EPOCH)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = (p.stat().st_mode & 0o777) << 16
            zf.writestr(info, p.read_bytes())
    os.replace(partial, zip_path)

    checksum = sha256_file(zip_path)
    sha_path.write_text(checksum + "\n")
    print(f"🗜️  {zip_path.name} sha256 {checksum}")
    return zip_path, checksum
