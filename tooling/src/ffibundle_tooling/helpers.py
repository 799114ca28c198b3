"""Shared helpers for ffibundle_tooling (process runner, diagnostics, file checks, hashing).

Used by provision, build, gen, combine, bundle and the pipeline driver.
"""

from __future__ import annotations

import hashlib
import logging
import shutil
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path

log = logging.getLogger(__name__)

# Signature of the callable every tool wrapper uses to start a process.
Runner = Callable[..., "subprocess.CompletedProcess[str]"]

DIAGNOSTIC_TAIL_LINES = 40

# Mach-O (32/64, both byte orders, fat), ELF, PE.
_SHARED_LIBRARY_MAGIC = (
    b"\xfe\xed\xfa\xce",
    b"\xce\xfa\xed\xfe",
    b"\xfe\xed\xfa\xcf",
    b"\xcf\xfa\xed\xfe",
    b"\xca\xfe\xba\xbe",
    b"\x7fELF",
    b"MZ",
)

# --- Text ---


def to_pascal_case(name: str) -> str:
    """Convert kebab-case or snake_case to PascalCase (e.g. my-ffi_lib -> MyFfiLib)."""
    return "".join(word.capitalize() for word in name.replace("_", "-").split("-"))


# --- Process ---


def run_command(
    cmd: Sequence[str],
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run cmd with captured text output. Never raises on non-zero exit; callers check returncode."""
    log.debug("run: %s", " ".join(str(c) for c in cmd))
    return subprocess.run(
        [str(c) for c in cmd],
        cwd=cwd,
        env=env,
        capture_output=True,
        text=True,
        check=False,
    )


def combined_output(result: subprocess.CompletedProcess[str]) -> str:
    """stderr followed by stdout; either may be None when a test double returns a bare mock."""
    return (result.stderr or "") + (result.stdout or "")


def tail_lines(text: str, limit: int = DIAGNOSTIC_TAIL_LINES) -> str:
    """Last `limit` lines of text, trailing whitespace stripped."""
    lines = text.rstrip().splitlines()
    return "\n".join(lines[-limit:])


def diagnostics(result: subprocess.CompletedProcess[str]) -> str:
    return tail_lines(combined_output(result))


# --- File ---


def is_nonempty_file(path: Path) -> bool:
    return path.is_file() and path.stat().st_size > 0


def looks_like_shared_library(path: Path) -> bool:
    """True when path starts with a Mach-O, ELF or PE magic number."""
    try:
        with path.open("rb") as f:
            head = f.read(4)
    except OSError:
        return False
    return any(head.startswith(magic) for magic in _SHARED_LIBRARY_MAGIC)


def remove_path(path: Path) -> None:
    """Delete a file, symlink or directory tree if present."""
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


# --- Hash ---


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1 << 20), b""):
            h.update(chunk)
    return h.hexdigest()
