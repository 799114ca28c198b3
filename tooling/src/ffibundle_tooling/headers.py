"""Move the generated C header and module map into the shared include directory the bundle references.

The module map is renamed to module.modulemap (the name clang looks up inside a
-headers directory), its header reference is reduced to a bare file name, and a
trailing blank line is appended.
"""

from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass
from pathlib import Path

from ffibundle_tooling.errors import RelocationError
from ffibundle_tooling.gen.uniffi import BindingOutput

log = logging.getLogger(__name__)

MODULEMAP_NAME = "module.modulemap"

_HEADER_DECL = re.compile(r'^(\s*(?:umbrella\s+|private\s+|textual\s+)*header\s+)"([^"]+)"', re.MULTILINE)


@dataclass(frozen=True)
class HeaderSet:
    include_dir: Path
    header: Path
    modulemap: Path


def normalize_modulemap(text: str) -> str:
    """Header paths reduced to base names; text ends with one blank line."""
    text = text.replace("\r\n", "\n")
    text = _HEADER_DECL.sub(lambda m: f'{m.group(1)}"{Path(m.group(2)).name}"', text)
    return text.rstrip("\n") + "\n\n"


def relocate_headers(binding: BindingOutput, include_dir: Path) -> HeaderSet:
    """Move header + module map into include_dir (cleared first). Raises RelocationError if either is absent."""
    if binding.header is None or binding.modulemap is None:
        msg = f"{binding.language} bindings declare no header/module map to relocate"
        raise RelocationError(msg)
    missing = [str(p) for p in (binding.header, binding.modulemap) if not p.is_file()]
    if missing:
        msg = f"Generated file(s) missing after binding generation: {', '.join(missing)}"
        raise RelocationError(msg)

    if include_dir.exists():
        log.debug("Clearing %s", include_dir)
        shutil.rmtree(include_dir)
    include_dir.mkdir(parents=True)

    header = include_dir / binding.header.name
    shutil.move(str(binding.header), str(header))
    modulemap = include_dir / MODULEMAP_NAME
    text = binding.modulemap.read_text()
    modulemap.write_text(normalize_modulemap(text))
    binding.modulemap.unlink()

    print(f"📁 Headers relocated to {include_dir}")
    return HeaderSet(include_dir, header, modulemap)
