"""XCFramework assembly and optional reproducible zip + checksum."""

from .xcframework import (
    Bundle,
    BundleEntry,
    XcodebuildTool,
    archive_paths,
    assemble,
    bundle_lock,
    staging_dir,
    validate_entries,
    write_archive,
)

__all__ = [
    "Bundle",
    "BundleEntry",
    "XcodebuildTool",
    "archive_paths",
    "assemble",
    "bundle_lock",
    "staging_dir",
    "validate_entries",
    "write_archive",
]
