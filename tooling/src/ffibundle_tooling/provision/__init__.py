"""Toolchain provisioning (rustup) that must finish before any target is built."""

from .rustup import REQUIRED_COMPONENTS, RustupProvisioner, missing_executables, provision

__all__ = [
    "REQUIRED_COMPONENTS",
    "RustupProvisioner",
    "missing_executables",
    "provision",
]
