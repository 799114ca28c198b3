"""Binding generation (uniffi-bindgen), run once per pipeline against the reference dylib."""

from .uniffi import (
    HEADER_LANGUAGES,
    SOURCE_SUFFIXES,
    BindingOutput,
    UniffiBindgen,
    expected_outputs,
    generate_bindings,
)

__all__ = [
    "HEADER_LANGUAGES",
    "SOURCE_SUFFIXES",
    "BindingOutput",
    "UniffiBindgen",
    "expected_outputs",
    "generate_bindings",
]
