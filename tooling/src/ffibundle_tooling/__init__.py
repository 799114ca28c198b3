"""Build a Rust FFI crate for every Apple target and package it as one XCFramework.

Stages: target matrix, rustup provisioning, per-target cargo builds, a single
uniffi-bindgen run, lipo merges per platform, header relocation and
xcodebuild -create-xcframework. See ffibundle_tooling.pipeline for the driver.
"""

__version__ = "0.1.0"
