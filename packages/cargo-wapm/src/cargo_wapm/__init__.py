# SPDX-License-Identifier: MIT
"""Publish Rust crates to the WebAssembly Package Manager.

The CLI loads crate metadata with `cargo metadata`, turns it into a
wapm.toml with ``wapm_manifest`` and hands the staged package to
`wapm publish`.
"""

__version__ = "0.2.1"
