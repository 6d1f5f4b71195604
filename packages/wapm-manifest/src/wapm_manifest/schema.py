# SPDX-License-Identifier: MIT
"""Registry constants and JSON Schema for the wapm.toml data model.

The schema describes the flat dictionary produced by
``TargetManifest.as_dict()``. The on-disk ``wapm.toml`` layout is handled
by the writer.
"""

from __future__ import annotations

# Semantic versioning regex pattern (SemVer 2.0.0)
SEMVER_PATTERN = (
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)

# File name and binary extension expected by the registry
MANIFEST_FILENAME = "wapm.toml"
WASM_EXTENSION = ".wasm"

# Supported module ABIs
ABIS = ["none", "wasi", "emscripten", "wasm4"]
DEFAULT_ABI = "none"

# Descriptions shorter than this are publishable but discouraged
MIN_DESCRIPTION_LENGTH = 10

REQUIRED_FIELDS = ["name", "version", "description", "license"]

# Declaration order of TargetManifest fields, used to sort diagnostics
FIELD_ORDER = [
    "namespace",
    "name",
    "version",
    "description",
    "license",
    "license_file",
    "readme",
    "repository",
    "homepage",
    "wasmer_extra_flags",
    "modules",
    "commands",
    "fs",
]

_NON_EMPTY_STRING: dict = {"type": "string", "minLength": 1}

MANIFEST_SCHEMA: dict = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "WAPM Package Manifest",
    "description": "Package descriptor written to wapm.toml",
    "type": "object",
    "properties": {
        "namespace": {
            "type": "string",
            "description": "Registry namespace owning the package",
            "minLength": 1,
        },
        "name": {"type": "string", "description": "Package name"},
        "version": {
            "type": "string",
            "description": "Package version following semantic versioning",
            "pattern": SEMVER_PATTERN,
        },
        "description": {"type": "string"},
        "license": {"type": "string", "description": "SPDX license identifier"},
        "license_file": {"type": "string"},
        "readme": {"type": "string"},
        "repository": {"type": "string", "format": "uri"},
        "homepage": {"type": "string", "format": "uri"},
        "wasmer_extra_flags": {"type": "string"},
        "modules": {
            "type": "array",
            "description": "Compiled WebAssembly modules shipped by the package",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["name", "source", "abi"],
                "properties": {
                    "name": _NON_EMPTY_STRING,
                    "source": {"type": "string"},
                    "abi": {"type": "string", "enum": ABIS},
                    "bindings": {
                        "type": "object",
                        "description": "wai or wit interface bindings",
                        "properties": {
                            "exports": _NON_EMPTY_STRING,
                            "imports": {"type": "array", "items": _NON_EMPTY_STRING},
                            "wit-exports": _NON_EMPTY_STRING,
                        },
                    },
                },
            },
        },
        "commands": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name", "module"],
                "properties": {
                    "name": _NON_EMPTY_STRING,
                    "module": _NON_EMPTY_STRING,
                    "package": {"type": "string"},
                },
            },
        },
        "fs": {
            "type": "object",
            "description": "Map of guest paths to host directories",
            "additionalProperties": {"type": "string"},
        },
    },
    "additionalProperties": False,
}


def get_manifest_schema() -> dict:
    """Return a copy of the manifest JSON schema."""
    return MANIFEST_SCHEMA.copy()
