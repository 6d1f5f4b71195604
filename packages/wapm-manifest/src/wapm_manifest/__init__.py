# SPDX-License-Identifier: MIT
"""Translate Cargo crate metadata into WAPM package manifests.

This package provides the pieces needed to produce a wapm.toml:
- Data model for crate metadata and the registry manifest
- Mapping from crate metadata to the manifest
- Validation with structured diagnostics
- All-or-nothing serialization to wapm.toml

Example:
    >>> from wapm_manifest import BuildTarget, SourceManifest, map_manifest, validate_manifest
    >>>
    >>> source = SourceManifest(
    ...     name="demo",
    ...     version="0.1.0",
    ...     description="A demo module",
    ...     license="Apache-2.0",
    ...     targets=(BuildTarget("demo", "binary", "demo"),),
    ... )
    >>> validate_manifest(map_manifest(source))
    []
"""

__version__ = "0.2.1"

from .mapper import (
    DuplicateModuleNameError,
    ManifestMappingError,
    NoPublishableTargetError,
    map_manifest,
    module_source,
)
from .models import (
    Bindings,
    BuildTarget,
    CommandEntry,
    ModuleEntry,
    SourceManifest,
    TargetManifest,
    ValidationDiagnostic,
)
from .pipeline import (
    GenerateResult,
    ManifestPublisher,
    MetadataSource,
    generate_manifest,
    prepare_manifest,
)
from .schema import (
    ABIS,
    DEFAULT_ABI,
    MANIFEST_FILENAME,
    MANIFEST_SCHEMA,
    MIN_DESCRIPTION_LENGTH,
    SEMVER_PATTERN,
    WASM_EXTENSION,
    get_manifest_schema,
)
from .validator import (
    ManifestError,
    ManifestValidationError,
    has_errors,
    validate_manifest,
    validate_manifest_strict,
)
from .writer import (
    ManifestWriteError,
    read_manifest,
    serialize_manifest,
    write_manifest,
)

__all__ = [
    # Schema
    "ABIS",
    "DEFAULT_ABI",
    "MANIFEST_FILENAME",
    "MANIFEST_SCHEMA",
    "MIN_DESCRIPTION_LENGTH",
    "SEMVER_PATTERN",
    "WASM_EXTENSION",
    "get_manifest_schema",
    # Models
    "Bindings",
    "BuildTarget",
    "CommandEntry",
    "ModuleEntry",
    "SourceManifest",
    "TargetManifest",
    "ValidationDiagnostic",
    # Mapping
    "map_manifest",
    "module_source",
    "ManifestMappingError",
    "NoPublishableTargetError",
    "DuplicateModuleNameError",
    # Validation
    "validate_manifest",
    "validate_manifest_strict",
    "has_errors",
    "ManifestError",
    "ManifestValidationError",
    # Writing
    "serialize_manifest",
    "write_manifest",
    "read_manifest",
    "ManifestWriteError",
    # Pipeline
    "generate_manifest",
    "prepare_manifest",
    "GenerateResult",
    "MetadataSource",
    "ManifestPublisher",
]
