# SPDX-License-Identifier: MIT
"""Map, validate and write a manifest in one fail-fast pass.

The collaborators that produce crate metadata and consume the written
manifest are described as protocols so the pipeline can run without
cargo or wapm being installed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, Sequence

from .mapper import map_manifest
from .models import SourceManifest, TargetManifest, ValidationDiagnostic
from .validator import validate_manifest_strict
from .writer import write_manifest

logger = logging.getLogger(__name__)


class MetadataSource(Protocol):
    """Supplies resolved crate metadata."""

    def load(self) -> Sequence[SourceManifest]: ...


class ManifestPublisher(Protocol):
    """Consumes a written manifest and uploads the package it describes."""

    def publish(self, manifest_path: Path, dry_run: bool = False) -> None: ...


@dataclass(frozen=True)
class GenerateResult:
    """Outcome of a successful manifest generation.

    Attributes:
        path: Where the manifest was written
        manifest: The manifest that was written
        warnings: Non-blocking diagnostics found during validation
    """

    path: Path
    manifest: TargetManifest
    warnings: list[ValidationDiagnostic] = field(default_factory=list)


def prepare_manifest(source: SourceManifest) -> tuple[TargetManifest, list[ValidationDiagnostic]]:
    """Map and validate without touching the filesystem.

    Returns:
        The manifest and its warnings

    Raises:
        ManifestMappingError: If the metadata cannot be mapped
        ManifestValidationError: If the manifest has error diagnostics
    """
    manifest = map_manifest(source)
    warnings = validate_manifest_strict(manifest)
    return manifest, warnings


def generate_manifest(source: SourceManifest, destination: str | Path) -> GenerateResult:
    """Map crate metadata to a manifest, validate it and write it.

    Any failure stops the pipeline before the next stage runs, so nothing is
    written unless mapping and validation both succeed.

    Args:
        source: Resolved crate metadata
        destination: File (or directory) to write wapm.toml to

    Returns:
        GenerateResult describing the written manifest

    Raises:
        ManifestMappingError: If the metadata cannot be mapped
        ManifestValidationError: If the manifest has error diagnostics
        ManifestWriteError: If the manifest cannot be written
    """
    manifest, warnings = prepare_manifest(source)
    path = write_manifest(manifest, destination)
    logger.info("Generated manifest for %s at %s", manifest.package_name, path)
    return GenerateResult(path=path, manifest=manifest, warnings=warnings)
