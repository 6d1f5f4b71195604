# SPDX-License-Identifier: MIT
"""Stage a package directory that `wapm publish` can upload.

The staging directory holds wapm.toml, every compiled module, the license
file and README the crate declares, and any interface files its bindings
reference.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import replace
from pathlib import Path

from wapm_manifest import (
    MANIFEST_FILENAME,
    GenerateResult,
    ModuleEntry,
    SourceManifest,
    TargetManifest,
    prepare_manifest,
    write_manifest,
)

logger = logging.getLogger(__name__)

ABI_TARGET_TRIPLES = {
    "emscripten": "wasm32-unknown-emscripten",
    "wasi": "wasm32-wasi",
}
DEFAULT_TARGET_TRIPLE = "wasm32-unknown-unknown"


class PackagingError(Exception):
    """Raised when the staging directory cannot be assembled."""

    pass


def target_triple(abi: str) -> str:
    """Return the rustc target triple a module with the given ABI is built for."""
    return ABI_TARGET_TRIPLES.get(abi, DEFAULT_TARGET_TRIPLE)


def artifact_path(target_dir: Path, module: ModuleEntry, debug: bool = False) -> Path:
    """Return where cargo leaves the compiled artifact for a module."""
    profile = "debug" if debug else "release"
    return target_dir / target_triple(module.abi) / profile / module.source


def locate_artifacts(
    manifest: TargetManifest,
    target_dir: Path,
    debug: bool = False,
) -> list[tuple[ModuleEntry, Path]]:
    """Find the compiled artifact of every module.

    Raises:
        PackagingError: If an artifact has not been built
    """
    artifacts = []
    for module in manifest.modules:
        path = artifact_path(target_dir, module, debug)
        if not path.is_file():
            raise PackagingError(
                f'Expected "{path}" to exist. Build it first with '
                f"`cargo build --target {target_triple(module.abi)}"
                f"{'' if debug else ' --release'}`"
            )
        artifacts.append((module, path))
    return artifacts


def _copy(source: Path, destination: Path) -> None:
    logger.debug("Copying %s to %s", source, destination)
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)
    except OSError as e:
        raise PackagingError(f'Unable to copy "{source}" to "{destination}": {e}') from e


def _crate_dir(source: SourceManifest) -> Path:
    return source.manifest_dir or Path.cwd()


def _binding_files(
    manifest: TargetManifest,
    crate_dir: Path,
    staging_dir: Path,
) -> list[tuple[Path, Path]]:
    """Pair every file referenced by module bindings with its staged location.

    Staged files keep their path relative to Cargo.toml.
    """
    base_dir = crate_dir.resolve()
    files: dict[Path, Path] = {}
    for module in manifest.modules:
        if module.bindings is None:
            continue
        for relative in module.bindings.referenced_files():
            path = (base_dir / relative).resolve()
            try:
                staged = path.relative_to(base_dir)
            except ValueError:
                raise PackagingError(f'"{path}" should be inside "{base_dir}"') from None
            files.setdefault(staged, path)
    return [(path, staging_dir / staged) for staged, path in files.items()]


def stage_package(
    source: SourceManifest,
    staging_dir: Path,
    target_dir: Path,
    debug: bool = False,
) -> GenerateResult:
    """Validate, write and stage everything needed to publish one crate.

    Artifacts and declared files are located before anything is written, so
    a missing build leaves the staging directory untouched. The license file
    and README are staged under their file name, which may come from a
    workspace-level path such as ``../../README.md``.

    Raises:
        ManifestError: If mapping, validation or writing the manifest fails
        PackagingError: If an artifact or declared file cannot be staged
    """
    manifest, warnings = prepare_manifest(source)
    artifacts = locate_artifacts(manifest, target_dir, debug)
    crate_dir = _crate_dir(source)

    extra_files = []
    staged_names = {}
    for attribute in ("license_file", "readme"):
        relative = getattr(manifest, attribute)
        if relative:
            path = crate_dir / relative
            extra_files.append((path, staging_dir / path.name))
            staged_names[attribute] = path.name
    extra_files.extend(_binding_files(manifest, crate_dir, staging_dir))

    for path, _ in extra_files:
        if not path.is_file():
            raise PackagingError(f'"{path}" is declared in Cargo.toml but does not exist')

    manifest = replace(manifest, **staged_names)
    manifest_path = write_manifest(manifest, staging_dir / MANIFEST_FILENAME)

    for module, path in artifacts:
        _copy(path, staging_dir / module.source)
    for path, destination in extra_files:
        _copy(path, destination)

    logger.info("Staged %s in %s", manifest.package_name, staging_dir)
    return GenerateResult(path=manifest_path, manifest=manifest, warnings=warnings)
