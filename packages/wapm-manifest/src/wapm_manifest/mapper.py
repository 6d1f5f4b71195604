# SPDX-License-Identifier: MIT
"""Map resolved crate metadata onto the wapm.toml data model.

The mapping is a pure function: identical input always yields an identical
manifest, and nothing is read from or written to the outside world.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from .models import BuildTarget, CommandEntry, ModuleEntry, SourceManifest, TargetManifest
from .schema import WASM_EXTENSION
from .validator import ManifestError

logger = logging.getLogger(__name__)


class ManifestMappingError(ManifestError):
    """Raised when crate metadata cannot be mapped to a manifest."""

    pass


class NoPublishableTargetError(ManifestMappingError):
    """Raised when the crate has no binary or cdylib target to export."""

    def __init__(self, package: str):
        self.package = package
        super().__init__(
            f'The {package} package doesn\'t contain any binaries or "cdylib" libraries'
        )


class DuplicateModuleNameError(ManifestMappingError):
    """Raised when two targets would produce modules with the same name.

    Attributes:
        module: The conflicting module name
        targets: Names of the targets that collide
    """

    def __init__(self, module: str, targets: tuple[str, ...]):
        self.module = module
        self.targets = targets
        super().__init__(
            f"Targets {', '.join(repr(t) for t in targets)} would all publish "
            f"the module '{module}'"
        )


def module_source(target: BuildTarget) -> str:
    """Return the registry artifact path for a build target."""
    return f"{target.output}{WASM_EXTENSION}"


def _map_modules(source: SourceManifest) -> tuple[ModuleEntry, ...]:
    seen: dict[str, BuildTarget] = {}
    modules = []
    for target in source.targets:
        if target.output in seen:
            raise DuplicateModuleNameError(target.output, (seen[target.output].name, target.name))
        seen[target.output] = target
        modules.append(
            ModuleEntry(
                name=target.output,
                source=module_source(target),
                abi=source.abi,
                bindings=source.bindings,
            )
        )
    return tuple(modules)


def map_manifest(source: SourceManifest) -> TargetManifest:
    """Build a wapm.toml manifest from resolved crate metadata.

    Name and version are copied verbatim. Description and license are copied
    when present and otherwise left unset so the validator can report them.
    Every target becomes a module, and binaries also become commands.

    Args:
        source: Resolved crate metadata

    Returns:
        A new TargetManifest whose modules follow the target declaration order

    Raises:
        NoPublishableTargetError: If the crate declares no publishable target
        DuplicateModuleNameError: If two targets derive the same module name

    Example:
        >>> source = SourceManifest(
        ...     name="demo",
        ...     version="0.1.0",
        ...     targets=(BuildTarget("demo", "binary", "demo"),),
        ... )
        >>> map_manifest(source).modules[0].source
        'demo.wasm'
    """
    if not source.targets:
        raise NoPublishableTargetError(source.name)

    modules = _map_modules(source)
    logger.debug("Mapped %d target(s) of %s to modules", len(modules), source.name)

    manifest = TargetManifest(
        namespace=source.namespace,
        name=source.name,
        version=source.version,
        description=source.description,
        license=source.license,
        license_file=source.license_file,
        readme=source.readme,
        repository=source.repository,
        homepage=source.homepage,
        wasmer_extra_flags=source.wasmer_extra_flags,
        modules=modules,
        fs=dict(source.fs),
    )
    commands = tuple(
        CommandEntry(name=target.name, module=target.output, package=manifest.package_name)
        for target in source.targets
        if target.is_binary
    )
    return replace(manifest, commands=commands)
