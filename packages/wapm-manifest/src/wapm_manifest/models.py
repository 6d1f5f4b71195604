# SPDX-License-Identifier: MIT
"""Data model shared by the mapper, validator and writer.

``SourceManifest`` is the resolved crate metadata handed over by the
metadata loader. ``TargetManifest`` is the wapm.toml package descriptor
built from it. Both are immutable once constructed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Mapping, Optional

from .schema import DEFAULT_ABI

TargetKind = Literal["library", "binary"]
Severity = Literal["error", "warning"]
BindingsKind = Literal["wai", "wit"]


@dataclass(frozen=True, slots=True)
class BuildTarget:
    """A compilable crate target that can be exported as a module.

    Attributes:
        name: Target name as declared in Cargo.toml
        kind: "binary" for executables, "library" for cdylib libraries
        output: Base name of the compiled artifact (without extension)
    """

    name: str
    kind: TargetKind
    output: str

    @property
    def is_binary(self) -> bool:
        return self.kind == "binary"


@dataclass(frozen=True, slots=True)
class SourceManifest:
    """Resolved metadata for a single crate.

    Attributes:
        name: Crate name
        version: Crate version
        description: Crate description, if declared
        license: SPDX license expression, if declared
        license_file: License file path relative to the crate directory
        readme: README path relative to the crate directory
        authors: Declared authors
        repository: Source repository URL
        homepage: Homepage URL
        targets: Publishable build targets in declaration order
        namespace: WAPM namespace from [package.metadata.wapm]
        abi: Module ABI from [package.metadata.wapm]
        fs: Guest path to host directory mapping from [package.metadata.wapm]
        wasmer_extra_flags: Extra flags passed to wasmer when running commands
        bindings: Interface bindings attached to every module
        manifest_dir: Directory containing the crate's Cargo.toml
    """

    name: str
    version: str
    description: Optional[str] = None
    license: Optional[str] = None
    license_file: Optional[str] = None
    readme: Optional[str] = None
    authors: tuple[str, ...] = ()
    repository: Optional[str] = None
    homepage: Optional[str] = None
    targets: tuple[BuildTarget, ...] = ()
    namespace: Optional[str] = None
    abi: str = DEFAULT_ABI
    fs: Mapping[str, str] = field(default_factory=dict)
    wasmer_extra_flags: Optional[str] = None
    bindings: Optional[Bindings] = None
    manifest_dir: Optional[Path] = None


@dataclass(frozen=True, slots=True)
class Bindings:
    """Interface bindings shipped with a module.

    ``wai`` bindings name an optional exports file plus any imported
    interfaces; ``wit`` bindings name a single exports file. Paths are
    relative to the crate directory.

    Attributes:
        kind: "wai" or "wit"
        version: wai-bindgen or wit-bindgen version the files target
        exports: Exported interface file
        imports: Imported interface files (wai only)
    """

    kind: BindingsKind
    version: str
    exports: Optional[str] = None
    imports: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Bindings":
        """Parse a [module.bindings] table.

        Raises:
            ValueError: If the table is neither wai nor wit bindings
        """
        if "wai-version" in data:
            exports = data.get("exports")
            imports = data.get("imports", [])
            if exports is not None and not isinstance(exports, str):
                raise ValueError("'exports' must be a path")
            if not isinstance(imports, list) or not all(isinstance(i, str) for i in imports):
                raise ValueError("'imports' must be a list of paths")
            return cls("wai", str(data["wai-version"]), exports, tuple(imports))
        if "wit-bindgen" in data:
            exports = data.get("wit-exports")
            if not isinstance(exports, str) or not exports:
                raise ValueError("'wit-exports' is required for wit bindings")
            return cls("wit", str(data["wit-bindgen"]), exports)
        raise ValueError("expected either 'wai-version' or 'wit-bindgen'")

    def referenced_files(self) -> tuple[str, ...]:
        """Every interface file the bindings point at, exports first."""
        files = (self.exports,) if self.exports else ()
        return files + self.imports

    def as_dict(self) -> dict[str, Any]:
        if self.kind == "wit":
            return {"wit-bindgen": self.version, "wit-exports": self.exports}
        data: dict[str, Any] = {"wai-version": self.version}
        if self.exports:
            data["exports"] = self.exports
        if self.imports:
            data["imports"] = list(self.imports)
        return data


@dataclass(frozen=True, slots=True)
class ModuleEntry:
    """One compiled artifact published by the package."""

    name: str
    source: str
    abi: str = DEFAULT_ABI
    bindings: Optional[Bindings] = None

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "source": self.source, "abi": self.abi}
        if self.bindings is not None:
            data["bindings"] = self.bindings.as_dict()
        return data


@dataclass(frozen=True, slots=True)
class CommandEntry:
    """A runnable command exposed by the registry, bound to a module."""

    name: str
    module: str
    package: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "module": self.module}
        if self.package:
            data["package"] = self.package
        return data


@dataclass(frozen=True, slots=True)
class TargetManifest:
    """The wapm.toml package descriptor.

    Attributes:
        namespace: Registry namespace (kept apart from ``name``)
        name: Package name, identical to the crate name
        version: Package version, identical to the crate version
        description: Package description (None when the crate has none)
        license: SPDX license identifier (None when the crate has none)
        license_file: License file shipped alongside the manifest
        readme: README shipped alongside the manifest
        repository: Source repository URL
        homepage: Homepage URL
        wasmer_extra_flags: Extra flags for wasmer
        modules: Module entries in target declaration order
        commands: Command entries, one per binary target
        fs: Guest path to host directory mapping
    """

    name: str
    version: str
    namespace: Optional[str] = None
    description: Optional[str] = None
    license: Optional[str] = None
    license_file: Optional[str] = None
    readme: Optional[str] = None
    repository: Optional[str] = None
    homepage: Optional[str] = None
    wasmer_extra_flags: Optional[str] = None
    modules: tuple[ModuleEntry, ...] = ()
    commands: tuple[CommandEntry, ...] = ()
    fs: Mapping[str, str] = field(default_factory=dict)

    @property
    def package_name(self) -> str:
        """Fully qualified registry name ("namespace/name")."""
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    def as_dict(self) -> dict[str, Any]:
        """Return the manifest as a plain dictionary.

        Optional fields that are unset or empty are omitted, so a missing
        description and an empty one look the same to the validator.
        """
        data: dict[str, Any] = {}
        for key in (
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
        ):
            value = getattr(self, key)
            if value:
                data[key] = value
        data["modules"] = [module.as_dict() for module in self.modules]
        if self.commands:
            data["commands"] = [command.as_dict() for command in self.commands]
        if self.fs:
            data["fs"] = dict(self.fs)
        return data


@dataclass(frozen=True, slots=True)
class ValidationDiagnostic:
    """A single validation finding.

    Attributes:
        severity: "error" blocks writing the manifest, "warning" does not
        field: Manifest field the finding is about (e.g. "modules[0].source")
        message: Human-readable explanation
    """

    severity: Severity
    field: str
    message: str

    @property
    def is_error(self) -> bool:
        return self.severity == "error"

    def __str__(self) -> str:
        return f"{self.severity}: [{self.field}] {self.message}"
