# SPDX-License-Identifier: MIT
"""Load resolved crate metadata with `cargo metadata`.

Cargo does the dependency and workspace resolution; this module only runs
it, picks the packages to publish and converts each one into the
SourceManifest consumed by wapm_manifest.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from wapm_manifest import BuildTarget, SourceManifest

from .config import WapmConfig, has_wapm_table

logger = logging.getLogger(__name__)


class MetadataError(Exception):
    """Raised when crate metadata cannot be obtained or interpreted."""

    pass


def cargo_bin() -> str:
    """Return the cargo executable, honouring the CARGO environment variable."""
    return os.environ.get("CARGO") or "cargo"


@dataclass
class CargoMetadata:
    """The parts of `cargo metadata` output this tool relies on.

    Attributes:
        packages: Raw package objects, in the order cargo reported them
        workspace_members: Package IDs belonging to the workspace
        root: ID of the root package, if the workspace has one
        target_directory: Cargo's build output directory
        workspace_root: Directory of the workspace's Cargo.toml
    """

    packages: list[dict[str, Any]]
    workspace_members: list[str] = field(default_factory=list)
    root: Optional[str] = None
    target_directory: Path = Path("target")
    workspace_root: Optional[Path] = None

    @classmethod
    def from_json(cls, data: Any) -> "CargoMetadata":
        """Create CargoMetadata from parsed `cargo metadata --format-version 1` output.

        Raises:
            MetadataError: If the document does not look like cargo metadata
        """
        if not isinstance(data, dict) or not isinstance(data.get("packages"), list):
            raise MetadataError("cargo metadata output has no 'packages' list")

        resolve = data.get("resolve") or {}
        workspace_root = data.get("workspace_root")
        return cls(
            packages=data["packages"],
            workspace_members=list(data.get("workspace_members", [])),
            root=resolve.get("root") if isinstance(resolve, dict) else None,
            target_directory=Path(data.get("target_directory", "target")),
            workspace_root=Path(workspace_root) if workspace_root else None,
        )

    def members(self) -> list[dict[str, Any]]:
        """Return the workspace member packages."""
        return [pkg for pkg in self.packages if pkg.get("id") in self.workspace_members]

    def root_package(self) -> Optional[dict[str, Any]]:
        """Return the workspace's root package, if there is one."""
        for pkg in self.packages:
            if self.root is not None and pkg.get("id") == self.root:
                return pkg
        if self.workspace_root is not None:
            root_manifest = self.workspace_root / "Cargo.toml"
            for pkg in self.members():
                if Path(pkg.get("manifest_path", "")) == root_manifest:
                    return pkg
        return None


def _build_target(target: dict[str, Any]) -> Optional[BuildTarget]:
    """Convert a cargo target into a BuildTarget, or None if it can't be published."""
    name = target.get("name", "")
    kinds = target.get("kind", [])
    if "bin" in kinds:
        return BuildTarget(name=name, kind="binary", output=name)
    if "cdylib" in kinds:
        # rustc converts dashes to underscores for library artifacts only
        return BuildTarget(name=name, kind="library", output=name.replace("-", "_"))
    return None


def _optional_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def source_from_package(pkg: dict[str, Any]) -> SourceManifest:
    """Convert a package object from `cargo metadata` into a SourceManifest.

    Targets that are neither binaries nor cdylib libraries (tests, examples,
    rlibs, build scripts, ...) are dropped.

    Raises:
        ConfigError: If [package.metadata.wapm] is missing or malformed
    """
    name = pkg.get("name", "")
    config = WapmConfig.from_metadata(pkg.get("metadata"), package=name)

    targets = []
    for target in pkg.get("targets", []):
        converted = _build_target(target)
        if converted is None:
            logger.debug(
                "Skipping target %r of %s (kind %s)", target.get("name"), name, target.get("kind")
            )
            continue
        targets.append(converted)

    manifest_path = pkg.get("manifest_path")
    return SourceManifest(
        name=name,
        version=pkg.get("version", ""),
        description=pkg.get("description"),
        license=pkg.get("license"),
        license_file=_optional_str(pkg.get("license_file")),
        readme=_optional_str(pkg.get("readme")),
        authors=tuple(pkg.get("authors") or ()),
        repository=_optional_str(pkg.get("repository")),
        homepage=_optional_str(pkg.get("homepage")),
        targets=tuple(targets),
        namespace=config.namespace,
        abi=config.abi,
        fs=config.fs,
        wasmer_extra_flags=config.wasmer_extra_flags,
        bindings=config.bindings,
        manifest_dir=Path(manifest_path).parent if manifest_path else None,
    )


def select_packages(
    metadata: CargoMetadata,
    workspace: bool,
    current_dir: Path,
    exclude: tuple[str, ...] = (),
) -> list[dict[str, Any]]:
    """Decide which packages to publish.

    With ``workspace`` set, every member that has a [package.metadata.wapm]
    table and isn't excluded is selected. Otherwise the most specific member
    whose directory contains ``current_dir`` is used, falling back to the
    root package.

    Raises:
        MetadataError: If no package can be selected
    """
    members = metadata.members()

    if workspace:
        logger.debug("Looking for publishable packages in the workspace")
        packages = []
        for pkg in members:
            name = pkg.get("name", "")
            if name in exclude:
                logger.debug("Explicitly ignoring %s", name)
                continue
            if not has_wapm_table(pkg.get("metadata")):
                logger.debug("Skipping %s: no [package.metadata.wapm] table", name)
                continue
            packages.append(pkg)
        return packages

    # Nested crates are possible, so prefer the deepest matching directory
    current_dir = current_dir.resolve()
    candidates = []
    for pkg in members:
        pkg_dir = Path(pkg.get("manifest_path", "")).parent.resolve()
        if current_dir == pkg_dir or pkg_dir in current_dir.parents:
            candidates.append((len(pkg_dir.parts), pkg))

    if candidates:
        candidates.sort(key=lambda item: item[0])
        return [candidates[-1][1]]

    root = metadata.root_package()
    if root is not None:
        return [root]

    raise MetadataError(
        'Unable to determine which package to publish. Either "cd" into the crate '
        'folder or use the "--workspace" flag.'
    )


@dataclass
class CargoMetadataLoader:
    """Runs `cargo metadata` and turns the selected packages into SourceManifests.

    Attributes:
        manifest_path: Path to Cargo.toml (cargo searches upwards if unset)
        features: Features to activate
        all_features: Activate all features
        no_default_features: Do not activate the default feature
        workspace: Publish every eligible workspace member
        exclude: Package names to skip in workspace mode
        current_dir: Directory used to pick a package outside workspace mode
    """

    manifest_path: Optional[Path] = None
    features: tuple[str, ...] = ()
    all_features: bool = False
    no_default_features: bool = False
    workspace: bool = False
    exclude: tuple[str, ...] = ()
    current_dir: Optional[Path] = None
    metadata: Optional[CargoMetadata] = field(default=None, init=False)

    def command(self) -> list[str]:
        """Build the `cargo metadata` command line."""
        cmd = [cargo_bin(), "metadata", "--format-version", "1"]
        if self.manifest_path is not None:
            cmd.extend(["--manifest-path", str(self.manifest_path)])
        if self.features:
            cmd.extend(["--features", ",".join(self.features)])
        if self.all_features:
            cmd.append("--all-features")
        if self.no_default_features:
            cmd.append("--no-default-features")
        return cmd

    def fetch(self) -> CargoMetadata:
        """Run `cargo metadata` and parse its output (cached after the first call).

        Raises:
            MetadataError: If cargo cannot be started, fails, or prints invalid JSON
        """
        if self.metadata is not None:
            return self.metadata

        cmd = self.command()
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=False,
                cwd=self.current_dir,
            )
        except FileNotFoundError:
            raise MetadataError(f'Unable to start "{cmd[0]}". Is it installed?') from None

        if result.returncode != 0:
            raise MetadataError(
                f"cargo metadata exited unsuccessfully with exit code {result.returncode}:\n"
                f"{result.stderr}"
            )

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise MetadataError(f"Unable to parse the workspace's metadata: {e}") from e

        self.metadata = CargoMetadata.from_json(data)
        return self.metadata

    @property
    def target_directory(self) -> Path:
        """Cargo's build output directory."""
        return self.fetch().target_directory

    def load(self) -> list[SourceManifest]:
        """Return SourceManifests for the packages selected for publishing."""
        metadata = self.fetch()
        packages = select_packages(
            metadata,
            workspace=self.workspace,
            current_dir=self.current_dir or Path.cwd(),
            exclude=self.exclude,
        )
        logger.debug("Selected %s", ", ".join(p.get("name", "") for p in packages) or "nothing")
        return [source_from_package(pkg) for pkg in packages]
