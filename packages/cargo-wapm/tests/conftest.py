# SPDX-License-Identifier: MIT
"""Pytest configuration and fixtures for cargo-wapm tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import pytest
from click.testing import CliRunner

from cargo_wapm.metadata import CargoMetadata, select_packages, source_from_package


def make_package(
    crate_dir: Path,
    name: str = "demo",
    version: str = "0.1.0",
    description: Optional[str] = "A demo module",
    license: Optional[str] = "Apache-2.0",
    targets: Optional[list[dict[str, Any]]] = None,
    wapm: Optional[dict[str, Any]] = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build a package object shaped like `cargo metadata` output."""
    if targets is None:
        targets = [{"name": name, "kind": ["bin"], "crate_types": ["bin"]}]
    return {
        "name": name,
        "version": version,
        "id": f"{name} {version} (path+file://{crate_dir})",
        "description": description,
        "license": license,
        "license_file": extra.get("license_file"),
        "readme": extra.get("readme"),
        "authors": extra.get("authors", ["Test Author <test@example.com>"]),
        "repository": extra.get("repository"),
        "homepage": extra.get("homepage"),
        "targets": targets,
        "manifest_path": str(crate_dir / "Cargo.toml"),
        "metadata": {"wapm": wapm if wapm is not None else {"namespace": "hotg"}},
    }


def make_metadata(
    workspace_root: Path,
    packages: list[dict[str, Any]],
    root: Optional[str] = None,
) -> dict[str, Any]:
    """Build a `cargo metadata --format-version 1` document."""
    return {
        "packages": packages,
        "workspace_members": [pkg["id"] for pkg in packages],
        "resolve": {"root": root, "nodes": []},
        "target_directory": str(workspace_root / "target"),
        "workspace_root": str(workspace_root),
        "version": 1,
    }


class FakeLoader:
    """Stands in for CargoMetadataLoader without running cargo."""

    def __init__(self, document: dict[str, Any], **options: Any):
        self.options = options
        self.metadata = CargoMetadata.from_json(document)

    @property
    def target_directory(self) -> Path:
        return self.metadata.target_directory

    def load(self):
        packages = select_packages(
            self.metadata,
            workspace=self.options.get("workspace", False),
            current_dir=self.options.get("current_dir") or Path.cwd(),
            exclude=self.options.get("exclude", ()),
        )
        return [source_from_package(pkg) for pkg in packages]


class RecordingPublisher:
    """Records publish calls instead of running wapm."""

    def __init__(self, error: Optional[Exception] = None):
        self.calls: list[tuple[Path, bool]] = []
        self.error = error

    def publish(self, manifest_path: Path, dry_run: bool = False) -> None:
        self.calls.append((Path(manifest_path), dry_run))
        if self.error is not None:
            raise self.error


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def crate_dir(tmp_path: Path) -> Path:
    """Create a crate directory with a Cargo.toml, README and LICENSE."""
    crate = tmp_path / "demo"
    crate.mkdir()
    (crate / "Cargo.toml").write_text(
        """[package]
name = "demo"
version = "0.1.0"
description = "A demo module"
license = "Apache-2.0"

[package.metadata.wapm]
namespace = "hotg"
abi = "wasi"
"""
    )
    (crate / "README.md").write_text("# Demo\n")
    (crate / "LICENSE").write_text("Apache License 2.0\n")
    return crate


@pytest.fixture
def built_artifact(crate_dir: Path) -> Path:
    """Create the compiled module cargo would leave for a wasi release build."""
    artifact = crate_dir / "target" / "wasm32-wasi" / "release" / "demo.wasm"
    artifact.parent.mkdir(parents=True)
    artifact.write_bytes(b"\x00asm\x01\x00\x00\x00")
    return artifact


@pytest.fixture
def package_factory():
    """Return a builder for `cargo metadata` package objects."""
    return make_package


@pytest.fixture
def metadata_factory():
    """Return a builder for `cargo metadata` documents."""
    return make_metadata


@pytest.fixture
def fake_loader_factory():
    """Return a function turning a metadata document into a Context loader factory."""

    def factory(document: dict[str, Any]):
        def loader_factory(**options: Any) -> FakeLoader:
            return FakeLoader(document, **options)

        return loader_factory

    return factory


@pytest.fixture
def publisher() -> RecordingPublisher:
    """Create a publisher that records calls."""
    return RecordingPublisher()
