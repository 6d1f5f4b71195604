# SPDX-License-Identifier: MIT
"""Tests for loading crate metadata with cargo."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path

import pytest

from cargo_wapm.config import ConfigError
from cargo_wapm.metadata import (
    CargoMetadata,
    CargoMetadataLoader,
    MetadataError,
    cargo_bin,
    select_packages,
    source_from_package,
)


class TestSourceFromPackage:
    """Tests for source_from_package function."""

    def test_identity_and_attributes(self, tmp_path, package_factory):
        pkg = package_factory(
            tmp_path,
            readme="README.md",
            license_file="LICENSE",
            repository="https://github.com/example/demo",
            homepage="https://example.com",
        )
        source = source_from_package(pkg)
        assert source.name == "demo"
        assert source.version == "0.1.0"
        assert source.description == "A demo module"
        assert source.license == "Apache-2.0"
        assert source.readme == "README.md"
        assert source.license_file == "LICENSE"
        assert source.authors == ("Test Author <test@example.com>",)
        assert source.repository == "https://github.com/example/demo"
        assert source.homepage == "https://example.com"
        assert source.manifest_dir == tmp_path

    def test_wapm_settings(self, tmp_path, package_factory):
        pkg = package_factory(
            tmp_path, wapm={"namespace": "hotg", "abi": "wasi", "fs": {"/data": "data"}}
        )
        source = source_from_package(pkg)
        assert source.namespace == "hotg"
        assert source.abi == "wasi"
        assert source.fs == {"/data": "data"}
        assert source.bindings is None

    def test_bindings(self, tmp_path, package_factory):
        wapm = {"namespace": "hotg", "bindings": {"wit-bindgen": "0.1.0", "wit-exports": "demo.wit"}}
        source = source_from_package(package_factory(tmp_path, wapm=wapm))
        assert source.bindings.kind == "wit"
        assert source.bindings.referenced_files() == ("demo.wit",)

    def test_missing_description_stays_missing(self, tmp_path, package_factory):
        source = source_from_package(package_factory(tmp_path, description=None))
        assert source.description is None

    def test_target_kinds(self, tmp_path, package_factory):
        targets = [
            {"name": "my-lib", "kind": ["cdylib", "rlib"]},
            {"name": "my-tool", "kind": ["bin"]},
            {"name": "plain", "kind": ["lib"]},
            {"name": "build-script-build", "kind": ["custom-build"]},
            {"name": "integration", "kind": ["test"]},
            {"name": "example", "kind": ["example"]},
        ]
        source = source_from_package(package_factory(tmp_path, targets=targets))
        assert [(t.name, t.kind, t.output) for t in source.targets] == [
            ("my-lib", "library", "my_lib"),
            ("my-tool", "binary", "my-tool"),
        ]

    def test_no_publishable_targets(self, tmp_path, package_factory):
        targets = [{"name": "plain", "kind": ["lib"]}]
        source = source_from_package(package_factory(tmp_path, targets=targets))
        assert source.targets == ()

    def test_missing_wapm_table(self, tmp_path, package_factory):
        pkg = package_factory(tmp_path)
        pkg["metadata"] = None
        with pytest.raises(ConfigError):
            source_from_package(pkg)


class TestCargoMetadata:
    """Tests for CargoMetadata parsing."""

    def test_from_json(self, tmp_path, package_factory, metadata_factory):
        pkg = package_factory(tmp_path)
        metadata = CargoMetadata.from_json(metadata_factory(tmp_path, [pkg], root=pkg["id"]))
        assert metadata.root == pkg["id"]
        assert metadata.target_directory == tmp_path / "target"
        assert metadata.members() == [pkg]
        assert metadata.root_package() == pkg

    def test_invalid_document(self):
        with pytest.raises(MetadataError):
            CargoMetadata.from_json({"not": "metadata"})

    def test_members_exclude_dependencies(self, tmp_path, package_factory, metadata_factory):
        member = package_factory(tmp_path)
        dependency = package_factory(tmp_path / "registry" / "serde", name="serde")
        document = metadata_factory(tmp_path, [member, dependency])
        document["workspace_members"] = [member["id"]]
        metadata = CargoMetadata.from_json(document)
        assert metadata.members() == [member]

    def test_root_package_from_workspace_root(self, tmp_path, package_factory, metadata_factory):
        pkg = package_factory(tmp_path)
        document = metadata_factory(tmp_path, [pkg])
        document["resolve"] = None
        metadata = CargoMetadata.from_json(document)
        assert metadata.root_package() == pkg

    def test_virtual_workspace_has_no_root(self, tmp_path, package_factory, metadata_factory):
        pkg = package_factory(tmp_path / "crates" / "demo")
        metadata = CargoMetadata.from_json(metadata_factory(tmp_path, [pkg]))
        assert metadata.root_package() is None


class TestSelectPackages:
    """Tests for select_packages function."""

    @pytest.fixture
    def workspace(self, tmp_path, package_factory, metadata_factory):
        app = package_factory(tmp_path / "app", name="app")
        nested = package_factory(tmp_path / "app" / "nested", name="nested")
        tool = package_factory(tmp_path / "tool", name="tool")
        plain = package_factory(tmp_path / "plain", name="plain")
        plain["metadata"] = None
        return CargoMetadata.from_json(metadata_factory(tmp_path, [app, nested, tool, plain]))

    def names(self, packages):
        return [pkg["name"] for pkg in packages]

    def test_workspace_selects_wapm_crates(self, workspace, tmp_path):
        selected = select_packages(workspace, workspace=True, current_dir=tmp_path)
        assert self.names(selected) == ["app", "nested", "tool"]

    def test_workspace_exclude(self, workspace, tmp_path):
        selected = select_packages(
            workspace, workspace=True, current_dir=tmp_path, exclude=("nested",)
        )
        assert self.names(selected) == ["app", "tool"]

    def test_current_directory(self, workspace, tmp_path):
        selected = select_packages(workspace, workspace=False, current_dir=tmp_path / "tool")
        assert self.names(selected) == ["tool"]

    def test_most_specific_directory_wins(self, workspace, tmp_path):
        current = tmp_path / "app" / "nested" / "src"
        selected = select_packages(workspace, workspace=False, current_dir=current)
        assert self.names(selected) == ["nested"]

    def test_falls_back_to_root_package(self, tmp_path, package_factory, metadata_factory):
        pkg = package_factory(tmp_path / "crate")
        metadata = CargoMetadata.from_json(metadata_factory(tmp_path, [pkg], root=pkg["id"]))
        selected = select_packages(metadata, workspace=False, current_dir=tmp_path / "elsewhere")
        assert selected == [pkg]

    def test_nothing_to_select(self, workspace, tmp_path):
        with pytest.raises(MetadataError, match="--workspace"):
            select_packages(workspace, workspace=False, current_dir=tmp_path / "docs")


class TestCargoMetadataLoader:
    """Tests for CargoMetadataLoader."""

    def test_default_command(self, monkeypatch):
        monkeypatch.delenv("CARGO", raising=False)
        assert CargoMetadataLoader().command() == ["cargo", "metadata", "--format-version", "1"]

    def test_command_options(self, monkeypatch):
        monkeypatch.setenv("CARGO", "/opt/cargo/bin/cargo")
        loader = CargoMetadataLoader(
            manifest_path=Path("crate/Cargo.toml"),
            features=("a", "b"),
            all_features=True,
            no_default_features=True,
        )
        assert loader.command() == [
            "/opt/cargo/bin/cargo",
            "metadata",
            "--format-version",
            "1",
            "--manifest-path",
            str(Path("crate/Cargo.toml")),
            "--features",
            "a,b",
            "--all-features",
            "--no-default-features",
        ]

    def test_cargo_bin_default(self, monkeypatch):
        monkeypatch.delenv("CARGO", raising=False)
        assert cargo_bin() == "cargo"

    def test_load(self, monkeypatch, tmp_path, package_factory, metadata_factory):
        pkg = package_factory(tmp_path)
        document = metadata_factory(tmp_path, [pkg], root=pkg["id"])
        calls = []

        def fake_run(cmd, **kwargs):
            calls.append(cmd)
            return subprocess.CompletedProcess(cmd, 0, stdout=json.dumps(document), stderr="")

        monkeypatch.setattr(subprocess, "run", fake_run)

        loader = CargoMetadataLoader(current_dir=tmp_path)
        sources = loader.load()

        assert [s.name for s in sources] == ["demo"]
        assert loader.target_directory == tmp_path / "target"
        assert len(calls) == 1

    def test_cargo_failure(self, monkeypatch):
        def fake_run(cmd, **kwargs):
            return subprocess.CompletedProcess(cmd, 101, stdout="", stderr="error: no Cargo.toml")

        monkeypatch.setattr(subprocess, "run", fake_run)

        with pytest.raises(MetadataError, match="exit code 101"):
            CargoMetadataLoader().fetch()

    def test_cargo_not_installed(self, monkeypatch):
        def fake_run(cmd, **kwargs):
            raise FileNotFoundError(cmd[0])

        monkeypatch.setattr(subprocess, "run", fake_run)

        with pytest.raises(MetadataError, match="Is it installed"):
            CargoMetadataLoader().fetch()

    def test_invalid_json(self, monkeypatch):
        def fake_run(cmd, **kwargs):
            return subprocess.CompletedProcess(cmd, 0, stdout="not json", stderr="")

        monkeypatch.setattr(subprocess, "run", fake_run)

        with pytest.raises(MetadataError, match="Unable to parse"):
            CargoMetadataLoader().fetch()
