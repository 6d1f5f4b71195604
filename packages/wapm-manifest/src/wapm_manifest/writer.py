# SPDX-License-Identifier: MIT
"""Serialize manifests to wapm.toml and read them back.

The writer trusts its caller to have validated the manifest; it only
guarantees that the destination either holds the complete new manifest
or is left untouched.
"""

from __future__ import annotations

import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

from .models import Bindings, CommandEntry, ModuleEntry, TargetManifest
from .schema import DEFAULT_ABI, MANIFEST_FILENAME
from .validator import ManifestError

logger = logging.getLogger(__name__)

# TargetManifest attribute -> [package] key in wapm.toml
_PACKAGE_KEYS = {
    "version": "version",
    "description": "description",
    "license": "license",
    "license_file": "license-file",
    "readme": "readme",
    "repository": "repository",
    "homepage": "homepage",
    "wasmer_extra_flags": "wasmer-extra-flags",
}


class ManifestWriteError(ManifestError):
    """Raised when the manifest cannot be written to disk.

    The underlying OSError (or UnicodeError) is chained as ``__cause__``.

    Attributes:
        path: Destination that could not be written
    """

    def __init__(self, path: Path, reason: BaseException):
        self.path = path
        super().__init__(f'Unable to write to "{path}": {reason}')


def manifest_to_toml_dict(manifest: TargetManifest) -> dict[str, Any]:
    """Lay a manifest out as the wapm.toml document structure."""
    package: dict[str, Any] = {"name": manifest.package_name}
    for attribute, key in _PACKAGE_KEYS.items():
        value = getattr(manifest, attribute)
        if value:
            package[key] = value

    document: dict[str, Any] = {"package": package}
    document["module"] = [module.as_dict() for module in manifest.modules]
    if manifest.commands:
        document["command"] = [command.as_dict() for command in manifest.commands]
    if manifest.fs:
        document["fs"] = dict(manifest.fs)
    return document


def manifest_from_toml_dict(document: dict[str, Any]) -> TargetManifest:
    """Rebuild a TargetManifest from a parsed wapm.toml document."""
    package = document.get("package", {})
    namespace, _, name = package.get("name", "").rpartition("/")

    fields = {attribute: package.get(key) for attribute, key in _PACKAGE_KEYS.items()}
    fields["version"] = package.get("version", "")

    return TargetManifest(
        namespace=namespace or None,
        name=name,
        modules=tuple(
            ModuleEntry(
                name=m["name"],
                source=m["source"],
                abi=m.get("abi", DEFAULT_ABI),
                bindings=Bindings.from_dict(m["bindings"]) if "bindings" in m else None,
            )
            for m in document.get("module", [])
        ),
        commands=tuple(
            CommandEntry(name=c["name"], module=c["module"], package=c.get("package"))
            for c in document.get("command", [])
        ),
        fs=dict(document.get("fs", {})),
        **fields,
    )


def serialize_manifest(manifest: TargetManifest) -> str:
    """Render a manifest as wapm.toml text."""
    return tomli_w.dumps(manifest_to_toml_dict(manifest))


def _resolve_destination(destination: str | Path) -> Path:
    path = Path(destination)
    if path.is_dir():
        return path / MANIFEST_FILENAME
    return path


def _default_file_mode() -> int:
    """The mode a plain open() would give a new file under the current umask."""
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def _discard(temp_name: str) -> None:
    try:
        os.unlink(temp_name)
    except FileNotFoundError:
        pass


def write_manifest(manifest: TargetManifest, destination: str | Path) -> Path:
    """Write a manifest to disk, replacing any existing file.

    The content goes to a temporary file in the destination directory which
    is then renamed over the destination. On any failure the temporary file
    is removed, so a partially written manifest is never left behind.

    Args:
        manifest: A manifest that passed validation
        destination: Target file, or a directory to write wapm.toml into

    Returns:
        Path of the written manifest

    Raises:
        ManifestWriteError: If the file cannot be written or its content
            cannot be encoded as UTF-8
    """
    path = _resolve_destination(destination)
    content = serialize_manifest(manifest)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
    except OSError as e:
        raise ManifestWriteError(path, e) from e

    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
        # mkstemp creates the file as 0600
        os.chmod(temp_name, _default_file_mode())
        os.replace(temp_name, path)
    except (OSError, UnicodeError) as e:
        _discard(temp_name)
        raise ManifestWriteError(path, e) from e
    except BaseException:
        _discard(temp_name)
        raise

    logger.debug("Wrote %d bytes to %s", len(content), path)
    return path


def read_manifest(path: str | Path) -> TargetManifest:
    """Parse a wapm.toml file back into a TargetManifest.

    Raises:
        FileNotFoundError: If the file does not exist
        ManifestError: If the file is not valid TOML
    """
    path = _resolve_destination(path)
    try:
        with open(path, "rb") as f:
            document = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ManifestError(f"Invalid TOML syntax in {path}: {e}") from e
    return manifest_from_toml_dict(document)
