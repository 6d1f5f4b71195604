# SPDX-License-Identifier: MIT
"""Per-crate configuration read from [package.metadata.wapm] in Cargo.toml."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from wapm_manifest import ABIS, DEFAULT_ABI, Bindings

logger = logging.getLogger(__name__)

KNOWN_KEYS = {"namespace", "abi", "fs", "wasmer-extra-flags", "bindings", "package"}


class ConfigError(Exception):
    """Raised when configuration loading fails."""

    pass


@dataclass
class WapmConfig:
    """Settings from a crate's [package.metadata.wapm] table.

    Attributes:
        namespace: Registry namespace to publish under
        abi: ABI the modules are compiled for
        fs: Guest path to host directory mapping
        wasmer_extra_flags: Extra flags passed to wasmer
        bindings: wai or wit bindings attached to every module
    """

    namespace: str
    abi: str = DEFAULT_ABI
    fs: dict[str, str] = field(default_factory=dict)
    wasmer_extra_flags: Optional[str] = None
    bindings: Optional[Bindings] = None

    @classmethod
    def from_metadata(cls, metadata: Any, package: str = "") -> "WapmConfig":
        """Create WapmConfig from a package's ``metadata`` object.

        Args:
            metadata: The ``metadata`` value of a package in `cargo metadata`
                output (the parsed [package.metadata] table, or None)
            package: Package name, used in error messages

        Returns:
            WapmConfig instance

        Raises:
            ConfigError: If the table is missing or malformed
        """
        where = f"[package.metadata.wapm] in {package}" if package else "[package.metadata.wapm]"

        table = metadata.get("wapm") if isinstance(metadata, dict) else None
        if table is None:
            raise ConfigError(f"{where} is missing")
        if not isinstance(table, dict):
            raise ConfigError(f"{where} must be a table")

        for key in sorted(set(table) - KNOWN_KEYS):
            logger.debug("Ignoring unknown key %r in %s", key, where)

        if "package" in table:
            raise ConfigError(
                f"{where}: the 'package' key is not supported, "
                "packages are always published under the crate name"
            )

        namespace = table.get("namespace")
        if not isinstance(namespace, str) or not namespace:
            raise ConfigError(f"{where}: 'namespace' is required")

        abi = table.get("abi", DEFAULT_ABI)
        if abi not in ABIS:
            allowed = ", ".join(repr(a) for a in ABIS)
            raise ConfigError(f"{where}: 'abi' must be one of: {allowed}")

        fs = table.get("fs", {})
        if not isinstance(fs, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in fs.items()
        ):
            raise ConfigError(f"{where}: 'fs' must map guest paths to host directories")

        extra_flags = table.get("wasmer-extra-flags")
        if extra_flags is not None and not isinstance(extra_flags, str):
            raise ConfigError(f"{where}: 'wasmer-extra-flags' must be a string")

        bindings = None
        if "bindings" in table:
            if not isinstance(table["bindings"], dict):
                raise ConfigError(f"{where}: 'bindings' must be a table")
            try:
                bindings = Bindings.from_dict(table["bindings"])
            except ValueError as e:
                raise ConfigError(f"{where}: invalid 'bindings': {e}") from e

        return cls(
            namespace=namespace,
            abi=abi,
            fs=dict(fs),
            wasmer_extra_flags=extra_flags,
            bindings=bindings,
        )


def has_wapm_table(metadata: Any) -> bool:
    """Check if a package's metadata contains a [package.metadata.wapm] table."""
    return isinstance(metadata, dict) and metadata.get("wapm") is not None
