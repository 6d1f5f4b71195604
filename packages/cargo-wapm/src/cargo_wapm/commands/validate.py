# SPDX-License-Identifier: MIT
"""Validate the wapm.toml that would be generated for a crate."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from wapm_manifest import ManifestMappingError, has_errors, map_manifest, validate_manifest

from ..main import (
    HANDLED_ERRORS,
    Context,
    echo_diagnostics,
    echo_error,
    echo_info,
    echo_success,
    metadata_options,
    pass_context,
    report_error,
)


@click.command()
@metadata_options
@click.option(
    "--strict",
    is_flag=True,
    help="Treat warnings as errors.",
)
@pass_context
def validate(
    ctx: Context,
    manifest_path: Optional[Path],
    workspace: bool,
    exclude: tuple[str, ...],
    features: Optional[str],
    all_features: bool,
    no_default_features: bool,
    strict: bool,
) -> None:
    """Check that a crate can be turned into a valid wapm.toml.

    Nothing is written. Every problem found is listed, and the command fails
    if any of them is an error.

    \b
    Examples:
        cargo wapm validate                # Validate the current crate
        cargo wapm validate --workspace    # Validate every crate with [package.metadata.wapm]
        cargo wapm validate --strict       # Treat warnings as errors
    """
    loader = ctx.make_loader(
        manifest_path, features, all_features, no_default_features, workspace, exclude
    )
    try:
        sources = loader.load()
    except HANDLED_ERRORS as e:
        report_error(e)
        raise SystemExit(1)

    if not sources:
        echo_error("No packages to validate.")
        raise SystemExit(1)

    failed = 0
    for source in sources:
        echo_info(f"Validating: {source.name} {source.version}")

        try:
            manifest = map_manifest(source)
        except ManifestMappingError as e:
            echo_error(str(e))
            failed += 1
            continue

        diagnostics = validate_manifest(manifest)
        echo_diagnostics(diagnostics)

        if has_errors(diagnostics) or (strict and diagnostics):
            failed += 1
        elif diagnostics:
            echo_success(f"  {manifest.package_name}: valid with warnings")
        else:
            echo_success(f"  {manifest.package_name}: valid")

    if failed:
        echo_error(f"\nValidation failed for {failed} package(s)!")
        raise SystemExit(1)

    echo_success("\nValidation passed!")
