# SPDX-License-Identifier: MIT
"""Publish crates to the WebAssembly Package Manager.

Each selected crate is staged under ``<target-dir>/wapm/<crate>``: its
wapm.toml, the compiled modules, and its license file and README. The
staged directory is then handed to `wapm publish`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import click

from ..main import (
    HANDLED_ERRORS,
    Context,
    echo_diagnostics,
    echo_error,
    echo_info,
    echo_success,
    echo_warning,
    metadata_options,
    pass_context,
    report_error,
)
from ..packager import stage_package

logger = logging.getLogger(__name__)


@click.command()
@metadata_options
@click.option(
    "--dry-run",
    "-n",
    is_flag=True,
    envvar="CARGO_WAPM_DRY_RUN",
    help="Build the package, but don't publish it.",
)
@click.option(
    "--debug",
    is_flag=True,
    help="Publish modules compiled in debug mode.",
)
@pass_context
def publish(
    ctx: Context,
    manifest_path: Optional[Path],
    workspace: bool,
    exclude: tuple[str, ...],
    features: Optional[str],
    all_features: bool,
    no_default_features: bool,
    dry_run: bool,
    debug: bool,
) -> None:
    """Publish a crate to the WebAssembly Package Manager.

    The crate's modules must already be compiled for WebAssembly. Every
    selected crate is staged and validated before anything is uploaded.

    \b
    Examples:
        cargo wapm publish                    # Publish the current crate
        cargo wapm publish --dry-run          # Stage and check, don't upload
        cargo wapm publish --workspace --exclude internal-tools
    """
    loader = ctx.make_loader(
        manifest_path, features, all_features, no_default_features, workspace, exclude
    )
    try:
        sources = loader.load()
        target_dir = Path(loader.target_directory)
    except HANDLED_ERRORS as e:
        report_error(e)
        raise SystemExit(1)

    if not sources:
        echo_warning("No packages to publish.")
        return

    staging_root = target_dir / "wapm"
    logger.debug("Staging packages in %s", staging_root)

    # Stage every crate before the first upload
    staged = []
    for source in sources:
        echo_info(f"Staging: {source.name} {source.version}")
        try:
            result = stage_package(source, staging_root / source.name, target_dir, debug=debug)
        except HANDLED_ERRORS as e:
            report_error(e)
            echo_error(f'Unable to publish "{source.name}"')
            raise SystemExit(1)
        echo_diagnostics(result.warnings)
        echo_info(f"  Manifest: {result.path}")
        staged.append((source, result))

    for source, result in staged:
        echo_info(f"Publishing: {source.name} {source.version}")
        try:
            ctx.publisher.publish(result.path, dry_run=dry_run)
        except HANDLED_ERRORS as e:
            report_error(e)
            echo_error(f'Unable to publish "{source.name}"')
            raise SystemExit(1)

        if dry_run:
            echo_success(f"  {result.manifest.package_name}: dry run complete")
        else:
            echo_success(f"  {result.manifest.package_name}: published!")
