# SPDX-License-Identifier: MIT
"""Generate wapm.toml next to a crate's Cargo.toml."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from wapm_manifest import MANIFEST_FILENAME, generate_manifest

from ..main import (
    HANDLED_ERRORS,
    Context,
    echo_diagnostics,
    echo_error,
    echo_success,
    metadata_options,
    pass_context,
    report_error,
)


@click.command()
@metadata_options
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Where to write the manifest (defaults to wapm.toml beside Cargo.toml).",
)
@pass_context
def generate(
    ctx: Context,
    manifest_path: Optional[Path],
    workspace: bool,
    exclude: tuple[str, ...],
    features: Optional[str],
    all_features: bool,
    no_default_features: bool,
    output: Optional[Path],
) -> None:
    """Write the wapm.toml for a crate without publishing it.

    The manifest is only written if it passes validation. An existing
    wapm.toml is replaced.

    \b
    Examples:
        cargo wapm generate                   # Write ./wapm.toml
        cargo wapm generate -o dist/wapm.toml
        cargo wapm generate --workspace       # One wapm.toml per crate
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
        echo_error("No packages to generate a manifest for.")
        raise SystemExit(1)

    if output is not None and len(sources) > 1:
        echo_error("--output can only be used with a single package.")
        raise SystemExit(1)

    for source in sources:
        destination = output or (source.manifest_dir or Path.cwd()) / MANIFEST_FILENAME
        try:
            result = generate_manifest(source, destination)
        except HANDLED_ERRORS as e:
            report_error(e)
            raise SystemExit(1)

        echo_diagnostics(result.warnings)
        echo_success(f"Wrote {result.path}")
