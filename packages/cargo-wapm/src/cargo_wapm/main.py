# SPDX-License-Identifier: MIT
"""CLI entry point for the cargo-wapm command."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, Optional

import click

from wapm_manifest import (
    ManifestError,
    ManifestPublisher,
    ManifestValidationError,
    ValidationDiagnostic,
)

from .config import ConfigError
from .metadata import CargoMetadataLoader, MetadataError
from .packager import PackagingError
from .publisher import PublishError, WapmPublisher

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


class Context:
    """CLI context object passed to commands.

    Attributes:
        verbose: Whether debug logging was requested
        loader_factory: Builds the metadata loader from command options
        publisher: Uploads staged packages
    """

    def __init__(
        self,
        loader_factory: Optional[Callable[..., CargoMetadataLoader]] = None,
        publisher: Optional[ManifestPublisher] = None,
    ) -> None:
        self.verbose: bool = False
        self.loader_factory = loader_factory or CargoMetadataLoader
        self.publisher: ManifestPublisher = publisher or WapmPublisher()

    def make_loader(
        self,
        manifest_path: Optional[Path],
        features: Optional[str],
        all_features: bool,
        no_default_features: bool,
        workspace: bool,
        exclude: tuple[str, ...],
    ) -> CargoMetadataLoader:
        """Create the metadata loader for the given command options."""
        return self.loader_factory(
            manifest_path=manifest_path,
            features=parse_features(features),
            all_features=all_features,
            no_default_features=no_default_features,
            workspace=workspace,
            exclude=tuple(exclude),
            current_dir=Path.cwd(),
        )


pass_context = click.make_pass_decorator(Context, ensure=True)


def parse_features(features: Optional[str]) -> tuple[str, ...]:
    """Split a comma- or space-delimited feature list."""
    if not features:
        return ()
    return tuple(f for f in features.replace(",", " ").split() if f)


_METADATA_OPTIONS = [
    click.option(
        "--manifest-path",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        envvar="CARGO_WAPM_MANIFEST_PATH",
        help="Path to Cargo.toml.",
    ),
    click.option(
        "--workspace",
        "-w",
        is_flag=True,
        envvar="CARGO_WAPM_WORKSPACE",
        help="Handle every crate in this workspace.",
    ),
    click.option(
        "--exclude",
        multiple=True,
        help="Packages to ignore (with --workspace).",
    ),
    click.option(
        "--features",
        help="A comma-delimited list of features to enable.",
    ),
    click.option(
        "--all-features",
        is_flag=True,
        help="Enable all features.",
    ),
    click.option(
        "--no-default-features",
        is_flag=True,
        help="Do not activate the `default` feature.",
    ),
]


def metadata_options(f: Callable) -> Callable:
    """Add the options controlling how crate metadata is loaded."""
    for option in reversed(_METADATA_OPTIONS):
        f = option(f)
    return f


# Errors a command reports as "Error: ..." with exit status 1
HANDLED_ERRORS = (ConfigError, ManifestError, MetadataError, PackagingError, PublishError)


def echo_error(message: str) -> None:
    """Print an error message to stderr."""
    click.secho(f"Error: {message}", fg="red", err=True)


def echo_success(message: str) -> None:
    """Print a success message."""
    click.secho(message, fg="green")


def echo_info(message: str) -> None:
    """Print an info message."""
    click.echo(message)


def echo_warning(message: str) -> None:
    """Print a warning message."""
    click.secho(f"Warning: {message}", fg="yellow", err=True)


def echo_diagnostics(diagnostics: list[ValidationDiagnostic]) -> None:
    """Print validation diagnostics, warnings first."""
    warnings = [d for d in diagnostics if not d.is_error]
    errors = [d for d in diagnostics if d.is_error]

    if warnings:
        echo_warning(f"Warnings ({len(warnings)}):")
        for warning in warnings:
            echo_warning(f"  - [{warning.field}] {warning.message}")

    if errors:
        echo_error(f"Errors ({len(errors)}):")
        for error in errors:
            echo_error(f"  - [{error.field}] {error.message}")


def report_error(error: Exception) -> None:
    """Print a handled error, including validation diagnostics if it has any."""
    if isinstance(error, ManifestValidationError):
        echo_diagnostics(error.diagnostics)
    echo_error(str(error))


def configure_logging(verbose: bool) -> None:
    """Configure process-wide logging once, before any command runs."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)


@click.group()
@click.version_option(package_name="cargo-wapm")
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    envvar="CARGO_WAPM_VERBOSE",
    help="Enable debug logging.",
)
@pass_context
def cli(ctx: Context, verbose: bool) -> None:
    """Publish a Rust crate to the WebAssembly Package Manager.

    \b
    Examples:
        cargo wapm validate
        cargo wapm generate
        cargo wapm publish --dry-run
        cargo wapm publish --workspace --exclude internal-tools
    """
    ctx.verbose = verbose
    configure_logging(verbose)


# Import and register commands
from .commands import generate, publish, validate  # noqa: E402

cli.add_command(generate.generate)
cli.add_command(validate.validate)
cli.add_command(publish.publish)


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the CLI."""
    args = list(sys.argv[1:] if argv is None else argv)
    # `cargo wapm ...` runs `cargo-wapm wapm ...`
    if args[:1] == ["wapm"]:
        args = args[1:]

    try:
        cli(args=args, prog_name="cargo wapm")
    except HANDLED_ERRORS as e:
        report_error(e)
        sys.exit(1)
    except Exception as e:
        echo_error(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
