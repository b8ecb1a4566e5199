"""
CLI entry point for kitbag.

This module provides the Typer-based command-line interface for kitbag.
All user interactions flow through these commands.

Commands:
    validate    Check a pack's manifest against the pack rules
    show        Show a pack's features and libraries
    add         Install a pack's libraries into a consumer manifest
    sync        Re-apply a pack using the features recorded in the manifest
    status      Show how a manifest has drifted from a pack

Architecture Note:
    The CLI is intentionally thin - it parses arguments and delegates to the
    engine, validator and report modules. It never prompts; when a pack needs
    a human choice the available options are printed and the exit code is 1.
"""

import logging
import traceback
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape

from kitbag import __version__
from kitbag.config import KitbagConfig, load_config
from kitbag.engine import Installer
from kitbag.errors import KitbagError, ValidationFailedError
from kitbag.pack.loader import PackLoader
from kitbag.pack.validator import validate as validate_pack
from kitbag.report import (
    dumps,
    findings_dict,
    install_dict,
    pack_dict,
    print_findings,
    print_install,
    print_pack,
    print_status,
    status_dict,
)
from kitbag.schema import InstallTarget

# Initialize Typer app with metadata
app = typer.Typer(
    name="kitbag",
    help="Install curated dependency packs into project manifests.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console()

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]kitbag[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log merge and resolution decisions."),
    ] = False,
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to a kitbag YAML config file.",
            envvar="KITBAG_CONFIG",
            resolve_path=True,
        ),
    ] = None,
) -> None:
    """
    kitbag - curated dependency packs for project manifests.

    Validate packs, install their libraries with feature selection, and keep
    manifests in sync without ever downgrading or dropping what you added.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )
    try:
        ctx.obj = load_config(config_path)
    except KitbagError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=2)


def _config(ctx: typer.Context) -> KitbagConfig:
    return ctx.obj if isinstance(ctx.obj, KitbagConfig) else load_config(None)


def _split_features(values: Optional[list[str]]) -> list[str]:
    """Flatten repeated and comma-separated feature options."""
    features = []
    for value in values or []:
        features.extend(part.strip() for part in value.split(",") if part.strip())
    return features


def _output_json_error(error: Exception, include_traceback: bool = False) -> None:
    """Output an error in JSON format."""
    if isinstance(error, KitbagError):
        output = {"error": True, **error.to_dict()}
    else:
        output = {
            "error": True,
            "error_type": type(error).__name__,
            "message": str(error),
        }
    if include_traceback:
        output["traceback"] = traceback.format_exc()
    print(dumps(output))


def _fail(error: Exception, json_output: bool) -> None:
    if json_output:
        _output_json_error(error)
    else:
        console.print(f"[red]Error: {escape(str(error))}[/red]")
    raise typer.Exit(code=1)


# Shared options
PackPath = Annotated[
    Path,
    typer.Argument(help="Path to the pack directory or its manifest.", resolve_path=True),
]
ManifestOption = Annotated[
    Optional[Path],
    typer.Option(
        "--manifest",
        "-m",
        help="Consumer manifest (or its directory). Defaults to the current directory.",
        resolve_path=True,
    ),
]
TargetOption = Annotated[
    InstallTarget,
    typer.Option(
        "--target",
        help="Where to record pack bookkeeping.",
        case_sensitive=False,
    ),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output in JSON format."),
]
DryRunOption = Annotated[
    bool,
    typer.Option("--dry-run", help="Show what would change without writing."),
]


@app.command()
def validate(
    ctx: typer.Context,
    pack_path: Annotated[
        Path,
        typer.Argument(help="Path to the pack directory.", resolve_path=True),
    ] = Path("."),
    json_output: JsonOption = False,
) -> None:
    """
    Validate a pack's manifest.

    Prints one line per finding as ``error[rule]: message`` or
    ``warning[rule]: message``. Exits 1 when any error is found.

    Example:
        $ kitbag validate packs/cli-pack
    """
    failure = None
    try:
        findings = validate_pack(pack_path, _config(ctx))
    except ValidationFailedError as e:
        failure = e
        findings = e.findings

    if json_output:
        print(dumps(findings_dict(findings, str(pack_path))))
    else:
        print_findings(console, findings, str(pack_path))
        if failure is not None:
            console.print(f"[red]{failure.message}[/red]")

    raise typer.Exit(code=1 if failure is not None else 0)


@app.command()
def show(
    ctx: typer.Context,
    pack_path: PackPath,
    json_output: JsonOption = False,
) -> None:
    """Show a pack's features and libraries."""
    try:
        spec = PackLoader(pack_path, _config(ctx)).spec
    except KitbagError as e:
        _fail(e, json_output)

    if json_output:
        print(dumps(pack_dict(spec)))
    else:
        print_pack(console, spec)


@app.command()
def add(
    ctx: typer.Context,
    pack_path: PackPath,
    libraries: Annotated[
        Optional[list[str]],
        typer.Argument(help="Install exactly these libraries from the pack."),
    ] = None,
    features: Annotated[
        Optional[list[str]],
        typer.Option(
            "--features",
            "-F",
            help="Features to enable (repeatable, comma-separated).",
        ),
    ] = None,
    no_default_features: Annotated[
        bool,
        typer.Option("--no-default-features", help="Do not install the pack's default libraries."),
    ] = False,
    all_features: Annotated[
        bool,
        typer.Option("--all-features", help="Enable every feature of the pack."),
    ] = False,
    target: TargetOption = InstallTarget.DEFAULT,
    manifest: ManifestOption = None,
    dry_run: DryRunOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Install a pack's libraries into a consumer manifest.

    Existing versions are never downgraded and existing features are never
    removed. Exits 1 when nothing was selected or a named library is unknown.

    Example:
        $ kitbag add packs/cli-pack -F indicators --manifest app/
    """
    installer = Installer(_config(ctx))
    try:
        result = installer.add(
            pack_path,
            manifest,
            features=_split_features(features),
            no_default_features=no_default_features,
            all_features=all_features,
            libraries=libraries or [],
            install_target=target,
            dry_run=dry_run,
        )
    except KitbagError as e:
        _fail(e, json_output)

    if json_output:
        print(dumps(install_dict(result)))
    else:
        print_install(console, result)

    failed = result.deferred or bool(getattr(result.selection, "unknown_libraries", ()))
    raise typer.Exit(code=1 if failed else 0)


@app.command()
def sync(
    ctx: typer.Context,
    pack_path: PackPath,
    target: TargetOption = InstallTarget.DEFAULT,
    manifest: ManifestOption = None,
    dry_run: DryRunOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Bring a manifest up to date with a pack.

    Uses the features recorded when the pack was added (or the defaults).
    """
    installer = Installer(_config(ctx))
    try:
        result = installer.sync(pack_path, manifest, install_target=target, dry_run=dry_run)
    except KitbagError as e:
        _fail(e, json_output)

    if json_output:
        print(dumps(install_dict(result)))
    else:
        print_install(console, result)


@app.command()
def status(
    ctx: typer.Context,
    pack_path: PackPath,
    manifest: ManifestOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    Show how a manifest has drifted from a pack.

    Exits 1 when a library is missing, outdated, or lacks features.
    """
    installer = Installer(_config(ctx))
    try:
        spec = installer.load(pack_path)
        entries = installer.status(pack_path, manifest)
    except KitbagError as e:
        _fail(e, json_output)

    if json_output:
        print(dumps(status_dict(spec.name, entries)))
    else:
        print_status(console, spec.name, entries)

    drift = any(e.missing or e.outdated or e.missing_features for e in entries)
    raise typer.Exit(code=1 if drift else 0)


if __name__ == "__main__":
    app()
