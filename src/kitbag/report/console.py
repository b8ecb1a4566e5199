"""
Console output for kitbag.

Renders validation findings, pack details, merge outcomes and status drift
with Rich. Everything here only prints; decisions are made elsewhere.

Design Principles:
    - Status at a glance: icons and colors per finding or library
    - Plain rule ids: findings print as ``error[rule]: message``
    - Same layout for dry runs, with a clear marker
"""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from kitbag.engine import InstallResult
from kitbag.schema import Interactive, PackSpec, Severity, StatusEntry, ValidationFinding

# Status icons
ICON_SUCCESS = "[green]✓[/green]"
ICON_ERROR = "[red]✗[/red]"
ICON_WARNING = "[yellow]![/yellow]"
ICON_ADDED = "[green]+[/green]"
ICON_UPDATED = "[cyan]~[/cyan]"
ICON_UNCHANGED = "[dim]=[/dim]"


def print_findings(console: Console, findings: list[ValidationFinding], pack_path: str) -> None:
    """Print validation findings followed by a one-line verdict."""
    for finding in findings:
        style = "red" if finding.severity == Severity.ERROR else "yellow"
        console.print(f"[{style}]{escape(str(finding))}[/{style}]")

    errors = sum(1 for f in findings if f.severity == Severity.ERROR)
    warnings = len(findings) - errors
    if errors:
        console.print(f"{ICON_ERROR} {pack_path}: {errors} error(s), {warnings} warning(s)")
    else:
        console.print(f"{ICON_SUCCESS} {pack_path} is valid ({warnings} warning(s))")


def print_pack(console: Console, spec: PackSpec) -> None:
    """Print a pack's identity, features and libraries."""
    header = Text()
    header.append(" Pack ", style="bold")
    header.append(spec.name or "<unnamed>", style="bold cyan")
    if spec.version:
        header.append(f" {spec.version}", style="dim")
    console.print(Panel(header, expand=False))

    if spec.description:
        console.print(f"  {escape(spec.description)}")
    if spec.repository:
        console.print(f"  [dim]Repository:[/dim] {escape(spec.repository)}")
    console.print()

    if spec.features:
        console.print("[bold]Features[/bold]")
        for feature, names in spec.features.items():
            extras = spec.feature_extras.get(feature, {})
            shown = [
                f"{name} (+{', '.join(extras[name])})" if name in extras else name
                for name in names
            ]
            console.print(
                f"  • [cyan]{escape(feature)}[/cyan]: {escape(', '.join(shown)) or '[dim](empty)[/dim]'}"
            )
        console.print()

    table = Table(show_header=True, header_style="bold")
    table.add_column("Library", style="cyan")
    table.add_column("Version")
    table.add_column("Kind", style="dim")
    table.add_column("Features")
    table.add_column("Flags", style="dim")

    for name, library in spec.libraries.items():
        flags = []
        if name in spec.default_libraries:
            flags.append("default")
        if name in spec.hidden_libraries:
            flags.append("hidden")
        if library.optional:
            flags.append("optional")
        table.add_row(
            name,
            library.version or "[dim]—[/dim]",
            library.dep_kind.value,
            escape(", ".join(library.feature_flags)),
            ", ".join(flags),
        )
    console.print(table)


def print_install(console: Console, result: InstallResult) -> None:
    """Print the per-library outcome of an add or sync."""
    if isinstance(result.selection, Interactive):
        visible = result.spec.visible_libraries()
        console.print(f"[yellow]No libraries selected from {result.spec.name}.[/yellow]")
        if result.spec.features:
            console.print(f"  [dim]Features:[/dim] {', '.join(result.spec.features)}")
        if visible:
            console.print(f"  [dim]Libraries:[/dim] {', '.join(visible)}")
        console.print("  Pass -F/--features, --all-features or library names.")
        return

    for name in result.selection.unknown_libraries:
        console.print(f"{ICON_WARNING} [yellow]Unknown library '{escape(name)}' skipped[/yellow]")
    for name in result.selection.unknown_features:
        console.print(f"{ICON_WARNING} [yellow]Unknown feature '{escape(name)}' ignored[/yellow]")

    merge = result.merge
    if merge is None:
        return

    for change in merge.changes:
        if not change.changed:
            icon = ICON_UNCHANGED
        elif change.before is None:
            icon = ICON_ADDED
        else:
            icon = ICON_UPDATED
        line = f"  {icon} {escape(change.name)} [dim]({change.section})[/dim]"
        if change.changed and change.after:
            line += f" {escape(change.after)}"
        console.print(line)

    changed = sum(1 for c in merge.changes if c.changed)
    prefix = "[magenta]DRY RUN[/magenta] " if result.dry_run else ""
    if merge.changed:
        console.print(
            f"{prefix}{ICON_SUCCESS} {result.spec.name}: {changed} change(s) "
            f"to {result.manifest_path}"
        )
    else:
        console.print(f"{prefix}{ICON_SUCCESS} {result.spec.name}: all dependencies are up to date")


def print_status(console: Console, pack: str, entries: list[StatusEntry]) -> None:
    """Print a drift table for one pack."""
    table = Table(title=f"{pack} status", show_header=True, header_style="bold")
    table.add_column("", width=2, justify="center")
    table.add_column("Library", style="cyan")
    table.add_column("Installed")
    table.add_column("Recommended")
    table.add_column("Missing Features", overflow="fold")

    for entry in entries:
        if entry.missing:
            icon, installed = ICON_ERROR, "[red]missing[/red]"
        elif entry.outdated or entry.missing_features:
            icon, installed = ICON_WARNING, f"[yellow]{entry.installed or '—'}[/yellow]"
        else:
            icon, installed = ICON_SUCCESS, entry.installed or "[dim]—[/dim]"
        table.add_row(
            icon,
            entry.name,
            installed,
            entry.recommended or "[dim]—[/dim]",
            ", ".join(entry.missing_features),
        )

    console.print(table)
    drift = sum(1 for e in entries if e.missing or e.outdated or e.missing_features)
    if drift:
        console.print(f"{drift} of {len(entries)} libraries need attention; run [bold]kitbag sync[/bold]")
    else:
        console.print(f"{ICON_SUCCESS} All {len(entries)} libraries are up to date")
