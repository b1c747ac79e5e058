"""plugkit CLI — release and network tooling from the terminal.

Commands:
    release     Bump plugin.json + marketplace.json together, commit, tag, push
    versions    Show both descriptor versions and whether they agree
    network     Switch, inspect, or detect the active network preset
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import ToolConfig, load_config
from .detect import detect_preset
from .git import Git, GitError
from .manifests import read_versions
from .models import BumpClass, Preset, SwitchMode
from .presets import (
    PRESET_DESCRIPTIONS,
    PRESET_GUIDANCE,
    BranchMissingError,
    NotARepositoryError,
    StashedSwitchError,
    SwitchAction,
    apply_preset,
    current_preset,
    decide,
    load_state,
    read_state_text,
)
from .release import (
    VersionMismatchError,
    apply_release,
    check_versions,
    push_commands,
    push_release,
    release_page_url,
)
from .versioning import bump_preview, plan_bump, resolve_choice

logger = logging.getLogger("plugkit.cli")

console = Console()


@click.group()
@click.version_option(__version__, prog_name="plugkit")
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: PLUGKIT_ROOT or the current directory).",
)
@click.option("--verbose", "-v", is_flag=True, help="Log git commands and file writes.")
@click.pass_context
def main(ctx: click.Context, root: Optional[Path], verbose: bool) -> None:
    """plugkit — release and network tooling for assistant plugin bundles."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )
    try:
        ctx.obj = load_config(root)
    except ValueError as exc:
        console.print(f"[red]Config error:[/red] {escape(str(exc))}")
        sys.exit(1)


# ── Version bumper ────────────────────────────────────────────────────


@main.command()
@click.pass_obj
def versions(config: ToolConfig) -> None:
    """Show the plugin and marketplace versions."""
    try:
        record = read_versions(config)
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]Read failed:[/red] {escape(str(exc))}")
        sys.exit(1)

    table = Table(title="Descriptor Versions")
    table.add_column("File", style="cyan")
    table.add_column("Version")
    table.add_row(config.plugin_manifest, record.plugin_version)
    table.add_row(config.marketplace_manifest, record.marketplace_version)
    console.print(table)

    if record.in_sync:
        console.print("[green]In sync[/green]")
    else:
        console.print("[red]Out of sync[/red]")
        sys.exit(1)


@main.command()
@click.pass_obj
def release(config: ToolConfig) -> None:
    """Bump the plugin version, commit, tag, and optionally push.

    plugin.json and marketplace.json must agree before anything is written.
    """
    try:
        current = check_versions(config)
    except VersionMismatchError as exc:
        console.print("[red]Version mismatch![/red]")
        console.print(f"  plugin.json:      {exc.plugin_version}")
        console.print(f"  marketplace.json: {exc.marketplace_version}")
        console.print("\nPlease sync the versions before releasing.")
        sys.exit(1)
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]Release failed:[/red] {escape(str(exc))}")
        sys.exit(1)

    console.print(f"[yellow]Current version: {current}[/yellow]")

    try:
        preview = bump_preview(current)
    except ValueError:
        preview = {}
        console.print(f"[yellow]'{current}' is not a semantic version; only custom is available.[/yellow]")

    console.print("\nSelect version bump type:")
    for number, bump in enumerate(BumpClass, start=1):
        target = preview.get(bump)
        label = f"{bump.value:<6} -> {target}" if target else bump.value
        console.print(f"  {number}) {label}")
    console.print()

    choice = click.prompt("Choice [1-4]", default="", show_default=False)
    custom = None
    try:
        bump = resolve_choice(choice)
        if bump != BumpClass.CUSTOM and not preview:
            raise ValueError(f"Cannot apply {bump.value} to '{current}'")
        if bump == BumpClass.CUSTOM:
            custom = click.prompt("Enter custom version", default="", show_default=False)
        plan = plan_bump(current, choice, custom)
    except ValueError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        sys.exit(1)

    console.print(f"\n[yellow]Bumping version: {plan.current} -> {plan.new}[/yellow]")
    if not click.confirm("Continue?", default=False):
        console.print("Aborted.")
        return

    git = Git(config.project_root)
    try:
        written = apply_release(config, plan, git)
    except (GitError, FileNotFoundError, ValueError) as exc:
        console.print(f"[red]Release failed:[/red] {escape(str(exc))}")
        sys.exit(1)

    for path in written:
        console.print(f"[green]Updated {path.relative_to(config.project_root)}[/green]")
    console.print("[green]Committed version bump[/green]")
    console.print(f"[green]Created tag {plan.tag}[/green]")

    if click.confirm(f"Push to {config.remote}?", default=False):
        try:
            push_release(config, plan, git)
        except GitError as exc:
            console.print(f"[red]Push failed:[/red] {escape(str(exc))}")
            sys.exit(1)
        console.print(f"[green]Pushed to {config.remote}[/green]")
        console.print(f"\n[green]Release {plan.tag} complete![/green]")
        url = release_page_url(config, plan)
        if url:
            console.print(f"Create a GitHub release at: {url}")
    else:
        console.print("\n[yellow]Don't forget to push:[/yellow]")
        for command in push_commands(config, plan):
            console.print(f"  {command}")


# ── Network preset switcher ───────────────────────────────────────────


def _print_usage(config: ToolConfig, show_current: bool = True) -> None:
    console.print("Usage: plugkit network <network>")
    console.print("\nAvailable networks:")
    for preset in Preset:
        console.print(f"  {preset.value:<8} - {PRESET_DESCRIPTIONS[preset]}")
    console.print("\nOther commands:")
    console.print("  status   - Show the active network and state file")
    console.print("  detect   - Guess the network from dependency manifests")
    console.print("\nExamples:")
    console.print("  plugkit network testnet")
    console.print("  plugkit network devnet")
    if show_current:
        state = load_state(config)
        console.print(f"\nCurrent network: {current_preset(config, state).value}")


def _show_status(config: ToolConfig, git: Git) -> None:
    state = load_state(config)
    console.print(f"Current network: [green]{current_preset(config, state).value}[/green]")

    text = read_state_text(config)
    if text is not None:
        console.print("\nConfiguration:")
        console.print(text.rstrip("\n"), markup=False, highlight=False)

    if git.is_repo():
        try:
            branch = git.current_branch()
        except GitError as exc:
            logger.debug("No current branch: %s", exc)
        else:
            console.print(f"\nGit branch: {branch}")


def _apply(config: ToolConfig, preset: Preset, git: Git) -> None:
    console.print(f"[blue]Switching to {preset.value}...[/blue]")
    try:
        result = apply_preset(config, preset, git)
    except NotARepositoryError:
        console.print("[red]Error: Not a git repository.[/red]")
        console.print("Please clone the plugin repository first:")
        console.print(f"  git clone {config.repo_url or '<plugin repository URL>'}")
        sys.exit(1)
    except BranchMissingError as exc:
        console.print(f"[red]Error: Branch '{exc.branch}' does not exist.[/red]")
        console.print("\nAvailable branches:")
        for name in exc.available:
            console.print(f"  {name}")
        console.print("\nThis network version may not be available yet.")
        sys.exit(1)
    except StashedSwitchError as exc:
        console.print(f"[red]Switch failed:[/red] {escape(str(exc.cause))}")
        console.print("[yellow]Local changes were stashed (restore with: git stash pop)[/yellow]")
        sys.exit(1)
    except GitError as exc:
        console.print(f"[red]Switch failed:[/red] {escape(str(exc))}")
        sys.exit(1)

    if result.stashed:
        console.print("[yellow]Stashed local changes (restore with: git stash pop)[/yellow]")
    if config.switch_mode == SwitchMode.GIT:
        console.print(f"[green]Switched to branch: {preset.value}[/green]")

    console.print(f"[green]Configuration saved to {config.state_file}[/green]")
    console.print(f"\nNetwork: [green]{preset.value}[/green]")
    if config.switch_mode == SwitchMode.CONFIG:
        for line in PRESET_GUIDANCE[preset]:
            console.print(f"  {line}")
    console.print(f"You can now use the plugin with {preset.value}-compatible syntax.")


def _detect(config: ToolConfig, git: Git) -> None:
    detection = detect_preset(config)
    fallback = config.default_preset.value

    if not detection.scanned:
        console.print(f"[yellow]No dependency manifests found; assuming {fallback}.[/yellow]")
        return
    if not detection.found:
        console.print(
            f"[yellow]No recognizable version in {len(detection.scanned)} manifest(s); "
            f"assuming {fallback}.[/yellow]"
        )
        return

    where = detection.manifest.relative_to(config.project_root)
    console.print(f"Found version [cyan]{detection.token}[/cyan] in {where}")
    console.print(f"Detected network: [green]{detection.preset.value}[/green]")

    if not click.confirm(f"Switch to {detection.preset.value}?", default=False):
        console.print("No changes made.")
        return
    _apply(config, detection.preset, git)


@main.command(context_settings={"ignore_unknown_options": True, "help_option_names": []})
@click.argument("target", required=False)
@click.pass_obj
def network(config: ToolConfig, target: Optional[str]) -> None:
    """Switch the plugin to a network preset.

    TARGET is devnet, testnet, mainnet, status, detect, or help.
    """
    decision = decide(target)
    git = Git(config.project_root)

    if decision.action == SwitchAction.USAGE:
        _print_usage(config)
    elif decision.action == SwitchAction.HELP:
        _print_usage(config, show_current=False)
    elif decision.action == SwitchAction.STATUS:
        _show_status(config, git)
    elif decision.action == SwitchAction.DETECT:
        _detect(config, git)
    elif decision.action == SwitchAction.APPLY:
        _apply(config, decision.preset, git)
    else:
        console.print(f"[red]Error: Unknown network '{decision.argument}'[/red]\n")
        _print_usage(config)
        sys.exit(1)


if __name__ == "__main__":
    main()
