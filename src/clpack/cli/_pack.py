"""Pack and status commands for the changelog CLI."""

from __future__ import annotations

import json
from datetime import date
from typing import Any, Callable, Optional, Sequence, TypeVar

import click
from packaging.version import InvalidVersion, Version
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..errors import UnknownChannelError
from ..ledger import ChannelLedger, Release
from ..store import Store
from ..utils import (
    console,
    emit_output,
    format_bold,
    log_info,
    log_success,
    log_warning,
)
from ._core import CLIContext, _confirm, _prompt_text

__all__ = [
    "pack_release",
    "show_status",
    "pack_cmd",
    "status_cmd",
    # Helper functions
    "_resolve_channel",
    "_suggest_version",
    "_bump_version_value",
    "_resolve_version",
]

F = TypeVar("F", bound=Callable[..., Any])

PREVIEW_VERSION = "Unreleased"


def _resolve_channel(
    ctx: CLIContext,
    store: Store,
    explicit: Optional[str],
    *,
    allow_interactive: bool,
) -> str:
    """Pick the channel from the flag, the git branch, or by asking."""
    config = ctx.ensure_app().config
    channels = store.channels
    if explicit:
        if explicit not in channels:
            raise UnknownChannelError(explicit, channels)
        return explicit
    if len(channels) == 1:
        return config.default_channel

    branch = ctx.branch()
    detected = ctx.resolver().channel(branch) if branch else None
    if detected is not None and detected not in channels:
        raise UnknownChannelError(detected, channels)
    if not allow_interactive:
        return detected or config.default_channel
    return _prompt_text(
        "Release channel",
        type=click.Choice(list(channels)),
        default=detected or config.default_channel,
    )


def _bump_version_value(base: Version) -> Version:
    major, minor, micro = (list(base.release) + [0, 0, 0])[:3]
    return Version(f"{major}.{minor}.{micro + 1}")


def _suggest_version(ledger: ChannelLedger) -> Optional[str]:
    """Suggest the next patch version after the channel's latest release."""
    latest = ledger.latest()
    if latest is None:
        return None
    label = latest.version
    prefix = ""
    value = label
    if label.startswith(("v", "V")):
        prefix = label[0]
        value = label[1:]
    try:
        parsed = Version(value)
    except InvalidVersion:
        return None
    return f"{prefix}{_bump_version_value(parsed)}"


def _resolve_version(
    ctx: CLIContext,
    store: Store,
    channel: str,
    explicit: Optional[str],
    *,
    allow_interactive: bool,
) -> str:
    """Return a version that no channel has used yet."""
    if explicit is not None:
        version = explicit.strip()
        if not version:
            raise click.ClickException("Release version cannot be empty.")
        if store.version_exists(version):
            raise click.ClickException(f"Version '{version}' already exists.")
        return version
    if not allow_interactive:
        raise click.ClickException("Provide a release version when running non-interactively.")

    branch = ctx.branch()
    suggestion = ctx.resolver().version(branch) if branch else None
    if suggestion is None:
        suggestion = _suggest_version(store.ledger(channel))
    while True:
        version = _prompt_text(
            "Version",
            default=suggestion or "",
            show_default=bool(suggestion),
        ).strip()
        if not version:
            raise click.ClickException("Cancelled.")
        if store.version_exists(version):
            log_warning("version already exists, try again or cancel.")
            suggestion = None
            continue
        return version


def _print_unreleased(channel: str, names: Sequence[str]) -> None:
    table = Table(
        title=f"Changes waiting for release on [clpack.channel]{channel}[/]",
        title_justify="left",
    )
    table.add_column("#", justify="right", style="clpack.index")
    table.add_column("Entry", style="clpack.entry")
    for index, name in enumerate(names, start=1):
        table.add_row(str(index), name)
    console.print(table)


def _print_preview(rendered: str) -> None:
    console.print(Panel(Text(rendered.rstrip("\n")), title="Preview", expand=False))


def show_status(
    ctx: CLIContext,
    *,
    channel: Optional[str] = None,
    json_output: bool = False,
    allow_interactive: bool = True,
    today: Optional[date] = None,
) -> list[str]:
    """Show the entries waiting for release on a channel, with a preview."""

    store = ctx.open_store()
    resolved = _resolve_channel(ctx, store, channel, allow_interactive=allow_interactive)
    unreleased = store.find_unreleased_changes(resolved)

    if json_output:
        emit_output(json.dumps({"channel": resolved, "unreleased": unreleased}, indent=2))
        return unreleased

    if not unreleased:
        log_info(f"no unreleased changes on channel {format_bold(resolved)}.")
        return unreleased

    _print_unreleased(resolved, unreleased)
    rendered = store.render_release(
        Release(version=PREVIEW_VERSION, entries=tuple(unreleased)), today=today
    )
    _print_preview(rendered)
    return unreleased


def pack_release(
    ctx: CLIContext,
    *,
    channel: Optional[str] = None,
    version: Optional[str] = None,
    assume_yes: bool = False,
    allow_interactive: bool = True,
    today: Optional[date] = None,
) -> Optional[Release]:
    """Python wrapper for packing a release that mirrors CLI behavior."""

    store = ctx.open_store()
    resolved = _resolve_channel(ctx, store, channel, allow_interactive=allow_interactive)
    log_info(f"channel: {format_bold(resolved)}")

    unreleased = store.find_unreleased_changes(resolved)
    if not unreleased:
        log_info("no unreleased changes.")
        return None
    _print_unreleased(resolved, unreleased)

    release_version = _resolve_version(
        ctx, store, resolved, version, allow_interactive=allow_interactive
    )
    release = Release(version=release_version, entries=tuple(unreleased))

    staged = store.stage(resolved, release, today=today)
    _print_preview(staged.fragment)

    if not assume_yes:
        if not allow_interactive:
            log_info(f"re-run with {format_bold('--yes')} to write the changelog.")
            raise SystemExit(1)
        if not _confirm("Continue - write to changelog file?", default=True):
            log_warning("cancelled.")
            return None

    store.commit(staged)
    log_success(f"release {format_bold(release.version)} written to {staged.document.path}")
    return release


def channel_option() -> Callable[[F], F]:
    """Shared --channel option for commands that work on one release channel."""

    def decorator(f: F) -> F:
        return click.option(
            "--channel",
            help="Release channel (detected from the git branch when omitted).",
        )(f)

    return decorator


@click.command("pack")
@channel_option()
@click.option("--version", "version", help="Version name for the new release.")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Write without asking for confirmation.")
@click.pass_obj
def pack_cmd(
    ctx: CLIContext,
    channel: Optional[str],
    version: Optional[str],
    assume_yes: bool,
) -> None:
    """Pack unreleased entries into a new release."""

    pack_release(ctx, channel=channel, version=version, assume_yes=assume_yes)


@click.command("status")
@channel_option()
@click.option("--json", "json_output", is_flag=True, help="Emit unreleased entries as JSON.")
@click.pass_obj
def status_cmd(ctx: CLIContext, channel: Optional[str], json_output: bool) -> None:
    """Show entries waiting for release on the current channel."""

    show_status(ctx, channel=channel, json_output=json_output)
