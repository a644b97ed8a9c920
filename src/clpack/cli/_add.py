"""Add command for logging changelog entries."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional, Sequence

import click
from rich.panel import Panel
from rich.text import Text

from ..utils import (
    abort_on_user_interrupt,
    console,
    log_info,
    log_success,
    log_warning,
)
from ._core import CLIContext, _prompt_text

__all__ = [
    "create_entry",
    "add",
    # Helper functions
    "_build_prefill",
    "_read_description_file",
    "_resolve_description_input",
    "_resolve_sections",
    "_prompt_entry_body",
]


def _read_description_file(path: Path) -> str:
    """Read entry text from file or stdin (if path is '-')."""
    if str(path) == "-":
        if sys.stdin.isatty():
            raise click.ClickException(
                "No input provided on stdin. Pipe content or use --description."
            )
        return sys.stdin.read()
    if not path.exists():
        raise click.ClickException(f"Description file not found: {path}")
    return path.read_text(encoding="utf-8")


def _resolve_description_input(
    description: Optional[str],
    description_file: Optional[Path],
) -> Optional[str]:
    """Resolve entry text from inline text, file, or stdin."""
    if description is not None and description_file is not None:
        raise click.ClickException("Use only one of --description or --description-file, not both.")
    if description is not None:
        return description
    if description_file is not None:
        return _read_description_file(description_file)
    return None


def _build_prefill(sections: Sequence[str], issue: Optional[str]) -> str:
    """Return an entry skeleton with one heading and bullet per section."""
    bullet = f"-  (#{issue})\n" if issue else "- \n"
    return "\n".join(f"# {section}\n{bullet}" for section in sections)


def _resolve_sections(
    requested: Sequence[str], available: Sequence[str], allow_interactive: bool
) -> list[str]:
    sections = [value.strip() for value in requested if value.strip()]
    if sections or not allow_interactive:
        return list(dict.fromkeys(sections))
    numbered = ", ".join(f"{name} [{index}]" for index, name in enumerate(available, start=1))
    console.print(Text(f"Sections: {numbered}", style="bold"))
    while True:
        answer = _prompt_text("Sections to pre-generate (numbers or names, comma separated)")
        chosen: list[str] = []
        for token in answer.split(","):
            token = token.strip()
            if not token:
                continue
            if token.isdigit() and 1 <= int(token) <= len(available):
                chosen.append(available[int(token) - 1])
            else:
                chosen.append(token)
        if chosen:
            return list(dict.fromkeys(chosen))
        log_warning("choose at least one section.")


def _prompt_entry_body(initial: str) -> str:
    log_info("launching editor for the entry (set EDITOR or pass --description to skip).")
    try:
        edited = click.edit(initial, extension=".md")
    except (click.exceptions.Abort, KeyboardInterrupt) as exc:
        abort_on_user_interrupt(exc)
    if edited is None or not edited.strip():
        return initial
    return edited


def create_entry(
    ctx: CLIContext,
    *,
    name: Optional[str] = None,
    sections: Sequence[str] | None = None,
    description: Optional[str] = None,
    allow_interactive: bool = True,
) -> Path:
    """Python wrapper for logging an entry that mirrors the CLI behavior."""

    store = ctx.open_store()
    config = ctx.ensure_app().config

    branch = ctx.branch()
    issue = ctx.resolver().issue(branch) if branch else None
    if issue:
        log_success(f"issue # parsed from branch: {issue}")
    elif branch is not None:
        log_warning(f'issue not recognized from branch name ("{branch}").')

    entry_name = (name or "").strip()
    if entry_name:
        if store.entry_exists(entry_name):
            raise click.ClickException(f"Entry '{entry_name}' already exists.")
    elif not allow_interactive:
        raise click.ClickException("Entry name is required when running non-interactively.")
    else:
        suggestion = branch if issue else None
        while True:
            entry_name = _prompt_text(
                "Log entry name (file name without extension)",
                default=suggestion or "",
                show_default=bool(suggestion),
            ).strip()
            if not entry_name:
                raise click.ClickException("Cancelled.")
            if store.entry_exists(entry_name):
                log_warning("entry already exists, try a different name.")
                suggestion = None
                continue
            break

    chosen_sections = _resolve_sections(
        sections or (), config.sections, allow_interactive and description is None
    )

    if description is not None:
        if len(chosen_sections) > 1:
            raise click.ClickException("Use a single --section together with --description.")
        text = description.strip("\n")
        if chosen_sections:
            text = f"# {chosen_sections[0]}\n{text}"
    else:
        if not chosen_sections:
            raise click.ClickException("Choose at least one section or pass --description.")
        prefill = _build_prefill(chosen_sections, issue)
        if allow_interactive:
            console.print(
                Panel(Text(prefill), title=f'Preview of entry "{entry_name}"', expand=False)
            )
            text = _prompt_entry_body(prefill)
        else:
            text = prefill

    if not text.strip():
        raise click.ClickException("Entry text is empty.")
    if not text.endswith("\n"):
        text += "\n"

    return store.create_entry(entry_name, text)


@click.command("add")
@click.option("--name", help="Entry name, used as the file name without extension.")
@click.option(
    "--section",
    "sections",
    multiple=True,
    help="Section heading to pre-generate (repeat for multiple).",
)
@click.option(
    "--description",
    help="Entry text (skips opening an editor).",
)
@click.option(
    "--description-file",
    type=click.Path(path_type=Path, dir_okay=False, exists=False),
    help="File containing the entry text. Use '-' to read from stdin.",
)
@click.pass_obj
def add(
    ctx: CLIContext,
    name: Optional[str],
    sections: tuple[str, ...],
    description: Optional[str],
    description_file: Optional[Path],
) -> None:
    """Log a new changelog entry."""
    resolved_description = _resolve_description_input(description, description_file)
    create_entry(
        ctx,
        name=name,
        sections=sections,
        description=resolved_description,
    )
