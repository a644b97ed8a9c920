"""Core CLI infrastructure: context, shared prompts, and the main entry point."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version as metadata_version
from pathlib import Path
from typing import Any, Optional

import click

from .. import __version__ as package_version
from ..branches import BranchResolver, current_branch
from ..config import AppContext, default_config_path, load_project_config
from ..store import Store
from ..utils import (
    INFO_PREFIX,
    abort_on_user_interrupt,
    configure_logging,
    log_debug,
)

__all__ = [
    "CLIContext",
    "INFO_PREFIX",
    "VERSION_FLAGS",
    "HELP_FLAGS",
    "DEFAULT_COMMAND",
    "create_cli_context",
    "_prompt_text",
    "_confirm",
    "_create_cli_group",
    "main",
]

VERSION_FLAGS = {"--version", "-V"}
HELP_FLAGS = {"--help", "-h"}

# Running the tool without a subcommand logs a new entry.
DEFAULT_COMMAND = "add"


def _resolve_cli_version() -> str:
    try:
        return metadata_version("clpack")
    except PackageNotFoundError:
        return package_version


def _default_binary_name() -> str:
    name = Path(sys.argv[0]).name if sys.argv and sys.argv[0] else ""
    if not name or name.endswith(".py") or name.startswith("-"):
        return "clpack"
    return name


@dataclass
class CLIContext:
    """Shared command context."""

    project_root: Path
    config_path: Optional[Path] = None
    binary_name: str = "clpack"
    _app: Optional[AppContext] = None
    _store: Optional[Store] = None

    def ensure_app(self) -> AppContext:
        """Load the configuration once and return the immutable app context."""
        if self._app is None:
            config = load_project_config(self.project_root, self.config_path)
            self._app = AppContext(
                root=self.project_root, config=config, binary_name=self.binary_name
            )
        return self._app

    def open_store(self, *, init: bool = False) -> Store:
        if self._store is None:
            self._store = Store.open(self.ensure_app(), init=init)
        return self._store

    def reset(self) -> None:
        """Forget the cached config and store, e.g. after writing a new config file."""
        self._app = None
        self._store = None

    def branch(self) -> Optional[str]:
        branch = current_branch(self.project_root)
        log_debug(f"current git branch: {branch}")
        return branch

    def resolver(self) -> BranchResolver:
        return BranchResolver(self.ensure_app().config)


def _resolve_project_root(value: Path) -> Path:
    """Return the nearest directory at or above ``value`` that holds a config file."""
    resolved = value.resolve()
    for candidate in [resolved] + list(resolved.parents):
        if candidate.is_dir() and default_config_path(candidate).exists():
            return candidate
    return resolved


def create_cli_context(
    *,
    root: Path | None = None,
    config: Optional[Path] = None,
    debug: bool = False,
    binary_name: Optional[str] = None,
) -> CLIContext:
    """Return a CLIContext using the same resolution logic as the CLI entry point."""

    configure_logging(debug)

    if root is None:
        resolved_root = _resolve_project_root(Path("."))
    else:
        resolved_root = root.resolve()

    config_path = config.resolve() if config else None
    log_debug(f"resolved project root: {resolved_root}")
    log_debug(f"using config path: {config_path or default_config_path(resolved_root)}")
    return CLIContext(
        project_root=resolved_root,
        config_path=config_path,
        binary_name=binary_name or _default_binary_name(),
    )


def _prompt_text(label: str, **kwargs: Any) -> str:
    prompt_suffix = kwargs.pop("prompt_suffix", ": ")
    try:
        result = click.prompt(click.style(label, bold=True), prompt_suffix=prompt_suffix, **kwargs)
    except (click.exceptions.Abort, KeyboardInterrupt) as exc:
        abort_on_user_interrupt(exc)
    return str(result)


def _confirm(label: str, *, default: bool = True) -> bool:
    try:
        return click.confirm(click.style(label, bold=True), default=default)
    except (click.exceptions.Abort, KeyboardInterrupt) as exc:
        abort_on_user_interrupt(exc)


def _create_cli_group() -> click.Group:
    """Create the main CLI group. Called after all commands are defined."""

    @click.group(
        invoke_without_command=True, context_settings={"help_option_names": ["-h", "--help"]}
    )
    @click.option(
        "--root",
        type=click.Path(path_type=Path, exists=True, file_okay=False),
        help="Project root containing the config file and changelog folder.",
    )
    @click.option(
        "--config",
        "-c",
        type=click.Path(path_type=Path, dir_okay=False),
        help="Path to an explicit clpack.yaml config file.",
    )
    @click.option(
        "--debug",
        "-d",
        is_flag=True,
        help="Enable debug logging.",
    )
    @click.pass_context
    def _cli(
        ctx: click.Context,
        root: Path | None,
        config: Optional[Path],
        debug: bool,
    ) -> None:
        """Log changelog entries and pack them into releases."""

        ctx.obj = create_cli_context(root=root, config=config, debug=debug)

        if ctx.invoked_subcommand is None:
            # Import here to avoid circular import
            from ._add import add

            ctx.invoke(add)

    return click.version_option(version=_resolve_cli_version())(_cli)


def main(argv: list[str] | None = None) -> int:
    """Entry point for console_scripts."""
    # Import cli here to avoid circular import at module load time
    from . import cli

    args = list(argv) if argv is not None else list(sys.argv[1:])

    command_index = next((i for i, arg in enumerate(args) if arg in cli.commands), None)
    leading = args if command_index is None else args[:command_index]
    if any(flag in leading for flag in VERSION_FLAGS):
        click.echo(_resolve_cli_version())
        return 0

    has_command = command_index is not None
    if not has_command and not any(flag in args for flag in HELP_FLAGS):
        args.append(DEFAULT_COMMAND)

    try:
        result = cli.main(args=args, prog_name=_default_binary_name(), standalone_mode=False)
    except click.ClickException as exc:
        exc.show(file=sys.stderr)
        exit_code = getattr(exc, "exit_code", 1)
        return exit_code if isinstance(exit_code, int) else 1
    except click.exceptions.Exit as exc:
        return exc.exit_code if isinstance(exc.exit_code, int) else 0
    except KeyboardInterrupt as exc:
        try:
            abort_on_user_interrupt(exc)
        except click.exceptions.Exit as exit_exc:
            exit_code = getattr(exit_exc, "exit_code", 130)
            return exit_code if isinstance(exit_code, int) else 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 0
    # Non-standalone mode returns the exit code of click.exceptions.Exit.
    return result if isinstance(result, int) else 0
