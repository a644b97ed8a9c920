"""CLI package for clpack.

This package contains the modular CLI implementation:
- _core.py: CLIContext, shared prompts, main entry point
- _init.py: init command
- _add.py: add command for logging entries
- _pack.py: pack and status commands
"""

from __future__ import annotations

# Re-export core types and utilities
from ._core import (
    CLIContext,
    DEFAULT_COMMAND,
    INFO_PREFIX,
    VERSION_FLAGS,
    _create_cli_group,
    create_cli_context,
    main,
)

# Re-export init command
from ._init import init_cmd, init_project

# Re-export add command
from ._add import add, create_entry

# Re-export pack and status commands
from ._pack import (
    PREVIEW_VERSION,
    channel_option,
    pack_cmd,
    pack_release,
    show_status,
    status_cmd,
)

# Create the main CLI group
cli = _create_cli_group()

# Register all commands with the cli group; "log" and "release" are aliases.
cli.add_command(init_cmd)
cli.add_command(add)
cli.add_command(add, name="log")
cli.add_command(pack_cmd)
cli.add_command(pack_cmd, name="release")
cli.add_command(status_cmd)


__all__ = [
    # Core
    "cli",
    "main",
    "CLIContext",
    "DEFAULT_COMMAND",
    "INFO_PREFIX",
    "VERSION_FLAGS",
    "create_cli_context",
    # Init
    "init_cmd",
    "init_project",
    # Add
    "add",
    "create_entry",
    # Pack and status
    "PREVIEW_VERSION",
    "channel_option",
    "pack_cmd",
    "pack_release",
    "show_status",
    "status_cmd",
]
