"""Init command for bootstrapping a changelog project."""

from __future__ import annotations

import click

from ..config import Config, default_config_path, load_config, save_config
from ..store import Store
from ..utils import log_info, log_success
from ._core import CLIContext

__all__ = ["init_project", "init_cmd"]


def init_project(ctx: CLIContext) -> Store:
    """Create the config file and the changelog folder if they do not exist yet."""

    config_path = ctx.config_path or default_config_path(ctx.project_root)
    if config_path.exists():
        log_info(f"loading existing config file: {config_path}")
        load_config(config_path)
    else:
        log_info(f"creating clpack config file: {config_path}")
        save_config(Config(), config_path)
    ctx.reset()
    ctx.config_path = config_path
    store = ctx.open_store(init=True)
    log_success("changelog initialized.")
    return store


@click.command("init")
@click.pass_obj
def init_cmd(ctx: CLIContext) -> None:
    """Create the changelog folder and the default config file, if missing."""

    init_project(ctx)
