"""Shared utilities for the store and the CLI implementation."""

from __future__ import annotations

import logging
import os
import stat
import sys
import tempfile
from datetime import date
from pathlib import Path
from typing import NoReturn, Optional

import click
from rich.console import Console
from rich.style import Style
from rich.theme import Theme

from .errors import ClobberedPathError, IoError, NotWritableError

BOLD = "\033[1m"
RESET = "\033[0m"

SUCCESS_PREFIX = "\033[92;1m✔\033[0m "
ERROR_PREFIX = "\033[31m✘\033[0m "
INFO_PREFIX = "\033[94;1mi\033[0m "
WARNING_PREFIX = "\033[33m○\033[0m "
DEBUG_PREFIX = "\033[95m◆\033[0m "

GITKEEP_FILENAME = ".gitkeep"

_LOGGER_NAME = "clpack"
_LOGGER = logging.getLogger(_LOGGER_NAME)

# Tables and previews go to stderr so stdout stays clean for --json output.
console = Console(
    stderr=True,
    theme=Theme(
        {
            "clpack.channel": Style(bold=True, color="magenta"),
            "clpack.entry": Style(color="cyan"),
            "clpack.index": Style(dim=True),
        }
    ),
)


def configure_logging(debug: bool = False) -> logging.Logger:
    """Route the ``clpack`` logger to stderr, replacing earlier handlers."""
    level = logging.DEBUG if debug else logging.INFO
    _LOGGER.setLevel(level)
    while _LOGGER.handlers:
        _LOGGER.handlers.pop().close()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.setLevel(level)
    _LOGGER.addHandler(handler)
    _LOGGER.propagate = False
    return _LOGGER


def _log(prefix: str, message: str, level: int) -> None:
    for line in message.splitlines() or [""]:
        _LOGGER.log(level, f"{prefix}{line}" if line else prefix.rstrip())


def log_info(message: str) -> None:
    _log(INFO_PREFIX, message, logging.INFO)


def log_success(message: str) -> None:
    _log(SUCCESS_PREFIX, message, logging.INFO)


def log_error(message: str) -> None:
    _log(ERROR_PREFIX, message, logging.ERROR)


def log_warning(message: str) -> None:
    _log(WARNING_PREFIX, message, logging.WARNING)


def log_debug(message: str) -> None:
    _log(DEBUG_PREFIX, message, logging.DEBUG)


def abort_on_user_interrupt(exc: BaseException | None = None) -> NoReturn:
    """Log the cancellation and leave with the conventional SIGINT exit code."""
    log_error("operation cancelled by user (Ctrl+C).")
    raise click.exceptions.Exit(130) from exc


def format_bold(text: str) -> str:
    return f"{BOLD}{text}{RESET}"


def emit_output(content: str, *, newline: bool = True) -> None:
    """Write machine-readable output to stdout."""
    click.echo(content, nl=newline, err=False)


def format_date(template: str, value: Optional[date] = None) -> str:
    """Format a date with a strftime pattern, defaulting to today."""
    return (value or date.today()).strftime(template)


def _current_umask() -> int:
    # os.umask can only be read by setting it.
    umask = os.umask(0)
    os.umask(umask)
    return umask


def atomic_write_text(path: Path, content: str) -> None:
    """Replace ``path`` with ``content`` in a single rename.

    The payload goes to a temporary file in the destination directory first,
    so readers see either the previous file or the complete new one. The
    temporary file is removed when anything fails before the rename. An
    existing file keeps its permission bits; a new one follows the umask.
    """
    try:
        mode = stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        mode = 0o666 & ~_current_umask()
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def is_writable_dir(path: Path) -> bool:
    """Return True if ``path`` is a directory the current user may write to."""
    return path.is_dir() and os.access(path, os.W_OK | os.X_OK)


def ensure_directory(path: Path, *, what: str = "Changelog directory") -> bool:
    """Create ``path`` (and a ``.gitkeep`` sentinel) if it is missing.

    Returns True when the directory had to be created. There is no lock, so
    another process may remove or replace the directory right after this
    check.
    """
    created = False
    if not path.is_dir():
        if path.exists() or path.is_symlink():
            raise ClobberedPathError(path)
        log_info(f"creating {what.lower()}: {path}")
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise IoError(f"Failed to create {what.lower()} {path}: {exc}") from exc
        created = True
    if not is_writable_dir(path):
        raise NotWritableError(path, what)
    keep = path / GITKEEP_FILENAME
    if not keep.exists():
        try:
            keep.touch()
        except OSError as exc:
            raise IoError(f"Failed to create {keep}: {exc}") from exc
    return created
